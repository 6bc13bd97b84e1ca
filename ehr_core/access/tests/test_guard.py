import uuid

import pytest
from django.db import OperationalError

from ehr_core.access import policy
from ehr_core.access.guard import (
    Allowed,
    Forbidden,
    LookupFailed,
    NotFound,
    guard,
    raise_for_result,
)
from ehr_core.access.policy import ResourceDescriptor
from ehr_core.common.api.exceptions import ForbiddenError, InfrastructureError, NotFoundError
from ehr_core.iam.identity import Actor, actor_for_user
from ehr_core.iam.roles import ROLE_DOCTOR, ROLE_PATIENT

F1 = uuid.uuid4()


class FakeStore:
    def __init__(self, rows=None, error=None):
        self.rows = rows or {}
        self.error = error
        self.calls = 0

    def fetch(self, resource_type, resource_id):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.rows.get(resource_id)


def _row(id, *, owner=None, facility_id=F1):
    instance = object()
    return instance, ResourceDescriptor(policy.PATIENT, id, owner_user_id=owner, facility_id=facility_id)


def test_missing_resource_is_not_found_before_any_policy_check():
    store = FakeStore()
    result = guard(Actor(id=1, role=ROLE_DOCTOR, facility_id=F1), policy.PATIENT, "nope", store=store)
    assert result == NotFound(policy.PATIENT, "nope")
    assert store.calls == 1


def test_allowed_returns_resource_and_projection():
    instance, projection = row = _row("p1")
    result = guard(Actor(id=1, role=ROLE_DOCTOR, facility_id=F1), policy.PATIENT, "p1", store=FakeStore({"p1": row}))
    assert isinstance(result, Allowed)
    assert result.resource is instance
    assert result.projection == projection
    assert raise_for_result(result) is instance


def test_forbidden_carries_reason():
    store = FakeStore({"p1": _row("p1", owner=2)})
    result = guard(Actor(id=1, role=ROLE_PATIENT, facility_id=F1), policy.PATIENT, "p1", store=store)
    assert isinstance(result, Forbidden)
    assert result.reason == policy.REASON_NOT_OWNER

    with pytest.raises(ForbiddenError):
        raise_for_result(result)


def test_guard_is_idempotent():
    store = FakeStore({"p1": _row("p1")})
    a = Actor(id=1, role=ROLE_DOCTOR, facility_id=F1)

    first = guard(a, policy.PATIENT, "p1", store=store)
    second = guard(a, policy.PATIENT, "p1", store=store)

    assert first == second
    assert store.calls == 2


def test_database_failure_is_lookup_failed():
    err = OperationalError("canceling statement due to statement timeout")
    result = guard(Actor(id=1, role=ROLE_DOCTOR, facility_id=F1), policy.PATIENT, "p1", store=FakeStore(error=err))

    assert isinstance(result, LookupFailed)
    assert result.error is err
    with pytest.raises(InfrastructureError):
        raise_for_result(result)


def test_not_found_maps_to_404_error():
    with pytest.raises(NotFoundError) as exc:
        raise_for_result(NotFound(policy.MEDICAL_RECORD, "x"))
    assert "Medical record" in str(exc.value.detail)


@pytest.mark.django_db
def test_orm_store_one_joined_read(django_assert_num_queries, doctor, patient):
    from ehr_core.clinical.models import MedicalRecord

    record = MedicalRecord.objects.create(
        patient=patient, author=doctor, record_number="MR-1", record_type="NOTE", title="Visit"
    )

    with django_assert_num_queries(1):
        result = guard(actor_for_user(doctor), policy.MEDICAL_RECORD, record.pk)

    assert isinstance(result, Allowed)
    assert result.projection.owner_user_id == patient.user_id
    assert result.projection.facility_id == patient.facility_id


@pytest.mark.django_db
@pytest.mark.parametrize("bad_id", ["not-a-uuid", "", None])
def test_orm_store_malformed_id_is_not_found(doctor, bad_id):
    result = guard(actor_for_user(doctor), policy.PATIENT, bad_id)
    assert isinstance(result, NotFound)
