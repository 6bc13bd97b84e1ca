from datetime import timedelta

import pytest
from django.core.management import call_command
from django.db import transaction
from django.utils import timezone
from structlog.testing import capture_logs

from ehr_core.access.policy import PATIENT
from ehr_core.audit.models import AuditEvent, AuditImmutableError
from ehr_core.audit.recorder import AuditEntry, AuditRecorder, recorder
from ehr_core.common.context import RequestContext
from ehr_core.iam.identity import actor_for_user

pytestmark = pytest.mark.django_db


def _ctx(user):
    return RequestContext(actor=actor_for_user(user), ip_address="10.0.0.1", user_agent="pytest")


def test_record_writes_after_commit(admin_user, facility, django_capture_on_commit_callbacks):
    entry = AuditEntry("PATIENT_CREATED", PATIENT, "abc", {"mrn": "M-1"}, facility.id)

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        recorder.record(_ctx(admin_user), entry)
        assert AuditEvent.objects.count() == 0

    assert len(callbacks) == 1
    ev = AuditEvent.objects.get()
    assert ev.actor_id == admin_user.id
    assert ev.action == "PATIENT_CREATED"
    assert ev.resource_id == "abc"
    assert ev.details == {"mrn": "M-1"}
    assert ev.ip_address == "10.0.0.1"
    assert ev.facility_id == facility.id


def test_rolled_back_mutation_leaves_no_event(admin_user, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        with pytest.raises(RuntimeError):
            with transaction.atomic():
                recorder.record(_ctx(admin_user), AuditEntry("PATIENT_CREATED", PATIENT, "x"))
                raise RuntimeError("boom")

    assert callbacks == []
    assert AuditEvent.objects.count() == 0


def test_write_failure_is_logged_and_absorbed(admin_user):
    def broken_writer(ctx, entry):
        raise RuntimeError("db down")

    rec = AuditRecorder(writer=broken_writer)
    with capture_logs() as logs:
        rec.write_now(_ctx(admin_user), AuditEntry("PATIENT_UPDATED", PATIENT, "p-9"))

    failure = next(e for e in logs if e["event"] == "audit_write_failed")
    assert failure["log_level"] == "error"
    assert failure["resource_id"] == "p-9"
    assert failure["audit_action"] == "PATIENT_UPDATED"


def test_events_are_append_only(admin_user):
    ev = AuditEvent.objects.create(actor=admin_user, action="X", resource_type=PATIENT, resource_id="1")

    ev.action = "Y"
    with pytest.raises(AuditImmutableError):
        ev.save()
    with pytest.raises(AuditImmutableError):
        ev.delete()
    with pytest.raises(AuditImmutableError):
        AuditEvent.objects.filter(pk=ev.pk).update(action="Y")
    with pytest.raises(AuditImmutableError):
        AuditEvent.objects.all().delete()

    assert AuditEvent.objects.get(pk=ev.pk).action == "X"


def test_purge_command_removes_only_old_events(admin_user, monkeypatch):
    long_ago = timezone.now() - timedelta(days=400)
    monkeypatch.setattr("django.utils.timezone.now", lambda: long_ago)
    AuditEvent.objects.create(actor=admin_user, action="OLD", resource_type=PATIENT, resource_id="1")
    monkeypatch.undo()

    AuditEvent.objects.create(actor=admin_user, action="NEW", resource_type=PATIENT, resource_id="2")

    call_command("purge_audit_events", "--days", "365")

    assert list(AuditEvent.objects.values_list("action", flat=True)) == ["NEW"]
