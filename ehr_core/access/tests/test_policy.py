import uuid

import pytest

from ehr_core.access import policy
from ehr_core.access.policy import (
    ListScope,
    ResourceDescriptor,
    can_access,
    can_manage_provider,
    can_manage_user,
    can_notify,
    evaluate,
    is_action_permitted,
    list_scope,
)
from ehr_core.iam.identity import Actor
from ehr_core.iam.roles import (
    ALL_ROLES,
    ROLE_ADMIN,
    ROLE_DOCTOR,
    ROLE_NURSE,
    ROLE_PATIENT,
    ROLE_PROVIDER,
    ROLE_STAFF,
    ROLE_SUPER_ADMIN,
)

F1 = uuid.UUID("00000000-0000-0000-0000-000000000101")
F2 = uuid.UUID("00000000-0000-0000-0000-000000000202")

RESOURCE_TYPES = [
    policy.PATIENT,
    policy.PROVIDER,
    policy.MEDICAL_RECORD,
    policy.INSURANCE_POLICY,
    policy.INSURANCE_CLAIM,
    policy.NOTIFICATION,
    policy.APPOINTMENT,
    policy.USER,
]


def actor(role, *, id=1, facility_id=F1):
    return Actor(id=id, role=role, facility_id=facility_id)


def res(resource_type=policy.PATIENT, *, id=99, owner=None, facility_id=F1, target_role=None):
    return ResourceDescriptor(resource_type, id, owner_user_id=owner, facility_id=facility_id, target_role=target_role)


@pytest.mark.parametrize("resource_type", RESOURCE_TYPES)
@pytest.mark.parametrize("action", [None, "retrieve", "update", "partial_update", "activate", "change_role"])
def test_super_admin_passes_every_check(resource_type, action):
    sa = actor(ROLE_SUPER_ADMIN, facility_id=None)
    decision = evaluate(sa, res(resource_type, facility_id=F2, target_role=ROLE_ADMIN), action)
    assert decision.allowed
    assert decision.reason == policy.REASON_SUPER_ADMIN


@pytest.mark.parametrize("resource_type", [policy.PATIENT, policy.MEDICAL_RECORD, policy.APPOINTMENT])
def test_patient_only_sees_what_they_own(resource_type):
    me = actor(ROLE_PATIENT, id=7)

    assert can_access(me, res(resource_type, owner=7))

    decision = evaluate(me, res(resource_type, owner=8))
    assert not decision.allowed
    assert decision.reason == policy.REASON_NOT_OWNER


def test_patient_same_facility_is_not_enough():
    me = actor(ROLE_PATIENT, id=7)
    assert not can_access(me, res(policy.MEDICAL_RECORD, owner=None, facility_id=F1))


def test_admin_cross_facility_denied_even_when_owner():
    admin = actor(ROLE_ADMIN, id=5, facility_id=F1)
    decision = evaluate(admin, res(policy.PATIENT, owner=5, facility_id=F2))
    assert not decision.allowed
    assert decision.reason == policy.REASON_FACILITY_MISMATCH


@pytest.mark.parametrize("resource_type", RESOURCE_TYPES)
def test_admin_ownership_never_crosses_facilities(resource_type):
    admin = actor(ROLE_ADMIN, id=5, facility_id=F1)
    decision = evaluate(admin, res(resource_type, id=99, owner=5, facility_id=F2, target_role=ROLE_DOCTOR))
    assert not decision.allowed
    assert decision.reason == policy.REASON_FACILITY_MISMATCH


def test_admin_reads_own_inbox_on_own_facility():
    admin = actor(ROLE_ADMIN, id=5, facility_id=F1)
    assert can_access(admin, res(policy.NOTIFICATION, owner=5, facility_id=F1))


@pytest.mark.parametrize("role", [ROLE_ADMIN, ROLE_DOCTOR, ROLE_NURSE])
def test_facility_roles_pass_on_their_facility(role):
    assert can_access(actor(role), res(policy.MEDICAL_RECORD, facility_id=F1))
    assert not can_access(actor(role), res(policy.MEDICAL_RECORD, facility_id=F2))


@pytest.mark.parametrize(
    "actor_facility, resource_facility",
    [(None, F1), (F1, None), (None, None)],
)
def test_facility_rule_fails_closed_on_missing_facility(actor_facility, resource_facility):
    decision = evaluate(actor(ROLE_DOCTOR, facility_id=actor_facility), res(facility_id=resource_facility))
    assert not decision.allowed
    assert decision.reason == policy.REASON_FACILITY_MISSING


def test_no_role_is_denied_everything():
    nobody = Actor(id=1, role=None, facility_id=F1)
    decision = evaluate(nobody, res(owner=1))
    assert decision == policy.AccessDecision(False, policy.REASON_NO_ROLE)
    assert not is_action_permitted(nobody, policy.PATIENT, "list")


def test_staff_reads_insurance_and_appointments_but_not_clinical_notes():
    st = actor(ROLE_STAFF)
    assert can_access(st, res(policy.INSURANCE_CLAIM))
    assert can_access(st, res(policy.APPOINTMENT))
    assert not can_access(st, res(policy.MEDICAL_RECORD))


def test_notification_recipient_always_reads_own_inbox():
    for role in ALL_ROLES - {ROLE_SUPER_ADMIN, ROLE_ADMIN}:
        me = actor(role, id=3, facility_id=F2)
        assert can_access(me, res(policy.NOTIFICATION, owner=3, facility_id=F1)), role


@pytest.mark.parametrize(
    "admin_role, target_role, expected",
    [
        (ROLE_SUPER_ADMIN, ROLE_SUPER_ADMIN, True),
        (ROLE_SUPER_ADMIN, ROLE_ADMIN, True),
        (ROLE_SUPER_ADMIN, ROLE_PATIENT, True),
        (ROLE_ADMIN, ROLE_SUPER_ADMIN, False),
        (ROLE_ADMIN, ROLE_ADMIN, False),
        (ROLE_ADMIN, ROLE_DOCTOR, True),
        (ROLE_ADMIN, ROLE_NURSE, True),
        (ROLE_ADMIN, ROLE_PROVIDER, True),
        (ROLE_ADMIN, ROLE_PATIENT, True),
        (ROLE_ADMIN, ROLE_STAFF, True),
        (ROLE_DOCTOR, ROLE_PATIENT, False),
        (ROLE_NURSE, ROLE_STAFF, False),
        (ROLE_PATIENT, ROLE_PATIENT, False),
        (None, ROLE_PATIENT, False),
    ],
)
def test_can_manage_user_table(admin_role, target_role, expected):
    assert can_manage_user(admin_role, target_role) is expected


@pytest.mark.parametrize("role", sorted(ALL_ROLES))
@pytest.mark.parametrize("action", ["deactivate", "destroy"])
def test_nobody_deactivates_or_deletes_themselves(role, action):
    me = actor(role, id=11, facility_id=None if role == ROLE_SUPER_ADMIN else F1)
    target = res(policy.USER, id=11, owner=11, facility_id=me.facility_id, target_role=role)

    decision = evaluate(me, target, action)
    assert not decision.allowed
    assert decision.reason == policy.REASON_SELF_ACTION


def test_self_service_update_is_allowed_for_any_role():
    me = actor(ROLE_PATIENT, id=11)
    target = res(policy.USER, id=11, owner=11, target_role=ROLE_PATIENT)
    assert evaluate(me, target, "partial_update").allowed
    assert not evaluate(me, target, "change_role").allowed


def test_admin_manages_users_below_them_in_own_facility_only():
    admin = actor(ROLE_ADMIN, id=1)

    assert evaluate(admin, res(policy.USER, id=2, owner=2, target_role=ROLE_DOCTOR), "deactivate").allowed

    peer = evaluate(admin, res(policy.USER, id=3, owner=3, target_role=ROLE_ADMIN), "deactivate")
    assert not peer.allowed
    assert peer.reason == policy.REASON_ROLE_HIERARCHY

    foreign = evaluate(admin, res(policy.USER, id=4, owner=4, facility_id=F2, target_role=ROLE_DOCTOR), "deactivate")
    assert not foreign.allowed
    assert foreign.reason == policy.REASON_FACILITY_MISMATCH


def test_clinicians_cannot_manage_other_users():
    decision = evaluate(actor(ROLE_DOCTOR, id=1), res(policy.USER, id=2, owner=2, target_role=ROLE_PATIENT), "update")
    assert not decision.allowed


def test_can_manage_provider():
    mine = res(policy.PROVIDER, owner=21, facility_id=F1)

    assert can_manage_provider(actor(ROLE_SUPER_ADMIN, facility_id=None), mine).allowed
    assert can_manage_provider(actor(ROLE_ADMIN), mine).allowed
    assert not can_manage_provider(actor(ROLE_ADMIN, facility_id=F2), mine).allowed
    assert not can_manage_provider(actor(ROLE_ADMIN, facility_id=None), mine).allowed
    assert can_manage_provider(actor(ROLE_DOCTOR, id=21), mine).allowed
    assert not can_manage_provider(actor(ROLE_DOCTOR, id=22), mine).allowed
    assert not can_manage_provider(actor(ROLE_STAFF), mine).allowed
    assert not can_manage_provider(actor(ROLE_PATIENT, id=21), mine).allowed


def test_provider_update_goes_through_management_rule():
    colleague = actor(ROLE_NURSE, id=30)
    profile = res(policy.PROVIDER, owner=31, facility_id=F1)

    # same facility can read, but not edit someone else's profile
    assert evaluate(colleague, profile).allowed
    assert not evaluate(colleague, profile, "partial_update").allowed


def test_can_notify_is_facility_bound():
    recipient = res(policy.USER, id=2, owner=2, facility_id=F1, target_role=ROLE_PATIENT)

    assert can_notify(actor(ROLE_DOCTOR), recipient).allowed
    assert not can_notify(actor(ROLE_DOCTOR, facility_id=F2), recipient).allowed
    assert not can_notify(actor(ROLE_DOCTOR, facility_id=None), recipient).allowed
    assert can_notify(actor(ROLE_SUPER_ADMIN, facility_id=None), recipient).allowed


def test_evaluate_is_deterministic():
    a, r = actor(ROLE_NURSE), res(policy.APPOINTMENT, facility_id=F2)
    assert evaluate(a, r) == evaluate(a, r)


def test_action_roles():
    assert is_action_permitted(actor(ROLE_DOCTOR), policy.MEDICAL_RECORD, "create")
    assert not is_action_permitted(actor(ROLE_PATIENT), policy.MEDICAL_RECORD, "create")
    assert not is_action_permitted(actor(ROLE_DOCTOR), policy.MEDICAL_RECORD, "destroy")
    assert is_action_permitted(actor(ROLE_SUPER_ADMIN), policy.MEDICAL_RECORD, "destroy")
    assert not is_action_permitted(actor(ROLE_ADMIN), policy.PATIENT, "no_such_action")
    assert not is_action_permitted(actor(ROLE_ADMIN), policy.PATIENT, None)


def test_list_scope_mirrors_access_rules():
    assert list_scope(actor(ROLE_SUPER_ADMIN), policy.PATIENT) == ListScope(everything=True)
    assert list_scope(actor(ROLE_DOCTOR), policy.PATIENT) == ListScope(facility_id=F1)
    assert list_scope(actor(ROLE_PATIENT, id=4), policy.PATIENT) == ListScope(owner_user_id=4)
    assert list_scope(actor(ROLE_ADMIN, id=5), policy.USER) == ListScope(facility_id=F1)
    assert list_scope(Actor(id=1, role=None), policy.PATIENT).is_empty
