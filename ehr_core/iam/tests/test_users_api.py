import pytest
from django.contrib.auth import get_user_model

from ehr_core.audit.models import AuditEvent
from ehr_core.iam.models import UserProfile, UserStatus
from ehr_core.iam.roles import ROLE_ADMIN, ROLE_DOCTOR, ROLE_NURSE

pytestmark = pytest.mark.django_db

USERS = "/api/v1/users/"


def test_admin_lists_own_facility_without_platform_admins(
    admin_user, doctor, nurse, super_admin, other_admin, client_for
):
    r = client_for(admin_user).get(USERS)
    assert r.status_code == 200, r.data

    usernames = {u["username"] for u in r.data["data"]}
    assert usernames == {"admin", "dr_house", "nurse_joy"}
    assert r.data["pagination"]["total"] == 3


def test_super_admin_lists_everyone(super_admin, admin_user, other_admin, client_for):
    r = client_for(super_admin).get(USERS, {"role": ROLE_ADMIN})
    assert r.status_code == 200, r.data
    assert {u["username"] for u in r.data["data"]} == {"admin", "other_admin"}


def test_non_admin_cannot_list_users(doctor, client_for):
    assert client_for(doctor).get(USERS).status_code == 403


def test_admin_creates_doctor_in_own_facility(admin_user, facility, client_for, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        r = client_for(admin_user).post(
            USERS,
            {"username": "dr_wilson", "password": "S3cure-Passw0rd!", "role": ROLE_DOCTOR, "email": "wilson@example.com"},
            format="json",
        )
    assert r.status_code == 201, r.data
    assert r.data["data"]["role"] == ROLE_DOCTOR
    assert r.data["data"]["facility_id"] == str(facility.id)
    assert "password" not in r.data["data"]

    ev = AuditEvent.objects.get(action="USER_CREATED")
    assert ev.details["username"] == "dr_wilson"
    assert "password" not in ev.details


def test_admin_cannot_create_admin(admin_user, client_for):
    r = client_for(admin_user).post(
        USERS,
        {"username": "admin2", "password": "S3cure-Passw0rd!", "role": ROLE_ADMIN},
        format="json",
    )
    assert r.status_code == 403, r.data
    assert not get_user_model().objects.filter(username="admin2").exists()


def test_duplicate_username_is_a_conflict(admin_user, doctor, client_for):
    r = client_for(admin_user).post(
        USERS,
        {"username": "DR_HOUSE", "password": "S3cure-Passw0rd!", "role": ROLE_NURSE},
        format="json",
    )
    assert r.status_code == 409, r.data


def test_nobody_deactivates_or_deletes_themselves(admin_user, super_admin, doctor, client_for):
    r = client_for(admin_user).post(f"{USERS}{admin_user.id}/deactivate/")
    assert r.status_code == 403, r.data
    assert r.data["message"] == "You cannot perform this action on your own account."

    assert client_for(super_admin).delete(f"{USERS}{super_admin.id}/").status_code == 403
    assert client_for(doctor).delete(f"{USERS}{doctor.id}/").status_code == 403


def test_deactivate_then_activate(admin_user, doctor, client_for):
    c = client_for(admin_user)

    r = c.post(f"{USERS}{doctor.id}/deactivate/")
    assert r.status_code == 200, r.data
    assert r.data["data"]["status"] == UserStatus.INACTIVE
    doctor.refresh_from_db()
    assert doctor.is_active is False

    r = c.post(f"{USERS}{doctor.id}/activate/")
    assert r.status_code == 200, r.data
    assert r.data["data"]["status"] == UserStatus.ACTIVE
    doctor.refresh_from_db()
    assert doctor.is_active is True


def test_admin_cannot_manage_other_facility(admin_user, make_user, other_facility, client_for):
    outsider = make_user(ROLE_DOCTOR, facility=other_facility)
    c = client_for(admin_user)

    assert c.get(f"{USERS}{outsider.id}/").status_code == 403
    assert c.post(f"{USERS}{outsider.id}/deactivate/").status_code == 403


def test_admin_cannot_promote_to_admin(admin_user, doctor, client_for):
    r = client_for(admin_user).post(f"{USERS}{doctor.id}/change-role/", {"role": ROLE_ADMIN}, format="json")
    assert r.status_code == 403, r.data
    assert UserProfile.objects.get(user=doctor).role == ROLE_DOCTOR


def test_admin_changes_doctor_to_nurse(admin_user, doctor, client_for):
    r = client_for(admin_user).post(f"{USERS}{doctor.id}/change-role/", {"role": ROLE_NURSE}, format="json")
    assert r.status_code == 200, r.data
    assert r.data["data"]["role"] == ROLE_NURSE


def test_admin_cannot_manage_peer_admin(admin_user, make_user, client_for):
    peer = make_user(ROLE_ADMIN)
    assert client_for(admin_user).post(f"{USERS}{peer.id}/deactivate/").status_code == 403


def test_users_edit_their_own_profile(doctor, nurse, client_for):
    c = client_for(doctor)

    r = c.patch(f"{USERS}{doctor.id}/", {"first_name": "Gregory", "phone": "+15551234567"}, format="json")
    assert r.status_code == 200, r.data
    assert r.data["data"]["first_name"] == "Gregory"
    assert r.data["data"]["phone"] == "+15551234567"

    assert c.patch(f"{USERS}{nurse.id}/", {"first_name": "X"}, format="json").status_code == 403


def test_soft_delete_keeps_the_account(admin_user, doctor, client_for):
    c = client_for(admin_user)

    r = c.delete(f"{USERS}{doctor.id}/")
    assert r.status_code == 200, r.data

    profile = UserProfile.objects.get(user=doctor)
    assert profile.deleted_at is not None
    assert get_user_model().objects.filter(pk=doctor.pk, is_active=False).exists()

    # gone from listings and cannot come back
    assert "dr_house" not in {u["username"] for u in c.get(USERS).data["data"]}
    assert c.post(f"{USERS}{doctor.id}/activate/").status_code == 400
