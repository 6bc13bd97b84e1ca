# ehr_core/conftest.py
import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from ehr_core.facilities.models import Facility
from ehr_core.iam.models import UserProfile, UserStatus
from ehr_core.iam.roles import (
    ROLE_ADMIN,
    ROLE_DOCTOR,
    ROLE_NURSE,
    ROLE_PATIENT,
    ROLE_STAFF,
    ROLE_SUPER_ADMIN,
)
from ehr_core.notifications.channels import LocmemSmsBackend
from ehr_core.patients.models import Patient
from ehr_core.providers.models import Provider

_MAIN = object()


@pytest.fixture(autouse=True)
def _clear_sms_outbox():
    LocmemSmsBackend.outbox.clear()
    yield
    LocmemSmsBackend.outbox.clear()


@pytest.fixture
def facility(db):
    return Facility.objects.create(code="main", name="Main Facility")


@pytest.fixture
def other_facility(db):
    return Facility.objects.create(code="other", name="Other Facility")


@pytest.fixture
def make_user(db, facility):
    """
    make_user(role, facility=..., **profile) -> auth user with an EHR profile.
    Pass facility=None for a user without a facility.
    """
    User = get_user_model()
    main_facility = facility
    counter = {"n": 0}

    def _make(role, *, facility=_MAIN, username=None, email="", phone="", status=UserStatus.ACTIVE):
        counter["n"] += 1
        username = username or f"{role.lower()}{counter['n']}"
        user = User.objects.create_user(
            username=username,
            password="Pass@12345",
            email=email,
            is_active=status == UserStatus.ACTIVE,
        )
        UserProfile.objects.create(
            user=user,
            role=role,
            facility=None if role == ROLE_SUPER_ADMIN else (main_facility if facility is _MAIN else facility),
            phone=phone,
            status=status,
        )
        return User.objects.select_related("ehr_profile").get(pk=user.pk)

    return _make


@pytest.fixture
def super_admin(make_user):
    return make_user(ROLE_SUPER_ADMIN, username="root")


@pytest.fixture
def admin_user(make_user):
    return make_user(ROLE_ADMIN, username="admin")


@pytest.fixture
def doctor(make_user):
    return make_user(ROLE_DOCTOR, username="dr_house", email="house@example.com")


@pytest.fixture
def nurse(make_user):
    return make_user(ROLE_NURSE, username="nurse_joy")


@pytest.fixture
def staff(make_user):
    return make_user(ROLE_STAFF, username="frontdesk")


@pytest.fixture
def patient_user(make_user):
    return make_user(ROLE_PATIENT, username="pat", email="pat@example.com", phone="+15550001111")


@pytest.fixture
def other_admin(make_user, other_facility):
    return make_user(ROLE_ADMIN, username="other_admin", facility=other_facility)


@pytest.fixture
def client_for():
    def _client(user):
        c = APIClient()
        c.force_authenticate(user=user)
        return c

    return _client


@pytest.fixture
def patient(facility, patient_user):
    return Patient.objects.create(
        facility=facility,
        user=patient_user,
        full_name="Test Patient",
        mrn="MRN-TEST-001",
    )


@pytest.fixture
def provider(facility, doctor):
    return Provider.objects.create(
        facility=facility,
        user=doctor,
        full_name="Dr Gregory House",
        provider_number="PRV-0001",
        license_number="LIC-0001",
    )
