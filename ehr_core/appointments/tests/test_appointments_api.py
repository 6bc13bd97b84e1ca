from datetime import timedelta

import pytest
from django.utils import timezone

from ehr_core.appointments.models import Appointment, AppointmentStatus
from ehr_core.audit.models import AuditEvent
from ehr_core.iam.roles import ROLE_DOCTOR, ROLE_PATIENT
from ehr_core.notifications.models import Notification
from ehr_core.patients.models import Patient
from ehr_core.providers.models import Provider

pytestmark = pytest.mark.django_db

BASE = "/api/v1/appointments/"


def _at(hours):
    return (timezone.now() + timedelta(hours=hours)).replace(microsecond=0)


def _book(client, patient, provider, start, minutes=30):
    return client.post(
        BASE,
        {
            "patient_id": str(patient.id),
            "provider_id": str(provider.id),
            "scheduled_at": start.isoformat(),
            "duration_minutes": minutes,
            "reason": "Follow-up",
        },
        format="json",
    )


def test_booking_notifies_patient_and_provider(
    staff, patient, provider, patient_user, doctor, client_for, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=True):
        r = _book(client_for(staff), patient, provider, _at(24))

    assert r.status_code == 201, r.data
    assert r.data["data"]["status"] == AppointmentStatus.SCHEDULED
    assert set(Notification.objects.values_list("recipient_id", flat=True)) == {patient_user.id, doctor.id}
    assert AuditEvent.objects.filter(action="APPOINTMENT_CREATED", resource_id=r.data["data"]["id"]).count() == 1


def test_patient_books_own_appointment_only(patient, provider, patient_user, make_user, client_for):
    assert _book(client_for(patient_user), patient, provider, _at(24)).status_code == 201

    other = Patient.objects.create(facility=patient.facility, full_name="Other", mrn="O-1")
    r = _book(client_for(patient_user), other, provider, _at(30))
    assert r.status_code == 403, r.data


def test_overlapping_booking_is_a_conflict(staff, patient, provider, client_for):
    c = client_for(staff)
    assert _book(c, patient, provider, _at(24), minutes=60).status_code == 201

    r = _book(c, patient, provider, _at(24) + timedelta(minutes=30))
    assert r.status_code == 409, r.data

    # back-to-back is fine
    r = _book(c, patient, provider, _at(25))
    assert r.status_code == 201, r.data


def test_past_and_cross_facility_bookings_are_rejected(staff, patient, make_user, other_facility, client_for):
    c = client_for(staff)
    local = Provider.objects.create(
        facility=patient.facility, full_name="Dr Local", provider_number="PRV-L", license_number="LIC-L"
    )
    r = _book(c, patient, local, _at(-1))
    assert r.status_code == 400, r.data
    assert "scheduled_at" in r.data["details"]

    foreign = Provider.objects.create(
        facility=other_facility, full_name="Dr Far", provider_number="PRV-F", license_number="LIC-F"
    )
    r = _book(c, patient, foreign, _at(24))
    assert r.status_code == 403, r.data


def test_provider_not_accepting_patients(staff, patient, provider, client_for):
    provider.is_accepting_patients = False
    provider.save()
    r = _book(client_for(staff), patient, provider, _at(24))
    assert r.status_code == 400, r.data


def test_reschedule_and_cancel(staff, patient, provider, patient_user, client_for, django_capture_on_commit_callbacks):
    c = client_for(staff)
    appt_id = _book(c, patient, provider, _at(24)).data["data"]["id"]

    r = c.patch(f"{BASE}{appt_id}/", {"scheduled_at": _at(48).isoformat(), "status": "CONFIRMED"}, format="json")
    assert r.status_code == 200, r.data
    assert r.data["data"]["status"] == "CONFIRMED"

    r = c.patch(f"{BASE}{appt_id}/", {"status": "CANCELLED"}, format="json")
    assert r.status_code == 400, r.data

    with django_capture_on_commit_callbacks(execute=True):
        r = client_for(patient_user).post(f"{BASE}{appt_id}/cancel/", {"reason": "Feeling better"}, format="json")
    assert r.status_code == 200, r.data
    assert r.data["data"]["status"] == "CANCELLED"
    assert r.data["data"]["cancellation_reason"] == "Feeling better"
    assert AuditEvent.objects.filter(action="APPOINTMENT_CANCELLED", actor=patient_user).count() == 1

    r = c.post(f"{BASE}{appt_id}/cancel/", {}, format="json")
    assert r.status_code == 400, r.data

    r = c.patch(f"{BASE}{appt_id}/", {"reason": "x"}, format="json")
    assert r.status_code == 400, r.data


def test_reschedule_into_the_past_is_rejected(staff, patient, provider, client_for):
    c = client_for(staff)
    appt_id = _book(c, patient, provider, _at(24)).data["data"]["id"]

    r = c.patch(f"{BASE}{appt_id}/", {"scheduled_at": _at(-2).isoformat()}, format="json")
    assert r.status_code == 400, r.data
    assert not AuditEvent.objects.filter(action="APPOINTMENT_UPDATED").exists()


def test_reschedule_onto_a_booked_slot_is_a_conflict(staff, patient, provider, client_for):
    c = client_for(staff)
    assert _book(c, patient, provider, _at(24)).status_code == 201
    appt_id = _book(c, patient, provider, _at(30)).data["data"]["id"]

    r = c.patch(f"{BASE}{appt_id}/", {"scheduled_at": (_at(24) + timedelta(minutes=15)).isoformat()}, format="json")
    assert r.status_code == 409, r.data


def test_cancelled_slot_can_be_rebooked(staff, patient, provider, client_for):
    c = client_for(staff)
    start = _at(24)
    appt_id = _book(c, patient, provider, start).data["data"]["id"]
    c.post(f"{BASE}{appt_id}/cancel/", {}, format="json")

    assert _book(c, patient, provider, start).status_code == 201


def test_list_filters_and_scoping(staff, patient, provider, patient_user, make_user, other_facility, client_for):
    c = client_for(staff)
    _book(c, patient, provider, _at(24))
    _book(c, patient, provider, _at(72))

    r = c.get(BASE, {"date_to": _at(48).isoformat()})
    assert r.status_code == 200, r.data
    assert len(r.data["data"]) == 1

    r = c.get(BASE, {"date_from": "yesterday"})
    assert r.status_code == 400

    assert len(client_for(patient_user).get(BASE).data["data"]) == 2
    assert client_for(make_user(ROLE_PATIENT)).get(BASE).data["data"] == []
    assert client_for(make_user(ROLE_DOCTOR, facility=other_facility)).get(BASE).data["data"] == []
    assert Appointment.objects.count() == 2
