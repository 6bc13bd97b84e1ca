import pytest

from ehr_core.audit.models import AuditEvent
from ehr_core.clinical.models import MedicalRecord
from ehr_core.iam.roles import ROLE_DOCTOR
from ehr_core.patients.models import Patient

pytestmark = pytest.mark.django_db

BASE = "/api/v1/patients/"


def test_staff_registers_patient_in_own_facility(staff, facility, client_for):
    r = client_for(staff).post(BASE, {"full_name": "Ann Lee", "mrn": "A-1", "gender": "FEMALE"}, format="json")
    assert r.status_code == 201, r.data
    assert r.data["data"]["facility_id"] == str(facility.id)


def test_create_in_foreign_facility_is_forbidden(admin_user, other_facility, client_for):
    r = client_for(admin_user).post(
        BASE, {"full_name": "X", "mrn": "X-1", "facility_id": str(other_facility.id)}, format="json"
    )
    assert r.status_code == 403, r.data
    assert not Patient.objects.exists()


def test_super_admin_must_pick_a_facility(super_admin, other_facility, client_for):
    c = client_for(super_admin)

    r = c.post(BASE, {"full_name": "X", "mrn": "X-1"}, format="json")
    assert r.status_code == 400, r.data
    assert "facility_id" in r.data["details"]

    r = c.post(BASE, {"full_name": "X", "mrn": "X-1", "facility_id": str(other_facility.id)}, format="json")
    assert r.status_code == 201, r.data


def test_duplicate_mrn_in_facility_is_a_conflict(admin_user, facility, other_facility, client_for):
    Patient.objects.create(facility=facility, full_name="A", mrn="DUP-1")
    Patient.objects.create(facility=other_facility, full_name="B", mrn="DUP-2")
    c = client_for(admin_user)

    r = c.post(BASE, {"full_name": "C", "mrn": "DUP-1"}, format="json")
    assert r.status_code == 409, r.data
    assert r.data["error"] == "conflict"
    assert r.data["message"] == "MRN already exists for this facility."

    # same MRN elsewhere is fine
    r = c.post(BASE, {"full_name": "C", "mrn": "DUP-2"}, format="json")
    assert r.status_code == 201, r.data


def test_linked_user_must_be_a_patient(admin_user, doctor, client_for):
    r = client_for(admin_user).post(BASE, {"full_name": "X", "mrn": "L-1", "user_id": doctor.id}, format="json")
    assert r.status_code == 400, r.data
    assert "user_id" in r.data["details"]


def test_list_is_scoped_and_searchable(doctor, patient, other_facility, client_for):
    Patient.objects.create(facility=patient.facility, full_name="Zed Alpha", mrn="Z-1")
    Patient.objects.create(facility=other_facility, full_name="Zed Beta", mrn="Z-2")

    r = client_for(doctor).get(BASE, {"q": "zed"})
    assert r.status_code == 200, r.data
    assert [p["full_name"] for p in r.data["data"]] == ["Zed Alpha"]
    assert r.data["pagination"] == {"page": 1, "limit": 20, "total": 1, "totalPages": 1}


def test_patient_sees_only_self(patient, patient_user, client_for):
    Patient.objects.create(facility=patient.facility, full_name="Neighbour", mrn="N-1")
    c = client_for(patient_user)

    r = c.get(BASE)
    assert [p["id"] for p in r.data["data"]] == [str(patient.id)]

    assert c.patch(f"{BASE}{patient.id}/", {"phone": "1"}, format="json").status_code == 403


def test_delete_with_records_is_a_conflict(admin_user, doctor, patient, client_for):
    MedicalRecord.objects.create(patient=patient, author=doctor, record_number="MR-D1", record_type="NOTE", title="t")

    r = client_for(admin_user).delete(f"{BASE}{patient.id}/")
    assert r.status_code == 409, r.data
    assert Patient.objects.filter(pk=patient.pk).exists()


def test_only_admins_delete(make_user, patient, client_for):
    r = client_for(make_user(ROLE_DOCTOR)).delete(f"{BASE}{patient.id}/")
    assert r.status_code == 403


def test_chart_reads_are_audited(doctor, patient, client_for, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        r = client_for(doctor).get(f"{BASE}{patient.id}/")
    assert r.status_code == 200, r.data

    ev = AuditEvent.objects.get(action="PATIENT_VIEWED")
    assert ev.actor_id == doctor.id
    assert ev.resource_id == str(patient.id)
    assert ev.details == {"mrn": patient.mrn}
    assert ev.facility_id == patient.facility_id
