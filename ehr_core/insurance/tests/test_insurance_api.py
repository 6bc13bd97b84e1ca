from datetime import date

import pytest

from ehr_core.audit.models import AuditEvent
from ehr_core.iam.roles import ROLE_STAFF
from ehr_core.insurance.models import ClaimStatus, InsuranceClaim, InsurancePolicy
from ehr_core.notifications.models import Notification
from ehr_core.patients.models import Patient

pytestmark = pytest.mark.django_db

POLICIES = "/api/v1/insurance/policies/"
CLAIMS = "/api/v1/insurance/claims/"


@pytest.fixture
def policy(patient):
    return InsurancePolicy.objects.create(
        patient=patient,
        policy_number="POL-100",
        payer_name="Acme Health",
        coverage_start=date(2024, 1, 1),
        coverage_end=date(2030, 12, 31),
    )


def test_staff_adds_policy_for_patient(staff, patient, client_for, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        r = client_for(staff).post(
            POLICIES,
            {
                "patient_id": str(patient.id),
                "policy_number": "POL-1",
                "payer_name": "Acme Health",
                "coverage_start": "2025-01-01",
            },
            format="json",
        )
    assert r.status_code == 201, r.data
    ev = AuditEvent.objects.get(action="INSURANCE_POLICY_CREATED")
    assert ev.details["policy_number"] == "POL-1"
    assert ev.facility_id == patient.facility_id


def test_duplicate_policy_number_is_a_conflict(staff, patient, policy, client_for):
    r = client_for(staff).post(
        POLICIES,
        {"patient_id": str(patient.id), "policy_number": "POL-100", "payer_name": "X", "coverage_start": "2025-01-01"},
        format="json",
    )
    assert r.status_code == 409, r.data


def test_coverage_window_is_validated(staff, patient, client_for):
    r = client_for(staff).post(
        POLICIES,
        {
            "patient_id": str(patient.id),
            "policy_number": "POL-2",
            "payer_name": "X",
            "coverage_start": "2025-06-01",
            "coverage_end": "2025-01-01",
        },
        format="json",
    )
    assert r.status_code == 400, r.data


def test_patient_reads_own_policies_only(patient_user, policy, facility, client_for):
    other = Patient.objects.create(facility=facility, full_name="Other", mrn="O-9")
    InsurancePolicy.objects.create(patient=other, policy_number="POL-OTHER", payer_name="X", coverage_start=date(2024, 1, 1))
    c = client_for(patient_user)

    r = c.get(POLICIES)
    assert [p["policy_number"] for p in r.data["data"]] == ["POL-100"]

    other_policy = InsurancePolicy.objects.get(policy_number="POL-OTHER")
    assert c.get(f"{POLICIES}{other_policy.id}/").status_code == 403
    assert c.patch(f"{POLICIES}{policy.id}/", {"is_active": False}, format="json").status_code == 403


def test_claim_lifecycle(staff, policy, patient_user, client_for, django_capture_on_commit_callbacks):
    c = client_for(staff)

    r = c.post(
        CLAIMS,
        {"policy_id": str(policy.id), "claim_number": "CLM-1", "amount": "125.50", "service_date": "2025-03-10"},
        format="json",
    )
    assert r.status_code == 201, r.data
    claim_id = r.data["data"]["id"]
    assert r.data["data"]["status"] == ClaimStatus.SUBMITTED

    r = c.patch(f"{CLAIMS}{claim_id}/", {"amount": "130.00"}, format="json")
    assert r.status_code == 200, r.data
    assert r.data["data"]["amount"] == "130.00"

    # cannot jump straight to PAID
    r = c.post(f"{CLAIMS}{claim_id}/status/", {"status": "PAID"}, format="json")
    assert r.status_code == 400, r.data

    for status in ("IN_REVIEW", "APPROVED", "PAID"):
        with django_capture_on_commit_callbacks(execute=True):
            r = c.post(f"{CLAIMS}{claim_id}/status/", {"status": status}, format="json")
        assert r.status_code == 200, r.data
        assert r.data["data"]["status"] == status

    assert AuditEvent.objects.filter(action="INSURANCE_CLAIM_STATUS_CHANGED", resource_id=claim_id).count() == 3
    assert Notification.objects.filter(recipient=patient_user).count() == 3

    # settled claims are frozen
    r = c.patch(f"{CLAIMS}{claim_id}/", {"amount": "1.00"}, format="json")
    assert r.status_code == 400, r.data


def test_claim_outside_coverage_is_rejected(staff, policy, client_for):
    r = client_for(staff).post(
        CLAIMS,
        {"policy_id": str(policy.id), "claim_number": "CLM-OLD", "amount": "10", "service_date": "2019-01-01"},
        format="json",
    )
    assert r.status_code == 400, r.data
    assert "service_date" in r.data["details"]


def test_duplicate_claim_number_is_a_conflict(staff, policy, client_for):
    InsuranceClaim.objects.create(policy=policy, claim_number="CLM-D", amount=1, service_date=date(2025, 1, 1))
    r = client_for(staff).post(
        CLAIMS,
        {"policy_id": str(policy.id), "claim_number": "CLM-D", "amount": "5", "service_date": "2025-01-02"},
        format="json",
    )
    assert r.status_code == 409, r.data


def test_patient_cannot_change_claim_status(patient_user, policy, client_for):
    claim = InsuranceClaim.objects.create(policy=policy, claim_number="CLM-P", amount=1, service_date=date(2025, 1, 1))

    c = client_for(patient_user)
    assert c.get(f"{CLAIMS}{claim.id}/").status_code == 200
    assert c.post(f"{CLAIMS}{claim.id}/status/", {"status": "IN_REVIEW"}, format="json").status_code == 403


def test_other_facility_staff_cannot_touch_claims(policy, make_user, other_facility, client_for):
    claim = InsuranceClaim.objects.create(policy=policy, claim_number="CLM-F", amount=1, service_date=date(2025, 1, 1))
    outsider = client_for(make_user(ROLE_STAFF, facility=other_facility))

    assert outsider.get(f"{CLAIMS}{claim.id}/").status_code == 403
    assert outsider.get(CLAIMS).data["data"] == []


def test_deactivate_policy_blocks_new_claims(staff, policy, client_for, django_capture_on_commit_callbacks):
    c = client_for(staff)

    with django_capture_on_commit_callbacks(execute=True):
        r = c.post(f"{POLICIES}{policy.id}/deactivate/", {"reason": "Switched payer"}, format="json")
    assert r.status_code == 200, r.data
    assert r.data["data"]["is_active"] is False
    assert r.data["data"]["deactivation_reason"] == "Switched payer"
    assert r.data["data"]["deactivated_at"]

    ev = AuditEvent.objects.get(action="INSURANCE_POLICY_DEACTIVATED")
    assert ev.details["reason"] == "Switched payer"

    r = c.post(f"{POLICIES}{policy.id}/deactivate/", {}, format="json")
    assert r.status_code == 400, r.data

    r = c.post(
        CLAIMS,
        {"policy_id": str(policy.id), "claim_number": "CLM-9", "amount": "10.00", "service_date": "2025-06-01"},
        format="json",
    )
    assert r.status_code == 400, r.data


def test_reactivating_clears_the_deactivation(staff, policy, client_for):
    c = client_for(staff)
    c.post(f"{POLICIES}{policy.id}/deactivate/", {"reason": "Lapsed"}, format="json")

    r = c.patch(f"{POLICIES}{policy.id}/", {"is_active": True}, format="json")
    assert r.status_code == 200, r.data
    assert r.data["data"]["deactivated_at"] is None
    assert r.data["data"]["deactivation_reason"] == ""


def test_verify_reports_eligibility_and_is_audited(doctor, policy, client_for, django_capture_on_commit_callbacks):
    c = client_for(doctor)

    with django_capture_on_commit_callbacks(execute=True):
        r = c.post(f"{POLICIES}{policy.id}/verify/?service_date=2025-06-01")
    assert r.status_code == 200, r.data
    assert r.data["data"]["is_eligible"] is True
    assert r.data["data"]["errors"] == []

    r = c.post(f"{POLICIES}{policy.id}/verify/?service_date=2031-01-01")
    assert r.data["data"]["is_eligible"] is False
    assert r.data["data"]["errors"] == ["Insurance policy has expired."]

    r = c.post(f"{POLICIES}{policy.id}/verify/?service_date=yesterday")
    assert r.status_code == 400, r.data

    ev = AuditEvent.objects.get(action="INSURANCE_ELIGIBILITY_VERIFIED")
    assert ev.details["service_date"] == "2025-06-01"
    assert ev.details["is_eligible"] is True


def test_patient_cannot_deactivate_or_verify(patient_user, policy, client_for):
    c = client_for(patient_user)
    assert c.post(f"{POLICIES}{policy.id}/deactivate/", {}, format="json").status_code == 403
    assert c.post(f"{POLICIES}{policy.id}/verify/").status_code == 403
