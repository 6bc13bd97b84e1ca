# ehr_core/insurance/models.py
import uuid

from django.db import models

from ehr_core.common.models import TimeStampedModel


class ClaimStatus(models.TextChoices):
    SUBMITTED = "SUBMITTED", "Submitted"
    IN_REVIEW = "IN_REVIEW", "In review"
    APPROVED = "APPROVED", "Approved"
    DENIED = "DENIED", "Denied"
    PAID = "PAID", "Paid"


# allowed forward moves; DENIED and PAID are terminal
CLAIM_TRANSITIONS = {
    ClaimStatus.SUBMITTED: {ClaimStatus.IN_REVIEW, ClaimStatus.DENIED},
    ClaimStatus.IN_REVIEW: {ClaimStatus.APPROVED, ClaimStatus.DENIED},
    ClaimStatus.APPROVED: {ClaimStatus.PAID},
    ClaimStatus.DENIED: set(),
    ClaimStatus.PAID: set(),
}


class InsurancePolicy(TimeStampedModel):
    """Coverage held by a patient. Facility and owner come from the patient."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    patient = models.ForeignKey(
        "patients.Patient",
        on_delete=models.PROTECT,
        related_name="insurance_policies",
    )
    policy_number = models.CharField(max_length=64, unique=True)
    payer_name = models.CharField(max_length=255)
    plan_name = models.CharField(max_length=255, blank=True, default="")
    coverage_start = models.DateField()
    coverage_end = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    deactivated_at = models.DateTimeField(null=True, blank=True)
    deactivation_reason = models.CharField(max_length=500, blank=True, default="")

    class Meta:
        db_table = "insurance_policy"
        indexes = [
            models.Index(fields=["patient", "is_active"]),
        ]

    def __str__(self) -> str:
        return f"{self.payer_name} {self.policy_number}"

    def covers(self, day) -> bool:
        if not self.is_active or day < self.coverage_start:
            return False
        return self.coverage_end is None or day <= self.coverage_end


class InsuranceClaim(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    policy = models.ForeignKey(
        InsurancePolicy,
        on_delete=models.PROTECT,
        related_name="claims",
    )
    claim_number = models.CharField(max_length=64, unique=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=16, choices=ClaimStatus.choices, default=ClaimStatus.SUBMITTED)
    service_date = models.DateField()
    description = models.TextField(blank=True, default="")
    status_changed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "insurance_claim"
        indexes = [
            models.Index(fields=["policy", "status"]),
        ]

    def __str__(self) -> str:
        return f"{self.claim_number} ({self.status})"

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in CLAIM_TRANSITIONS.get(self.status, set())
