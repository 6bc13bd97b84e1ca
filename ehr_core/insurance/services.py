# ehr_core/insurance/services.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from ehr_core.access.policy import INSURANCE_CLAIM, INSURANCE_POLICY
from ehr_core.audit.hooks import audited, entry_for
from ehr_core.audit.recorder import recorder
from ehr_core.common.api.exceptions import ConflictError
from ehr_core.common.context import RequestContext
from ehr_core.insurance.models import ClaimStatus, InsuranceClaim, InsurancePolicy
from ehr_core.notifications.dispatcher import NotificationPayload
from ehr_core.notifications.models import NotificationType
from ehr_core.notifications.services import notify_on_commit
from ehr_core.patients.models import Patient

POLICY_CONFLICT = "A policy with this policy number already exists."
CLAIM_CONFLICT = "A claim with this claim number already exists."

POLICY_UPDATABLE_FIELDS = {"payer_name", "plan_name", "coverage_start", "coverage_end", "is_active"}
CLAIM_UPDATABLE_FIELDS = {"amount", "service_date", "description"}


def _policy_details(p: InsurancePolicy) -> dict:
    return {"policy_number": p.policy_number, "payer_name": p.payer_name, "patient_mrn": p.patient.mrn}


def _deactivation_details(p: InsurancePolicy) -> dict:
    return {**_policy_details(p), "reason": p.deactivation_reason}


def _claim_details(c: InsuranceClaim) -> dict:
    return {
        "claim_number": c.claim_number,
        "policy_number": c.policy.policy_number,
        "amount": str(c.amount),
        "status": c.status,
    }


@dataclass(frozen=True)
class Eligibility:
    policy_id: UUID
    service_date: date
    is_eligible: bool
    coverage_start: date
    coverage_end: date | None
    errors: list[str] = field(default_factory=list)


def _check_coverage_window(start, end) -> None:
    if end is not None and end < start:
        raise ValidationError({"coverage_end": ["Coverage end must not be before coverage start."]})


class InsurancePolicyService:
    @staticmethod
    @transaction.atomic
    @audited("INSURANCE_POLICY_CREATED", INSURANCE_POLICY, details=_policy_details)
    def create_policy(
        *,
        ctx: RequestContext,
        patient: Patient,
        policy_number: str,
        payer_name: str,
        coverage_start,
        plan_name: str = "",
        coverage_end=None,
        is_active: bool = True,
    ) -> InsurancePolicy:
        """`patient` must already have passed the guard."""
        _check_coverage_window(coverage_start, coverage_end)
        try:
            with transaction.atomic():
                return InsurancePolicy.objects.create(
                    patient=patient,
                    policy_number=policy_number,
                    payer_name=payer_name,
                    plan_name=plan_name or "",
                    coverage_start=coverage_start,
                    coverage_end=coverage_end,
                    is_active=is_active,
                )
        except IntegrityError:
            raise ConflictError(POLICY_CONFLICT)

    @staticmethod
    @transaction.atomic
    @audited("INSURANCE_POLICY_UPDATED", INSURANCE_POLICY, details=_policy_details)
    def update_policy(*, ctx: RequestContext, policy: InsurancePolicy, data: dict) -> InsurancePolicy:
        updates = {k: v for k, v in (data or {}).items() if k in POLICY_UPDATABLE_FIELDS}
        _check_coverage_window(
            updates.get("coverage_start", policy.coverage_start),
            updates.get("coverage_end", policy.coverage_end),
        )
        if updates.get("is_active") and not policy.is_active:
            policy.deactivated_at = None
            policy.deactivation_reason = ""
        for k, v in updates.items():
            setattr(policy, k, v)
        policy.save()
        return policy

    @staticmethod
    @transaction.atomic
    @audited("INSURANCE_POLICY_DEACTIVATED", INSURANCE_POLICY, details=_deactivation_details)
    def deactivate_policy(*, ctx: RequestContext, policy: InsurancePolicy, reason: str = "") -> InsurancePolicy:
        if not policy.is_active:
            raise ValidationError({"is_active": ["Policy is already inactive."]})

        policy.is_active = False
        policy.deactivated_at = timezone.now()
        policy.deactivation_reason = reason or ""
        policy.save(update_fields=["is_active", "deactivated_at", "deactivation_reason", "updated_at"])
        return policy

    @staticmethod
    def verify_eligibility(*, ctx: RequestContext, policy: InsurancePolicy, service_date=None) -> Eligibility:
        day = service_date or timezone.localdate()
        errors = []
        if not policy.is_active:
            errors.append("Insurance policy is not active.")
        if day < policy.coverage_start:
            errors.append("Coverage has not started on the service date.")
        if policy.coverage_end is not None and day > policy.coverage_end:
            errors.append("Insurance policy has expired.")

        result = Eligibility(
            policy_id=policy.pk,
            service_date=day,
            is_eligible=not errors,
            coverage_start=policy.coverage_start,
            coverage_end=policy.coverage_end,
            errors=errors,
        )
        recorder.record(
            ctx,
            entry_for(
                "INSURANCE_ELIGIBILITY_VERIFIED",
                INSURANCE_POLICY,
                policy,
                lambda p: {**_policy_details(p), "service_date": day.isoformat(), "is_eligible": result.is_eligible},
            ),
        )
        return result


class InsuranceClaimService:
    @staticmethod
    @transaction.atomic
    @audited("INSURANCE_CLAIM_CREATED", INSURANCE_CLAIM, details=_claim_details)
    def create_claim(
        *,
        ctx: RequestContext,
        policy: InsurancePolicy,
        claim_number: str,
        amount: Decimal,
        service_date,
        description: str = "",
    ) -> InsuranceClaim:
        """`policy` must already have passed the guard."""
        if not policy.covers(service_date):
            raise ValidationError({"service_date": ["Service date is outside the policy coverage."]})
        try:
            with transaction.atomic():
                return InsuranceClaim.objects.create(
                    policy=policy,
                    claim_number=claim_number,
                    amount=amount,
                    service_date=service_date,
                    description=description or "",
                )
        except IntegrityError:
            raise ConflictError(CLAIM_CONFLICT)

    @staticmethod
    @transaction.atomic
    @audited("INSURANCE_CLAIM_UPDATED", INSURANCE_CLAIM, details=_claim_details)
    def update_claim(*, ctx: RequestContext, claim: InsuranceClaim, data: dict) -> InsuranceClaim:
        updates = {k: v for k, v in (data or {}).items() if k in CLAIM_UPDATABLE_FIELDS}
        if claim.status != ClaimStatus.SUBMITTED:
            raise ValidationError({"status": ["Only submitted claims can be edited."]})
        if "service_date" in updates and not claim.policy.covers(updates["service_date"]):
            raise ValidationError({"service_date": ["Service date is outside the policy coverage."]})

        for k, v in updates.items():
            setattr(claim, k, v)
        claim.save()
        return claim

    @staticmethod
    @transaction.atomic
    @audited("INSURANCE_CLAIM_STATUS_CHANGED", INSURANCE_CLAIM, details=_claim_details)
    def set_status(*, ctx: RequestContext, claim: InsuranceClaim, status: str) -> InsuranceClaim:
        if not claim.can_transition_to(status):
            raise ValidationError({"status": [f"Cannot move a claim from {claim.status} to {status}."]})

        claim.status = status
        claim.status_changed_at = timezone.now()
        claim.save(update_fields=["status", "status_changed_at", "updated_at"])

        notify_on_commit(
            ctx,
            [claim.policy.patient.user],
            NotificationPayload(
                type=NotificationType.SYSTEM,
                title="Insurance claim update",
                message=f"Claim {claim.claim_number} is now {claim.get_status_display().lower()}.",
            ),
        )
        return claim
