# ehr_core/insurance/selectors.py
from __future__ import annotations

from django.db.models import Q, QuerySet

from ehr_core.insurance.models import InsuranceClaim, InsurancePolicy


def filter_policies(
    qs: QuerySet[InsurancePolicy],
    *,
    patient_id=None,
    is_active: bool | None = None,
    q: str | None = None,
) -> QuerySet[InsurancePolicy]:
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if is_active is not None:
        qs = qs.filter(is_active=is_active)
    qv = (q or "").strip()
    if qv:
        qs = qs.filter(Q(policy_number__icontains=qv) | Q(payer_name__icontains=qv))
    return qs.select_related("patient").order_by("-created_at")


def filter_claims(
    qs: QuerySet[InsuranceClaim],
    *,
    policy_id=None,
    patient_id=None,
    status: str | None = None,
) -> QuerySet[InsuranceClaim]:
    if policy_id:
        qs = qs.filter(policy_id=policy_id)
    if patient_id:
        qs = qs.filter(policy__patient_id=patient_id)
    if status:
        qs = qs.filter(status=status)
    return qs.select_related("policy__patient").order_by("-created_at")
