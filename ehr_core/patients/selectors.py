# ehr_core/patients/selectors.py
from __future__ import annotations

from django.db.models import Q, QuerySet

from ehr_core.patients.models import Patient


def search_patients(qs: QuerySet[Patient], q: str | None = None) -> QuerySet[Patient]:
    qv = (q or "").strip()
    if qv:
        qs = qs.filter(
            Q(full_name__icontains=qv)
            | Q(mrn__icontains=qv)
            | Q(phone__icontains=qv)
            | Q(email__icontains=qv)
        )

    return qs.order_by("-created_at")
