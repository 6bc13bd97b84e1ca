# ehr_core/providers/selectors.py
from __future__ import annotations

from django.db.models import Q, QuerySet

from ehr_core.providers.models import Provider


def search_providers(
    qs: QuerySet[Provider],
    *,
    q: str | None = None,
    specialization: str | None = None,
    accepting: bool | None = None,
) -> QuerySet[Provider]:
    qv = (q or "").strip()
    if qv:
        qs = qs.filter(Q(full_name__icontains=qv) | Q(specialization__icontains=qv) | Q(provider_number__iexact=qv))
    if specialization:
        qs = qs.filter(specialization__iexact=specialization)
    if accepting is not None:
        qs = qs.filter(is_accepting_patients=accepting)
    return qs.order_by("full_name")
