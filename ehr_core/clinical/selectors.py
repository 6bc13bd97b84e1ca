# ehr_core/clinical/selectors.py
from __future__ import annotations

from django.db.models import QuerySet

from ehr_core.clinical.models import MedicalRecord


def filter_records(
    qs: QuerySet[MedicalRecord],
    *,
    patient_id=None,
    record_type: str | None = None,
) -> QuerySet[MedicalRecord]:
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if record_type:
        qs = qs.filter(record_type=record_type)
    return qs.select_related("patient").order_by("-created_at")
