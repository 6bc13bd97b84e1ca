# ehr_core/appointments/selectors.py
from __future__ import annotations

from datetime import datetime, timedelta

from django.db.models import QuerySet

from ehr_core.appointments.models import ACTIVE_STATUSES, Appointment

# longest bookable slot; bounds the overlap window query
MAX_DURATION_MINUTES = 480


def filter_appointments(
    qs: QuerySet[Appointment],
    *,
    status: str | None = None,
    patient_id=None,
    provider_id=None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> QuerySet[Appointment]:
    if status:
        qs = qs.filter(status=status)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if provider_id:
        qs = qs.filter(provider_id=provider_id)
    if date_from:
        qs = qs.filter(scheduled_at__gte=date_from)
    if date_to:
        qs = qs.filter(scheduled_at__lte=date_to)
    return qs.select_related("patient", "provider").order_by("scheduled_at")


def provider_has_overlap(*, provider_id, start: datetime, duration_minutes: int, exclude_id=None) -> bool:
    end = start + timedelta(minutes=duration_minutes)
    candidates = Appointment.objects.filter(
        provider_id=provider_id,
        status__in=ACTIVE_STATUSES,
        scheduled_at__lt=end,
        scheduled_at__gt=start - timedelta(minutes=MAX_DURATION_MINUTES),
    )
    if exclude_id:
        candidates = candidates.exclude(pk=exclude_id)
    return any(a.scheduled_at < end and a.ends_at > start for a in candidates)
