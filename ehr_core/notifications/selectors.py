# ehr_core/notifications/selectors.py
from __future__ import annotations

from datetime import timedelta

from django.db.models import Q, QuerySet
from django.utils import timezone

from ehr_core.notifications.models import Notification


def inbox(*, recipient_id: int) -> QuerySet[Notification]:
    return Notification.objects.filter(recipient_id=recipient_id)


def unexpired(qs: QuerySet[Notification]) -> QuerySet[Notification]:
    return qs.filter(Q(expires_at__isnull=True) | Q(expires_at__gt=timezone.now()))


def unread_count(*, recipient_id: int) -> int:
    return unexpired(inbox(recipient_id=recipient_id).filter(is_read=False)).count()


def stale(*, older_than_days: int, facility_id=None) -> QuerySet[Notification]:
    """Expired notifications plus anything created before the retention window."""
    now = timezone.now()
    qs = Notification.objects.filter(
        Q(expires_at__lte=now) | Q(created_at__lt=now - timedelta(days=older_than_days))
    )
    if facility_id is not None:
        qs = qs.filter(recipient__ehr_profile__facility_id=facility_id)
    return qs
