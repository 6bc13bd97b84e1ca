# ehr_core/iam/selectors.py
from __future__ import annotations

from django.db.models import Q, QuerySet

from ehr_core.iam.identity import Actor
from ehr_core.iam.roles import ROLE_SUPER_ADMIN


def filter_users(
    qs: QuerySet,
    *,
    actor: Actor,
    q: str | None = None,
    role: str | None = None,
    status: str | None = None,
) -> QuerySet:
    """
    Management listing: soft-deleted accounts never show; platform
    administrators are visible to other platform administrators only.
    """
    qs = qs.select_related("ehr_profile").filter(ehr_profile__isnull=False, ehr_profile__deleted_at__isnull=True)
    if not actor.is_super_admin:
        qs = qs.exclude(ehr_profile__role=ROLE_SUPER_ADMIN)

    if role:
        qs = qs.filter(ehr_profile__role=role)
    if status:
        qs = qs.filter(ehr_profile__status=status)

    qv = (q or "").strip()
    if qv:
        qs = qs.filter(
            Q(username__icontains=qv)
            | Q(email__icontains=qv)
            | Q(first_name__icontains=qv)
            | Q(last_name__icontains=qv)
        )
    return qs.order_by("-date_joined")
