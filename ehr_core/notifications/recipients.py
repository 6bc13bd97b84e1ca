# ehr_core/notifications/recipients.py
from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework.exceptions import ValidationError

from ehr_core.access import policy
from ehr_core.access.resources import describe
from ehr_core.common.api.exceptions import ForbiddenError
from ehr_core.iam.identity import Actor
from ehr_core.iam.models import UserStatus
from ehr_core.iam.roles import ROLE_ADMIN, ROLE_SUPER_ADMIN


def _active_users():
    User = get_user_model()
    return User.objects.filter(
        is_active=True,
        ehr_profile__status=UserStatus.ACTIVE,
        ehr_profile__deleted_at__isnull=True,
    ).select_related("ehr_profile")


def resolve_bulk_recipients(actor: Actor, *, target_role: str | None = None, facility_id=None) -> list:
    """
    Active users matching the broadcast criteria.

    SUPER_ADMIN may target any facility (or all of them).
    ADMIN is always confined to their own facility.
    """
    if actor.role == ROLE_SUPER_ADMIN:
        scope_facility = facility_id
    elif actor.role == ROLE_ADMIN:
        if actor.facility_id is None:
            raise ForbiddenError("Administrators without a facility cannot send bulk notifications.")
        if facility_id and str(facility_id) != str(actor.facility_id):
            raise ForbiddenError("You can only notify users in your own facility.")
        scope_facility = actor.facility_id
    else:
        raise ForbiddenError()

    qs = _active_users()
    if target_role:
        qs = qs.filter(ehr_profile__role=target_role)
    if scope_facility:
        qs = qs.filter(ehr_profile__facility_id=scope_facility)

    recipients = list(qs.order_by("id"))
    if not recipients:
        raise ValidationError({"detail": "No recipients found matching criteria"})
    return recipients


def resolve_direct_recipients(actor: Actor, recipient_ids) -> list:
    """
    Users addressed explicitly. Every recipient must exist and be reachable
    by the sender; otherwise nothing is sent.
    """
    wanted = list(dict.fromkeys(recipient_ids))
    User = get_user_model()
    users = {u.pk: u for u in User.objects.filter(pk__in=wanted).select_related("ehr_profile")}

    missing = [rid for rid in wanted if rid not in users]
    if missing:
        raise ValidationError({"recipient_ids": [f"Unknown recipient: {rid}" for rid in missing]})

    recipients = [users[rid] for rid in wanted]
    for user in recipients:
        decision = policy.can_notify(actor, describe(policy.USER, user))
        if not decision.allowed:
            raise ForbiddenError("You can only send notifications to users in your facility.")
    return recipients
