# ehr_core/iam/identity.py
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from rest_framework.exceptions import NotAuthenticated

from ehr_core.iam.roles import ROLE_SUPER_ADMIN

STATUS_ACTIVE = "ACTIVE"


@dataclass(frozen=True)
class Actor:
    """
    The authenticated caller of record. Resolved once per request; every
    access decision is computed from it, never cached across requests.
    """
    id: int
    role: str | None
    facility_id: UUID | None = None
    status: str = STATUS_ACTIVE
    username: str = ""

    @property
    def is_super_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE


def actor_for_user(user) -> Actor:
    """
    Build an Actor from a Django user.

    - A profile decides role/facility/status.
    - A superuser without a profile is treated as SUPER_ADMIN.
    - Anyone else without a profile gets no role (every policy check denies).
    """
    profile = getattr(user, "ehr_profile", None)
    if profile is not None:
        return Actor(
            id=user.id,
            role=profile.role,
            facility_id=profile.facility_id,
            status=profile.status,
            username=user.get_username(),
        )

    if getattr(user, "is_superuser", False):
        return Actor(id=user.id, role=ROLE_SUPER_ADMIN, username=user.get_username())

    return Actor(id=user.id, role=None, username=user.get_username())


def current_actor(request) -> Actor:
    """
    Actor for this request. The authentication class attaches it; fall back to
    request.user (e.g. force_authenticate in tests).
    """
    actor = getattr(request, "actor", None)
    if actor is not None:
        return actor

    user = getattr(request, "user", None)
    if not user or not getattr(user, "is_authenticated", False):
        raise NotAuthenticated()

    actor = actor_for_user(user)
    request.actor = actor
    return actor
