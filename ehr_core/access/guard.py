# ehr_core/access/guard.py
"""
Resource lookup guard.

Loads the target by id with a single joined read, projects it, asks the policy,
and returns exactly one outcome. Nothing here mutates anything, so calling the
guard twice for the same inputs gives the same outcome.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

import structlog
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError

from ehr_core.access import policy
from ehr_core.access.policy import ResourceDescriptor
from ehr_core.access.resources import get_spec
from ehr_core.common.api.exceptions import ForbiddenError, InfrastructureError, NotFoundError
from ehr_core.iam.identity import Actor

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Allowed:
    resource: Any
    projection: ResourceDescriptor
    reason: str = ""


@dataclass(frozen=True)
class Forbidden:
    reason: str
    projection: ResourceDescriptor | None = None


@dataclass(frozen=True)
class NotFound:
    resource_type: str
    resource_id: Any


@dataclass(frozen=True)
class LookupFailed:
    resource_type: str
    resource_id: Any
    error: Exception


GuardResult = Union[Allowed, Forbidden, NotFound, LookupFailed]


class OrmResourceStore:
    """
    Fetch a protected resource and its projection in one query.
    Returns None when the row is absent or the id cannot be a primary key.
    DatabaseError (timeouts included) propagates to the guard.
    """

    def fetch(self, resource_type: str, resource_id) -> tuple[Any, ResourceDescriptor] | None:
        spec = get_spec(resource_type)
        try:
            instance = spec.queryset().filter(pk=resource_id).first()
        except (ValueError, TypeError, DjangoValidationError):
            # malformed id: there is no such resource
            return None
        if instance is None:
            return None
        return instance, spec.describe(instance)


class ResourceGuard:
    def __init__(self, store=None):
        self.store = store or OrmResourceStore()

    def check(self, actor: Actor, resource_type: str, resource_id, action: str | None = None) -> GuardResult:
        try:
            fetched = self.store.fetch(resource_type, resource_id)
        except DatabaseError as e:
            logger.error(
                "resource_lookup_failed",
                resource_type=resource_type,
                resource_id=str(resource_id),
                action=action,
                exc_info=True,
            )
            return LookupFailed(resource_type, resource_id, e)

        if fetched is None:
            return NotFound(resource_type, resource_id)

        instance, projection = fetched
        decision = policy.evaluate(actor, projection, action)
        if not decision.allowed:
            logger.warning(
                "access_denied",
                resource_type=resource_type,
                resource_id=str(resource_id),
                action=action,
                role=actor.role,
                reason=decision.reason,
            )
            return Forbidden(decision.reason, projection)

        return Allowed(instance, projection, decision.reason)


def guard(actor: Actor, resource_type: str, resource_id, action: str | None = None, *, store=None) -> GuardResult:
    return ResourceGuard(store).check(actor, resource_type, resource_id, action)


NOT_FOUND_MESSAGES = {
    policy.PATIENT: "Patient not found.",
    policy.PROVIDER: "Provider not found.",
    policy.MEDICAL_RECORD: "Medical record not found.",
    policy.INSURANCE_POLICY: "Insurance policy not found.",
    policy.INSURANCE_CLAIM: "Insurance claim not found.",
    policy.NOTIFICATION: "Notification not found.",
    policy.APPOINTMENT: "Appointment not found.",
    policy.USER: "User not found.",
}

FORBIDDEN_MESSAGES = {
    policy.REASON_SELF_ACTION: "You cannot perform this action on your own account.",
    policy.REASON_ROLE_HIERARCHY: "You cannot manage users with this role.",
}


def raise_for_result(result: GuardResult):
    """
    Return the loaded resource for Allowed; raise the matching API error otherwise.
    """
    if isinstance(result, Allowed):
        return result.resource
    if isinstance(result, NotFound):
        raise NotFoundError(NOT_FOUND_MESSAGES.get(result.resource_type, "Resource not found."))
    if isinstance(result, Forbidden):
        raise ForbiddenError(FORBIDDEN_MESSAGES.get(result.reason, "Access denied."))
    if isinstance(result, LookupFailed):
        raise InfrastructureError()
    raise TypeError(f"Unexpected guard result: {result!r}")
