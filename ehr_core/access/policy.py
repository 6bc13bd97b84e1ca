# ehr_core/access/policy.py
"""
Access policy evaluator.

Pure and synchronous: no I/O, no caching, never raises. Every rule returns an
AccessDecision; rules for one check are OR-composed (any passing rule is
enough). A facility-scoped rule fails closed when either side has no facility.

Two declarative tables drive it:

- ACCESS_RULES: resource type -> which roles get the facility rule and which
  roles get the owner rule.
- ACTION_ROLES: resource type -> action -> roles allowed to attempt the action
  at all (coarse RBAC, applied before the resource is loaded).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable
from uuid import UUID

from ehr_core.iam.identity import Actor
from ehr_core.iam.roles import (
    ALL_ROLES,
    ROLE_ADMIN,
    ROLE_DOCTOR,
    ROLE_NURSE,
    ROLE_PATIENT,
    ROLE_PROVIDER,
    ROLE_STAFF,
    ROLE_SUPER_ADMIN,
)

# Resource types (also used as audit resource_type)
PATIENT = "Patient"
PROVIDER = "Provider"
MEDICAL_RECORD = "MedicalRecord"
INSURANCE_POLICY = "InsurancePolicy"
INSURANCE_CLAIM = "InsuranceClaim"
NOTIFICATION = "Notification"
APPOINTMENT = "Appointment"
USER = "User"

# Decision reasons
REASON_SUPER_ADMIN = "super_admin"
REASON_FACILITY_MATCH = "facility_match"
REASON_OWNER_MATCH = "owner_match"
REASON_FACILITY_MISMATCH = "facility_mismatch"
REASON_FACILITY_MISSING = "facility_missing"
REASON_NOT_OWNER = "not_owner"
REASON_ROLE_NOT_PERMITTED = "role_not_permitted"
REASON_NO_ROLE = "no_role"
REASON_SELF_ACTION = "self_action"
REASON_ROLE_HIERARCHY = "role_hierarchy"


@dataclass(frozen=True)
class ResourceDescriptor:
    """Minimal projection of a protected resource: enough to decide access."""
    resource_type: str
    id: object
    owner_user_id: int | None = None
    facility_id: UUID | None = None
    target_role: str | None = None


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


def allow(reason: str) -> AccessDecision:
    return AccessDecision(True, reason)


def deny(reason: str) -> AccessDecision:
    return AccessDecision(False, reason)


@dataclass(frozen=True)
class ResourceRule:
    facility_roles: frozenset = field(default_factory=frozenset)
    owner_roles: frozenset = field(default_factory=frozenset)


_STAFFED = frozenset({ROLE_ADMIN, ROLE_DOCTOR, ROLE_NURSE})

DEFAULT_RULE = ResourceRule(facility_roles=_STAFFED, owner_roles=frozenset({ROLE_PATIENT}))

ACCESS_RULES: dict[str, ResourceRule] = {
    # front desk registers and books patients
    PATIENT: ResourceRule(facility_roles=_STAFFED | {ROLE_STAFF}, owner_roles=frozenset({ROLE_PATIENT})),
    MEDICAL_RECORD: DEFAULT_RULE,
    APPOINTMENT: ResourceRule(
        facility_roles=_STAFFED | {ROLE_PROVIDER, ROLE_STAFF},
        owner_roles=frozenset({ROLE_PATIENT}),
    ),
    INSURANCE_POLICY: ResourceRule(
        facility_roles=_STAFFED | {ROLE_STAFF},
        owner_roles=frozenset({ROLE_PATIENT}),
    ),
    INSURANCE_CLAIM: ResourceRule(
        facility_roles=_STAFFED | {ROLE_STAFF},
        owner_roles=frozenset({ROLE_PATIENT}),
    ),
    PROVIDER: ResourceRule(
        # patients browse the providers of their facility (public view)
        facility_roles=_STAFFED | {ROLE_PROVIDER, ROLE_STAFF, ROLE_PATIENT},
        owner_roles=frozenset({ROLE_DOCTOR, ROLE_NURSE, ROLE_PROVIDER}),
    ),
    # recipients see their own inbox; an ADMIN is bound to their facility even as owner
    NOTIFICATION: ResourceRule(facility_roles=frozenset({ROLE_ADMIN}), owner_roles=ALL_ROLES - {ROLE_ADMIN}),
    USER: ResourceRule(facility_roles=frozenset({ROLE_ADMIN}), owner_roles=ALL_ROLES - {ROLE_ADMIN}),
}

_EVERYONE = ALL_ROLES
_CLINICIANS = frozenset({ROLE_ADMIN, ROLE_DOCTOR, ROLE_NURSE})

ACTION_ROLES: dict[str, dict[str, frozenset]] = {
    PATIENT: {
        "list": _CLINICIANS | {ROLE_STAFF, ROLE_PATIENT},
        "retrieve": _CLINICIANS | {ROLE_STAFF, ROLE_PATIENT},
        "create": _CLINICIANS | {ROLE_STAFF},
        "update": _CLINICIANS,
        "partial_update": _CLINICIANS,
        "destroy": frozenset({ROLE_ADMIN}),
    },
    MEDICAL_RECORD: {
        "list": _CLINICIANS | {ROLE_PATIENT},
        "retrieve": _CLINICIANS | {ROLE_PATIENT},
        "create": frozenset({ROLE_DOCTOR, ROLE_NURSE}),
        "update": frozenset({ROLE_DOCTOR, ROLE_NURSE}),
        "partial_update": frozenset({ROLE_DOCTOR, ROLE_NURSE}),
        "destroy": frozenset({ROLE_ADMIN}),
    },
    APPOINTMENT: {
        "list": _EVERYONE,
        "retrieve": _EVERYONE,
        "create": _CLINICIANS | {ROLE_STAFF, ROLE_PATIENT},
        "update": _CLINICIANS | {ROLE_PROVIDER, ROLE_STAFF},
        "partial_update": _CLINICIANS | {ROLE_PROVIDER, ROLE_STAFF},
        "cancel": _EVERYONE,
    },
    INSURANCE_POLICY: {
        "list": _CLINICIANS | {ROLE_STAFF, ROLE_PATIENT},
        "retrieve": _CLINICIANS | {ROLE_STAFF, ROLE_PATIENT},
        "create": frozenset({ROLE_ADMIN, ROLE_STAFF}),
        "update": frozenset({ROLE_ADMIN, ROLE_STAFF}),
        "partial_update": frozenset({ROLE_ADMIN, ROLE_STAFF}),
        "deactivate": frozenset({ROLE_ADMIN, ROLE_STAFF}),
        "verify": _CLINICIANS | {ROLE_STAFF},
    },
    INSURANCE_CLAIM: {
        "list": _CLINICIANS | {ROLE_STAFF, ROLE_PATIENT},
        "retrieve": _CLINICIANS | {ROLE_STAFF, ROLE_PATIENT},
        "create": frozenset({ROLE_ADMIN, ROLE_STAFF}),
        "update": frozenset({ROLE_ADMIN, ROLE_STAFF}),
        "partial_update": frozenset({ROLE_ADMIN, ROLE_STAFF}),
        "set_status": frozenset({ROLE_ADMIN, ROLE_STAFF}),
    },
    PROVIDER: {
        "list": _EVERYONE,
        "retrieve": _EVERYONE,
        "create": frozenset({ROLE_ADMIN}),
        "update": _CLINICIANS | {ROLE_PROVIDER},
        "partial_update": _CLINICIANS | {ROLE_PROVIDER},
    },
    NOTIFICATION: {
        "list": _EVERYONE,
        "retrieve": _EVERYONE,
        "destroy": _EVERYONE,
        "mark_read": _EVERYONE,
        "mark_all_read": _EVERYONE,
        "unread_count": _EVERYONE,
        "create": frozenset({ROLE_ADMIN, ROLE_DOCTOR, ROLE_NURSE}),
        "bulk": frozenset({ROLE_ADMIN}),
        "cleanup": frozenset({ROLE_ADMIN}),
    },
    USER: {
        "list": frozenset({ROLE_ADMIN}),
        "retrieve": _EVERYONE,
        "create": frozenset({ROLE_ADMIN}),
        "update": _EVERYONE,
        "partial_update": _EVERYONE,
        "destroy": frozenset({ROLE_ADMIN}),
        "activate": frozenset({ROLE_ADMIN}),
        "deactivate": frozenset({ROLE_ADMIN}),
        "change_role": frozenset({ROLE_ADMIN}),
    },
}

USER_MANAGEMENT_ACTIONS = frozenset(
    {"update", "partial_update", "destroy", "activate", "deactivate", "change_role"}
)
# An actor may never perform these on their own account, whatever their role.
SELF_PROTECTED_ACTIONS = frozenset({"destroy", "deactivate"})
# Plain self-service edits of one's own account.
SELF_SERVICE_ACTIONS = frozenset({"update", "partial_update"})

PROVIDER_MANAGEMENT_ACTIONS = frozenset({"update", "partial_update"})


def rule_for(resource_type: str) -> ResourceRule:
    return ACCESS_RULES.get(resource_type, DEFAULT_RULE)


def is_action_permitted(actor: Actor, resource_type: str, action: str | None) -> bool:
    """
    Coarse RBAC: may this role attempt `action` on this resource type at all?
    SUPER_ADMIN always may. Unknown actions are denied.
    """
    if actor.role == ROLE_SUPER_ADMIN:
        return True
    if not actor.role or not action:
        return False
    allowed = ACTION_ROLES.get(resource_type, {}).get(action)
    if allowed is None:
        return False
    return actor.role in allowed


# ---------------------------------------------------------------------------
# Individual rules
# ---------------------------------------------------------------------------

def super_admin_rule(actor: Actor, resource: ResourceDescriptor) -> AccessDecision:
    if actor.role == ROLE_SUPER_ADMIN:
        return allow(REASON_SUPER_ADMIN)
    return deny(REASON_ROLE_NOT_PERMITTED)


def facility_rule(actor: Actor, resource: ResourceDescriptor) -> AccessDecision:
    if actor.role not in rule_for(resource.resource_type).facility_roles:
        return deny(REASON_ROLE_NOT_PERMITTED)
    if actor.facility_id is None or resource.facility_id is None:
        return deny(REASON_FACILITY_MISSING)
    if str(actor.facility_id) != str(resource.facility_id):
        return deny(REASON_FACILITY_MISMATCH)
    return allow(REASON_FACILITY_MATCH)


def owner_rule(actor: Actor, resource: ResourceDescriptor) -> AccessDecision:
    if actor.role not in rule_for(resource.resource_type).owner_roles:
        return deny(REASON_ROLE_NOT_PERMITTED)
    if resource.owner_user_id is None or resource.owner_user_id != actor.id:
        return deny(REASON_NOT_OWNER)
    return allow(REASON_OWNER_MATCH)


Rule = Callable[[Actor, ResourceDescriptor], AccessDecision]

ACCESS_RULE_CHAIN: tuple[Rule, ...] = (super_admin_rule, facility_rule, owner_rule)


def _first_allowed(actor: Actor, resource: ResourceDescriptor, rules) -> AccessDecision:
    reasons = []
    for rule in rules:
        decision = rule(actor, resource)
        if decision.allowed:
            return decision
        reasons.append(decision.reason)
    # most specific denial wins for logging: skip generic role denials when possible
    specific = [r for r in reasons if r != REASON_ROLE_NOT_PERMITTED]
    return deny(specific[0] if specific else REASON_ROLE_NOT_PERMITTED)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def can_manage_user(admin_role: str | None, target_role: str | None) -> bool:
    """Role-pair rule for user management."""
    if admin_role == ROLE_SUPER_ADMIN:
        return True
    if admin_role == ROLE_ADMIN:
        return target_role not in (ROLE_SUPER_ADMIN, ROLE_ADMIN)
    return False


def can_manage_provider(actor: Actor, provider: ResourceDescriptor) -> AccessDecision:
    if actor.role == ROLE_SUPER_ADMIN:
        return allow(REASON_SUPER_ADMIN)
    if actor.role == ROLE_ADMIN:
        if actor.facility_id is None or provider.facility_id is None:
            return deny(REASON_FACILITY_MISSING)
        if str(actor.facility_id) != str(provider.facility_id):
            return deny(REASON_FACILITY_MISMATCH)
        return allow(REASON_FACILITY_MATCH)
    if actor.role in (ROLE_DOCTOR, ROLE_NURSE, ROLE_PROVIDER):
        if provider.owner_user_id is not None and provider.owner_user_id == actor.id:
            return allow(REASON_OWNER_MATCH)
        return deny(REASON_NOT_OWNER)
    return deny(REASON_ROLE_NOT_PERMITTED)


def can_notify(actor: Actor, recipient: ResourceDescriptor) -> AccessDecision:
    """
    Direct notifications: senders reach users of their own facility only.
    `recipient` is a USER projection.
    """
    if actor.role == ROLE_SUPER_ADMIN:
        return allow(REASON_SUPER_ADMIN)
    if not actor.role:
        return deny(REASON_NO_ROLE)
    if actor.facility_id is None or recipient.facility_id is None:
        return deny(REASON_FACILITY_MISSING)
    if str(actor.facility_id) != str(recipient.facility_id):
        return deny(REASON_FACILITY_MISMATCH)
    return allow(REASON_FACILITY_MATCH)


def is_self_action(actor: Actor, resource: ResourceDescriptor, action: str | None) -> bool:
    return (
        resource.resource_type == USER
        and action in SELF_PROTECTED_ACTIONS
        and str(resource.id) == str(actor.id)
    )


def _evaluate_user_management(actor: Actor, target: ResourceDescriptor, action: str) -> AccessDecision:
    if is_self_action(actor, target, action):
        return deny(REASON_SELF_ACTION)
    if actor.role == ROLE_SUPER_ADMIN:
        return allow(REASON_SUPER_ADMIN)
    if action in SELF_SERVICE_ACTIONS and str(target.id) == str(actor.id):
        return allow(REASON_OWNER_MATCH)
    if actor.role != ROLE_ADMIN:
        return deny(REASON_ROLE_NOT_PERMITTED)

    decision = facility_rule(actor, target)
    if not decision.allowed:
        return decision
    if not can_manage_user(actor.role, target.target_role):
        return deny(REASON_ROLE_HIERARCHY)
    return decision


def evaluate(actor: Actor, resource: ResourceDescriptor, action: str | None = None) -> AccessDecision:
    """
    Decide whether `actor` may perform `action` on `resource`.

    Read-like actions use the OR-composed access chain. Management actions on
    users and providers add role-pair rules. Never raises.
    """
    if not actor.role:
        return deny(REASON_NO_ROLE)

    if resource.resource_type == USER and action in USER_MANAGEMENT_ACTIONS:
        return _evaluate_user_management(actor, resource, action)

    if resource.resource_type == PROVIDER and action in PROVIDER_MANAGEMENT_ACTIONS:
        return can_manage_provider(actor, resource)

    return _first_allowed(actor, resource, ACCESS_RULE_CHAIN)


def can_access(actor: Actor, resource: ResourceDescriptor) -> bool:
    return evaluate(actor, resource).allowed


# ---------------------------------------------------------------------------
# List scoping (same rules, expressed as a filter instead of a yes/no)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ListScope:
    everything: bool = False
    facility_id: UUID | None = None
    owner_user_id: int | None = None

    @property
    def is_empty(self) -> bool:
        return not self.everything and self.facility_id is None and self.owner_user_id is None


def list_scope(actor: Actor, resource_type: str) -> ListScope:
    """
    Which rows of `resource_type` can this actor see in a listing?
    Mirrors the access chain so list and detail never disagree.
    """
    if actor.role == ROLE_SUPER_ADMIN:
        return ListScope(everything=True)
    if not actor.role:
        return ListScope()

    rule = rule_for(resource_type)
    facility_id = actor.facility_id if actor.role in rule.facility_roles else None
    owner_user_id = actor.id if actor.role in rule.owner_roles else None
    return ListScope(facility_id=facility_id, owner_user_id=owner_user_id)
