# ehr_core/access/permissions.py

from __future__ import annotations

from rest_framework.permissions import SAFE_METHODS, BasePermission

from ehr_core.access import policy
from ehr_core.iam.identity import current_actor
from ehr_core.iam.roles import ADMIN_ROLES


class ActionRolePermission(BasePermission):
    """
    Coarse role check before any resource is loaded.

    - Requires an authenticated actor with an active account.
    - SUPER_ADMIN bypass.
    - Roles per action come from policy.ACTION_ROLES[view.resource_type].
    - If the action is unknown and the request is SAFE, fall back to list/retrieve.
    - Unknown action otherwise => deny.

    Object-level decisions belong to the guard (facility / owner rules).
    """
    message = "You do not have permission to perform this action."

    def _infer_action(self, request, view) -> str | None:
        action = getattr(view, "action", None)
        if action:
            return action

        kwargs = getattr(view, "kwargs", {}) or {}
        is_detail = "pk" in kwargs or "id" in kwargs

        method = request.method.upper()
        if method in ("GET", "HEAD", "OPTIONS"):
            return "retrieve" if is_detail else "list"
        if method == "POST":
            return "create"
        if method == "PUT":
            return "update"
        if method == "PATCH":
            return "partial_update"
        if method == "DELETE":
            return "destroy"
        return None

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not getattr(user, "is_authenticated", False):
            return False

        actor = current_actor(request)
        if not actor.is_active:
            return False

        resource_type = getattr(view, "resource_type", None)
        if not resource_type:
            return False

        action = self._infer_action(request, view)
        table = policy.ACTION_ROLES.get(resource_type, {})

        if action not in table and request.method in SAFE_METHODS:
            kwargs = getattr(view, "kwargs", {}) or {}
            action = "retrieve" if ("pk" in kwargs or "id" in kwargs) else "list"

        return policy.is_action_permitted(actor, resource_type, action)


class SuperAdminOrAdmin(BasePermission):
    message = "Only administrators can access this resource."

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not getattr(user, "is_authenticated", False):
            return False
        actor = current_actor(request)
        return actor.is_active and actor.role in ADMIN_ROLES
