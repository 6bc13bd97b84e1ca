# ehr_core/access/mixins.py

from __future__ import annotations

from ehr_core.access.guard import guard, raise_for_result
from ehr_core.access.permissions import ActionRolePermission
from ehr_core.access.resources import scope_queryset
from ehr_core.common.context import ContextMixin
from ehr_core.iam.identity import current_actor


class GuardedViewSetMixin(ContextMixin):
    """
    Shared plumbing for protected ViewSets:
      - `resource_type` selects the rule tables and the projection.
      - guarded_object() runs the guard once and keeps the loaded instance on
        the request (request.guarded_object) for the handler.
      - scoped() filters list querysets with the same rules.
    """
    resource_type: str = ""
    permission_classes = [ActionRolePermission]

    # action name passed to the policy; defaults to the ViewSet action
    guard_actions: dict[str, str] = {}

    def guarded_object(self, pk=None, *, action: str | None = None):
        cached = getattr(self.request, "guarded_object", None)
        if cached is not None and pk is None and action is None:
            return cached

        pk = pk if pk is not None else self.kwargs.get("pk")
        action = action or self.guard_actions.get(self.action, self.action)
        result = guard(current_actor(self.request), self.resource_type, pk, action)
        obj = raise_for_result(result)
        self.request.guarded_object = obj
        return obj

    def scoped(self, qs):
        return scope_queryset(current_actor(self.request), self.resource_type, qs)
