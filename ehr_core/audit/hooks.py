# ehr_core/audit/hooks.py

from __future__ import annotations

import functools
from typing import Any, Callable, Iterable

from ehr_core.access.resources import REGISTRY
from ehr_core.audit.recorder import AuditEntry, recorder


def _as_items(result) -> Iterable[Any]:
    if result is None:
        return []
    if isinstance(result, (list, tuple)):
        return result
    return [result]


def _facility_of(resource_type: str, obj):
    spec = REGISTRY.get(resource_type)
    if spec is not None:
        return spec.describe(obj).facility_id
    return getattr(obj, "facility_id", None)


def entry_for(action: str, resource_type: str, obj, details: Callable[[Any], dict] | None = None) -> AuditEntry:
    return AuditEntry(
        action=action,
        resource_type=resource_type,
        resource_id=obj.pk,
        details=details(obj) if details else {},
        facility_id=_facility_of(resource_type, obj),
    )


def audited(
    action: str,
    resource_type: str,
    *,
    details: Callable[[Any], dict] | None = None,
    items: Callable[[Any], Iterable[Any]] | None = None,
    target: str | None = None,
):
    """
    Audit a service mutation after its transaction commits.

    The wrapped function must take `ctx` as a keyword argument. One audit event
    is written per affected item: a single instance gives one event, a list (or
    whatever `items(result)` returns) gives one per element.

    For deletions pass `target="<kwarg name>"`: the entry is built from that
    argument before the call (while it still has its primary key) and recorded
    only if the call returns.

        @staticmethod
        @transaction.atomic
        @audited("PATIENT_CREATED", PATIENT, details=lambda p: {"mrn": p.mrn})
        def create_patient(*, ctx, ...): ...
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            ctx = kwargs.get("ctx")

            if target is not None:
                entries = [entry_for(action, resource_type, kwargs[target], details)]
                result = fn(*args, **kwargs)
            else:
                result = fn(*args, **kwargs)
                affected = items(result) if items else _as_items(result)
                entries = [entry_for(action, resource_type, obj, details) for obj in affected]

            for entry in entries:
                recorder.record(ctx, entry)
            return result

        return wrapper

    return decorator
