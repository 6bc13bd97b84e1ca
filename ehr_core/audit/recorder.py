# ehr_core/audit/recorder.py
"""
Audit recorder.

Writes are scheduled with transaction.on_commit: a rolled-back mutation leaves
no trace, a committed one gets exactly one row. A failing write is logged and
absorbed; the response the user already earned is never turned into an error.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable
from uuid import UUID

import structlog
from django.db import transaction

from ehr_core.audit.models import AuditEvent
from ehr_core.common.context import RequestContext

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AuditEntry:
    action: str
    resource_type: str
    resource_id: Any
    details: dict[str, Any] = field(default_factory=dict)
    facility_id: UUID | None = None


def write_event(ctx: RequestContext | None, entry: AuditEntry) -> AuditEvent:
    return AuditEvent.objects.create(
        actor_id=ctx.actor_id if ctx else None,
        action=entry.action,
        resource_type=entry.resource_type,
        resource_id=str(entry.resource_id),
        details=entry.details or {},
        ip_address=ctx.ip_address if ctx else None,
        user_agent=ctx.user_agent if ctx else "",
        facility_id=entry.facility_id,
    )


class AuditRecorder:
    def __init__(self, writer: Callable[[RequestContext | None, AuditEntry], Any] = write_event):
        self.writer = writer

    def record(self, ctx: RequestContext | None, entry: AuditEntry) -> None:
        transaction.on_commit(lambda: self.write_now(ctx, entry))

    def record_many(self, ctx: RequestContext | None, entries) -> None:
        for entry in entries:
            self.record(ctx, entry)

    def write_now(self, ctx: RequestContext | None, entry: AuditEntry) -> None:
        try:
            self.writer(ctx, entry)
        except Exception:
            logger.exception(
                "audit_write_failed",
                audit_action=entry.action,
                resource_type=entry.resource_type,
                resource_id=str(entry.resource_id),
            )


recorder = AuditRecorder()
