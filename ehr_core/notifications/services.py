# ehr_core/notifications/services.py
from __future__ import annotations

from django.db import transaction
from django.utils import timezone

from ehr_core.access.policy import NOTIFICATION
from ehr_core.audit.hooks import audited
from ehr_core.audit.recorder import AuditEntry, recorder
from ehr_core.common.api.exceptions import ForbiddenError
from ehr_core.common.context import RequestContext
from ehr_core.notifications.channels import EMAIL, SMS
from ehr_core.notifications.dispatcher import DispatchResult, NotificationDispatcher, NotificationPayload
from ehr_core.notifications.models import Notification
from ehr_core.notifications.recipients import resolve_bulk_recipients, resolve_direct_recipients
from ehr_core.notifications.selectors import stale

dispatcher = NotificationDispatcher()


def _details(n: Notification) -> dict:
    return {"recipient_id": n.recipient_id, "type": n.type, "priority": n.priority}


def _created(result: DispatchResult):
    return result.created


def channels_for(*, send_email: bool = False, send_sms: bool = False) -> tuple[str, ...]:
    out = []
    if send_email:
        out.append(EMAIL)
    if send_sms:
        out.append(SMS)
    return tuple(out)


class NotificationService:
    @staticmethod
    @audited("NOTIFICATION_CREATED", NOTIFICATION, details=_details, items=_created)
    def send_direct(
        *,
        ctx: RequestContext,
        recipient_ids: list[int],
        payload: NotificationPayload,
        send_email: bool = False,
        send_sms: bool = False,
    ) -> DispatchResult:
        recipients = resolve_direct_recipients(ctx.actor, recipient_ids)
        return dispatcher.dispatch(ctx, recipients, payload, channels_for(send_email=send_email, send_sms=send_sms))

    @staticmethod
    @audited("NOTIFICATION_BULK_CREATED", NOTIFICATION, details=_details, items=_created)
    def send_bulk(
        *,
        ctx: RequestContext,
        payload: NotificationPayload,
        target_role: str | None = None,
        facility_id=None,
        send_email: bool = False,
        send_sms: bool = False,
    ) -> DispatchResult:
        recipients = resolve_bulk_recipients(ctx.actor, target_role=target_role, facility_id=facility_id)
        return dispatcher.dispatch(ctx, recipients, payload, channels_for(send_email=send_email, send_sms=send_sms))

    @staticmethod
    @audited("NOTIFICATION_CREATED", NOTIFICATION, details=_details, items=_created)
    def send_system(*, ctx: RequestContext | None, recipients, payload: NotificationPayload) -> DispatchResult:
        """In-app notifications raised by other workflows (new record, new appointment)."""
        return dispatcher.dispatch(ctx, recipients, payload)

    @staticmethod
    @transaction.atomic
    @audited("NOTIFICATION_READ", NOTIFICATION)
    def mark_read(*, ctx: RequestContext, notification: Notification) -> Notification:
        if notification.recipient_id != ctx.actor_id:
            raise ForbiddenError("Only the recipient can mark a notification as read.")
        if notification.mark_read():
            notification.save(update_fields=["is_read", "read_at"])
        return notification

    @staticmethod
    @transaction.atomic
    @audited("NOTIFICATION_READ", NOTIFICATION)
    def mark_all_read(*, ctx: RequestContext) -> list[Notification]:
        unread = list(
            Notification.objects.filter(recipient_id=ctx.actor_id, is_read=False)
            .select_related("recipient__ehr_profile")
        )
        now = timezone.now()
        for n in unread:
            n.is_read = True
            n.read_at = now
        Notification.objects.bulk_update(unread, ["is_read", "read_at"])
        return unread

    @staticmethod
    @transaction.atomic
    @audited("NOTIFICATION_DELETED", NOTIFICATION, details=_details, target="notification")
    def delete(*, ctx: RequestContext, notification: Notification) -> None:
        notification.delete()

    @staticmethod
    @transaction.atomic
    def cleanup(*, ctx: RequestContext, days: int) -> int:
        """
        Delete expired and out-of-retention notifications. An ADMIN only
        touches their own facility's recipients.
        """
        facility_id = None if ctx.actor.is_super_admin else ctx.actor.facility_id
        if facility_id is None and not ctx.actor.is_super_admin:
            raise ForbiddenError("Cleanup requires a facility-bound administrator.")
        deleted, _ = stale(older_than_days=days, facility_id=facility_id).delete()

        recorder.record(
            ctx,
            AuditEntry(
                action="NOTIFICATION_CLEANUP",
                resource_type=NOTIFICATION,
                resource_id=facility_id or "all",
                details={"days": days, "deleted": deleted},
                facility_id=facility_id,
            ),
        )
        return deleted


def notify_on_commit(ctx: RequestContext | None, recipients, payload: NotificationPayload) -> None:
    """
    Queue in-app notifications for after the current transaction commits, so
    a rolled-back mutation never notifies anyone.
    """
    recipients = [r for r in recipients if r is not None]
    if not recipients:
        return
    transaction.on_commit(
        lambda: NotificationService.send_system(ctx=ctx, recipients=recipients, payload=payload),
        robust=True,
    )
