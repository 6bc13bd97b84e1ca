# ehr_core/notifications/dispatcher.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

import structlog
from django.db import transaction

from ehr_core.common.context import RequestContext
from ehr_core.notifications.channels import ChannelError, default_channels
from ehr_core.notifications.models import Notification, NotificationPriority

logger = structlog.get_logger(__name__)

NO_ADDRESS = "no_address"
UNKNOWN_CHANNEL = "unknown_channel"


@dataclass(frozen=True)
class NotificationPayload:
    type: str
    title: str
    message: str
    priority: str = NotificationPriority.MEDIUM
    action_url: str = ""
    expires_at: datetime | None = None


@dataclass
class DispatchResult:
    created: list[Notification] = field(default_factory=list)
    channel_errors: list[ChannelError] = field(default_factory=list)


class NotificationDispatcher:
    """
    Fan one payload out to many recipients.

    1) One in-app row per recipient, created in a single atomic batch.
    2) Then, per recipient and requested channel, one send attempt. A failing
       send never affects the rows or the other recipients; it is logged and
       reported as a ChannelError.
    """

    def __init__(self, channels: dict | None = None):
        self._channels = channels

    @property
    def channels(self) -> dict:
        if self._channels is None:
            self._channels = default_channels()
        return self._channels

    def dispatch(self, ctx: RequestContext | None, recipients, payload: NotificationPayload, channels=()) -> DispatchResult:
        recipients = list(recipients)
        sender_id = ctx.actor_id if ctx else None

        with transaction.atomic():
            created = Notification.objects.bulk_create(
                [
                    Notification(
                        recipient=recipient,
                        sender_id=sender_id,
                        type=payload.type,
                        priority=payload.priority,
                        title=payload.title,
                        message=payload.message,
                        action_url=payload.action_url or "",
                        expires_at=payload.expires_at,
                    )
                    for recipient in recipients
                ]
            )

        result = DispatchResult(created=list(created))
        for recipient in recipients:
            for channel_name in channels:
                error = self._send(channel_name, recipient, payload)
                if error is not None:
                    result.channel_errors.append(error)

        logger.info(
            "notifications_dispatched",
            notification_type=payload.type,
            created_count=len(result.created),
            channel_error_count=len(result.channel_errors),
        )
        return result

    def _send(self, channel_name: str, recipient, payload: NotificationPayload) -> ChannelError | None:
        channel = self.channels.get(channel_name)
        if channel is None:
            return self._failed(recipient, channel_name, UNKNOWN_CHANNEL)

        address = channel.address_for(recipient)
        if not address:
            return self._failed(recipient, channel_name, NO_ADDRESS)

        try:
            channel.send(address, payload)
        except Exception as exc:
            return self._failed(recipient, channel_name, str(exc) or type(exc).__name__)
        return None

    @staticmethod
    def _failed(recipient, channel_name: str, reason: str) -> ChannelError:
        logger.warning(
            "notification_channel_failed",
            recipient_id=recipient.pk,
            channel=channel_name,
            reason=reason,
        )
        return ChannelError(recipient.pk, channel_name, reason)
