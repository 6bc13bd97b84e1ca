# ehr_core/notifications/channels.py
"""
Outbound delivery channels.

A channel knows how to find a recipient's address and how to send one
message to it. Sending raises on failure; the dispatcher decides what a
failure means.
"""
from __future__ import annotations

from dataclasses import dataclass

import requests
import structlog
from django.conf import settings
from django.core.mail import send_mail
from django.utils.module_loading import import_string

logger = structlog.get_logger(__name__)

EMAIL = "EMAIL"
SMS = "SMS"


class ChannelSendError(RuntimeError):
    pass


@dataclass(frozen=True)
class ChannelError:
    """One failed (or skipped) delivery, reported back to the caller."""
    recipient_id: int
    channel: str
    reason: str


# ---------------------------------------------------------------------------
# SMS backends (selected by settings.SMS_BACKEND)
# ---------------------------------------------------------------------------

class BaseSmsBackend:
    def send(self, to: str, body: str) -> None:
        raise NotImplementedError


class ConsoleSmsBackend(BaseSmsBackend):
    """Development backend: writes a log line instead of sending."""

    def send(self, to: str, body: str) -> None:
        logger.info("sms_console_backend", to=to, length=len(body))


class LocmemSmsBackend(BaseSmsBackend):
    """Test backend: keeps sent messages in LocmemSmsBackend.outbox."""

    outbox: list[dict] = []

    def send(self, to: str, body: str) -> None:
        LocmemSmsBackend.outbox.append({"to": to, "body": body})


class WebhookSmsBackend(BaseSmsBackend):
    """
    POSTs {"to", "body"} to SMS_WEBHOOK_URL. Any gateway that accepts a simple
    JSON request can sit behind it.
    """

    def __init__(self, url: str | None = None, token: str | None = None, timeout: float | None = None):
        self.url = url or getattr(settings, "SMS_WEBHOOK_URL", "")
        self.token = token if token is not None else getattr(settings, "SMS_WEBHOOK_TOKEN", "")
        self.timeout = timeout or getattr(settings, "EHR_EXTERNAL_CALL_TIMEOUT", 10)

    def send(self, to: str, body: str) -> None:
        if not self.url:
            raise ChannelSendError("SMS_WEBHOOK_URL is not configured.")

        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            response = requests.post(
                self.url, json={"to": to, "body": body}, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            msg = f"SMS webhook failed: {exc!s}"
            raise ChannelSendError(msg) from exc


def get_sms_backend() -> BaseSmsBackend:
    path = getattr(settings, "SMS_BACKEND", "ehr_core.notifications.channels.ConsoleSmsBackend")
    return import_string(path)()


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------

class EmailChannel:
    name = EMAIL

    def address_for(self, user) -> str | None:
        return (getattr(user, "email", "") or "").strip() or None

    def send(self, address: str, payload) -> None:
        # EMAIL_TIMEOUT bounds the SMTP connection
        send_mail(
            subject=payload.title,
            message=payload.message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[address],
            fail_silently=False,
        )


class SmsChannel:
    name = SMS

    def __init__(self, backend: BaseSmsBackend | None = None):
        self._backend = backend

    @property
    def backend(self) -> BaseSmsBackend:
        if self._backend is None:
            self._backend = get_sms_backend()
        return self._backend

    def address_for(self, user) -> str | None:
        profile = getattr(user, "ehr_profile", None)
        return ((profile.phone if profile else "") or "").strip() or None

    def send(self, address: str, payload) -> None:
        self.backend.send(address, f"{payload.title}: {payload.message}")


def default_channels() -> dict:
    return {EMAIL: EmailChannel(), SMS: SmsChannel()}
