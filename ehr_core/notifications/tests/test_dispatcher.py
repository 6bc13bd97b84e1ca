import logging

import pytest
import requests
from structlog.testing import capture_logs

from ehr_core.common.context import RequestContext
from ehr_core.iam.identity import actor_for_user
from ehr_core.iam.roles import ROLE_PATIENT
from ehr_core.notifications.channels import (
    EMAIL,
    SMS,
    ChannelError,
    ChannelSendError,
    LocmemSmsBackend,
    SmsChannel,
    WebhookSmsBackend,
)
from ehr_core.notifications.dispatcher import NO_ADDRESS, UNKNOWN_CHANNEL, NotificationDispatcher, NotificationPayload
from ehr_core.notifications.models import Notification, NotificationType

pytestmark = pytest.mark.django_db

PAYLOAD = NotificationPayload(type=NotificationType.ALERT, title="Heads up", message="Clinic closes early today.")


class FlakyEmailChannel:
    """Fails for one address, records the rest."""

    name = EMAIL

    def __init__(self, failing_address):
        self.failing_address = failing_address
        self.sent = []

    def address_for(self, user):
        return user.email or None

    def send(self, address, payload):
        if address == self.failing_address:
            raise ConnectionError("smtp unavailable")
        self.sent.append(address)


def test_partial_channel_failure_keeps_all_rows(make_user, admin_user):
    users = [make_user(ROLE_PATIENT, email=f"p{i}@example.com") for i in range(3)]
    email = FlakyEmailChannel(failing_address="p1@example.com")
    dispatcher = NotificationDispatcher(channels={EMAIL: email})

    ctx = RequestContext(actor=actor_for_user(admin_user))
    with capture_logs() as logs:
        result = dispatcher.dispatch(ctx, users, PAYLOAD, channels=(EMAIL,))

    assert len(result.created) == 3
    assert Notification.objects.filter(recipient__in=users).count() == 3
    assert result.channel_errors == [ChannelError(users[1].pk, EMAIL, "smtp unavailable")]
    assert email.sent == ["p0@example.com", "p2@example.com"]
    failures = [e for e in logs if e["event"] == "notification_channel_failed"]
    assert failures == [
        {
            "event": "notification_channel_failed",
            "log_level": "warning",
            "recipient_id": users[1].pk,
            "channel": EMAIL,
            "reason": "smtp unavailable",
        }
    ]


def test_recipient_without_address_is_skipped_and_reported(make_user):
    with_phone = make_user(ROLE_PATIENT, phone="+15550000001")
    without_phone = make_user(ROLE_PATIENT, phone="")

    dispatcher = NotificationDispatcher(channels={SMS: SmsChannel(LocmemSmsBackend())})
    with capture_logs() as logs:
        result = dispatcher.dispatch(None, [with_phone, without_phone], PAYLOAD, channels=(SMS,))

    assert len(result.created) == 2
    assert result.channel_errors == [ChannelError(without_phone.pk, SMS, NO_ADDRESS)]
    assert [(e["recipient_id"], e["reason"]) for e in logs if e["event"] == "notification_channel_failed"] == [
        (without_phone.pk, NO_ADDRESS)
    ]
    assert LocmemSmsBackend.outbox == [{"to": "+15550000001", "body": "Heads up: Clinic closes early today."}]


def test_unknown_channel_is_reported(make_user):
    user = make_user(ROLE_PATIENT)
    with capture_logs() as logs:
        result = NotificationDispatcher(channels={}).dispatch(None, [user], PAYLOAD, channels=("PIGEON",))
    assert result.channel_errors == [ChannelError(user.pk, "PIGEON", UNKNOWN_CHANNEL)]
    assert any(e["event"] == "notification_channel_failed" and e["channel"] == "PIGEON" for e in logs)
    assert len(result.created) == 1


def test_in_app_only_dispatch_sends_nothing(make_user, mailoutbox):
    user = make_user(ROLE_PATIENT, email="x@example.com")
    result = NotificationDispatcher().dispatch(None, [user], PAYLOAD)
    assert len(result.created) == 1
    assert result.channel_errors == []
    assert mailoutbox == []


def test_default_email_channel_uses_django_mail(make_user, mailoutbox):
    user = make_user(ROLE_PATIENT, email="mail@example.com")
    NotificationDispatcher().dispatch(None, [user], PAYLOAD, channels=(EMAIL,))

    assert len(mailoutbox) == 1
    assert mailoutbox[0].to == ["mail@example.com"]
    assert mailoutbox[0].subject == "Heads up"


def test_webhook_backend_wraps_http_errors(monkeypatch):
    calls = {}

    def fake_post(url, json, headers, timeout):
        calls.update(url=url, json=json, headers=headers, timeout=timeout)
        raise requests.Timeout("read timed out")

    monkeypatch.setattr("ehr_core.notifications.channels.requests.post", fake_post)
    backend = WebhookSmsBackend(url="https://sms.example.test/send", token="t0k", timeout=3)

    with pytest.raises(ChannelSendError):
        backend.send("+1555", "hi")

    assert calls["timeout"] == 3
    assert calls["headers"] == {"Authorization": "Bearer t0k"}
    assert calls["json"] == {"to": "+1555", "body": "hi"}


def test_webhook_backend_requires_url():
    with pytest.raises(ChannelSendError):
        WebhookSmsBackend(url="", token="").send("+1555", "hi")


def test_dispatch_summary_renders_with_info_enabled(make_user, caplog):
    users = [make_user(ROLE_PATIENT) for _ in range(2)]

    # the configured handlers render the record, not a capture stub
    with caplog.at_level(logging.INFO, logger="ehr_core.notifications.dispatcher"):
        result = NotificationDispatcher(channels={}).dispatch(None, users, PAYLOAD)

    assert len(result.created) == 2
    summary = next(r.msg for r in caplog.records if isinstance(r.msg, dict) and r.msg["event"] == "notifications_dispatched")
    assert summary["created_count"] == 2
    assert summary["channel_error_count"] == 0
    assert summary["level"] == "info"
