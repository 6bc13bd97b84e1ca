# ehr_core/notifications/models.py
import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone


class NotificationType(models.TextChoices):
    APPOINTMENT = "APPOINTMENT", "Appointment"
    MEDICAL_RECORD = "MEDICAL_RECORD", "Medical record"
    REMINDER = "REMINDER", "Reminder"
    ALERT = "ALERT", "Alert"
    MESSAGE = "MESSAGE", "Message"
    SYSTEM = "SYSTEM", "System"


class NotificationPriority(models.TextChoices):
    LOW = "LOW", "Low"
    MEDIUM = "MEDIUM", "Medium"
    HIGH = "HIGH", "High"
    URGENT = "URGENT", "Urgent"


class Notification(models.Model):
    """
    In-app notification. Only is_read/read_at change after creation.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="notifications",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="sent_notifications",
        null=True,
        blank=True,
    )

    type = models.CharField(max_length=32, choices=NotificationType.choices, db_index=True)
    priority = models.CharField(
        max_length=16,
        choices=NotificationPriority.choices,
        default=NotificationPriority.MEDIUM,
        db_index=True,
    )
    title = models.CharField(max_length=200)
    message = models.TextField(max_length=1000)
    action_url = models.URLField(blank=True, default="")

    is_read = models.BooleanField(default=False, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "notifications_notification"
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=["recipient", "is_read"]),
            models.Index(fields=["recipient", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.type}: {self.title}"

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and timezone.now() > self.expires_at

    def mark_read(self) -> bool:
        """Returns False when it was already read."""
        if self.is_read:
            return False
        self.is_read = True
        self.read_at = timezone.now()
        return True
