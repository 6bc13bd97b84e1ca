# ehr_core/iam/models.py
import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

from ehr_core.facilities.models import Facility
from ehr_core.iam import roles


class Role(models.TextChoices):
    SUPER_ADMIN = roles.ROLE_SUPER_ADMIN, "Super admin"
    ADMIN = roles.ROLE_ADMIN, "Admin"
    DOCTOR = roles.ROLE_DOCTOR, "Doctor"
    NURSE = roles.ROLE_NURSE, "Nurse"
    PROVIDER = roles.ROLE_PROVIDER, "Provider"
    PATIENT = roles.ROLE_PATIENT, "Patient"
    STAFF = roles.ROLE_STAFF, "Staff"


class UserStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    INACTIVE = "INACTIVE", "Inactive"
    SUSPENDED = "SUSPENDED", "Suspended"
    PENDING = "PENDING", "Pending verification"


class UserProfile(models.Model):
    """
    EHR identity anchored to Django's AUTH_USER_MODEL: one role, at most one
    facility. Accounts are never hard-deleted; `deleted_at` marks a soft delete.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="ehr_profile")
    role = models.CharField(max_length=16, choices=Role.choices, db_index=True)
    facility = models.ForeignKey(
        Facility,
        on_delete=models.PROTECT,
        related_name="user_profiles",
        null=True,
        blank=True,
    )
    status = models.CharField(
        max_length=16,
        choices=UserStatus.choices,
        default=UserStatus.ACTIVE,
        db_index=True,
    )

    phone = models.CharField(max_length=32, blank=True, default="")

    deactivated_at = models.DateTimeField(null=True, blank=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "iam_user_profile"
        indexes = [
            models.Index(fields=["facility", "status"]),
            models.Index(fields=["facility", "role"]),
        ]

    def __str__(self) -> str:
        return f"{self.user.username} ({self.role})"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def mark_deactivated(self) -> None:
        self.status = UserStatus.INACTIVE
        self.deactivated_at = self.deactivated_at or timezone.now()
