# ehr_core/providers/models.py
from django.conf import settings
from django.db import models

from ehr_core.common.models import FacilityScopedModel


class ProviderType(models.TextChoices):
    PHYSICIAN = "PHYSICIAN", "Physician"
    NURSE_PRACTITIONER = "NURSE_PRACTITIONER", "Nurse practitioner"
    PHYSICIAN_ASSISTANT = "PHYSICIAN_ASSISTANT", "Physician assistant"
    THERAPIST = "THERAPIST", "Therapist"
    OTHER = "OTHER", "Other"


class Provider(FacilityScopedModel):
    """
    Care provider profile. The linked user owns it and may edit it; admins of
    the same facility manage it.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="provider_profile",
        null=True,
        blank=True,
    )

    provider_number = models.CharField(max_length=32, unique=True)
    license_number = models.CharField(max_length=64, unique=True)

    full_name = models.CharField(max_length=255)
    provider_type = models.CharField(
        max_length=32,
        choices=ProviderType.choices,
        default=ProviderType.PHYSICIAN,
    )
    specialization = models.CharField(max_length=128, blank=True, default="", db_index=True)
    years_of_experience = models.PositiveSmallIntegerField(default=0)
    bio = models.TextField(blank=True, default="")

    phone = models.CharField(max_length=32, blank=True, default="")
    email = models.EmailField(blank=True, default="")

    is_accepting_patients = models.BooleanField(default=True)

    class Meta:
        db_table = "providers_provider"
        indexes = [
            models.Index(fields=["facility", "specialization"]),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} ({self.provider_number})"
