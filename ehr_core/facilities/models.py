# ehr_core/facilities/models.py
from __future__ import annotations

import uuid

from django.db import models


class FacilityType(models.TextChoices):
    HOSPITAL = "HOSPITAL", "Hospital"
    CLINIC = "CLINIC", "Clinic"
    LAB = "LAB", "Lab"
    PHARMACY = "PHARMACY", "Pharmacy"
    OTHER = "OTHER", "Other"


class Facility(models.Model):
    """
    A hospital/clinic. Unit of data scoping: admins and clinicians only see
    resources of their own facility.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)
    code = models.SlugField(max_length=64, unique=True)

    facility_type = models.CharField(
        max_length=24,
        choices=FacilityType.choices,
        default=FacilityType.HOSPITAL,
        db_index=True,
    )

    phone = models.CharField(max_length=32, blank=True, default="")
    email = models.EmailField(blank=True, default="")

    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "facilities_facility"
        ordering = ("name",)

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"
