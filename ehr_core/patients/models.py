# ehr_core/patients/models.py
from django.conf import settings
from django.db import models

from ehr_core.common.models import FacilityScopedModel


class Gender(models.TextChoices):
    MALE = "MALE", "Male"
    FEMALE = "FEMALE", "Female"
    OTHER = "OTHER", "Other"
    UNKNOWN = "UNKNOWN", "Unknown"


class Patient(FacilityScopedModel):
    """
    Patient registered at one facility. `user` is the patient's own login, when
    they have one; it makes them the owner of their records.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="patient_record",
        null=True,
        blank=True,
    )

    full_name = models.CharField(max_length=255)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=16, choices=Gender.choices, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    email = models.EmailField(blank=True, default="")

    # facility-local medical record number
    mrn = models.CharField(max_length=64)

    class Meta:
        db_table = "patients_patient"
        constraints = [
            models.UniqueConstraint(fields=["facility", "mrn"], name="uq_patient_facility_mrn"),
        ]
        indexes = [
            models.Index(fields=["facility", "full_name"]),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} ({self.mrn})"
