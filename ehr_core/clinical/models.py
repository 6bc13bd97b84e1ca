# ehr_core/clinical/models.py
import uuid

from django.conf import settings
from django.db import models

from ehr_core.common.models import TimeStampedModel


class RecordType(models.TextChoices):
    NOTE = "NOTE", "Clinical note"
    VITALS = "VITALS", "Vital signs"
    PRESCRIPTION = "PRESCRIPTION", "Prescription"
    LAB_RESULT = "LAB_RESULT", "Lab result"
    DIAGNOSIS = "DIAGNOSIS", "Diagnosis"


class MedicalRecord(TimeStampedModel):
    """
    Clinical document attached to a patient. Ownership and facility come from
    the patient; the record itself stores neither.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    patient = models.ForeignKey(
        "patients.Patient",
        on_delete=models.PROTECT,
        related_name="medical_records",
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="authored_records",
        null=True,
        blank=True,
    )

    record_number = models.CharField(max_length=32, unique=True)
    record_type = models.CharField(max_length=24, choices=RecordType.choices, db_index=True)
    title = models.CharField(max_length=255)
    content = models.TextField(blank=True, default="")

    class Meta:
        db_table = "clinical_medical_record"
        indexes = [
            models.Index(fields=["patient", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.record_number} {self.title}"
