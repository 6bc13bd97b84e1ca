# ehr_core/clinical/services.py
from __future__ import annotations

import secrets

from django.db import IntegrityError, transaction

from ehr_core.access.policy import MEDICAL_RECORD
from ehr_core.audit.hooks import audited
from ehr_core.clinical.models import MedicalRecord
from ehr_core.common.api.exceptions import ConflictError
from ehr_core.common.context import RequestContext
from ehr_core.notifications.dispatcher import NotificationPayload
from ehr_core.notifications.models import NotificationType
from ehr_core.notifications.services import notify_on_commit
from ehr_core.patients.models import Patient

UPDATABLE_FIELDS = {"record_type", "title", "content"}


def _details(r: MedicalRecord) -> dict:
    return {
        "record_number": r.record_number,
        "title": r.title,
        "patient_mrn": r.patient.mrn,
    }


def generate_record_number() -> str:
    return f"MR-{secrets.token_hex(5).upper()}"


class MedicalRecordService:
    @staticmethod
    @audited("MEDICAL_RECORD_VIEWED", MEDICAL_RECORD, details=_details)
    def view_record(*, ctx: RequestContext, record: MedicalRecord) -> MedicalRecord:
        return record

    @staticmethod
    @transaction.atomic
    @audited("MEDICAL_RECORD_CREATED", MEDICAL_RECORD, details=_details)
    def create_record(
        *,
        ctx: RequestContext,
        patient: Patient,
        record_type: str,
        title: str,
        content: str = "",
    ) -> MedicalRecord:
        """`patient` must already have passed the guard."""
        try:
            with transaction.atomic():
                record = MedicalRecord.objects.create(
                    patient=patient,
                    author_id=ctx.actor_id,
                    record_number=generate_record_number(),
                    record_type=record_type,
                    title=title,
                    content=content or "",
                )
        except IntegrityError:
            raise ConflictError("Record number collision, please retry.")

        notify_on_commit(
            ctx,
            [patient.user],
            NotificationPayload(
                type=NotificationType.MEDICAL_RECORD,
                title="New medical record",
                message=f"A new {record.get_record_type_display().lower()} was added to your record: {record.title}",
            ),
        )
        return record

    @staticmethod
    @transaction.atomic
    @audited("MEDICAL_RECORD_UPDATED", MEDICAL_RECORD, details=_details)
    def update_record(*, ctx: RequestContext, record: MedicalRecord, data: dict) -> MedicalRecord:
        updates = {k: v for k, v in (data or {}).items() if k in UPDATABLE_FIELDS}
        for k, v in updates.items():
            setattr(record, k, v)
        record.save()
        return record

    @staticmethod
    @transaction.atomic
    @audited("MEDICAL_RECORD_DELETED", MEDICAL_RECORD, details=_details, target="record")
    def delete_record(*, ctx: RequestContext, record: MedicalRecord) -> None:
        record.delete()
