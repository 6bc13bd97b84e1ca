# ehr_core/patients/services.py
from __future__ import annotations

from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError
from rest_framework.exceptions import ValidationError

from ehr_core.access.policy import PATIENT
from ehr_core.access.scoping import facility_for_create
from ehr_core.audit.hooks import audited
from ehr_core.common.api.exceptions import ConflictError
from ehr_core.common.context import RequestContext
from ehr_core.iam.roles import ROLE_PATIENT
from ehr_core.patients.models import Patient

MRN_CONFLICT = "MRN already exists for this facility."

UPDATABLE_FIELDS = {"full_name", "mrn", "phone", "email", "gender", "date_of_birth", "user_id"}


def _details(p: Patient) -> dict:
    return {"mrn": p.mrn}


def _validate_patient_user(user_id: int | None) -> None:
    if user_id is None:
        return
    User = get_user_model()
    user = User.objects.filter(pk=user_id).select_related("ehr_profile").first()
    profile = getattr(user, "ehr_profile", None) if user else None
    if profile is None or profile.role != ROLE_PATIENT:
        raise ValidationError({"user_id": ["Must reference a user with the PATIENT role."]})


class PatientService:
    @staticmethod
    @audited("PATIENT_VIEWED", PATIENT, details=_details)
    def view_patient(*, ctx: RequestContext, patient: Patient) -> Patient:
        """PHI read. `patient` must already have passed the guard."""
        return patient

    @staticmethod
    @transaction.atomic
    @audited("PATIENT_CREATED", PATIENT, details=_details)
    def create_patient(
        *,
        ctx: RequestContext,
        full_name: str,
        mrn: str,
        facility_id: UUID | None = None,
        user_id: int | None = None,
        phone: str = "",
        email: str = "",
        gender: str = "",
        date_of_birth=None,
    ) -> Patient:
        facility_id = facility_for_create(ctx.actor, facility_id)
        _validate_patient_user(user_id)

        try:
            with transaction.atomic():
                return Patient.objects.create(
                    facility_id=facility_id,
                    user_id=user_id,
                    full_name=full_name,
                    mrn=mrn,
                    phone=phone or "",
                    email=email or "",
                    gender=gender or "",
                    date_of_birth=date_of_birth,
                )
        except IntegrityError:
            # MRN uniqueness is enforced by constraint; surface readable error.
            raise ConflictError(MRN_CONFLICT)

    @staticmethod
    @transaction.atomic
    @audited("PATIENT_UPDATED", PATIENT, details=_details)
    def update_patient(*, ctx: RequestContext, patient: Patient, data: dict) -> Patient:
        updates = {k: v for k, v in (data or {}).items() if k in UPDATABLE_FIELDS}
        if "user_id" in updates:
            _validate_patient_user(updates["user_id"])

        for k, v in updates.items():
            setattr(patient, k, v)

        try:
            with transaction.atomic():
                patient.save()
        except IntegrityError:
            raise ConflictError(MRN_CONFLICT)
        return patient

    @staticmethod
    @transaction.atomic
    @audited("PATIENT_DELETED", PATIENT, details=_details, target="patient")
    def delete_patient(*, ctx: RequestContext, patient: Patient) -> None:
        try:
            with transaction.atomic():
                patient.delete()
        except ProtectedError:
            raise ConflictError("Patient has linked records and cannot be deleted.")
