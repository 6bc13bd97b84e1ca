# ehr_core/appointments/services.py
from __future__ import annotations

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from ehr_core.access.policy import APPOINTMENT
from ehr_core.appointments.models import CLOSED_STATUSES, Appointment, AppointmentStatus
from ehr_core.appointments.selectors import provider_has_overlap
from ehr_core.audit.hooks import audited
from ehr_core.common.api.exceptions import ConflictError
from ehr_core.common.context import RequestContext
from ehr_core.notifications.dispatcher import NotificationPayload
from ehr_core.notifications.models import NotificationType
from ehr_core.notifications.services import notify_on_commit
from ehr_core.patients.models import Patient
from ehr_core.providers.models import Provider

UPDATABLE_FIELDS = {"scheduled_at", "duration_minutes", "reason", "status"}
PROVIDER_BUSY = "Provider is not available at the requested time."


def _details(a: Appointment) -> dict:
    return {
        "patient_mrn": a.patient.mrn,
        "provider_number": a.provider.provider_number,
        "scheduled_at": a.scheduled_at,
        "status": a.status,
    }


class AppointmentService:
    @staticmethod
    @transaction.atomic
    @audited("APPOINTMENT_CREATED", APPOINTMENT, details=_details)
    def create_appointment(
        *,
        ctx: RequestContext,
        patient: Patient,
        provider: Provider,
        scheduled_at,
        duration_minutes: int = 30,
        reason: str = "",
    ) -> Appointment:
        """`patient` and `provider` must already have passed the guard."""
        if provider.facility_id != patient.facility_id:
            raise ValidationError({"provider_id": ["Provider and patient must belong to the same facility."]})
        if not provider.is_accepting_patients:
            raise ValidationError({"provider_id": ["Provider is not accepting new appointments."]})
        if scheduled_at <= timezone.now():
            raise ValidationError({"scheduled_at": ["Appointments must be scheduled in the future."]})

        # serialize bookings per provider
        Provider.objects.select_for_update().filter(pk=provider.pk).first()
        if provider_has_overlap(provider_id=provider.pk, start=scheduled_at, duration_minutes=duration_minutes):
            raise ConflictError(PROVIDER_BUSY)

        appointment = Appointment.objects.create(
            facility_id=patient.facility_id,
            patient=patient,
            provider=provider,
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
            reason=reason or "",
            created_by_id=ctx.actor_id,
        )

        when = timezone.localtime(scheduled_at).strftime("%Y-%m-%d %H:%M")
        notify_on_commit(
            ctx,
            [patient.user],
            NotificationPayload(
                type=NotificationType.APPOINTMENT,
                title="Appointment scheduled",
                message=f"Your appointment with {provider.full_name} is scheduled for {when}.",
            ),
        )
        notify_on_commit(
            ctx,
            [provider.user],
            NotificationPayload(
                type=NotificationType.APPOINTMENT,
                title="New appointment",
                message=f"A new appointment with {patient.full_name} is scheduled for {when}.",
            ),
        )
        return appointment

    @staticmethod
    @transaction.atomic
    @audited("APPOINTMENT_UPDATED", APPOINTMENT, details=_details)
    def update_appointment(*, ctx: RequestContext, appointment: Appointment, data: dict) -> Appointment:
        if appointment.status in CLOSED_STATUSES:
            raise ValidationError({"status": [f"Appointment is already {appointment.status.lower()}."]})

        updates = {k: v for k, v in (data or {}).items() if k in UPDATABLE_FIELDS}
        if updates.get("status") == AppointmentStatus.CANCELLED:
            raise ValidationError({"status": ["Use the cancel action to cancel an appointment."]})

        if "scheduled_at" in updates or "duration_minutes" in updates:
            start = updates.get("scheduled_at", appointment.scheduled_at)
            duration = updates.get("duration_minutes", appointment.duration_minutes)
            if "scheduled_at" in updates and start <= timezone.now():
                raise ValidationError({"scheduled_at": ["Appointments must be scheduled in the future."]})

            Provider.objects.select_for_update().filter(pk=appointment.provider_id).first()
            if provider_has_overlap(
                provider_id=appointment.provider_id,
                start=start,
                duration_minutes=duration,
                exclude_id=appointment.pk,
            ):
                raise ConflictError(PROVIDER_BUSY)

        for k, v in updates.items():
            setattr(appointment, k, v)
        appointment.save()
        return appointment

    @staticmethod
    @transaction.atomic
    @audited("APPOINTMENT_CANCELLED", APPOINTMENT, details=_details)
    def cancel_appointment(*, ctx: RequestContext, appointment: Appointment, reason: str = "") -> Appointment:
        if appointment.status in CLOSED_STATUSES:
            raise ValidationError({"status": [f"Appointment is already {appointment.status.lower()}."]})

        appointment.status = AppointmentStatus.CANCELLED
        appointment.cancellation_reason = reason or ""
        appointment.cancelled_at = timezone.now()
        appointment.save(update_fields=["status", "cancellation_reason", "cancelled_at", "updated_at"])
        return appointment
