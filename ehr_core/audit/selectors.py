# ehr_core/audit/selectors.py
from __future__ import annotations

from django.db.models import Count, Max, Min, Q, QuerySet

from ehr_core.access.policy import APPOINTMENT, INSURANCE_CLAIM, INSURANCE_POLICY, MEDICAL_RECORD, PATIENT
from ehr_core.appointments.models import Appointment
from ehr_core.audit.models import AuditEvent
from ehr_core.clinical.models import MedicalRecord
from ehr_core.iam.identity import Actor
from ehr_core.iam.roles import ROLE_ADMIN, ROLE_SUPER_ADMIN
from ehr_core.insurance.models import InsuranceClaim, InsurancePolicy


def audit_events_visible_to(actor: Actor) -> QuerySet[AuditEvent]:
    """
    SUPER_ADMIN: every event.
    ADMIN: events recorded against their own facility.
    Anyone else: nothing.
    """
    qs = AuditEvent.objects.select_related("actor")
    if actor.role == ROLE_SUPER_ADMIN:
        return qs
    if actor.role == ROLE_ADMIN and actor.facility_id:
        return qs.filter(facility_id=actor.facility_id)
    return qs.none()


def resource_activity(*, resource_type: str, resource_id) -> QuerySet[AuditEvent]:
    return (
        AuditEvent.objects.filter(resource_type=resource_type, resource_id=str(resource_id))
        .select_related("actor")
        .order_by("-created_at")
    )


def activity_stats(qs: QuerySet[AuditEvent]) -> dict:
    by_action = qs.order_by().values("action").annotate(n=Count("id"))
    by_resource = qs.order_by().values("resource_type").annotate(n=Count("id"))
    return {
        "total": qs.count(),
        "unique_actors": qs.order_by().exclude(actor_id=None).values("actor_id").distinct().count(),
        "by_action": {row["action"]: row["n"] for row in by_action},
        "by_resource_type": {row["resource_type"]: row["n"] for row in by_resource},
    }


def patient_access_history(patient) -> QuerySet[AuditEvent]:
    """Events on the patient and on everything charted against them."""
    owned = {
        PATIENT: [patient.pk],
        MEDICAL_RECORD: MedicalRecord.objects.filter(patient=patient).values_list("pk", flat=True),
        APPOINTMENT: Appointment.objects.filter(patient=patient).values_list("pk", flat=True),
        INSURANCE_POLICY: InsurancePolicy.objects.filter(patient=patient).values_list("pk", flat=True),
        INSURANCE_CLAIM: InsuranceClaim.objects.filter(policy__patient=patient).values_list("pk", flat=True),
    }
    cond = Q()
    for resource_type, ids in owned.items():
        cond |= Q(resource_type=resource_type, resource_id__in=[str(pk) for pk in ids])
    return AuditEvent.objects.filter(cond).select_related("actor").order_by("-created_at")


def user_activity_summary(qs: QuerySet[AuditEvent], *, user_id: int, recent: int = 20) -> dict:
    qs = qs.filter(actor_id=user_id)
    span = qs.aggregate(first=Min("created_at"), last=Max("created_at"))
    return {
        "user_id": user_id,
        **activity_stats(qs),
        "first_event_at": span["first"],
        "last_event_at": span["last"],
        "recent": list(qs.order_by("-created_at")[:recent]),
    }
