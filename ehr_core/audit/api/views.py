# ehr_core/audit/api/views.py
from __future__ import annotations

from django.utils import timezone
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from ehr_core.access.guard import guard, raise_for_result
from ehr_core.access.permissions import SuperAdminOrAdmin
from ehr_core.access.policy import PATIENT, USER
from ehr_core.access.resources import REGISTRY
from ehr_core.audit.api.serializers import AuditEventSerializer
from ehr_core.audit.filters import AuditEventFilter
from ehr_core.audit.hooks import entry_for
from ehr_core.audit.models import AuditEvent
from ehr_core.audit.recorder import recorder
from ehr_core.audit.selectors import (
    activity_stats,
    audit_events_visible_to,
    patient_access_history,
    resource_activity,
    user_activity_summary,
)
from ehr_core.common.api.pagination import paginate
from ehr_core.common.api.responses import envelope
from ehr_core.common.context import RequestContext
from ehr_core.iam.identity import current_actor

# rows per export download
EXPORT_LIMIT = 10000

_FILTER_PARAMS = [
    OpenApiParameter("actor_id", OpenApiTypes.INT, OpenApiParameter.QUERY, required=False),
    OpenApiParameter("action", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False,
                     description="e.g. PATIENT_CREATED, USER_DEACTIVATED"),
    OpenApiParameter("resource_type", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False,
                     description="e.g. Patient, MedicalRecord, Notification"),
    OpenApiParameter("resource_id", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
    OpenApiParameter("date_from", OpenApiTypes.DATETIME, OpenApiParameter.QUERY, required=False),
    OpenApiParameter("date_to", OpenApiTypes.DATETIME, OpenApiParameter.QUERY, required=False),
]


class AuditEventViewSet(viewsets.GenericViewSet):
    """
    Read-only audit trail.
    """
    permission_classes = [SuperAdminOrAdmin]

    serializer_class = AuditEventSerializer
    queryset = AuditEvent.objects.none()

    def _filtered(self, request):
        f = AuditEventFilter(request.query_params, queryset=audit_events_visible_to(current_actor(request)))
        if not f.is_valid():
            raise ValidationError(f.errors)
        return f.qs

    @extend_schema(
        tags=["Audit"],
        responses={200: AuditEventSerializer(many=True)},
        parameters=[
            *_FILTER_PARAMS,
            OpenApiParameter("page", OpenApiTypes.INT, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("limit", OpenApiTypes.INT, OpenApiParameter.QUERY, required=False),
        ],
    )
    def list(self, request):
        return paginate(
            request,
            self._filtered(request).order_by("-created_at"),
            AuditEventSerializer,
            message="Audit logs retrieved successfully",
        )

    @extend_schema(
        tags=["Audit"],
        responses={200: AuditEventSerializer(many=True)},
        parameters=[
            OpenApiParameter("resource_type", OpenApiTypes.STR, OpenApiParameter.QUERY, required=True),
            OpenApiParameter("resource_id", OpenApiTypes.STR, OpenApiParameter.QUERY, required=True),
        ],
    )
    @action(detail=False, methods=["get"], url_path="resource")
    def resource(self, request):
        """
        Activity history of one resource. The caller must be able to see the
        resource itself.
        """
        resource_type = request.query_params.get("resource_type") or ""
        resource_id = request.query_params.get("resource_id") or ""
        if resource_type not in REGISTRY or not resource_id:
            raise ValidationError({"detail": "resource_type and resource_id are required."})

        raise_for_result(guard(current_actor(request), resource_type, resource_id))

        return paginate(
            request,
            resource_activity(resource_type=resource_type, resource_id=resource_id),
            AuditEventSerializer,
            message="Resource activity retrieved successfully",
        )

    @extend_schema(tags=["Audit"], responses={200: None}, parameters=_FILTER_PARAMS)
    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        """Counts by action and resource type over the filtered trail."""
        return envelope(activity_stats(self._filtered(request)), message="Audit statistics retrieved successfully")

    @extend_schema(tags=["Audit"], responses={200: AuditEventSerializer(many=True)}, parameters=_FILTER_PARAMS)
    @action(detail=False, methods=["get"], url_path="export")
    def export(self, request):
        qs = self._filtered(request).order_by("-created_at")[:EXPORT_LIMIT]
        filename = f"audit_events_{timezone.localdate().isoformat()}.json"
        return Response(
            AuditEventSerializer(qs, many=True).data,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @extend_schema(
        tags=["Audit"],
        responses={200: AuditEventSerializer(many=True)},
        parameters=[OpenApiParameter("patient_id", OpenApiTypes.UUID, OpenApiParameter.QUERY, required=True)],
    )
    @action(detail=False, methods=["get"], url_path="patient-access")
    def patient_access(self, request):
        """Who touched this patient's chart, records, appointments and insurance."""
        patient_id = request.query_params.get("patient_id") or ""
        if not patient_id:
            raise ValidationError({"patient_id": ["This parameter is required."]})

        ctx = RequestContext.from_request(request)
        patient = raise_for_result(guard(ctx.actor, PATIENT, patient_id))
        recorder.record(ctx, entry_for("PATIENT_ACCESS_HISTORY_VIEWED", PATIENT, patient, lambda p: {"mrn": p.mrn}))

        return paginate(
            request,
            patient_access_history(patient),
            AuditEventSerializer,
            message="Patient access history retrieved successfully",
        )

    @extend_schema(
        tags=["Audit"],
        responses={200: None},
        parameters=[
            OpenApiParameter("user_id", OpenApiTypes.INT, OpenApiParameter.QUERY, required=True),
            OpenApiParameter("date_from", OpenApiTypes.DATETIME, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("date_to", OpenApiTypes.DATETIME, OpenApiParameter.QUERY, required=False),
        ],
    )
    @action(detail=False, methods=["get"], url_path="user-activity")
    def user_activity(self, request):
        raw = request.query_params.get("user_id") or ""
        if not raw.isdigit():
            raise ValidationError({"user_id": ["A numeric user_id is required."]})
        user_id = int(raw)

        actor = current_actor(request)
        raise_for_result(guard(actor, USER, user_id))

        summary = user_activity_summary(self._filtered(request), user_id=user_id)
        summary["recent"] = AuditEventSerializer(summary["recent"], many=True).data
        return envelope(summary, message="User activity summary retrieved successfully")
