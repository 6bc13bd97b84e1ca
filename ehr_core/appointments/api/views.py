# ehr_core/appointments/api/views.py
from __future__ import annotations

from django.utils.dateparse import parse_datetime
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError

from ehr_core.access.guard import guard, raise_for_result
from ehr_core.access.mixins import GuardedViewSetMixin
from ehr_core.access.policy import APPOINTMENT, PATIENT, PROVIDER
from ehr_core.appointments.api.serializers import (
    AppointmentCancelSerializer,
    AppointmentCreateSerializer,
    AppointmentSerializer,
    AppointmentUpdateSerializer,
)
from ehr_core.appointments.models import Appointment
from ehr_core.appointments.selectors import filter_appointments
from ehr_core.appointments.services import AppointmentService
from ehr_core.common.api.pagination import paginate
from ehr_core.common.api.responses import envelope


def _datetime_param(request, name: str):
    raw = request.query_params.get(name)
    if not raw:
        return None
    value = parse_datetime(raw)
    if value is None:
        raise ValidationError({name: ["Invalid datetime (ISO 8601 expected)."]})
    return value


class AppointmentViewSet(GuardedViewSetMixin, viewsets.ViewSet):
    resource_type = APPOINTMENT

    serializer_class = AppointmentSerializer
    queryset = Appointment.objects.none()

    @extend_schema(tags=["Appointments"], responses={200: AppointmentSerializer(many=True)})
    def list(self, request):
        qs = filter_appointments(
            self.scoped(Appointment.objects.all()),
            status=request.query_params.get("status") or None,
            patient_id=request.query_params.get("patient_id") or None,
            provider_id=request.query_params.get("provider_id") or None,
            date_from=_datetime_param(request, "date_from"),
            date_to=_datetime_param(request, "date_to"),
        )
        return paginate(request, qs, AppointmentSerializer, message="Appointments retrieved successfully")

    @extend_schema(tags=["Appointments"], request=AppointmentCreateSerializer, responses={201: AppointmentSerializer})
    def create(self, request):
        ser = AppointmentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)

        ctx = self.ctx()
        patient = raise_for_result(guard(ctx.actor, PATIENT, data.pop("patient_id")))
        provider = raise_for_result(guard(ctx.actor, PROVIDER, data.pop("provider_id")))

        appointment = AppointmentService.create_appointment(ctx=ctx, patient=patient, provider=provider, **data)
        return envelope(
            AppointmentSerializer(appointment).data,
            message="Appointment created successfully",
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(tags=["Appointments"], responses={200: AppointmentSerializer})
    def retrieve(self, request, pk=None):
        appointment = self.guarded_object()
        return envelope(AppointmentSerializer(appointment).data, message="Appointment retrieved successfully")

    @extend_schema(tags=["Appointments"], request=AppointmentUpdateSerializer, responses={200: AppointmentSerializer})
    def partial_update(self, request, pk=None):
        appointment = self.guarded_object()

        ser = AppointmentUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        appointment = AppointmentService.update_appointment(
            ctx=self.ctx(), appointment=appointment, data=ser.validated_data
        )
        return envelope(AppointmentSerializer(appointment).data, message="Appointment updated successfully")

    @extend_schema(tags=["Appointments"], request=AppointmentCancelSerializer, responses={200: AppointmentSerializer})
    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        appointment = self.guarded_object()

        ser = AppointmentCancelSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        appointment = AppointmentService.cancel_appointment(
            ctx=self.ctx(), appointment=appointment, reason=ser.validated_data["reason"]
        )
        return envelope(AppointmentSerializer(appointment).data, message="Appointment cancelled successfully")
