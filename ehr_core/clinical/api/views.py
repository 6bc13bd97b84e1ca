# ehr_core/clinical/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets

from ehr_core.access.guard import guard, raise_for_result
from ehr_core.access.mixins import GuardedViewSetMixin
from ehr_core.access.policy import MEDICAL_RECORD, PATIENT
from ehr_core.clinical.api.serializers import (
    MedicalRecordCreateSerializer,
    MedicalRecordSerializer,
    MedicalRecordUpdateSerializer,
)
from ehr_core.clinical.models import MedicalRecord
from ehr_core.clinical.selectors import filter_records
from ehr_core.clinical.services import MedicalRecordService
from ehr_core.common.api.pagination import paginate
from ehr_core.common.api.responses import envelope


class MedicalRecordViewSet(GuardedViewSetMixin, viewsets.ViewSet):
    resource_type = MEDICAL_RECORD

    serializer_class = MedicalRecordSerializer
    queryset = MedicalRecord.objects.none()

    @extend_schema(tags=["Clinical"], responses={200: MedicalRecordSerializer(many=True)})
    def list(self, request):
        qs = filter_records(
            self.scoped(MedicalRecord.objects.all()),
            patient_id=request.query_params.get("patient_id") or None,
            record_type=request.query_params.get("record_type") or None,
        )
        return paginate(request, qs, MedicalRecordSerializer, message="Medical records retrieved successfully")

    @extend_schema(tags=["Clinical"], request=MedicalRecordCreateSerializer, responses={201: MedicalRecordSerializer})
    def create(self, request):
        ser = MedicalRecordCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)

        ctx = self.ctx()
        patient = raise_for_result(guard(ctx.actor, PATIENT, data.pop("patient_id")))

        record = MedicalRecordService.create_record(ctx=ctx, patient=patient, **data)
        return envelope(
            MedicalRecordSerializer(record).data,
            message="Medical record created successfully",
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(tags=["Clinical"], responses={200: MedicalRecordSerializer})
    def retrieve(self, request, pk=None):
        record = self.guarded_object()
        record = MedicalRecordService.view_record(ctx=self.ctx(), record=record)
        return envelope(MedicalRecordSerializer(record).data, message="Medical record retrieved successfully")

    @extend_schema(tags=["Clinical"], request=MedicalRecordUpdateSerializer, responses={200: MedicalRecordSerializer})
    def partial_update(self, request, pk=None):
        record = self.guarded_object()

        ser = MedicalRecordUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        record = MedicalRecordService.update_record(ctx=self.ctx(), record=record, data=ser.validated_data)
        return envelope(MedicalRecordSerializer(record).data, message="Medical record updated successfully")

    @extend_schema(tags=["Clinical"], responses={200: None})
    def destroy(self, request, pk=None):
        record = self.guarded_object()
        MedicalRecordService.delete_record(ctx=self.ctx(), record=record)
        return envelope(message="Medical record deleted successfully")
