# ehr_core/patients/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets

from ehr_core.access.mixins import GuardedViewSetMixin
from ehr_core.access.policy import PATIENT
from ehr_core.common.api.pagination import paginate
from ehr_core.common.api.responses import envelope
from ehr_core.patients.api.serializers import PatientCreateSerializer, PatientSerializer, PatientUpdateSerializer
from ehr_core.patients.models import Patient
from ehr_core.patients.selectors import search_patients
from ehr_core.patients.services import PatientService


class PatientViewSet(GuardedViewSetMixin, viewsets.ViewSet):
    resource_type = PATIENT

    # these two lines keep spectacular's path param typing right
    serializer_class = PatientSerializer
    queryset = Patient.objects.none()

    @extend_schema(tags=["Patients"], responses={200: PatientSerializer(many=True)})
    def list(self, request):
        q = request.query_params.get("q", "").strip()
        qs = search_patients(self.scoped(Patient.objects.all()), q=q)
        return paginate(request, qs, PatientSerializer, message="Patients retrieved successfully")

    @extend_schema(tags=["Patients"], request=PatientCreateSerializer, responses={201: PatientSerializer})
    def create(self, request):
        ser = PatientCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        patient = PatientService.create_patient(ctx=self.ctx(), **ser.validated_data)
        return envelope(
            PatientSerializer(patient).data,
            message="Patient created successfully",
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(tags=["Patients"], responses={200: PatientSerializer})
    def retrieve(self, request, pk=None):
        patient = self.guarded_object()
        patient = PatientService.view_patient(ctx=self.ctx(), patient=patient)
        return envelope(PatientSerializer(patient).data, message="Patient retrieved successfully")

    @extend_schema(tags=["Patients"], request=PatientUpdateSerializer, responses={200: PatientSerializer})
    def partial_update(self, request, pk=None):
        patient = self.guarded_object()

        ser = PatientUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        patient = PatientService.update_patient(ctx=self.ctx(), patient=patient, data=ser.validated_data)
        return envelope(PatientSerializer(patient).data, message="Patient updated successfully")

    @extend_schema(tags=["Patients"], responses={200: None})
    def destroy(self, request, pk=None):
        patient = self.guarded_object()
        PatientService.delete_patient(ctx=self.ctx(), patient=patient)
        return envelope(message="Patient deleted successfully")
