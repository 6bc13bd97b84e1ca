# ehr_core/insurance/api/views.py
from __future__ import annotations

from django.utils.dateparse import parse_date
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError

from ehr_core.access.guard import guard, raise_for_result
from ehr_core.access.mixins import GuardedViewSetMixin
from ehr_core.access.policy import INSURANCE_CLAIM, INSURANCE_POLICY, PATIENT
from ehr_core.common.api.pagination import paginate
from ehr_core.common.api.responses import envelope
from ehr_core.insurance.api.serializers import (
    ClaimStatusSerializer,
    EligibilitySerializer,
    InsuranceClaimCreateSerializer,
    InsuranceClaimSerializer,
    InsuranceClaimUpdateSerializer,
    InsurancePolicyCreateSerializer,
    InsurancePolicySerializer,
    InsurancePolicyUpdateSerializer,
    PolicyDeactivateSerializer,
)
from ehr_core.insurance.models import InsuranceClaim, InsurancePolicy
from ehr_core.insurance.selectors import filter_claims, filter_policies
from ehr_core.insurance.services import InsuranceClaimService, InsurancePolicyService


def _bool_param(raw: str | None) -> bool | None:
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes")


class InsurancePolicyViewSet(GuardedViewSetMixin, viewsets.ViewSet):
    resource_type = INSURANCE_POLICY

    serializer_class = InsurancePolicySerializer
    queryset = InsurancePolicy.objects.none()

    @extend_schema(tags=["Insurance"], responses={200: InsurancePolicySerializer(many=True)})
    def list(self, request):
        qs = filter_policies(
            self.scoped(InsurancePolicy.objects.all()),
            patient_id=request.query_params.get("patient_id") or None,
            is_active=_bool_param(request.query_params.get("is_active")),
            q=request.query_params.get("q"),
        )
        return paginate(request, qs, InsurancePolicySerializer, message="Insurance policies retrieved successfully")

    @extend_schema(tags=["Insurance"], request=InsurancePolicyCreateSerializer, responses={201: InsurancePolicySerializer})
    def create(self, request):
        ser = InsurancePolicyCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)

        ctx = self.ctx()
        patient = raise_for_result(guard(ctx.actor, PATIENT, data.pop("patient_id")))

        policy = InsurancePolicyService.create_policy(ctx=ctx, patient=patient, **data)
        return envelope(
            InsurancePolicySerializer(policy).data,
            message="Insurance policy created successfully",
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(tags=["Insurance"], responses={200: InsurancePolicySerializer})
    def retrieve(self, request, pk=None):
        policy = self.guarded_object()
        return envelope(InsurancePolicySerializer(policy).data, message="Insurance policy retrieved successfully")

    @extend_schema(tags=["Insurance"], request=InsurancePolicyUpdateSerializer, responses={200: InsurancePolicySerializer})
    def partial_update(self, request, pk=None):
        policy = self.guarded_object()

        ser = InsurancePolicyUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        policy = InsurancePolicyService.update_policy(ctx=self.ctx(), policy=policy, data=ser.validated_data)
        return envelope(InsurancePolicySerializer(policy).data, message="Insurance policy updated successfully")

    @extend_schema(tags=["Insurance"], request=PolicyDeactivateSerializer, responses={200: InsurancePolicySerializer})
    @action(detail=True, methods=["patch", "post"], url_path="deactivate")
    def deactivate(self, request, pk=None):
        policy = self.guarded_object()

        ser = PolicyDeactivateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        policy = InsurancePolicyService.deactivate_policy(ctx=self.ctx(), policy=policy, reason=ser.validated_data["reason"])
        return envelope(InsurancePolicySerializer(policy).data, message="Insurance policy deactivated successfully")

    @extend_schema(
        tags=["Insurance"],
        request=None,
        responses={200: EligibilitySerializer},
        parameters=[OpenApiParameter("service_date", OpenApiTypes.DATE, OpenApiParameter.QUERY, required=False)],
    )
    @action(detail=True, methods=["post"], url_path="verify")
    def verify(self, request, pk=None):
        policy = self.guarded_object()

        raw = request.query_params.get("service_date") or request.data.get("service_date")
        service_date = None
        if raw:
            service_date = parse_date(str(raw))
            if service_date is None:
                raise ValidationError({"service_date": ["Use YYYY-MM-DD."]})

        result = InsurancePolicyService.verify_eligibility(ctx=self.ctx(), policy=policy, service_date=service_date)
        return envelope(EligibilitySerializer(result).data, message="Insurance eligibility verified successfully")


class InsuranceClaimViewSet(GuardedViewSetMixin, viewsets.ViewSet):
    resource_type = INSURANCE_CLAIM

    serializer_class = InsuranceClaimSerializer
    queryset = InsuranceClaim.objects.none()

    @extend_schema(tags=["Insurance"], responses={200: InsuranceClaimSerializer(many=True)})
    def list(self, request):
        qs = filter_claims(
            self.scoped(InsuranceClaim.objects.all()),
            policy_id=request.query_params.get("policy_id") or None,
            patient_id=request.query_params.get("patient_id") or None,
            status=request.query_params.get("status") or None,
        )
        return paginate(request, qs, InsuranceClaimSerializer, message="Insurance claims retrieved successfully")

    @extend_schema(tags=["Insurance"], request=InsuranceClaimCreateSerializer, responses={201: InsuranceClaimSerializer})
    def create(self, request):
        ser = InsuranceClaimCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)

        ctx = self.ctx()
        policy = raise_for_result(guard(ctx.actor, INSURANCE_POLICY, data.pop("policy_id")))

        claim = InsuranceClaimService.create_claim(ctx=ctx, policy=policy, **data)
        return envelope(
            InsuranceClaimSerializer(claim).data,
            message="Insurance claim created successfully",
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(tags=["Insurance"], responses={200: InsuranceClaimSerializer})
    def retrieve(self, request, pk=None):
        claim = self.guarded_object()
        return envelope(InsuranceClaimSerializer(claim).data, message="Insurance claim retrieved successfully")

    @extend_schema(tags=["Insurance"], request=InsuranceClaimUpdateSerializer, responses={200: InsuranceClaimSerializer})
    def partial_update(self, request, pk=None):
        claim = self.guarded_object()

        ser = InsuranceClaimUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        claim = InsuranceClaimService.update_claim(ctx=self.ctx(), claim=claim, data=ser.validated_data)
        return envelope(InsuranceClaimSerializer(claim).data, message="Insurance claim updated successfully")

    @extend_schema(tags=["Insurance"], request=ClaimStatusSerializer, responses={200: InsuranceClaimSerializer})
    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        claim = self.guarded_object()

        ser = ClaimStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        claim = InsuranceClaimService.set_status(ctx=self.ctx(), claim=claim, status=ser.validated_data["status"])
        return envelope(InsuranceClaimSerializer(claim).data, message="Claim status updated successfully")
