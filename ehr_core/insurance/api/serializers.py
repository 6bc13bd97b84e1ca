# ehr_core/insurance/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from ehr_core.insurance.models import ClaimStatus, InsuranceClaim, InsurancePolicy


class InsurancePolicyCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    policy_number = serializers.CharField(max_length=64)
    payer_name = serializers.CharField(max_length=255)
    plan_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    coverage_start = serializers.DateField()
    coverage_end = serializers.DateField(required=False, allow_null=True, default=None)
    is_active = serializers.BooleanField(required=False, default=True)


class InsurancePolicyUpdateSerializer(serializers.Serializer):
    payer_name = serializers.CharField(max_length=255, required=False)
    plan_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    coverage_start = serializers.DateField(required=False)
    coverage_end = serializers.DateField(required=False, allow_null=True)
    is_active = serializers.BooleanField(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs


class InsurancePolicySerializer(serializers.ModelSerializer):
    patient_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = InsurancePolicy
        fields = [
            "id",
            "patient_id",
            "policy_number",
            "payer_name",
            "plan_name",
            "coverage_start",
            "coverage_end",
            "is_active",
            "deactivated_at",
            "deactivation_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PolicyDeactivateSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class EligibilitySerializer(serializers.Serializer):
    policy_id = serializers.UUIDField()
    service_date = serializers.DateField()
    is_eligible = serializers.BooleanField()
    coverage_start = serializers.DateField()
    coverage_end = serializers.DateField(allow_null=True)
    errors = serializers.ListField(child=serializers.CharField())


class InsuranceClaimCreateSerializer(serializers.Serializer):
    policy_id = serializers.UUIDField()
    claim_number = serializers.CharField(max_length=64)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    service_date = serializers.DateField()
    description = serializers.CharField(required=False, allow_blank=True, default="")


class InsuranceClaimUpdateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    service_date = serializers.DateField(required=False)
    description = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs


class ClaimStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ClaimStatus.choices)


class InsuranceClaimSerializer(serializers.ModelSerializer):
    policy_id = serializers.UUIDField(read_only=True)
    policy_number = serializers.CharField(source="policy.policy_number", read_only=True)

    class Meta:
        model = InsuranceClaim
        fields = [
            "id",
            "policy_id",
            "policy_number",
            "claim_number",
            "amount",
            "status",
            "service_date",
            "description",
            "status_changed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
