# ehr_core/providers/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from ehr_core.iam.identity import Actor
from ehr_core.iam.roles import ROLE_PATIENT
from ehr_core.providers.models import Provider, ProviderType


class PublicProviderSerializer(serializers.ModelSerializer):
    """What patients see: no licensing or contact details."""

    facility_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Provider
        fields = [
            "id",
            "facility_id",
            "provider_number",
            "full_name",
            "provider_type",
            "specialization",
            "years_of_experience",
            "bio",
            "is_accepting_patients",
        ]
        read_only_fields = fields


class FullProviderSerializer(PublicProviderSerializer):
    user_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta(PublicProviderSerializer.Meta):
        fields = PublicProviderSerializer.Meta.fields + [
            "user_id",
            "license_number",
            "phone",
            "email",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


def provider_serializer_for(actor: Actor):
    if actor.role == ROLE_PATIENT:
        return PublicProviderSerializer
    return FullProviderSerializer


class ProviderCreateSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=255)
    license_number = serializers.CharField(max_length=64)
    facility_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    user_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    provider_type = serializers.ChoiceField(choices=ProviderType.choices, required=False, default=ProviderType.PHYSICIAN)
    specialization = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    years_of_experience = serializers.IntegerField(min_value=0, max_value=80, required=False, default=0)
    bio = serializers.CharField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    is_accepting_patients = serializers.BooleanField(required=False, default=True)


class ProviderUpdateSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=255, required=False)
    license_number = serializers.CharField(max_length=64, required=False)
    user_id = serializers.IntegerField(required=False, allow_null=True)
    provider_type = serializers.ChoiceField(choices=ProviderType.choices, required=False)
    specialization = serializers.CharField(max_length=128, required=False, allow_blank=True)
    years_of_experience = serializers.IntegerField(min_value=0, max_value=80, required=False)
    bio = serializers.CharField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    is_accepting_patients = serializers.BooleanField(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs
