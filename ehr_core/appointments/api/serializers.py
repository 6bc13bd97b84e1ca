# ehr_core/appointments/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from ehr_core.appointments.models import Appointment, AppointmentStatus
from ehr_core.appointments.selectors import MAX_DURATION_MINUTES


class AppointmentCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    provider_id = serializers.UUIDField()
    scheduled_at = serializers.DateTimeField()
    duration_minutes = serializers.IntegerField(min_value=5, max_value=MAX_DURATION_MINUTES, required=False, default=30)
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class AppointmentUpdateSerializer(serializers.Serializer):
    scheduled_at = serializers.DateTimeField(required=False)
    duration_minutes = serializers.IntegerField(min_value=5, max_value=MAX_DURATION_MINUTES, required=False)
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=AppointmentStatus.choices, required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs


class AppointmentCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class AppointmentSerializer(serializers.ModelSerializer):
    facility_id = serializers.UUIDField(read_only=True)
    patient_id = serializers.UUIDField(read_only=True)
    provider_id = serializers.UUIDField(read_only=True)
    patient_name = serializers.CharField(source="patient.full_name", read_only=True)
    provider_name = serializers.CharField(source="provider.full_name", read_only=True)

    class Meta:
        model = Appointment
        fields = [
            "id",
            "facility_id",
            "patient_id",
            "patient_name",
            "provider_id",
            "provider_name",
            "scheduled_at",
            "duration_minutes",
            "status",
            "reason",
            "cancellation_reason",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
