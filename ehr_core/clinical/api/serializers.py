# ehr_core/clinical/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from ehr_core.clinical.models import MedicalRecord, RecordType


class MedicalRecordCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    record_type = serializers.ChoiceField(choices=RecordType.choices)
    title = serializers.CharField(max_length=255)
    content = serializers.CharField(required=False, allow_blank=True, default="")


class MedicalRecordUpdateSerializer(serializers.Serializer):
    record_type = serializers.ChoiceField(choices=RecordType.choices, required=False)
    title = serializers.CharField(max_length=255, required=False)
    content = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs


class MedicalRecordSerializer(serializers.ModelSerializer):
    patient_id = serializers.UUIDField(read_only=True)
    author_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = MedicalRecord
        fields = [
            "id",
            "record_number",
            "patient_id",
            "author_id",
            "record_type",
            "title",
            "content",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
