# ehr_core/audit/api/serializers.py
from rest_framework import serializers

from ehr_core.audit.models import AuditEvent


class AuditEventSerializer(serializers.ModelSerializer):
    # Keep API field name "timestamp", mapped to created_at
    timestamp = serializers.DateTimeField(source="created_at", read_only=True)
    actor_id = serializers.IntegerField(read_only=True)
    actor_username = serializers.SerializerMethodField()

    class Meta:
        model = AuditEvent
        fields = [
            "id",
            "actor_id",
            "actor_username",
            "action",
            "resource_type",
            "resource_id",
            "details",
            "ip_address",
            "user_agent",
            "facility_id",
            "timestamp",
        ]
        read_only_fields = fields

    def get_actor_username(self, obj) -> str | None:
        return obj.actor.get_username() if obj.actor_id else None
