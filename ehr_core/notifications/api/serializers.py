# ehr_core/notifications/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from ehr_core.iam.models import Role
from ehr_core.notifications.models import Notification, NotificationPriority, NotificationType


class NotificationSerializer(serializers.ModelSerializer):
    recipient_id = serializers.IntegerField(read_only=True)
    sender_id = serializers.IntegerField(read_only=True, allow_null=True)
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = Notification
        fields = [
            "id",
            "recipient_id",
            "sender_id",
            "type",
            "priority",
            "title",
            "message",
            "action_url",
            "is_read",
            "read_at",
            "expires_at",
            "is_expired",
            "created_at",
        ]
        read_only_fields = fields


class _PayloadFields(serializers.Serializer):
    title = serializers.CharField(max_length=200, trim_whitespace=True)
    message = serializers.CharField(max_length=1000, trim_whitespace=True)
    type = serializers.ChoiceField(choices=NotificationType.choices)
    priority = serializers.ChoiceField(
        choices=NotificationPriority.choices, required=False, default=NotificationPriority.MEDIUM
    )
    action_url = serializers.URLField(required=False, allow_blank=True, default="")
    expires_at = serializers.DateTimeField(required=False, allow_null=True, default=None)
    send_email = serializers.BooleanField(required=False, default=False)
    send_sms = serializers.BooleanField(required=False, default=False)


class NotificationCreateSerializer(_PayloadFields):
    recipient_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), min_length=1)


class BulkNotificationSerializer(_PayloadFields):
    target_role = serializers.ChoiceField(choices=Role.choices, required=False, allow_null=True, default=None)
    facility_id = serializers.UUIDField(required=False, allow_null=True, default=None)


class ChannelErrorSerializer(serializers.Serializer):
    recipient_id = serializers.IntegerField()
    channel = serializers.CharField()
    reason = serializers.CharField()


class DispatchResultSerializer(serializers.Serializer):
    count = serializers.SerializerMethodField()
    notifications = NotificationSerializer(source="created", many=True)
    channel_errors = ChannelErrorSerializer(many=True)

    def get_count(self, obj) -> int:
        return len(obj.created)
