# ehr_core/notifications/api/views.py
from __future__ import annotations

from django.conf import settings
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.throttling import ScopedRateThrottle

from ehr_core.access.mixins import GuardedViewSetMixin
from ehr_core.access.policy import NOTIFICATION
from ehr_core.common.api.pagination import paginate
from ehr_core.common.api.responses import envelope
from ehr_core.notifications.api.serializers import (
    BulkNotificationSerializer,
    DispatchResultSerializer,
    NotificationCreateSerializer,
    NotificationSerializer,
)
from ehr_core.notifications.dispatcher import NotificationPayload
from ehr_core.notifications.filters import NotificationFilter
from ehr_core.notifications.models import Notification
from ehr_core.notifications import selectors
from ehr_core.notifications.services import NotificationService


def _payload(data: dict) -> NotificationPayload:
    return NotificationPayload(
        type=data["type"],
        title=data["title"],
        message=data["message"],
        priority=data["priority"],
        action_url=data.get("action_url") or "",
        expires_at=data.get("expires_at"),
    )


class NotificationViewSet(GuardedViewSetMixin, viewsets.GenericViewSet):
    resource_type = NOTIFICATION

    serializer_class = NotificationSerializer
    queryset = Notification.objects.none()

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "notifications"

    @extend_schema(tags=["Notifications"], responses={200: NotificationSerializer(many=True)})
    def list(self, request):
        """The caller's own inbox."""
        qs = selectors.inbox(recipient_id=self.ctx().actor_id)

        f = NotificationFilter(request.query_params, queryset=qs)
        if not f.is_valid():
            raise ValidationError(f.errors)

        return paginate(
            request,
            f.qs.order_by("-created_at"),
            NotificationSerializer,
            message="Notifications retrieved successfully",
        )

    @extend_schema(tags=["Notifications"], request=NotificationCreateSerializer, responses={201: DispatchResultSerializer})
    def create(self, request):
        ser = NotificationCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        result = NotificationService.send_direct(
            ctx=self.ctx(),
            recipient_ids=data["recipient_ids"],
            payload=_payload(data),
            send_email=data["send_email"],
            send_sms=data["send_sms"],
        )
        return envelope(
            DispatchResultSerializer(result).data,
            message="Notifications created successfully",
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(tags=["Notifications"], responses={200: NotificationSerializer})
    def retrieve(self, request, pk=None):
        notification = self.guarded_object()
        return envelope(NotificationSerializer(notification).data, message="Notification retrieved successfully")

    @extend_schema(tags=["Notifications"], responses={200: None})
    def destroy(self, request, pk=None):
        notification = self.guarded_object()
        NotificationService.delete(ctx=self.ctx(), notification=notification)
        return envelope(message="Notification deleted successfully")

    @extend_schema(tags=["Notifications"], request=None, responses={200: NotificationSerializer})
    @action(detail=True, methods=["patch", "post"], url_path="read")
    def mark_read(self, request, pk=None):
        notification = self.guarded_object()
        notification = NotificationService.mark_read(ctx=self.ctx(), notification=notification)
        return envelope(NotificationSerializer(notification).data, message="Notification marked as read")

    @extend_schema(tags=["Notifications"], request=None, responses={200: None})
    @action(detail=False, methods=["patch", "post"], url_path="read-all")
    def mark_all_read(self, request):
        updated = NotificationService.mark_all_read(ctx=self.ctx())
        return envelope({"updated": len(updated)}, message="All notifications marked as read")

    @extend_schema(tags=["Notifications"], responses={200: None})
    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        count = selectors.unread_count(recipient_id=self.ctx().actor_id)
        return envelope({"count": count}, message="Unread count retrieved successfully")

    @extend_schema(tags=["Notifications"], request=BulkNotificationSerializer, responses={201: DispatchResultSerializer})
    @action(detail=False, methods=["post"], url_path="bulk")
    def bulk(self, request):
        ser = BulkNotificationSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        result = NotificationService.send_bulk(
            ctx=self.ctx(),
            payload=_payload(data),
            target_role=data.get("target_role"),
            facility_id=data.get("facility_id"),
            send_email=data["send_email"],
            send_sms=data["send_sms"],
        )
        return envelope(
            DispatchResultSerializer(result).data,
            message=f"Bulk notification sent to {len(result.created)} users",
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        tags=["Notifications"],
        responses={200: None},
        parameters=[OpenApiParameter("days", OpenApiTypes.INT, OpenApiParameter.QUERY, required=False)],
    )
    @action(detail=False, methods=["delete"], url_path="cleanup")
    def cleanup(self, request):
        raw = request.query_params.get("days")
        try:
            days = int(raw) if raw else settings.NOTIFICATION_DEFAULT_TTL_DAYS
        except ValueError:
            raise ValidationError({"days": ["Must be an integer."]})
        if not 1 <= days <= 365:
            raise ValidationError({"days": ["Must be between 1 and 365."]})

        deleted = NotificationService.cleanup(ctx=self.ctx(), days=days)
        return envelope({"deleted": deleted}, message=f"{deleted} old notifications deleted")
