from django.contrib import admin

from ehr_core.notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("title", "type", "priority", "recipient", "is_read", "created_at")
    list_filter = ("type", "priority", "is_read")
    search_fields = ("title", "recipient__username")
    readonly_fields = ("created_at", "read_at")
    ordering = ("-created_at",)
