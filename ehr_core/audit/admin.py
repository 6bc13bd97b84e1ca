from django.contrib import admin

from ehr_core.audit.models import AuditEvent


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = (
        "action",
        "resource_type",
        "resource_id",
        "facility",
        "actor",
        "created_at",
    )
    list_filter = ("facility", "action", "resource_type")
    search_fields = ("action", "resource_type", "resource_id")
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
