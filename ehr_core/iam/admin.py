# ehr_core/iam/admin.py
from __future__ import annotations

from django.contrib import admin

from ehr_core.iam.models import UserProfile


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "facility", "status", "deleted_at", "created_at")
    list_filter = ("role", "status", "facility")
    search_fields = ("user__username", "user__email")
    raw_id_fields = ("user",)
    ordering = ("-created_at",)
    readonly_fields = ("deactivated_at", "deleted_at", "created_at", "updated_at")
