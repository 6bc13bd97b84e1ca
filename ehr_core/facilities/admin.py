from django.contrib import admin

from ehr_core.facilities.models import Facility


@admin.register(Facility)
class FacilityAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "facility_type", "is_active", "created_at")
    list_filter = ("facility_type", "is_active")
    search_fields = ("name", "code")
    ordering = ("name",)
