from django.contrib import admin

from ehr_core.providers.models import Provider


@admin.register(Provider)
class ProviderAdmin(admin.ModelAdmin):
    list_display = ("full_name", "provider_number", "provider_type", "specialization", "facility")
    list_filter = ("facility", "provider_type")
    search_fields = ("full_name", "provider_number", "license_number")
    ordering = ("full_name",)
