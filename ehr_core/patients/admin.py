from django.contrib import admin

from ehr_core.patients.models import Patient


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ("full_name", "mrn", "facility", "created_at")
    list_filter = ("facility",)
    search_fields = ("full_name", "mrn")
    ordering = ("-created_at",)
