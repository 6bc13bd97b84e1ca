from django.contrib import admin

from ehr_core.clinical.models import MedicalRecord


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ("record_number", "record_type", "title", "patient", "author", "created_at")
    list_filter = ("record_type",)
    search_fields = ("record_number", "title", "patient__mrn")
    ordering = ("-created_at",)
