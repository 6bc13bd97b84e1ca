from django.contrib import admin

from ehr_core.appointments.models import Appointment


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ("scheduled_at", "patient", "provider", "status", "facility")
    list_filter = ("facility", "status")
    search_fields = ("patient__full_name", "patient__mrn", "provider__full_name")
    ordering = ("-scheduled_at",)
