from django.contrib import admin

from ehr_core.insurance.models import InsuranceClaim, InsurancePolicy


@admin.register(InsurancePolicy)
class InsurancePolicyAdmin(admin.ModelAdmin):
    list_display = ("policy_number", "payer_name", "patient", "is_active", "coverage_start", "coverage_end")
    list_filter = ("is_active", "payer_name")
    search_fields = ("policy_number", "payer_name", "patient__full_name", "patient__mrn")
    raw_id_fields = ("patient",)


@admin.register(InsuranceClaim)
class InsuranceClaimAdmin(admin.ModelAdmin):
    list_display = ("claim_number", "policy", "amount", "status", "service_date")
    list_filter = ("status",)
    search_fields = ("claim_number", "policy__policy_number")
    raw_id_fields = ("policy",)
