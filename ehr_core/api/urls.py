# ehr_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from ehr_core.appointments.api.views import AppointmentViewSet
from ehr_core.audit.api.views import AuditEventViewSet
from ehr_core.clinical.api.views import MedicalRecordViewSet
from ehr_core.iam.api.auth import LoginView, LogoutView, RefreshView
from ehr_core.iam.api.me import MeView
from ehr_core.iam.api.users import UserViewSet
from ehr_core.insurance.api.views import InsuranceClaimViewSet, InsurancePolicyViewSet
from ehr_core.notifications.api.views import NotificationViewSet
from ehr_core.patients.api.views import PatientViewSet
from ehr_core.providers.api.views import ProviderViewSet

router = DefaultRouter()

router.register(r"users", UserViewSet, basename="users")
router.register(r"patients", PatientViewSet, basename="patients")
router.register(r"providers", ProviderViewSet, basename="providers")
router.register(r"medical-records", MedicalRecordViewSet, basename="medical-records")
router.register(r"appointments", AppointmentViewSet, basename="appointments")
router.register(r"insurance/policies", InsurancePolicyViewSet, basename="insurance-policies")
router.register(r"insurance/claims", InsuranceClaimViewSet, basename="insurance-claims")
router.register(r"notifications", NotificationViewSet, basename="notifications")
router.register(r"audit/events", AuditEventViewSet, basename="audit-events")

urlpatterns = [
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/refresh/", RefreshView.as_view(), name="refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("me/", MeView.as_view(), name="me"),

    # router last so explicit paths win
    *router.urls,
]
