# ehr_core/access/resources.py
"""
Where each protected resource keeps its owner and facility.

Paths are Django lookup paths ("patient__facility_id"), used both to project a
fetched instance and to filter list querysets, so detail and list scoping come
from the same declaration.
"""
from __future__ import annotations

from dataclasses import dataclass

from django.apps import apps
from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist
from django.db.models import Q, QuerySet

from ehr_core.access import policy
from ehr_core.access.policy import ListScope, ResourceDescriptor


@dataclass(frozen=True)
class ResourceSpec:
    resource_type: str
    model: str
    facility_path: str
    owner_path: str | None = None
    role_path: str | None = None
    select_related: tuple[str, ...] = ()

    def get_model(self):
        return apps.get_model(self.model)

    def queryset(self) -> QuerySet:
        qs = self.get_model()._default_manager.all()
        if self.select_related:
            qs = qs.select_related(*self.select_related)
        return qs

    def describe(self, instance) -> ResourceDescriptor:
        return ResourceDescriptor(
            resource_type=self.resource_type,
            id=instance.pk,
            owner_user_id=resolve_path(instance, self.owner_path),
            facility_id=resolve_path(instance, self.facility_path),
            target_role=resolve_path(instance, self.role_path),
        )

    def scope_filter(self, scope: ListScope) -> Q | None:
        """
        Q for rows visible under `scope`; None means "no restriction".
        An empty scope yields a filter that matches nothing.
        """
        if scope.everything:
            return None
        q = Q(pk__in=[])
        if scope.facility_id is not None:
            q |= Q(**{self.facility_path: scope.facility_id})
        if scope.owner_user_id is not None and self.owner_path:
            q |= Q(**{self.owner_path: scope.owner_user_id})
        return q


def resolve_path(instance, path: str | None):
    """Follow a `a__b__c` lookup path across already-loaded relations."""
    if not path:
        return None
    value = instance
    for part in path.split("__"):
        if value is None:
            return None
        try:
            value = getattr(value, part)
        except ObjectDoesNotExist:
            return None
    return value


REGISTRY: dict[str, ResourceSpec] = {
    policy.PATIENT: ResourceSpec(
        policy.PATIENT,
        "patients.Patient",
        facility_path="facility_id",
        owner_path="user_id",
    ),
    policy.MEDICAL_RECORD: ResourceSpec(
        policy.MEDICAL_RECORD,
        "clinical.MedicalRecord",
        facility_path="patient__facility_id",
        owner_path="patient__user_id",
        select_related=("patient",),
    ),
    policy.INSURANCE_POLICY: ResourceSpec(
        policy.INSURANCE_POLICY,
        "insurance.InsurancePolicy",
        facility_path="patient__facility_id",
        owner_path="patient__user_id",
        select_related=("patient",),
    ),
    policy.INSURANCE_CLAIM: ResourceSpec(
        policy.INSURANCE_CLAIM,
        "insurance.InsuranceClaim",
        facility_path="policy__patient__facility_id",
        owner_path="policy__patient__user_id",
        select_related=("policy__patient",),
    ),
    policy.APPOINTMENT: ResourceSpec(
        policy.APPOINTMENT,
        "appointments.Appointment",
        facility_path="facility_id",
        owner_path="patient__user_id",
        select_related=("patient", "provider"),
    ),
    policy.PROVIDER: ResourceSpec(
        policy.PROVIDER,
        "providers.Provider",
        facility_path="facility_id",
        owner_path="user_id",
        select_related=("user",),
    ),
    policy.NOTIFICATION: ResourceSpec(
        policy.NOTIFICATION,
        "notifications.Notification",
        facility_path="recipient__ehr_profile__facility_id",
        owner_path="recipient_id",
        select_related=("recipient__ehr_profile",),
    ),
    policy.USER: ResourceSpec(
        policy.USER,
        settings.AUTH_USER_MODEL,
        facility_path="ehr_profile__facility_id",
        owner_path="id",
        role_path="ehr_profile__role",
        select_related=("ehr_profile",),
    ),
}


def get_spec(resource_type: str) -> ResourceSpec:
    try:
        return REGISTRY[resource_type]
    except KeyError:
        raise LookupError(f"Unknown resource type: {resource_type}")


def describe(resource_type: str, instance) -> ResourceDescriptor:
    return get_spec(resource_type).describe(instance)


def scope_queryset(actor, resource_type: str, qs: QuerySet) -> QuerySet:
    """Restrict a list queryset to what `actor` may see."""
    spec = get_spec(resource_type)
    q = spec.scope_filter(policy.list_scope(actor, resource_type))
    if q is None:
        return qs
    return qs.filter(q)
