# ehr_core/providers/services.py
from __future__ import annotations

import secrets
from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from rest_framework.exceptions import ValidationError

from ehr_core.access.policy import PROVIDER
from ehr_core.access.scoping import facility_for_create
from ehr_core.audit.hooks import audited
from ehr_core.common.api.exceptions import ConflictError, ForbiddenError
from ehr_core.common.context import RequestContext
from ehr_core.iam.roles import ADMIN_ROLES, ROLE_DOCTOR, ROLE_NURSE, ROLE_PROVIDER
from ehr_core.providers.models import Provider

PROVIDER_USER_ROLES = {ROLE_DOCTOR, ROLE_NURSE, ROLE_PROVIDER}

SELF_EDITABLE_FIELDS = {
    "full_name",
    "specialization",
    "years_of_experience",
    "bio",
    "phone",
    "email",
    "is_accepting_patients",
}
ADMIN_EDITABLE_FIELDS = SELF_EDITABLE_FIELDS | {"license_number", "provider_type", "user_id"}


def _details(p: Provider) -> dict:
    return {"provider_number": p.provider_number}


def generate_provider_number() -> str:
    return f"PRV-{secrets.token_hex(4).upper()}"


def _validate_provider_user(user_id: int | None) -> None:
    if user_id is None:
        return
    User = get_user_model()
    user = User.objects.filter(pk=user_id).select_related("ehr_profile").first()
    profile = getattr(user, "ehr_profile", None) if user else None
    if profile is None or profile.role not in PROVIDER_USER_ROLES:
        raise ValidationError({"user_id": ["Must reference a DOCTOR, NURSE or PROVIDER user."]})


class ProviderService:
    @staticmethod
    @transaction.atomic
    @audited("PROVIDER_CREATED", PROVIDER, details=_details)
    def create_provider(
        *,
        ctx: RequestContext,
        full_name: str,
        license_number: str,
        facility_id: UUID | None = None,
        user_id: int | None = None,
        **fields,
    ) -> Provider:
        facility_id = facility_for_create(ctx.actor, facility_id)
        _validate_provider_user(user_id)

        try:
            with transaction.atomic():
                return Provider.objects.create(
                    facility_id=facility_id,
                    user_id=user_id,
                    full_name=full_name,
                    license_number=license_number,
                    provider_number=generate_provider_number(),
                    **fields,
                )
        except IntegrityError:
            raise ConflictError("A provider with this license number already exists.")

    @staticmethod
    @transaction.atomic
    @audited("PROVIDER_UPDATED", PROVIDER, details=_details)
    def update_provider(*, ctx: RequestContext, provider: Provider, data: dict) -> Provider:
        """
        The caller has already passed can_manage_provider (via the guard).
        Owners edit their public profile; only administrators touch licensing.
        """
        allowed = ADMIN_EDITABLE_FIELDS if ctx.actor.role in ADMIN_ROLES else SELF_EDITABLE_FIELDS
        forbidden = sorted(set(data or {}) - allowed)
        if forbidden:
            raise ForbiddenError(f"You cannot change: {', '.join(forbidden)}.")

        if "user_id" in data:
            _validate_provider_user(data["user_id"])

        for k, v in data.items():
            setattr(provider, k, v)

        try:
            with transaction.atomic():
                provider.save()
        except IntegrityError:
            raise ConflictError("A provider with this license number already exists.")
        return provider
