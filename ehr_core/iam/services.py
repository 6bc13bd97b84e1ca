# ehr_core/iam/services.py
from __future__ import annotations

from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from ehr_core.access.policy import USER, can_manage_user
from ehr_core.access.scoping import facility_for_create
from ehr_core.audit.hooks import audited
from ehr_core.common.api.exceptions import ConflictError, ForbiddenError
from ehr_core.common.context import RequestContext
from ehr_core.iam.models import UserProfile, UserStatus
from ehr_core.iam.roles import ROLE_SUPER_ADMIN

User = get_user_model()

USERNAME_CONFLICT = "A user with this username already exists."
ROLE_NOT_MANAGEABLE = "You cannot manage users with this role."

USER_FIELDS = {"email", "first_name", "last_name"}
PROFILE_FIELDS = {"phone"}


def _details(user) -> dict:
    profile = getattr(user, "ehr_profile", None)
    return {
        "username": user.get_username(),
        "role": profile.role if profile else None,
        "status": profile.status if profile else None,
    }


def _profile(user) -> UserProfile:
    profile = getattr(user, "ehr_profile", None)
    if profile is None:
        raise ValidationError({"user": ["User has no EHR profile."]})
    return profile


class UserService:
    @staticmethod
    @transaction.atomic
    @audited("USER_CREATED", USER, details=_details)
    def create_user(
        *,
        ctx: RequestContext,
        username: str,
        password: str,
        role: str,
        email: str = "",
        first_name: str = "",
        last_name: str = "",
        phone: str = "",
        facility_id: UUID | None = None,
    ):
        if not can_manage_user(ctx.actor.role, role):
            raise ForbiddenError(ROLE_NOT_MANAGEABLE)

        # platform administrators are not bound to a facility
        if role == ROLE_SUPER_ADMIN:
            facility_id = None
        else:
            facility_id = facility_for_create(ctx.actor, facility_id)

        if User.objects.filter(username__iexact=username).exists():
            raise ConflictError(USERNAME_CONFLICT)

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    username=username,
                    password=password,
                    email=email or "",
                    first_name=first_name or "",
                    last_name=last_name or "",
                )
        except IntegrityError:
            raise ConflictError(USERNAME_CONFLICT)

        UserProfile.objects.create(
            user=user,
            role=role,
            facility_id=facility_id,
            phone=phone or "",
            status=UserStatus.ACTIVE,
        )
        return User.objects.select_related("ehr_profile").get(pk=user.pk)

    @staticmethod
    @transaction.atomic
    @audited("USER_UPDATED", USER, details=_details)
    def update_user(*, ctx: RequestContext, user, data: dict):
        """Profile fields only; role and status have their own actions."""
        data = data or {}
        user_updates = {k: v for k, v in data.items() if k in USER_FIELDS}
        profile_updates = {k: v for k, v in data.items() if k in PROFILE_FIELDS}

        for k, v in user_updates.items():
            setattr(user, k, v)
        if user_updates:
            user.save(update_fields=list(user_updates))

        if profile_updates:
            profile = _profile(user)
            for k, v in profile_updates.items():
                setattr(profile, k, v)
            profile.save(update_fields=[*profile_updates, "updated_at"])
        return user

    @staticmethod
    @transaction.atomic
    @audited("USER_ACTIVATED", USER, details=_details)
    def activate_user(*, ctx: RequestContext, user):
        profile = _profile(user)
        if profile.is_deleted:
            raise ValidationError({"user": ["Deleted accounts cannot be reactivated."]})

        profile.status = UserStatus.ACTIVE
        profile.deactivated_at = None
        profile.save(update_fields=["status", "deactivated_at", "updated_at"])

        user.is_active = True
        user.save(update_fields=["is_active"])
        return user

    @staticmethod
    @transaction.atomic
    @audited("USER_DEACTIVATED", USER, details=_details)
    def deactivate_user(*, ctx: RequestContext, user):
        profile = _profile(user)
        profile.mark_deactivated()
        profile.save(update_fields=["status", "deactivated_at", "updated_at"])

        user.is_active = False
        user.save(update_fields=["is_active"])
        return user

    @staticmethod
    @transaction.atomic
    @audited("USER_DELETED", USER, details=_details)
    def delete_user(*, ctx: RequestContext, user):
        """Soft delete: the account row and its history stay."""
        profile = _profile(user)
        if profile.is_deleted:
            return user

        profile.mark_deactivated()
        profile.deleted_at = timezone.now()
        profile.save(update_fields=["status", "deactivated_at", "deleted_at", "updated_at"])

        user.is_active = False
        user.save(update_fields=["is_active"])
        return user

    @staticmethod
    @transaction.atomic
    @audited("USER_ROLE_CHANGED", USER, details=_details)
    def change_role(*, ctx: RequestContext, user, role: str):
        # the guard already checked the current role; check the new one too
        if not can_manage_user(ctx.actor.role, role):
            raise ForbiddenError(ROLE_NOT_MANAGEABLE)

        profile = _profile(user)
        profile.role = role
        if role == ROLE_SUPER_ADMIN:
            profile.facility = None
        profile.save(update_fields=["role", "facility", "updated_at"])
        return user
