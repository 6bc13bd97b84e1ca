# ehr_core/iam/api/serializers.py
from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from ehr_core.iam.models import Role, UserStatus

User = get_user_model()


class LoginRequestSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)


class TokenPairResponseSerializer(serializers.Serializer):
    """Tokens are also set as HttpOnly cookies."""
    access = serializers.CharField()
    refresh = serializers.CharField()


class RefreshRequestSerializer(serializers.Serializer):
    # falls back to the refresh cookie when omitted
    refresh = serializers.CharField(required=False)


class UserSerializer(serializers.ModelSerializer):
    role = serializers.CharField(source="ehr_profile.role", read_only=True, allow_null=True)
    facility_id = serializers.UUIDField(source="ehr_profile.facility_id", read_only=True, allow_null=True)
    status = serializers.CharField(source="ehr_profile.status", read_only=True, allow_null=True)
    phone = serializers.CharField(source="ehr_profile.phone", read_only=True, allow_null=True)
    deactivated_at = serializers.DateTimeField(source="ehr_profile.deactivated_at", read_only=True, allow_null=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "role",
            "facility_id",
            "status",
            "phone",
            "is_active",
            "deactivated_at",
            "date_joined",
            "last_login",
        ]
        read_only_fields = fields


class UserCreateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(write_only=True)
    role = serializers.ChoiceField(choices=Role.choices)
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    facility_id = serializers.UUIDField(required=False, allow_null=True, default=None)

    def validate(self, attrs):
        validate_password(attrs["password"], user=User(username=attrs["username"], email=attrs.get("email", "")))
        return attrs


class UserUpdateSerializer(serializers.Serializer):
    email = serializers.EmailField(required=False, allow_blank=True)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs


class ChangeRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Role.choices)


class UserListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=Role.choices, required=False)
    status = serializers.ChoiceField(choices=UserStatus.choices, required=False)
