# ehr_core/iam/api/users.py

from __future__ import annotations

from django.contrib.auth import get_user_model
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action

from ehr_core.access.mixins import GuardedViewSetMixin
from ehr_core.access.policy import USER
from ehr_core.common.api.pagination import paginate
from ehr_core.common.api.responses import envelope
from ehr_core.iam.api.serializers import (
    ChangeRoleSerializer,
    UserCreateSerializer,
    UserListQuerySerializer,
    UserSerializer,
    UserUpdateSerializer,
)
from ehr_core.iam.selectors import filter_users
from ehr_core.iam.services import UserService

User = get_user_model()


class UserViewSet(GuardedViewSetMixin, viewsets.ViewSet):
    """
    User management. Role-pair rules (who may manage whom) and the
    self-deactivation ban are enforced by the guard on every detail action.
    """
    resource_type = USER

    serializer_class = UserSerializer
    queryset = User.objects.none()

    @extend_schema(tags=["Users"], parameters=[UserListQuerySerializer], responses={200: UserSerializer(many=True)})
    def list(self, request):
        params = UserListQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)

        qs = filter_users(
            self.scoped(User.objects.all()),
            actor=self.ctx().actor,
            **params.validated_data,
        )
        return paginate(request, qs, UserSerializer, message="Users retrieved successfully")

    @extend_schema(tags=["Users"], request=UserCreateSerializer, responses={201: UserSerializer})
    def create(self, request):
        ser = UserCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        user = UserService.create_user(ctx=self.ctx(), **ser.validated_data)
        return envelope(UserSerializer(user).data, message="User created successfully", status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Users"], responses={200: UserSerializer})
    def retrieve(self, request, pk=None):
        user = self.guarded_object()
        return envelope(UserSerializer(user).data, message="User retrieved successfully")

    @extend_schema(tags=["Users"], request=UserUpdateSerializer, responses={200: UserSerializer})
    def partial_update(self, request, pk=None):
        user = self.guarded_object()

        ser = UserUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        user = UserService.update_user(ctx=self.ctx(), user=user, data=ser.validated_data)
        return envelope(UserSerializer(user).data, message="User updated successfully")

    @extend_schema(tags=["Users"], responses={200: None})
    def destroy(self, request, pk=None):
        user = self.guarded_object()
        UserService.delete_user(ctx=self.ctx(), user=user)
        return envelope(message="User deleted successfully")

    @extend_schema(tags=["Users"], request=None, responses={200: UserSerializer})
    @action(detail=True, methods=["post"], url_path="activate")
    def activate(self, request, pk=None):
        user = self.guarded_object()
        user = UserService.activate_user(ctx=self.ctx(), user=user)
        return envelope(UserSerializer(user).data, message="User activated successfully")

    @extend_schema(tags=["Users"], request=None, responses={200: UserSerializer})
    @action(detail=True, methods=["post"], url_path="deactivate")
    def deactivate(self, request, pk=None):
        user = self.guarded_object()
        user = UserService.deactivate_user(ctx=self.ctx(), user=user)
        return envelope(UserSerializer(user).data, message="User deactivated successfully")

    @extend_schema(tags=["Users"], request=ChangeRoleSerializer, responses={200: UserSerializer})
    @action(detail=True, methods=["post"], url_path="change-role")
    def change_role(self, request, pk=None):
        user = self.guarded_object()

        ser = ChangeRoleSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        user = UserService.change_role(ctx=self.ctx(), user=user, role=ser.validated_data["role"])
        return envelope(UserSerializer(user).data, message="User role changed successfully")
