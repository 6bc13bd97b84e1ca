# ehr_core/iam/api/auth.py

from __future__ import annotations

from datetime import timedelta
from typing import Any

from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer

from ehr_core.access.policy import USER
from ehr_core.audit.recorder import AuditEntry, recorder
from ehr_core.common.api.responses import envelope
from ehr_core.common.context import RequestContext, client_ip
from ehr_core.iam.api.serializers import (
    LoginRequestSerializer,
    RefreshRequestSerializer,
    TokenPairResponseSerializer,
)
from ehr_core.iam.auth import default_blocklist
from ehr_core.iam.identity import actor_for_user, current_actor


def _seconds(value: Any) -> int:
    """JWT lifetime setting (timedelta or seconds) as seconds; 0 means session cookie."""
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _jwt_cfg() -> dict:
    return getattr(settings, "SIMPLE_JWT", {}) or {}


def _set_auth_cookies(response: Response, *, access: str, refresh: str) -> None:
    jwt_cfg = _jwt_cfg()

    secure = bool(jwt_cfg.get("AUTH_COOKIE_SECURE", False))
    samesite = jwt_cfg.get("AUTH_COOKIE_SAMESITE", "Lax")

    for name, value, lifetime in (
        (jwt_cfg.get("AUTH_COOKIE", "ehr_access"), access, jwt_cfg.get("ACCESS_TOKEN_LIFETIME", timedelta(minutes=15))),
        (jwt_cfg.get("AUTH_COOKIE_REFRESH", "ehr_refresh"), refresh, jwt_cfg.get("REFRESH_TOKEN_LIFETIME", timedelta(days=7))),
    ):
        response.set_cookie(
            name,
            value,
            max_age=_seconds(lifetime),
            httponly=True,
            secure=secure,
            samesite=samesite,
            path="/",
        )


def _clear_auth_cookies(response: Response) -> None:
    jwt_cfg = _jwt_cfg()
    response.delete_cookie(jwt_cfg.get("AUTH_COOKIE", "ehr_access"), path="/")
    response.delete_cookie(jwt_cfg.get("AUTH_COOKIE_REFRESH", "ehr_refresh"), path="/")


def _context_for(request, user) -> RequestContext:
    return RequestContext(
        actor=actor_for_user(user),
        ip_address=client_ip(request),
        user_agent=(request.META.get("HTTP_USER_AGENT") or "")[:512],
    )


class LoginView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "auth"

    @extend_schema(request=LoginRequestSerializer, responses={200: TokenPairResponseSerializer}, tags=["Auth"])
    def post(self, request):
        serializer = TokenObtainPairSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = serializer.user
        actor = actor_for_user(user)
        if not actor.is_active:
            raise AuthenticationFailed("Account is not active.", code="account_inactive")

        access = serializer.validated_data["access"]
        refresh = serializer.validated_data["refresh"]

        ctx = _context_for(request, user)
        profile = getattr(user, "ehr_profile", None)
        recorder.record(
            ctx,
            AuditEntry(
                action="USER_LOGIN",
                resource_type=USER,
                resource_id=user.pk,
                details={"username": user.get_username()},
                facility_id=profile.facility_id if profile else None,
            ),
        )

        res = envelope({"access": access, "refresh": refresh}, message="Login successful")
        _set_auth_cookies(res, access=access, refresh=refresh)
        return res


class RefreshView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "auth"

    @extend_schema(request=RefreshRequestSerializer, responses={200: TokenPairResponseSerializer}, tags=["Auth"])
    def post(self, request):
        refresh = request.data.get("refresh") or request.COOKIES.get(_jwt_cfg().get("AUTH_COOKIE_REFRESH", "ehr_refresh"))
        if not refresh:
            raise AuthenticationFailed("Refresh token is required.", code="token_missing")

        serializer = TokenRefreshSerializer(data={"refresh": refresh})
        serializer.is_valid(raise_exception=True)

        access = serializer.validated_data["access"]
        new_refresh = serializer.validated_data.get("refresh", refresh)

        res = envelope({"access": access, "refresh": new_refresh}, message="Token refreshed")
        _set_auth_cookies(res, access=access, refresh=new_refresh)
        return res


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=None, responses={200: None}, tags=["Auth"])
    def post(self, request):
        # the access token stays revoked until it would have expired anyway
        if request.auth is not None:
            default_blocklist().revoke(request.auth)

        actor = current_actor(request)
        recorder.record(
            RequestContext.from_request(request),
            AuditEntry(
                action="USER_LOGOUT",
                resource_type=USER,
                resource_id=actor.id,
                details={"username": actor.username},
                facility_id=actor.facility_id,
            ),
        )

        res = envelope(message="Logged out")
        _clear_auth_cookies(res)
        return res
