# ehr_core/iam/auth.py

from __future__ import annotations

import time

from django.conf import settings
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication

from ehr_core.common.cache import DjangoKeyValueCache, KeyValueCache
from ehr_core.common.logging import bind_request_context
from ehr_core.iam.identity import actor_for_user


class TokenBlocklist:
    """
    Revoked access tokens, keyed by jti, kept only until the token would have
    expired anyway.
    """

    KEY_PREFIX = "jwt-blocklist"

    def __init__(self, cache: KeyValueCache):
        self.cache = cache

    def _key(self, jti: str) -> str:
        return f"{self.KEY_PREFIX}:{jti}"

    def revoke(self, token) -> None:
        jti = token.get("jti")
        if not jti:
            return
        exp = int(token.get("exp") or 0)
        ttl = max(exp - int(time.time()), 1)
        self.cache.set(self._key(jti), True, ttl=ttl)

    def is_revoked(self, token) -> bool:
        jti = token.get("jti")
        return bool(jti) and self.cache.exists(self._key(jti))


def default_blocklist() -> TokenBlocklist:
    alias = getattr(settings, "EHR_TOKEN_BLOCKLIST_CACHE", "default")
    return TokenBlocklist(DjangoKeyValueCache(alias))


class CookieOrHeaderJWTAuthentication(JWTAuthentication):
    """
    Authenticate using:
      1) Authorization: Bearer <access>
      2) HttpOnly cookie containing access token

    Then rejects revoked tokens and non-active accounts, and attaches the
    resolved Actor to the request (identity context).
    """

    def __init__(self, *args, blocklist: TokenBlocklist | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.blocklist = blocklist or default_blocklist()

    def authenticate(self, request):
        header = self.get_header(request)
        if header:
            raw_token = self.get_raw_token(header)
        else:
            cookie_name = settings.SIMPLE_JWT.get("AUTH_COOKIE", "ehr_access")
            raw_token = request.COOKIES.get(cookie_name)

        if not raw_token:
            return None

        validated_token = self.get_validated_token(raw_token)
        if self.blocklist.is_revoked(validated_token):
            raise AuthenticationFailed("Token has been revoked.", code="token_revoked")

        user = self.get_user(validated_token)
        actor = actor_for_user(user)
        if not actor.is_active:
            raise AuthenticationFailed("Account is not active.", code="account_inactive")

        request.actor = actor
        bind_request_context(actor_id=actor.id)
        return user, validated_token
