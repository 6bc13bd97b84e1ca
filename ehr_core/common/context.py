# ehr_core/common/context.py
from __future__ import annotations

import ipaddress
from dataclasses import dataclass

from django.conf import settings

from ehr_core.iam.identity import Actor, current_actor


def _valid_ip(value: str | None) -> str | None:
    value = (value or "").strip()
    try:
        return str(ipaddress.ip_address(value))
    except ValueError:
        return None


def client_ip(request) -> str | None:
    """
    The caller's address as recorded in audit rows.

    X-Forwarded-For is honoured only when EHR_TRUSTED_PROXY_COUNT proxies sit in
    front of the app; the client is then the entry that many hops from the right.
    Anything that is not an IP address falls back to REMOTE_ADDR.
    """
    remote = _valid_ip(request.META.get("REMOTE_ADDR"))
    proxies = getattr(settings, "EHR_TRUSTED_PROXY_COUNT", 0)
    if proxies <= 0:
        return remote

    hops = [h.strip() for h in request.META.get("HTTP_X_FORWARDED_FOR", "").split(",") if h.strip()]
    if len(hops) < proxies:
        return remote
    return _valid_ip(hops[-proxies]) or remote


@dataclass(frozen=True)
class RequestContext:
    """
    Who is acting, and from where. Passed into services as `ctx` so that audit
    rows can be written without reaching back into the HTTP request.
    """
    actor: Actor
    ip_address: str | None = None
    user_agent: str = ""

    @property
    def actor_id(self) -> int:
        return self.actor.id

    @classmethod
    def from_request(cls, request) -> "RequestContext":
        return cls(
            actor=current_actor(request),
            ip_address=client_ip(request),
            user_agent=(request.META.get("HTTP_USER_AGENT") or "")[:512],
        )


class ContextMixin:
    def ctx(self) -> RequestContext:
        return RequestContext.from_request(self.request)
