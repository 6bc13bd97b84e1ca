from __future__ import annotations

import re

from django.utils.deprecation import MiddlewareMixin

from ehr_core.common.api.exceptions import ensure_request_id
from ehr_core.common.logging import bind_request_context, clear_request_context

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9\-]{8,64}$")


class RequestContextMiddleware(MiddlewareMixin):
    """
    Assigns every request a request id (honouring a well-formed inbound
    X-Request-Id), exposes it to logging and echoes it on the response.
    The acting user is added to the logging context by the authentication class.
    """

    HEADER = "HTTP_X_REQUEST_ID"

    def process_request(self, request):
        clear_request_context()
        inbound = request.META.get(self.HEADER, "")
        if inbound and _REQUEST_ID_RE.match(inbound):
            request.request_id = inbound
        rid = ensure_request_id(request)
        bind_request_context(request_id=rid)
        return None

    def process_response(self, request, response):
        rid = getattr(request, "request_id", None)
        if rid:
            response["X-Request-Id"] = rid
        clear_request_context()
        return response
