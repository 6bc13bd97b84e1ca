from __future__ import annotations

from typing import Any

from rest_framework import status as http_status
from rest_framework.response import Response


def envelope(data: Any = None, *, message: str, status: int = http_status.HTTP_200_OK) -> Response:
    """
    Success envelope: { success: true, message, data }.
    """
    body: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return Response(body, status=status)
