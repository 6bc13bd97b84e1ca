from __future__ import annotations

import math

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class EnvelopePagination(PageNumberPagination):
    """
    Page-number pagination rendered in the standard envelope:
      { success, message, data: [...], pagination: { page, limit, total, totalPages } }
    """
    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100

    message = "Records retrieved successfully"

    def get_paginated_response(self, data):
        total = self.page.paginator.count
        limit = self.page.paginator.per_page
        return Response(
            {
                "success": True,
                "message": self.message,
                "data": data,
                "pagination": {
                    "page": self.page.number,
                    "limit": limit,
                    "total": total,
                    "totalPages": math.ceil(total / limit) if limit else 0,
                },
            }
        )


def paginate(request, queryset, serializer_class, *, message: str | None = None, context: dict | None = None) -> Response:
    """
    Shared pagination helper for plain ViewSets.
    """
    p = EnvelopePagination()
    if message:
        p.message = message
    page = p.paginate_queryset(queryset, request)
    ctx = {"request": request, **(context or {})}
    if page is not None:
        ser = serializer_class(page, many=True, context=ctx)
        return p.get_paginated_response(ser.data)

    ser = serializer_class(queryset, many=True, context=ctx)
    return Response({"success": True, "message": p.message, "data": ser.data})
