# ehr_core/providers/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets

from ehr_core.access.mixins import GuardedViewSetMixin
from ehr_core.access.policy import PROVIDER
from ehr_core.common.api.pagination import paginate
from ehr_core.common.api.responses import envelope
from ehr_core.providers.api.serializers import (
    FullProviderSerializer,
    ProviderCreateSerializer,
    ProviderUpdateSerializer,
    provider_serializer_for,
)
from ehr_core.providers.models import Provider
from ehr_core.providers.selectors import search_providers
from ehr_core.providers.services import ProviderService


def _bool_param(value: str | None) -> bool | None:
    if value is None or value == "":
        return None
    return value.lower() in ("1", "true", "yes")


class ProviderViewSet(GuardedViewSetMixin, viewsets.ViewSet):
    resource_type = PROVIDER

    serializer_class = FullProviderSerializer
    queryset = Provider.objects.none()

    @extend_schema(tags=["Providers"], responses={200: FullProviderSerializer(many=True)})
    def list(self, request):
        ctx = self.ctx()
        qs = search_providers(
            self.scoped(Provider.objects.all()),
            q=request.query_params.get("q"),
            specialization=request.query_params.get("specialization"),
            accepting=_bool_param(request.query_params.get("accepting")),
        )
        return paginate(request, qs, provider_serializer_for(ctx.actor), message="Providers retrieved successfully")

    @extend_schema(tags=["Providers"], request=ProviderCreateSerializer, responses={201: FullProviderSerializer})
    def create(self, request):
        ser = ProviderCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        provider = ProviderService.create_provider(ctx=self.ctx(), **ser.validated_data)
        return envelope(
            FullProviderSerializer(provider).data,
            message="Provider created successfully",
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(tags=["Providers"], responses={200: FullProviderSerializer})
    def retrieve(self, request, pk=None):
        provider = self.guarded_object()
        serializer_class = provider_serializer_for(self.ctx().actor)
        return envelope(serializer_class(provider).data, message="Provider retrieved successfully")

    @extend_schema(tags=["Providers"], request=ProviderUpdateSerializer, responses={200: FullProviderSerializer})
    def partial_update(self, request, pk=None):
        provider = self.guarded_object()

        ser = ProviderUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)

        provider = ProviderService.update_provider(ctx=self.ctx(), provider=provider, data=ser.validated_data)
        return envelope(FullProviderSerializer(provider).data, message="Provider updated successfully")
