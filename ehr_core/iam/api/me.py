# ehr_core/iam/api/me.py

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from ehr_core.common.api.responses import envelope
from ehr_core.iam.api.serializers import UserSerializer
from ehr_core.iam.identity import current_actor


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: UserSerializer}, tags=["Auth"])
    def get(self, request):
        """The authenticated user, with the role and facility every access check uses."""
        actor = current_actor(request)
        data = UserSerializer(request.user).data
        # superusers without a profile still resolve to a role
        data["role"] = actor.role
        return envelope(data, message="Current user retrieved successfully")
