"""Account endpoints for API v1."""
from __future__ import annotations

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from api.v1.serializers import MeSerializer


class MeView(APIView):
    """
    GET /api/v1/auth/me/ - return the authenticated user's profile.
    PATCH /api/v1/auth/me/ - update first_name, last_name, phone.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(MeSerializer(request.user).data)

    def patch(self, request):
        serializer = MeSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
