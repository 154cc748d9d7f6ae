"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.

View Map
--------
- ``LoginView`` — POST /auth/login/
- ``MeView``    — GET /me/
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import exceptions, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from audit.services import client_info

from .serializers import (
    CustomTokenObtainPairSerializer,
    LoginResponseSerializer,
    UserDetailSerializer,
)
from .services import CurrentUserService, LoginAuditService


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Authenticates a user via username, email or phone
    number plus password and returns a JWT pair with the user profile.
    Successful and failed attempts are both written to the audit trail.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Log in",
        request=CustomTokenObtainPairSerializer,
        responses={
            200: LoginResponseSerializer,
            401: OpenApiResponse(description="Invalid credentials."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = CustomTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        client = client_info(request)
        try:
            serializer.is_valid(raise_exception=True)
        except exceptions.AuthenticationFailed:
            LoginAuditService.failed(request.data.get("identifier"), client)
            raise
        LoginAuditService.succeeded(serializer.user, client)

        payload = dict(serializer.validated_data)  # contains 'access' and 'refresh'
        payload["user"] = UserDetailSerializer(serializer.user).data

        return Response(payload, status=status.HTTP_200_OK)


class MeView(APIView):
    """
    GET /api/accounts/me/ → Retrieve the current user's profile and role.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user",
        responses={200: UserDetailSerializer},
        tags=["Auth"],
    )
    def get(self, request: Request) -> Response:
        user = CurrentUserService.get_profile(request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)
