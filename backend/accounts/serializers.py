"""
Accounts app serializers.

Contains the Request and Response serializers for the accounts API.
Serializers handle field definitions and basic validation.  **No
business logic** lives here.
"""

from __future__ import annotations

from typing import Any

from django.contrib.auth import authenticate, get_user_model
from rest_framework import exceptions, serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import Role

User = get_user_model()


# ═══════════════════════════════════════════════════════════════════
#  Authentication Serializers
# ═══════════════════════════════════════════════════════════════════


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom SimpleJWT serializer that:

    1. Accepts ``identifier`` + ``password`` instead of
       ``username`` + ``password``.
    2. Resolves the user via the ``MultiFieldAuthBackend``.
    3. Injects the ``role`` claim into the JWT access token payload.
    """

    # Override the default username field with our multi-field identifier
    username_field = "identifier"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields.pop(User.USERNAME_FIELD, None)
        self.fields["identifier"] = serializers.CharField(
            help_text="Username, email, or phone number.",
        )

    @classmethod
    def get_token(cls, user) -> Any:
        token = super().get_token(user)
        token["role"] = user.role_name
        return token

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        """
        Authenticate using the ``MultiFieldAuthBackend``.

        Returns a dict containing ``access`` and ``refresh``.
        """
        user = authenticate(
            request=self.context.get("request"),
            identifier=attrs.get("identifier"),
            password=attrs.get("password"),
        )

        if user is None:
            raise exceptions.AuthenticationFailed(
                "Invalid credentials.",
                code="authentication",
            )

        refresh = self.get_token(user)
        data = {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }

        # Attach user for the view to serialise in the response
        self.user = user
        return data


class LoginResponseSerializer(serializers.Serializer):
    access = serializers.CharField(help_text="JWT access token.")
    refresh = serializers.CharField(help_text="JWT refresh token.")
    user = serializers.DictField(help_text="Authenticated user profile.")


# ═══════════════════════════════════════════════════════════════════
#  User / Role Serializers
# ═══════════════════════════════════════════════════════════════════


class RoleListSerializer(serializers.ModelSerializer):
    """Lightweight role representation."""

    class Meta:
        model = Role
        fields = ["id", "name", "description", "hierarchy_level"]
        read_only_fields = ["id"]


class UserSummarySerializer(serializers.ModelSerializer):
    """
    Compact user reference embedded in other apps' payloads
    (reporter, investigator, note author, ...).
    """

    role = serializers.CharField(source="role_name", read_only=True, allow_null=True)

    class Meta:
        model = User
        fields = ["id", "username", "first_name", "last_name", "email", "role"]
        read_only_fields = fields


class UserDetailSerializer(serializers.ModelSerializer):
    """
    Full user representation (used by ``me`` and the login response).
    """

    role_detail = RoleListSerializer(source="role", read_only=True)
    role_name = serializers.CharField(read_only=True, allow_null=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "phone_number",
            "first_name",
            "last_name",
            "is_active",
            "date_joined",
            "role",
            "role_name",
            "role_detail",
        ]
        read_only_fields = fields
