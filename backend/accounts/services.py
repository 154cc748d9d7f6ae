"""
Accounts Service Layer.

Business logic for the ``accounts`` app.  Views must remain *thin*:
they validate input through serializers, call a service method, and
return the result wrapped in a DRF ``Response``.

Architecture
------------
- ``CurrentUserService``    — "Me" endpoint helpers.
- ``UserDirectory``         — identity lookups used by other apps
                              (``get``, ``active_with_role``).
- ``LoginAuditService``     — audit entries for login attempts.
"""

from __future__ import annotations

from typing import Any

from django.contrib.auth import get_user_model
from django.db.models import Q, QuerySet

from audit.models import AuditAction, AuditResourceType
from audit.services import AuditRecorder
from core.domain.access import SUPERUSER_ROLE

User = get_user_model()


# ═══════════════════════════════════════════════════════════════════
#  Current User Service
# ═══════════════════════════════════════════════════════════════════


class CurrentUserService:
    """Helpers for the "Me" endpoint."""

    @staticmethod
    def get_profile(user: User) -> User:
        """Return the user re-fetched with its role for serialization."""
        return User.objects.select_related("role").get(pk=user.pk)


# ═══════════════════════════════════════════════════════════════════
#  User Directory
# ═══════════════════════════════════════════════════════════════════


class UserDirectory:
    """
    Read-only identity lookups for other apps.

    The incident lifecycle uses this to resolve investigator ids and to
    find every administrator that must hear about a submitted report.
    """

    @staticmethod
    def get(user_id: Any) -> User | None:
        """Return the user with ``user_id`` or ``None``."""
        try:
            return User.objects.select_related("role").get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            return None

    @staticmethod
    def active_with_role(role_name: str) -> QuerySet:
        """
        Active users holding ``role_name`` (case-insensitive).

        Superusers count as administrators even without an explicit role.
        """
        role_name = role_name.lower().replace("_", " ")
        lookup = Q(role__name__iexact=role_name) | Q(
            role__name__iexact=role_name.replace(" ", "_")
        )
        if role_name == SUPERUSER_ROLE:
            lookup |= Q(is_superuser=True)
        return (
            User.objects.filter(is_active=True)
            .filter(lookup)
            .select_related("role")
            .order_by("pk")
            .distinct()
        )


# ═══════════════════════════════════════════════════════════════════
#  Login Audit Service
# ═══════════════════════════════════════════════════════════════════


class LoginAuditService:
    """
    Records every authentication attempt in the audit trail.

    ``client`` is the ``ip_address`` / ``user_agent`` mapping produced by
    ``audit.services.client_info``.
    """

    @staticmethod
    def succeeded(user: User, client: dict[str, Any]) -> None:
        AuditRecorder.record(
            actor=user,
            action=AuditAction.LOGIN,
            resource_type=AuditResourceType.USER,
            resource_id=user.pk,
            description=f"User {user.username} logged in",
            **client,
        )

    @staticmethod
    def failed(identifier: Any, client: dict[str, Any]) -> None:
        identifier = str(identifier or "")[:150]
        AuditRecorder.record(
            actor=None,
            action=AuditAction.FAILED_LOGIN,
            resource_type=AuditResourceType.USER,
            resource_id=None,
            description=f"Failed login attempt for '{identifier}'",
            success=False,
            metadata={"identifier": identifier},
            **client,
        )
