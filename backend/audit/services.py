"""
Audit Service Layer.

- ``client_info``       — request origin for an entry.
- ``AuditRecorder``     — writes audit entries; never raises.
- ``AuditQueryService`` — filtered, bounded, admin-only reads.

``AuditRecorder.record`` is normally invoked from a post-commit hook
(``core.domain.hooks.after_commit``), so by the time it runs the action
it describes has already been committed.  A storage failure therefore
only costs the audit entry, never the action.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import QuerySet

from accounts.models import RoleName
from core.constants import DEFAULT_AUDIT_LOG_MAX_RESULTS
from core.domain.access import require_role

from .models import AuditLog

if TYPE_CHECKING:
    from accounts.models import User

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  Recorder
# ═══════════════════════════════════════════════════════════════════


def client_info(request: Any) -> dict[str, str | None]:
    """
    ``ip_address`` / ``user_agent`` keyword arguments for
    ``AuditRecorder.record`` taken from an HTTP request.
    """
    if request is None:
        return {"ip_address": None, "user_agent": None}
    meta = getattr(request, "META", {})
    return {
        "ip_address": meta.get("REMOTE_ADDR") or None,
        "user_agent": meta.get("HTTP_USER_AGENT") or None,
    }


class AuditRecorder:
    """Stateless writer for ``AuditLog`` entries."""

    @staticmethod
    def record(
        *,
        actor: User | None,
        action: str,
        resource_type: str,
        resource_id: Any,
        description: str,
        success: bool = True,
        metadata: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLog | None:
        """
        Append one audit entry.

        Parameters
        ----------
        actor : User or None
            The user who performed the action (``None`` for system actions).
        action : str
            An ``AuditAction`` value.
        resource_type : str
            An ``AuditResourceType`` value.
        resource_id : Any
            Identifier of the affected object; stored as text.
        description : str
            Human-readable summary.
        success : bool
            Whether the action succeeded.
        metadata : dict, optional
            Free-form structured context (e.g. ``{"from": "open", "to": "closed"}``).
        ip_address, user_agent : str, optional
            Origin of the request, usually from ``client_info(request)``.

        Returns
        -------
        AuditLog or None
            The stored entry, or ``None`` if storage failed.  This method
            never raises.
        """
        try:
            # Savepoint: a failed insert must not break an enclosing atomic block
            with transaction.atomic():
                entry = AuditLog.objects.create(
                    user=actor if actor is not None and actor.pk else None,
                    action=action,
                    resource_type=resource_type,
                    resource_id="" if resource_id is None else str(resource_id),
                    description=description,
                    success=success,
                    metadata=metadata or {},
                    ip_address=ip_address,
                    user_agent=(user_agent or "")[:500],
                )
        except (DatabaseError, ValueError, TypeError):
            logger.exception(
                "Failed to record audit entry action=%s resource=%s:%s",
                action, resource_type, resource_id,
            )
            return None

        logger.debug(
            "Audit entry %s: %s %s:%s by user=%s",
            entry.pk, action, resource_type, resource_id,
            getattr(actor, "pk", None),
        )
        return entry


# ═══════════════════════════════════════════════════════════════════
#  Query Service
# ═══════════════════════════════════════════════════════════════════


class AuditQueryService:
    """
    Read access to the audit trail.

    Only administrators may query it.  Results are ordered newest first
    and never exceed ``settings.AUDIT_LOG_MAX_RESULTS``.
    """

    @staticmethod
    def max_results() -> int:
        return getattr(settings, "AUDIT_LOG_MAX_RESULTS", DEFAULT_AUDIT_LOG_MAX_RESULTS)

    @staticmethod
    def query(
        requesting_user: User,
        *,
        user_id: Any = None,
        action: str | None = None,
        resource_type: str | None = None,
        resource_id: Any = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> QuerySet:
        """
        Return audit entries matching every supplied filter.

        Raises
        ------
        PermissionDenied
            If ``requesting_user`` is not an administrator.
        """
        require_role(
            requesting_user,
            RoleName.ADMIN,
            message="Only administrators may read the audit trail.",
        )

        qs = AuditLog.objects.select_related("user")
        if user_id is not None:
            qs = qs.filter(user_id=user_id)
        if action:
            qs = qs.filter(action=action)
        if resource_type:
            qs = qs.filter(resource_type=resource_type)
        if resource_id is not None and resource_id != "":
            qs = qs.filter(resource_id=str(resource_id))
        if start is not None:
            qs = qs.filter(timestamp__gte=start)
        if end is not None:
            qs = qs.filter(timestamp__lte=end)

        cap = AuditQueryService.max_results()
        if limit is not None:
            cap = max(0, min(limit, cap))
        return qs.order_by("-timestamp", "-id")[:cap]

    @staticmethod
    def for_resource(resource_type: str, resource_id: Any) -> QuerySet:
        """Unrestricted history of one object (for internal use and tests)."""
        return AuditLog.objects.filter(
            resource_type=resource_type,
            resource_id=str(resource_id),
        ).order_by("timestamp", "id")
