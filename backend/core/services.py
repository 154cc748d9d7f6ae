"""
Core app service layer.

Contains the user-facing notification inbox.  Notification *creation*
and fan-out live in ``core.domain.notifications``; this module only
serves the recipient's own view of what was delivered to them.
"""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.db.models import QuerySet

from core.constants import DEFAULT_NOTIFICATION_LIST_LIMIT
from core.domain.exceptions import NotFound

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  Notification Inbox Service
# ═══════════════════════════════════════════════════════════════════

class NotificationInboxService:
    """
    Handles listing, reading and deleting notifications for a given user.

    Every lookup is filtered by ``recipient=self.user``; a notification
    belonging to someone else is reported as ``NotFound`` so its
    existence is not leaked.
    """

    def __init__(self, user: Any) -> None:
        self.user = user

    def _queryset(self) -> QuerySet:
        from core.models import Notification

        return Notification.objects.filter(recipient=self.user)

    def _get(self, notification_id: Any):
        from core.models import Notification

        try:
            return self._queryset().get(pk=notification_id)
        except (Notification.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Notification {notification_id} not found.")

    def list_notifications(self, limit: int | None = None) -> QuerySet:
        """Return the user's notifications, most recent first, capped at ``limit``."""
        if limit is None:
            limit = getattr(settings, "NOTIFICATION_LIST_LIMIT", DEFAULT_NOTIFICATION_LIST_LIMIT)
        return self._queryset().order_by("-created_at", "-id")[:limit]

    def unread_count(self) -> int:
        return self._queryset().filter(is_read=False).count()

    def mark_as_read(self, notification_id: Any):
        """Mark a single notification as read."""
        notification = self._get(notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read", "updated_at"])
        return notification

    def mark_all_as_read(self) -> int:
        """Mark every unread notification as read; returns how many changed."""
        updated = self._queryset().filter(is_read=False).update(is_read=True)
        logger.info("User %s marked %d notification(s) as read", self.user.pk, updated)
        return updated

    def delete(self, notification_id: Any) -> None:
        self._get(notification_id).delete()

    def clear_all(self) -> int:
        """Delete every notification of the user; returns how many were removed."""
        deleted, _ = self._queryset().delete()
        logger.info("User %s cleared %d notification(s)", self.user.pk, deleted)
        return deleted
