"""
core.domain.notifications — Notification creation and fan-out helpers.

Centralises notification creation so every app uses one consistent
entry-point rather than directly constructing ``Notification`` objects.

Design decisions
----------------
* **Persist first, push second** — a notification is stored before it
  is handed to the real-time dispatcher, so an offline user still finds
  it in their inbox.
* **Sequential fan-out** — ``notify_all_with_role`` loops over the
  recipients one at a time; a failure for one recipient is logged and
  the loop moves on to the next.
* **Called from post-commit hooks** — services never call these helpers
  inside the transaction that changes state; see ``core.domain.hooks``.

Usage::

    from core.domain.notifications import notify_user, render_event

    title, message = render_event("incident_assigned", number=incident.incident_number)
    notify_user(
        investigator,
        title=title,
        message=message,
        resource_type="incident",
        resource_id=incident.pk,
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from accounts.models import User
    from core.domain.realtime import RealTimeDispatcher
    from core.models import Notification

logger = logging.getLogger(__name__)

# ── Event-type → human-readable templates ───────────────────────────
# Extend this dict as new event types are introduced in app services.
_EVENT_TEMPLATES: dict[str, tuple[str, str]] = {
    # event_type: (title_template, message_template)
    "incident_assigned":  ("New Case Assigned",
                           "You have been assigned to investigate incident {number}."),
    "report_submitted":   ("Investigation Report Submitted",
                           "An investigation report for incident {number} has been submitted for review."),
    "report_approved":    ("Investigation Report Approved",
                           "The investigation of incident {number} has been reviewed and the case is closed."),
    "report_rejected":    ("Investigation Reopened",
                           "The investigation report for incident {number} was not approved and the case has been reopened."),
    "incident_updated":   ("Incident Updated",
                           "Incident {number} has been updated."),
}


def render_event(event_type: str, **context: Any) -> tuple[str, str]:
    """
    Return ``(title, message)`` for ``event_type``.

    Unknown event types fall back to a title derived from the key.
    """
    title, message = _EVENT_TEMPLATES.get(
        event_type,
        (event_type.replace("_", " ").title(), f"Event: {event_type}"),
    )
    return title.format(**context), message.format(**context)


class NotificationService:
    """
    Stateless helper for creating ``Notification`` records.

    All methods are classmethods — no instance state is needed.
    """

    @classmethod
    def create(
        cls,
        *,
        recipient: User,
        title: str,
        message: str,
        type: str = "info",
        urgent: bool = False,
        resource_type: str | None = None,
        resource_id: Any = None,
    ) -> Notification:
        """
        Persist one ``Notification`` for ``recipient``.

        Args:
            recipient:     The user who will see the notification.
            title:         Short headline.
            message:       Body text.
            type:          One of ``info`` / ``warning`` / ``success`` / ``error``.
            urgent:        Whether clients should highlight it.
            resource_type: Kind of object the notification is about.
            resource_id:   Identifier of that object (stored as text).

        Returns:
            The created ``Notification``.
        """
        from core.models import Notification  # circular import

        notification = Notification.objects.create(
            recipient=recipient,
            title=title,
            message=message,
            type=type,
            is_urgent=urgent,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
        )
        logger.info(
            "Created notification %s [%s] for user=%s",
            notification.pk,
            title,
            recipient.pk,
        )
        return notification


def notify_user(
    recipient: User,
    *,
    title: str,
    message: str,
    type: str = "info",
    urgent: bool = False,
    resource_type: str | None = None,
    resource_id: Any = None,
    dispatcher: RealTimeDispatcher | None = None,
) -> Notification:
    """
    Persist a notification for ``recipient`` and push it in real time.

    Storage errors propagate to the caller (the post-commit hook wrapper
    logs them); push errors are absorbed by the dispatcher.
    """
    if dispatcher is None:
        from core.domain.realtime import default_dispatcher as dispatcher

    notification = NotificationService.create(
        recipient=recipient,
        title=title,
        message=message,
        type=type,
        urgent=urgent,
        resource_type=resource_type,
        resource_id=resource_id,
    )
    dispatcher.push(notification)
    return notification


def notify_all_with_role(
    role: str,
    *,
    title: str,
    message: str,
    type: str = "info",
    urgent: bool = False,
    resource_type: str | None = None,
    resource_id: Any = None,
    dispatcher: RealTimeDispatcher | None = None,
) -> list[Notification]:
    """
    Notify every active user holding ``role``.

    Recipients are processed sequentially; a failure for one recipient
    is logged and does not stop delivery to the others.

    Returns:
        The notifications that were successfully created.
    """
    from accounts.services import UserDirectory  # circular import

    recipients = list(UserDirectory.active_with_role(role))
    if not recipients:
        logger.warning("notify_all_with_role: no active users with role=%s", role)
        return []

    created: list[Notification] = []
    for recipient in recipients:
        try:
            created.append(
                notify_user(
                    recipient,
                    title=title,
                    message=message,
                    type=type,
                    urgent=urgent,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    dispatcher=dispatcher,
                )
            )
        except Exception:
            logger.exception(
                "Failed to notify user=%s (role=%s) about '%s'",
                recipient.pk, role, title,
            )
    return created
