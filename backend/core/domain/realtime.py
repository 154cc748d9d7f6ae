"""
core.domain.realtime — Real-time notification delivery.

Keeps track of which users currently hold a live push channel (a
websocket connection, an SSE stream, a test double) and pushes freshly
persisted notifications down it.

Design decisions
----------------
* **One channel per user** — a later ``connect`` for the same user
  replaces the previous channel.
* **Stale disconnects are ignored** — ``disconnect(user_id, channel)``
  only removes the entry if it still points at *that* channel, so a
  late close of an old socket cannot evict its replacement.
* **Thread-safe** — the map is guarded by a ``threading.Lock``; the
  dispatcher snapshots the channel under the lock and sends outside it.
* **Best effort** — delivery failures are logged and swallowed.  The
  stored ``Notification`` row remains the source of truth; clients
  that were offline fetch it from the inbox API.
* **Injectable** — services accept a dispatcher instance; the module
  level ``default_dispatcher`` is used when none is supplied.

A channel is any object exposing ``send(payload: dict, timeout: float)``.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Protocol

from django.conf import settings

from core.constants import DEFAULT_REALTIME_SEND_TIMEOUT

if TYPE_CHECKING:
    from core.models import Notification

logger = logging.getLogger(__name__)


class Channel(Protocol):
    def send(self, payload: dict[str, Any], timeout: float) -> None: ...


class ChannelRegistry:
    """Lock-guarded map of user id → live channel."""

    def __init__(self) -> None:
        self._channels: dict[Any, Channel] = {}
        self._lock = threading.Lock()

    def connect(self, user_id: Any, channel: Channel) -> None:
        with self._lock:
            previous = self._channels.get(user_id)
            self._channels[user_id] = channel
        if previous is not None and previous is not channel:
            logger.info("Replaced real-time channel for user %s", user_id)

    def disconnect(self, user_id: Any, channel: Channel) -> bool:
        """
        Remove the user's channel if it is still ``channel``.

        Returns ``True`` when an entry was removed.
        """
        with self._lock:
            if self._channels.get(user_id) is channel:
                del self._channels[user_id]
                return True
        return False

    def get(self, user_id: Any) -> Channel | None:
        with self._lock:
            return self._channels.get(user_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._channels)


def notification_payload(notification: Notification) -> dict[str, Any]:
    """Wire shape of a notification pushed to a live client."""
    return {
        "event": "notification",
        "id": notification.pk,
        "title": notification.title,
        "message": notification.message,
        "type": notification.type,
        "is_urgent": notification.is_urgent,
        "resource_type": notification.resource_type,
        "resource_id": notification.resource_id,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


class RealTimeDispatcher:
    """Pushes notifications to connected users via a ``ChannelRegistry``."""

    def __init__(self, registry: ChannelRegistry | None = None, timeout: float | None = None) -> None:
        self.registry = registry if registry is not None else ChannelRegistry()
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        if self._timeout is not None:
            return self._timeout
        return getattr(settings, "REALTIME_SEND_TIMEOUT", DEFAULT_REALTIME_SEND_TIMEOUT)

    def push(self, notification: Notification) -> bool:
        """
        Deliver ``notification`` to its recipient if they are connected.

        Returns ``True`` if a channel accepted the payload, ``False`` if
        the user is offline or the send failed.
        """
        channel = self.registry.get(notification.recipient_id)
        if channel is None:
            return False
        try:
            channel.send(notification_payload(notification), timeout=self.timeout)
        except Exception:
            logger.warning(
                "Real-time push of notification %s to user %s failed",
                notification.pk,
                notification.recipient_id,
                exc_info=True,
            )
            return False
        return True


default_registry = ChannelRegistry()
default_dispatcher = RealTimeDispatcher(default_registry)
