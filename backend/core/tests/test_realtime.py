"""
Unit tests for the real-time dispatcher and its channel registry.

Channels are plain objects with a ``send(payload, timeout)`` method, so
the tests use small recording fakes instead of a transport.
"""

from __future__ import annotations

import threading

from django.test import TestCase, override_settings

from accounts.models import User
from core.domain.realtime import ChannelRegistry, RealTimeDispatcher
from core.models import Notification


class RecordingChannel:
    def __init__(self):
        self.sent = []

    def send(self, payload, timeout):
        self.sent.append((payload, timeout))


class BrokenChannel:
    def send(self, payload, timeout):
        raise ConnectionError("socket closed")


class TestChannelRegistry(TestCase):

    def test_connect_replaces_previous_channel(self):
        registry = ChannelRegistry()
        first, second = RecordingChannel(), RecordingChannel()
        registry.connect(1, first)
        registry.connect(1, second)
        self.assertIs(registry.get(1), second)
        self.assertEqual(len(registry), 1)

    def test_disconnect_ignores_stale_channel(self):
        registry = ChannelRegistry()
        old, new = RecordingChannel(), RecordingChannel()
        registry.connect(1, old)
        registry.connect(1, new)

        # The old connection closing must not drop the new one
        self.assertFalse(registry.disconnect(1, old))
        self.assertIs(registry.get(1), new)

        self.assertTrue(registry.disconnect(1, new))
        self.assertIsNone(registry.get(1))

    def test_concurrent_connects_keep_one_entry_per_user(self):
        registry = ChannelRegistry()

        def worker(user_id):
            for _ in range(50):
                registry.connect(user_id, RecordingChannel())

        threads = [threading.Thread(target=worker, args=(uid % 5,)) for uid in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(registry), 5)


class TestRealTimeDispatcher(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(
            username="rt_user", password="Pass!12345", email="rt@test.local",
        )

    def _notification(self):
        return Notification.objects.create(
            recipient=self.user,
            title="Hello",
            message="World",
            resource_type="incident",
            resource_id="7",
        )

    def test_push_without_channel_is_a_noop(self):
        dispatcher = RealTimeDispatcher(ChannelRegistry())
        self.assertFalse(dispatcher.push(self._notification()))

    @override_settings(REALTIME_SEND_TIMEOUT=1.5)
    def test_push_delivers_payload_with_configured_timeout(self):
        registry = ChannelRegistry()
        channel = RecordingChannel()
        registry.connect(self.user.pk, channel)
        notification = self._notification()

        self.assertTrue(RealTimeDispatcher(registry).push(notification))

        payload, timeout = channel.sent[0]
        self.assertEqual(timeout, 1.5)
        self.assertEqual(payload["event"], "notification")
        self.assertEqual(payload["id"], notification.pk)
        self.assertEqual(payload["resource_id"], "7")

    def test_transport_error_is_swallowed(self):
        registry = ChannelRegistry()
        registry.connect(self.user.pk, BrokenChannel())
        dispatcher = RealTimeDispatcher(registry, timeout=0.1)

        with self.assertLogs("core.domain.realtime", level="WARNING"):
            self.assertFalse(dispatcher.push(self._notification()))
