"""
Tests for notification persistence, fan-out and post-commit hooks.
"""

from __future__ import annotations

from unittest import mock

from django.test import TestCase

from accounts.models import Role, User
from core.domain.hooks import after_commit, run_isolated
from core.domain.notifications import (
    NotificationService,
    notify_all_with_role,
    notify_user,
    render_event,
)
from core.domain.realtime import ChannelRegistry, RealTimeDispatcher
from core.models import Notification


class RecordingChannel:
    def __init__(self):
        self.sent = []

    def send(self, payload, timeout):
        self.sent.append(payload)


class TestRenderEvent(TestCase):

    def test_known_event(self):
        title, message = render_event("incident_assigned", number="INC-2401-0001")
        self.assertEqual(title, "New Case Assigned")
        self.assertIn("INC-2401-0001", message)

    def test_unknown_event_falls_back(self):
        title, _ = render_event("something_else")
        self.assertEqual(title, "Something Else")


class TestNotifyUser(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(
            username="notified", password="Pass!12345", email="n@test.local",
        )

    def test_persists_then_pushes(self):
        registry = ChannelRegistry()
        channel = RecordingChannel()
        registry.connect(self.user.pk, channel)

        notification = notify_user(
            self.user,
            title="Title",
            message="Body",
            urgent=True,
            resource_type="incident",
            resource_id=12,
            dispatcher=RealTimeDispatcher(registry),
        )

        stored = Notification.objects.get(pk=notification.pk)
        self.assertTrue(stored.is_urgent)
        self.assertEqual(stored.resource_id, "12")
        self.assertEqual(channel.sent[0]["id"], notification.pk)

    def test_offline_user_still_gets_inbox_entry(self):
        notify_user(
            self.user,
            title="Offline",
            message="Body",
            dispatcher=RealTimeDispatcher(ChannelRegistry()),
        )
        self.assertEqual(Notification.objects.filter(recipient=self.user).count(), 1)


class TestNotifyAllWithRole(TestCase):

    @classmethod
    def setUpTestData(cls):
        admin_role, _ = Role.objects.get_or_create(name="admin")
        reporter_role, _ = Role.objects.get_or_create(name="reporter")
        cls.admins = [
            User.objects.create_user(
                username=f"admin{i}", password="Pass!12345",
                email=f"admin{i}@test.local", role=admin_role,
            )
            for i in range(3)
        ]
        cls.inactive_admin = User.objects.create_user(
            username="admin_gone", password="Pass!12345",
            email="gone@test.local", role=admin_role, is_active=False,
        )
        cls.reporter = User.objects.create_user(
            username="rep", password="Pass!12345",
            email="rep@test.local", role=reporter_role,
        )

    def test_only_active_users_with_role_are_notified(self):
        created = notify_all_with_role(
            "admin", title="T", message="M",
            dispatcher=RealTimeDispatcher(ChannelRegistry()),
        )
        self.assertEqual({n.recipient_id for n in created}, {u.pk for u in self.admins})
        self.assertFalse(Notification.objects.filter(recipient=self.reporter).exists())
        self.assertFalse(Notification.objects.filter(recipient=self.inactive_admin).exists())

    def test_failure_for_one_recipient_does_not_stop_the_others(self):
        original = NotificationService.create.__func__
        failing_pk = self.admins[1].pk

        def flaky_create(cls, **kwargs):
            if kwargs["recipient"].pk == failing_pk:
                raise RuntimeError("storage hiccup")
            return original(cls, **kwargs)

        with mock.patch.object(NotificationService, "create", classmethod(flaky_create)):
            with self.assertLogs("core.domain.notifications", level="ERROR"):
                created = notify_all_with_role(
                    "admin", title="T", message="M",
                    dispatcher=RealTimeDispatcher(ChannelRegistry()),
                )

        self.assertEqual(len(created), 2)
        self.assertFalse(Notification.objects.filter(recipient_id=failing_pk).exists())

    def test_no_recipients_returns_empty_list(self):
        self.assertEqual(notify_all_with_role("officer", title="T", message="M"), [])


class TestHooks(TestCase):

    def test_run_isolated_logs_and_returns_none(self):
        def boom():
            raise ValueError("nope")

        with self.assertLogs("core.domain.hooks", level="ERROR"):
            self.assertIsNone(run_isolated("test.boom", boom))

    def test_after_commit_runs_only_after_commit(self):
        calls = []
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            after_commit("test.record", calls.append, "done")
            self.assertEqual(calls, [])
        self.assertEqual(len(callbacks), 1)
        self.assertEqual(calls, ["done"])

    def test_failing_hook_does_not_propagate(self):
        def boom():
            raise RuntimeError("side effect failed")

        with self.assertLogs("core.domain.hooks", level="ERROR"):
            with self.captureOnCommitCallbacks(execute=True):
                after_commit("test.boom", boom)
