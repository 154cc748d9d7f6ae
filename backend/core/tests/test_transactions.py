"""
Tests for the store primitives in ``core.domain.transactions``.
"""

from __future__ import annotations

from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from accounts.models import User
from core.domain.exceptions import InvalidState, NotFound, SequenceError
from core.domain.transactions import compare_and_set, increment_sequence
from core.models import Notification, Sequence


class TestIncrementSequence(TestCase):

    def test_starts_at_one_and_increments(self):
        self.assertEqual([increment_sequence("orders") for _ in range(3)], [1, 2, 3])
        self.assertEqual(Sequence.objects.get(key="orders").value, 3)

    def test_keys_are_independent(self):
        increment_sequence("a")
        increment_sequence("a")
        self.assertEqual(increment_sequence("b"), 1)

    def test_continues_from_stored_value(self):
        Sequence.objects.create(key="invoices", value=41)
        self.assertEqual(increment_sequence("invoices"), 42)

    def test_database_error_becomes_sequence_error(self):
        with mock.patch.object(
            Sequence.objects, "filter", side_effect=DatabaseError("disk full"),
        ):
            with self.assertLogs("core.domain.transactions", level="ERROR"):
                with self.assertRaises(SequenceError):
                    increment_sequence("broken")


class TestCompareAndSet(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(
            username="cas", password="Pass!12345", email="cas@test.local",
        )

    def setUp(self):
        self.notification = Notification.objects.create(
            recipient=self.user, title="T", message="M",
        )

    def test_applies_changes_when_expectation_holds(self):
        compare_and_set(
            model_class=Notification,
            pk=self.notification.pk,
            expected={"is_read": False},
            changes={"is_read": True},
        )
        self.notification.refresh_from_db()
        self.assertTrue(self.notification.is_read)

    def test_stale_expectation_raises_invalid_state(self):
        Notification.objects.filter(pk=self.notification.pk).update(is_read=True)
        with self.assertRaises(InvalidState):
            compare_and_set(
                model_class=Notification,
                pk=self.notification.pk,
                expected={"is_read": False},
                changes={"title": "changed"},
            )
        self.notification.refresh_from_db()
        self.assertEqual(self.notification.title, "T")

    def test_missing_row_raises_not_found(self):
        with self.assertRaises(NotFound):
            compare_and_set(
                model_class=Notification,
                pk=self.notification.pk + 1000,
                expected={"is_read": False},
                changes={"is_read": True},
            )
