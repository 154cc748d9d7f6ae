"""
Tests for ``AuditRecorder`` and the immutability of ``AuditLog`` rows.
"""

from __future__ import annotations

from unittest import mock

from django.db import DatabaseError, transaction
from django.test import TestCase

from accounts.models import User
from audit.models import AuditAction, AuditLog, AuditLogImmutable, AuditResourceType
from audit.services import AuditQueryService, AuditRecorder


class TestAuditRecorder(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(
            username="auditor", password="Pass!12345", email="auditor@test.local",
        )

    def _record(self, **overrides):
        values = {
            "actor": self.user,
            "action": AuditAction.UPDATE,
            "resource_type": AuditResourceType.INCIDENT,
            "resource_id": 42,
            "description": "Assigned incident",
        }
        values.update(overrides)
        return AuditRecorder.record(**values)

    def test_records_entry(self):
        entry = self._record(metadata={"from": "open", "to": "under_investigation"})

        self.assertIsNotNone(entry)
        stored = AuditLog.objects.get(pk=entry.pk)
        self.assertEqual(stored.user, self.user)
        self.assertEqual(stored.resource_id, "42")
        self.assertTrue(stored.success)
        self.assertEqual(stored.metadata["to"], "under_investigation")

    def test_system_action_without_actor(self):
        entry = self._record(actor=None, action=AuditAction.OTHER)
        self.assertIsNone(entry.user)

    def test_storage_failure_returns_none_and_never_raises(self):
        with mock.patch.object(
            AuditLog.objects, "create", side_effect=DatabaseError("audit table locked"),
        ):
            with self.assertLogs("audit.services", level="ERROR"):
                self.assertIsNone(self._record())

    def test_failure_does_not_poison_enclosing_transaction(self):
        with transaction.atomic():
            with mock.patch.object(
                AuditLog.objects, "create", side_effect=DatabaseError("boom"),
            ):
                with self.assertLogs("audit.services", level="ERROR"):
                    self._record()
            # The outer transaction is still usable
            self.assertIsNotNone(self._record(description="after failure"))

    def test_for_resource_is_chronological(self):
        first = self._record(description="first")
        second = self._record(description="second")
        self._record(resource_id=7)

        history = list(AuditQueryService.for_resource(AuditResourceType.INCIDENT, 42))
        self.assertEqual(history, [first, second])


class TestAuditLogImmutability(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.entry = AuditLog.objects.create(
            action=AuditAction.CREATE,
            resource_type=AuditResourceType.SYSTEM,
            description="seed",
        )

    def test_save_on_existing_row_raises(self):
        self.entry.description = "tampered"
        with self.assertRaises(AuditLogImmutable):
            self.entry.save()

    def test_instance_delete_raises(self):
        with self.assertRaises(AuditLogImmutable):
            self.entry.delete()

    def test_queryset_update_and_delete_raise(self):
        with self.assertRaises(AuditLogImmutable):
            AuditLog.objects.filter(pk=self.entry.pk).update(description="x")
        with self.assertRaises(AuditLogImmutable):
            AuditLog.objects.all().delete()

        self.assertEqual(AuditLog.objects.get(pk=self.entry.pk).description, "seed")
