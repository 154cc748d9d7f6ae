"""
End-to-end notification flow: lifecycle transitions driven through the
API land in each participant's inbox and reach connected users in real
time.
"""

from __future__ import annotations

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Role, User
from core.domain.realtime import default_registry
from vehicles.models import Vehicle


class RecordingChannel:
    def __init__(self):
        self.sent = []

    def send(self, payload, timeout):
        self.sent.append(payload)


def _make_user(username: str, role_name: str) -> User:
    role, _ = Role.objects.get_or_create(name=role_name)
    return User.objects.create_user(
        username=username,
        password="Fl0w!Pass123",
        email=f"{username}@test.local",
        role=role,
    )


class TestNotificationsFlow(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.admin = _make_user("flow_admin", "admin")
        cls.officer = _make_user("flow_officer", "officer")
        cls.investigator = _make_user("flow_investigator", "investigator")
        cls.reporter = _make_user("flow_reporter", "reporter")
        cls.vehicle = Vehicle.objects.create(license_plate="FLW-777", make="Ford", model="Focus")

    def setUp(self):
        self.client = APIClient()
        self.channel = RecordingChannel()
        default_registry.connect(self.investigator.pk, self.channel)
        self.addCleanup(default_registry.disconnect, self.investigator.pk, self.channel)

    def _post(self, user, url, data):
        self.client.force_authenticate(user)
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.client.post(url, data)
        self.assertIn(resp.status_code, (status.HTTP_200_OK, status.HTTP_201_CREATED), resp.data)
        return resp.data

    def _inbox(self, user):
        self.client.force_authenticate(user)
        resp = self.client.get(reverse("core:notification-list"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        return [n["title"] for n in resp.data]

    def test_rejected_then_approved_report(self):
        incident = self._post(self.reporter, reverse("incidents:incident-list"), {
            "title": "Keyed paintwork",
            "description": "Deep scratches along the driver side.",
            "type": "vandalism",
            "location": "Car park level 2",
            "vehicle": self.vehicle.pk,
        })
        pk = incident["id"]

        def action(name):
            return reverse(f"incidents:incident-{name}", args=[pk])

        self._post(self.admin, action("assign"), {"investigator_id": self.investigator.pk})
        self.assertEqual(self._inbox(self.investigator), ["New Case Assigned"])
        self.assertEqual(len(self.channel.sent), 1)
        self.assertEqual(self.channel.sent[0]["resource_id"], str(pk))

        report = {
            "findings": "CCTV shows a cyclist.",
            "recommendations": "Close.",
            "conclusion": "inconclusive",
            "content": "Report.",
        }
        self._post(self.investigator, action("report"), report)
        self.assertEqual(self._inbox(self.admin), ["Investigation Report Submitted"])

        self._post(self.officer, action("review"), {
            "actions": "Need the cyclist identified.",
            "report_status": "rejected",
        })
        self.assertEqual(
            self._inbox(self.investigator), ["Investigation Reopened", "New Case Assigned"],
        )
        self.assertEqual(len(self.channel.sent), 2)

        self._post(self.investigator, action("report"), report)
        detail = self._post(self.officer, action("review"), {
            "actions": "Accepted.",
            "report_status": "approved",
        })
        self.assertEqual(detail["status"], "closed")
        self.assertEqual(detail["case_file"]["reopen_count"], 1)
        self.assertEqual(
            self._inbox(self.reporter),
            [
                "Investigation Report Approved",
                "Investigation Report Submitted",
                "Investigation Reopened",
                "Investigation Report Submitted",
            ],
        )

        self.client.force_authenticate(self.reporter)
        unread = self.client.get(reverse("core:notification-unread-count")).data["count"]
        self.assertEqual(unread, 4)
