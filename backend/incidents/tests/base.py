"""
Shared fixtures for the incidents test modules.
"""

from __future__ import annotations

from django.test import TestCase

from accounts.models import Role, User
from core.domain.realtime import ChannelRegistry, RealTimeDispatcher
from incidents.services import IncidentLifecycleService
from vehicles.models import Vehicle


class RecordingChannel:
    def __init__(self):
        self.sent = []

    def send(self, payload, timeout):
        self.sent.append(payload)


def make_user(username: str, role_name: str | None) -> User:
    role = Role.objects.get_or_create(name=role_name)[0] if role_name else None
    return User.objects.create_user(
        username=username,
        password="Pass!12345",
        email=f"{username}@test.local",
        first_name=username.title(),
        role=role,
    )


class IncidentTestCase(TestCase):
    """
    One user per role, a second investigator and a second reporter, and
    two registered vehicles.
    """

    @classmethod
    def setUpTestData(cls):
        cls.admin = make_user("admin_user", "admin")
        cls.officer = make_user("officer_user", "officer")
        cls.investigator = make_user("investigator_user", "investigator")
        cls.other_investigator = make_user("investigator_two", "investigator")
        cls.reporter = make_user("reporter_user", "reporter")
        cls.other_reporter = make_user("reporter_two", "reporter")
        cls.car = Vehicle.objects.create(license_plate="CAR-001", make="Toyota", model="Corolla")
        cls.truck = Vehicle.objects.create(license_plate="TRK-002", make="Volvo", model="FH16")

    def setUp(self):
        self.channel = RecordingChannel()
        registry = ChannelRegistry()
        registry.connect(self.investigator.pk, self.channel)
        self.service = IncidentLifecycleService(dispatcher=RealTimeDispatcher(registry))

    # ── Driving the lifecycle with post-commit hooks executed ───────

    def run_committed(self, fn, *args, **kwargs):
        with self.captureOnCommitCallbacks(execute=True):
            return fn(*args, **kwargs)

    def create_incident(self, user=None, **overrides):
        payload = {
            "title": "Rear-ended at junction",
            "description": "Hit from behind while waiting at a red light.",
            "type": "accident",
            "severity": "medium",
            "location": "5th Ave & Main St",
            "vehicle": self.car.pk,
        }
        payload.update(overrides)
        return self.run_committed(self.service.create_incident, user or self.reporter, payload)

    def assign(self, incident, investigator=None, **extra):
        payload = {"investigator_id": (investigator or self.investigator).pk, **extra}
        return self.run_committed(self.service.assign_investigator, incident.pk, self.admin, payload)

    def submit(self, incident, user=None):
        payload = {
            "findings": "Brake lights of the rear vehicle were broken.",
            "recommendations": "Refer to traffic prosecution.",
            "conclusion": "substantiated",
            "content": "Full report text.",
            "attachments": ["https://files.example.com/report.pdf"],
        }
        return self.run_committed(
            self.service.submit_report, incident.pk, user or self.investigator, payload,
        )

    def review(self, incident, decision="approved", **extra):
        payload = {"actions": "Read report and evidence.", "report_status": decision, **extra}
        return self.run_committed(self.service.review_report, incident.pk, self.officer, payload)
