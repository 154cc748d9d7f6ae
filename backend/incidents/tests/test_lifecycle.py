"""
Tests for ``IncidentLifecycleService`` — transitions, guards, timeline,
audit entries and notifications.
"""

from __future__ import annotations

import re
from unittest import mock

from django.db import DatabaseError
from django.test import override_settings

from audit.models import AuditAction, AuditLog, AuditResourceType
from audit.services import AuditQueryService
from core.domain.exceptions import (
    InvalidState,
    NotFound,
    PermissionDenied,
    ReferenceNotFound,
    ValidationFailed,
)
from core.models import Notification
from incidents.models import Incident, TimelineEntry
from incidents.services import IncidentQueryService

from .base import IncidentTestCase


def _audit_actions(incident):
    return [
        entry.action
        for entry in AuditQueryService.for_resource(AuditResourceType.INCIDENT, incident.pk)
    ]


def _timeline_actions(incident):
    return list(
        TimelineEntry.objects.filter(incident_id=incident.pk)
        .order_by("date", "id")
        .values_list("action", flat=True)
    )


class TestCreateIncident(IncidentTestCase):

    def test_creates_open_incident_with_case_file_and_timeline(self):
        incident = self.create_incident()

        self.assertRegex(incident.incident_number, r"^INC-\d{4}-\d{4,}$")
        self.assertEqual(incident.status, "open")
        self.assertEqual(incident.version, 0)
        self.assertEqual(incident.reported_by, self.reporter)
        self.assertEqual(incident.case_file.status, "not_assigned")
        self.assertEqual(_timeline_actions(incident), ["Incident Reported"])
        self.assertEqual(_audit_actions(incident), [AuditAction.CREATE])

    def test_lone_vehicle_is_stored_in_both_shapes(self):
        incident = self.create_incident()
        self.assertEqual(incident.vehicle_id, self.car.pk)
        involved = list(incident.vehicles.all())
        self.assertEqual(len(involved), 1)
        self.assertEqual(involved[0].vehicle_id, self.car.pk)
        self.assertEqual(involved[0].involvement, "victim")
        self.assertEqual(incident.incident_type, "accident")

    def test_numbers_follow_the_sequence(self):
        first = self.create_incident()
        second = self.create_incident()
        seq = [int(re.search(r"(\d+)$", i.incident_number).group(1)) for i in (first, second)]
        self.assertEqual(seq[1], seq[0] + 1)

    def test_required_text(self):
        with self.assertRaises(ValidationFailed) as ctx:
            self.create_incident(title="  ")
        self.assertIn("title", ctx.exception.errors)
        self.assertFalse(Incident.objects.exists())

    def test_invalid_severity(self):
        with self.assertRaises(ValidationFailed):
            self.create_incident(severity="apocalyptic")

    def test_unknown_vehicle(self):
        with self.assertRaises(ReferenceNotFound):
            self.create_incident(vehicle=999999)
        self.assertFalse(Incident.objects.exists())

    def test_vehicle_is_required(self):
        for missing in ({"vehicle": None}, {"vehicle": ""}, {"vehicle": None, "vehicles": []}):
            with self.subTest(payload=missing):
                with self.assertRaises(ValidationFailed) as ctx:
                    self.create_incident(**missing)
                self.assertIn("vehicle", ctx.exception.errors)
        self.assertFalse(Incident.objects.exists())

    def test_vehicle_list_without_lone_vehicle(self):
        incident = self.create_incident(vehicle=None, vehicles=[
            {"vehicle": self.truck.pk, "involvement": "suspect"},
        ])
        self.assertEqual(incident.vehicle_id, self.truck.pk)

    def test_initial_evidence(self):
        incident = self.create_incident(evidence=[
            {"type": "photo", "file_url": "https://files.example.com/1.jpg", "tags": ["rear"]},
        ])
        evidence = incident.evidence.get()
        self.assertEqual(evidence.collected_by, self.reporter)
        self.assertEqual(evidence.tags, ["rear"])


class TestAssignInvestigator(IncidentTestCase):

    def setUp(self):
        super().setUp()
        self.incident = self.create_incident()

    def test_assign(self):
        incident = self.assign(self.incident, priority="high")

        self.assertEqual(incident.status, "under_investigation")
        self.assertEqual(incident.version, 1)
        self.assertEqual(incident.assigned_to, self.investigator)
        self.assertEqual(incident.assigned_by, self.admin)
        self.assertEqual(incident.case_file.status, "assigned")
        self.assertEqual(incident.case_file.priority, "high")
        self.assertEqual(incident.case_file.assigned_investigator, self.investigator)
        self.assertIsNotNone(incident.case_file.investigation_start_date)
        self.assertEqual(
            _timeline_actions(incident), ["Incident Reported", "Assigned to Investigator"],
        )
        self.assertEqual(_audit_actions(incident), [AuditAction.CREATE, AuditAction.UPDATE])

        notification = Notification.objects.get(recipient=self.investigator)
        self.assertEqual(notification.title, "New Case Assigned")
        self.assertIn(incident.incident_number, notification.message)
        self.assertFalse(notification.is_urgent)
        self.assertEqual(notification.resource_id, str(incident.pk))
        self.assertEqual(len(self.channel.sent), 1)

    def test_urgent_priority_marks_notification_urgent(self):
        self.assign(self.incident, priority="urgent")
        self.assertTrue(Notification.objects.get(recipient=self.investigator).is_urgent)

    def test_reassignment_is_allowed(self):
        self.assign(self.incident)
        incident = self.assign(self.incident, investigator=self.other_investigator)
        self.assertEqual(incident.assigned_to, self.other_investigator)
        self.assertEqual(incident.version, 2)

    def test_non_admin_is_forbidden_before_payload_checks(self):
        for user in (self.officer, self.investigator, self.reporter):
            with self.subTest(user=user.username):
                with self.assertRaises(PermissionDenied):
                    self.service.assign_investigator(self.incident.pk, user, {})

    def test_missing_investigator(self):
        with self.assertRaises(ValidationFailed) as ctx:
            self.service.assign_investigator(self.incident.pk, self.admin, {})
        self.assertIn("investigator_id", ctx.exception.errors)

    def test_invalid_priority(self):
        with self.assertRaises(ValidationFailed):
            self.service.assign_investigator(
                self.incident.pk, self.admin,
                {"investigator_id": self.investigator.pk, "priority": "whenever"},
            )

    def test_target_must_be_an_investigator(self):
        with self.assertRaises(ValidationFailed):
            self.service.assign_investigator(
                self.incident.pk, self.admin, {"investigator_id": self.officer.pk},
            )

    def test_unknown_investigator(self):
        with self.assertRaises(ReferenceNotFound):
            self.service.assign_investigator(
                self.incident.pk, self.admin, {"investigator_id": 987654},
            )

    def test_unknown_incident(self):
        with self.assertRaises(NotFound):
            self.service.assign_investigator(
                987654, self.admin, {"investigator_id": self.investigator.pk},
            )

    def test_closed_incident_cannot_be_assigned(self):
        self.assign(self.incident)
        self.submit(self.incident)
        self.review(self.incident, "approved")
        with self.assertRaises(InvalidState):
            self.assign(self.incident)

    def test_audit_failure_does_not_undo_assignment(self):
        with mock.patch.object(
            AuditLog.objects, "create", side_effect=DatabaseError("audit store down"),
        ):
            incident = self.assign(self.incident)

        self.assertEqual(incident.status, "under_investigation")
        self.assertEqual(
            Incident.objects.get(pk=self.incident.pk).status, "under_investigation",
        )
        # The assignment itself left no audit entry, the notification still went out
        self.assertEqual(_audit_actions(incident), [AuditAction.CREATE])
        self.assertTrue(Notification.objects.filter(recipient=self.investigator).exists())

    def test_notification_failure_does_not_undo_assignment(self):
        with mock.patch(
            "core.domain.notifications.NotificationService.create",
            side_effect=RuntimeError("inbox unavailable"),
        ):
            incident = self.assign(self.incident)

        self.assertEqual(incident.status, "under_investigation")
        self.assertEqual(_audit_actions(incident), [AuditAction.CREATE, AuditAction.UPDATE])

    def test_rolled_back_transition_has_no_side_effects(self):
        with mock.patch(
            "incidents.repository.IncidentRepository.append_timeline",
            side_effect=DatabaseError("disk full"),
        ):
            with self.assertRaises(DatabaseError):
                self.assign(self.incident)

        incident = Incident.objects.get(pk=self.incident.pk)
        self.assertEqual(incident.status, "open")
        self.assertEqual(incident.version, 0)
        self.assertEqual(_audit_actions(incident), [AuditAction.CREATE])
        self.assertFalse(Notification.objects.exists())


class TestReportAndReview(IncidentTestCase):

    def setUp(self):
        super().setUp()
        self.incident = self.assign(self.create_incident())

    def test_submit(self):
        incident = self.submit(self.incident)

        case_file = incident.case_file
        self.assertEqual(incident.status, "pending")
        self.assertEqual(case_file.status, "report_submitted")
        self.assertEqual(case_file.report_status, "submitted")
        self.assertEqual(case_file.conclusion, "substantiated")
        self.assertEqual(case_file.report_submitted_by, self.investigator)
        self.assertEqual(case_file.report_attachments, ["https://files.example.com/report.pdf"])
        self.assertIsNotNone(case_file.investigation_end_date)

        reporter_note = Notification.objects.get(recipient=self.reporter)
        self.assertEqual(reporter_note.title, "Investigation Report Submitted")
        self.assertTrue(reporter_note.is_urgent)
        self.assertTrue(Notification.objects.filter(recipient=self.admin, is_urgent=True).exists())

    def test_only_the_assigned_investigator_may_submit(self):
        valid = {
            "findings": "f", "recommendations": "r",
            "conclusion": "inconclusive", "content": "c",
        }
        for payload in ({}, valid):
            with self.subTest(payload=bool(payload)):
                with self.assertRaises(PermissionDenied):
                    self.service.submit_report(self.incident.pk, self.other_investigator, payload)
        with self.assertRaises(PermissionDenied):
            self.service.submit_report(self.incident.pk, self.reporter, valid)

    def test_submit_payload_validation(self):
        with self.assertRaises(ValidationFailed) as ctx:
            self.service.submit_report(self.incident.pk, self.investigator, {"findings": "x"})
        self.assertEqual(
            set(ctx.exception.errors), {"recommendations", "conclusion", "content"},
        )
        with self.assertRaises(ValidationFailed):
            self.service.submit_report(self.incident.pk, self.investigator, {
                "findings": "f", "recommendations": "r",
                "conclusion": "guilty", "content": "c",
            })

    def test_double_submission_is_an_invalid_state(self):
        self.submit(self.incident)
        with self.assertRaises(InvalidState):
            self.submit(self.incident)

    def test_review_before_submission_is_an_invalid_state(self):
        with self.assertRaises(InvalidState):
            self.review(self.incident)

    def test_only_officers_review(self):
        self.submit(self.incident)
        for user in (self.admin, self.investigator, self.reporter):
            with self.subTest(user=user.username):
                with self.assertRaises(PermissionDenied):
                    self.service.review_report(self.incident.pk, user, {})

    def test_review_requires_actions(self):
        self.submit(self.incident)
        with self.assertRaises(ValidationFailed) as ctx:
            self.service.review_report(self.incident.pk, self.officer, {"report_status": "approved"})
        self.assertIn("actions", ctx.exception.errors)

    def test_approval_closes_the_incident(self):
        self.submit(self.incident)
        incident = self.review(self.incident, "approved", conclusion="confirmed", notes="Good work")

        case_file = incident.case_file
        self.assertEqual(incident.status, "closed")
        self.assertEqual(case_file.status, "review_complete")
        self.assertEqual(case_file.report_status, "approved")
        self.assertEqual(case_file.officer_status, "completed")
        self.assertEqual(case_file.officer_conclusion, "confirmed")
        self.assertEqual(case_file.reviewed_by, self.officer)
        self.assertEqual(case_file.reopen_count, 0)
        self.assertEqual(
            _timeline_actions(incident),
            [
                "Incident Reported",
                "Assigned to Investigator",
                "Investigation Report Submitted",
                "Investigation Report Reviewed",
            ],
        )
        self.assertEqual(_audit_actions(incident)[-1], AuditAction.REVIEW)

        approved = Notification.objects.filter(
            recipient=self.reporter, title="Investigation Report Approved",
        ).get()
        self.assertEqual(approved.type, "success")

    def test_rejection_reopens_and_loops_back(self):
        self.submit(self.incident)
        incident = self.review(self.incident, "rejected")

        self.assertEqual(incident.status, "reopened")
        self.assertEqual(incident.case_file.status, "under_investigation")
        self.assertEqual(incident.case_file.officer_status, "in_progress")
        self.assertEqual(incident.case_file.reopen_count, 1)
        for recipient in (self.reporter, self.investigator):
            self.assertEqual(
                Notification.objects.get(recipient=recipient, title="Investigation Reopened").type,
                "warning",
            )

        incident = self.submit(incident)
        self.assertEqual(incident.status, "pending")
        self.assertEqual(incident.case_file.report_status, "submitted")

        incident = self.review(incident, "approved")
        self.assertEqual(incident.status, "closed")
        self.assertEqual(incident.case_file.reopen_count, 1)

    def test_plain_review_decision_reopens(self):
        self.submit(self.incident)
        incident = self.review(self.incident, "reviewed")
        self.assertEqual(incident.status, "reopened")

    def test_invalid_review_decision(self):
        self.submit(self.incident)
        with self.assertRaises(ValidationFailed):
            self.review(self.incident, "submitted")

    @override_settings(INCIDENTS_MAX_REOPEN_CYCLES=1)
    def test_reopen_cycles_are_capped(self):
        self.submit(self.incident)
        self.review(self.incident, "rejected")
        self.submit(self.incident)
        with self.assertRaises(InvalidState):
            self.review(self.incident, "rejected")

        # Approval is still possible once the cap is reached
        incident = self.review(self.incident, "approved")
        self.assertEqual(incident.status, "closed")

    def test_timeline_only_grows(self):
        before = list(
            TimelineEntry.objects.filter(incident_id=self.incident.pk).values("id", "action", "date")
        )
        self.submit(self.incident)
        self.review(self.incident, "rejected")
        after = list(
            TimelineEntry.objects.filter(incident_id=self.incident.pk).values("id", "action", "date")
        )
        self.assertEqual(after[:len(before)], before)
        self.assertEqual(len(after), len(before) + 2)


class TestUpdateAndDelete(IncidentTestCase):

    def setUp(self):
        super().setUp()
        self.incident = self.create_incident()

    def test_reporter_updates_details(self):
        incident = self.run_committed(
            self.service.update_incident,
            self.incident.pk,
            self.reporter,
            {"title": "Rear-ended twice", "vehicles": [
                {"vehicle": self.truck.pk, "involvement": "suspect"},
                {"vehicle": self.car.pk, "involvement": "victim"},
            ]},
        )
        self.assertEqual(incident.title, "Rear-ended twice")
        self.assertEqual(incident.vehicle_id, self.truck.pk)
        self.assertEqual([v.vehicle_id for v in incident.vehicles.all()], [self.truck.pk, self.car.pk])
        self.assertEqual(incident.status, "open")
        self.assertEqual(incident.version, 0)
        self.assertEqual(_timeline_actions(incident)[-1], "Details Updated")
        # The reporter changed it themselves, nobody is notified
        self.assertFalse(Notification.objects.exists())

    def test_staff_update_notifies_reporter(self):
        self.run_committed(
            self.service.update_incident, self.incident.pk, self.officer, {"severity": "high"},
        )
        self.assertTrue(
            Notification.objects.filter(recipient=self.reporter, title="Incident Updated").exists()
        )

    def test_status_cannot_be_written(self):
        with self.assertRaises(ValidationFailed):
            self.service.update_incident(self.incident.pk, self.reporter, {"status": "closed"})

    def test_blank_title_is_rejected(self):
        with self.assertRaises(ValidationFailed):
            self.service.update_incident(self.incident.pk, self.reporter, {"title": ""})

    def test_other_reporter_is_forbidden(self):
        with self.assertRaises(PermissionDenied):
            self.service.update_incident(self.incident.pk, self.other_reporter, {"title": "x"})

    def test_unknown_vehicle_reference(self):
        with self.assertRaises(ReferenceNotFound):
            self.service.update_incident(self.incident.pk, self.reporter, {"vehicle": 424242})

    def test_delete(self):
        with self.assertRaises(PermissionDenied):
            self.service.delete_incident(self.incident.pk, self.other_reporter)
        with self.assertRaises(PermissionDenied):
            self.service.delete_incident(self.incident.pk, self.investigator)

        self.run_committed(self.service.delete_incident, self.incident.pk, self.reporter)
        self.assertFalse(Incident.objects.filter(pk=self.incident.pk).exists())
        self.assertEqual(_audit_actions(self.incident)[-1], AuditAction.DELETE)
        with self.assertRaises(NotFound):
            self.service.get_incident(self.incident.pk, self.admin)


class TestNotesAndEvidence(IncidentTestCase):

    def setUp(self):
        super().setUp()
        self.incident = self.create_incident()

    def test_notes_and_privacy(self):
        public = self.run_committed(
            self.service.add_note, self.incident.pk, self.officer, "Called the reporter.",
        )
        private = self.run_committed(
            self.service.add_note, self.incident.pk, self.investigator, "Suspect plate partial.",
            is_private=True,
        )
        incident = self.service.get_incident(self.incident.pk, self.admin)

        self.assertEqual(incident.version, 0)
        self.assertEqual(_timeline_actions(incident)[-2:], ["Note Added", "Note Added"])

        visible = IncidentQueryService.visible_notes
        self.assertEqual(visible(incident, self.admin), [public, private])
        self.assertEqual(visible(incident, self.investigator), [public, private])
        self.assertEqual(visible(incident, self.reporter), [public])
        self.assertEqual(visible(incident, self.officer), [public])

    def test_blank_note(self):
        with self.assertRaises(ValidationFailed):
            self.service.add_note(self.incident.pk, self.officer, "   ")

    def test_evidence(self):
        evidence = self.run_committed(
            self.service.add_evidence, self.incident.pk, self.reporter,
            {"type": "video", "file_url": "https://files.example.com/dashcam.mp4"},
        )
        self.assertEqual(evidence.collected_by, self.reporter)
        self.assertEqual(_timeline_actions(self.incident)[-1], "Evidence Added")
        self.assertEqual(_audit_actions(self.incident)[-1], AuditAction.UPLOAD)

        with self.assertRaises(ValidationFailed):
            self.service.add_evidence(self.incident.pk, self.reporter, {"type": "hologram"})
        with self.assertRaises(PermissionDenied):
            self.service.add_evidence(self.incident.pk, self.other_reporter, {"type": "photo"})


class TestQueries(IncidentTestCase):

    def setUp(self):
        super().setUp()
        self.mine = self.create_incident(self.reporter, title="Mine")
        self.theirs = self.create_incident(self.other_reporter, title="Theirs", vehicle=self.truck.pk)
        self.queries = IncidentQueryService()

    def test_reporters_only_see_their_own(self):
        items, total = self.queries.list_incidents(self.reporter)
        self.assertEqual((items, total), ([self.mine], 1))
        with self.assertRaises(PermissionDenied):
            self.service.get_incident(self.theirs.pk, self.reporter)

    def test_staff_see_everything_newest_first(self):
        items, total = self.queries.list_incidents(self.investigator)
        self.assertEqual(total, 2)
        self.assertEqual(items, [self.theirs, self.mine])

    def test_filters_and_paging(self):
        items, total = self.queries.list_incidents(self.admin, filters={"search": "their"})
        self.assertEqual((items, total), ([self.theirs], 1))
        items, total = self.queries.list_incidents(self.admin, page=2, limit=1)
        self.assertEqual((items, total), ([self.mine], 2))

    def test_by_vehicle(self):
        self.assertEqual(list(self.queries.incidents_by_vehicle(self.truck.pk, self.admin)), [self.theirs])
        self.assertEqual(list(self.queries.incidents_by_vehicle(self.truck.pk, self.reporter)), [])

    def test_by_reporter(self):
        self.assertEqual(
            list(self.queries.incidents_by_reporter(self.reporter.pk, self.reporter)), [self.mine],
        )
        self.assertEqual(
            list(self.queries.incidents_by_reporter(self.other_reporter.pk, self.admin)), [self.theirs],
        )
        with self.assertRaises(PermissionDenied):
            self.queries.incidents_by_reporter(self.other_reporter.pk, self.reporter)
