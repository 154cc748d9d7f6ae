"""
Incidents app Service Layer.

This module is the **single source of truth** for the incident
lifecycle.  Views must remain thin: validate input via serializers, call
a service method, and return the result wrapped in a DRF ``Response``.

Architecture
------------
- ``TRANSITIONS``              — Declarative role / source-state table.
- ``IncidentLifecycleService`` — Every state-changing operation.
- ``IncidentQueryService``     — Role-scoped listing and lookups.

Lifecycle Overview
------------------

  (create)              → OPEN                  case file NOT_ASSIGNED
  OPEN / UNDER_INVEST.  → UNDER_INVESTIGATION   case file ASSIGNED          (admin)
  UNDER_INVEST. / REOP. → PENDING               case file REPORT_SUBMITTED  (assigned investigator)
  PENDING               → CLOSED                case file REVIEW_COMPLETE   (officer approves)
  PENDING               → REOPENED              case file UNDER_INVESTIGATION (officer rejects)
     ↺ REOPENED → PENDING on resubmission

Every operation checks its guards in the same order before touching the
database::

    NotFound → role (Forbidden) → ownership (Forbidden)
             → payload (ValidationFailed) → source state (InvalidState)
             → references (ReferenceNotFound)

A transition then performs one compare-and-set on ``(status, version)``
plus one timeline insert inside a single transaction, and registers its
audit entry and notifications as post-commit hooks.  Hook failures are
logged and never undo the transition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

from django.conf import settings
from django.db import transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from accounts.models import RoleName
from accounts.services import UserDirectory
from audit.models import AuditAction, AuditResourceType
from audit.services import AuditRecorder
from core.constants import (
    DEFAULT_PAGE_SIZE,
    INCIDENT_NUMBER_PADDING,
    INCIDENT_NUMBER_PREFIX,
    INCIDENT_NUMBER_SEQUENCE,
    MAX_PAGE_SIZE,
)
from core.domain.access import apply_role_scope, get_user_role_name, user_has_role
from core.domain.exceptions import (
    InvalidState,
    PermissionDenied,
    ReferenceNotFound,
    ValidationFailed,
)
from core.domain.hooks import after_commit
from core.domain.notifications import notify_all_with_role, notify_user, render_event
from vehicles.services import VehicleDirectory

from .models import (
    CaseConclusion,
    CaseFileStatus,
    EvidenceType,
    Incident,
    IncidentEvidence,
    IncidentNote,
    IncidentStatus,
    OfficerActionStatus,
    OfficerConclusion,
    Priority,
    ReportStatus,
    Severity,
    TimelineEntry,
)
from .normalization import normalize_incident_payload
from .repository import IncidentRepository

if TYPE_CHECKING:
    from accounts.models import User
    from core.domain.realtime import RealTimeDispatcher

logger = logging.getLogger(__name__)

STAFF_ROLES = frozenset({RoleName.ADMIN, RoleName.INVESTIGATOR, RoleName.OFFICER})


# ═══════════════════════════════════════════════════════════════════
#  Transition table
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TransitionRule:
    """
    Who may run an operation and from which incident states.

    ``roles=None`` admits any authenticated user.  ``allow_reporter``
    additionally admits the user who reported the incident.
    ``require_assignee`` restricts the operation to the investigator the
    case file is currently assigned to.  ``sources=None`` means any state.
    """

    roles: frozenset[str] | None
    sources: frozenset[str] | None = None
    target: str | None = None
    case_file_target: str | None = None
    allow_reporter: bool = False
    require_assignee: bool = False


TRANSITIONS: dict[str, TransitionRule] = {
    "create": TransitionRule(
        roles=None,
        target=IncidentStatus.OPEN,
        case_file_target=CaseFileStatus.NOT_ASSIGNED,
    ),
    "assign": TransitionRule(
        roles=frozenset({RoleName.ADMIN}),
        sources=frozenset({IncidentStatus.OPEN, IncidentStatus.UNDER_INVESTIGATION}),
        target=IncidentStatus.UNDER_INVESTIGATION,
        case_file_target=CaseFileStatus.ASSIGNED,
    ),
    "submit_report": TransitionRule(
        roles=frozenset({RoleName.INVESTIGATOR}),
        sources=frozenset({IncidentStatus.UNDER_INVESTIGATION, IncidentStatus.REOPENED}),
        target=IncidentStatus.PENDING,
        case_file_target=CaseFileStatus.REPORT_SUBMITTED,
        require_assignee=True,
    ),
    # Target depends on the review outcome, see ``_REVIEW_OUTCOMES``.
    "review_report": TransitionRule(
        roles=frozenset({RoleName.OFFICER}),
        sources=frozenset({IncidentStatus.PENDING}),
    ),
    "update": TransitionRule(roles=STAFF_ROLES, allow_reporter=True),
    "delete": TransitionRule(
        roles=frozenset({RoleName.ADMIN, RoleName.OFFICER}),
        allow_reporter=True,
    ),
    "add_note": TransitionRule(roles=STAFF_ROLES, allow_reporter=True),
    "add_evidence": TransitionRule(roles=STAFF_ROLES, allow_reporter=True),
    "view": TransitionRule(roles=STAFF_ROLES, allow_reporter=True),
}

#: approved? → (incident status, case-file status, officer action status)
_REVIEW_OUTCOMES: dict[bool, tuple[str, str, str]] = {
    True: (
        IncidentStatus.CLOSED,
        CaseFileStatus.REVIEW_COMPLETE,
        OfficerActionStatus.COMPLETED,
    ),
    False: (
        IncidentStatus.REOPENED,
        CaseFileStatus.UNDER_INVESTIGATION,
        OfficerActionStatus.IN_PROGRESS,
    ),
}

_REVIEW_DECISIONS = frozenset({
    ReportStatus.REVIEWED,
    ReportStatus.APPROVED,
    ReportStatus.REJECTED,
})


# ── Guard helpers ───────────────────────────────────────────────────

def _display_name(user: User) -> str:
    return user.get_full_name() or user.username


def _authorize(rule: TransitionRule, user: User, incident: Incident | None = None) -> None:
    """Role then ownership checks of ``rule`` for ``user``."""
    if user is None or not getattr(user, "is_authenticated", False):
        raise PermissionDenied("Authentication is required.")

    allowed = rule.roles is None or get_user_role_name(user) in rule.roles
    if (
        not allowed
        and rule.allow_reporter
        and incident is not None
        and incident.reported_by_id == user.pk
    ):
        allowed = True
    if not allowed:
        raise PermissionDenied()

    if rule.require_assignee and incident is not None:
        if incident.case_file.assigned_investigator_id != user.pk:
            raise PermissionDenied("You are not assigned to this incident.")


def _check_source(rule: TransitionRule, incident: Incident, target: str | None = None) -> None:
    if rule.sources is not None and incident.status not in rule.sources:
        raise InvalidState(
            current=incident.status,
            target=target or rule.target,
        )


def _require_text(payload: Mapping[str, Any], *names: str) -> dict[str, str]:
    """Return ``{name: stripped value}``; raise for any blank field."""
    values = {name: str(payload.get(name) or "").strip() for name in names}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ValidationFailed(
            f"Required fields are missing: {', '.join(missing)}.",
            errors={name: "This field is required." for name in missing},
        )
    return values


def _require_choice(value: Any, choices, field: str) -> None:
    if value not in choices:
        raise ValidationFailed(
            f"Invalid value for {field}.",
            errors={field: f"'{value}' is not a valid choice."},
        )


def _check_vehicle_references(vehicle_ids) -> None:
    for vehicle_id in sorted(vehicle_ids, key=str):
        if not VehicleDirectory.exists(vehicle_id):
            raise ReferenceNotFound(field="vehicle", value=vehicle_id)


# ═══════════════════════════════════════════════════════════════════
#  Incident Lifecycle Service
# ═══════════════════════════════════════════════════════════════════


class IncidentLifecycleService:
    """
    Owns every state-changing operation on an incident.

    Both collaborators are injectable so tests can substitute a stale
    repository or a recording dispatcher.  ``client`` holds the
    ``ip_address`` / ``user_agent`` of the calling request (see
    ``audit.services.client_info``) and is copied onto every audit entry.
    """

    def __init__(
        self,
        repository: IncidentRepository | None = None,
        dispatcher: RealTimeDispatcher | None = None,
        client: Mapping[str, Any] | None = None,
    ) -> None:
        self.repository = repository or IncidentRepository()
        self.dispatcher = dispatcher
        self.client = dict(client or {})

    # ── Hook registration ────────────────────────────────────────────

    def _audit(
        self,
        user: User,
        incident_id: Any,
        action: str,
        description: str,
        **metadata: Any,
    ) -> None:
        after_commit(
            f"audit.incident.{action}",
            AuditRecorder.record,
            actor=user,
            action=action,
            resource_type=AuditResourceType.INCIDENT,
            resource_id=incident_id,
            description=description,
            metadata=metadata or None,
            ip_address=self.client.get("ip_address"),
            user_agent=self.client.get("user_agent"),
        )

    def _notify(self, recipient: User | None, event: str, incident: Incident, **options: Any) -> None:
        if recipient is None:
            return
        title, message = render_event(event, number=incident.incident_number)
        after_commit(
            f"notify.{event}",
            notify_user,
            recipient,
            title=title,
            message=message,
            resource_type="incident",
            resource_id=incident.pk,
            dispatcher=self.dispatcher,
            **options,
        )

    def _notify_role(self, role: str, event: str, incident: Incident, **options: Any) -> None:
        title, message = render_event(event, number=incident.incident_number)
        after_commit(
            f"notify.{event}.{role}",
            notify_all_with_role,
            role,
            title=title,
            message=message,
            resource_type="incident",
            resource_id=incident.pk,
            dispatcher=self.dispatcher,
            **options,
        )

    # ── Numbering ────────────────────────────────────────────────────

    def _next_incident_number(self) -> str:
        """
        Allocate ``INC-YYMM-NNNN``.

        Runs in its own transaction, so a failed creation leaves a gap
        in the sequence but a number is never handed out twice.
        """
        value = self.repository.atomic_increment_sequence(INCIDENT_NUMBER_SEQUENCE)
        now = timezone.localtime() if settings.USE_TZ else timezone.now()
        return f"{INCIDENT_NUMBER_PREFIX}-{now:%y%m}-{value:0{INCIDENT_NUMBER_PADDING}d}"

    # ── Reads ────────────────────────────────────────────────────────

    def get_incident(self, incident_id: Any, user: User) -> Incident:
        """
        Return an incident the user may see.

        Raises:
            NotFound:         no such incident.
            PermissionDenied: the user is neither staff nor its reporter.
        """
        incident = self.repository.get(incident_id)
        _authorize(TRANSITIONS["view"], user, incident)
        return incident

    # ── Create ───────────────────────────────────────────────────────

    def create_incident(self, user: User, payload: Mapping[str, Any]) -> Incident:
        """
        Record a new incident reported by ``user``.

        Parameters
        ----------
        user : User
            Any authenticated user.  Becomes ``reported_by``.
        payload : dict
            Descriptive fields.  ``location`` and at least one vehicle
            (``vehicle`` or ``vehicles``) are required; every referenced
            vehicle must exist.  Either legacy or canonical field names are accepted.

        Returns
        -------
        Incident
            The stored incident in ``open`` with a ``not_assigned`` case
            file and one "Incident Reported" timeline entry.

        Raises
        ------
        PermissionDenied
            Anonymous caller.
        ValidationFailed
            Missing title/description/location/vehicle or malformed
            nested data.
        ReferenceNotFound
            A referenced vehicle does not exist.
        SequenceError
            No incident number could be allocated.
        """
        rule = TRANSITIONS["create"]
        _authorize(rule, user)

        _require_text(payload, "title", "description")
        normalized = normalize_incident_payload(payload)
        if normalized.fields.get("severity") is not None:
            _require_choice(normalized.fields["severity"], Severity.values, "severity")
        evidence = [
            self._evidence_values(item, user)
            for item in payload.get("evidence") or ()
        ]
        vehicle_ids = normalized.referenced_vehicle_ids()
        if not vehicle_ids:
            raise ValidationFailed(
                "An incident must reference a vehicle.",
                errors={"vehicle": "This field is required."},
            )
        _check_vehicle_references(vehicle_ids)

        incident_number = self._next_incident_number()

        with transaction.atomic():
            incident = self.repository.create(
                fields={
                    **normalized.fields,
                    "incident_number": incident_number,
                    "reported_by": user,
                    "status": rule.target,
                },
                vehicles=normalized.vehicles or (),
                persons=normalized.persons or (),
                evidence=evidence,
                case_file={"status": rule.case_file_target},
                timeline={
                    "action": "Incident Reported",
                    "description": f"Incident reported by {_display_name(user)}",
                    "performed_by": user,
                },
            )
            self._audit(
                user,
                incident.pk,
                AuditAction.CREATE,
                f"Created incident {incident_number}",
                incident_number=incident_number,
            )

        logger.info("Incident %s created by user=%s", incident_number, user.pk)
        return self.repository.get(incident.pk)

    # ── Assign ───────────────────────────────────────────────────────

    def assign_investigator(self, incident_id: Any, user: User, payload: Mapping[str, Any]) -> Incident:
        """
        Assign (or re-assign) an investigator.

        ``payload`` carries ``investigator_id`` and an optional
        ``priority``.  Moves the incident to ``under_investigation`` and
        the case file to ``assigned``; the investigator is notified.

        Raises:
            NotFound, PermissionDenied (non-admin), ValidationFailed
            (missing id, bad priority, target not an investigator),
            InvalidState (wrong state or lost race), ReferenceNotFound
            (no such user).
        """
        rule = TRANSITIONS["assign"]
        incident = self.repository.get(incident_id)
        _authorize(rule, user, incident)

        investigator_id = payload.get("investigator_id")
        if investigator_id in (None, ""):
            raise ValidationFailed(
                "An investigator is required.",
                errors={"investigator_id": "This field is required."},
            )
        priority = payload.get("priority") or None
        if priority is not None:
            _require_choice(priority, Priority.values, "priority")

        _check_source(rule, incident)

        investigator = UserDirectory.get(investigator_id)
        if investigator is None:
            raise ReferenceNotFound(field="investigator", value=investigator_id)
        if not user_has_role(investigator, RoleName.INVESTIGATOR):
            raise ValidationFailed(
                "The selected user is not an investigator.",
                errors={"investigator_id": "User does not hold the investigator role."},
            )

        case_file = incident.case_file
        case_file_fields: dict[str, Any] = {
            "status": rule.case_file_target,
            "assigned_investigator": investigator,
            "investigation_start_date": case_file.investigation_start_date or timezone.now(),
        }
        if priority is not None:
            case_file_fields["priority"] = priority

        with transaction.atomic():
            self.repository.atomic_update(
                incident.pk,
                expected_status=incident.status,
                expected_version=incident.version,
                fields={
                    "status": rule.target,
                    "assigned_to": investigator,
                    "assigned_by": user,
                },
                case_file_fields=case_file_fields,
                timeline={
                    "action": "Assigned to Investigator",
                    "description": f"Assigned to investigator {_display_name(investigator)}",
                    "performed_by": user,
                },
            )
            self._audit(
                user,
                incident.pk,
                AuditAction.UPDATE,
                f"Assigned incident {incident.incident_number} to investigator {investigator.pk}",
                operation="assign",
                investigator_id=investigator.pk,
                **{"from": incident.status, "to": rule.target},
            )
            self._notify(
                investigator,
                "incident_assigned",
                incident,
                urgent=(priority or case_file.priority) == Priority.URGENT,
            )

        logger.info(
            "Incident %s assigned to investigator=%s by user=%s",
            incident.incident_number, investigator.pk, user.pk,
        )
        return self.repository.get(incident.pk)

    # ── Submit report ────────────────────────────────────────────────

    def submit_report(self, incident_id: Any, user: User, payload: Mapping[str, Any]) -> Incident:
        """
        The assigned investigator files the investigation report.

        ``payload`` needs non-empty ``findings``, ``recommendations``,
        ``conclusion`` and ``content``; ``attachments`` is an optional
        list of URLs.  The reporter and every active admin are notified.

        Raises:
            NotFound, PermissionDenied (not the assigned investigator,
            checked before anything in the payload), ValidationFailed,
            InvalidState.
        """
        rule = TRANSITIONS["submit_report"]
        incident = self.repository.get(incident_id)
        _authorize(rule, user, incident)

        values = _require_text(payload, "findings", "recommendations", "conclusion", "content")
        _require_choice(values["conclusion"], CaseConclusion.values, "conclusion")
        attachments = payload.get("attachments") or []
        if not isinstance(attachments, (list, tuple)):
            raise ValidationFailed(
                "Attachments must be a list.",
                errors={"attachments": "Must be a list of URLs."},
            )

        _check_source(rule, incident)

        now = timezone.now()
        with transaction.atomic():
            self.repository.atomic_update(
                incident.pk,
                expected_status=incident.status,
                expected_version=incident.version,
                fields={"status": rule.target},
                case_file_fields={
                    "status": rule.case_file_target,
                    "investigation_start_date": incident.case_file.investigation_start_date or now,
                    "investigation_end_date": now,
                    "findings": values["findings"],
                    "recommendations": values["recommendations"],
                    "conclusion": values["conclusion"],
                    "report_submitted_by": user,
                    "report_submitted_at": now,
                    "report_content": values["content"],
                    "report_attachments": [str(url) for url in attachments],
                    "report_status": ReportStatus.SUBMITTED,
                },
                timeline={
                    "action": "Investigation Report Submitted",
                    "description": f"Investigation report submitted by {_display_name(user)}",
                    "performed_by": user,
                },
            )
            self._audit(
                user,
                incident.pk,
                AuditAction.UPDATE,
                f"Submitted investigation report for incident {incident.incident_number}",
                operation="submit_report",
                **{"from": incident.status, "to": rule.target},
            )
            self._notify(incident.reported_by, "report_submitted", incident, urgent=True)
            self._notify_role(RoleName.ADMIN, "report_submitted", incident, urgent=True)

        logger.info(
            "Report submitted for incident %s by investigator=%s",
            incident.incident_number, user.pk,
        )
        return self.repository.get(incident.pk)

    # ── Review report ────────────────────────────────────────────────

    def review_report(self, incident_id: Any, user: User, payload: Mapping[str, Any]) -> Incident:
        """
        An officer reviews the submitted report.

        ``report_status == "approved"`` closes the incident; any other
        decision (``reviewed`` by default, or ``rejected``) reopens it
        and sends the case file back to ``under_investigation``.

        When ``INCIDENTS_MAX_REOPEN_CYCLES`` is positive, a rejection
        that would exceed it raises ``InvalidState`` instead.
        """
        rule = TRANSITIONS["review_report"]
        incident = self.repository.get(incident_id)
        _authorize(rule, user, incident)

        actions = _require_text(payload, "actions")["actions"]
        decision = payload.get("report_status") or ReportStatus.REVIEWED
        _require_choice(decision, _REVIEW_DECISIONS, "report_status")
        officer_conclusion = payload.get("conclusion") or None
        if officer_conclusion is not None:
            _require_choice(officer_conclusion, OfficerConclusion.values, "conclusion")

        approved = decision == ReportStatus.APPROVED
        target, case_file_target, officer_status = _REVIEW_OUTCOMES[approved]
        _check_source(rule, incident, target)

        case_file = incident.case_file
        if case_file.report_status != ReportStatus.SUBMITTED:
            raise InvalidState(
                current=incident.status,
                target=target,
                reason="No submitted investigation report found for this incident.",
            )
        max_cycles = getattr(settings, "INCIDENTS_MAX_REOPEN_CYCLES", 0)
        if not approved and max_cycles and case_file.reopen_count >= max_cycles:
            raise InvalidState(
                current=incident.status,
                target=target,
                reason=f"The case has already been reopened {case_file.reopen_count} times.",
            )

        case_file_fields: dict[str, Any] = {
            "status": case_file_target,
            "report_status": decision,
            "reviewed_by": user,
            "reviewed_at": timezone.now(),
            "officer_actions": actions,
            "officer_notes": str(payload.get("notes") or ""),
            "officer_status": officer_status,
        }
        if officer_conclusion is not None:
            case_file_fields["officer_conclusion"] = officer_conclusion
        if not approved:
            case_file_fields["reopen_count"] = F("reopen_count") + 1

        with transaction.atomic():
            self.repository.atomic_update(
                incident.pk,
                expected_status=incident.status,
                expected_version=incident.version,
                fields={"status": target},
                case_file_fields=case_file_fields,
                timeline={
                    "action": "Investigation Report Reviewed",
                    "description": f"Investigation report reviewed by officer {_display_name(user)}",
                    "performed_by": user,
                },
            )
            self._audit(
                user,
                incident.pk,
                AuditAction.REVIEW,
                f"Reviewed investigation report for incident {incident.incident_number}: {decision}",
                decision=decision,
                **{"from": incident.status, "to": target},
            )
            if approved:
                self._notify(incident.reported_by, "report_approved", incident, type="success")
            else:
                self._notify(incident.reported_by, "report_rejected", incident, type="warning")
                self._notify(
                    case_file.assigned_investigator,
                    "report_rejected",
                    incident,
                    type="warning",
                )

        logger.info(
            "Report for incident %s reviewed by officer=%s: %s",
            incident.incident_number, user.pk, decision,
        )
        return self.repository.get(incident.pk)

    # ── Update / delete ──────────────────────────────────────────────

    def update_incident(self, incident_id: Any, user: User, payload: Mapping[str, Any]) -> Incident:
        """
        Edit descriptive fields.  Status and ownership fields are not
        writable here; legacy and canonical shapes are healed on every
        call, even when the payload does not touch them.
        """
        rule = TRANSITIONS["update"]
        incident = self.repository.get(incident_id)
        _authorize(rule, user, incident)

        normalized = normalize_incident_payload(payload, current=incident)
        for name in ("title", "description"):
            if name in normalized.fields and not str(normalized.fields[name]).strip():
                raise ValidationFailed(
                    f"{name.title()} cannot be blank.",
                    errors={name: "This field may not be blank."},
                )
        _check_vehicle_references(normalized.referenced_vehicle_ids())

        with transaction.atomic():
            if normalized.fields:
                self.repository.update_fields(incident.pk, normalized.fields)
            if normalized.vehicles is not None:
                self.repository.replace_vehicles(incident.pk, normalized.vehicles)
            elif normalized.primary_vehicle is not None:
                self.repository.set_primary_vehicle(incident.pk, normalized.primary_vehicle)
            if normalized.persons is not None:
                self.repository.replace_persons(incident.pk, normalized.persons)
            self.repository.append_timeline(
                incident.pk,
                action="Details Updated",
                description=f"Incident details updated by {_display_name(user)}",
                performed_by=user,
            )
            self._audit(
                user,
                incident.pk,
                AuditAction.UPDATE,
                f"Updated incident {incident.incident_number}",
                operation="update",
                fields=sorted(payload.keys()),
            )
            if incident.reported_by_id != user.pk:
                self._notify(incident.reported_by, "incident_updated", incident)

        return self.repository.get(incident.pk)

    def delete_incident(self, incident_id: Any, user: User) -> None:
        """Remove an incident with all of its child rows."""
        rule = TRANSITIONS["delete"]
        incident = self.repository.get(incident_id)
        _authorize(rule, user, incident)

        with transaction.atomic():
            self.repository.delete(incident.pk)
            self._audit(
                user,
                incident.pk,
                AuditAction.DELETE,
                f"Deleted incident {incident.incident_number}",
                incident_number=incident.incident_number,
            )
        logger.info("Incident %s deleted by user=%s", incident.incident_number, user.pk)

    # ── Notes / evidence ─────────────────────────────────────────────

    def add_note(
        self,
        incident_id: Any,
        user: User,
        content: str,
        is_private: bool = False,
    ) -> IncidentNote:
        """Append a note and a "Note Added" timeline entry."""
        rule = TRANSITIONS["add_note"]
        incident = self.repository.get(incident_id)
        _authorize(rule, user, incident)
        content = _require_text({"content": content}, "content")["content"]

        with transaction.atomic():
            note = self.repository.add_note(
                incident.pk,
                author=user,
                content=content,
                is_private=bool(is_private),
            )
            self.repository.append_timeline(
                incident.pk,
                action="Note Added",
                description=f"{'Private note' if is_private else 'Note'} added by {_display_name(user)}",
                performed_by=user,
            )
            self._audit(
                user,
                incident.pk,
                AuditAction.UPDATE,
                f"Added note to incident {incident.incident_number}",
                operation="add_note",
                note_id=note.pk,
            )
        return note

    @staticmethod
    def _evidence_values(item: Mapping[str, Any], user: User) -> dict[str, Any]:
        evidence_type = item.get("type")
        _require_choice(evidence_type, EvidenceType.values, "type")
        tags = item.get("tags") or []
        metadata = item.get("metadata") or {}
        if not isinstance(tags, (list, tuple)) or not isinstance(metadata, Mapping):
            raise ValidationFailed(
                "Malformed evidence.",
                errors={"evidence": "Tags must be a list and metadata an object."},
            )
        values = {
            "type": evidence_type,
            "file_url": str(item.get("file_url") or ""),
            "thumbnail_url": str(item.get("thumbnail_url") or ""),
            "description": str(item.get("description") or ""),
            "collected_by": user,
            "tags": [str(tag) for tag in tags],
            "metadata": dict(metadata),
        }
        if item.get("collected_at"):
            values["collected_at"] = item["collected_at"]
        return values

    def add_evidence(self, incident_id: Any, user: User, payload: Mapping[str, Any]) -> IncidentEvidence:
        """Append an evidence reference and an "Evidence Added" timeline entry."""
        rule = TRANSITIONS["add_evidence"]
        incident = self.repository.get(incident_id)
        _authorize(rule, user, incident)
        values = self._evidence_values(payload, user)

        with transaction.atomic():
            evidence = self.repository.add_evidence(incident.pk, **values)
            self.repository.append_timeline(
                incident.pk,
                action="Evidence Added",
                description=f"{evidence.get_type_display()} evidence added by {_display_name(user)}",
                performed_by=user,
            )
            self._audit(
                user,
                incident.pk,
                AuditAction.UPLOAD,
                f"Added {evidence.type} evidence to incident {incident.incident_number}",
                evidence_id=evidence.pk,
            )
        return evidence


# ═══════════════════════════════════════════════════════════════════
#  Incident Query Service
# ═══════════════════════════════════════════════════════════════════

#: Staff see every incident; everyone else only what they reported.
INCIDENT_SCOPE_RULES = [
    (STAFF_ROLES, lambda qs, user: qs),
    (None,        lambda qs, user: qs.filter(reported_by=user)),
]


class IncidentQueryService:
    """Role-scoped reads over incidents, notes and timelines."""

    def __init__(self, repository: IncidentRepository | None = None) -> None:
        self.repository = repository or IncidentRepository()

    def scoped_queryset(self, user: User) -> QuerySet:
        return apply_role_scope(
            self.repository.base_queryset(),
            user,
            scope_rules=INCIDENT_SCOPE_RULES,
        )

    def list_incidents(
        self,
        user: User,
        filters: Mapping[str, Any] | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[Incident], int]:
        """One page of visible incidents, newest first, and the total."""
        limit = max(1, min(int(limit or DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE))
        return self.repository.list(
            self.scoped_queryset(user),
            filters=filters,
            page=page,
            limit=limit,
        )

    def incidents_by_vehicle(self, vehicle_id: Any, user: User) -> QuerySet:
        """Incidents involving a vehicle through either vehicle shape."""
        return self.repository.find_by_vehicle(vehicle_id, self.scoped_queryset(user))

    def incidents_by_reporter(self, reporter_id: Any, user: User) -> QuerySet:
        """Incidents reported by ``reporter_id``.  Admins or the reporter only."""
        if str(reporter_id) != str(user.pk) and not user_has_role(user, RoleName.ADMIN):
            raise PermissionDenied("You can only list your own incidents.")
        return self.repository.find_by_reporter(reporter_id)

    @staticmethod
    def visible_notes(incident: Incident, user: User) -> list[IncidentNote]:
        """Private notes are shown only to their author and admins."""
        is_admin = user_has_role(user, RoleName.ADMIN)
        return [
            note for note in incident.notes.all()
            if not note.is_private or is_admin or note.author_id == user.pk
        ]

    @staticmethod
    def timeline(incident: Incident) -> list[TimelineEntry]:
        return list(incident.timeline.all())
