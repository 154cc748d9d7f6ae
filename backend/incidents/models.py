"""
Incidents app models.

Covers the incident lifecycle — from intake by a reporting user, through
investigator assignment and report submission, to officer review and
closure or reopening.

The ``Incident`` row holds the top-level status; its ``CaseFile`` holds
the investigation-specific state.  Both are only ever mutated together,
through ``incidents.repository.IncidentRepository.atomic_update``.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class IncidentType(models.TextChoices):
    THEFT = "theft", "Theft"
    ACCIDENT = "accident", "Accident"
    VANDALISM = "vandalism", "Vandalism"
    TRAFFIC_VIOLATION = "traffic_violation", "Traffic Violation"
    DUI = "dui", "Driving Under the Influence"
    ABANDONED = "abandoned", "Abandoned Vehicle"
    SUSPICIOUS_ACTIVITY = "suspicious_activity", "Suspicious Activity"
    OTHER = "other", "Other"


class Severity(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    CRITICAL = "critical", "Critical"


class IncidentStatus(models.TextChoices):
    """
    Top-level lifecycle status.  ``closed`` is terminal unless an officer
    rejects the report, in which case the incident is ``reopened``.
    """

    OPEN = "open", "Open"
    UNDER_INVESTIGATION = "under_investigation", "Under Investigation"
    PENDING = "pending", "Pending Review"
    CLOSED = "closed", "Closed"
    REOPENED = "reopened", "Reopened"


class CaseFileStatus(models.TextChoices):
    NOT_ASSIGNED = "not_assigned", "Not Assigned"
    ASSIGNED = "assigned", "Assigned"
    UNDER_INVESTIGATION = "under_investigation", "Under Investigation"
    REPORT_SUBMITTED = "report_submitted", "Report Submitted"
    REVIEW_COMPLETE = "review_complete", "Review Complete"
    CLOSED = "closed", "Closed"


class Priority(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"


class CaseConclusion(models.TextChoices):
    PENDING = "pending", "Pending"
    SUBSTANTIATED = "substantiated", "Substantiated"
    UNSUBSTANTIATED = "unsubstantiated", "Unsubstantiated"
    INCONCLUSIVE = "inconclusive", "Inconclusive"


class ReportStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SUBMITTED = "submitted", "Submitted"
    REVIEWED = "reviewed", "Reviewed"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class OfficerConclusion(models.TextChoices):
    CONFIRMED = "confirmed", "Confirmed"
    ADDITIONAL_INVESTIGATION = "additional_investigation", "Additional Investigation"
    CASE_DISMISSED = "case_dismissed", "Case Dismissed"
    LEGAL_ACTION = "legal_action", "Legal Action"
    OTHER = "other", "Other"


class OfficerActionStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"


class VehicleInvolvement(models.TextChoices):
    SUSPECT = "suspect", "Suspect"
    VICTIM = "victim", "Victim"
    WITNESS = "witness", "Witness"
    OTHER = "other", "Other"


class PersonRole(models.TextChoices):
    SUSPECT = "suspect", "Suspect"
    VICTIM = "victim", "Victim"
    WITNESS = "witness", "Witness"
    REPORTING_PARTY = "reporting_party", "Reporting Party"
    OFFICER = "officer", "Officer"
    OTHER = "other", "Other"


class EvidenceType(models.TextChoices):
    PHOTO = "photo", "Photo"
    VIDEO = "video", "Video"
    DOCUMENT = "document", "Document"
    PHYSICAL_ITEM = "physical_item", "Physical Item"
    STATEMENT = "statement", "Statement"
    OTHER = "other", "Other"


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class Incident(TimeStampedModel):
    """
    Central entity of the system — a recorded vehicle incident.

    * ``incident_number`` comes from the global ``incident_number``
      sequence and is never reused.
    * ``version`` is bumped by every status / case-file mutation and is
      the compare-and-set token for concurrent transitions.
    * ``incident_type``, ``date_time`` and ``vehicle`` are legacy mirrors
      of ``type``, ``date`` and ``vehicles[0]``; every write path keeps
      both shapes populated.
    """

    incident_number = models.CharField(
        max_length=32,
        unique=True,
        verbose_name="Incident Number",
    )
    title = models.CharField(max_length=255, verbose_name="Title")
    description = models.TextField(verbose_name="Description")
    type = models.CharField(
        max_length=30,
        choices=IncidentType.choices,
        default=IncidentType.OTHER,
        verbose_name="Type",
        db_index=True,
    )
    severity = models.CharField(
        max_length=10,
        choices=Severity.choices,
        default=Severity.MEDIUM,
        verbose_name="Severity",
        db_index=True,
    )
    status = models.CharField(
        max_length=30,
        choices=IncidentStatus.choices,
        default=IncidentStatus.OPEN,
        verbose_name="Current Status",
        db_index=True,
    )
    version = models.PositiveIntegerField(
        default=0,
        verbose_name="Version",
        help_text="Incremented on every status or case-file change.",
    )

    # ── When ─────────────────────────────────────────────────────────
    date = models.DateTimeField(default=timezone.now, verbose_name="Date")
    time = models.CharField(
        max_length=20,
        blank=True,
        default="",
        verbose_name="Time",
    )

    # ── Where ────────────────────────────────────────────────────────
    location_type = models.CharField(
        max_length=10,
        default="Point",
        verbose_name="Location Type",
    )
    longitude = models.FloatField(default=0.0, verbose_name="Longitude")
    latitude = models.FloatField(default=0.0, verbose_name="Latitude")
    location_address = models.CharField(
        max_length=500,
        blank=True,
        default="",
        verbose_name="Address",
    )

    # ── Legacy mirrors ───────────────────────────────────────────────
    incident_type = models.CharField(
        max_length=30,
        choices=IncidentType.choices,
        blank=True,
        default="",
        verbose_name="Incident Type (legacy)",
    )
    date_time = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Date/Time (legacy)",
    )
    vehicle = models.ForeignKey(
        "vehicles.Vehicle",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="primary_incidents",
        verbose_name="Primary Vehicle (legacy)",
    )

    # ── People ───────────────────────────────────────────────────────
    reported_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="reported_incidents",
        verbose_name="Reported By",
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_incidents",
        verbose_name="Assigned To",
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="incidents_assigned_by",
        verbose_name="Assigned By",
    )

    class Meta:
        verbose_name = "Incident"
        verbose_name_plural = "Incidents"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="inc_status_created_idx"),
            models.Index(fields=["reported_by", "created_at"], name="inc_reporter_created_idx"),
        ]

    def __str__(self):
        return f"{self.incident_number} — {self.title} [{self.get_status_display()}]"

    @property
    def coordinates(self) -> list[float]:
        return [self.longitude, self.latitude]


class CaseFile(TimeStampedModel):
    """
    Investigation sub-record of an incident: assignment, the
    investigator's report and the officer's review.

    Created together with its incident in ``not_assigned``.
    """

    incident = models.OneToOneField(
        Incident,
        on_delete=models.CASCADE,
        related_name="case_file",
        verbose_name="Incident",
    )
    status = models.CharField(
        max_length=30,
        choices=CaseFileStatus.choices,
        default=CaseFileStatus.NOT_ASSIGNED,
        verbose_name="Case File Status",
    )
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.MEDIUM,
        verbose_name="Priority",
    )
    assigned_investigator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="investigated_case_files",
        verbose_name="Assigned Investigator",
    )
    investigation_start_date = models.DateTimeField(null=True, blank=True)
    investigation_end_date = models.DateTimeField(null=True, blank=True)
    findings = models.TextField(blank=True, default="")
    recommendations = models.TextField(blank=True, default="")
    conclusion = models.CharField(
        max_length=20,
        choices=CaseConclusion.choices,
        default=CaseConclusion.PENDING,
    )
    reopen_count = models.PositiveSmallIntegerField(
        default=0,
        verbose_name="Reopen Count",
        help_text="Number of times an officer sent the case back for investigation.",
    )

    # ── Investigation report ─────────────────────────────────────────
    report_submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="submitted_reports",
    )
    report_submitted_at = models.DateTimeField(null=True, blank=True)
    report_content = models.TextField(blank=True, default="")
    report_attachments = models.JSONField(default=list, blank=True)
    report_status = models.CharField(
        max_length=10,
        choices=ReportStatus.choices,
        default=ReportStatus.PENDING,
    )

    # ── Officer actions ──────────────────────────────────────────────
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_case_files",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    officer_actions = models.TextField(blank=True, default="")
    officer_notes = models.TextField(blank=True, default="")
    officer_conclusion = models.CharField(
        max_length=30,
        choices=OfficerConclusion.choices,
        default=OfficerConclusion.CONFIRMED,
    )
    officer_status = models.CharField(
        max_length=15,
        choices=OfficerActionStatus.choices,
        default=OfficerActionStatus.PENDING,
    )

    class Meta:
        verbose_name = "Case File"
        verbose_name_plural = "Case Files"

    def __str__(self):
        return f"Case file of incident #{self.incident_id} [{self.status}]"


class IncidentVehicle(models.Model):
    """A vehicle involved in an incident.  ``position`` 0 is the primary one."""

    incident = models.ForeignKey(
        Incident,
        on_delete=models.CASCADE,
        related_name="vehicles",
        verbose_name="Incident",
    )
    vehicle = models.ForeignKey(
        "vehicles.Vehicle",
        on_delete=models.CASCADE,
        related_name="incident_involvements",
        verbose_name="Vehicle",
    )
    involvement = models.CharField(
        max_length=10,
        choices=VehicleInvolvement.choices,
        default=VehicleInvolvement.OTHER,
        verbose_name="Involvement",
    )
    details = models.TextField(blank=True, default="", verbose_name="Details")
    position = models.PositiveSmallIntegerField(default=0, verbose_name="Position")

    class Meta:
        verbose_name = "Involved Vehicle"
        verbose_name_plural = "Involved Vehicles"
        ordering = ["position", "id"]

    def __str__(self):
        return f"Vehicle #{self.vehicle_id} ({self.involvement}) on incident #{self.incident_id}"


class IncidentPerson(models.Model):
    """A person involved in an incident."""

    incident = models.ForeignKey(
        Incident,
        on_delete=models.CASCADE,
        related_name="persons",
        verbose_name="Incident",
    )
    name = models.CharField(max_length=255, verbose_name="Name")
    role = models.CharField(
        max_length=20,
        choices=PersonRole.choices,
        verbose_name="Role",
    )
    phone = models.CharField(max_length=30, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    address = models.CharField(max_length=500, blank=True, default="")
    details = models.TextField(blank=True, default="")
    identification = models.CharField(max_length=100, blank=True, default="")

    class Meta:
        verbose_name = "Involved Person"
        verbose_name_plural = "Involved Persons"
        ordering = ["id"]

    def __str__(self):
        return f"{self.name} ({self.role}) on incident #{self.incident_id}"


class IncidentEvidence(TimeStampedModel):
    """
    A typed evidence reference.  Files live in external object storage;
    only their URLs are stored here.
    """

    incident = models.ForeignKey(
        Incident,
        on_delete=models.CASCADE,
        related_name="evidence",
        verbose_name="Incident",
    )
    type = models.CharField(
        max_length=20,
        choices=EvidenceType.choices,
        verbose_name="Evidence Type",
    )
    file_url = models.CharField(max_length=1000, blank=True, default="")
    thumbnail_url = models.CharField(max_length=1000, blank=True, default="")
    description = models.TextField(blank=True, default="")
    collected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="collected_incident_evidence",
    )
    collected_at = models.DateTimeField(default=timezone.now)
    tags = models.JSONField(default=list, blank=True)
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="File type, size, dimensions, duration.",
    )

    class Meta:
        verbose_name = "Incident Evidence"
        verbose_name_plural = "Incident Evidence"
        ordering = ["collected_at", "id"]

    def __str__(self):
        return f"{self.get_type_display()} on incident #{self.incident_id}"


class IncidentNote(TimeStampedModel):
    """Free-form annotation.  Private notes are visible to their author and admins only."""

    incident = models.ForeignKey(
        Incident,
        on_delete=models.CASCADE,
        related_name="notes",
        verbose_name="Incident",
    )
    content = models.TextField(verbose_name="Content")
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="incident_notes",
        verbose_name="Author",
    )
    is_private = models.BooleanField(default=False, verbose_name="Private")

    class Meta:
        verbose_name = "Incident Note"
        verbose_name_plural = "Incident Notes"
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"Note by {self.author_id} on incident #{self.incident_id}"


class TimelineEntry(models.Model):
    """
    Append-only log of what happened to an incident.

    Rows are inserted, never edited: ``save()`` on an existing entry
    raises.  They only disappear together with their incident.
    """

    incident = models.ForeignKey(
        Incident,
        on_delete=models.CASCADE,
        related_name="timeline",
        verbose_name="Incident",
    )
    date = models.DateTimeField(default=timezone.now, verbose_name="Date")
    action = models.CharField(max_length=100, verbose_name="Action")
    description = models.TextField(blank=True, default="", verbose_name="Description")
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="incident_timeline_entries",
        verbose_name="Performed By",
    )

    class Meta:
        verbose_name = "Timeline Entry"
        verbose_name_plural = "Timeline Entries"
        ordering = ["date", "id"]

    def __str__(self):
        return f"Incident #{self.incident_id}: {self.action}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Timeline entries are append-only and cannot be modified.")
        super().save(*args, **kwargs)
