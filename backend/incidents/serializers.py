"""
Incidents app serializers.

Contains all Request and Response serializers for the Incidents API.
Serializers handle field definitions and shape validation only.
**No lifecycle rules live here**; those belong in ``services.py``.

Structure
---------
1. Filter / query-param serializers
2. Nested read serializers (vehicles, persons, evidence, notes, timeline)
3. Incident read serializers (list, detail)
4. Incident write serializers (create, update)
5. Lifecycle action serializers (assign, report, review, note, evidence)
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from accounts.serializers import UserSummarySerializer

from .models import (
    CaseConclusion,
    CaseFile,
    EvidenceType,
    Incident,
    IncidentEvidence,
    IncidentNote,
    IncidentPerson,
    IncidentStatus,
    IncidentType,
    IncidentVehicle,
    OfficerConclusion,
    PersonRole,
    Priority,
    ReportStatus,
    Severity,
    TimelineEntry,
    VehicleInvolvement,
)
from .normalization import IMMUTABLE_FIELDS


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class IncidentFilterSerializer(serializers.Serializer):
    """
    Validates query-parameter filters for ``GET /api/incidents/``.

    All fields are optional.  ``vehicle`` matches both the involved
    vehicle list and the legacy single-vehicle field.
    """

    type = serializers.ChoiceField(choices=IncidentType.choices, required=False)
    status = serializers.ChoiceField(choices=IncidentStatus.choices, required=False)
    severity = serializers.ChoiceField(choices=Severity.choices, required=False)
    vehicle = serializers.IntegerField(required=False, min_value=1)
    search = serializers.CharField(required=False, allow_blank=True, max_length=255)
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=10)


# ═══════════════════════════════════════════════════════════════════
#  2. Nested Read Serializers
# ═══════════════════════════════════════════════════════════════════


class _VehicleSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    license_plate = serializers.CharField(read_only=True)
    make = serializers.CharField(read_only=True)
    model = serializers.CharField(read_only=True)


class IncidentVehicleSerializer(serializers.ModelSerializer):
    vehicle = _VehicleSummarySerializer(read_only=True)

    class Meta:
        model = IncidentVehicle
        fields = ["vehicle", "involvement", "details"]


class IncidentPersonSerializer(serializers.ModelSerializer):
    class Meta:
        model = IncidentPerson
        fields = [
            "id", "name", "role", "phone", "email",
            "address", "details", "identification",
        ]


class IncidentEvidenceSerializer(serializers.ModelSerializer):
    collected_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = IncidentEvidence
        fields = [
            "id", "type", "file_url", "thumbnail_url", "description",
            "collected_by", "collected_at", "tags", "metadata",
        ]
        read_only_fields = fields


class IncidentNoteSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)

    class Meta:
        model = IncidentNote
        fields = ["id", "content", "author", "is_private", "created_at"]
        read_only_fields = fields


class TimelineEntrySerializer(serializers.ModelSerializer):
    performed_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = TimelineEntry
        fields = ["id", "date", "action", "description", "performed_by"]
        read_only_fields = fields


class _InvestigationReportSerializer(serializers.Serializer):
    submitted_by = UserSummarySerializer(source="report_submitted_by", read_only=True)
    submitted_at = serializers.DateTimeField(source="report_submitted_at", read_only=True)
    content = serializers.CharField(source="report_content", read_only=True)
    attachments = serializers.ListField(
        source="report_attachments",
        child=serializers.CharField(),
        read_only=True,
    )
    status = serializers.CharField(source="report_status", read_only=True)


class _OfficerActionsSerializer(serializers.Serializer):
    reviewed_by = UserSummarySerializer(read_only=True)
    reviewed_at = serializers.DateTimeField(read_only=True)
    actions = serializers.CharField(source="officer_actions", read_only=True)
    notes = serializers.CharField(source="officer_notes", read_only=True)
    conclusion = serializers.CharField(source="officer_conclusion", read_only=True)
    status = serializers.CharField(source="officer_status", read_only=True)


class CaseFileSerializer(serializers.ModelSerializer):
    """Case file with the report and the officer review nested."""

    assigned_investigator = UserSummarySerializer(read_only=True)
    investigation_report = _InvestigationReportSerializer(source="*", read_only=True)
    officer_actions = _OfficerActionsSerializer(source="*", read_only=True)

    class Meta:
        model = CaseFile
        fields = [
            "status", "priority", "assigned_investigator",
            "investigation_start_date", "investigation_end_date",
            "findings", "recommendations", "conclusion", "reopen_count",
            "investigation_report", "officer_actions",
        ]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════════
#  3. Incident Read Serializers
# ═══════════════════════════════════════════════════════════════════


class IncidentListSerializer(serializers.ModelSerializer):
    """Compact representation for list endpoints."""

    location = serializers.SerializerMethodField()
    reported_by = UserSummarySerializer(read_only=True)
    assigned_to = UserSummarySerializer(read_only=True)
    vehicle = _VehicleSummarySerializer(read_only=True)

    class Meta:
        model = Incident
        fields = [
            "id", "incident_number", "title", "type", "severity", "status",
            "date", "time", "location", "vehicle",
            "reported_by", "assigned_to", "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_location(self, obj: Incident) -> dict[str, Any]:
        return {
            "type": obj.location_type,
            "coordinates": obj.coordinates,
            "address": obj.location_address,
        }


class IncidentDetailSerializer(IncidentListSerializer):
    """
    Full representation including the case file and every child list.

    Private notes are filtered through
    ``IncidentQueryService.visible_notes`` for the requesting user, which
    must be supplied in the serializer context as ``request``.
    """

    assigned_by = UserSummarySerializer(read_only=True)
    vehicles = IncidentVehicleSerializer(many=True, read_only=True)
    persons = IncidentPersonSerializer(many=True, read_only=True)
    evidence = IncidentEvidenceSerializer(many=True, read_only=True)
    timeline = TimelineEntrySerializer(many=True, read_only=True)
    case_file = CaseFileSerializer(read_only=True)
    notes = serializers.SerializerMethodField()

    class Meta(IncidentListSerializer.Meta):
        fields = IncidentListSerializer.Meta.fields + [
            "description", "version", "incident_type", "date_time",
            "assigned_by", "vehicles", "persons", "evidence",
            "notes", "timeline", "case_file",
        ]
        read_only_fields = fields

    def get_notes(self, obj: Incident) -> list[dict[str, Any]]:
        from .services import IncidentQueryService

        request = self.context.get("request")
        if request is None:
            return []
        notes = IncidentQueryService.visible_notes(obj, request.user)
        return IncidentNoteSerializer(notes, many=True).data


class IncidentPageSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    page = serializers.IntegerField()
    limit = serializers.IntegerField()
    results = IncidentListSerializer(many=True)


# ═══════════════════════════════════════════════════════════════════
#  4. Incident Write Serializers
# ═══════════════════════════════════════════════════════════════════


class IncidentVehicleInputSerializer(serializers.Serializer):
    vehicle = serializers.IntegerField(min_value=1)
    involvement = serializers.ChoiceField(
        choices=VehicleInvolvement.choices,
        default=VehicleInvolvement.OTHER,
    )
    details = serializers.CharField(required=False, allow_blank=True, default="")


class IncidentPersonInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    role = serializers.ChoiceField(choices=PersonRole.choices)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=30)
    email = serializers.EmailField(required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True, max_length=500)
    details = serializers.CharField(required=False, allow_blank=True)
    identification = serializers.CharField(required=False, allow_blank=True, max_length=100)


class EvidenceCreateSerializer(serializers.Serializer):
    """Request body for ``POST /api/incidents/{id}/evidence/``."""

    type = serializers.ChoiceField(choices=EvidenceType.choices)
    file_url = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    thumbnail_url = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    description = serializers.CharField(required=False, allow_blank=True)
    collected_at = serializers.DateTimeField(required=False)
    tags = serializers.ListField(child=serializers.CharField(max_length=100), required=False)
    metadata = serializers.DictField(required=False)


class IncidentWriteSerializer(serializers.Serializer):
    """
    Request body for creating (``POST``) and editing (``PATCH``) an incident.

    Canonical and legacy field names are both accepted:
    ``type``/``incident_type``, ``date``/``date_time`` and
    ``vehicles``/``vehicle``.  ``location`` is an address string or a
    ``{"type", "coordinates", "address"}`` object.

    Server-managed fields (``status``, ``incident_number``,
    ``reported_by``...) are rejected rather than silently ignored.
    """

    title = serializers.CharField(max_length=255)
    description = serializers.CharField()
    type = serializers.ChoiceField(choices=IncidentType.choices, required=False)
    incident_type = serializers.ChoiceField(choices=IncidentType.choices, required=False)
    severity = serializers.ChoiceField(choices=Severity.choices, required=False)
    date = serializers.DateTimeField(required=False)
    date_time = serializers.DateTimeField(required=False)
    time = serializers.CharField(required=False, allow_blank=True, max_length=20)
    location = serializers.JSONField()
    vehicle = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    vehicles = IncidentVehicleInputSerializer(many=True, required=False)
    persons = IncidentPersonInputSerializer(many=True, required=False)
    evidence = EvidenceCreateSerializer(many=True, required=False)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        forbidden = sorted(IMMUTABLE_FIELDS.intersection(self.initial_data or {}))
        if forbidden:
            raise serializers.ValidationError(
                {name: "This field is read-only." for name in forbidden}
            )
        if self.partial and "evidence" in attrs:
            raise serializers.ValidationError(
                {"evidence": "Use the evidence endpoint to add evidence."}
            )
        return attrs


# ═══════════════════════════════════════════════════════════════════
#  5. Lifecycle Action Serializers
# ═══════════════════════════════════════════════════════════════════
#
# The transition endpoints hand the raw body to the lifecycle service so
# that role and ownership guards are evaluated before payload checks.
# These serializers document the bodies in the OpenAPI schema.


class AssignInvestigatorSerializer(serializers.Serializer):
    investigator_id = serializers.IntegerField(help_text="PK of a user holding the investigator role.")
    priority = serializers.ChoiceField(choices=Priority.choices, required=False)


class SubmitReportSerializer(serializers.Serializer):
    findings = serializers.CharField()
    recommendations = serializers.CharField()
    conclusion = serializers.ChoiceField(choices=CaseConclusion.choices)
    content = serializers.CharField(help_text="Full report text.")
    attachments = serializers.ListField(
        child=serializers.CharField(max_length=1000),
        required=False,
        help_text="URLs of attached files.",
    )


class ReviewReportSerializer(serializers.Serializer):
    actions = serializers.CharField(help_text="Actions taken or ordered by the officer.")
    notes = serializers.CharField(required=False, allow_blank=True)
    report_status = serializers.ChoiceField(
        choices=[
            (ReportStatus.REVIEWED, "Reviewed"),
            (ReportStatus.APPROVED, "Approved"),
            (ReportStatus.REJECTED, "Rejected"),
        ],
        required=False,
        help_text="'approved' closes the incident; anything else reopens it.",
    )
    conclusion = serializers.ChoiceField(choices=OfficerConclusion.choices, required=False)


class NoteCreateSerializer(serializers.Serializer):
    content = serializers.CharField()
    is_private = serializers.BooleanField(required=False, default=False)
