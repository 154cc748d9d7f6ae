"""
incidents.repository — Data access for incidents.

Plain persistence operations consumed by the lifecycle engine and the
read-only query paths.  **No business rules live here**: role checks,
guards and transition logic belong to ``incidents.services``.

Concurrency contract
--------------------
* ``atomic_update`` changes status / case-file columns only through a
  compare-and-set on ``(status, version)``; the loser of a race gets
  ``InvalidState``.
* Timeline entries, notes and evidence are plain ``INSERT``s, so
  concurrent appends never overwrite one another and never bump
  ``version``.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from django.db import transaction
from django.db.models import Prefetch, Q, QuerySet
from django.utils import timezone

from core.domain.exceptions import NotFound
from core.domain.transactions import compare_and_set, increment_sequence

from .models import (
    CaseFile,
    Incident,
    IncidentEvidence,
    IncidentNote,
    IncidentPerson,
    IncidentVehicle,
    TimelineEntry,
)


class IncidentRepository:
    """Persistence operations over ``Incident`` and its child rows."""

    # ── Reads ────────────────────────────────────────────────────────

    def base_queryset(self) -> QuerySet:
        return (
            Incident.objects
            .select_related(
                "reported_by__role",
                "assigned_to",
                "assigned_by",
                "vehicle",
                "case_file__assigned_investigator",
                "case_file__report_submitted_by",
                "case_file__reviewed_by",
            )
            .prefetch_related(
                Prefetch(
                    "vehicles",
                    queryset=IncidentVehicle.objects.select_related("vehicle"),
                ),
                "persons",
                Prefetch(
                    "evidence",
                    queryset=IncidentEvidence.objects.select_related("collected_by"),
                ),
                Prefetch(
                    "notes",
                    queryset=IncidentNote.objects.select_related("author"),
                ),
                Prefetch(
                    "timeline",
                    queryset=TimelineEntry.objects.select_related("performed_by"),
                ),
            )
        )

    def get(self, incident_id: Any) -> Incident:
        """
        Return the incident with all relations loaded.

        Raises:
            NotFound: if no such incident exists.
        """
        try:
            return self.base_queryset().get(pk=incident_id)
        except (Incident.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Incident {incident_id} not found.")

    def apply_filters(self, queryset: QuerySet, filters: Mapping[str, Any] | None) -> QuerySet:
        """Apply list filters: type, status, severity, vehicle, search."""
        filters = filters or {}
        for name in ("type", "status", "severity"):
            if filters.get(name):
                queryset = queryset.filter(**{name: filters[name]})

        vehicle = filters.get("vehicle")
        if vehicle:
            # Matches both the involved-vehicle list and the legacy field
            queryset = queryset.filter(
                Q(vehicles__vehicle_id=vehicle) | Q(vehicle_id=vehicle)
            ).distinct()

        search = (filters.get("search") or "").strip()
        if search:
            queryset = queryset.filter(
                Q(title__icontains=search)
                | Q(description__icontains=search)
                | Q(incident_number__icontains=search)
                | Q(persons__name__icontains=search)
            ).distinct()
        return queryset

    def list(
        self,
        queryset: QuerySet | None = None,
        *,
        filters: Mapping[str, Any] | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Incident], int]:
        """
        Return one page of incidents (newest first) and the total count.
        """
        qs = self.apply_filters(
            queryset if queryset is not None else self.base_queryset(),
            filters,
        ).order_by("-created_at", "-id")
        total = qs.count()
        offset = (max(page, 1) - 1) * limit
        return list(qs[offset:offset + limit]), total

    def find_by_vehicle(self, vehicle_id: Any, queryset: QuerySet | None = None) -> QuerySet:
        qs = queryset if queryset is not None else self.base_queryset()
        return (
            qs.filter(Q(vehicles__vehicle_id=vehicle_id) | Q(vehicle_id=vehicle_id))
            .distinct()
            .order_by("-created_at", "-id")
        )

    def find_by_reporter(self, user_id: Any) -> QuerySet:
        return self.base_queryset().filter(reported_by_id=user_id).order_by("-created_at", "-id")

    # ── Writes ───────────────────────────────────────────────────────

    @transaction.atomic
    def create(
        self,
        *,
        fields: Mapping[str, Any],
        vehicles: Iterable[Mapping[str, Any]] = (),
        persons: Iterable[Mapping[str, Any]] = (),
        evidence: Iterable[Mapping[str, Any]] = (),
        case_file: Mapping[str, Any] | None = None,
        timeline: Mapping[str, Any] | None = None,
    ) -> Incident:
        """Insert an incident together with its case file and child rows."""
        incident = Incident.objects.create(**fields)
        CaseFile.objects.create(incident=incident, **(case_file or {}))
        self.replace_vehicles(incident.pk, vehicles)
        self.replace_persons(incident.pk, persons)
        for item in evidence:
            IncidentEvidence.objects.create(incident=incident, **item)
        if timeline:
            self.append_timeline(incident.pk, **timeline)
        return incident

    def atomic_update(
        self,
        incident_id: Any,
        *,
        expected_status: str,
        expected_version: int,
        fields: Mapping[str, Any] | None = None,
        case_file_fields: Mapping[str, Any] | None = None,
        timeline: Mapping[str, Any] | None = None,
    ) -> None:
        """
        Compare-and-set the incident's status/version, update its case
        file and append one timeline entry, all in one transaction.

        Raises:
            NotFound:     the incident vanished.
            InvalidState: ``status``/``version`` no longer match.
        """
        now = timezone.now()
        with transaction.atomic():
            compare_and_set(
                model_class=Incident,
                pk=incident_id,
                expected={"status": expected_status, "version": expected_version},
                changes={**(fields or {}), "updated_at": now},
                version_field="version",
            )
            if case_file_fields:
                CaseFile.objects.filter(incident_id=incident_id).update(
                    **case_file_fields, updated_at=now,
                )
            if timeline:
                self.append_timeline(incident_id, **timeline)

    def update_fields(self, incident_id: Any, fields: Mapping[str, Any]) -> None:
        """Single-statement update of descriptive (non-status) columns."""
        matched = Incident.objects.filter(pk=incident_id).update(
            **fields, updated_at=timezone.now(),
        )
        if not matched:
            raise NotFound(f"Incident {incident_id} not found.")

    def replace_vehicles(self, incident_id: Any, vehicles: Iterable[Mapping[str, Any]]) -> None:
        IncidentVehicle.objects.filter(incident_id=incident_id).delete()
        IncidentVehicle.objects.bulk_create([
            IncidentVehicle(
                incident_id=incident_id,
                vehicle_id=entry["vehicle"],
                involvement=entry.get("involvement") or "other",
                details=entry.get("details") or "",
                position=position,
            )
            for position, entry in enumerate(vehicles)
        ])

    def set_primary_vehicle(self, incident_id: Any, vehicle_id: Any) -> None:
        first = (
            IncidentVehicle.objects
            .filter(incident_id=incident_id)
            .order_by("position", "id")
            .first()
        )
        if first is None:
            self.replace_vehicles(
                incident_id,
                [{"vehicle": vehicle_id, "involvement": "victim", "details": "Primary vehicle"}],
            )
        else:
            IncidentVehicle.objects.filter(pk=first.pk).update(vehicle_id=vehicle_id)

    def replace_persons(self, incident_id: Any, persons: Iterable[Mapping[str, Any]]) -> None:
        IncidentPerson.objects.filter(incident_id=incident_id).delete()
        IncidentPerson.objects.bulk_create([
            IncidentPerson(incident_id=incident_id, **person) for person in persons
        ])

    def append_timeline(
        self,
        incident_id: Any,
        *,
        action: str,
        description: str = "",
        performed_by: Any = None,
    ) -> TimelineEntry:
        return TimelineEntry.objects.create(
            incident_id=incident_id,
            action=action,
            description=description,
            performed_by=performed_by,
        )

    def add_note(self, incident_id: Any, *, author: Any, content: str, is_private: bool) -> IncidentNote:
        return IncidentNote.objects.create(
            incident_id=incident_id,
            author=author,
            content=content,
            is_private=is_private,
        )

    def add_evidence(self, incident_id: Any, **values: Any) -> IncidentEvidence:
        return IncidentEvidence.objects.create(incident_id=incident_id, **values)

    def delete(self, incident_id: Any) -> None:
        deleted, _ = Incident.objects.filter(pk=incident_id).delete()
        if not deleted:
            raise NotFound(f"Incident {incident_id} not found.")

    # ── Sequences ────────────────────────────────────────────────────

    def atomic_increment_sequence(self, key: str) -> int:
        """Next value of the named counter (see ``increment_sequence``)."""
        return increment_sequence(key)
