"""
incidents.normalization — Payload shaping shared by every incident write path.

Historical incident records exist in two shapes:

===================  =====================
canonical field      legacy mirror
===================  =====================
``type``             ``incident_type``
``date``             ``date_time``
``vehicles[0]``      ``vehicle``
===================  =====================

Every create and update runs the payload through
:func:`normalize_incident_payload`, which keeps both shapes populated:

* if the payload supplies both sides of a pair, each keeps its value;
* if it supplies one side, that value is mirrored into the other;
* if it supplies neither, the pair is healed from the stored record
  (whichever side is populated is copied into the empty one).

A lone ``vehicle`` becomes ``vehicles = [{vehicle, involvement: victim,
details: "Primary vehicle"}]``.

Location input is accepted either as a plain address string or as a
``{"type", "coordinates", "address"}`` mapping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Mapping

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from core.domain.exceptions import ValidationFailed

from .models import IncidentType, PersonRole, VehicleInvolvement

if TYPE_CHECKING:
    from .models import Incident

PRIMARY_VEHICLE_DETAILS = "Primary vehicle"

#: Fields a caller may never write directly.
IMMUTABLE_FIELDS = frozenset({
    "id",
    "incident_number",
    "reported_by",
    "status",
    "version",
    "assigned_to",
    "assigned_by",
    "case_file",
    "timeline",
})

#: Plain scalar fields copied as-is when present.
_SCALAR_FIELDS = ("title", "description", "severity", "time")

_PERSON_FIELDS = ("name", "role", "phone", "email", "address", "details", "identification")

_ADDRESS_PARTS = ("street", "city", "state", "zipCode", "zip_code", "country")


@dataclass
class NormalizedIncident:
    """
    Result of normalising a write payload.

    ``fields`` are concrete ``Incident`` column values.  ``vehicles`` is
    ``None`` when the involved-vehicle list must be left untouched;
    ``primary_vehicle`` is set when only the primary (position 0) entry
    must be re-pointed.
    """

    fields: dict[str, Any] = field(default_factory=dict)
    vehicles: list[dict[str, Any]] | None = None
    primary_vehicle: Any = None
    persons: list[dict[str, Any]] | None = None

    def referenced_vehicle_ids(self) -> set[Any]:
        ids = set()
        if self.fields.get("vehicle_id") is not None:
            ids.add(self.fields["vehicle_id"])
        if self.primary_vehicle is not None:
            ids.add(self.primary_vehicle)
        for entry in self.vehicles or ():
            ids.add(entry["vehicle"])
        return ids


def parse_location(value: Any) -> dict[str, Any]:
    """
    Convert a location payload into ``Incident`` location columns.

    Raises:
        ValidationFailed: if the value is empty or malformed.
    """
    if value is None or value == "" or value == {}:
        raise ValidationFailed(
            "Location is required.",
            errors={"location": "Location is required."},
        )

    if isinstance(value, str):
        return {
            "location_type": "Point",
            "longitude": 0.0,
            "latitude": 0.0,
            "location_address": value.strip(),
        }

    if not isinstance(value, Mapping):
        raise ValidationFailed(
            "Location must be an address string or an object.",
            errors={"location": "Must be an address string or an object."},
        )

    coordinates = value.get("coordinates") or [0, 0]
    try:
        longitude, latitude = (float(c) for c in coordinates)
    except (TypeError, ValueError):
        raise ValidationFailed(
            "Location coordinates must be [longitude, latitude].",
            errors={"location": "Coordinates must be [longitude, latitude]."},
        )
    if not (-180 <= longitude <= 180 and -90 <= latitude <= 90):
        raise ValidationFailed(
            "Location coordinates are out of range.",
            errors={"location": "Coordinates are out of range."},
        )

    address = value.get("address") or "Unknown location"
    if isinstance(address, Mapping):
        address = ", ".join(
            str(address[part]) for part in _ADDRESS_PARTS if address.get(part)
        ) or "Unknown location"

    return {
        "location_type": value.get("type") or "Point",
        "longitude": longitude,
        "latitude": latitude,
        "location_address": str(address).strip(),
    }


def _mirror(data: dict, canonical: str, legacy: str, current: Incident | None):
    """Apply the pair rule for one canonical/legacy field pair."""
    has_canonical = data.get(canonical) not in (None, "")
    has_legacy = data.get(legacy) not in (None, "")

    if has_canonical and has_legacy:
        return data[canonical], data[legacy]
    if has_canonical:
        return data[canonical], data[canonical]
    if has_legacy:
        return data[legacy], data[legacy]
    if current is not None:
        stored_canonical = getattr(current, canonical, None) or None
        stored_legacy = getattr(current, legacy, None) or None
        if stored_canonical and not stored_legacy:
            return None, stored_canonical
        if stored_legacy and not stored_canonical:
            return stored_legacy, None
    return None, None


def _vehicle_entries(raw: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, (list, tuple)):
        raise ValidationFailed(
            "Vehicles must be a list.",
            errors={"vehicles": "Must be a list of {vehicle, involvement, details}."},
        )
    entries = []
    for index, item in enumerate(raw):
        if isinstance(item, Mapping):
            vehicle_id = item.get("vehicle")
            involvement = item.get("involvement") or VehicleInvolvement.OTHER
            details = item.get("details") or ""
        else:
            vehicle_id, involvement, details = item, VehicleInvolvement.OTHER, ""
        if vehicle_id in (None, ""):
            raise ValidationFailed(
                "Every involved vehicle needs a vehicle id.",
                errors={"vehicles": f"Entry {index} has no vehicle id."},
            )
        if involvement not in VehicleInvolvement.values:
            raise ValidationFailed(
                "Invalid vehicle involvement.",
                errors={"vehicles": f"Entry {index} has invalid involvement '{involvement}'."},
            )
        entries.append({"vehicle": vehicle_id, "involvement": involvement, "details": details})
    return entries


def _as_datetime(value: Any, field_name: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    parsed = parse_datetime(str(value)) if isinstance(value, str) else None
    if parsed is None:
        raise ValidationFailed(
            "Invalid date.",
            errors={field_name: "Must be an ISO 8601 date/time."},
        )
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def _person_entries(raw: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, (list, tuple)):
        raise ValidationFailed(
            "Persons must be a list.",
            errors={"persons": "Must be a list of person objects."},
        )
    entries = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping) or not str(item.get("name") or "").strip():
            raise ValidationFailed(
                "Every involved person needs a name.",
                errors={"persons": f"Entry {index} has no name."},
            )
        if item.get("role") not in PersonRole.values:
            raise ValidationFailed(
                "Invalid person role.",
                errors={"persons": f"Entry {index} has invalid role '{item.get('role')}'."},
            )
        entries.append({
            name: str(item.get(name) or "").strip()
            for name in _PERSON_FIELDS
        })
    return entries


def _primary_entry(vehicle_id: Any) -> dict[str, Any]:
    return {
        "vehicle": vehicle_id,
        "involvement": VehicleInvolvement.VICTIM,
        "details": PRIMARY_VEHICLE_DETAILS,
    }


def normalize_incident_payload(
    payload: Mapping[str, Any],
    current: Incident | None = None,
) -> NormalizedIncident:
    """
    Build the column values for a create (``current is None``) or an
    update of ``current`` from ``payload``.

    Raises:
        ValidationFailed: on immutable fields, a missing location (create),
            or malformed nested data.
    """
    data = dict(payload)
    creating = current is None

    forbidden = sorted(IMMUTABLE_FIELDS.intersection(data))
    if forbidden:
        raise ValidationFailed(
            "Some fields cannot be changed directly.",
            errors={name: "This field is read-only." for name in forbidden},
        )

    result = NormalizedIncident()
    fields = result.fields

    for name in _SCALAR_FIELDS:
        if name in data and data[name] is not None:
            fields[name] = data[name]

    # ── type ⇄ incident_type ────────────────────────────────────────
    type_value, legacy_type = _mirror(data, "type", "incident_type", current)
    for value in (type_value, legacy_type):
        if value is not None and value not in IncidentType.values:
            raise ValidationFailed(
                "Invalid incident type.",
                errors={"type": f"'{value}' is not a valid incident type."},
            )
    if creating and type_value is None:
        type_value = legacy_type = IncidentType.OTHER
    if type_value is not None:
        fields["type"] = type_value
    if legacy_type is not None:
        fields["incident_type"] = legacy_type

    # ── date ⇄ date_time ────────────────────────────────────────────
    date_value, legacy_date = _mirror(data, "date", "date_time", current)
    date_value = _as_datetime(date_value, "date")
    legacy_date = _as_datetime(legacy_date, "date_time")
    if creating and date_value is None:
        date_value = legacy_date = timezone.now()
    if date_value is not None:
        fields["date"] = date_value
    if legacy_date is not None:
        fields["date_time"] = legacy_date
    if creating and not fields.get("time") and isinstance(fields.get("date"), datetime):
        when = fields["date"]
        if timezone.is_aware(when):
            when = timezone.localtime(when)
        fields["time"] = when.strftime("%H:%M:%S")

    # ── location ────────────────────────────────────────────────────
    if creating or "location" in data:
        fields.update(parse_location(data.get("location")))

    # ── vehicle ⇄ vehicles[0] ───────────────────────────────────────
    has_list = bool(data.get("vehicles"))
    has_single = data.get("vehicle") not in (None, "")
    if has_list:
        result.vehicles = _vehicle_entries(data["vehicles"])
        fields["vehicle_id"] = data["vehicle"] if has_single else result.vehicles[0]["vehicle"]
    elif has_single:
        fields["vehicle_id"] = data["vehicle"]
        if creating or not current.vehicles.exists():
            result.vehicles = [_primary_entry(data["vehicle"])]
        else:
            result.primary_vehicle = data["vehicle"]
    elif current is not None:
        first = current.vehicles.order_by("position", "id").first()
        if current.vehicle_id and first is None:
            result.vehicles = [_primary_entry(current.vehicle_id)]
        elif first is not None and not current.vehicle_id:
            fields["vehicle_id"] = first.vehicle_id

    # ── persons ─────────────────────────────────────────────────────
    if "persons" in data and data["persons"] is not None:
        result.persons = _person_entries(data["persons"])

    return result
