"""
Vehicles service layer.

Exposes the single lookup the incident lifecycle depends on.
"""

from __future__ import annotations

from typing import Any

from .models import Vehicle


class VehicleDirectory:
    """Existence checks and lookups for ``Vehicle`` references."""

    @staticmethod
    def exists(vehicle_id: Any) -> bool:
        try:
            return Vehicle.objects.filter(pk=vehicle_id).exists()
        except (ValueError, TypeError):
            return False

    @staticmethod
    def get(vehicle_id: Any) -> Vehicle | None:
        try:
            return Vehicle.objects.get(pk=vehicle_id)
        except (Vehicle.DoesNotExist, ValueError, TypeError):
            return None
