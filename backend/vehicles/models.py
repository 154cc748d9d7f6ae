"""
Vehicles app models.

Only the registry record itself lives here; incidents reference vehicles
through ``incidents.IncidentVehicle`` and the legacy ``Incident.vehicle``
field.
"""

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class Vehicle(TimeStampedModel):
    """A registered vehicle that incidents can refer to."""

    license_plate = models.CharField(
        max_length=20,
        unique=True,
        verbose_name="License Plate",
    )
    vin = models.CharField(
        max_length=17,
        blank=True,
        default="",
        verbose_name="VIN",
    )
    make = models.CharField(max_length=50, verbose_name="Make")
    model = models.CharField(max_length=50, verbose_name="Model")
    year = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        verbose_name="Year",
    )
    color = models.CharField(
        max_length=30,
        blank=True,
        default="",
        verbose_name="Color",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="vehicles",
        verbose_name="Owner",
    )

    class Meta:
        verbose_name = "Vehicle"
        verbose_name_plural = "Vehicles"
        ordering = ["license_plate"]

    def __str__(self):
        return f"{self.license_plate} ({self.make} {self.model})"
