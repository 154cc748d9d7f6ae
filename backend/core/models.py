"""
Core app models.

Provides abstract base models and the shared infrastructure tables used
across the project: per-user notifications and named atomic counters.
"""

from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class NotificationType(models.TextChoices):
    INFO = "info", "Info"
    WARNING = "warning", "Warning"
    SUCCESS = "success", "Success"
    ERROR = "error", "Error"


class NotificationResourceType(models.TextChoices):
    INCIDENT = "incident", "Incident"
    VEHICLE = "vehicle", "Vehicle"
    USER = "user", "User"
    DOCUMENT = "document", "Document"
    SYSTEM = "system", "System"
    CHAT = "chat", "Chat"


class Notification(TimeStampedModel):
    """
    System notification sent to a user regarding incident assignments,
    report submissions and review outcomes.

    The source of a notification is recorded as a ``(resource_type,
    resource_id)`` pair so the client can deep-link without the backend
    holding a hard foreign key to every notifying model.
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name="Recipient",
    )
    title = models.CharField(max_length=255, verbose_name="Title")
    message = models.TextField(verbose_name="Message")
    type = models.CharField(
        max_length=10,
        choices=NotificationType.choices,
        default=NotificationType.INFO,
        verbose_name="Type",
    )
    is_read = models.BooleanField(default=False, verbose_name="Read")
    is_urgent = models.BooleanField(default=False, verbose_name="Urgent")

    resource_type = models.CharField(
        max_length=20,
        choices=NotificationResourceType.choices,
        null=True,
        blank=True,
        verbose_name="Related Resource Type",
    )
    resource_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        verbose_name="Related Resource ID",
    )

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="core_notif_recip_read_idx"),
        ]

    def __str__(self):
        return f"[{self.recipient}] {self.title}"


class Sequence(models.Model):
    """
    Named monotonically increasing counter.

    Only ``core.domain.transactions.increment_sequence`` mutates rows of
    this table; values are never reset or reused.
    """

    key = models.CharField(max_length=64, unique=True, verbose_name="Key")
    value = models.BigIntegerField(default=0, verbose_name="Current Value")

    class Meta:
        verbose_name = "Sequence"
        verbose_name_plural = "Sequences"

    def __str__(self):
        return f"{self.key}={self.value}"
