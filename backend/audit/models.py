"""
Audit app models.

Implements the immutable, append-only audit trail.  Every
state-changing action on an incident produces exactly one row here
(written by a post-commit hook, see ``audit.services.AuditRecorder``).

Design principles
-----------------
* **Append-only** — ``save()`` on an existing row raises, and neither
  instance nor queryset ``delete()`` / ``update()`` is allowed.
* **Self-contained** — ``resource_id`` is stored as text so an entry
  outlives the object it describes.
* Users with audit history cannot be deleted (``PROTECT``); deactivate
  them instead.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone


class AuditAction(models.TextChoices):
    LOGIN = "login", "Login"
    CREATE = "create", "Create"
    READ = "read", "Read"
    UPDATE = "update", "Update"
    DELETE = "delete", "Delete"
    EXPORT = "export", "Export"
    UPLOAD = "upload", "Upload"
    DOWNLOAD = "download", "Download"
    SEARCH = "search", "Search"
    FAILED_LOGIN = "failed_login", "Failed Login"
    PASSWORD_RESET = "password_reset", "Password Reset"
    PERMISSION_CHANGE = "permission_change", "Permission Change"
    CONSENT_UPDATE = "consent_update", "Consent Update"
    REVIEW = "review", "Review"
    OTHER = "other", "Other"


class AuditResourceType(models.TextChoices):
    USER = "user", "User"
    VEHICLE = "vehicle", "Vehicle"
    INCIDENT = "incident", "Incident"
    DOCUMENT = "document", "Document"
    CASE = "case", "Case"
    REPORT = "report", "Report"
    SYSTEM = "system", "System"
    CHAT = "chat", "Chat"
    OTHER = "other", "Other"


class AuditLogImmutable(Exception):
    """Raised on any attempt to modify or remove an audit entry."""


class AuditLogQuerySet(models.QuerySet):
    """Queryset that refuses bulk modification."""

    def update(self, **kwargs):
        raise AuditLogImmutable("Audit logs are immutable and cannot be updated.")

    def delete(self):
        raise AuditLogImmutable("Audit logs are immutable and cannot be deleted.")


class AuditLog(models.Model):
    """
    One immutable record of an action performed in the system.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="audit_logs",
        verbose_name="User",
    )
    action = models.CharField(
        max_length=20,
        choices=AuditAction.choices,
        db_index=True,
        verbose_name="Action",
    )
    resource_type = models.CharField(
        max_length=20,
        choices=AuditResourceType.choices,
        db_index=True,
        verbose_name="Resource Type",
    )
    resource_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        db_index=True,
        verbose_name="Resource ID",
    )
    description = models.TextField(verbose_name="Description")
    success = models.BooleanField(default=True, verbose_name="Success")
    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        verbose_name="IP Address",
    )
    user_agent = models.CharField(
        max_length=500,
        blank=True,
        default="",
        verbose_name="User Agent",
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name="Metadata",
    )
    timestamp = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        verbose_name="Timestamp",
    )

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log Entries"
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(fields=["resource_type", "resource_id"], name="audit_resource_idx"),
            models.Index(fields=["user", "timestamp"], name="audit_user_time_idx"),
        ]

    def __str__(self):
        return f"[{self.timestamp:%Y-%m-%d %H:%M:%S}] {self.action} {self.resource_type}:{self.resource_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AuditLogImmutable("Audit logs are immutable and cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditLogImmutable("Audit logs are immutable and cannot be deleted.")
