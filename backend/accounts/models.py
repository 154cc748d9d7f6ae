"""
Accounts app models.

Defines the Role system and a custom User model that extends Django's
``AbstractUser``.  Each user holds at most one role; the incident
lifecycle decides what a user may do purely from that role's name.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models


class RoleName(models.TextChoices):
    """Role names the incident lifecycle knows about."""

    ADMIN = "admin", "Administrator"
    OFFICER = "officer", "Officer"
    INVESTIGATOR = "investigator", "Investigator"
    REPORTER = "reporter", "Reporter"


class Role(models.Model):
    """
    Admin-manageable role.

    ``name`` is compared case-insensitively (``"Investigator"`` and
    ``"investigator"`` are the same role).  ``hierarchy_level`` encodes
    relative authority and is informational only.

    Default roles seeded by the data migration:
        admin, officer, investigator, reporter.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Role Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )
    hierarchy_level = models.PositiveSmallIntegerField(
        default=0,
        verbose_name="Hierarchy Level",
        help_text="Higher value = more authority (e.g. admin=10, reporter=1).",
    )

    class Meta:
        verbose_name = "Role"
        verbose_name_plural = "Roles"
        ordering = ["-hierarchy_level"]

    def __str__(self):
        return self.name


class User(AbstractUser):
    """
    Custom user model.

    Login is supported via *any one* of username / email / phone_number
    together with the password (see ``accounts.backends``).
    """

    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )
    phone_number = models.CharField(
        max_length=20,
        blank=True,
        default="",
        verbose_name="Phone Number",
    )

    # ── Single-role assignment ───────────────────────────────────────
    role = models.ForeignKey(
        Role,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
        verbose_name="Assigned Role",
    )

    REQUIRED_FIELDS = ["email"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        role_name = self.role.name if self.role else "No Role"
        return f"{self.username} - {role_name}"

    # ── Helper predicates for role checks ────────────────────────────

    @property
    def role_name(self) -> str | None:
        """Normalised role name (see ``core.domain.access``)."""
        from core.domain.access import get_user_role_name

        return get_user_role_name(self)

    def has_role(self, role_name: str) -> bool:
        """Check if the user's current role matches the given name."""
        return self.role_name == role_name.lower().replace(" ", "_")

    @property
    def hierarchy_level(self) -> int:
        """Return the hierarchy_level of the user's role (0 if none)."""
        return self.role.hierarchy_level if self.role else 0
