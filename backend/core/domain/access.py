"""
core.domain.access — Role-scoped queryset selectors and guards.

This module provides shared utilities that each app's service layer
calls to check the requesting user's role and to obtain querysets
filtered to what that role may see.

╔══════════════════════════════════════════════════════════════════╗
║  IMPORTANT — Per-app scoping logic does NOT live here.         ║
║  Each app's ``services.py`` owns its own scope-rules list.     ║
║  This module provides:                                         ║
║    1) ``get_user_role_name`` — canonical role-name lookup.     ║
║    2) ``require_role`` — guard raising ``PermissionDenied``.   ║
║    3) ``apply_role_scope`` — ordered role-based dispatch.      ║
╚══════════════════════════════════════════════════════════════════╝

Usage in an app's service layer::

    from core.domain.access import apply_role_scope

    INCIDENT_SCOPE_RULES = [
        (STAFF_ROLES, lambda qs, u: qs),
        (None,        lambda qs, u: qs.filter(reported_by=u)),
    ]

    qs = apply_role_scope(Incident.objects.all(), user, scope_rules=INCIDENT_SCOPE_RULES)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable

from django.db.models import QuerySet

from core.domain.exceptions import PermissionDenied

if TYPE_CHECKING:
    from accounts.models import User

# Type alias for a scope filter function.
# Takes (queryset, user) and returns a filtered queryset.
ScopeFilter = Callable[[QuerySet, "User"], QuerySet]

# A scope rule: (roles the rule applies to, filter_fn).
# ``None`` as the roles entry matches any authenticated user.
ScopeRule = tuple["Iterable[str] | None", ScopeFilter]

#: Role name reported for Django superusers without an explicit role.
SUPERUSER_ROLE = "admin"


def get_user_role_name(user: User) -> str | None:
    """
    Return the normalised role name for a user, or ``None`` if unassigned.

    Role names are lowercased with spaces replaced by underscores, so a
    role stored as ``"Investigator"`` compares equal to
    ``"investigator"``.  Superusers always report ``"admin"``.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    if user.is_superuser:
        return SUPERUSER_ROLE
    role = getattr(user, "role", None)
    if role is None:
        return None
    return role.name.lower().replace(" ", "_")


def user_has_role(user: User, *roles: str) -> bool:
    """``True`` if the user's role is any of ``roles``."""
    return get_user_role_name(user) in roles


def require_role(user: User, *allowed_roles: str, message: str = "") -> None:
    """
    Guard that raises ``PermissionDenied`` if the user's role is not
    among ``allowed_roles``.

    Example::

        require_role(user, "admin")
    """
    role_name = get_user_role_name(user)
    if role_name not in allowed_roles:
        raise PermissionDenied(
            message
            or f"Role '{role_name}' is not permitted for this operation. "
               f"Required: {', '.join(allowed_roles)}."
        )


def apply_role_scope(
    queryset: QuerySet,
    user: User,
    *,
    scope_rules: list[ScopeRule],
    default: str = "none",
) -> QuerySet:
    """
    Apply the first scope rule whose roles include the user's role.

    Rules are checked **in order** — order them from broadest to
    narrowest.  A rule whose roles entry is ``None`` matches everyone
    and is typically last.

    Args:
        queryset:    Base (unfiltered) queryset.
        user:        The authenticated user.
        scope_rules: Ordered list of ``(roles, filter_fn)`` tuples.
        default:     ``"none"`` (default) → empty queryset when no rule
                     matches; ``"all"`` → unfiltered.
    """
    role_name = get_user_role_name(user)
    for roles, filter_fn in scope_rules:
        if roles is None or role_name in roles:
            return filter_fn(queryset, user)

    if default == "none":
        return queryset.none()
    return queryset
