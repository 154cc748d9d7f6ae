"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the domain layer stays
framework-agnostic.  The global DRF exception handler in
``core.domain.exception_handler`` maps them to HTTP responses.

Mapping cheatsheet
------------------
┌─────────────────────┬──────────────────────────────┬──────┐
│ Domain Exception    │ Meaning                      │ Code │
├─────────────────────┼──────────────────────────────┼──────┤
│ DomainError         │ generic business-rule breach │ 400  │
│ ValidationFailed    │ missing / malformed payload  │ 400  │
│ PermissionDenied    │ role or ownership guard      │ 403  │
│ NotFound            │ resource does not exist      │ 404  │
│ ReferenceNotFound   │ dangling foreign reference   │ 404  │
│ Conflict            │ state conflict               │ 409  │
│ InvalidState        │ illegal / stale transition   │ 409  │
│ SequenceError       │ number generator failed      │ 503  │
└─────────────────────┴──────────────────────────────┴──────┘

Recommended usage inside a service::

    from core.domain.exceptions import InvalidState

    if incident.status not in rule.sources:
        raise InvalidState(
            current=incident.status,
            target=IncidentStatus.PENDING,
            reason="A report can only be submitted during an investigation.",
        )
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Catch this at the view boundary and convert to a 400 Bad Request.
    """

    code = "domain_error"

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class ValidationFailed(DomainError):
    """
    Required payload fields are missing or malformed.

    ``errors`` maps field names to human-readable messages so the caller
    can render them next to the offending inputs.  Maps to HTTP 400.
    """

    code = "validation_failed"

    def __init__(
        self,
        message: str = "The submitted data is invalid.",
        *,
        errors: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or {}


class PermissionDenied(DomainError):
    """
    The authenticated user does not have the required role, or does not
    own the resource, for this operation.

    Maps to HTTP 403.
    """

    code = "forbidden"

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


#: Name used by the lifecycle documentation.
Forbidden = PermissionDenied


class NotFound(DomainError):
    """
    The requested resource does not exist (or is not visible to the
    requesting user given their role scope).

    Maps to HTTP 404.
    """

    code = "not_found"

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class ReferenceNotFound(NotFound):
    """
    A foreign reference inside the payload (investigator id, vehicle id)
    does not resolve.

    Kept distinct from ``NotFound`` so callers can tell "the incident is
    gone" apart from "the thing you pointed at is gone".  Maps to HTTP 404.
    """

    code = "reference_not_found"

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        if message is None:
            message = (
                f"Referenced {field} '{value}' does not exist."
                if field
                else "A referenced resource does not exist."
            )
        super().__init__(message)
        self.field = field
        self.value = value


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: duplicate creation attempt, optimistic-lock failure.
    Maps to HTTP 409.
    """

    code = "conflict"

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidState(Conflict):
    """
    A state-machine transition that is not allowed from the current status,
    or a transition that lost a compare-and-set race (stale status).

    Inherits from ``Conflict`` because an invalid transition IS a conflict
    with the resource's current state.  Maps to HTTP 409.

    Example::

        raise InvalidState(
            current="open",
            target="pending",
            reason="No investigator has been assigned yet.",
        )
    """

    code = "invalid_state"

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        reason: str | None = None,
    ) -> None:
        if message is None:
            parts = ["Invalid state transition"]
            if current and target:
                parts.append(f"from '{current}' to '{target}'")
            if reason:
                parts.append(f"- {reason}")
            message = " ".join(parts) + "."
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason


#: Backwards-compatible name used by older service code.
InvalidTransition = InvalidState


class SequenceError(DomainError):
    """
    The atomic sequence primitive failed (database error or exhausted
    counter).  Fatal to incident creation.  Maps to HTTP 503.
    """

    code = "sequence_error"

    def __init__(self, message: str = "Could not allocate a sequence number.") -> None:
        super().__init__(message)
