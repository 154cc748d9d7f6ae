"""
core.domain.exception_handler — DRF exception handler for domain errors.

Every service raises the exceptions in ``core.domain.exceptions``; this
handler turns them into responses of the form::

    {"detail": "<message>", "code": "<snake_case code>", ...}

with ``errors`` added for ``ValidationFailed``, ``current``/``target``
for ``InvalidState`` and ``field``/``value`` for ``ReferenceNotFound``.

Register in ``settings.py``::

    REST_FRAMEWORK = {
        ...
        'EXCEPTION_HANDLER': 'core.domain.exception_handler.domain_exception_handler',
    }
"""

from __future__ import annotations

import logging
from typing import Any

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from core.domain.exceptions import (
    Conflict,
    DomainError,
    InvalidState,
    NotFound,
    PermissionDenied,
    ReferenceNotFound,
    SequenceError,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

# Most specific class first; the first ``isinstance`` match wins.
_STATUS_TABLE: tuple[tuple[type[DomainError], int], ...] = (
    (PermissionDenied, 403),
    (ReferenceNotFound, 404),
    (NotFound, 404),
    (InvalidState, 409),
    (Conflict, 409),
    (ValidationFailed, 400),
    (SequenceError, 503),
    (DomainError, 400),
)


def status_for(exc: DomainError) -> int:
    for exc_class, status_code in _STATUS_TABLE:
        if isinstance(exc, exc_class):
            return status_code
    return 400


def error_body(exc: DomainError) -> dict[str, Any]:
    """Response payload for a domain exception."""
    body: dict[str, Any] = {"detail": str(exc), "code": exc.code}
    if getattr(exc, "errors", None):
        body["errors"] = exc.errors
    if isinstance(exc, InvalidState) and exc.current and exc.target:
        body["current"] = exc.current
        body["target"] = exc.target
    if isinstance(exc, ReferenceNotFound) and exc.field:
        body["field"] = exc.field
        body["value"] = None if exc.value is None else str(exc.value)
    return body


def domain_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    Let DRF render its own exceptions (authentication, parsing,
    serializer validation), then map domain exceptions.  Anything else
    returns ``None`` so DRF re-raises it.
    """
    response = drf_default_handler(exc, context)
    if response is not None:
        return response

    if not isinstance(exc, DomainError):
        return None

    status_code = status_for(exc)
    view = context.get("view")
    view_name = type(view).__name__ if view is not None and not isinstance(view, str) else view
    # 5xx means the request was fine but we could not serve it
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Domain exception [%s] in %s: %s",
        type(exc).__name__,
        view_name or "unknown",
        exc,
    )
    return Response(error_body(exc), status=status_code)
