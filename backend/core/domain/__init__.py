"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions         Domain-specific exceptions that map cleanly to HTTP responses.
exception_handler  DRF handler translating those exceptions to responses.
transactions       Compare-and-set updates and atomic counters.
hooks              Post-commit scheduling of isolated side effects.
notifications      Notification creation and role fan-out helpers.
realtime           Channel registry and real-time push dispatcher.
access             Role-scoped queryset selectors and guards.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidState
    from core.domain.hooks import after_commit
    from core.domain.notifications import notify_user
    from core.domain.transactions import compare_and_set
    from core.domain.access import require_role
"""
