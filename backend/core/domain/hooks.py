"""
core.domain.hooks — Post-commit side-effect scheduling.

Audit entries and notifications are *consequences* of a state change,
never part of it.  Service code registers them here and they run only
once the surrounding transaction has committed:

* a rolled-back transition produces no audit entry and no notification;
* a failing side effect is logged and dropped, it can never undo or fail
  the transition that triggered it;
* hooks registered by one transition run sequentially, in registration
  order.

Outside of any ``atomic()`` block Django runs ``on_commit`` callbacks
immediately, so the same code path works in autocommit mode.

Usage::

    from core.domain.hooks import after_commit

    after_commit("audit.assign", AuditRecorder.record, actor=user, ...)
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from django.db import transaction

logger = logging.getLogger(__name__)


def run_isolated(label: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """
    Call ``fn`` and swallow (but log) any exception it raises.

    Returns whatever ``fn`` returned, or ``None`` on failure.
    """
    try:
        return fn(*args, **kwargs)
    except Exception:
        logger.exception("Side effect '%s' failed; continuing", label)
        return None


def after_commit(label: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    """
    Schedule ``fn(*args, **kwargs)`` to run after the current transaction
    commits, isolated via :func:`run_isolated`.

    Args:
        label: Short identifier used in log lines (e.g. ``"notify.assign"``).
        fn:    The side-effect callable.
    """
    transaction.on_commit(lambda: run_isolated(label, fn, *args, **kwargs))
