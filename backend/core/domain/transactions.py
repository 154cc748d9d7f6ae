"""
core.domain.transactions — Helpers for safe state transitions.

Provides utilities that wrap ``transaction.atomic`` and conditional
``UPDATE`` statements into reusable patterns so that every app's service
layer follows the same concurrency-safe approach.

Design goals
------------
* State transitions are **compare-and-set**: the ``UPDATE`` only matches
  the row when the status/version the caller observed is still current,
  so two racing transitions can never both win.
* Counters are incremented in the database with an ``F()`` expression
  as the first statement of their transaction, never read-then-written
  in Python.
* Keep the helpers **generic** — they accept any Django ``Model`` class.

Usage::

    from core.domain.transactions import compare_and_set

    compare_and_set(
        model_class=Incident,
        pk=incident.pk,
        expected={"status": "open", "version": 3},
        changes={"status": "under_investigation"},
        version_field="version",
    )

    from core.domain.transactions import increment_sequence

    value = increment_sequence("incident_number")
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, TypeVar

from django.db import DatabaseError, IntegrityError, models, transaction
from django.db.models import F

from core.domain.exceptions import InvalidState, NotFound, SequenceError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=models.Model)


def compare_and_set(
    *,
    model_class: type[M],
    pk: Any,
    expected: Mapping[str, Any],
    changes: Mapping[str, Any],
    version_field: str | None = None,
) -> None:
    """
    Atomically apply ``changes`` to one row, but only if every field in
    ``expected`` still holds the observed value.

    The check and the write are a single ``UPDATE ... WHERE`` statement,
    so the database serialises competing writers on the row.

    Args:
        model_class:   The Django model class.
        pk:            Primary key of the row to update.
        expected:      Field → observed value.  All must match.
        changes:       Field → new value.
        version_field: Optional integer field bumped by one on success.

    Raises:
        NotFound:     If the row no longer exists.
        InvalidState: If the row exists but ``expected`` no longer matches
                      (another writer got there first).
    """
    update_kwargs = dict(changes)
    if version_field:
        update_kwargs[version_field] = F(version_field) + 1

    matched = (
        model_class.objects
        .filter(pk=pk, **expected)
        .update(**update_kwargs)
    )
    if matched:
        return

    if not model_class.objects.filter(pk=pk).exists():
        raise NotFound(f"{model_class.__name__} with pk={pk} no longer exists.")

    current = (
        model_class.objects
        .filter(pk=pk)
        .values(*expected.keys())
        .first()
    ) or {}
    logger.info(
        "Compare-and-set lost on %s pk=%s: expected=%s current=%s",
        model_class.__name__, pk, dict(expected), current,
    )
    raise InvalidState(
        current=str(current.get("status", "")) or None,
        target=str(changes.get("status", "")) or None,
        reason="the record was modified concurrently; reload and retry",
    )


def increment_sequence(key: str) -> int:
    """
    Return the next value of the named counter.

    The first statement is the ``UPDATE ... SET value = value + 1``, so
    the transaction takes its write lock before it reads anything and
    concurrent callers queue on that lock instead of failing on a lock
    upgrade.  A missing counter row is created with value 1; losing the
    race to create it retries once, which then takes the ``UPDATE`` path.

    Args:
        key: Name of the counter (e.g. ``"incident_number"``).

    Returns:
        The new counter value (starts at 1).

    Raises:
        SequenceError: If the database refuses the increment.
    """
    from core.models import Sequence  # circular import

    for attempt in (1, 2):
        try:
            with transaction.atomic():
                matched = (
                    Sequence.objects
                    .filter(key=key)
                    .update(value=F("value") + 1)
                )
                if not matched:
                    Sequence.objects.create(key=key, value=1)
                return (
                    Sequence.objects
                    .values_list("value", flat=True)
                    .get(key=key)
                )
        except IntegrityError:
            if attempt == 2:
                logger.exception("Sequence %s could not be created", key)
                raise SequenceError(f"Sequence '{key}' could not be initialised.")
        except DatabaseError as exc:
            logger.exception("Sequence %s increment failed", key)
            raise SequenceError(f"Sequence '{key}' is unavailable: {exc}") from exc
    raise SequenceError(f"Sequence '{key}' could not be incremented.")
