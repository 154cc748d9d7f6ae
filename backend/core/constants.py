"""
Core constants — **Single Source of Truth** for project-wide magic values.

Any business rule that references a shared constant should import it from
here instead of hardcoding.  This avoids drift between apps that use the
same value.
"""

# ── Incident numbering ──────────────────────────────────────────────
# Incident numbers look like ``INC-2410-0042``: prefix, two-digit year,
# two-digit month, then the zero-padded global sequence value.  The
# sequence never resets, so the numeric part keeps growing past four
# digits once 9999 incidents exist.
INCIDENT_NUMBER_PREFIX: str = "INC"
INCIDENT_NUMBER_SEQUENCE: str = "incident_number"
INCIDENT_NUMBER_PADDING: int = 4

# ── Pagination ──────────────────────────────────────────────────────
DEFAULT_PAGE_SIZE: int = 10
MAX_PAGE_SIZE: int = 100

# ── Defaults for tunables overridable from settings ─────────────────
DEFAULT_AUDIT_LOG_MAX_RESULTS: int = 500
DEFAULT_NOTIFICATION_LIST_LIMIT: int = 50
DEFAULT_REALTIME_SEND_TIMEOUT: float = 5.0
