"""Time utilities shared across ARIOT Web components."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now_str() -> str:
    """Return the current UTC time as a fixed-width ISO-8601 string.

    The fixed millisecond precision and ``Z`` suffix keep lexical order equal
    to chronological order, which the SQL ``ORDER BY created_at`` relies on.
    """
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
