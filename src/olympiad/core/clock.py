"""Timestamp parsing helpers.

Instants are stored as UTC ISO-8601 strings so they compare correctly as
text in SQL and in Python.
"""

from __future__ import annotations

from datetime import datetime, timezone

from olympiad.core.errors import RuleViolationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_instant(value: str, field_name: str = "timestamp") -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Raises:
        RuleViolationError: If the value is not a valid timestamp
    """
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        raise RuleViolationError(f"Invalid {field_name}: {value}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_instant(value: str | None, field_name: str = "timestamp") -> str | None:
    """Convert a timestamp to the stored UTC ISO form."""
    if not value:
        return None
    return parse_instant(value, field_name).astimezone(timezone.utc).isoformat()
