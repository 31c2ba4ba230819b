"""Timestamp utilities for hhdedupe.

This module provides consistent timestamp functions across the codebase.
"""

from datetime import UTC, datetime

__all__ = ["get_iso_timestamp", "parse_iso_timestamp", "to_iso"]


def get_iso_timestamp() -> str:
    """Get current UTC timestamp in ISO8601 format with microseconds.

    Returns
    -------
    str
        ISO8601 timestamp with microseconds (e.g., "2026-02-03T12:34:56.123456Z").
    """
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def parse_iso_timestamp(iso_str: str) -> datetime:
    """Parse ISO8601 timestamp string to timezone-aware datetime.

    Handles both 'Z' and '+00:00' UTC suffixes. Naive timestamps (and plain
    dates) are interpreted as UTC.

    Parameters
    ----------
    iso_str : str
        ISO8601 timestamp string.

    Returns
    -------
    datetime
        Timezone-aware datetime.

    Raises
    ------
    ValueError
        If the string is not a valid ISO8601 timestamp.
    """
    parsed = datetime.fromisoformat(iso_str.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_iso(value: datetime) -> str:
    """Render a datetime in UTC with a 'Z' suffix."""
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")
