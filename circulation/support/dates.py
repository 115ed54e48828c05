"""Timestamp parsing helpers shared by policy documents and schedules."""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from typing import Any, Optional


def ensure_aware(value: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Attach ``tz`` to naive datetimes so all comparisons are zone-aware."""

    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def parse_timestamp(value: Any, tz: Optional[tzinfo] = None) -> datetime:
    """Parse an ISO-8601 timestamp or date.

    A bare date (``2024-01-01``) is read as midnight of that day. Naive
    results stay naive unless ``tz`` is given.
    """

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if not text:
            raise ValueError("timestamp is empty")
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if tz is not None:
        return ensure_aware(parsed, tz)
    return parsed


__all__ = ["ensure_aware", "parse_timestamp"]
