"""Common time utilities."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp for watermarks and cycle starts."""
    return dt.datetime.now(dt.UTC)


def ensure_utc(value: dt.datetime, *, field: str) -> dt.datetime:
    """Return ``value`` converted to UTC, rejecting naive datetimes."""
    if value.tzinfo is None:
        msg = f"{field} must be timezone-aware"
        raise ValueError(msg)
    return value.astimezone(dt.UTC)


def parse_timestamp(raw: str | None, *, field: str) -> dt.datetime | None:
    """Parse an ISO 8601 instant, treating ``None`` and blank strings as absent.

    Raises
    ------
    ValueError
        If ``raw`` is not an ISO 8601 timestamp or carries no UTC offset.

    """
    if raw is None or not raw.strip():
        return None
    try:
        value = dt.datetime.fromisoformat(raw.strip())
    except ValueError as exc:
        msg = f"{field} is not an ISO 8601 timestamp: {raw!r}"
        raise ValueError(msg) from exc
    return ensure_utc(value, field=field)
