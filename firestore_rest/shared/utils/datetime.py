"""
UTC datetime utilities for consistent timezone handling.

All datetime values crossing the wire should be timezone-aware UTC.
Firestore speaks RFC3339 with up to nanosecond precision; Python datetimes
carry microseconds, so formatting pads and parsing truncates.
"""

import re
from datetime import UTC, datetime, timedelta, timezone

_RFC3339_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d{1,9}))?"
    r"(?P<tz>[Zz]|[+-]\d{2}:\d{2})$"
)


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure a datetime is UTC-aware.

    - If None, returns None
    - If naive, assumes UTC and attaches timezone
    - If aware, converts to UTC

    Args:
        dt: A datetime that may be naive or aware

    Returns:
        UTC-aware datetime or None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def from_timestamp_utc(timestamp: float) -> datetime:
    """
    Create a UTC-aware datetime from a Unix timestamp (e.g. a JWT exp claim).

    Args:
        timestamp: Unix timestamp (seconds since epoch)

    Returns:
        UTC-aware datetime
    """
    return datetime.fromtimestamp(timestamp, tz=UTC)


def format_rfc3339(dt: datetime) -> str:
    """
    Format a datetime as RFC3339 UTC with nine fractional digits.

    Example: 2024-01-02T03:04:05.123456000Z

    Args:
        dt: Naive (treated as UTC) or aware datetime

    Returns:
        RFC3339 string ending in 'Z'
    """
    dt = ensure_utc(dt)
    return f"{dt.strftime('%Y-%m-%dT%H:%M:%S')}.{dt.microsecond:06d}000Z"


def parse_rfc3339(value: str) -> datetime:
    """
    Parse an RFC3339 timestamp into a UTC-aware datetime.

    Accepts 0-9 fractional digits and either 'Z' or a numeric offset.
    Digits beyond microseconds are dropped.

    Args:
        value: RFC3339 string, e.g. '2024-01-02T03:04:05.123456789Z'

    Returns:
        UTC-aware datetime

    Raises:
        ValueError: If value is not RFC3339.
    """
    match = _RFC3339_RE.match(value)
    if match is None:
        raise ValueError(f"Invalid RFC3339 timestamp: {value!r}")
    base = datetime.strptime(match.group("base").replace("t", "T").replace(" ", "T"), "%Y-%m-%dT%H:%M:%S")
    frac = (match.group("frac") or "").ljust(6, "0")[:6]
    tz = match.group("tz")
    if tz in ("Z", "z"):
        tzinfo = UTC
    else:
        sign = 1 if tz[0] == "+" else -1
        hours, minutes = int(tz[1:3]), int(tz[4:6])
        tzinfo = timezone(sign * timedelta(hours=hours, minutes=minutes))
    return base.replace(microsecond=int(frac), tzinfo=tzinfo).astimezone(UTC)
