"""Shared utilities: datetime helpers."""

from firestore_rest.shared.utils.datetime import (
    ensure_utc,
    format_rfc3339,
    from_timestamp_utc,
    parse_rfc3339,
    utc_now,
)

__all__ = [
    "utc_now",
    "ensure_utc",
    "from_timestamp_utc",
    "format_rfc3339",
    "parse_rfc3339",
]
