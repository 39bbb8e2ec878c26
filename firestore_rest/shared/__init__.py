"""Shared utilities: telemetry and datetime helpers.

Used by domain and infrastructure. No Firestore logic.
"""

from firestore_rest.shared.utils import (
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
