"""
Timestamp helpers for HubSpot payloads.

HubSpot returns ISO 8601 strings ("2024-03-19T10:15:00.000Z") for record
timestamps and accepts epoch milliseconds in search filters.
"""

from datetime import datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_hubspot_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a HubSpot timestamp.

    Accepts datetimes, ISO 8601 strings (with a trailing ``Z``) and epoch
    milliseconds given as int or numeric string. Returns None for empty or
    unparsable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)

    text = str(value).strip()
    if text.isdigit():
        return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def to_epoch_millis(value: datetime) -> int:
    """Epoch milliseconds, the format HubSpot search filters expect."""
    return int(as_utc(value).timestamp() * 1000)
