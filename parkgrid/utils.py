"""Utility functions for parkgrid package."""

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

# Lease timing
LEASE_TTL = timedelta(minutes=5)
HEARTBEAT_INTERVAL = timedelta(seconds=30)
POLL_INTERVAL = timedelta(seconds=5)

# Common headers for PostgREST requests
DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
    "User-Agent": "parkgrid/0.1.0",
}

# Store column names
COL_ID = "id"
COL_LABEL = "label"
COL_AREA = "area"
COL_OCCUPANT = "occupant"
COL_LEASE_HOLDER = "lease_holder"
COL_LEASE_HEARTBEAT = "lease_heartbeat"


def utcnow() -> datetime:
    """Get the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_entry_stamp(moment: datetime) -> str:
    """Format a timestamp the way yard staff write entry dates.

    Args:
        moment: Time to format

    Returns:
        String like "2024/3/7 9:05" (no zero padding except minutes)
    """
    return f"{moment.year}/{moment.month}/{moment.day} {moment.hour}:{moment.minute:02d}"


def normalize_ids(ids: int | Iterable[int]) -> list[int]:
    """Turn a single id or an iterable of ids into a sorted, de-duplicated list.

    Args:
        ids: Slot id or ids

    Returns:
        Sorted list of unique ids
    """
    if isinstance(ids, int):
        return [ids]
    return sorted(set(ids))


def to_seconds(value: timedelta | float | int) -> float:
    """Convert a timedelta or number of seconds to float seconds."""
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)
