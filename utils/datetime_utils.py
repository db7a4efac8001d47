"""
Datetime utilities for tenant-local civil time.

All appointment instants are naive datetimes holding the tenant's wall-clock
components. They travel to and from the store as offset-free strings
(YYYY-MM-DDTHH:MM:SS) that the store interprets in the tenant's configured
timezone. No UTC conversion happens anywhere on this path.
"""

from datetime import date, datetime, timezone
from typing import Optional, Union

import pytz

from utils.exceptions import FormatError

WIRE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def to_wire(local: datetime) -> str:
    """
    Format a tenant-local instant for the store.

    The wall-clock fields are used verbatim; an attached tzinfo is dropped,
    not converted. Sub-second precision is discarded.
    """
    if not isinstance(local, datetime):
        raise FormatError(f"Expected datetime, got {type(local).__name__}")
    return local.replace(tzinfo=None, microsecond=0).strftime(WIRE_FORMAT)


def from_wire(value: str) -> datetime:
    """
    Parse an offset-free wire string into a naive tenant-local datetime.

    Raises:
        FormatError: if the string is not a civil datetime or carries an offset
    """
    if not isinstance(value, str) or not value.strip():
        raise FormatError(f"Invalid datetime string: {value!r}")

    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise FormatError(f"Invalid datetime string: {value!r}") from e

    if parsed.tzinfo is not None:
        raise FormatError(f"Datetime string must not carry a UTC offset: {value!r}")

    return parsed.replace(microsecond=0)


def coerce_local(value: Union[datetime, str, None]) -> Optional[datetime]:
    """Accept either a datetime or a wire string and return a naive local datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None, microsecond=0)
    return from_wire(value)


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def sunday_weekday(value: date) -> int:
    """Weekday index with 0=Sunday .. 6=Saturday."""
    return (value.weekday() + 1) % 7


def utc_now() -> datetime:
    """Current UTC time as a timezone-aware datetime (audit fields only)."""
    return datetime.now(timezone.utc)


def tenant_now(tz_name: str) -> datetime:
    """
    Current wall-clock time in the tenant's timezone, as a naive datetime.

    Falls back to UTC for an unknown timezone name.
    """
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        tz = pytz.UTC
    return datetime.now(tz).replace(tzinfo=None, microsecond=0)
