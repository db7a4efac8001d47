"""
Input validation utilities for scheduling requests.
"""

import re
from datetime import time
from typing import Any, Iterable, List, Optional

from utils.constants import WEEKDAY_MAX, WEEKDAY_MIN
from utils.exceptions import ValidationError

_HHMM_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


def as_id(value: Any) -> Optional[str]:
    """
    Resolve a reference that may be a bare id or an expanded record.

    Expanded records are dicts carrying "_id" or "id" (or objects with an
    ``id`` attribute).
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        ref = value.get("_id") or value.get("id")
        return str(ref) if ref is not None else None
    ref = getattr(value, "id", None)
    return str(ref) if ref is not None else None


def parse_hhmm(value: str) -> time:
    """
    Parse an "HH:MM" (or "HH:MM:SS") string into a time.

    Raises:
        ValidationError: if the value is not a valid clock time
    """
    if not isinstance(value, str):
        raise ValidationError(f"Invalid time value: {value!r}")
    match = _HHMM_PATTERN.match(value.strip())
    if not match:
        raise ValidationError(f"Invalid time value: {value!r}")
    hours, minutes, seconds = match.groups()
    return time(int(hours), int(minutes), int(seconds or 0))


def normalize_weekdays(weekdays: Iterable[int]) -> List[int]:
    """
    Deduplicate and sort weekday indices (0=Sunday .. 6=Saturday).

    Raises:
        ValidationError: if an index is out of range
    """
    result = set()
    for day in weekdays:
        if isinstance(day, bool) or not isinstance(day, int):
            raise ValidationError(f"Weekday must be an integer, got {day!r}")
        if day < WEEKDAY_MIN or day > WEEKDAY_MAX:
            raise ValidationError(f"Weekday {day} out of range 0-6")
        result.add(day)
    return sorted(result)
