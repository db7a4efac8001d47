"""
Recurrence Expansion

Turns a RecurrencePattern plus a base occurrence into the ordered list of
candidate occurrences of a series.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator, List, Optional

from models.recurrence import EndType, RecurrencePattern, RecurrenceType
from utils.constants import MAX_SERIES_OCCURRENCES, MIN_INTERVAL_WEEKS
from utils.datetime_utils import sunday_weekday
from utils.exceptions import RecurrenceOverflowError, ValidationError
from utils.validation import normalize_weekdays


@dataclass(frozen=True)
class TimeRange:
    """Half-open [start, end) range in tenant-local civil time."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


def validate_pattern(pattern: RecurrencePattern, base_start: datetime) -> List[int]:
    """
    Check a pattern before expansion.

    Returns:
        Normalized weekday list (deduplicated, ascending)

    Raises:
        ValidationError: if the pattern cannot be expanded
    """
    if pattern.type == RecurrenceType.NONE:
        return []

    if pattern.interval_weeks is None or pattern.interval_weeks < MIN_INTERVAL_WEEKS:
        raise ValidationError("intervalWeeks must be at least 1")

    weekdays = normalize_weekdays(pattern.weekdays or [])
    if not weekdays:
        raise ValidationError("A weekly pattern must recur on at least one weekday")

    if pattern.end_type == EndType.COUNT:
        if pattern.count is None or pattern.count < 1:
            raise ValidationError("endType 'count' requires count >= 1")
        if pattern.end_date is not None:
            raise ValidationError("endType 'count' must not set endDate")
    elif pattern.end_type == EndType.DATE:
        if pattern.end_date is None:
            raise ValidationError("endType 'date' requires endDate")
        if pattern.count is not None:
            raise ValidationError("endType 'date' must not set count")
        if pattern.end_date < base_start.date():
            raise ValidationError("endDate is before the series start")
    else:
        raise ValidationError(f"Unknown endType: {pattern.end_type}")

    return weekdays


def _weekly_starts(
    base_start: datetime, weekdays: List[int], interval_weeks: int, end_date: Optional[date]
) -> Iterator[datetime]:
    """Yield candidate start instants week by week, ascending, unbounded unless end_date."""
    week_start = base_start.date() - timedelta(days=sunday_weekday(base_start.date()))
    step = timedelta(weeks=interval_weeks)
    time_of_day = base_start.time()

    while end_date is None or week_start <= end_date:
        for day in weekdays:
            day_date = week_start + timedelta(days=day)
            if end_date is not None and day_date > end_date:
                return
            candidate = datetime.combine(day_date, time_of_day)
            if candidate < base_start:
                continue
            yield candidate
        week_start += step


def expand(
    base_start: datetime,
    base_end: datetime,
    pattern: Optional[RecurrencePattern] = None,
    max_occurrences: int = MAX_SERIES_OCCURRENCES,
) -> List[TimeRange]:
    """
    Expand a pattern into candidate occurrences.

    Args:
        base_start: start of the template occurrence
        base_end: end of the template occurrence
        pattern: recurrence pattern; None behaves like type "none"
        max_occurrences: safety cap on generated occurrences

    Returns:
        list[TimeRange] ascending by start; identical for identical inputs

    Raises:
        ValidationError: malformed pattern or non-positive duration
        RecurrenceOverflowError: the pattern exceeds max_occurrences
    """
    duration = base_end - base_start
    if duration <= timedelta(0):
        raise ValidationError("Occurrence duration must be positive")

    if pattern is None or pattern.type == RecurrenceType.NONE:
        return [TimeRange(base_start, base_end)]

    weekdays = validate_pattern(pattern, base_start)

    if pattern.end_type == EndType.COUNT:
        if pattern.count > max_occurrences:
            raise RecurrenceOverflowError(max_occurrences)
        limit = pattern.count
        end_date = None
    else:
        limit = None
        end_date = pattern.end_date

    occurrences: List[TimeRange] = []
    for start in _weekly_starts(base_start, weekdays, pattern.interval_weeks, end_date):
        if limit is not None and len(occurrences) >= limit:
            break
        if len(occurrences) >= max_occurrences:
            raise RecurrenceOverflowError(max_occurrences)
        occurrences.append(TimeRange(start, start + duration))

    return occurrences
