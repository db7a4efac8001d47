"""
Availability Classification

Classifies a candidate occurrence against:
- Organization opening hours (business days, open/close, breaks)
- The employee's weekly schedule, when enabled
- Appointments already booked for the employee

Classification is read-only; it is safe to run for previews and again right
before persisting.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from models.appointment import Appointment
from models.schedule import BreakWindow, WorkingHours
from models.series import AppointmentOccurrence, OccurrenceStatus
from scheduling.overlap import find_conflicts, intervals_overlap
from scheduling.recurrence import TimeRange
from utils.constants import WEEKDAY_NAMES
from utils.datetime_utils import start_of_day, sunday_weekday
from utils.exceptions import ClassificationError, ValidationError
from utils.validation import parse_hhmm

_FULL_DAY = timedelta(days=1)


def _clock(value: str) -> timedelta:
    """Convert "HH:MM" into an offset from midnight."""
    try:
        parsed = parse_hhmm(value)
    except ValidationError as e:
        raise ClassificationError(f"Invalid schedule time: {e}") from e
    return timedelta(hours=parsed.hour, minutes=parsed.minute, seconds=parsed.second)


def _outside_hours(
    start_offset: timedelta, end_offset: timedelta, open_at: str, close_at: str
) -> bool:
    opening = _clock(open_at)
    closing = _clock(close_at)
    if closing <= opening:
        # "00:00" closing means end of day
        closing = _FULL_DAY if closing == timedelta(0) else closing
    return start_offset < opening or end_offset > closing


def _break_hit(
    window: TimeRange, day: int, breaks: Sequence[BreakWindow]
) -> Optional[BreakWindow]:
    midnight = start_of_day(window.start)
    for brk in breaks:
        if brk.day is not None and brk.day != day:
            continue
        brk_start = midnight + _clock(brk.start)
        brk_end = midnight + _clock(brk.end)
        if intervals_overlap(window.start, window.end, brk_start, brk_end):
            return brk
    return None


def working_hours_violation(window: TimeRange, hours: Optional[WorkingHours]) -> Optional[str]:
    """
    Explain why ``window`` falls outside working time, or None if it fits.

    Organization hours are checked first, then the employee schedule. Both must
    admit the window. With nothing configured every window is admitted.
    """
    if hours is None:
        return None

    opening = hours.opening_hours
    schedule = hours.employee_schedule
    if schedule is not None and not schedule.enabled:
        schedule = None
    if opening is None and schedule is None:
        return None

    day = sunday_weekday(window.start.date())
    day_name = WEEKDAY_NAMES[day]
    midnight = start_of_day(window.start)
    start_offset = window.start - midnight
    end_offset = window.end - midnight

    if end_offset > _FULL_DAY:
        return "Occurrence extends past midnight"

    if opening is not None:
        if opening.business_days is not None and day not in opening.business_days:
            return f"Business is closed on {day_name}"
        if opening.start and opening.end and _outside_hours(
            start_offset, end_offset, opening.start, opening.end
        ):
            return f"Outside business hours ({opening.start}-{opening.end})"
        brk = _break_hit(window, day, opening.breaks)
        if brk is not None:
            return f"Overlaps break ({brk.start}-{brk.end})"

    if schedule is not None:
        entry = schedule.for_day(day)
        if entry is None or not entry.works:
            return f"Employee does not work on {day_name}"
        if _outside_hours(start_offset, end_offset, entry.start, entry.end):
            return f"Outside employee hours ({entry.start}-{entry.end})"
        brk = _break_hit(window, day, entry.breaks)
        if brk is not None:
            return f"Overlaps employee break ({brk.start}-{brk.end})"

    return None


def classify(
    window: TimeRange,
    hours: Optional[WorkingHours],
    booked: Iterable[Appointment],
    employee_id: str,
    exclude_appointment: Optional[str] = None,
) -> AppointmentOccurrence:
    """
    Classify one candidate occurrence.

    Returns:
        AppointmentOccurrence with status no_work, conflict, error or available
    """
    try:
        if window.end <= window.start:
            raise ClassificationError("Occurrence duration must be positive")

        reason = working_hours_violation(window, hours)
        if reason:
            return AppointmentOccurrence(
                start_date=window.start,
                end_date=window.end,
                status=OccurrenceStatus.NO_WORK,
                reason=reason,
            )

        conflicts = find_conflicts(
            window.start, window.end, booked, employee_id, exclude_appointment
        )
        if conflicts:
            ids = ", ".join(appt.id or "?" for appt in conflicts)
            return AppointmentOccurrence(
                start_date=window.start,
                end_date=window.end,
                status=OccurrenceStatus.CONFLICT,
                reason=f"Overlaps existing appointment(s): {ids}",
            )
    except ClassificationError as e:
        return AppointmentOccurrence(
            start_date=window.start,
            end_date=window.end,
            status=OccurrenceStatus.ERROR,
            reason=str(e),
        )

    return AppointmentOccurrence(start_date=window.start, end_date=window.end)


def classify_all(
    windows: Sequence[TimeRange],
    hours: Optional[WorkingHours],
    booked: Sequence[Appointment],
    employee_id: str,
) -> List[AppointmentOccurrence]:
    """Classify occurrences in chronological order."""
    ordered = sorted(windows, key=lambda w: w.start)
    return [classify(window, hours, booked, employee_id) for window in ordered]
