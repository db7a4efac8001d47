"""
Overlap Detection

Detects scheduling conflicts between a candidate time range and the
appointments already booked for an employee. Cancelled appointments never
conflict.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from models.appointment import Appointment, is_cancelled


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open overlap test; touching boundaries do not overlap."""
    return start_a < end_b and start_b < end_a


def find_conflicts(
    start: datetime,
    end: datetime,
    booked: Iterable[Appointment],
    employee_id: str,
    exclude_appointment: Optional[str] = None,
) -> List[Appointment]:
    """
    Appointments of ``employee_id`` that overlap [start, end).

    Args:
        start: candidate start
        end: candidate end
        booked: snapshot of existing appointments
        employee_id: employee being booked
        exclude_appointment: id to ignore (the appointment being edited)

    Returns:
        list of overlapping, non-cancelled appointments in snapshot order
    """
    conflicts = []
    for appt in booked:
        if appt.employee_id != employee_id:
            continue
        if is_cancelled(appt.status):
            continue
        if exclude_appointment and appt.id == exclude_appointment:
            continue
        if intervals_overlap(start, end, appt.start_date, appt.end_date):
            conflicts.append(appt)
    return conflicts
