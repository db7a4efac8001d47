"""
Notification message rendering.

Every message kind is rendered through one dispatch table keyed by
NotificationKind.
"""

from enum import Enum
from typing import Callable, Dict, Sequence

from models.appointment import Appointment

DATE_FORMAT = "%d/%m/%Y %H:%M"


class NotificationKind(str, Enum):
    """Kinds of client-facing messages."""

    SCHEDULE_APPOINTMENT = "schedule_appointment"
    SCHEDULE_APPOINTMENT_BATCH = "schedule_appointment_batch"
    RECURRING_APPOINTMENT_SERIES = "recurring_appointment_series"
    CLIENT_CONFIRMATION_ACK = "client_confirmation_ack"
    CLIENT_CANCELLATION_ACK = "client_cancellation_ack"
    REMINDER = "reminder"


def _when(appointment: Appointment) -> str:
    return appointment.start_date.strftime(DATE_FORMAT)


def _lines(appointments: Sequence[Appointment]) -> str:
    return "\n".join(f"• {_when(appt)}" for appt in appointments)


def _schedule_appointment(appointments: Sequence[Appointment]) -> str:
    return f"✅ Your appointment is booked for {_when(appointments[0])}."


def _schedule_batch(appointments: Sequence[Appointment]) -> str:
    return f"✅ Your appointments are booked:\n{_lines(appointments)}"


def _recurring_series(appointments: Sequence[Appointment]) -> str:
    return (
        f"🔁 Your recurring appointments are booked "
        f"({len(appointments)} sessions):\n{_lines(appointments)}"
    )


def _confirmation_ack(appointments: Sequence[Appointment]) -> str:
    return f"👍 Thanks! Your appointment on {_when(appointments[0])} is confirmed."


def _cancellation_ack(appointments: Sequence[Appointment]) -> str:
    return f"❌ Your appointment on {_when(appointments[0])} has been cancelled."


def _reminder(appointments: Sequence[Appointment]) -> str:
    return (
        f"🔔 Reminder: you have an appointment on {_when(appointments[0])}.\n\n"
        f"See you soon!"
    )


_RENDERERS: Dict[NotificationKind, Callable[[Sequence[Appointment]], str]] = {
    NotificationKind.SCHEDULE_APPOINTMENT: _schedule_appointment,
    NotificationKind.SCHEDULE_APPOINTMENT_BATCH: _schedule_batch,
    NotificationKind.RECURRING_APPOINTMENT_SERIES: _recurring_series,
    NotificationKind.CLIENT_CONFIRMATION_ACK: _confirmation_ack,
    NotificationKind.CLIENT_CANCELLATION_ACK: _cancellation_ack,
    NotificationKind.REMINDER: _reminder,
}


def render_message(kind: NotificationKind, appointments: Sequence[Appointment]) -> str:
    """
    Render the text for a notification.

    Raises:
        ValueError: if no appointments are given
    """
    if not appointments:
        raise ValueError("Cannot render a notification without appointments")
    return _RENDERERS[NotificationKind(kind)](appointments)
