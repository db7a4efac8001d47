"""
Custom exception classes for scheduling and booking.
Provides specific error types instead of generic exceptions.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base exception for scheduling operations."""

    pass


class ValidationError(SchedulingError):
    """Raised when a request or recurrence pattern is malformed."""

    pass


class FormatError(ValidationError):
    """Raised when a wire datetime string cannot be parsed."""

    pass


class RecurrenceOverflowError(SchedulingError, OverflowError):
    """Raised when a pattern would generate more occurrences than allowed."""

    def __init__(self, limit: int):
        super().__init__(
            f"Recurrence pattern generates more than {limit} occurrences"
        )
        self.limit = limit


class ClassificationError(SchedulingError):
    """Raised when a single occurrence cannot be classified."""

    pass


class InvalidTransitionError(SchedulingError):
    """Raised when an appointment status change is not allowed."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot change status from '{current}' to '{target}'")
        self.current = current
        self.target = target


class PermissionDeniedError(SchedulingError):
    """Raised when the caller lacks a required permission."""

    pass


class BookingRejectedError(SchedulingError):
    """Raised when a single-slot booking could not be created."""

    def __init__(self, status: str, reason: Optional[str] = None):
        super().__init__(reason or status)
        self.status = status
        self.reason = reason


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class StorageError(DatabaseError):
    """Raised when the appointment store fails to read or write."""

    pass


class NotFoundError(DatabaseError):
    """Raised when a record is not found."""

    pass


class AppointmentNotFoundError(NotFoundError):
    """Raised when an appointment is not found."""

    def __init__(self, appointment_id: str):
        super().__init__(f"Appointment {appointment_id} not found")
        self.appointment_id = appointment_id
