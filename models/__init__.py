"""Pydantic models for data validation and serialization."""

from .appointment import (
    CANCELLED_STATUSES,
    AdditionalItem,
    Appointment,
    AppointmentStatus,
    AppointmentUpdate,
    is_cancelled,
)
from .client import Client
from .confirmation import BatchConfirmResult, ConfirmedItem, FailedItem
from .context import AppointmentScope, RequestContext
from .recurrence import EndType, RecurrencePattern, RecurrenceType
from .report import AppointmentBucket, Granularity
from .schedule import (
    BreakWindow,
    DaySchedule,
    OpeningHours,
    WeeklySchedule,
    WorkingHours,
)
from .series import (
    AppointmentOccurrence,
    CreatedOccurrence,
    CreateSeriesOptions,
    CreateSeriesResponse,
    OccurrenceStatus,
    SeriesPreview,
    SeriesRequest,
    SeriesSummary,
    SkippedOccurrence,
)
from .service import Service

__all__ = [
    "AdditionalItem",
    "Appointment",
    "AppointmentBucket",
    "AppointmentOccurrence",
    "AppointmentScope",
    "AppointmentStatus",
    "AppointmentUpdate",
    "BatchConfirmResult",
    "BreakWindow",
    "CANCELLED_STATUSES",
    "Client",
    "ConfirmedItem",
    "CreatedOccurrence",
    "CreateSeriesOptions",
    "CreateSeriesResponse",
    "DaySchedule",
    "EndType",
    "FailedItem",
    "Granularity",
    "OccurrenceStatus",
    "OpeningHours",
    "RecurrencePattern",
    "RecurrenceType",
    "RequestContext",
    "SeriesPreview",
    "SeriesRequest",
    "SeriesSummary",
    "Service",
    "SkippedOccurrence",
    "WeeklySchedule",
    "WorkingHours",
    "is_cancelled",
]
