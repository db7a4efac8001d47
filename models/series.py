"""Series request, preview and result models."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from config import settings
from models.appointment import AdditionalItem, _resolve_references
from models.base import CamelModel
from utils.datetime_utils import coerce_local
from utils.validation import as_id


class OccurrenceStatus(str, Enum):
    """Availability classification of a candidate occurrence."""

    AVAILABLE = "available"
    NO_WORK = "no_work"
    CONFLICT = "conflict"
    ERROR = "error"


class AppointmentOccurrence(CamelModel):
    """Projected (not persisted) occurrence."""

    start_date: datetime
    end_date: datetime
    status: OccurrenceStatus = OccurrenceStatus.AVAILABLE
    reason: Optional[str] = None


class SeriesPreview(CamelModel):
    """Dry-run result of a series request."""

    total_occurrences: int
    available_count: int
    occurrences: List[AppointmentOccurrence] = Field(default_factory=list)


class CreateSeriesOptions(CamelModel):
    """Policy switches for series creation."""

    preview_only: bool = False
    allow_overbooking: bool = False
    omit_if_no_work: bool = False
    omit_if_conflict: bool = False
    skip_notification: bool = False
    notify_all_appointments: bool = Field(
        default_factory=lambda: settings.notify_all_appointments_default
    )


class SeriesRequest(CamelModel):
    """Base appointment draft shared by every occurrence of a series."""

    organization_id: str
    services: List[str] = Field(default_factory=list)
    employee_id: str
    client_id: str
    start_date: datetime
    end_date: Optional[datetime] = None
    advance_payment: float = Field(default=0, ge=0)
    custom_prices: Dict[str, float] = Field(default_factory=dict)
    additional_items_by_service: Dict[str, List[AdditionalItem]] = Field(
        default_factory=dict
    )
    employee_requested_by_client: bool = False

    @model_validator(mode="before")
    @classmethod
    def resolve_references(cls, data: Any) -> Any:
        data = _resolve_references(data)
        if isinstance(data, dict):
            data.pop("client", None)
            data.pop("employee", None)
            if isinstance(data.get("services"), list):
                data["services"] = [as_id(item) for item in data["services"]]
        return data

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def normalize_local_instant(cls, value: Any) -> Any:
        return coerce_local(value)


class CreatedOccurrence(CamelModel):
    """An occurrence that was persisted."""

    id: str
    start_date: datetime
    end_date: datetime
    occurrence_number: int
    appointment_ids: List[str] = Field(default_factory=list)


class SkippedOccurrence(CamelModel):
    """An occurrence that was not persisted, with the reason why."""

    date: datetime
    reason: str
    status: OccurrenceStatus
    detail: Optional[str] = None


class SeriesSummary(CamelModel):
    total: int
    created: int
    skipped: int


class CreateSeriesResponse(CamelModel):
    """Outcome of a committed series creation."""

    series_id: str
    total_occurrences: int
    created_count: int
    created: List[CreatedOccurrence] = Field(default_factory=list)
    skipped: List[SkippedOccurrence] = Field(default_factory=list)
    summary: SeriesSummary
