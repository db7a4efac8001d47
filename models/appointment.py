"""Appointment models."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, computed_field, field_validator, model_validator

from models.base import CamelModel
from models.recurrence import RecurrencePattern
from utils.datetime_utils import coerce_local
from utils.validation import as_id

_REFERENCE_FIELDS = ("client", "employee", "service")


class AppointmentStatus(str, Enum):
    """Administrative status of an appointment."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    CANCELLED_BY_CUSTOMER = "cancelled_by_customer"
    CANCELLED_BY_ADMIN = "cancelled_by_admin"


CANCELLED_STATUSES = frozenset(
    {
        AppointmentStatus.CANCELLED.value,
        AppointmentStatus.CANCELLED_BY_CUSTOMER.value,
        AppointmentStatus.CANCELLED_BY_ADMIN.value,
    }
)


def is_cancelled(status: Any) -> bool:
    value = status.value if isinstance(status, AppointmentStatus) else status
    return value in CANCELLED_STATUSES


class AdditionalItem(CamelModel):
    """Extra item purchased with an appointment."""

    name: str
    price: float = Field(..., ge=0)


def _resolve_references(data: Any) -> Any:
    """
    Split polymorphic client/employee/service references.

    A bare id goes to ``<name>_id``; an expanded record additionally stays
    available under ``<name>`` (never persisted).
    """
    if not isinstance(data, dict):
        return data
    data = dict(data)
    for name in _REFERENCE_FIELDS:
        id_key = f"{name}_id"
        camel_key = f"{name}Id"
        raw = data.get(name)
        if raw is None:
            continue
        if not data.get(id_key) and not data.get(camel_key):
            data[id_key] = as_id(raw)
        if not isinstance(raw, dict):
            data.pop(name)
    return data


class Appointment(CamelModel):
    """Persisted appointment. All instants are tenant-local civil time."""

    id: Optional[str] = None
    organization_id: str
    client_id: str
    employee_id: str
    service_id: str
    client: Optional[Dict[str, Any]] = Field(default=None, exclude=True)
    employee: Optional[Dict[str, Any]] = Field(default=None, exclude=True)
    service: Optional[Dict[str, Any]] = Field(default=None, exclude=True)
    employee_requested_by_client: bool = False
    start_date: datetime
    end_date: datetime
    status: AppointmentStatus = AppointmentStatus.PENDING
    client_confirmed: bool = False
    client_confirmed_at: Optional[datetime] = None
    advance_payment: float = Field(default=0, ge=0)
    service_price: float = Field(default=0, ge=0)
    custom_price: Optional[float] = Field(default=None, ge=0)
    additional_items: List[AdditionalItem] = Field(default_factory=list)
    series_id: Optional[str] = None
    occurrence_number: Optional[int] = None
    recurrence_pattern: Optional[RecurrencePattern] = None
    reminder_sent: bool = False
    reminder_sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def resolve_references(cls, data: Any) -> Any:
        return _resolve_references(data)

    @field_validator("start_date", "end_date", "client_confirmed_at", mode="before")
    @classmethod
    def normalize_local_instant(cls, value: Any) -> Any:
        return coerce_local(value)

    @model_validator(mode="after")
    def check_window(self) -> "Appointment":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self

    @computed_field  # type: ignore[misc]
    @property
    def total_price(self) -> float:
        base = self.custom_price if self.custom_price is not None else self.service_price
        return base + sum(item.price for item in self.additional_items)

    @property
    def cancelled(self) -> bool:
        return is_cancelled(self.status)


class AppointmentUpdate(CamelModel):
    """Partial appointment update. Unset fields are left untouched."""

    client_id: Optional[str] = None
    employee_id: Optional[str] = None
    service_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    advance_payment: Optional[float] = Field(default=None, ge=0)
    custom_price: Optional[float] = Field(default=None, ge=0)
    additional_items: Optional[List[AdditionalItem]] = None
    employee_requested_by_client: Optional[bool] = None

    @model_validator(mode="before")
    @classmethod
    def resolve_references(cls, data: Any) -> Any:
        return _resolve_references(data)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def normalize_local_instant(cls, value: Any) -> Any:
        return coerce_local(value)
