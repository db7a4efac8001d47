"""Recurrence pattern models for appointment series."""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import Field

from models.base import CamelModel


class RecurrenceType(str, Enum):
    """How a series repeats."""

    WEEKLY = "weekly"
    NONE = "none"


class EndType(str, Enum):
    """How a series ends."""

    DATE = "date"
    COUNT = "count"


class RecurrencePattern(CamelModel):
    """
    Recurrence pattern.

    Weekday indices are 0=Sunday .. 6=Saturday. Semantic rules (interval,
    non-empty weekdays, end consistency) are enforced by
    scheduling.recurrence.validate_pattern so that they surface as
    ValidationError rather than a model parsing error.
    """

    type: RecurrenceType = RecurrenceType.NONE
    interval_weeks: int = 1
    weekdays: List[int] = Field(default_factory=list)
    end_type: EndType = EndType.COUNT
    end_date: Optional[date] = None
    count: Optional[int] = None

    @classmethod
    def single(cls) -> "RecurrencePattern":
        """Pattern producing exactly the base occurrence."""
        return cls(type=RecurrenceType.NONE, count=1)
