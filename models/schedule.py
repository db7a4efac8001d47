"""Operating hours and employee working schedule models."""

from typing import List, Optional

from pydantic import Field

from models.base import CamelModel
from utils.constants import DEFAULT_STEP_MINUTES


class BreakWindow(CamelModel):
    """A recurring break; ``day`` is None for breaks inside a DaySchedule."""

    day: Optional[int] = None
    start: str
    end: str
    note: Optional[str] = None


class OpeningHours(CamelModel):
    """Organization-wide opening hours."""

    start: Optional[str] = None
    end: Optional[str] = None
    business_days: Optional[List[int]] = None
    breaks: List[BreakWindow] = Field(default_factory=list)
    step_minutes: int = DEFAULT_STEP_MINUTES


class DaySchedule(CamelModel):
    """One weekday of an employee schedule (0=Sunday .. 6=Saturday)."""

    day: int
    is_open: Optional[bool] = None
    is_available: Optional[bool] = None
    start: str
    end: str
    breaks: List[BreakWindow] = Field(default_factory=list)

    @property
    def works(self) -> bool:
        # Either flag set to False means the day is off
        return self.is_open is not False and self.is_available is not False


class WeeklySchedule(CamelModel):
    """Employee-specific weekly schedule."""

    enabled: bool = False
    schedule: List[DaySchedule] = Field(default_factory=list)
    step_minutes: Optional[int] = None

    def for_day(self, day: int) -> Optional[DaySchedule]:
        for entry in self.schedule:
            if entry.day == day:
                return entry
        return None


class WorkingHours(CamelModel):
    """Hours configuration consulted when classifying an occurrence."""

    opening_hours: Optional[OpeningHours] = None
    employee_schedule: Optional[WeeklySchedule] = None
    timezone: Optional[str] = None
