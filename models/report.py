"""Aggregated appointment figures for dashboards."""

from datetime import datetime
from enum import Enum

from pydantic import Field

from models.base import CamelModel


class Granularity(str, Enum):
    """Bucket size of an aggregation."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class AppointmentBucket(CamelModel):
    """
    Income and appointment count of one period.

    ``key`` is the period label (YYYY-MM-DD for days and weeks, YYYY-MM for
    months); ``bucket_start`` is the first local instant of the period.
    """

    key: str
    bucket_start: datetime
    income: float = Field(default=0, ge=0)
    appointments: int = Field(default=0, ge=0)
