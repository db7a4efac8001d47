"""
Appointment aggregation for dashboards.

Groups appointments into day, week (Monday start) or month buckets by their
local start date and sums income and count per bucket. Cancelled appointments
are left out; only periods with at least one appointment produce a bucket.
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, List

from models.appointment import Appointment
from models.report import AppointmentBucket, Granularity
from utils.datetime_utils import start_of_day


def bucket_start(value: datetime, granularity: Granularity) -> datetime:
    """First local instant of the period containing ``value``."""
    day = start_of_day(value)
    granularity = Granularity(granularity)
    if granularity == Granularity.WEEK:
        return day - timedelta(days=day.weekday())
    if granularity == Granularity.MONTH:
        return day.replace(day=1)
    return day


def bucket_key(start: datetime, granularity: Granularity) -> str:
    if Granularity(granularity) == Granularity.MONTH:
        return start.strftime("%Y-%m")
    return start.strftime("%Y-%m-%d")


def aggregate(
    appointments: Iterable[Appointment], granularity: Granularity = Granularity.DAY
) -> List[AppointmentBucket]:
    """
    Sum income (total_price) and count per period.

    Returns:
        Buckets in ascending period order
    """
    buckets: Dict[datetime, AppointmentBucket] = {}
    for appt in appointments:
        if appt.cancelled:
            continue
        start = bucket_start(appt.start_date, granularity)
        bucket = buckets.get(start)
        if bucket is None:
            bucket = AppointmentBucket(key=bucket_key(start, granularity), bucket_start=start)
            buckets[start] = bucket
        bucket.income += appt.total_price
        bucket.appointments += 1

    return [buckets[start] for start in sorted(buckets)]
