"""
Unit tests for recurrence expansion.
"""

from datetime import date, datetime, timedelta

import pytest

from models.recurrence import RecurrencePattern
from scheduling.recurrence import TimeRange, expand, validate_pattern
from utils.exceptions import RecurrenceOverflowError, ValidationError

MONDAY_8AM = datetime(2026, 1, 5, 8, 0)
MONDAY_9AM = datetime(2026, 1, 5, 9, 0)


def weekly(**kwargs) -> RecurrencePattern:
    data = {"type": "weekly", "interval_weeks": 1, "end_type": "count"}
    data.update(kwargs)
    return RecurrencePattern(**data)


class TestExpand:
    def test_no_pattern_yields_base_occurrence(self):
        assert expand(MONDAY_8AM, MONDAY_9AM) == [TimeRange(MONDAY_8AM, MONDAY_9AM)]

    def test_type_none_ignores_other_fields(self):
        pattern = RecurrencePattern(type="none", weekdays=[2, 4], count=10)
        assert expand(MONDAY_8AM, MONDAY_9AM, pattern) == [TimeRange(MONDAY_8AM, MONDAY_9AM)]

    def test_mon_wed_fri_count_six(self):
        """Six occurrences across two full weeks."""
        occurrences = expand(MONDAY_8AM, MONDAY_9AM, weekly(weekdays=[1, 3, 5], count=6))

        assert [o.start.date() for o in occurrences] == [
            date(2026, 1, 5),
            date(2026, 1, 7),
            date(2026, 1, 9),
            date(2026, 1, 12),
            date(2026, 1, 14),
            date(2026, 1, 16),
        ]
        assert all(o.start.time() == MONDAY_8AM.time() for o in occurrences)
        assert all(o.duration == timedelta(hours=1) for o in occurrences)

    def test_days_before_base_start_in_first_week_are_skipped(self):
        # Wednesday start with a Monday/Wednesday pattern
        start = datetime(2026, 1, 7, 10, 0)
        occurrences = expand(start, start + timedelta(minutes=30), weekly(weekdays=[1, 3], count=3))

        assert [o.start.date() for o in occurrences] == [
            date(2026, 1, 7),
            date(2026, 1, 12),
            date(2026, 1, 14),
        ]

    def test_interval_two_weeks(self):
        occurrences = expand(MONDAY_8AM, MONDAY_9AM, weekly(interval_weeks=2, weekdays=[1], count=3))

        assert [o.start.date() for o in occurrences] == [
            date(2026, 1, 5),
            date(2026, 1, 19),
            date(2026, 2, 2),
        ]

    def test_duplicate_weekdays_collapse(self):
        occurrences = expand(MONDAY_8AM, MONDAY_9AM, weekly(weekdays=[5, 1, 1], count=4))

        assert [o.start.date() for o in occurrences] == [
            date(2026, 1, 5),
            date(2026, 1, 9),
            date(2026, 1, 12),
            date(2026, 1, 16),
        ]

    def test_end_date_is_inclusive(self):
        pattern = weekly(weekdays=[1], end_type="date", end_date=date(2026, 1, 19), count=None)
        occurrences = expand(MONDAY_8AM, MONDAY_9AM, pattern)

        assert [o.start.date() for o in occurrences] == [
            date(2026, 1, 5),
            date(2026, 1, 12),
            date(2026, 1, 19),
        ]

    def test_expansion_is_deterministic(self):
        pattern = weekly(weekdays=[0, 6], count=10)
        assert expand(MONDAY_8AM, MONDAY_9AM, pattern) == expand(MONDAY_8AM, MONDAY_9AM, pattern)

    def test_count_above_cap_overflows(self):
        with pytest.raises(RecurrenceOverflowError):
            expand(MONDAY_8AM, MONDAY_9AM, weekly(weekdays=[1], count=367))

    def test_date_bound_above_cap_overflows(self):
        pattern = weekly(
            weekdays=[0, 1, 2, 3, 4, 5, 6],
            end_type="date",
            end_date=date(2028, 1, 5),
            count=None,
        )
        with pytest.raises(RecurrenceOverflowError):
            expand(MONDAY_8AM, MONDAY_9AM, pattern)

    def test_custom_cap(self):
        with pytest.raises(RecurrenceOverflowError):
            expand(MONDAY_8AM, MONDAY_9AM, weekly(weekdays=[1], count=5), max_occurrences=4)

    def test_non_positive_duration_rejected(self):
        with pytest.raises(ValidationError):
            expand(MONDAY_9AM, MONDAY_8AM, weekly(weekdays=[1], count=1))


class TestValidatePattern:
    def test_empty_weekdays_rejected(self):
        with pytest.raises(ValidationError):
            validate_pattern(weekly(weekdays=[], count=3), MONDAY_8AM)

    def test_weekday_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            validate_pattern(weekly(weekdays=[7], count=3), MONDAY_8AM)

    def test_zero_interval_rejected(self):
        with pytest.raises(ValidationError):
            validate_pattern(weekly(interval_weeks=0, weekdays=[1], count=3), MONDAY_8AM)

    def test_count_end_requires_count(self):
        with pytest.raises(ValidationError):
            validate_pattern(weekly(weekdays=[1], count=None), MONDAY_8AM)

    def test_date_end_requires_end_date(self):
        with pytest.raises(ValidationError):
            validate_pattern(weekly(weekdays=[1], end_type="date", count=None), MONDAY_8AM)

    def test_end_date_before_start_rejected(self):
        pattern = weekly(weekdays=[1], end_type="date", end_date=date(2026, 1, 1), count=None)
        with pytest.raises(ValidationError):
            validate_pattern(pattern, MONDAY_8AM)

    def test_returns_normalized_weekdays(self):
        assert validate_pattern(weekly(weekdays=[5, 1, 3, 1], count=2), MONDAY_8AM) == [1, 3, 5]
