"""
Unit tests for tenant-local datetime handling.
"""

from datetime import date, datetime, timezone

import pytest

from utils.datetime_utils import (
    coerce_local,
    from_wire,
    start_of_day,
    sunday_weekday,
    tenant_now,
    to_wire,
)
from utils.exceptions import FormatError


class TestWireFormat:
    """Offset-free wire strings."""

    def test_to_wire_keeps_wall_clock(self):
        assert to_wire(datetime(2026, 1, 5, 8, 30, 15, 999)) == "2026-01-05T08:30:15"

    def test_to_wire_drops_tzinfo_without_converting(self):
        aware = datetime(2026, 1, 5, 8, 0, tzinfo=timezone.utc)
        assert to_wire(aware) == "2026-01-05T08:00:00"

    def test_from_wire_parses_civil_time(self):
        assert from_wire("2026-01-05T08:30:00") == datetime(2026, 1, 5, 8, 30)

    def test_wire_round_trip_preserves_fields(self):
        local = datetime(2026, 3, 8, 2, 30)
        assert from_wire(to_wire(local)) == local

    @pytest.mark.parametrize(
        "value",
        ["2026-01-05T08:00:00Z", "2026-01-05T08:00:00+02:00", "not a date", "", None],
    )
    def test_from_wire_rejects_invalid(self, value):
        with pytest.raises(FormatError):
            from_wire(value)

    def test_to_wire_rejects_non_datetime(self):
        with pytest.raises(FormatError):
            to_wire("2026-01-05")

    def test_coerce_local(self):
        assert coerce_local(None) is None
        assert coerce_local("2026-01-05T08:00:00") == datetime(2026, 1, 5, 8)
        aware = datetime(2026, 1, 5, 8, tzinfo=timezone.utc)
        assert coerce_local(aware).tzinfo is None


class TestCalendarHelpers:
    def test_sunday_weekday(self):
        assert sunday_weekday(date(2026, 1, 4)) == 0  # Sunday
        assert sunday_weekday(date(2026, 1, 5)) == 1  # Monday
        assert sunday_weekday(date(2026, 1, 10)) == 6  # Saturday

    def test_start_of_day(self):
        value = datetime(2026, 1, 5, 13, 45)
        assert start_of_day(value) == datetime(2026, 1, 5)

    def test_tenant_now_is_naive(self):
        assert tenant_now("America/Bogota").tzinfo is None

    def test_tenant_now_unknown_zone_falls_back(self):
        assert tenant_now("Not/AZone").tzinfo is None
