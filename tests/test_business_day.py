"""Tests for the business-day clock."""

from datetime import datetime, timedelta, timezone

import pytest

from pos_backfill_recon.utils.business_day import BusinessDayClock, parse_day
from pos_backfill_recon.utils.exceptions import ConfigurationError, InvalidTimestamp

UTC = timezone.utc


def hours(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


class TestDayRange:
    def test_spring_forward_day_is_23_hours(self, clock):
        start, end = clock.business_day_to_utc_range("2025-03-09")
        assert start == datetime(2025, 3, 9, 5, 0, tzinfo=UTC)
        assert end == datetime(2025, 3, 10, 4, 0, tzinfo=UTC)
        assert hours(start, end) == 23

    def test_fall_back_day_is_25_hours(self, clock):
        start, end = clock.business_day_to_utc_range("2025-11-02")
        assert start == datetime(2025, 11, 2, 4, 0, tzinfo=UTC)
        assert end == datetime(2025, 11, 3, 5, 0, tzinfo=UTC)
        assert hours(start, end) == 25

    @pytest.mark.parametrize("day", ["2025-01-15", "2025-07-04", "2025-12-12", "2024-02-29"])
    def test_ordinary_days_are_24_hours(self, clock, day):
        start, end = clock.business_day_to_utc_range(day)
        assert hours(start, end) == 24

    def test_consecutive_days_tile(self, clock):
        _, end = clock.business_day_to_utc_range("2025-11-01")
        start, _ = clock.business_day_to_utc_range("2025-11-02")
        assert end == start

    def test_east_of_utc_zone(self):
        tokyo = BusinessDayClock("Asia/Tokyo")
        start, end = tokyo.business_day_to_utc_range("2025-12-12")
        assert start == datetime(2025, 12, 11, 15, 0, tzinfo=UTC)
        assert hours(start, end) == 24

    def test_business_day_start(self, clock):
        assert clock.business_day_start("2025-12-12") == datetime(2025, 12, 12, 5, tzinfo=UTC)

    @pytest.mark.parametrize("day", ["2025-13-01", "12/12/2025", "", "yesterday"])
    def test_malformed_day_raises(self, clock, day):
        with pytest.raises(InvalidTimestamp):
            clock.business_day_to_utc_range(day)


class TestInstantMapping:
    def test_day_and_minute(self, clock):
        instant = datetime(2025, 12, 12, 19, 5, tzinfo=UTC)
        assert clock.to_business_day(instant) == "2025-12-12"
        assert clock.to_business_minute(instant) == "14:05"

    def test_late_evening_utc_is_previous_local_day(self, clock):
        instant = datetime(2025, 12, 13, 2, 30, tzinfo=UTC)
        assert clock.to_business_day(instant) == "2025-12-12"
        assert clock.to_business_minute(instant) == "21:30"

    def test_minute_round_trip(self, clock):
        local = clock.localize(datetime(2025, 7, 4, 9, 41))
        instant = local.astimezone(UTC)
        assert clock.to_business_day(instant) == "2025-07-04"
        assert clock.to_business_minute(instant) == "09:41"

    @pytest.mark.parametrize(
        "day, next_day",
        [
            ("2025-12-12", "2025-12-13"),
            ("2025-03-09", "2025-03-10"),
            ("2025-11-02", "2025-11-03"),
        ],
    )
    def test_range_is_half_open(self, clock, day, next_day):
        start, end = clock.business_day_to_utc_range(day)
        assert clock.to_business_day(start) == day
        assert clock.to_business_minute(start) == "00:00"
        assert clock.to_business_day(end - timedelta(microseconds=1)) == day
        assert clock.to_business_day(end) == next_day
        assert clock.to_business_minute(end) == "00:00"

    @pytest.mark.parametrize("day", ["2025-03-09", "2025-11-02"])
    def test_every_minute_in_dst_day_maps_back(self, clock, day):
        start, end = clock.business_day_to_utc_range(day)
        instant = start
        minutes = 0
        while instant < end:
            assert clock.to_business_day(instant) == day
            local = instant.astimezone(clock.zone)
            assert clock.to_business_minute(instant) == local.strftime("%H:%M")
            instant += timedelta(minutes=1)
            minutes += 1
        assert minutes == hours(start, end) * 60

    def test_naive_instant_raises(self, clock):
        with pytest.raises(InvalidTimestamp):
            clock.to_business_day(datetime(2025, 12, 12, 14, 5))

    def test_non_datetime_raises(self, clock):
        with pytest.raises(InvalidTimestamp):
            clock.to_business_minute("2025-12-12T14:05:00Z")


class TestClockConfiguration:
    def test_unknown_zone_raises(self):
        with pytest.raises(ConfigurationError):
            BusinessDayClock("Not/A_Zone")

    def test_parse_day(self):
        assert parse_day(" 2025-12-12 ").isoformat() == "2025-12-12"
