from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta, timezone

import pytest
from astropy.time import Time

from lunarcore.errors import InvalidArgumentError
from lunarcore.timeconv import (
    datetime_to_julian_day,
    from_julian_day,
    now_julian_day,
    to_julian_day,
    unix_to_julian_day,
)

ROUND_TRIP_DATES = [
    datetime(1582, 10, 15, 0, 0, 0, tzinfo=UTC),
    datetime(1858, 11, 17, 0, 0, 0, tzinfo=UTC),
    datetime(1970, 1, 1, 0, 0, 0, tzinfo=UTC),
    datetime(1999, 12, 31, 23, 59, 59, 999000, tzinfo=UTC),
    datetime(2000, 1, 6, 18, 14, 0, tzinfo=UTC),
    datetime(2024, 2, 29, 6, 30, 15, 250000, tzinfo=UTC),
    datetime(2100, 3, 1, 12, 0, 0, tzinfo=UTC),
    datetime(2400, 12, 31, 23, 0, 1, tzinfo=UTC),
]


def test_j2000_epoch():
    assert to_julian_day(2000, 1, 1, 12) == 2451545.0


def test_reference_new_moon_is_midnight():
    assert to_julian_day(2000, 1, 6) == 2451549.5


@pytest.mark.parametrize("dt", ROUND_TRIP_DATES)
def test_matches_astropy(dt: datetime):
    expected = Time(dt.replace(tzinfo=None), scale="utc").jd
    assert datetime_to_julian_day(dt) == pytest.approx(expected, abs=1e-8)


@pytest.mark.parametrize("dt", ROUND_TRIP_DATES)
def test_round_trip_within_one_second(dt: datetime):
    recovered = from_julian_day(datetime_to_julian_day(dt))
    assert recovered.tzinfo is not None
    assert abs((recovered - dt).total_seconds()) <= 1.0


def test_fraction_of_day_components():
    base = to_julian_day(2024, 6, 1)
    assert to_julian_day(2024, 6, 1, 6) - base == pytest.approx(0.25, abs=1e-9)
    assert to_julian_day(2024, 6, 1, 0, 30) - base == pytest.approx(30 / 1440, abs=1e-9)
    assert to_julian_day(2024, 6, 1, 0, 0, 45) - base == pytest.approx(45 / 86400, abs=1e-9)
    assert to_julian_day(2024, 6, 1, 0, 0, 0, 500) - base == pytest.approx(0.5 / 86400, abs=1e-9)


def test_monotonic_across_year_boundary():
    assert to_julian_day(2023, 12, 31, 23, 59, 59) < to_julian_day(2024, 1, 1)
    assert to_julian_day(2024, 1, 1) - to_julian_day(2023, 12, 31) == 1.0


def test_aware_datetimes_are_converted_to_utc():
    tokyo = timezone(timedelta(hours=9))
    local = datetime(2024, 1, 1, 9, 0, tzinfo=tokyo)
    assert datetime_to_julian_day(local) == to_julian_day(2024, 1, 1, 0)


def test_naive_datetimes_are_utc():
    assert datetime_to_julian_day(datetime(2024, 1, 1, 6)) == to_julian_day(2024, 1, 1, 6)


def test_unix_epoch():
    assert unix_to_julian_day(0) == 2440587.5
    assert unix_to_julian_day(86400 * 10957.5) == pytest.approx(2451545.0)


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_non_finite_inputs_rejected(value: float):
    with pytest.raises(InvalidArgumentError):
        to_julian_day(2024, 1, 1, hour=value)
    with pytest.raises(InvalidArgumentError):
        from_julian_day(value)


def test_invalid_month_rejected():
    with pytest.raises(InvalidArgumentError):
        to_julian_day(2024, 13, 1)


def test_now_matches_wall_clock():
    before = datetime_to_julian_day(datetime.now(UTC))
    now = now_julian_day()
    after = datetime_to_julian_day(datetime.now(UTC))
    one_second = 1.0 / 86400.0
    assert before - one_second <= now <= after + one_second
