"""Civil date/time <-> Julian Day conversion on the UT axis."""

from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta

import erfa

from .errors import InvalidArgumentError
from .types import (
    HOURS_PER_DAY,
    MINUTES_PER_DAY,
    SECONDS_PER_DAY,
    UNIX_EPOCH_JD,
    Instant,
    require_finite,
)

__all__ = [
    "to_julian_day",
    "from_julian_day",
    "datetime_to_julian_day",
    "unix_to_julian_day",
    "now_julian_day",
]


def to_julian_day(
    year: int,
    month: int,
    day: int,
    hour: float = 0,
    minute: float = 0,
    second: float = 0,
    millisecond: float = 0,
) -> Instant:
    """Convert a Gregorian civil date/time in UT to a Julian Day.

    The day number comes from the integer Gregorian algorithm; the time of
    day is added as a fraction counted from noon. Proleptic dates extend the
    same formula without special handling.
    """

    if not 1 <= month <= 12:
        raise InvalidArgumentError(f"month must be within 1-12, got {month}")
    a = (14 - month) // 12
    y = year + 4800 - a
    m = month + 12 * a - 3
    jdn = day + (153 * m + 2) // 5 + 365 * y + y // 4 - y // 100 + y // 400 - 32045
    jd = (
        jdn
        + (hour - 12) / HOURS_PER_DAY
        + minute / MINUTES_PER_DAY
        + second / SECONDS_PER_DAY
        + millisecond / (SECONDS_PER_DAY * 1000.0)
    )
    return require_finite("julian day", jd)


def datetime_to_julian_day(dt: datetime) -> Instant:
    """Convert *dt* to a Julian Day. Naive datetimes are taken as UTC."""

    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC)
    return to_julian_day(
        dt.year,
        dt.month,
        dt.day,
        dt.hour,
        dt.minute,
        dt.second,
        dt.microsecond / 1000.0,
    )


def from_julian_day(jd: Instant) -> datetime:
    """Convert a Julian Day to a timezone-aware UTC datetime (millisecond precision)."""

    jd = require_finite("julian day", jd)
    try:
        iy, im, iday, fd = erfa.jd2cal(jd, 0.0)
        midnight = datetime(int(iy), int(im), int(iday), tzinfo=UTC)
        return midnight + timedelta(milliseconds=round(float(fd) * SECONDS_PER_DAY * 1000.0))
    except (erfa.ErfaError, ValueError, OverflowError) as exc:
        raise InvalidArgumentError(f"Julian day {jd} is outside the supported calendar range") from exc


def unix_to_julian_day(seconds: float) -> Instant:
    """Convert seconds since the Unix epoch to a Julian Day."""

    return UNIX_EPOCH_JD + require_finite("unix time", seconds) / SECONDS_PER_DAY


def now_julian_day() -> Instant:
    """Return the current instant as a Julian Day."""

    return unix_to_julian_day(time.time())
