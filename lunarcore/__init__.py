"""Lunar phase, position, tide and eclipse computations."""

from .eclipses import eclipses_for_years, find_eclipses, predict_eclipses
from .errors import EphemerisError, InvalidArgumentError, LunarError
from .monthly import month_calendar
from .phase import next_phase, phase_at
from .position import position_at
from .provider import AnalyticalEphemeris, EphemerisProvider
from .tides import tides_for
from .timeconv import datetime_to_julian_day, from_julian_day, to_julian_day
from .types import GeographicLocation

__all__ = [
    "AnalyticalEphemeris",
    "EphemerisError",
    "EphemerisProvider",
    "GeographicLocation",
    "InvalidArgumentError",
    "LunarError",
    "datetime_to_julian_day",
    "eclipses_for_years",
    "find_eclipses",
    "from_julian_day",
    "month_calendar",
    "next_phase",
    "phase_at",
    "position_at",
    "predict_eclipses",
    "tides_for",
    "to_julian_day",
]
