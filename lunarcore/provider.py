"""Ephemeris provider interface and a low-order analytical implementation.

The core consumes topocentric positions, illumination and rise/set times
through :class:`EphemerisProvider`. :class:`AnalyticalEphemeris` supplies
them from mean lunar and solar elements with the principal periodic terms,
which is accurate to a fraction of a degree. The SPICE-backed provider in
:mod:`lunarcore.spice_provider` implements the same interface.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Protocol, Tuple

import erfa

from .types import (
    AU_KM,
    J2000_JD,
    MINUTES_PER_DAY,
    SECONDS_PER_DAY,
    GeographicLocation,
    HorizontalPosition,
    Illumination,
    Instant,
    RiseSet,
    require_finite,
)

__all__ = [
    "EphemerisProvider",
    "AnalyticalEphemeris",
    "default_provider",
    "scan_rise_set",
    "refraction_saemundsson",
    "ut_day_start",
]

LOGGER = logging.getLogger(__name__)

# Geocentric centre altitude at upper-limb rise: mean horizontal parallax less
# semidiameter. Refraction is already included in the altitude.
MOONRISE_ALTITUDE_DEG = 0.69
RISE_SET_STEP_MINUTES = 5.0


class EphemerisProvider(Protocol):
    """Pure-function source of topocentric lunar quantities."""

    def illumination_at(self, jd: Instant) -> Illumination:
        ...

    def position_at(self, jd: Instant, location: GeographicLocation) -> HorizontalPosition:
        ...

    def rise_set_at(self, jd: Instant, location: GeographicLocation) -> RiseSet:
        ...


def refraction_saemundsson(
    alt_rad: float, pressure_hpa: float = 1010.0, temperature_c: float = 10.0
) -> float:
    """Atmospheric refraction in radians for a geometric altitude in radians."""

    # Clamp near and below the horizon to avoid blow-up.
    alt_deg = max(-2.0, min(90.0, math.degrees(alt_rad)))
    r_arcmin = (
        1.02
        / math.tan(math.radians(alt_deg + 10.3 / (alt_deg + 5.11)))
        * (pressure_hpa / 1010.0)
        * (283.0 / (273.0 + temperature_c))
    )
    return math.radians(r_arcmin / 60.0)


def ut_day_start(jd: Instant) -> Instant:
    """Julian Day of 00:00 UT on the day containing *jd*."""

    return math.floor(jd - 0.5) + 0.5


def _refine_crossing(
    altitude_fn: Callable[[Instant], float],
    start_jd: Instant,
    end_jd: Instant,
    threshold: float,
    max_iterations: int = 24,
) -> Instant:
    """Refine the crossing between *start_jd* and *end_jd* via binary search."""

    value_start = altitude_fn(start_jd) - threshold
    value_end = altitude_fn(end_jd) - threshold
    if value_start == 0:
        return start_jd
    if value_end == 0:
        return end_jd
    low_jd, low_val = start_jd, value_start
    high_jd, high_val = end_jd, value_end
    one_second = 1.0 / SECONDS_PER_DAY
    for _ in range(max_iterations):
        mid_jd = low_jd + (high_jd - low_jd) / 2
        mid_val = altitude_fn(mid_jd) - threshold
        if abs(mid_val) < 1e-4 or (high_jd - low_jd) <= one_second:
            return mid_jd
        if low_val * mid_val <= 0:
            high_jd, high_val = mid_jd, mid_val
        else:
            low_jd, low_val = mid_jd, mid_val
    return low_jd + (high_jd - low_jd) / 2


def scan_rise_set(
    altitude_fn: Callable[[Instant], float],
    start_jd: Instant,
    threshold_deg: float,
    step_minutes: float = RISE_SET_STEP_MINUTES,
) -> RiseSet:
    """Find the first rise and set within 24 hours of *start_jd*.

    Parameters
    ----------
    altitude_fn:
        Callable returning the body's altitude in degrees at a Julian Day.
    start_jd:
        Start of the 24-hour window.
    threshold_deg:
        Altitude that defines the horizon crossing.
    step_minutes:
        Sampling interval before bisection refinement.

    Returns
    -------
    RiseSet
        ``always_up``/``always_down`` are set when the altitude never crosses
        the threshold inside the window.
    """

    step = step_minutes / MINUTES_PER_DAY
    count = int(round(MINUTES_PER_DAY / step_minutes))
    times: List[Instant] = [start_jd + idx * step for idx in range(count + 1)]
    samples: List[float] = [altitude_fn(t) - threshold_deg for t in times]

    rise: Optional[Instant] = None
    set_: Optional[Instant] = None
    for idx in range(1, len(times)):
        prev_val, curr_val = samples[idx - 1], samples[idx]
        if rise is None and prev_val < 0 <= curr_val:
            rise = _refine_crossing(altitude_fn, times[idx - 1], times[idx], threshold_deg)
        if set_ is None and prev_val >= 0 > curr_val:
            set_ = _refine_crossing(altitude_fn, times[idx - 1], times[idx], threshold_deg)

    if rise is not None or set_ is not None:
        return RiseSet(rise=rise, set=set_)
    if min(samples) >= 0:
        return RiseSet(always_up=True)
    return RiseSet(always_down=True)


def _ecliptic_to_equatorial(lon: float, lat: float, obliquity: float) -> Tuple[float, float]:
    ra = math.atan2(
        math.sin(lon) * math.cos(obliquity) - math.tan(lat) * math.sin(obliquity),
        math.cos(lon),
    )
    dec = math.asin(
        math.sin(lat) * math.cos(obliquity)
        + math.cos(lat) * math.sin(obliquity) * math.sin(lon)
    )
    return ra, dec


class AnalyticalEphemeris:
    """Low-order Sun/Moon model; stateless and safe to share across threads.

    Moon: mean longitude, anomaly and argument of latitude with the
    equation-of-centre term. Sun: mean anomaly with a three-term equation of
    centre. Sidereal time comes from ``erfa.gmst82`` with UT1 taken as UTC.
    Positions are geocentric; refraction is applied to altitudes.
    """

    def __init__(self, pressure_hpa: float = 1010.0, temperature_c: float = 10.0) -> None:
        self.pressure_hpa = pressure_hpa
        self.temperature_c = temperature_c

    @staticmethod
    def _obliquity(jd: Instant) -> float:
        return float(erfa.obl06(jd, 0.0))

    def moon_equatorial(self, jd: Instant) -> Tuple[float, float, float]:
        """Geocentric (ra, dec) in radians and distance in km."""

        d = jd - J2000_JD
        mean_lon = math.radians(218.316 + 13.176396 * d)
        anomaly = math.radians(134.963 + 13.064993 * d)
        arg_lat = math.radians(93.272 + 13.229350 * d)
        lon = mean_lon + math.radians(6.289) * math.sin(anomaly)
        lat = math.radians(5.128) * math.sin(arg_lat)
        distance = 385001.0 - 20905.0 * math.cos(anomaly)
        ra, dec = _ecliptic_to_equatorial(lon, lat, self._obliquity(jd))
        return ra, dec, distance

    def sun_equatorial(self, jd: Instant) -> Tuple[float, float, float]:
        """Geocentric (ra, dec) in radians and distance in km."""

        d = jd - J2000_JD
        anomaly = math.radians(357.5291 + 0.98560028 * d)
        centre = math.radians(
            1.9148 * math.sin(anomaly)
            + 0.02 * math.sin(2 * anomaly)
            + 0.0003 * math.sin(3 * anomaly)
        )
        perihelion = math.radians(102.9372)
        lon = anomaly + centre + perihelion + math.pi
        ra, dec = _ecliptic_to_equatorial(lon, 0.0, self._obliquity(jd))
        return ra, dec, AU_KM

    def _hour_angle(self, jd: Instant, lon_deg: float, ra: float) -> float:
        gmst = float(erfa.gmst82(jd, 0.0))
        return gmst + math.radians(lon_deg) - ra

    def illumination_at(self, jd: Instant) -> Illumination:
        jd = require_finite("julian day", jd)
        s_ra, s_dec, s_dist = self.sun_equatorial(jd)
        m_ra, m_dec, m_dist = self.moon_equatorial(jd)

        cos_elong = math.sin(s_dec) * math.sin(m_dec) + math.cos(s_dec) * math.cos(
            m_dec
        ) * math.cos(s_ra - m_ra)
        elongation = math.acos(max(-1.0, min(1.0, cos_elong)))
        incidence = math.atan2(
            s_dist * math.sin(elongation), m_dist - s_dist * math.cos(elongation)
        )
        angle = math.atan2(
            math.cos(s_dec) * math.sin(s_ra - m_ra),
            math.sin(s_dec) * math.cos(m_dec)
            - math.cos(s_dec) * math.sin(m_dec) * math.cos(s_ra - m_ra),
        )
        sign = -1.0 if angle < 0 else 1.0
        phase = (0.5 + 0.5 * incidence * sign / math.pi) % 1.0
        return Illumination(
            phase_fraction=phase,
            illuminated_fraction=(1.0 + math.cos(incidence)) / 2.0,
            phase_angle_deg=math.degrees(incidence),
        )

    def position_at(self, jd: Instant, location: GeographicLocation) -> HorizontalPosition:
        jd = require_finite("julian day", jd)
        ra, dec, distance = self.moon_equatorial(jd)
        phi = math.radians(location.lat)
        hour_angle = self._hour_angle(jd, location.lon, ra)

        altitude = math.asin(
            math.sin(phi) * math.sin(dec)
            + math.cos(phi) * math.cos(dec) * math.cos(hour_angle)
        )
        altitude += refraction_saemundsson(altitude, self.pressure_hpa, self.temperature_c)
        south_azimuth = math.atan2(
            math.sin(hour_angle),
            math.cos(hour_angle) * math.sin(phi) - math.tan(dec) * math.cos(phi),
        )
        parallactic = math.atan2(
            math.sin(hour_angle),
            math.tan(phi) * math.cos(dec) - math.sin(dec) * math.cos(hour_angle),
        )
        return HorizontalPosition(
            azimuth_rad=(south_azimuth + math.pi) % (2.0 * math.pi),
            altitude_rad=altitude,
            distance_km=distance,
            parallactic_angle_rad=parallactic,
        )

    def altitude_deg(self, jd: Instant, location: GeographicLocation) -> float:
        return math.degrees(self.position_at(jd, location).altitude_rad)

    def rise_set_at(self, jd: Instant, location: GeographicLocation) -> RiseSet:
        jd = require_finite("julian day", jd)
        result = scan_rise_set(
            lambda t: self.altitude_deg(t, location),
            ut_day_start(jd),
            MOONRISE_ALTITUDE_DEG,
        )
        LOGGER.debug(
            "rise/set lat=%.4f lon=%.4f rise=%s set=%s",
            location.lat,
            location.lon,
            result.rise,
            result.set,
        )
        return result


_DEFAULT_PROVIDER = AnalyticalEphemeris()


def default_provider() -> AnalyticalEphemeris:
    """Shared analytical provider used when callers do not supply one."""

    return _DEFAULT_PROVIDER
