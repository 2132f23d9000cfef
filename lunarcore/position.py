"""Approximate geocentric lunar position, combined with provider horizontal coordinates.

The geocentric part uses the mean longitude, mean anomaly and argument of
latitude with a single periodic term each. Right ascension and declination
are taken directly from the ecliptic longitude and latitude without the
ecliptic-to-equatorial rotation, so they can differ from true equatorial
coordinates by up to the obliquity (~23.4 degrees). Libration is not modelled
and is reported as zero.
"""

from __future__ import annotations

import math
from typing import List, Optional, Tuple

from .batch import evaluate_many
from .errors import InvalidArgumentError
from .provider import EphemerisProvider, default_provider
from .types import (
    ARCSEC_PER_DEGREE,
    DAYS_PER_CENTURY,
    EARTH_RADIUS_KM,
    J2000_JD,
    GeographicLocation,
    Instant,
    LunarPosition,
    RiseSet,
    require_finite,
)

__all__ = [
    "geocentric_position",
    "position_at",
    "compass_direction",
    "visibility",
    "distance_history",
]

COMPASS_POINTS = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)


def _ecliptic(jd: Instant) -> Tuple[float, float, float]:
    t = (jd - J2000_JD) / DAYS_PER_CENTURY
    mean_lon = 218.3164477 + 481267.88123421 * t
    mean_anomaly = math.radians(134.9633964 + 477198.8675055 * t)
    lon = mean_lon + 6.288774 * math.sin(mean_anomaly)
    lat = 5.128122 * math.sin(math.radians(93.2720950 + 483202.0175233 * t))
    distance = 385000.0 - 20905.0 * math.cos(mean_anomaly)
    return lon, lat, distance


def geocentric_position(jd: Instant) -> LunarPosition:
    """Geocentric lunar position at *jd*; azimuth and altitude are left at zero."""

    jd = require_finite("julian day", jd)
    lon, lat, distance = _ecliptic(jd)
    parallax_deg = math.degrees(math.asin(EARTH_RADIUS_KM / distance))
    return LunarPosition(
        ra_deg=lon % 360.0,
        dec_deg=lat,
        azimuth_deg=0.0,
        altitude_deg=0.0,
        distance_km=float(round(distance)),
        parallax_arcsec=parallax_deg * ARCSEC_PER_DEGREE,
        ecliptic_lon_deg=lon % 360.0,
        ecliptic_lat_deg=lat,
    )


def position_at(
    jd: Instant,
    location: GeographicLocation,
    provider: Optional[EphemerisProvider] = None,
) -> LunarPosition:
    """Geocentric position at *jd* with topocentric azimuth/altitude for *location*.

    Parameters
    ----------
    jd:
        Julian Day (UT).
    location:
        Observer location.
    provider:
        Source of horizontal coordinates; the analytical model by default.

    Returns
    -------
    LunarPosition
        Azimuth in ``[0, 360)`` measured from north through east, altitude in
        ``[-90, 90]``, both in degrees.
    """

    geocentric = geocentric_position(jd)
    horizontal = (provider or default_provider()).position_at(jd, location)
    azimuth = math.degrees(horizontal.azimuth_rad) % 360.0
    if azimuth >= 360.0:
        azimuth = 0.0
    altitude = max(-90.0, min(90.0, math.degrees(horizontal.altitude_rad)))
    return LunarPosition(
        ra_deg=geocentric.ra_deg,
        dec_deg=geocentric.dec_deg,
        azimuth_deg=azimuth,
        altitude_deg=altitude,
        distance_km=geocentric.distance_km,
        parallax_arcsec=geocentric.parallax_arcsec,
        ecliptic_lon_deg=geocentric.ecliptic_lon_deg,
        ecliptic_lat_deg=geocentric.ecliptic_lat_deg,
    )


def compass_direction(azimuth_deg: float) -> str:
    """16-point compass label for an azimuth in degrees."""

    index = int(math.floor((azimuth_deg % 360.0) / 22.5 + 0.5)) % 16
    return COMPASS_POINTS[index]


def visibility(altitude_deg: float, rise_set: RiseSet) -> str:
    if rise_set.always_up:
        return "always_up"
    if rise_set.always_down:
        return "always_down"
    if altitude_deg > 0:
        return "visible"
    return "below_horizon"


def distance_history(
    jd: Instant,
    days: int = 30,
    provider: Optional[EphemerisProvider] = None,
    n_jobs: int = 1,
) -> List[Tuple[Instant, float, float]]:
    """Daily (jd, distance_km, altitude_deg) samples seen from (0, 0), oldest first.

    Covers the *days* days before *jd* plus *jd* itself.
    """

    jd = require_finite("julian day", jd)
    if days < 0:
        raise InvalidArgumentError(f"days must be non-negative, got {days}")
    provider = provider or default_provider()
    origin = GeographicLocation(lat=0.0, lon=0.0)

    def sample(t: Instant) -> Tuple[Instant, float, float]:
        horizontal = provider.position_at(t, origin)
        return t, horizontal.distance_km, math.degrees(horizontal.altitude_rad)

    instants = [jd - offset for offset in range(days, -1, -1)]
    return evaluate_many(sample, instants, n_jobs=n_jobs)
