"""Ephemeris provider backed by JPL SPK kernels through :mod:`spiceypy`."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from threading import RLock
from typing import List, Optional, Set, Tuple

import erfa
import numpy as np
import spiceypy as spice
from spiceypy.utils.exceptions import SpiceyError

from .errors import EphemerisError
from .provider import refraction_saemundsson, scan_rise_set, ut_day_start
from .types import (
    MEAN_MOON_DISTANCE_KM,
    MOON_RADIUS_KM,
    GeographicLocation,
    HorizontalPosition,
    Illumination,
    Instant,
    RiseSet,
    require_finite,
)

__all__ = ["load_ephemeris", "loaded_files", "SpiceEphemeris"]

LOGGER = logging.getLogger(__name__)

EARTH_EQUATORIAL_RADIUS_KM = 6378.137  # WGS84 equatorial radius in kilometers.
EARTH_FLATTENING = 1.0 / 298.257223563  # WGS84 flattening.

# Apparent centre altitude at rise/set for a topocentric model: minus the
# mean semidiameter, refraction already applied to the altitude.
MOONRISE_ALTITUDE_DEG = -math.degrees(math.asin(MOON_RADIUS_KM / MEAN_MOON_DISTANCE_KM))

_LOADED_FILES: Optional[List[str]] = None
# CSPICE keeps global state and is not reentrant; every call goes through this lock.
_SPICE_LOCK = RLock()

# Sun, Moon and Earth NAIF ids.
REQUIRED_BODIES = frozenset({10, 301, 399})


@dataclass(frozen=True)
class _TimeScales:
    """Container for time-scale representations of a UTC instant."""

    utc: Tuple[float, float]
    ut1: Tuple[float, float]
    tt: Tuple[float, float]
    et: float


def _bodies_in(bsp_files: List[Path]) -> Set[int]:
    bodies: Set[int] = set()
    for bsp_file in bsp_files:
        cell = spice.spkobj(str(bsp_file))
        bodies.update(int(cell[idx]) for idx in range(spice.card(cell)))
    return bodies


def load_ephemeris(bsp_path: str) -> List[str]:
    """Load SPK kernels from *bsp_path* using :mod:`spiceypy`.

    Parameters
    ----------
    bsp_path:
        A ``.bsp`` file or a directory containing one or more of them.

    Returns
    -------
    list[str]
        Sorted list of loaded kernel file names.

    Raises
    ------
    EphemerisError
        If the path is missing, holds no ``.bsp`` files, or the kernels do
        not cover the Sun, Earth and Moon.
    """

    global _LOADED_FILES

    if _LOADED_FILES is not None:
        return _LOADED_FILES

    path = Path(bsp_path).expanduser()
    if not path.exists():
        raise EphemerisError(f"Ephemeris path not found: {path}")

    with _SPICE_LOCK:
        if _LOADED_FILES is not None:
            return _LOADED_FILES

        if path.is_file():
            bsp_files = [path] if path.suffix.lower() == ".bsp" else []
        else:
            bsp_files = sorted(
                file for file in path.iterdir() if file.is_file() and file.suffix.lower() == ".bsp"
            )
        if not bsp_files:
            raise EphemerisError(f"No .bsp ephemeris files found at: {path}")

        loaded: List[str] = []
        for bsp_file in bsp_files:
            try:
                spice.furnsh(str(bsp_file))
            except SpiceyError as exc:
                spice.kclear()
                raise EphemerisError(f"Failed to load ephemeris file '{bsp_file}': {exc}") from exc
            loaded.append(bsp_file.name)

        missing = REQUIRED_BODIES - _bodies_in(bsp_files)
        if missing:
            spice.kclear()
            raise EphemerisError(f"Kernels at {path} lack NAIF bodies {sorted(missing)}")

        _LOADED_FILES = loaded
        LOGGER.info(json.dumps({"event": "ephemeris_loaded", "files": loaded}))
        return loaded


def loaded_files() -> List[str]:
    """Names of the kernels loaded so far (empty before :func:`load_ephemeris`)."""

    return list(_LOADED_FILES or [])


def _timescales(jd: Instant) -> _TimeScales:
    """Split a UTC Julian Day into the ERFA two-part time scales."""

    utc1 = ut_day_start(jd)
    utc2 = jd - utc1
    tai1, tai2 = erfa.utctai(utc1, utc2)
    tt1, tt2 = erfa.taitt(tai1, tai2)
    ut11, ut12 = erfa.utcut1(utc1, utc2, 0.0)
    et = (tt1 - erfa.DJ00) * erfa.DAYSEC + tt2 * erfa.DAYSEC
    return _TimeScales(utc=(utc1, utc2), ut1=(ut11, ut12), tt=(tt1, tt2), et=et)


def _site_frame(location: GeographicLocation) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Observer ITRF vector (km) and local east/north/up unit vectors."""

    lat_rad = math.radians(location.lat)
    lon_rad = math.radians(location.lon)
    with _SPICE_LOCK:
        rectangular = spice.georec(
            lon_rad,
            lat_rad,
            location.elev_m / 1000.0,
            EARTH_EQUATORIAL_RADIUS_KM,
            EARTH_FLATTENING,
        )
    site = np.array(rectangular, dtype=float)
    east = np.array([-math.sin(lon_rad), math.cos(lon_rad), 0.0])
    north = np.array(
        [
            -math.sin(lat_rad) * math.cos(lon_rad),
            -math.sin(lat_rad) * math.sin(lon_rad),
            math.cos(lat_rad),
        ]
    )
    up = np.array(
        [
            math.cos(lat_rad) * math.cos(lon_rad),
            math.cos(lat_rad) * math.sin(lon_rad),
            math.sin(lat_rad),
        ]
    )
    return site, east, north, up


class SpiceEphemeris:
    """Topocentric Moon geometry from loaded SPK kernels and ERFA Earth orientation.

    Call :func:`load_ephemeris` before using an instance. UT1 is taken as UTC
    and polar motion is ignored.
    """

    def __init__(self, pressure_hpa: float = 1010.0, temperature_c: float = 10.0) -> None:
        self.pressure_hpa = pressure_hpa
        self.temperature_c = temperature_c

    @staticmethod
    def _geocentric(target: str, et: float) -> np.ndarray:
        if _LOADED_FILES is None:
            raise EphemerisError("Ephemeris kernels have not been loaded")
        try:
            with _SPICE_LOCK:
                vector, _ = spice.spkpos(target, et, "J2000", "LT+S", "EARTH")
        except SpiceyError as exc:
            raise EphemerisError(f"Ephemeris lookup for {target} failed: {exc}") from exc
        return np.array(vector, dtype=float)

    def _topocentric(self, jd: Instant, location: GeographicLocation) -> Tuple[float, float, float]:
        times = _timescales(jd)
        moon = self._geocentric("MOON", times.et)
        rotation = np.array(erfa.c2t06a(*times.tt, *times.ut1, 0.0, 0.0), dtype=float)
        site, east, north, up = _site_frame(location)
        topocentric = rotation @ moon - site
        norm = float(np.linalg.norm(topocentric))
        if norm == 0:
            raise EphemerisError("Degenerate topocentric vector encountered")
        unit = topocentric / norm
        altitude = math.asin(float(np.clip(np.dot(unit, up), -1.0, 1.0)))
        azimuth = math.atan2(float(np.dot(unit, east)), float(np.dot(unit, north)))
        return azimuth % (2.0 * math.pi), altitude, norm

    def illumination_at(self, jd: Instant) -> Illumination:
        jd = require_finite("julian day", jd)
        times = _timescales(jd)
        moon = self._geocentric("MOON", times.et)
        sun = self._geocentric("SUN", times.et)

        to_sun = sun - moon
        to_earth = -moon
        cos_i = np.dot(to_sun, to_earth) / (np.linalg.norm(to_sun) * np.linalg.norm(to_earth))
        incidence = math.acos(float(np.clip(cos_i, -1.0, 1.0)))

        obliquity = float(erfa.obl06(*times.tt))

        def ecliptic_longitude(vector: np.ndarray) -> float:
            x, y, z = vector
            return math.atan2(y * math.cos(obliquity) + z * math.sin(obliquity), x)

        elongation = (ecliptic_longitude(moon) - ecliptic_longitude(sun)) % (2.0 * math.pi)
        return Illumination(
            phase_fraction=(elongation / (2.0 * math.pi)) % 1.0,
            illuminated_fraction=(1.0 + math.cos(incidence)) / 2.0,
            phase_angle_deg=math.degrees(incidence),
        )

    def position_at(self, jd: Instant, location: GeographicLocation) -> HorizontalPosition:
        jd = require_finite("julian day", jd)
        azimuth, altitude, distance = self._topocentric(jd, location)
        phi = math.radians(location.lat)

        sin_dec = math.sin(phi) * math.sin(altitude) + math.cos(phi) * math.cos(altitude) * math.cos(azimuth)
        dec = math.asin(max(-1.0, min(1.0, sin_dec)))
        hour_angle = math.atan2(
            -math.sin(azimuth) * math.cos(altitude),
            math.cos(phi) * math.sin(altitude) - math.sin(phi) * math.cos(altitude) * math.cos(azimuth),
        )
        parallactic = math.atan2(
            math.sin(hour_angle),
            math.tan(phi) * math.cos(dec) - math.sin(dec) * math.cos(hour_angle),
        )
        apparent = altitude + refraction_saemundsson(altitude, self.pressure_hpa, self.temperature_c)
        return HorizontalPosition(
            azimuth_rad=float(azimuth),
            altitude_rad=apparent,
            distance_km=distance,
            parallactic_angle_rad=parallactic,
        )

    def altitude_deg(self, jd: Instant, location: GeographicLocation) -> float:
        return math.degrees(self.position_at(jd, location).altitude_rad)

    def rise_set_at(self, jd: Instant, location: GeographicLocation) -> RiseSet:
        jd = require_finite("julian day", jd)
        return scan_rise_set(
            lambda t: self.altitude_deg(t, location),
            ut_day_start(jd),
            MOONRISE_ALTITUDE_DEG,
        )
