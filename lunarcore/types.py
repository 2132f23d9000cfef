"""Constants and immutable value types shared across the lunar core."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import InvalidArgumentError

# Instants are Julian Days on the UT axis.
Instant = float

SYNODIC_MONTH_DAYS = 29.530588853
REFERENCE_NEW_MOON_JD = 2451549.5  # 2000-01-06 00:00 UT
J2000_JD = 2451545.0
DAYS_PER_CENTURY = 36525.0
UNIX_EPOCH_JD = 2440587.5

SECONDS_PER_DAY = 86400.0
MINUTES_PER_DAY = 1440.0
HOURS_PER_DAY = 24.0
ARCSEC_PER_DEGREE = 3600.0

EARTH_RADIUS_KM = 6371.0
MOON_RADIUS_KM = 1737.4
MEAN_MOON_DISTANCE_KM = 384400.0
PHASE_DISTANCE_AMPLITUDE_KM = 20000.0
AU_KM = 149597870.7

PHASE_NAMES: Tuple[str, ...] = (
    "New Moon",
    "Waxing Crescent",
    "First Quarter",
    "Waxing Gibbous",
    "Full Moon",
    "Waning Gibbous",
    "Last Quarter",
    "Waning Crescent",
)
CARDINAL_PHASE_NAMES: Tuple[str, ...] = (
    "New Moon",
    "First Quarter",
    "Full Moon",
    "Last Quarter",
)

ECLIPSE_TYPES = ("lunar", "solar")
ALLOWED_CLASSIFICATIONS = {
    "lunar": frozenset({"total", "partial", "penumbral"}),
    "solar": frozenset({"total", "partial", "annular", "hybrid"}),
}


def require_finite(name: str, value: float) -> float:
    """Return *value* as a float, raising when it is NaN or infinite."""

    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"{name} must be a real number, got {value!r}") from exc
    if not math.isfinite(number):
        raise InvalidArgumentError(f"{name} must be finite, got {value!r}")
    return number


@dataclass(frozen=True)
class GeographicLocation:
    """Observer location. Elevation and timezone are informational only."""

    lat: float
    lon: float
    elev_m: float = 0.0
    name: str = ""
    timezone: str = "UTC"

    def __post_init__(self) -> None:
        lat = require_finite("latitude", self.lat)
        lon = require_finite("longitude", self.lon)
        if not -90.0 <= lat <= 90.0:
            raise InvalidArgumentError(f"latitude must be within [-90, 90], got {lat}")
        if not -180.0 <= lon <= 180.0:
            raise InvalidArgumentError(f"longitude must be within [-180, 180], got {lon}")
        require_finite("elevation", self.elev_m)


@dataclass(frozen=True)
class LunarPhase:
    name: str
    illumination: float  # percent
    age: float  # days since new moon
    phase: float  # fraction of the synodic month, [0, 1)
    distance_km: float
    angular_size_arcsec: float


@dataclass(frozen=True)
class NextPhase:
    name: str
    jd: Instant


@dataclass(frozen=True)
class LunarPosition:
    """Geocentric lunar coordinates plus provider-supplied horizontal ones.

    Libration is not modelled and is always reported as zero.
    """

    ra_deg: float
    dec_deg: float
    azimuth_deg: float
    altitude_deg: float
    distance_km: float
    parallax_arcsec: float
    libration_lon_deg: float = 0.0
    libration_lat_deg: float = 0.0
    ecliptic_lon_deg: float = 0.0
    ecliptic_lat_deg: float = 0.0


@dataclass(frozen=True)
class EclipseEvent:
    """A solar or lunar eclipse with optional contact instants C1..C4."""

    id: str
    type: str
    classification: str
    jd: Instant
    magnitude: float
    duration_s: float
    regions: Tuple[str, ...] = ()
    c1: Optional[Instant] = None
    c2: Optional[Instant] = None
    c3: Optional[Instant] = None
    c4: Optional[Instant] = None

    def __post_init__(self) -> None:
        if self.type not in ALLOWED_CLASSIFICATIONS:
            raise InvalidArgumentError(f"Unsupported eclipse type: {self.type}")
        if self.classification not in ALLOWED_CLASSIFICATIONS[self.type]:
            raise InvalidArgumentError(
                f"Classification '{self.classification}' is not valid for a {self.type} eclipse"
            )
        if self.magnitude < 0 or self.duration_s < 0:
            raise InvalidArgumentError("Eclipse magnitude and duration must be non-negative")
        present = [c for c in self.contacts if c is not None]
        if any(later <= earlier for earlier, later in zip(present, present[1:])):
            raise InvalidArgumentError(f"Contacts of {self.id} are not in ascending order")

    @property
    def contacts(self) -> Tuple[Optional[Instant], ...]:
        return (self.c1, self.c2, self.c3, self.c4)


@dataclass(frozen=True)
class TideEvent:
    kind: str  # "high" or "low"
    jd: Instant
    moon_altitude_deg: float


@dataclass(frozen=True)
class TideWindow:
    reference_jd: Instant
    events: Tuple[TideEvent, ...]
    next_high: Optional[Instant] = None
    next_low: Optional[Instant] = None

    @property
    def high(self) -> Tuple[Instant, ...]:
        return tuple(event.jd for event in self.events if event.kind == "high")

    @property
    def low(self) -> Tuple[Instant, ...]:
        return tuple(event.jd for event in self.events if event.kind == "low")


@dataclass(frozen=True)
class CalendarDay:
    day: int
    jd: Instant
    phase: float
    illumination: float
    phase_name: str


@dataclass(frozen=True)
class Illumination:
    """Provider illumination result; fractions in [0, 1]."""

    phase_fraction: float
    illuminated_fraction: float
    phase_angle_deg: float


@dataclass(frozen=True)
class HorizontalPosition:
    """Provider topocentric result. Azimuth is measured from north through east."""

    azimuth_rad: float
    altitude_rad: float
    distance_km: float
    parallactic_angle_rad: float


@dataclass(frozen=True)
class RiseSet:
    """Moonrise/moonset for one UT day; both absent when circumpolar."""

    rise: Optional[Instant] = None
    set: Optional[Instant] = None
    always_up: bool = False
    always_down: bool = False
