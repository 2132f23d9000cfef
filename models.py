"""Pydantic models for API requests and responses."""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EclipseType(str, Enum):
    """Eclipse type filter."""

    lunar = "lunar"
    solar = "solar"


class ProviderName(str, Enum):
    """Supported ephemeris back ends."""

    analytical = "analytical"
    spice = "spice"


# Latest instant whose follow-up times (next phase, tide window) still fall
# inside year 9999.
LATEST_INSTANT = datetime(9999, 11, 30, tzinfo=UTC)


class InstantQueryParams(BaseModel):
    """Validated query parameters for endpoints that take a single instant."""

    model_config = ConfigDict(populate_by_name=True)

    at: Optional[datetime] = Field(
        None,
        alias="time",
        description="Instant in ISO-8601; naive values are UTC, defaults to now",
    )

    @field_validator("at")
    def validate_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return value
        value = value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)
        if value > LATEST_INSTANT:
            raise ValueError(f"time must not be later than {LATEST_INSTANT.isoformat()}")
        return value


class LocationQueryParams(InstantQueryParams):
    """Instant plus observer location."""

    lat: float = Field(..., ge=-90.0, le=90.0, description="Latitude in degrees")
    lon: float = Field(..., ge=-180.0, le=180.0, description="Longitude in degrees")
    elev_m: float = Field(0.0, ge=-500.0, description="Observer elevation in meters")


class CalendarQueryParams(BaseModel):
    """Validated query parameters for the ``/calendar`` endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    year: int = Field(..., ge=1, le=9999, description="Gregorian year")
    month_index: int = Field(
        ..., alias="month", ge=0, le=11, description="Zero-based month (0 = January)"
    )


class EclipseQueryParams(BaseModel):
    """Validated query parameters for the eclipse endpoints."""

    start: date = Field(..., description="First UTC date of the search range")
    end: date = Field(..., description="Last UTC date of the search range (inclusive)")
    type: Optional[EclipseType] = Field(None, description="Restrict to lunar or solar eclipses")


class PredictQueryParams(EclipseQueryParams):
    seed: Optional[int] = Field(None, ge=0, description="Seed for reproducible placeholder values")


class NextPhaseModel(BaseModel):
    name: str
    time_utc: str


class PhaseResponse(BaseModel):
    """Lunar phase payload."""

    ok: bool = True
    time_utc: str = Field(..., description="Evaluated instant (ISO-8601)")
    julian_day: float
    name: str = Field(..., description="One of the eight canonical phase names")
    illumination: float = Field(..., description="Illuminated share of the disk in percent")
    age: float = Field(..., description="Days since new moon")
    phase: float = Field(..., description="Fraction of the synodic month")
    distance_km: float
    angular_size_arcsec: float
    next_phase: NextPhaseModel


class PositionResponse(BaseModel):
    """Lunar position payload."""

    ok: bool = True
    time_utc: str
    latitude: float
    longitude: float
    ra_deg: float
    dec_deg: float
    azimuth_deg: float = Field(..., description="Azimuth from north through east")
    altitude_deg: float
    compass: str
    distance_km: float
    parallax_arcsec: float
    libration_lon_deg: float = Field(0.0, description="Not modelled; always zero")
    libration_lat_deg: float = Field(0.0, description="Not modelled; always zero")
    illuminated_fraction: float
    phase_angle_deg: float
    rise_utc: Optional[str] = None
    set_utc: Optional[str] = None
    always_up: bool = False
    always_down: bool = False
    visibility: Literal["always_up", "always_down", "visible", "below_horizon"]


class TideEventModel(BaseModel):
    kind: Literal["high", "low"]
    time_utc: str
    moon_altitude_deg: float


class TideResponse(BaseModel):
    """Tide window payload."""

    ok: bool = True
    time_utc: str
    high_utc: List[str]
    low_utc: List[str]
    next_high_utc: Optional[str] = None
    next_low_utc: Optional[str] = None
    events: List[TideEventModel]


class CalendarDayModel(BaseModel):
    day: int
    time_utc: str
    phase: float
    illumination: float
    phase_name: str


class CalendarResponse(BaseModel):
    """Monthly calendar payload."""

    ok: bool = True
    year: int
    month_index: int
    days: List[CalendarDayModel]


class EclipseModel(BaseModel):
    id: str
    type: EclipseType
    classification: Literal["total", "partial", "annular", "hybrid", "penumbral"]
    time_utc: str
    magnitude: float
    duration_s: float
    regions: List[str]
    c1_utc: Optional[str] = None
    c2_utc: Optional[str] = None
    c3_utc: Optional[str] = None
    c4_utc: Optional[str] = None


class EclipsesResponse(BaseModel):
    """Eclipse search payload."""

    ok: bool = True
    mode: Literal["catalog", "heuristic"]
    events: List[EclipseModel]


class HealthResponse(BaseModel):
    """Health-check response."""

    ok: bool = True
    provider: ProviderName
    ephemeris_loaded: bool
    files: List[str]


class ErrorResponse(BaseModel):
    """Error payload."""

    ok: bool = False
    code: str
    error: str
