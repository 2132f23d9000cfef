"""FastAPI application exposing the lunar computation core."""

from __future__ import annotations

import json
import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime, time as dt_time
from typing import Annotated, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lunarcore import eclipses, phase, position, tides
from lunarcore.errors import EphemerisError, InvalidArgumentError
from lunarcore.kernels import resolve_ephemeris_source
from lunarcore.monthly import month_calendar
from lunarcore.provider import EphemerisProvider, default_provider
from lunarcore.spice_provider import SpiceEphemeris, load_ephemeris
from lunarcore.timeconv import datetime_to_julian_day, from_julian_day, now_julian_day
from lunarcore.types import EclipseEvent, GeographicLocation
from models import (
    CalendarDayModel,
    CalendarQueryParams,
    CalendarResponse,
    EclipseModel,
    EclipseQueryParams,
    EclipsesResponse,
    ErrorResponse,
    HealthResponse,
    InstantQueryParams,
    LocationQueryParams,
    NextPhaseModel,
    PhaseResponse,
    PositionResponse,
    PredictQueryParams,
    ProviderName,
    TideEventModel,
    TideResponse,
)

logging.basicConfig(level=logging.INFO, format="%(message)s")
LOGGER = logging.getLogger("lunar-api")

APP_DESCRIPTION = "Lunar phase, position, tide and eclipse calculations"

PROVIDER: EphemerisProvider = default_provider()
PROVIDER_NAME = ProviderName.analytical
EPHEMERIS_FILES: List[str] = []


@asynccontextmanager
async def lifespan(app: FastAPI):
    global PROVIDER, PROVIDER_NAME, EPHEMERIS_FILES
    try:
        PROVIDER_NAME = ProviderName(os.environ.get("LUNAR_EPHEMERIS", "analytical"))
    except ValueError:
        LOGGER.error(
            json.dumps(
                {"event": "unknown_provider", "provider": os.environ.get("LUNAR_EPHEMERIS")}
            )
        )
        raise
    if PROVIDER_NAME is ProviderName.spice:
        try:
            source_path = resolve_ephemeris_source()
            EPHEMERIS_FILES = load_ephemeris(str(source_path))
        except EphemerisError as exc:
            LOGGER.error(json.dumps({"event": "ephemeris_load_failed", "error": str(exc)}))
            raise
        PROVIDER = SpiceEphemeris()
    else:
        PROVIDER = default_provider()
    LOGGER.info(json.dumps({"event": "startup", "provider": PROVIDER_NAME.value}))
    yield


app = FastAPI(
    title="Lunar API",
    description=APP_DESCRIPTION,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip()
        for origin in os.environ.get("LUNAR_CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _format_utc(jd: Optional[float]) -> Optional[str]:
    if jd is None:
        return None
    return from_julian_day(jd).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _instant(value: Optional[datetime]) -> float:
    if value is None:
        return now_julian_day()
    return datetime_to_julian_day(value)


def _day_bounds(params: EclipseQueryParams) -> tuple[float, float]:
    start = datetime.combine(params.start, dt_time.min, tzinfo=UTC)
    end = datetime.combine(params.end, dt_time.min, tzinfo=UTC)
    return datetime_to_julian_day(start), datetime_to_julian_day(end) + 1.0 - 1e-9


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    payload = ErrorResponse(code=code, error=message)
    LOGGER.error(json.dumps({"event": "error", "code": code, "message": message}))
    return JSONResponse(status_code=status_code, content=payload.model_dump())


def _log_request(event: str, start_time: float, **fields: object) -> None:
    duration_ms = (time.perf_counter() - start_time) * 1000.0
    LOGGER.info(json.dumps({"event": event, **fields, "duration_ms": round(duration_ms, 3)}))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = ", ".join(error["msg"] for error in exc.errors())
    return _error_response(422, "validation_error", messages)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict):
        message = detail.get("error") or detail.get("message") or str(detail)
    elif isinstance(detail, list):
        message = ", ".join(str(item) for item in detail)
    else:
        message = str(detail)
    return _error_response(exc.status_code, f"http_{exc.status_code}", message)


@app.exception_handler(InvalidArgumentError)
async def invalid_argument_handler(request: Request, exc: InvalidArgumentError) -> JSONResponse:
    return _error_response(400, "invalid_argument", str(exc))


@app.exception_handler(EphemerisError)
async def ephemeris_error_handler(request: Request, exc: EphemerisError) -> JSONResponse:
    return _error_response(500, "ephemeris_error", str(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("Unhandled exception", exc_info=exc)
    return _error_response(500, "internal_error", "Unhandled server error")


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(
        ok=True,
        provider=PROVIDER_NAME,
        ephemeris_loaded=bool(EPHEMERIS_FILES),
        files=EPHEMERIS_FILES,
    )


@app.get("/phase", response_model=PhaseResponse, responses={400: {"model": ErrorResponse}})
def phase_endpoint(params: Annotated[InstantQueryParams, Query()]) -> PhaseResponse:
    start_time = time.perf_counter()
    jd = _instant(params.at)
    result = phase.phase_at(jd)
    upcoming = phase.next_phase(jd)
    response = PhaseResponse(
        time_utc=_format_utc(jd),
        julian_day=jd,
        name=result.name,
        illumination=result.illumination,
        age=result.age,
        phase=result.phase,
        distance_km=result.distance_km,
        angular_size_arcsec=result.angular_size_arcsec,
        next_phase=NextPhaseModel(name=upcoming.name, time_utc=_format_utc(upcoming.jd)),
    )
    _log_request("phase", start_time, jd=jd, name=result.name)
    return response


@app.get(
    "/position",
    response_model=PositionResponse,
    responses={
        400: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def position_endpoint(params: Annotated[LocationQueryParams, Query()]) -> PositionResponse:
    start_time = time.perf_counter()
    jd = _instant(params.at)
    location = GeographicLocation(lat=params.lat, lon=params.lon, elev_m=params.elev_m)
    result = position.position_at(jd, location, PROVIDER)
    illumination = PROVIDER.illumination_at(jd)
    rise_set = PROVIDER.rise_set_at(jd, location)
    response = PositionResponse(
        time_utc=_format_utc(jd),
        latitude=params.lat,
        longitude=params.lon,
        ra_deg=result.ra_deg,
        dec_deg=result.dec_deg,
        azimuth_deg=result.azimuth_deg,
        altitude_deg=result.altitude_deg,
        compass=position.compass_direction(result.azimuth_deg),
        distance_km=result.distance_km,
        parallax_arcsec=result.parallax_arcsec,
        libration_lon_deg=result.libration_lon_deg,
        libration_lat_deg=result.libration_lat_deg,
        illuminated_fraction=illumination.illuminated_fraction,
        phase_angle_deg=illumination.phase_angle_deg,
        rise_utc=_format_utc(rise_set.rise),
        set_utc=_format_utc(rise_set.set),
        always_up=rise_set.always_up,
        always_down=rise_set.always_down,
        visibility=position.visibility(result.altitude_deg, rise_set),
    )
    _log_request("position", start_time, lat=params.lat, lon=params.lon, jd=jd)
    return response


@app.get("/tides", response_model=TideResponse, responses={422: {"model": ErrorResponse}})
def tides_endpoint(params: Annotated[LocationQueryParams, Query()]) -> TideResponse:
    start_time = time.perf_counter()
    jd = _instant(params.at)
    location = GeographicLocation(lat=params.lat, lon=params.lon, elev_m=params.elev_m)
    window = tides.tides_for(jd, location, PROVIDER)
    response = TideResponse(
        time_utc=_format_utc(jd),
        high_utc=[_format_utc(t) for t in window.high],
        low_utc=[_format_utc(t) for t in window.low],
        next_high_utc=_format_utc(window.next_high),
        next_low_utc=_format_utc(window.next_low),
        events=[
            TideEventModel(
                kind=event.kind,
                time_utc=_format_utc(event.jd),
                moon_altitude_deg=event.moon_altitude_deg,
            )
            for event in window.events
        ],
    )
    _log_request("tides", start_time, lat=params.lat, lon=params.lon, jd=jd)
    return response


@app.get("/calendar", response_model=CalendarResponse, responses={422: {"model": ErrorResponse}})
def calendar_endpoint(params: Annotated[CalendarQueryParams, Query()]) -> CalendarResponse:
    start_time = time.perf_counter()
    days = month_calendar(params.year, params.month_index)
    response = CalendarResponse(
        year=params.year,
        month_index=params.month_index,
        days=[
            CalendarDayModel(
                day=entry.day,
                time_utc=_format_utc(entry.jd),
                phase=entry.phase,
                illumination=entry.illumination,
                phase_name=entry.phase_name,
            )
            for entry in days
        ],
    )
    _log_request("calendar", start_time, year=params.year, month_index=params.month_index)
    return response


def _eclipse_model(event: EclipseEvent) -> EclipseModel:
    return EclipseModel(
        id=event.id,
        type=event.type,
        classification=event.classification,
        time_utc=_format_utc(event.jd),
        magnitude=event.magnitude,
        duration_s=event.duration_s,
        regions=list(event.regions),
        c1_utc=_format_utc(event.c1),
        c2_utc=_format_utc(event.c2),
        c3_utc=_format_utc(event.c3),
        c4_utc=_format_utc(event.c4),
    )


@app.get("/eclipses", response_model=EclipsesResponse, responses={422: {"model": ErrorResponse}})
def eclipses_endpoint(params: Annotated[EclipseQueryParams, Query()]) -> EclipsesResponse:
    start_time = time.perf_counter()
    start_jd, end_jd = _day_bounds(params)
    kind = params.type.value if params.type else None
    events = eclipses.find_eclipses(start_jd, end_jd, kind=kind)
    _log_request("eclipses", start_time, start=params.start.isoformat(), count=len(events))
    return EclipsesResponse(mode="catalog", events=[_eclipse_model(event) for event in events])


@app.get(
    "/eclipses/predict",
    response_model=EclipsesResponse,
    responses={422: {"model": ErrorResponse}},
)
def predict_endpoint(params: Annotated[PredictQueryParams, Query()]) -> EclipsesResponse:
    start_time = time.perf_counter()
    start_jd, end_jd = _day_bounds(params)
    kind = params.type.value if params.type else None
    events = eclipses.predict_eclipses(
        start_jd, end_jd, provider=PROVIDER, seed=params.seed, kind=kind
    )
    _log_request("eclipses_predict", start_time, start=params.start.isoformat(), count=len(events))
    return EclipsesResponse(mode="heuristic", events=[_eclipse_model(event) for event in events])
