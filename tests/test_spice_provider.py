from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Iterable

import erfa
import numpy as np
import pytest
import spiceypy as spice

import lunarcore.spice_provider as spice_provider
from lunarcore.errors import EphemerisError
from lunarcore.position import distance_history
from lunarcore.provider import AnalyticalEphemeris
from lunarcore.spice_provider import SpiceEphemeris, load_ephemeris
from lunarcore.timeconv import to_julian_day
from lunarcore.types import GeographicLocation

AU_KM = 149597870.700
STEP_HOURS = 1
KERNEL_START = datetime(2025, 1, 1, tzinfo=UTC)
KERNEL_END = datetime(2025, 1, 12, tzinfo=UTC)


def _datetime_to_tt(dt: datetime) -> tuple[float, float]:
    utc1, utc2 = erfa.dtf2d(
        "UTC",
        dt.year,
        dt.month,
        dt.day,
        dt.hour,
        dt.minute,
        dt.second + dt.microsecond / 1_000_000,
    )
    tai1, tai2 = erfa.utctai(utc1, utc2)
    return erfa.taitt(tai1, tai2)


def _datetime_to_et(dt: datetime) -> float:
    tt1, tt2 = _datetime_to_tt(dt)
    return (tt1 - erfa.DJ00) * erfa.DAYSEC + tt2 * erfa.DAYSEC


def _to_state(position_au: np.ndarray, velocity_au_day: np.ndarray) -> np.ndarray:
    return np.concatenate(
        [np.array(position_au) * AU_KM, np.array(velocity_au_day) * (AU_KM / erfa.DAYSEC)]
    )


def _body_states(dt: datetime) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    tt1, tt2 = _datetime_to_tt(dt)
    pvh, pvb = erfa.epv00(tt1, tt2)
    sun_state = _to_state(-np.array(pvh["p"]), -np.array(pvh["v"]))
    earth_state = _to_state(pvb["p"], pvb["v"])
    moon = erfa.moon98(tt1, tt2)
    moon_state = _to_state(moon["p"], moon["v"])
    return sun_state, earth_state, moon_state


def _generate_test_kernel(output: Path, bodies: tuple[int, ...] = (10, 399, 301)) -> None:
    if output.exists():
        return
    step = timedelta(hours=STEP_HOURS)
    sun_states: list[np.ndarray] = []
    earth_states: list[np.ndarray] = []
    moon_states: list[np.ndarray] = []
    ets: list[float] = []
    current = KERNEL_START
    while current <= KERNEL_END:
        sun_state, earth_state, moon_state = _body_states(current)
        sun_states.append(sun_state)
        earth_states.append(earth_state)
        moon_states.append(moon_state)
        ets.append(_datetime_to_et(current))
        current += step
    step_seconds = ets[1] - ets[0]
    handle = spice.spkopn(str(output), "MOONTEST", 0)
    try:
        for body, center, segid, states in (
            (10, 399, "SUNTEST", sun_states),
            (399, 0, "EARTHTEST", earth_states),
            (301, 399, "MOONTEST", moon_states),
        ):
            if body not in bodies:
                continue
            spice.spkw08(
                handle,
                body,
                center,
                "J2000",
                ets[0],
                ets[-1],
                segid,
                7,
                len(ets),
                np.array(states, dtype=float),
                ets[0],
                step_seconds,
            )
    finally:
        spice.spkcls(handle)


@pytest.fixture(scope="module")
def kernel_dir(tmp_path_factory: pytest.TempPathFactory) -> Path:
    directory = tmp_path_factory.mktemp("kernels")
    _generate_test_kernel(directory / "moon_2025.bsp")
    return directory


@pytest.fixture(scope="module")
def spice_ephemeris(kernel_dir: Path) -> Iterable[SpiceEphemeris]:
    spice.kclear()
    spice_provider._LOADED_FILES = None
    load_ephemeris(str(kernel_dir))
    yield SpiceEphemeris()
    spice.kclear()
    spice_provider._LOADED_FILES = None


ANALYTICAL = AnalyticalEphemeris()
TEST_INSTANTS = [to_julian_day(2025, 1, day, hour) for day in (3, 5, 7, 9) for hour in (0, 7, 15)]


def _circular_difference(a: float, b: float) -> float:
    difference = abs(a - b) % 1.0
    return min(difference, 1.0 - difference)


def _separation_deg(az1: float, alt1: float, az2: float, alt2: float) -> float:
    cos_sep = math.sin(alt1) * math.sin(alt2) + math.cos(alt1) * math.cos(alt2) * math.cos(az1 - az2)
    return math.degrees(math.acos(max(-1.0, min(1.0, cos_sep))))


def test_loaded_files_reported(spice_ephemeris: SpiceEphemeris):
    assert spice_provider.loaded_files() == ["moon_2025.bsp"]


@pytest.mark.parametrize("jd", TEST_INSTANTS)
def test_illumination_agrees_with_analytical(spice_ephemeris: SpiceEphemeris, jd: float):
    precise = spice_ephemeris.illumination_at(jd)
    approximate = ANALYTICAL.illumination_at(jd)
    assert 0.0 <= precise.phase_fraction < 1.0
    assert _circular_difference(precise.phase_fraction, approximate.phase_fraction) < 0.03
    assert precise.illuminated_fraction == pytest.approx(approximate.illuminated_fraction, abs=0.03)


@pytest.mark.parametrize("jd", TEST_INSTANTS)
def test_position_agrees_with_analytical(
    spice_ephemeris: SpiceEphemeris, new_york: GeographicLocation, jd: float
):
    precise = spice_ephemeris.position_at(jd, new_york)
    approximate = ANALYTICAL.position_at(jd, new_york)
    separation = _separation_deg(
        precise.azimuth_rad, precise.altitude_rad, approximate.azimuth_rad, approximate.altitude_rad
    )
    assert separation < 4.0
    assert precise.distance_km == pytest.approx(approximate.distance_km, abs=15000.0)
    assert 0.0 <= precise.azimuth_rad < 2.0 * math.pi


def test_rise_set_agrees_with_analytical(
    spice_ephemeris: SpiceEphemeris, new_york: GeographicLocation
):
    compared = 0
    for day in (3, 4, 5, 6, 7):
        jd = to_julian_day(2025, 1, day)
        precise = spice_ephemeris.rise_set_at(jd, new_york)
        approximate = ANALYTICAL.rise_set_at(jd, new_york)
        for a, b in ((precise.rise, approximate.rise), (precise.set, approximate.set)):
            if a is not None and b is not None:
                assert abs(a - b) * 24.0 < 1.0
                compared += 1
    assert compared >= 4


def test_unloaded_kernels_raise(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(spice_provider, "_LOADED_FILES", None)
    with pytest.raises(EphemerisError):
        SpiceEphemeris().illumination_at(to_julian_day(2025, 1, 5))


def test_load_ephemeris_rejects_missing_path(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setattr(spice_provider, "_LOADED_FILES", None)
    with pytest.raises(EphemerisError):
        load_ephemeris(str(tmp_path / "missing"))


def test_load_ephemeris_rejects_empty_directory(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setattr(spice_provider, "_LOADED_FILES", None)
    with pytest.raises(EphemerisError):
        load_ephemeris(str(tmp_path))


def test_threaded_distance_history_matches_serial(spice_ephemeris: SpiceEphemeris):
    jd = to_julian_day(2025, 1, 10)
    serial = distance_history(jd, days=6, provider=spice_ephemeris, n_jobs=1)
    for _ in range(20):
        threaded = distance_history(jd, days=6, provider=spice_ephemeris, n_jobs=8)
        assert threaded == serial


def test_bodies_in_kernels(tmp_path: Path, kernel_dir: Path):
    moon_only = tmp_path / "moon_only.bsp"
    _generate_test_kernel(moon_only, bodies=(301,))
    assert spice_provider._bodies_in([kernel_dir / "moon_2025.bsp"]) == {10, 301, 399}
    assert spice_provider._bodies_in([moon_only]) == {301}


def test_load_rejects_kernel_without_sun_and_earth(
    spice_ephemeris: SpiceEphemeris,
    kernel_dir: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
):
    moon_only = tmp_path / "moon_only.bsp"
    _generate_test_kernel(moon_only, bodies=(301,))
    monkeypatch.setattr(spice_provider, "_LOADED_FILES", None)
    try:
        with pytest.raises(EphemerisError, match="lack NAIF bodies"):
            load_ephemeris(str(moon_only))
    finally:
        spice.furnsh(str(kernel_dir / "moon_2025.bsp"))
