"""Lunar phase, age and illumination from the mean synodic month."""

from __future__ import annotations

import math

from .types import (
    CARDINAL_PHASE_NAMES,
    MEAN_MOON_DISTANCE_KM,
    MOON_RADIUS_KM,
    PHASE_DISTANCE_AMPLITUDE_KM,
    PHASE_NAMES,
    REFERENCE_NEW_MOON_JD,
    SYNODIC_MONTH_DAYS,
    ARCSEC_PER_DEGREE,
    Instant,
    LunarPhase,
    NextPhase,
    require_finite,
)

__all__ = [
    "lunar_age",
    "phase_fraction",
    "illumination_percent",
    "phase_name",
    "phase_at",
    "next_phase",
]


def lunar_age(jd: Instant) -> float:
    """Days elapsed since the most recent mean new moon, in ``[0, synodic month)``."""

    days_since = require_finite("julian day", jd) - REFERENCE_NEW_MOON_JD
    age = days_since % SYNODIC_MONTH_DAYS
    # Float modulo can land exactly on the period for tiny negative inputs.
    if age >= SYNODIC_MONTH_DAYS:
        age = 0.0
    return age


def phase_fraction(jd: Instant) -> float:
    """Unrounded position in the synodic month, ``0`` new, ``0.5`` full."""

    return lunar_age(jd) / SYNODIC_MONTH_DAYS


def illumination_percent(phase: float) -> float:
    """Illuminated share of the disk for *phase*, in percent (unrounded)."""

    return (1.0 - math.cos(2.0 * math.pi * phase)) / 2.0 * 100.0


def phase_name(phase: float) -> str:
    """Name of the eighth of the cycle containing *phase*.

    Each bin is 1/8 wide and centred on its named phase, so the new moon bin
    wraps across 0/1.
    """

    index = int(math.floor((phase % 1.0) * 8.0 + 0.5)) % 8
    return PHASE_NAMES[index]


def _approximate_distance_km(phase: float) -> float:
    # Periodic placeholder, not an anomalistic-month model.
    return MEAN_MOON_DISTANCE_KM + PHASE_DISTANCE_AMPLITUDE_KM * math.sin(2.0 * math.pi * phase)


def phase_at(jd: Instant) -> LunarPhase:
    """Compute the lunar phase record for the instant *jd*.

    Parameters
    ----------
    jd:
        Julian Day (UT).

    Returns
    -------
    LunarPhase
        Phase name, illumination (percent, 0.1), age (days, 0.1), phase
        fraction (0.001), distance (km) and angular size (arcseconds, 0.1).
    """

    age = lunar_age(jd)
    phase = age / SYNODIC_MONTH_DAYS
    distance = _approximate_distance_km(phase)
    angular_size = math.degrees(2.0 * math.atan(MOON_RADIUS_KM / distance)) * ARCSEC_PER_DEGREE

    rounded_phase = round(phase, 3)
    if rounded_phase >= 1.0:
        rounded_phase = 0.0

    return LunarPhase(
        name=phase_name(phase),
        illumination=round(illumination_percent(phase), 1),
        age=round(age, 1),
        phase=rounded_phase,
        distance_km=float(round(distance)),
        angular_size_arcsec=round(angular_size, 1),
    )


def next_phase(jd: Instant) -> NextPhase:
    """Return the next cardinal phase (new, first quarter, full, last quarter) after *jd*.

    The boundary is ``(floor(phase * 4) + 1) / 4``, so an instant sitting exactly on a
    boundary advances to the following one.
    """

    phase = phase_fraction(jd)
    quarter = math.floor(phase * 4.0) + 1
    boundary = quarter / 4.0
    days_ahead = (boundary - phase) * SYNODIC_MONTH_DAYS
    return NextPhase(name=CARDINAL_PHASE_NAMES[quarter % 4], jd=jd + days_ahead)
