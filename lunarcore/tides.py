"""Coarse tide windows from fixed six-hour sampling.

This is a fixed-phase placeholder, not a harmonic tidal solution: samples at
multiples of 12 hours after the reference are tagged high water and the ones
in between low water. The Moon's altitude at each sample is recorded for
display.
"""

from __future__ import annotations

import math
from typing import List, Optional

from .provider import EphemerisProvider, default_provider
from .types import (
    HOURS_PER_DAY,
    GeographicLocation,
    Instant,
    TideEvent,
    TideWindow,
    require_finite,
)

__all__ = ["tides_for", "SAMPLE_OFFSETS_HOURS"]

SAMPLE_OFFSETS_HOURS = (0, 6, 12, 18)


def tides_for(
    jd: Instant,
    location: GeographicLocation,
    provider: Optional[EphemerisProvider] = None,
) -> TideWindow:
    """Tide window covering the 24 hours that follow *jd* at *location*."""

    jd = require_finite("julian day", jd)
    provider = provider or default_provider()

    events: List[TideEvent] = []
    next_high: Optional[Instant] = None
    next_low: Optional[Instant] = None
    for hour in SAMPLE_OFFSETS_HOURS:
        tide_jd = jd + hour / HOURS_PER_DAY
        kind = "high" if hour % 12 == 0 else "low"
        altitude = math.degrees(provider.position_at(tide_jd, location).altitude_rad)
        events.append(TideEvent(kind=kind, jd=tide_jd, moon_altitude_deg=altitude))
        if tide_jd > jd:
            if kind == "high" and next_high is None:
                next_high = tide_jd
            elif kind == "low" and next_low is None:
                next_low = tide_jd

    return TideWindow(
        reference_jd=jd,
        events=tuple(events),
        next_high=next_high,
        next_low=next_low,
    )
