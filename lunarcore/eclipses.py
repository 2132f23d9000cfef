"""Eclipse search: a fixed catalog lookup and a heuristic phase-sampling search.

The catalog mode returns known events with contact instants derived from
fixed offsets around greatest eclipse. The heuristic mode only tags
new/full-moon samples as candidates; its magnitudes and durations are random
draws for demonstration and carry no physical meaning. Replacing it with
Besselian-element geometry must keep the same :class:`EclipseEvent` output.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Iterable, List, Optional, Tuple

import numpy as np

from .batch import evaluate_many
from .errors import InvalidArgumentError
from .provider import EphemerisProvider, default_provider
from .timeconv import datetime_to_julian_day
from .types import (
    ECLIPSE_TYPES,
    MINUTES_PER_DAY,
    EclipseEvent,
    Instant,
    require_finite,
)

__all__ = [
    "CATALOG",
    "find_eclipses",
    "eclipses_for_years",
    "predict_eclipses",
    "SEARCH_STEP_DAYS",
    "CANDIDATE_WINDOW",
]

LOGGER = logging.getLogger(__name__)

SEARCH_STEP_DAYS = 14.0
CANDIDATE_WINDOW = 0.05
OUTER_CONTACT_MINUTES = 60.0
INNER_CONTACT_MINUTES = 30.0
MAGNITUDE_RANGE = (0.5, 1.0)
DURATION_RANGE_S = (60.0, 240.0)

SOLAR_REGIONS_2024 = ("North America", "Pacific")
GLOBAL = ("Global",)


@dataclass(frozen=True)
class _CatalogEntry:
    when: datetime
    type: str
    classification: str
    magnitude: float
    duration_s: float
    regions: Tuple[str, ...]


CATALOG: Tuple[_CatalogEntry, ...] = (
    _CatalogEntry(datetime(2024, 3, 25, 7, 0, tzinfo=UTC), "lunar", "penumbral", 0.95, 280, GLOBAL),
    _CatalogEntry(datetime(2024, 4, 8, 18, 17, tzinfo=UTC), "solar", "total", 1.057, 268, SOLAR_REGIONS_2024),
    _CatalogEntry(datetime(2024, 9, 18, 2, 44, tzinfo=UTC), "lunar", "partial", 0.083, 183, GLOBAL),
    _CatalogEntry(datetime(2024, 10, 2, 18, 45, tzinfo=UTC), "solar", "annular", 0.932, 445, SOLAR_REGIONS_2024),
    _CatalogEntry(
        datetime(2025, 3, 14, 6, 59, tzinfo=UTC), "lunar", "total", 1.178, 3900,
        ("Americas", "Pacific", "Western Europe", "Western Africa"),
    ),
    _CatalogEntry(
        datetime(2025, 3, 29, 10, 47, tzinfo=UTC), "solar", "partial", 0.938, 13980,
        ("Europe", "Northwest Africa", "Northeast North America"),
    ),
    _CatalogEntry(
        datetime(2025, 9, 7, 18, 12, tzinfo=UTC), "lunar", "total", 1.362, 4920,
        ("Asia", "Australia", "Europe", "Africa"),
    ),
    _CatalogEntry(
        datetime(2025, 9, 21, 19, 42, tzinfo=UTC), "solar", "partial", 0.855, 15840,
        ("New Zealand", "Antarctica", "South Pacific"),
    ),
    _CatalogEntry(datetime(2026, 2, 17, 12, 12, tzinfo=UTC), "solar", "annular", 0.963, 140, ("Antarctica",)),
    _CatalogEntry(
        datetime(2026, 3, 3, 11, 34, tzinfo=UTC), "lunar", "total", 1.151, 3480,
        ("East Asia", "Australia", "Pacific", "Americas"),
    ),
    _CatalogEntry(
        datetime(2026, 8, 12, 17, 46, tzinfo=UTC), "solar", "total", 1.039, 138,
        ("Greenland", "Iceland", "Spain"),
    ),
    _CatalogEntry(
        datetime(2026, 8, 28, 4, 13, tzinfo=UTC), "lunar", "partial", 0.930, 11880,
        ("Americas", "Europe", "Africa", "Pacific"),
    ),
)


def _check_kind(kind: Optional[str]) -> None:
    if kind is not None and kind not in ECLIPSE_TYPES:
        raise InvalidArgumentError(f"Unsupported eclipse type filter: {kind}")


def _sorted(events: Iterable[EclipseEvent]) -> List[EclipseEvent]:
    # Lunar before solar on identical instants.
    return sorted(events, key=lambda event: (event.jd, ECLIPSE_TYPES.index(event.type)))


def _from_catalog(index: int, entry: _CatalogEntry) -> EclipseEvent:
    jd = datetime_to_julian_day(entry.when)
    outer = OUTER_CONTACT_MINUTES / MINUTES_PER_DAY
    inner = INNER_CONTACT_MINUTES / MINUTES_PER_DAY
    total = entry.classification == "total"
    return EclipseEvent(
        id=f"eclipse-{index + 1}",
        type=entry.type,
        classification=entry.classification,
        jd=jd,
        magnitude=entry.magnitude,
        duration_s=float(entry.duration_s),
        regions=entry.regions,
        c1=jd - outer,
        c2=jd - inner if total else None,
        c3=jd + inner if total else None,
        c4=jd + outer,
    )


def find_eclipses(start_jd: Instant, end_jd: Instant, kind: Optional[str] = None) -> List[EclipseEvent]:
    """Catalog eclipses whose greatest eclipse falls within ``[start_jd, end_jd]``.

    Parameters
    ----------
    start_jd, end_jd:
        Julian Day bounds, inclusive. A start after the end yields an empty list.
    kind:
        Optional ``"lunar"`` or ``"solar"`` filter.

    Returns
    -------
    list[EclipseEvent]
        Events ordered by instant, lunar before solar on ties.
    """

    start_jd = require_finite("start julian day", start_jd)
    end_jd = require_finite("end julian day", end_jd)
    _check_kind(kind)
    if start_jd > end_jd:
        return []
    events = (
        _from_catalog(index, entry)
        for index, entry in enumerate(CATALOG)
        if kind is None or entry.type == kind
    )
    return _sorted(event for event in events if start_jd <= event.jd <= end_jd)


def eclipses_for_years(start_year: int, end_year: int, kind: Optional[str] = None) -> List[EclipseEvent]:
    """Catalog eclipses dated within the inclusive UT year range."""

    _check_kind(kind)
    return _sorted(
        _from_catalog(index, entry)
        for index, entry in enumerate(CATALOG)
        if start_year <= entry.when.year <= end_year and (kind is None or entry.type == kind)
    )


def _candidate_type(phase: float) -> Optional[str]:
    if abs(phase - 0.5) < CANDIDATE_WINDOW:
        return "lunar"
    if min(phase, 1.0 - phase) < CANDIDATE_WINDOW:
        return "solar"
    return None


def predict_eclipses(
    start_jd: Instant,
    end_jd: Instant,
    provider: Optional[EphemerisProvider] = None,
    seed: Optional[int] = None,
    kind: Optional[str] = None,
    n_jobs: int = 1,
) -> List[EclipseEvent]:
    """Heuristic eclipse candidates sampled every 14 days between the bounds.

    A sample within 0.05 of phase 0 (either side of the 0/1 wrap) is a solar
    candidate and one within 0.05 of phase 0.5 a lunar candidate. Magnitude
    and duration are drawn uniformly from ``[0.5, 1.0)`` and ``[60, 240)``
    seconds; pass *seed* for reproducible draws. These values are
    placeholders, not predictions.
    """

    start_jd = require_finite("start julian day", start_jd)
    end_jd = require_finite("end julian day", end_jd)
    _check_kind(kind)
    if start_jd > end_jd:
        return []

    provider = provider or default_provider()
    steps = int((end_jd - start_jd) // SEARCH_STEP_DAYS) + 1
    samples = [start_jd + idx * SEARCH_STEP_DAYS for idx in range(steps)]
    illuminations = evaluate_many(provider.illumination_at, samples, n_jobs=n_jobs)

    rng = np.random.default_rng(seed)
    events: List[EclipseEvent] = []
    for jd, illumination in zip(samples, illuminations):
        eclipse_type = _candidate_type(illumination.phase_fraction)
        if eclipse_type is None:
            continue
        magnitude = float(rng.uniform(*MAGNITUDE_RANGE))
        duration = float(rng.uniform(*DURATION_RANGE_S))
        events.append(
            EclipseEvent(
                id=f"predicted-{len(events) + 1}",
                type=eclipse_type,
                classification="partial",
                jd=jd,
                magnitude=magnitude,
                duration_s=duration,
                regions=GLOBAL if eclipse_type == "lunar" else ("Regional",),
            )
        )

    LOGGER.debug(
        json.dumps(
            {
                "event": "eclipse_prediction",
                "samples": len(samples),
                "candidates": len(events),
            }
        )
    )
    return _sorted(event for event in events if kind is None or event.type == kind)
