"""Per-day lunar phase records for a calendar month."""

from __future__ import annotations

import calendar
import numbers
from typing import List

from .batch import evaluate_many
from .errors import InvalidArgumentError
from .phase import phase_at
from .timeconv import to_julian_day
from .types import CalendarDay, require_finite

__all__ = ["month_calendar"]


def month_calendar(
    year: int,
    month_index: int,
    reference_hour: float = 0.0,
    n_jobs: int = 1,
) -> List[CalendarDay]:
    """One :class:`CalendarDay` per day of the month, in ascending day order.

    Parameters
    ----------
    year:
        Gregorian year.
    month_index:
        Zero-based month, ``0`` for January through ``11`` for December.
    reference_hour:
        UT hour of day at which each day is evaluated, ``0`` for midnight.
    n_jobs:
        Worker count passed to :func:`lunarcore.batch.evaluate_many`.

    Raises
    ------
    InvalidArgumentError
        If *year* is not an integer in 1-9999, *month_index* is not an
        integer in 0-11, or *reference_hour* is outside ``[0, 24)``.
    """

    if isinstance(year, bool) or not isinstance(year, numbers.Integral):
        raise InvalidArgumentError(f"year must be an integer, got {year!r}")
    if not 1 <= year <= 9999:
        raise InvalidArgumentError(f"year must be within 1-9999, got {year}")
    if isinstance(month_index, bool) or not isinstance(month_index, numbers.Integral):
        raise InvalidArgumentError(f"month_index must be an integer, got {month_index!r}")
    if not 0 <= month_index <= 11:
        raise InvalidArgumentError(f"month_index must be within 0-11, got {month_index}")
    reference_hour = require_finite("reference hour", reference_hour)
    if not 0.0 <= reference_hour < 24.0:
        raise InvalidArgumentError(f"reference_hour must be within [0, 24), got {reference_hour}")

    month = month_index + 1
    days_in_month = calendar.monthrange(year, month)[1]
    instants = [
        to_julian_day(year, month, day, reference_hour) for day in range(1, days_in_month + 1)
    ]
    phases = evaluate_many(phase_at, instants, n_jobs=n_jobs)
    return [
        CalendarDay(
            day=day,
            jd=jd,
            phase=phase.phase,
            illumination=phase.illumination,
            phase_name=phase.name,
        )
        for day, (jd, phase) in enumerate(zip(instants, phases), start=1)
    ]
