from __future__ import annotations

import pytest

from lunarcore.errors import InvalidArgumentError
from lunarcore.monthly import month_calendar
from lunarcore.phase import phase_at
from lunarcore.timeconv import to_julian_day


@pytest.mark.parametrize(
    ("year", "month_index", "expected_days"),
    [(2024, 1, 29), (2023, 1, 28), (2024, 0, 31), (2024, 3, 30), (1900, 1, 28), (2000, 1, 29)],
)
def test_days_in_month(year: int, month_index: int, expected_days: int):
    days = month_calendar(year, month_index)
    assert len(days) == expected_days
    assert [entry.day for entry in days] == list(range(1, expected_days + 1))


def test_entries_match_phase_at():
    days = month_calendar(2024, 3)
    assert [entry.jd for entry in days] == sorted(entry.jd for entry in days)
    for entry in days:
        assert entry.jd == to_julian_day(2024, 4, entry.day)
        result = phase_at(entry.jd)
        assert entry.phase == result.phase
        assert entry.illumination == result.illumination
        assert entry.phase_name == result.name


def test_month_contains_new_and_full_moon():
    names = {entry.phase_name for entry in month_calendar(2024, 0)}
    assert "New Moon" in names
    assert "Full Moon" in names


def test_reference_hour_shifts_instants():
    midnight = month_calendar(2024, 5)
    noon = month_calendar(2024, 5, reference_hour=12.0)
    for a, b in zip(midnight, noon):
        assert b.jd - a.jd == pytest.approx(0.5, abs=1e-9)


@pytest.mark.parametrize("month_index", [-1, 12, 1.5, True, "3"])
def test_invalid_month_index(month_index):
    with pytest.raises(InvalidArgumentError):
        month_calendar(2024, month_index)


@pytest.mark.parametrize("reference_hour", [-1.0, 24.0, float("nan")])
def test_invalid_reference_hour(reference_hour):
    with pytest.raises(InvalidArgumentError):
        month_calendar(2024, 0, reference_hour=reference_hour)


def test_parallel_matches_serial():
    assert month_calendar(2025, 8, n_jobs=2) == month_calendar(2025, 8)


@pytest.mark.parametrize("year", [2024.0, True, "2024", 0, 10000])
def test_invalid_year(year):
    with pytest.raises(InvalidArgumentError):
        month_calendar(year, 1)
