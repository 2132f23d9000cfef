from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from lunarcore.types import GeographicLocation  # noqa: E402


@pytest.fixture
def new_york() -> GeographicLocation:
    return GeographicLocation(
        lat=40.7128,
        lon=-74.0060,
        elev_m=10.0,
        name="New York City",
        timezone="America/New_York",
    )
