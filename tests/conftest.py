"""Shared pytest fixtures for all test suites."""

from collections.abc import Callable
from typing import Any

import pytest

from backend.app.config import Settings
from backend.app.models.trip import TripState
from tests.factories import FakeClock, build_itinerary, build_report


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of the environment."""
    return Settings(_env_file=None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_trip() -> Callable[..., TripState]:
    """Factory for a clean 14-day trip that yields GO with 4000 budget and 2000 cost."""

    def _make(**overrides: Any) -> TripState:
        data: dict[str, Any] = {
            "id": 1,
            "status": "complete",
            "destination": "Tokyo, Japan",
            "passport": "US",
            "origin": "New York",
            "dates": "2026-06-01 to 2026-06-15",
            "budget": 4000,
            "currency": "USD",
            "group_size": 2,
            "feasibility_report": build_report(),
            "itinerary": build_itinerary(),
        }
        data.update(overrides)
        return TripState(**data)

    return _make
