"""Shared fixtures for the parking engine test suite."""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import pytest

from parking_ai.config import Settings
from parking_ai.storage import InMemoryStorage
from parking_ai.utils.data_models import ParkingSession

# 2024-01-01 is a Monday
MONDAY_9AM = datetime(2024, 1, 1, 9, 0)
SF_DOWNTOWN = (37.7749, -122.4194)


class FakeClock:
    """Manually advanced clock injected wherever the engine asks for 'now'."""

    def __init__(self, start: datetime = MONDAY_9AM):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, moment: datetime) -> None:
        self.now = moment


def build_session(
    lat: float = SF_DOWNTOWN[0],
    lng: float = SF_DOWNTOWN[1],
    occurred_at: Optional[datetime] = None,
    **overrides: Any,
) -> ParkingSession:
    data: Dict[str, Any] = {
        "start_location": {"lat": lat + 0.01, "lng": lng + 0.01},
        "parking_location": {"lat": lat, "lng": lng},
        "search_duration_minutes": 3,
        "was_successful": True,
        "occurred_at": occurred_at,
    }
    data.update(overrides)
    return ParkingSession.model_validate(data)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_session():
    """Factory for valid sessions; keyword overrides replace defaults."""
    return build_session


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def engine_settings() -> Settings:
    """Settings isolated from any PARKING_AI_* environment."""
    return Settings(assistant_api_url=None, log_level="WARNING")
