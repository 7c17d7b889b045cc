"""Shared fixtures for gateway tests."""

import pytest

from market_gateway.api.health import reset_health_service
from market_gateway.services.gateway import reset_gateway


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock for TTL tests."""
    return FakeClock()


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset process-wide singletons between tests."""
    reset_gateway()
    reset_health_service()
    yield
    reset_gateway()
    reset_health_service()
