"""pytest configuration and shared fixtures."""

import pytest

from distlock.store import InMemoryStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    """Store running on the real monotonic clock."""
    return InMemoryStore()


@pytest.fixture
def clocked_store(clock: FakeClock) -> InMemoryStore:
    """Store whose TTLs only elapse when the test advances the clock."""
    return InMemoryStore(clock=clock)
