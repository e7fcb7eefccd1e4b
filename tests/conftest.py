"""Shared fixtures for structura tests."""

import random

import pytest

from structura.adapters.memory_source import InMemorySnapshotSource
from structura.cache import StructuralCache
from structura.config import AnalysisSettings


# ---------------------------------------------------------------------------
# Auto-use fixtures: cleanup global state between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_metrics():
    """Reset observability counters after every test."""
    yield
    from structura import observability
    observability.reset_metrics()


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------

class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return StructuralCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def settings():
    """Defaults, independent of the test runner's environment."""
    return AnalysisSettings()


@pytest.fixture
def source():
    return InMemorySnapshotSource()


@pytest.fixture
def rng():
    return random.Random(1234)
