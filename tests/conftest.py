"""
Pytest configuration and common fixtures for scoresync tests.

Environment defaults are set before scoresync is imported, since settings are
read once at import time.
"""

import os
from unittest.mock import AsyncMock, MagicMock

os.environ.setdefault("ENVIRONMENT", "PROD")
os.environ.setdefault("REMOTE_STORE", "memory")
os.environ.setdefault("LOCAL_CACHE", "memory")
os.environ.setdefault("LOG_LEVEL", "INFO")

import pytest  # noqa: E402
from support import FakeClock, build_engine  # noqa: E402

from scoresync.core.rate import RateDerivation, RateTracker  # noqa: E402
from scoresync.core.sync import SyncEngine  # noqa: E402
from scoresync.persistence.memory import MemoryLocalCache, MemoryScoreStore  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> MemoryScoreStore:
    return MemoryScoreStore(clock=clock)


@pytest.fixture
def cache() -> MemoryLocalCache:
    return MemoryLocalCache()


@pytest.fixture
def derivation() -> RateDerivation:
    return RateDerivation()


@pytest.fixture
def rates(derivation, cache) -> RateTracker:
    return RateTracker(derivation, cache)


@pytest.fixture
def engine(store, cache, clock, rates) -> SyncEngine:
    return build_engine(store, cache, clock, rates)


@pytest.fixture
def mock_redis():
    """Mock Redis client for testing."""
    mock = MagicMock()
    mock.ping = AsyncMock(return_value=True)
    mock.get = AsyncMock(return_value=None)
    mock.set = AsyncMock(return_value=True)
    mock.incr = AsyncMock(return_value=1)
    mock.incrby = AsyncMock(return_value=0)
    mock.lrange = AsyncMock(return_value=[])
    mock.publish = AsyncMock(return_value=1)
    mock.close = AsyncMock()
    return mock
