"""Test doubles shared across the scoresync test suite."""

import asyncio
from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta

from scoresync.core.cooldown import CooldownGuard
from scoresync.core.rate import RateDerivation, RateTracker
from scoresync.core.sync import SyncEngine
from scoresync.domain.errors import StoreUnreachableError
from scoresync.domain.interfaces.score_store import IScoreStore
from scoresync.domain.models import HistoryEntry, StoreEvent
from scoresync.persistence.memory import MemoryLocalCache

COOLDOWN_WINDOW = timedelta(minutes=5)


class FakeClock:
    """Settable time source shared by the engine, the guard and the store."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 10, 19, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class UnreachableScoreStore(IScoreStore):
    """Remote store whose every call fails as if the network were down."""

    name = "unreachable"

    def __init__(self):
        self.listen_attempts = 0

    def _fail(self):
        raise StoreUnreachableError("connection refused")

    async def ping(self) -> bool:
        return False

    async def get_score(self) -> int:
        self._fail()

    async def increment_score(self, delta: int) -> int | None:
        self._fail()

    async def update_score(self, new_value: int) -> int | None:
        self._fail()

    async def append_history(self, delta: int, new_score: int) -> HistoryEntry:
        self._fail()

    async def get_history(self, limit: int = 20) -> list[HistoryEntry]:
        self._fail()

    async def get_cooldown(self, actor_id: str) -> datetime | None:
        self._fail()

    async def set_cooldown(self, actor_id, at, ttl_seconds=None) -> None:
        self._fail()

    async def publish(self, event: StoreEvent) -> int:
        return 0

    async def listen(self) -> AsyncIterator[StoreEvent]:
        self.listen_attempts += 1
        self._fail()
        yield  # pragma: no cover


class FailingLocalCache(MemoryLocalCache):
    """Local cache that accepts reads but rejects every write."""

    def set(self, key: str, value: str) -> bool:
        return False


def build_engine(store, cache, clock, rates: RateTracker | None = None) -> SyncEngine:
    guard = CooldownGuard(store, cache, window=COOLDOWN_WINDOW, clock=clock)
    return SyncEngine(
        store,
        cache,
        guard=guard,
        rates=rates or RateTracker(RateDerivation(), cache),
        clock=clock,
    )


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Yield to the loop until predicate() is true."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.001)
