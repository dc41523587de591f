"""
In-process score store.

Implements IScoreStore for single-process deployments and tests. Every method
yields to the event loop before touching state, so concurrent callers
interleave at the same points they would against a networked store.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator, Callable
from datetime import datetime, timedelta

from ...domain.enums import StoreEventKind
from ...domain.interfaces.score_store import IScoreStore
from ...domain.models import HistoryEntry, StoreEvent, utc_now

logger = logging.getLogger("MemoryScoreStore")


class MemoryScoreStore(IScoreStore):
    """
    In-memory shared store with an asyncio fan-out push channel.

    Storage Structure:
        score: int | None          (None until first access)
        history: deque[HistoryEntry]  (bounded, oldest dropped first)
        cooldowns: {actor_id: (last_mutation_at, expires_at)}
        listeners: set[asyncio.Queue[StoreEvent]]
    """

    name = "memory"

    def __init__(
        self,
        *,
        atomic_increment: bool = True,
        history_max_len: int = 500,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.atomic_increment = atomic_increment
        self.clock = clock
        self._score: int | None = None
        self._history: deque[HistoryEntry] = deque(maxlen=history_max_len)
        self._history_seq = 0
        self._cooldowns: dict[str, tuple[datetime, datetime | None]] = {}
        self._listeners: set[asyncio.Queue[StoreEvent]] = set()

    async def ping(self) -> bool:
        return True

    async def get_score(self) -> int:
        await asyncio.sleep(0)
        if self._score is None:
            self._score = 0
            logger.info("Score initialized with 0")
        return self._score

    async def increment_score(self, delta: int) -> int | None:
        await asyncio.sleep(0)
        if not self.atomic_increment:
            return None
        # No await between read and write: atomic within the event loop
        self._score = (self._score or 0) + delta
        await self._notify_score(self._score)
        return self._score

    async def update_score(self, new_value: int) -> int | None:
        await asyncio.sleep(0)
        previous = self._score
        self._score = new_value
        await self._notify_score(new_value)
        return previous

    async def append_history(self, delta: int, new_score: int) -> HistoryEntry:
        await asyncio.sleep(0)
        self._history_seq += 1
        entry = HistoryEntry(
            id=self._history_seq,
            delta=delta,
            resulting_score=new_score,
            timestamp=self.clock(),
        )
        self._history.append(entry)
        await self.publish(StoreEvent(kind=StoreEventKind.HISTORY, entry=entry))
        return entry

    async def get_history(self, limit: int = 20) -> list[HistoryEntry]:
        await asyncio.sleep(0)
        if limit <= 0:
            return []
        return list(reversed(self._history))[:limit]

    async def get_cooldown(self, actor_id: str) -> datetime | None:
        await asyncio.sleep(0)
        record = self._cooldowns.get(actor_id)
        if record is None:
            return None
        last_mutation_at, expires_at = record
        if expires_at is not None and self.clock() >= expires_at:
            del self._cooldowns[actor_id]
            return None
        return last_mutation_at

    async def set_cooldown(
        self, actor_id: str, at: datetime, ttl_seconds: int | None = None
    ) -> None:
        await asyncio.sleep(0)
        expires_at = at + timedelta(seconds=ttl_seconds) if ttl_seconds else None
        self._cooldowns[actor_id] = (at, expires_at)

    async def publish(self, event: StoreEvent) -> int:
        for queue in list(self._listeners):
            queue.put_nowait(event)
        logger.debug(f"Published {event.kind.value} to {len(self._listeners)} listener(s)")
        return len(self._listeners)

    async def listen(self) -> AsyncIterator[StoreEvent]:
        queue: asyncio.Queue[StoreEvent] = asyncio.Queue()
        self._listeners.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._listeners.discard(queue)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def _notify_score(self, score: int) -> None:
        await self.publish(StoreEvent(kind=StoreEventKind.SCORE, score=score))
