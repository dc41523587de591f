"""
Redis score store.

Implements IScoreStore on top of the RedisClient pools:

    score pool     scoresync:score          string counter (INCRBY / SET ... GET)
                   scoresync:notify         pub/sub channel carrying StoreEvent JSON
    history pool   scoresync:history        list of HistoryEntry JSON (RPUSH + LTRIM)
                   scoresync:history:seq    INCR sequence for entry ids
    cooldown pool  scoresync:cooldown:<id>  ISO timestamp, SET with EX = window

Connection and timeout errors from redis are translated into
StoreUnreachableError so callers can fall back to the next tier.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ...domain.enums import StoreEventKind
from ...domain.errors import StoreUnreachableError
from ...domain.interfaces.score_store import IScoreStore
from ...domain.models import HistoryEntry, StoreEvent
from .key_factory import KeyFactory, default_key_factory
from .redis_client import PoolAlias, RedisClient

logger = logging.getLogger("RedisScoreStore")

_UNREACHABLE = (RedisConnectionError, RedisTimeoutError, OSError)


def _to_int(raw: str | bytes | int | None) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return int(float(raw))


class RedisScoreStore(IScoreStore):
    """
    Shared score store backed by Redis.

    Args:
        redis: Optional client used for every pool (tests inject a mock here).
               Without it, connections come from RedisClient pools.
        keys: Key builder
        atomic_increment: When False, increment_score() reports the primitive
                          as unavailable and callers take the fallback path
        history_max_len: Retention window for the history list
    """

    name = "redis"

    def __init__(
        self,
        *,
        redis: Redis | None = None,
        keys: KeyFactory | None = None,
        atomic_increment: bool = True,
        history_max_len: int = 500,
    ):
        self._redis = redis
        self.keys = keys or default_key_factory
        self.atomic_increment = atomic_increment
        self.history_max_len = history_max_len

    @asynccontextmanager
    async def _connection(self, alias: PoolAlias) -> AsyncIterator[Redis]:
        try:
            if self._redis is not None:
                yield self._redis
            else:
                async with RedisClient.connection(alias) as redis:
                    yield redis
        except _UNREACHABLE as e:
            raise StoreUnreachableError(f"Redis unreachable ({alias}): {e}") from e

    # ---------- score ---------------------------------------------------------

    async def ping(self) -> bool:
        try:
            async with self._connection("score") as redis:
                return bool(await redis.ping())
        except StoreUnreachableError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def get_score(self) -> int:
        key = self.keys.score()
        async with self._connection("score") as redis:
            raw = await redis.get(key)
            if raw is None:
                # NX so a concurrent first writer is never overwritten
                if await redis.set(key, 0, nx=True):
                    logger.info(f"Score initialized with 0 at '{key}'")
                raw = await redis.get(key)
        return _to_int(raw) or 0

    async def increment_score(self, delta: int) -> int | None:
        if not self.atomic_increment:
            return None

        key = self.keys.score()
        async with self._connection("score") as redis:
            try:
                value = await redis.incrby(key, delta)
            except ResponseError as e:
                # INCRBY is refused when the key holds a non-integer or the command
                # is disabled; the engine then tries the read-modify-write tier
                logger.warning(f"INCRBY unavailable on '{key}': {e}")
                return None

        new_score = int(value)
        await self.publish(StoreEvent(kind=StoreEventKind.SCORE, score=new_score))
        return new_score

    async def update_score(self, new_value: int) -> int | None:
        key = self.keys.score()
        async with self._connection("score") as redis:
            previous = await redis.set(key, new_value, get=True)

        await self.publish(StoreEvent(kind=StoreEventKind.SCORE, score=new_value))
        return _to_int(previous)

    # ---------- history -------------------------------------------------------

    async def append_history(self, delta: int, new_score: int) -> HistoryEntry:
        key = self.keys.history()
        async with self._connection("history") as redis:
            seq = await redis.incr(self.keys.history_seq())
            entry = HistoryEntry(id=int(seq), delta=delta, resulting_score=new_score)
            async with redis.pipeline(transaction=True) as pipe:
                pipe.rpush(key, entry.model_dump_json())
                pipe.ltrim(key, -self.history_max_len, -1)
                await pipe.execute()

        logger.debug(f"Appended history entry {entry.id} ({delta:+d} -> {new_score})")
        await self.publish(StoreEvent(kind=StoreEventKind.HISTORY, entry=entry))
        return entry

    async def get_history(self, limit: int = 20) -> list[HistoryEntry]:
        if limit <= 0:
            return []

        async with self._connection("history") as redis:
            raw_entries = await redis.lrange(self.keys.history(), -limit, -1)

        entries: list[HistoryEntry] = []
        for raw in reversed(raw_entries):
            try:
                entries.append(HistoryEntry.model_validate_json(raw))
            except ValueError as e:
                logger.warning(f"Skipping unreadable history entry: {e}")
        return entries

    # ---------- cooldown ------------------------------------------------------

    async def get_cooldown(self, actor_id: str) -> datetime | None:
        async with self._connection("cooldown") as redis:
            raw = await redis.get(self.keys.cooldown(actor_id))
        if raw is None:
            return None
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            logger.warning(f"Ignoring unreadable cooldown record for '{actor_id}': {raw!r}")
            return None

    async def set_cooldown(
        self, actor_id: str, at: datetime, ttl_seconds: int | None = None
    ) -> None:
        async with self._connection("cooldown") as redis:
            await redis.set(
                self.keys.cooldown(actor_id), at.isoformat(), ex=ttl_seconds or None
            )

    # ---------- push channel --------------------------------------------------

    async def publish(self, event: StoreEvent) -> int:
        """Publish to the notify channel. Never raises; returns 0 on failure."""
        channel = self.keys.channel()
        try:
            async with self._connection("score") as redis:
                receivers = await redis.publish(channel, event.model_dump_json())
            logger.debug(f"Published {event.kind.value} to {channel} ({receivers} receivers)")
            return int(receivers)
        except (StoreUnreachableError, RedisError) as e:
            logger.error(f"Failed to publish {event.kind.value} to {channel}: {e}")
            return 0

    async def listen(self) -> AsyncIterator[StoreEvent]:
        channel = self.keys.channel()
        redis = self._redis or RedisClient.client("score")
        pubsub = redis.pubsub()
        try:
            await pubsub.subscribe(channel)
            logger.info(f"Subscribed to {channel}")
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    yield StoreEvent.model_validate_json(message["data"])
                except ValueError as e:
                    logger.warning(f"Ignoring malformed notification on {channel}: {e}")
        except _UNREACHABLE as e:
            raise StoreUnreachableError(f"Redis pubsub connection lost: {e}") from e
        finally:
            await pubsub.close()
