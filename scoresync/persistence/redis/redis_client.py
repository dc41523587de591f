# scoresync/persistence/redis/redis_client.py

"""
Per-process Redis pools for the shared score store.

Uvicorn workers fork after import, and a connection inherited from the parent
breaks pub/sub in the child. Pools are therefore keyed to the PID that created
them and rebuilt on first use in a new process.

One server, three logical databases:

    score     db 0   score counter and the notify channel
    history   db 1   history list and its sequence counter
    cooldown  db 2   per-actor cooldown records (expiring keys)
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import ClassVar, Literal, get_args

from redis.asyncio import ConnectionPool, Redis

log = logging.getLogger("RedisClient")

PoolAlias = Literal["score", "history", "cooldown"]

POOL_DB_MAPPING: dict[PoolAlias, int] = {
    "score": 0,
    "history": 1,
    "cooldown": 2,
}


def _strip_db(url: str) -> str:
    """redis://host:6379/5 -> redis://host:6379"""
    base = url.rstrip("/")
    head, _, tail = base.rpartition("/")
    if tail.isdigit() and "://" in head:
        log.warning(f"Ignoring database number in '{url}', pools pick their own")
        return head
    return base


class RedisClient:
    """Registry of the three score pools for the current process."""

    _pools: ClassVar[dict[PoolAlias, ConnectionPool]] = {}
    _clients: ClassVar[dict[PoolAlias, Redis]] = {}
    _pid: ClassVar[int | None] = None
    _base_url: ClassVar[str | None] = None
    _max_connections: ClassVar[int] = 64

    @classmethod
    def configure(cls, base_url: str, *, max_connections: int = 64) -> None:
        """
        Remember the server URL and build the pools for this process.

        Example:
            RedisClient.configure("redis://localhost:6379")
            # score -> /0, history -> /1, cooldown -> /2
        """
        cls._base_url = _strip_db(base_url)
        cls._max_connections = max_connections
        cls._ensure_pools()

    @classmethod
    def is_configured(cls) -> bool:
        return cls._base_url is not None

    @classmethod
    def _ensure_pools(cls) -> None:
        pid = os.getpid()
        if cls._pid != pid:
            if cls._pid is not None:
                log.info(f"Process forked ({cls._pid} -> {pid}), rebuilding Redis pools")
            cls._pools.clear()
            cls._clients.clear()
            cls._pid = pid

        for alias in get_args(PoolAlias):
            if alias in cls._pools:
                continue
            url = f"{cls._base_url}/{POOL_DB_MAPPING[alias]}"
            log.info(f"Creating Redis pool '{alias}' in PID {pid} ({url})")
            pool = ConnectionPool.from_url(
                url,
                decode_responses=True,
                encoding="utf-8",
                max_connections=cls._max_connections,
            )
            cls._pools[alias] = pool
            cls._clients[alias] = Redis(connection_pool=pool)

    @classmethod
    def client(cls, alias: PoolAlias = "score") -> Redis:
        """
        Client bound to one pool. No round trip is made here; connection
        errors surface on the first command.
        """
        if cls._base_url is None:
            raise RuntimeError("RedisClient.configure() must be called first")
        if cls._pid != os.getpid() or alias not in cls._clients:
            cls._ensure_pools()
        return cls._clients[alias]

    @classmethod
    @asynccontextmanager
    async def connection(cls, alias: PoolAlias = "score") -> AsyncIterator[Redis]:
        """
        Usage::

            async with RedisClient.connection("history") as r:
                await r.lrange("scoresync:history", -20, -1)
        """
        yield cls.client(alias)

    @classmethod
    async def ping_all(cls) -> dict[PoolAlias, str | None]:
        """PING every pool; maps alias to None when healthy, else the error text."""
        results: dict[PoolAlias, str | None] = {}
        for alias in get_args(PoolAlias):
            try:
                await cls.client(alias).ping()
                results[alias] = None
            except Exception as e:
                log.warning(f"Redis pool '{alias}' failed PING: {e}")
                results[alias] = str(e) or type(e).__name__
        return results

    @classmethod
    async def close(cls) -> None:
        """Disconnect every pool owned by this process."""
        if cls._pid != os.getpid():
            cls._pools.clear()
            cls._clients.clear()
            return

        for alias, pool in list(cls._pools.items()):
            log.info(f"Closing Redis pool '{alias}'")
            await pool.disconnect()
        cls._pools.clear()
        cls._clients.clear()
        cls._pid = None
        cls._base_url = None
