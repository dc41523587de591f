"""
Redis lifecycle for the scoresync application.

Startup configures the pools and checks them once. A failed check does not
tear the pools down: the score store keeps using them, fails over to the
local tier while Redis is away, and picks Redis up again when it returns.
"""

import logging
from typing import Any

from ...core.config.settings import settings
from .redis_client import POOL_DB_MAPPING, RedisClient

logger = logging.getLogger(__name__)


class RedisManager:
    """Application-level wrapper around RedisClient."""

    _healthy_at_startup: bool = False

    @classmethod
    async def initialize(
        cls, redis_url: str | None = None, max_connections: int | None = None
    ) -> None:
        """
        Configure the pools and verify them.

        Args:
            redis_url: Redis server URL (defaults to settings.redis_url)
            max_connections: Max connections per pool (defaults to settings.redis_max_connections)

        Raises:
            ValueError: No Redis URL configured
            ConnectionError: At least one pool did not answer PING
        """
        url = redis_url or settings.redis_url
        if not url:
            raise ValueError("Redis URL not configured. Set REDIS_URL.")

        RedisClient.configure(
            url, max_connections=max_connections or settings.redis_max_connections
        )

        failures = {alias: err for alias, err in (await RedisClient.ping_all()).items() if err}
        cls._healthy_at_startup = not failures
        if failures:
            detail = ", ".join(
                f"{alias}:db{POOL_DB_MAPPING[alias]} ({err})" for alias, err in failures.items()
            )
            raise ConnectionError(f"Redis pools unreachable: {detail}")

        pools = ", ".join(f"{alias}:db{db}" for alias, db in POOL_DB_MAPPING.items())
        logger.info(f"✅ Redis pools ready ({pools})")

    @classmethod
    async def get_health_status(cls) -> dict[str, Any]:
        """Per-pool PING result, for the detailed health endpoint."""
        if not RedisClient.is_configured():
            return {"configured": False, "pools": {}}

        results = await RedisClient.ping_all()
        return {
            "configured": True,
            "healthy_at_startup": cls._healthy_at_startup,
            "pools": {
                alias: {
                    "database": POOL_DB_MAPPING[alias],
                    "status": "healthy" if error is None else "unhealthy",
                    "error": error,
                }
                for alias, error in results.items()
            },
        }

    @classmethod
    async def cleanup(cls) -> None:
        if not RedisClient.is_configured():
            return
        logger.info("Shutting down Redis pools...")
        await RedisClient.close()
        cls._healthy_at_startup = False
