from unittest.mock import AsyncMock, patch

import pytest

from scoresync.persistence.redis import POOL_DB_MAPPING, RedisClient, RedisManager
from scoresync.persistence.redis.redis_client import _strip_db


@pytest.fixture(autouse=True)
def reset_pools():
    yield
    # pools in these tests never open a socket
    RedisClient._pools.clear()
    RedisClient._clients.clear()
    RedisClient._pid = None
    RedisClient._base_url = None


class TestRedisClient:
    def test_strip_db(self):
        assert _strip_db("redis://localhost:6379/5") == "redis://localhost:6379"
        assert _strip_db("redis://localhost:6379/") == "redis://localhost:6379"
        assert _strip_db("redis://localhost:6379") == "redis://localhost:6379"

    def test_client_before_configure(self):
        with pytest.raises(RuntimeError):
            RedisClient.client("score")

    def test_one_pool_per_database(self):
        RedisClient.configure("redis://localhost:6379/9")

        for alias, db in POOL_DB_MAPPING.items():
            client = RedisClient.client(alias)
            assert client.connection_pool.connection_kwargs["db"] == db

        assert RedisClient.client("score") is RedisClient.client("score")


class TestRedisManager:
    @pytest.mark.asyncio
    async def test_initialize_requires_url(self):
        with patch("scoresync.persistence.redis.redis_manager.settings") as settings:
            settings.redis_url = None
            with pytest.raises(ValueError):
                await RedisManager.initialize()

    @pytest.mark.asyncio
    async def test_initialize_healthy(self):
        healthy = {alias: None for alias in POOL_DB_MAPPING}
        with patch.object(RedisClient, "ping_all", AsyncMock(return_value=healthy)):
            await RedisManager.initialize("redis://localhost:6379", max_connections=4)
            status = await RedisManager.get_health_status()

        assert status["configured"] is True
        assert status["healthy_at_startup"] is True
        assert {pool["status"] for pool in status["pools"].values()} == {"healthy"}

    @pytest.mark.asyncio
    async def test_unreachable_pools_stay_configured(self):
        results = {"score": "Connection refused", "history": None, "cooldown": None}
        with patch.object(RedisClient, "ping_all", AsyncMock(return_value=results)):
            with pytest.raises(ConnectionError, match="score:db0"):
                await RedisManager.initialize("redis://localhost:6379")

        assert RedisClient.is_configured()

        await RedisManager.cleanup()
        assert not RedisClient.is_configured()

    @pytest.mark.asyncio
    async def test_health_without_redis(self):
        assert await RedisManager.get_health_status() == {"configured": False, "pools": {}}
