"""
Redis Persistence Module

Shared score store backed by Redis pools, with pub/sub for the change feed.
"""

from .key_factory import KeyFactory, default_key_factory
from .redis_client import POOL_DB_MAPPING, PoolAlias, RedisClient
from .redis_manager import RedisManager
from .score_store import RedisScoreStore

__all__ = [
    "KeyFactory",
    "POOL_DB_MAPPING",
    "PoolAlias",
    "RedisClient",
    "RedisManager",
    "RedisScoreStore",
    "default_key_factory",
]
