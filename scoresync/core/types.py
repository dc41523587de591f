"""
Core type definitions for scoresync.

Backend selectors for the shared store and the local cache.
"""

from enum import Enum
from typing import Literal


class StoreType(Enum):
    """
    Supported remote store backends.
    """

    MEMORY = "memory"
    """In-process store - single worker only, lost on restart."""

    REDIS = "redis"
    """Redis store - shared across workers and hosts, requires Redis server."""


class LocalCacheType(Enum):
    """
    Supported local cache backends.
    """

    MEMORY = "memory"
    """Dict-backed cache - lost on restart."""

    JSON = "json"
    """JSON file cache - survives restarts, single process only."""


# Type aliases for user-friendly type hints
StoreTypeOptions = Literal["memory", "redis"]
LocalCacheTypeOptions = Literal["memory", "json"]


def validate_store_type(store_type: str) -> StoreType:
    """
    Validate and convert a store type string to StoreType enum.

    Raises:
        ValueError: If store_type is not supported

    Example:
        >>> validate_store_type("redis")
        StoreType.REDIS
    """
    try:
        return StoreType(store_type.lower())
    except ValueError:
        supported = [t.value for t in StoreType]
        raise ValueError(
            f"Unsupported store type: {store_type}. Supported types: {supported}"
        ) from None


def validate_local_cache_type(cache_type: str) -> LocalCacheType:
    """Validate and convert a local cache type string to LocalCacheType enum."""
    try:
        return LocalCacheType(cache_type.lower())
    except ValueError:
        supported = [t.value for t in LocalCacheType]
        raise ValueError(
            f"Unsupported local cache type: {cache_type}. Supported types: {supported}"
        ) from None
