"""
Backend selectors for scoresync persistence.

Builds the remote store and local cache from a type string (or the settings).
"""

from ..core.config.settings import settings
from ..core.types import (
    LocalCacheType,
    StoreType,
    validate_local_cache_type,
    validate_store_type,
)
from ..domain.interfaces.local_cache import ILocalCache
from ..domain.interfaces.score_store import IScoreStore


def create_score_store(store_type: str | None = None) -> IScoreStore:
    """
    Create the remote score store.

    Args:
        store_type: "redis" or "memory" (defaults to settings.remote_store)

    Returns:
        IScoreStore instance. The Redis store expects RedisManager to be
        initialized before first use.

    Raises:
        ValueError: If store_type is not supported
    """
    kind = validate_store_type(store_type or settings.remote_store)

    if kind is StoreType.REDIS:
        try:
            from .redis.score_store import RedisScoreStore
        except ImportError as e:
            raise ImportError(
                f"Redis dependencies not available for store_type='redis': {e}"
            ) from e

        return RedisScoreStore(
            atomic_increment=settings.atomic_increment,
            history_max_len=settings.history_max_len,
        )

    from .memory.score_store import MemoryScoreStore

    return MemoryScoreStore(
        atomic_increment=settings.atomic_increment,
        history_max_len=settings.history_max_len,
    )


def create_local_cache(
    cache_type: str | None = None, cache_dir: str | None = None
) -> ILocalCache:
    """
    Create the local cache.

    Args:
        cache_type: "json" or "memory" (defaults to settings.local_cache)
        cache_dir: Directory for the JSON cache file (defaults to settings.local_cache_dir)
    """
    kind = validate_local_cache_type(cache_type or settings.local_cache)

    if kind is LocalCacheType.JSON:
        from .json.local_cache import JSONLocalCache

        return JSONLocalCache(cache_dir or settings.local_cache_dir)

    from .memory.local_cache import MemoryLocalCache

    return MemoryLocalCache()
