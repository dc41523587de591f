"""
Memory Persistence Module

In-process score store and local cache.
"""

from .local_cache import MemoryLocalCache
from .score_store import MemoryScoreStore

__all__ = ["MemoryScoreStore", "MemoryLocalCache"]
