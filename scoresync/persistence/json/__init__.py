"""
JSON Persistence Module

File-backed local cache that survives restarts.
"""

from .local_cache import JSONLocalCache

__all__ = ["JSONLocalCache"]
