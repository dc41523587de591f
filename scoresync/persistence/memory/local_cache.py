"""In-memory local cache. Lost on restart; useful for tests and ephemeral workers."""

from ...domain.interfaces.local_cache import ILocalCache


class MemoryLocalCache(ILocalCache):
    """Dict-backed ILocalCache."""

    name = "memory-cache"

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> bool:
        self._data[key] = value
        return True

    def delete(self, key: str) -> bool:
        self._data.pop(key, None)
        return True

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)
