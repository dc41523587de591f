"""
Local persistence interface.

A device- or process-scoped string key/value store. Synchronous, single
owner, no transactional guarantee across keys.
"""

from abc import ABC, abstractmethod


class ILocalCache(ABC):
    """Interface for the local read-through, write-fallback cache."""

    name: str = "local"

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored string, or None."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> bool:
        """
        Store a string value.

        Returns:
            True if the value was persisted, False otherwise
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if removed or absent, False on error
        """
        ...

    def set_many(self, items: dict[str, str]) -> bool:
        """
        Store several values at once. Backends that persist on every write
        override this to persist once per call.

        Returns:
            True if every value was persisted
        """
        return all([self.set(key, value) for key, value in items.items()])

    def get_int(self, key: str, default: int = 0) -> int:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return int(float(raw))
        except ValueError:
            return default
