"""
Remote score store interface.

Defines the contract every shared store (Redis, in-memory) implements for the
singleton score, the append-only history, the per-actor cooldown ledger and the
push channel that feeds observers.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from datetime import datetime

from ..models import HistoryEntry, StoreEvent


class IScoreStore(ABC):
    """
    Interface for the durable, multi-client score store.

    Connectivity failures surface as StoreUnreachableError from every method.
    Writes to the score and to the history publish a StoreEvent on the push
    channel, whoever made them.
    """

    name: str = "remote"

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the store answers."""
        ...

    @abstractmethod
    async def get_score(self) -> int:
        """
        Read the current score, creating it with value 0 if absent.

        Returns:
            Current score
        """
        ...

    @abstractmethod
    async def increment_score(self, delta: int) -> int | None:
        """
        Atomically add delta to the score.

        Args:
            delta: Signed amount to add

        Returns:
            Post-increment score, or None when the atomic primitive is unavailable
        """
        ...

    @abstractmethod
    async def update_score(self, new_value: int) -> int | None:
        """
        Unconditionally overwrite the score (non-atomic fallback path).

        Args:
            new_value: Value to store

        Returns:
            The value that was stored before the write, None if there was none
        """
        ...

    @abstractmethod
    async def append_history(self, delta: int, new_score: int) -> HistoryEntry:
        """
        Append one history entry and return it with its store-issued id.

        Args:
            delta: Applied magnitude (signed)
            new_score: Score after applying delta

        Returns:
            The stored HistoryEntry
        """
        ...

    @abstractmethod
    async def get_history(self, limit: int = 20) -> list[HistoryEntry]:
        """
        Most recent history entries, newest first.

        Args:
            limit: Maximum number of entries

        Returns:
            List of HistoryEntry, newest first
        """
        ...

    @abstractmethod
    async def get_cooldown(self, actor_id: str) -> datetime | None:
        """Last accepted mutation time for an actor, or None."""
        ...

    @abstractmethod
    async def set_cooldown(
        self, actor_id: str, at: datetime, ttl_seconds: int | None = None
    ) -> None:
        """
        Overwrite the cooldown record for an actor.

        Args:
            actor_id: Actor identity (network address or device key)
            at: Mutation timestamp
            ttl_seconds: Optional expiry for the record
        """
        ...

    @abstractmethod
    async def publish(self, event: StoreEvent) -> int:
        """
        Push a notification to every listener.

        Returns:
            Number of listeners that received it
        """
        ...

    @abstractmethod
    def listen(self) -> AsyncIterator[StoreEvent]:
        """
        Async iterator over notifications from the push channel.

        Each call opens an independent subscription; closing the iterator
        releases it.
        """
        ...

    async def close(self) -> None:
        """Release store resources. No-op by default."""
        return None
