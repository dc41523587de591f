"""
Error taxonomy for the score synchronization subsystem.

Only CooldownActiveError, MutationInProgressError, WriteConflictError and
PersistenceFailureError ever reach a caller of SyncEngine.apply_mutation().
The others are recovered internally (fallback to the next tier) or logged.
"""

from __future__ import annotations

from datetime import timedelta


class ScoreSyncError(Exception):
    """Base class for every scoresync error."""


class CooldownActiveError(ScoreSyncError):
    """The actor mutated too recently. Expected, user-facing, no writes happened."""

    def __init__(self, actor_id: str, remaining: timedelta):
        self.actor_id = actor_id
        self.remaining = remaining
        super().__init__(
            f"Cooldown active for actor '{actor_id}': {self.remaining_ms} ms remaining"
        )

    @property
    def remaining_ms(self) -> int:
        return max(0, int(self.remaining.total_seconds() * 1000))


class MutationInProgressError(ScoreSyncError):
    """A second mutation from the same actor arrived while the first is in flight."""

    def __init__(self, actor_id: str):
        self.actor_id = actor_id
        super().__init__(f"Mutation already in progress for actor '{actor_id}'")


class StoreUnreachableError(ScoreSyncError):
    """The remote store could not be contacted. Transient; triggers fallback."""


class AtomicIncrementUnavailableError(ScoreSyncError):
    """The store has no usable atomic increment right now."""


class WriteConflictError(ScoreSyncError):
    """
    The non-atomic fallback path lost, or may have lost, a concurrent update.

    Logged when a lost update is detected after the fact. Raised only when the
    fallback write itself could not be completed after its retry.
    """

    def __init__(self, message: str, *, expected: int | None = None, found: int | None = None):
        self.expected = expected
        self.found = found
        super().__init__(message)


class HistoryAppendError(ScoreSyncError):
    """History could not be appended. Non-fatal; the score update stands."""


class PersistenceFailureError(ScoreSyncError):
    """Every storage tier failed."""

    def __init__(self, message: str, causes: list[Exception] | None = None):
        self.causes = causes or []
        super().__init__(message)


class LocalCacheWriteError(ScoreSyncError):
    """The local cache rejected a write. Last-tier failure; never reaches a caller."""
