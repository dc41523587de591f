"""
scoresync domain layer: records, enums, errors and storage interfaces.
"""

from .enums import Direction, MutationPath, StoreEventKind
from .errors import (
    AtomicIncrementUnavailableError,
    CooldownActiveError,
    HistoryAppendError,
    LocalCacheWriteError,
    MutationInProgressError,
    PersistenceFailureError,
    ScoreSyncError,
    StoreUnreachableError,
    WriteConflictError,
)
from .models import (
    CooldownRecord,
    HistoryEntry,
    MutationResult,
    RateSnapshot,
    Scoreboard,
    StoreEvent,
)

__all__ = [
    "Direction",
    "MutationPath",
    "StoreEventKind",
    "ScoreSyncError",
    "CooldownActiveError",
    "MutationInProgressError",
    "StoreUnreachableError",
    "AtomicIncrementUnavailableError",
    "WriteConflictError",
    "HistoryAppendError",
    "LocalCacheWriteError",
    "PersistenceFailureError",
    "HistoryEntry",
    "CooldownRecord",
    "RateSnapshot",
    "MutationResult",
    "StoreEvent",
    "Scoreboard",
]
