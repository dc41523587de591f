"""
Pydantic records for the shared score, its history and the daily rate.

All timestamps are timezone-aware UTC datetimes. Records that cross a storage
or network boundary (HistoryEntry, StoreEvent) round-trip through
model_dump_json()/model_validate_json() unchanged.
"""

from __future__ import annotations

from datetime import UTC, date, datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import Direction, MutationPath, StoreEventKind


def utc_now() -> datetime:
    return datetime.now(UTC)


class HistoryEntry(BaseModel):
    """
    One applied mutation. Appended exactly once, never modified.

    `id` is a sequence number issued by the store that wrote the entry, so
    entries sharing a timestamp are still ordered by generation.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1)
    delta: int
    resulting_score: int
    timestamp: datetime = Field(default_factory=utc_now)


class CooldownRecord(BaseModel):
    """Last accepted mutation time for one actor."""

    actor_id: str = Field(..., min_length=1)
    last_mutation_at: datetime


class RateSnapshot(BaseModel):
    """The rate derived for one calendar day."""

    model_config = ConfigDict(frozen=True)

    value: float
    computed_for: date


class MutationResult(BaseModel):
    """
    Outcome of SyncEngine.apply_mutation().

    `entry` is None when history could not be appended; `synchronized` is
    False when the mutation only reached the local cache.
    """

    new_score: int
    delta: int
    direction: Direction
    rate: float
    path: MutationPath
    synchronized: bool = True
    entry: HistoryEntry | None = None
    applied_at: datetime = Field(default_factory=utc_now)


class StoreEvent(BaseModel):
    """Notification carried on the change feed."""

    kind: StoreEventKind
    score: int | None = None
    entry: HistoryEntry | None = None
    rate: RateSnapshot | None = None
    timestamp: datetime = Field(default_factory=utc_now)


class Scoreboard(BaseModel):
    """Read-only view handed to presentation code."""

    score: int
    history: list[HistoryEntry] = Field(default_factory=list)
    rate: RateSnapshot
    up_magnitude: int
    down_magnitude: int
    cooldown_remaining_ms: int = 0
    synchronized: bool = True
