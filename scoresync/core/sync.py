"""
Score synchronization engine.

SyncEngine is the only writer of the shared score. A mutation runs:

    1. cooldown check           CooldownActiveError, nothing written
    2. rate + magnitude         fresh for today's calendar date
    3. commit through the tiers atomic -> fallback -> local
    4. history append           retried once, then logged
    5. local cache mirror       score + last mutation timestamp
    6. cooldown record          local ledger, remote ledger when reachable

The fallback tier is a plain read-modify-write. Two writers that read the same
value both write, and the second write wins; the loss is detected from the
previous value returned by the store and logged, never retried.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime

from ..domain.enums import Direction, MutationPath
from ..domain.errors import (
    AtomicIncrementUnavailableError,
    CooldownActiveError,
    HistoryAppendError,
    LocalCacheWriteError,
    MutationInProgressError,
    StoreUnreachableError,
    WriteConflictError,
)
from ..domain.interfaces.local_cache import ILocalCache
from ..domain.interfaces.score_store import IScoreStore
from ..domain.models import HistoryEntry, MutationResult, Scoreboard, utc_now
from ..persistence.tiers import TierChain, TierResult
from .cooldown import CooldownGuard
from .logging.context import get_current_actor_context, set_actor_context
from .logging.logger import get_logger
from .rate import RateDerivation, RateTracker

logger = get_logger(__name__)

SCORE_KEY = "score"
HISTORY_KEY = "history"
LAST_MUTATION_KEY = "last_mutation_at"


class SyncEngine:
    """
    Applies mutations to the shared score and serves its read views.

    Example:
        engine = SyncEngine(store, cache)
        result = await engine.apply_mutation("203.0.113.7", Direction.INCREASE)
        board = await engine.scoreboard("203.0.113.7")
    """

    def __init__(
        self,
        store: IScoreStore,
        cache: ILocalCache,
        *,
        guard: CooldownGuard | None = None,
        rates: RateTracker | None = None,
        clock: Callable[[], datetime] = utc_now,
        history_limit: int = 20,
        history_max_len: int = 500,
    ):
        self.store = store
        self.cache = cache
        self.clock = clock
        self.guard = guard or CooldownGuard(store, cache, clock=clock)
        self.rates = rates or RateTracker(RateDerivation(), cache)
        self.history_limit = history_limit
        self.history_max_len = history_max_len
        self._in_flight: set[str] = set()

        self._commit_chain: TierChain[int] = TierChain(
            [
                (MutationPath.ATOMIC.value, self._commit_atomic),
                (MutationPath.FALLBACK.value, self._commit_fallback),
                (MutationPath.LOCAL.value, self._commit_local),
            ],
            fallthrough=(
                StoreUnreachableError,
                AtomicIncrementUnavailableError,
                LocalCacheWriteError,
            ),
            name="commit",
        )
        self._score_chain: TierChain[int] = TierChain(
            [("remote", self._read_remote_score), ("local", self._read_local_score)],
            fallthrough=(StoreUnreachableError,),
            name="score-read",
        )

    # ---------- mutation ------------------------------------------------------

    async def apply_mutation(self, actor_id: str, direction: Direction) -> MutationResult:
        """
        Apply one increase/decrease for an actor.

        Raises:
            MutationInProgressError: The actor already has a mutation in flight
            CooldownActiveError: The actor mutated less than one window ago
            WriteConflictError: The fallback write failed after its retry
            PersistenceFailureError: Every storage tier failed
        """
        if actor_id in self._in_flight:
            raise MutationInProgressError(actor_id)

        self._in_flight.add(actor_id)
        previous_actor = get_current_actor_context()
        set_actor_context(actor_id)
        try:
            return await self._apply(actor_id, direction)
        finally:
            self._in_flight.discard(actor_id)
            set_actor_context(previous_actor)

    async def _apply(self, actor_id: str, direction: Direction) -> MutationResult:
        remaining = await self.guard.remaining(actor_id)
        if remaining.total_seconds() > 0:
            error = CooldownActiveError(actor_id, remaining)
            logger.info(f"Mutation rejected: {error.remaining_ms} ms of cooldown left")
            raise error

        now = self.clock()
        snapshot = self.rates.current(now)
        delta = self.rates.derivation.point_value(direction, snapshot.value)

        committed: TierResult[int] = await self._commit_chain.run(delta)
        path = MutationPath(committed.tier)
        new_score = committed.value

        if path is MutationPath.LOCAL:
            entry = self._append_local_history(delta, new_score, now)
        else:
            entry = await self._append_remote_history(delta, new_score)

        self._mirror_to_cache(new_score, now)
        await self.guard.record(actor_id, now)

        logger.info(
            f"Applied {direction.value} {delta:+d} at rate {snapshot.value} "
            f"-> {new_score} via {path.value}"
        )
        return MutationResult(
            new_score=new_score,
            delta=delta,
            direction=direction,
            rate=snapshot.value,
            path=path,
            synchronized=path is not MutationPath.LOCAL,
            entry=entry,
            applied_at=now,
        )

    # ---------- commit tiers --------------------------------------------------

    async def _commit_atomic(self, delta: int) -> int:
        try:
            new_score = await self.store.increment_score(delta)
        except StoreUnreachableError:
            raise
        except Exception as e:
            raise AtomicIncrementUnavailableError(f"Atomic increment failed: {e}") from e

        if new_score is None:
            raise AtomicIncrementUnavailableError("Store has no atomic increment")
        return new_score

    async def _commit_fallback(self, delta: int) -> int:
        last_error: Exception | None = None
        expected: int | None = None

        for attempt in (1, 2):
            try:
                expected = await self.store.get_score()
                new_score = expected + delta
                previous = await self.store.update_score(new_score)
            except StoreUnreachableError:
                raise
            except Exception as e:
                # A stored value that is not an integer fails the read as well
                last_error = e
                logger.warning(f"Fallback attempt {attempt} failed: {e}")
                continue

            if previous is not None and previous != expected:
                conflict = WriteConflictError(
                    f"Lost update on fallback path: read {expected}, store held {previous} "
                    f"before writing {new_score}",
                    expected=expected,
                    found=previous,
                )
                logger.error(str(conflict))
            return new_score

        raise WriteConflictError(
            f"Fallback write failed after retry: {last_error}", expected=expected
        ) from last_error

    async def _commit_local(self, delta: int) -> int:
        new_score = self.cache.get_int(SCORE_KEY) + delta
        if not self.cache.set(SCORE_KEY, str(new_score)):
            raise LocalCacheWriteError("Local cache rejected the score write")
        logger.warning(f"Remote store unreachable, score {new_score} kept locally only")
        return new_score

    # ---------- history -------------------------------------------------------

    async def _append_remote_history(self, delta: int, new_score: int) -> HistoryEntry | None:
        for attempt in (1, 2):
            try:
                return await self.store.append_history(delta, new_score)
            except Exception as e:
                if attempt == 1:
                    logger.warning(f"History append failed, retrying: {e}")
                    continue
                error = HistoryAppendError(f"History not recorded for {delta:+d} -> {new_score}")
                logger.error(f"{error}: {e}")
        return None

    def _append_local_history(
        self, delta: int, new_score: int, at: datetime
    ) -> HistoryEntry | None:
        entries = self._read_local_history()
        next_id = max((e.id for e in entries), default=0) + 1
        entry = HistoryEntry(id=next_id, delta=delta, resulting_score=new_score, timestamp=at)
        entries.append(entry)
        if self._write_local_history(entries[-self.history_max_len :]):
            return entry
        logger.error(str(HistoryAppendError("Local history write failed")))
        return None

    def _read_local_history(self) -> list[HistoryEntry]:
        raw = self.cache.get(HISTORY_KEY)
        if raw is None:
            return []
        try:
            return [HistoryEntry.model_validate(item) for item in json.loads(raw)]
        except (ValueError, TypeError) as e:
            logger.warning(f"Ignoring unreadable local history: {e}")
            return []

    def _write_local_history(self, entries: list[HistoryEntry]) -> bool:
        payload = json.dumps([e.model_dump(mode="json") for e in entries])
        return self.cache.set(HISTORY_KEY, payload)

    # ---------- local mirror --------------------------------------------------

    def _mirror_to_cache(self, new_score: int, at: datetime) -> None:
        items = {SCORE_KEY: str(new_score), LAST_MUTATION_KEY: at.isoformat()}
        if not (self.cache.set_many(items) or self.cache.set_many(items)):
            logger.error(f"Failed to mirror {', '.join(items)} to local cache")

    # ---------- reads ---------------------------------------------------------

    async def _read_remote_score(self) -> int:
        score = await self.store.get_score()
        if not self.cache.set(SCORE_KEY, str(score)):
            logger.warning("Failed to mirror remote score to local cache")
        return score

    async def _read_local_score(self) -> int:
        return self.cache.get_int(SCORE_KEY)

    async def read_score(self) -> TierResult[int]:
        """Current score, remote first; tier is "remote" or "local"."""
        return await self._score_chain.run()

    async def read_history(self, limit: int | None = None) -> list[HistoryEntry]:
        """Most recent entries, newest first. Falls back to the local history."""
        limit = self.history_limit if limit is None else limit
        if limit <= 0:
            return []
        try:
            return await self.store.get_history(limit)
        except StoreUnreachableError as e:
            logger.warning(f"Remote history unreachable, serving local history: {e}")
        return list(reversed(self._read_local_history()))[:limit]

    async def scoreboard(self, actor_id: str, limit: int | None = None) -> Scoreboard:
        """Read-only view of the score for one actor."""
        score = await self.read_score()
        history = await self.read_history(limit)
        snapshot = self.rates.current(self.clock())
        up, down = self.rates.derivation.split(snapshot.value)
        remaining = await self.guard.remaining(actor_id)

        return Scoreboard(
            score=score.value,
            history=history,
            rate=snapshot,
            up_magnitude=up,
            down_magnitude=down,
            cooldown_remaining_ms=int(remaining.total_seconds() * 1000),
            synchronized=score.tier == "remote",
        )
