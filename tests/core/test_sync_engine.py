"""
Tests for SyncEngine: mutation commit paths, cooldown enforcement, history,
local cache mirroring and degraded local mode.
"""

import asyncio
import json
from datetime import date, datetime, timedelta

import pytest
from support import FailingLocalCache, UnreachableScoreStore, build_engine

from scoresync.core.sync import HISTORY_KEY, LAST_MUTATION_KEY, SCORE_KEY
from scoresync.domain.enums import Direction, MutationPath
from scoresync.domain.errors import (
    CooldownActiveError,
    MutationInProgressError,
    PersistenceFailureError,
    WriteConflictError,
)
from scoresync.persistence.json import JSONLocalCache
from scoresync.persistence.memory import MemoryLocalCache, MemoryScoreStore


class RacingStore(MemoryScoreStore):
    """Non-atomic store where two concurrent readers both see the same value."""

    def __init__(self, **kwargs):
        super().__init__(atomic_increment=False, **kwargs)
        self.barrier = asyncio.Barrier(2)

    async def get_score(self) -> int:
        value = await super().get_score()
        await self.barrier.wait()
        return value


class BrokenHistoryStore(MemoryScoreStore):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.append_calls = 0

    async def append_history(self, delta, new_score):
        self.append_calls += 1
        raise RuntimeError("history list is read-only")


class BrokenWriteStore(MemoryScoreStore):
    def __init__(self, **kwargs):
        super().__init__(atomic_increment=False, **kwargs)
        self.write_calls = 0

    async def update_score(self, new_value):
        self.write_calls += 1
        raise RuntimeError("write rejected")


class BrokenCooldownStore(MemoryScoreStore):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.cooldown_calls = 0

    async def set_cooldown(self, actor_id, at, ttl_seconds=None):
        self.cooldown_calls += 1
        raise RuntimeError("READONLY You can't write against a read only replica.")


class UnreadableScoreStore(MemoryScoreStore):
    """Store whose score key holds something that is not an integer."""

    def __init__(self, **kwargs):
        super().__init__(atomic_increment=False, **kwargs)
        self.read_calls = 0

    async def get_score(self) -> int:
        self.read_calls += 1
        raise ValueError("invalid literal for int() with base 10: 'abc'")


def expected_delta(engine, direction: Direction, now: datetime) -> int:
    rate = engine.rates.derivation.current_rate(engine.rates.today(now))
    return engine.rates.derivation.point_value(direction, rate)


class TestApplyMutation:
    @pytest.mark.asyncio
    async def test_increase_uses_atomic_path(self, engine, store, clock):
        delta = expected_delta(engine, Direction.INCREASE, clock())

        result = await engine.apply_mutation("a", Direction.INCREASE)

        assert result.path is MutationPath.ATOMIC
        assert result.synchronized is True
        assert result.delta == delta > 0
        assert result.new_score == delta
        assert await store.get_score() == delta

    @pytest.mark.asyncio
    async def test_decrease_is_negative(self, engine, clock):
        delta = expected_delta(engine, Direction.DECREASE, clock())

        result = await engine.apply_mutation("a", Direction.DECREASE)

        assert result.delta == delta < 0
        assert result.new_score == delta

    @pytest.mark.asyncio
    async def test_history_entry_matches_result(self, engine, store):
        result = await engine.apply_mutation("a", Direction.INCREASE)

        history = await store.get_history(1)
        assert result.entry is not None
        assert history == [result.entry]
        assert history[0].resulting_score == result.new_score
        assert history[0].delta == result.delta

    @pytest.mark.asyncio
    async def test_local_cache_mirrors_score_and_timestamp(self, engine, cache, clock):
        result = await engine.apply_mutation("a", Direction.INCREASE)

        assert cache.get(SCORE_KEY) == str(result.new_score)
        assert cache.get(LAST_MUTATION_KEY) == clock().isoformat()

    @pytest.mark.asyncio
    async def test_json_cache_is_rewritten_once_for_the_mirror(self, store, clock, tmp_path):
        cache = JSONLocalCache(tmp_path)
        engine = build_engine(store, cache, clock)
        engine.rates.current(clock())
        writes = []
        real_write = cache._write
        cache._write = lambda data: writes.append(sorted(data)) or real_write(data)

        result = await engine.apply_mutation("a", Direction.INCREASE)

        # One rewrite for the score mirror, one for the cooldown ledger
        assert len(writes) == 2
        reloaded = JSONLocalCache(tmp_path)
        assert reloaded.get(SCORE_KEY) == str(result.new_score)
        assert reloaded.get(LAST_MUTATION_KEY) == clock().isoformat()

    @pytest.mark.asyncio
    async def test_rate_comes_from_today(self, engine, clock):
        result = await engine.apply_mutation("a", Direction.INCREASE)
        assert result.rate == engine.rates.derivation.current_rate(date(2026, 10, 19))

    @pytest.mark.asyncio
    async def test_rate_is_recomputed_after_rollover(self, engine, clock):
        await engine.apply_mutation("a", Direction.INCREASE)
        clock.advance(days=1)

        result = await engine.apply_mutation("a", Direction.INCREASE)

        assert result.rate == engine.rates.derivation.current_rate(date(2026, 10, 20))


class TestCooldownEnforcement:
    @pytest.mark.asyncio
    async def test_second_mutation_one_second_later_is_rejected(self, engine, store, clock):
        first = await engine.apply_mutation("a", Direction.INCREASE)
        clock.advance(seconds=1)

        with pytest.raises(CooldownActiveError) as exc_info:
            await engine.apply_mutation("a", Direction.DECREASE)

        assert exc_info.value.remaining_ms == 299_000
        assert exc_info.value.remaining == timedelta(minutes=5) - timedelta(seconds=1)
        # Nothing was written
        assert await store.get_score() == first.new_score
        assert len(await store.get_history(10)) == 1

    @pytest.mark.asyncio
    async def test_mutation_allowed_after_window(self, engine, clock):
        await engine.apply_mutation("a", Direction.INCREASE)
        clock.advance(minutes=5)

        result = await engine.apply_mutation("a", Direction.INCREASE)
        assert result.entry.id == 2

    @pytest.mark.asyncio
    async def test_other_actors_are_not_blocked(self, engine):
        await engine.apply_mutation("a", Direction.INCREASE)
        result = await engine.apply_mutation("b", Direction.INCREASE)
        assert result.synchronized is True

    @pytest.mark.asyncio
    async def test_cooldown_resets_to_full_window(self, engine):
        await engine.apply_mutation("a", Direction.INCREASE)
        assert await engine.guard.remaining("a") == timedelta(minutes=5)


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_atomic_mutations_sum_exactly(self, engine, store):
        directions = [Direction.INCREASE if i % 3 else Direction.DECREASE for i in range(60)]

        results = await asyncio.gather(
            *(engine.apply_mutation(f"actor-{i}", d) for i, d in enumerate(directions))
        )

        assert all(r.path is MutationPath.ATOMIC for r in results)
        assert await store.get_score() == sum(r.delta for r in results)

        history = await store.get_history(100)
        assert [e.id for e in history] == list(range(60, 0, -1))

    @pytest.mark.asyncio
    async def test_same_actor_in_flight_is_rejected(self, engine):
        outcomes = await asyncio.gather(
            engine.apply_mutation("a", Direction.INCREASE),
            engine.apply_mutation("a", Direction.INCREASE),
            return_exceptions=True,
        )

        errors = [o for o in outcomes if isinstance(o, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], MutationInProgressError)

    @pytest.mark.asyncio
    async def test_fallback_race_ends_in_a_legal_state(self, cache, clock, caplog):
        store = RacingStore(clock=clock)
        await store.update_score(10)
        engine = build_engine(store, cache, clock)
        up, down = engine.rates.derivation.split(
            engine.rates.derivation.current_rate(engine.rates.today(clock()))
        )

        results = await asyncio.gather(
            engine.apply_mutation("a", Direction.INCREASE),
            engine.apply_mutation("b", Direction.DECREASE),
        )

        assert all(r.path is MutationPath.FALLBACK for r in results)
        assert {r.new_score for r in results} == {10 + up, 10 - down}
        # Read past the barrier, which only expects the two racing readers
        final = await MemoryScoreStore.get_score(store)
        assert final in (10 + up, 10 - down)
        assert any("Lost update" in record.getMessage() for record in caplog.records)


class TestFallbackPath:
    @pytest.mark.asyncio
    async def test_atomic_unavailable_uses_read_modify_write(self, cache, clock):
        store = MemoryScoreStore(atomic_increment=False, clock=clock)
        await store.update_score(40)
        engine = build_engine(store, cache, clock)

        result = await engine.apply_mutation("a", Direction.INCREASE)

        assert result.path is MutationPath.FALLBACK
        assert result.synchronized is True
        assert result.new_score == 40 + result.delta
        assert await store.get_score() == result.new_score

    @pytest.mark.asyncio
    async def test_failed_fallback_write_raises_write_conflict(self, cache, clock):
        store = BrokenWriteStore(clock=clock)
        engine = build_engine(store, cache, clock)

        with pytest.raises(WriteConflictError):
            await engine.apply_mutation("a", Direction.INCREASE)

        assert store.write_calls == 2

    @pytest.mark.asyncio
    async def test_unreadable_score_raises_write_conflict(self, cache, clock):
        store = UnreadableScoreStore(clock=clock)
        engine = build_engine(store, cache, clock)

        with pytest.raises(WriteConflictError):
            await engine.apply_mutation("a", Direction.INCREASE)

        assert store.read_calls == 2
        assert cache.get(SCORE_KEY) is None


class TestHistoryFailures:
    @pytest.mark.asyncio
    async def test_history_failure_keeps_score(self, cache, clock):
        store = BrokenHistoryStore(clock=clock)
        engine = build_engine(store, cache, clock)

        result = await engine.apply_mutation("a", Direction.INCREASE)

        assert result.entry is None
        assert result.synchronized is True
        assert await store.get_score() == result.new_score
        assert store.append_calls == 2


class TestCooldownRecordFailures:
    @pytest.mark.asyncio
    async def test_rejected_cooldown_write_keeps_mutation(self, cache, clock):
        store = BrokenCooldownStore(clock=clock)
        engine = build_engine(store, cache, clock)

        result = await engine.apply_mutation("a", Direction.INCREASE)

        assert result.synchronized is True
        assert await store.get_score() == result.new_score
        assert store.cooldown_calls == 2

    @pytest.mark.asyncio
    async def test_local_ledger_still_blocks_after_rejected_remote_write(self, cache, clock):
        store = BrokenCooldownStore(clock=clock)
        engine = build_engine(store, cache, clock)
        await engine.apply_mutation("a", Direction.INCREASE)
        clock.advance(seconds=1)

        with pytest.raises(CooldownActiveError):
            await engine.apply_mutation("a", Direction.INCREASE)


class TestLocalMode:
    @pytest.mark.asyncio
    async def test_unreachable_store_degrades_to_local(self, clock):
        cache = MemoryLocalCache({SCORE_KEY: "12"})
        engine = build_engine(UnreachableScoreStore(), cache, clock)

        result = await engine.apply_mutation("a", Direction.INCREASE)

        assert result.path is MutationPath.LOCAL
        assert result.synchronized is False
        assert result.new_score == 12 + result.delta
        assert cache.get(SCORE_KEY) == str(result.new_score)
        assert result.entry is not None and result.entry.id == 1
        assert json.loads(cache.get(HISTORY_KEY))[0]["resulting_score"] == result.new_score

    @pytest.mark.asyncio
    async def test_local_cooldown_still_applies_offline(self, cache, clock):
        engine = build_engine(UnreachableScoreStore(), cache, clock)
        await engine.apply_mutation("a", Direction.INCREASE)
        clock.advance(seconds=30)

        with pytest.raises(CooldownActiveError):
            await engine.apply_mutation("a", Direction.INCREASE)

    @pytest.mark.asyncio
    async def test_every_tier_failing_raises_persistence_failure(self, clock):
        engine = build_engine(UnreachableScoreStore(), FailingLocalCache(), clock)

        with pytest.raises(PersistenceFailureError) as exc_info:
            await engine.apply_mutation("a", Direction.INCREASE)

        assert len(exc_info.value.causes) == 3

    @pytest.mark.asyncio
    async def test_local_history_is_served_newest_first(self, cache, clock):
        engine = build_engine(UnreachableScoreStore(), cache, clock)
        await engine.apply_mutation("a", Direction.INCREASE)
        await engine.apply_mutation("b", Direction.DECREASE)

        history = await engine.read_history(10)

        assert [e.id for e in history] == [2, 1]


class TestReads:
    @pytest.mark.asyncio
    async def test_remote_read_overwrites_cached_score(self, store, clock):
        cache = MemoryLocalCache({SCORE_KEY: "999"})
        await store.update_score(7)
        engine = build_engine(store, cache, clock)

        score = await engine.read_score()

        assert (score.tier, score.value) == ("remote", 7)
        assert cache.get(SCORE_KEY) == "7"

    @pytest.mark.asyncio
    async def test_unreachable_read_serves_cached_score(self, clock):
        cache = MemoryLocalCache({SCORE_KEY: "42"})
        engine = build_engine(UnreachableScoreStore(), cache, clock)

        score = await engine.read_score()

        assert (score.tier, score.value) == ("local", 42)

    @pytest.mark.asyncio
    async def test_scoreboard(self, engine):
        result = await engine.apply_mutation("a", Direction.INCREASE)

        board = await engine.scoreboard("a")

        assert board.score == result.new_score
        assert board.history[0].resulting_score == board.score
        assert board.up_magnitude + board.down_magnitude == 10
        assert board.cooldown_remaining_ms == 300_000
        assert board.synchronized is True
        assert (await engine.scoreboard("b")).cooldown_remaining_ms == 0

    @pytest.mark.asyncio
    async def test_scoreboard_in_local_mode(self, cache, clock):
        engine = build_engine(UnreachableScoreStore(), cache, clock)

        board = await engine.scoreboard("a")

        assert board.synchronized is False
        assert board.score == 0
        assert board.history == []

    @pytest.mark.asyncio
    async def test_history_limit(self, engine, clock):
        for i in range(5):
            await engine.apply_mutation(f"actor-{i}", Direction.INCREASE)

        assert len(await engine.read_history(3)) == 3
        assert await engine.read_history(0) == []
