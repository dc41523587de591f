"""
Change feed.

Observers subscribe with up to three callbacks and get back a Subscription
handle. Score and history changes arrive from the store's push channel;
rate changes are detected locally by polling the rate tracker, since every
observer derives the same rate for the same day.

Delivery is best effort: while the push channel is down the listener backs
off and reconnects, and nothing is replayed.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from contextlib import aclosing
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from ...domain.enums import StoreEventKind
from ...domain.interfaces.score_store import IScoreStore
from ...domain.models import HistoryEntry, RateSnapshot, StoreEvent, utc_now
from ..rate import RateTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Plain function or coroutine function
Callback = Callable[[T], Any]


@dataclass(frozen=True)
class Backoff:
    """
    Wait between push channel reconnects: base_delay doubled per consecutive
    failure, capped at max_delay. max_attempts=None retries forever.
    """

    base_delay: float = 1.0
    max_delay: float = 60.0
    max_attempts: int | None = None

    def delay(self, failures: int) -> float:
        if failures <= 1:
            return self.base_delay
        return min(self.base_delay * 2 ** (failures - 1), self.max_delay)

    def exhausted(self, failures: int) -> bool:
        return self.max_attempts is not None and failures >= self.max_attempts


def _log_task_result(task: asyncio.Task) -> None:
    if task.cancelled():
        logger.debug(f"Feed task {task.get_name()} cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Feed task {task.get_name()} failed: {exc}", exc_info=exc)


async def _invoke(callback: Callback[T], value: T) -> None:
    try:
        result = callback(value)
        if inspect.isawaitable(result):
            await result
    except Exception:
        name = getattr(callback, "__name__", repr(callback))
        logger.exception(f"Change feed callback {name} failed")


class Subscription:
    """
    Handle returned by ChangeFeed.subscribe().

    Calling it unsubscribes. Calling it again, or calling it on a subscription
    that never connected, does nothing.
    """

    def __init__(self, tasks: list[asyncio.Task] | None = None):
        self._tasks = tasks or []
        self._closed = False

    def __call__(self) -> None:
        if self._closed:
            return
        self._closed = True
        for task in self._tasks:
            task.cancel()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active(self) -> bool:
        return not self._closed and any(not task.done() for task in self._tasks)

    async def wait_closed(self) -> None:
        """Wait until every feed task has finished after unsubscribing."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


class ChangeFeed:
    """
    Push subscription for score, history and rate changes.

    Example:
        feed = ChangeFeed(store, rates)
        unsubscribe = feed.subscribe(on_score=lambda score: print(score))
        ...
        unsubscribe()
    """

    def __init__(
        self,
        store: IScoreStore,
        rates: RateTracker,
        *,
        clock: Callable[[], datetime] = utc_now,
        rate_check_interval: float = 60.0,
        backoff: Backoff | None = None,
    ):
        self.store = store
        self.rates = rates
        self.clock = clock
        self.rate_check_interval = rate_check_interval
        self.backoff = backoff or Backoff()

    def subscribe(
        self,
        on_score: Callback[int] | None = None,
        on_history_entry: Callback[HistoryEntry] | None = None,
        on_rate_change: Callback[RateSnapshot] | None = None,
    ) -> Subscription:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, change feed subscription is inert")
            return Subscription()

        tasks: list[asyncio.Task] = []
        if on_score or on_history_entry or on_rate_change:
            tasks.append(
                loop.create_task(
                    self._listen(on_score, on_history_entry, on_rate_change),
                    name="scoresync-feed-listener",
                )
            )
        if on_rate_change:
            tasks.append(
                loop.create_task(
                    self._watch_rate(on_rate_change), name="scoresync-feed-rate"
                )
            )

        for task in tasks:
            task.add_done_callback(_log_task_result)
        return Subscription(tasks)

    # ---------- push channel --------------------------------------------------

    async def _listen(
        self,
        on_score: Callback[int] | None,
        on_history_entry: Callback[HistoryEntry] | None,
        on_rate_change: Callback[RateSnapshot] | None,
    ) -> None:
        failures = 0

        while True:
            try:
                async with aclosing(self.store.listen()) as events:
                    async for event in events:
                        if failures:
                            logger.info(f"Push channel back after {failures} failed attempts")
                            failures = 0
                        await self._dispatch(event, on_score, on_history_entry, on_rate_change)
                logger.info("Push channel closed by the store")
            except Exception as e:
                logger.warning(f"Push channel error: {e}")

            failures += 1
            if self.backoff.exhausted(failures):
                logger.error(f"Giving up on push channel after {failures} attempts")
                return
            delay = self.backoff.delay(failures)
            logger.info(f"Reconnecting push channel in {delay:.1f}s (attempt {failures})")
            await asyncio.sleep(delay)

    async def _dispatch(
        self,
        event: StoreEvent,
        on_score: Callback[int] | None,
        on_history_entry: Callback[HistoryEntry] | None,
        on_rate_change: Callback[RateSnapshot] | None,
    ) -> None:
        if event.kind is StoreEventKind.SCORE and event.score is not None:
            if on_score:
                await _invoke(on_score, event.score)
        elif event.kind is StoreEventKind.HISTORY and event.entry is not None:
            if on_history_entry:
                await _invoke(on_history_entry, event.entry)
        elif event.kind is StoreEventKind.RATE and event.rate is not None:
            if on_rate_change:
                await _invoke(on_rate_change, event.rate)

    # ---------- local rate rollover -------------------------------------------

    async def _watch_rate(self, on_rate_change: Callback[RateSnapshot]) -> None:
        current = self.rates.current(self.clock())
        while True:
            await asyncio.sleep(self.rate_check_interval)
            snapshot = self.rates.current(self.clock())
            if snapshot != current:
                current = snapshot
                await _invoke(on_rate_change, snapshot)
