"""
Per-actor cooldown.

An actor may mutate the score once per window. The last accepted mutation is
recorded in two ledgers, the local cache and the remote store, and the
remaining wait is the stricter of the two. Clearing one ledger (a wiped
browser, a restarted worker) is not enough to skip the wait.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import datetime, timedelta

from ..domain.errors import StoreUnreachableError
from ..domain.interfaces.local_cache import ILocalCache
from ..domain.interfaces.score_store import IScoreStore
from ..domain.models import CooldownRecord, utc_now

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(minutes=5)


def local_cooldown_key(actor_id: str) -> str:
    return f"cooldown:{actor_id}"


class CooldownGuard:
    """Answers how long an actor still has to wait, and records accepted mutations."""

    def __init__(
        self,
        store: IScoreStore,
        cache: ILocalCache,
        *,
        window: timedelta = DEFAULT_WINDOW,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.cache = cache
        self.window = window
        self.clock = clock

    async def remaining(self, actor_id: str) -> timedelta:
        """Remaining wait for an actor; zero when neither ledger has a record."""
        now = self.clock()
        local_at = self._read_local(actor_id)

        remote_at: datetime | None = None
        try:
            remote_at = await self.store.get_cooldown(actor_id)
        except StoreUnreachableError as e:
            logger.warning(f"Remote cooldown ledger unreachable for '{actor_id}': {e}")

        return max(self._remaining_since(local_at, now), self._remaining_since(remote_at, now))

    async def record(self, actor_id: str, at: datetime) -> bool:
        """
        Record an accepted mutation in both ledgers.

        Runs after the score is committed, so it never raises: each ledger
        write is retried once and a second failure is only logged.

        Returns:
            True if the remote ledger was updated as well as the local one
        """
        key = local_cooldown_key(actor_id)
        payload = CooldownRecord(actor_id=actor_id, last_mutation_at=at).model_dump_json()
        if not (self.cache.set(key, payload) or self.cache.set(key, payload)):
            logger.error(f"Failed to record local cooldown for '{actor_id}'")

        ttl = math.ceil(self.window.total_seconds())
        for attempt in (1, 2):
            try:
                await self.store.set_cooldown(actor_id, at, ttl_seconds=ttl or None)
                return True
            except StoreUnreachableError as e:
                logger.warning(f"Remote cooldown not recorded for '{actor_id}': {e}")
                return False
            except Exception as e:
                if attempt == 1:
                    logger.warning(f"Remote cooldown write failed, retrying: {e}")
                    continue
                logger.error(f"Remote cooldown not recorded for '{actor_id}': {e}")
        return False

    def _read_local(self, actor_id: str) -> datetime | None:
        raw = self.cache.get(local_cooldown_key(actor_id))
        if raw is None:
            return None
        try:
            return CooldownRecord.model_validate_json(raw).last_mutation_at
        except ValueError:
            logger.warning(f"Ignoring unreadable local cooldown for '{actor_id}': {raw!r}")
            return None

    def _remaining_since(self, at: datetime | None, now: datetime) -> timedelta:
        if at is None:
            return timedelta(0)
        remaining = self.window - (now - at)
        # A timestamp from the future (clock skew) never extends past one window
        return min(max(remaining, timedelta(0)), self.window)
