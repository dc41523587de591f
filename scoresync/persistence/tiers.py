"""
Ordered storage tiers.

A TierChain is a list of named async callables tried in order; the first one
that returns wins. A tier that raises one of the `fallthrough` exceptions is
skipped and its error remembered; any other exception propagates immediately.
When every tier fell through, PersistenceFailureError carries all causes.

Example:
    chain = TierChain(
        [("atomic", commit_atomic), ("fallback", commit_rmw), ("local", commit_local)],
        fallthrough=(StoreUnreachableError, AtomicIncrementUnavailableError),
    )
    result = await chain.run(delta)
    result.tier   # "fallback"
    result.value  # whatever the winning tier returned
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ..domain.errors import PersistenceFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Tier = tuple[str, Callable[..., Awaitable[T]]]


@dataclass(frozen=True)
class TierResult(Generic[T]):
    tier: str
    value: T
    skipped: tuple[str, ...] = ()


class TierChain(Generic[T]):
    """Ordered backends, first success wins."""

    def __init__(
        self,
        tiers: Sequence[Tier],
        *,
        fallthrough: tuple[type[BaseException], ...],
        name: str = "tiers",
    ):
        if not tiers:
            raise ValueError("TierChain needs at least one tier")
        self.tiers = list(tiers)
        self.fallthrough = fallthrough
        self.name = name

    @property
    def tier_names(self) -> list[str]:
        return [tier_name for tier_name, _ in self.tiers]

    async def run(self, *args: Any, **kwargs: Any) -> TierResult[T]:
        causes: list[Exception] = []
        skipped: list[str] = []

        for tier_name, operation in self.tiers:
            try:
                value = await operation(*args, **kwargs)
            except self.fallthrough as e:
                logger.warning(f"{self.name}: tier '{tier_name}' unavailable ({e})")
                causes.append(e)  # type: ignore[arg-type]
                skipped.append(tier_name)
                continue

            if skipped:
                logger.info(f"{self.name}: served by '{tier_name}' after skipping {skipped}")
            return TierResult(tier=tier_name, value=value, skipped=tuple(skipped))

        raise PersistenceFailureError(
            f"{self.name}: all tiers failed ({', '.join(self.tier_names)})", causes
        )
