"""
Daily rate derivation.

Every observer derives the same rate for the same calendar date without any
network call: a per-day seed string is hashed to a number in [0, 1) and mapped
through the inverse CDF of a triangular distribution peaked at NEUTRAL, so
values cluster around the midpoint and taper towards MIN and MAX.

The rate is a game mechanic, not a secret.

Algorithm:
    u = int(sha256(f"{prefix}:{YYYY-MM-DD}")[:8]) / 2**64
    u <  0.5: rate = MIN + (NEUTRAL - MIN) * sqrt(2u)
    u >= 0.5: rate = MAX - (MAX - NEUTRAL) * sqrt(2(1 - u))

The rate then reshapes the split of a constant total swing between the
increase and decrease magnitudes (see RateDerivation.split).
"""

from __future__ import annotations

import hashlib
import logging
import math
from datetime import date, datetime, tzinfo
from zoneinfo import ZoneInfo

from ..domain.enums import Direction
from ..domain.interfaces.local_cache import ILocalCache
from ..domain.models import RateSnapshot

logger = logging.getLogger(__name__)

RATE_MIN = 0.1
RATE_NEUTRAL = 2.0
RATE_MAX = 3.9
DEFAULT_POINT_TOTAL = 10
MAGNITUDE_FLOOR = 1
DEFAULT_SEED_PREFIX = "scoresync-rate"


def seed_for(day: date, prefix: str = DEFAULT_SEED_PREFIX) -> str:
    return f"{prefix}:{day.isoformat()}"


def unit_interval(seed: str) -> float:
    """Hash a seed string to a float in [0, 1)."""
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") / 2**64


def rate_from_unit(
    u: float,
    *,
    minimum: float = RATE_MIN,
    neutral: float = RATE_NEUTRAL,
    maximum: float = RATE_MAX,
) -> float:
    """Map u in [0, 1) onto [minimum, maximum], clustered around neutral."""
    if u < 0.5:
        value = minimum + (neutral - minimum) * math.sqrt(2 * u)
    else:
        value = maximum - (maximum - neutral) * math.sqrt(2 * (1 - u))
    return round(min(max(value, minimum), maximum), 2)


class RateDerivation:
    """
    Pure rate and magnitude functions, parameterized by bounds and total swing.

    Example:
        rates = RateDerivation()
        rate = rates.current_rate(date(2026, 10, 19))
        up, down = rates.split(rate)
    """

    def __init__(
        self,
        *,
        minimum: float = RATE_MIN,
        neutral: float = RATE_NEUTRAL,
        maximum: float = RATE_MAX,
        total: int = DEFAULT_POINT_TOTAL,
        floor: int = MAGNITUDE_FLOOR,
        seed_prefix: str = DEFAULT_SEED_PREFIX,
    ):
        if not minimum < neutral < maximum:
            raise ValueError("Rate bounds must satisfy minimum < neutral < maximum")
        if floor < 0 or 2 * floor > total:
            raise ValueError("Magnitude floor must be between 0 and total / 2")

        self.minimum = minimum
        self.neutral = neutral
        self.maximum = maximum
        self.total = total
        self.floor = floor
        self.seed_prefix = seed_prefix

    @classmethod
    def from_settings(cls) -> RateDerivation:
        from .config.settings import settings

        return cls(total=settings.point_total, seed_prefix=settings.rate_seed_prefix)

    # ---------- rate ---------------------------------------------------------

    def current_rate(self, day: date) -> float:
        """Rate for a calendar date. Same input, same output, on any machine."""
        u = unit_interval(seed_for(day, self.seed_prefix))
        return rate_from_unit(
            u, minimum=self.minimum, neutral=self.neutral, maximum=self.maximum
        )

    def snapshot(self, day: date) -> RateSnapshot:
        return RateSnapshot(value=self.current_rate(day), computed_for=day)

    def clamp(self, rate: float) -> float:
        if math.isnan(rate):
            return self.neutral
        return min(max(rate, self.minimum), self.maximum)

    # ---------- magnitudes ---------------------------------------------------

    def split(self, rate: float) -> tuple[int, int]:
        """
        Split the total swing into (up, down) magnitudes for a rate.

        up + down == total for every input. At neutral both halves are equal
        (for an even total); towards minimum `up` grows linearly to
        total - floor while `down` shrinks to floor, and mirrored towards
        maximum.
        """
        r = self.clamp(rate)
        half = self.total / 2
        span = half - self.floor

        if r <= self.neutral:
            shift = (self.neutral - r) / (self.neutral - self.minimum)
            up_exact = half + shift * span
        else:
            shift = (r - self.neutral) / (self.maximum - self.neutral)
            up_exact = half - shift * span

        # Round half up so every platform agrees
        up = int(math.floor(up_exact + 0.5))
        return up, self.total - up

    def point_value(self, direction: Direction, rate: float) -> int:
        """Signed score change for one action at the given rate."""
        up, down = self.split(rate)
        return up if direction is Direction.INCREASE else -down


class RateTracker:
    """
    Holds today's RateSnapshot and notices when the calendar date rolls over.

    The derived value is recomputed on every call (it is cheap and pure); the
    tracker only remembers the last snapshot so rollover can be reported, and
    mirrors it to the local cache.
    """

    RATE_KEY = "rate_snapshot"

    def __init__(
        self,
        derivation: RateDerivation,
        cache: ILocalCache | None = None,
        tz: str | tzinfo = "UTC",
    ):
        self.derivation = derivation
        self.cache = cache
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz
        self._snapshot: RateSnapshot | None = None

    def today(self, now: datetime) -> date:
        return now.astimezone(self.tz).date()

    def current(self, now: datetime) -> RateSnapshot:
        """Fresh snapshot for the calendar date of `now`."""
        snapshot = self.derivation.snapshot(self.today(now))
        if snapshot != self._snapshot:
            if self._snapshot is not None:
                logger.info(
                    f"Rate rolled over: {self._snapshot.value} ({self._snapshot.computed_for}) "
                    f"-> {snapshot.value} ({snapshot.computed_for})"
                )
            self._snapshot = snapshot
            if self.cache is not None and not self.cache.set(
                self.RATE_KEY, snapshot.model_dump_json()
            ):
                logger.warning("Failed to mirror rate snapshot to local cache")
        return snapshot
