"""
Enumerations shared across the scoresync domain.
"""

from enum import Enum


class Direction(str, Enum):
    """The two actions a client can take on the shared score."""

    INCREASE = "increase"
    DECREASE = "decrease"

    @property
    def sign(self) -> int:
        return 1 if self is Direction.INCREASE else -1


class MutationPath(str, Enum):
    """Which storage tier committed a mutation."""

    ATOMIC = "atomic"
    """Remote atomic increment - linearizable across concurrent writers."""

    FALLBACK = "fallback"
    """Remote read-modify-write - can lose an update under a concurrent writer."""

    LOCAL = "local"
    """Local cache only - remote store unreachable, not synchronized."""


class StoreEventKind(str, Enum):
    """Kinds of notification carried on the change feed."""

    SCORE = "score"
    HISTORY = "history"
    RATE = "rate"
