"""
scoresync - one shared score, many concurrent clients.

A FastAPI service and library for a shared counter mutated through
increase/decrease actions, with an append-only history, a per-actor cooldown,
a deterministic daily rate and a live change feed.
"""

from .core.app import create_app
from .core.config.settings import settings
from .core.feed import ChangeFeed, Subscription
from .core.rate import RateDerivation, RateTracker
from .core.sync import SyncEngine
from .domain.enums import Direction

__version__ = settings.version

__all__ = [
    "ChangeFeed",
    "Direction",
    "RateDerivation",
    "RateTracker",
    "Subscription",
    "SyncEngine",
    "create_app",
    "settings",
]
