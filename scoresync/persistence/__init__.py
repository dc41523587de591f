"""
scoresync persistence layer.

Remote stores (Redis, memory), local caches (JSON file, memory), the ordered
tier chain and the backend selectors.
"""

from .factory import create_local_cache, create_score_store
from .tiers import TierChain, TierResult

__all__ = ["TierChain", "TierResult", "create_local_cache", "create_score_store"]
