"""
Domain interfaces for scoresync storage and collaborators.
"""

from .commentary import ICommentaryProvider
from .local_cache import ILocalCache
from .score_store import IScoreStore

__all__ = ["IScoreStore", "ILocalCache", "ICommentaryProvider"]
