"""API routes module for scoresync."""

from .health import router as health_router
from .score import router as score_router

__all__ = ["health_router", "score_router"]
