"""
Dependency injection for API routes.

Components are created once in the application lifespan and read back from
app.state here.
"""

from fastapi import Request

from ..core.commentary import CommentaryService
from ..core.sync import SyncEngine
from .middleware.actor_context import resolve_actor


def get_engine(request: Request) -> SyncEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise RuntimeError("SyncEngine not initialized - is the lifespan running?")
    return engine


def get_commentary(request: Request) -> CommentaryService:
    return request.app.state.commentary


def get_actor_id(request: Request) -> str:
    """Actor resolved by ActorContextMiddleware, or resolved now."""
    return getattr(request.state, "actor_id", None) or resolve_actor(request)
