"""HTTP middleware for scoresync."""

from .actor_context import ActorContextMiddleware, TrustedProxies, resolve_actor
from .error_handler import ErrorHandlerMiddleware

__all__ = ["ActorContextMiddleware", "ErrorHandlerMiddleware", "TrustedProxies", "resolve_actor"]
