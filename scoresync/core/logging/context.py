"""
Request context management using contextvars for automatic propagation.

The actor identity is set once per request by ActorContextMiddleware and is
then available to every logger in the same async context.
"""

from contextvars import ContextVar

_actor_context: ContextVar[str | None] = ContextVar("actor_id", default=None)


def set_actor_context(actor_id: str | None) -> None:
    """
    Set the actor for the current async context.

    Args:
        actor_id: Network address or device key of the caller
    """
    _actor_context.set(actor_id)


def get_current_actor_context() -> str | None:
    """
    Get the current actor from context variables.

    Returns:
        Current actor id, or None if not set
    """
    return _actor_context.get()


def clear_actor_context() -> None:
    """Clear the actor context at the end of a request."""
    _actor_context.set(None)
