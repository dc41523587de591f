"""Commentary collaborator interface."""

from abc import ABC, abstractmethod


class ICommentaryProvider(ABC):
    """
    Produces a short text reaction to a score change.

    Implementations may call slow or unreliable services; callers are expected
    to wrap them with a timeout and a static fallback.
    """

    @abstractmethod
    async def comment(self, score: int, delta: int) -> str:
        """
        Args:
            score: Score after the change
            delta: Signed change that was applied

        Returns:
            Short commentary string
        """
        ...
