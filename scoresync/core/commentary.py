"""
Commentary on score changes.

Providers are external collaborators (a language model, a canned script).
CommentaryService bounds each call with a timeout and falls back to a static
line, so a slow or failing provider never holds up a response.
"""

from __future__ import annotations

import asyncio
import logging

from ..domain.interfaces.commentary import ICommentaryProvider

logger = logging.getLogger(__name__)

CLIMBING = "The score is climbing!"
SLIDING = "The score is sliding down!"


def static_comment(delta: int) -> str:
    return CLIMBING if delta > 0 else SLIDING


class StaticCommentary(ICommentaryProvider):
    """Provider that always answers with the static line."""

    async def comment(self, score: int, delta: int) -> str:
        return static_comment(delta)


class CommentaryService:
    def __init__(self, provider: ICommentaryProvider | None = None, *, timeout: float = 3.0):
        self.provider = provider or StaticCommentary()
        self.timeout = timeout

    async def react(self, score: int, delta: int) -> str:
        try:
            text = await asyncio.wait_for(
                self.provider.comment(score, delta), timeout=self.timeout
            )
        except TimeoutError:
            logger.warning(f"Commentary provider timed out after {self.timeout}s")
            return static_comment(delta)
        except Exception as e:
            logger.error(f"Commentary provider failed: {e}")
            return static_comment(delta)

        text = (text or "").strip()
        return text or static_comment(delta)
