from __future__ import annotations

from pydantic import BaseModel, Field


class KeyFactory(BaseModel):
    """Pure stateless helpers for scoresync Redis key generation."""

    namespace: str = Field(default="scoresync")
    score_name: str = Field(default="score")
    history_name: str = Field(default="history")
    cooldown_prefix: str = Field(default="cooldown")
    channel_name: str = Field(default="notify")

    # ---- builders ---------------------------------------------------------
    def score(self) -> str:
        return f"{self.namespace}:{self.score_name}"

    def history(self) -> str:
        return f"{self.namespace}:{self.history_name}"

    def history_seq(self) -> str:
        return f"{self.namespace}:{self.history_name}:seq"

    def cooldown(self, actor_id: str) -> str:
        safe_actor = actor_id.replace(":", "_")
        return f"{self.namespace}:{self.cooldown_prefix}:{safe_actor}"

    def channel(self) -> str:
        return f"{self.namespace}:{self.channel_name}"


# Default instance for global use
default_key_factory = KeyFactory()
