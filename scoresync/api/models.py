"""Response models specific to the HTTP surface."""

from pydantic import BaseModel

from ..domain.models import MutationResult, RateSnapshot


class MutationResponse(MutationResult):
    """MutationResult plus an optional reaction from the commentary collaborator."""

    commentary: str | None = None


class RateView(BaseModel):
    rate: RateSnapshot
    up_magnitude: int
    down_magnitude: int
