"""
Score API endpoints.

- GET  /api/score               Scoreboard for the calling actor
- POST /api/score/{direction}   Apply an increase or decrease
- GET  /api/history             Most recent history entries, newest first
- GET  /api/rate                Today's rate and the up/down split
- WS   /api/feed                Live score, history and rate changes
"""

import asyncio
import math
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect

from ...core.commentary import CommentaryService
from ...core.config.settings import settings
from ...core.logging.logger import get_logger
from ...core.sync import SyncEngine
from ...domain.enums import Direction, StoreEventKind
from ...domain.errors import (
    CooldownActiveError,
    MutationInProgressError,
    PersistenceFailureError,
    WriteConflictError,
)
from ...domain.models import HistoryEntry, Scoreboard, StoreEvent
from ..dependencies import get_actor_id, get_commentary, get_engine
from ..middleware.actor_context import resolve_actor
from ..models import MutationResponse, RateView

logger = get_logger(__name__)

router = APIRouter(
    tags=["Score"],
    responses={
        409: {"description": "Conflict - A mutation from this actor is in flight"},
        429: {"description": "Rate Limited - Cooldown active"},
        503: {"description": "Service Unavailable - Score could not be persisted"},
    },
)


@router.get("/score", response_model=Scoreboard, summary="Current Scoreboard")
async def get_scoreboard(
    limit: int = Query(settings.history_limit, ge=1, le=settings.history_max_len),
    engine: SyncEngine = Depends(get_engine),
    actor_id: str = Depends(get_actor_id),
) -> Scoreboard:
    """Score, recent history, today's rate and the caller's cooldown."""
    return await engine.scoreboard(actor_id, limit)


@router.post(
    "/score/{direction}",
    response_model=MutationResponse,
    summary="Mutate Score",
    description="Apply one increase or decrease, scaled by today's rate",
)
async def mutate_score(
    direction: Direction,
    commentary: bool = Query(False, description="Include a short reaction to the change"),
    engine: SyncEngine = Depends(get_engine),
    commentary_service: CommentaryService = Depends(get_commentary),
    actor_id: str = Depends(get_actor_id),
) -> MutationResponse:
    """
    Apply a mutation for the calling actor.

    Raises:
        HTTPException 429: Cooldown active (Retry-After in seconds)
        HTTPException 409: A mutation from this actor is already in flight
        HTTPException 503: Every storage tier failed, or the fallback write failed
    """
    try:
        result = await engine.apply_mutation(actor_id, direction)
    except CooldownActiveError as e:
        raise HTTPException(
            status_code=429,
            detail={"message": "Cooldown active", "remaining_ms": e.remaining_ms},
            headers={"Retry-After": str(math.ceil(e.remaining_ms / 1000))},
        ) from e
    except MutationInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except (PersistenceFailureError, WriteConflictError) as e:
        logger.error(f"Mutation failed: {e}")
        raise HTTPException(status_code=503, detail="Score could not be persisted") from e

    response = MutationResponse(**result.model_dump())
    if commentary:
        response.commentary = await commentary_service.react(result.new_score, result.delta)
    return response


@router.get("/history", response_model=list[HistoryEntry], summary="Recent History")
async def get_history(
    limit: int = Query(settings.history_limit, ge=1, le=settings.history_max_len),
    engine: SyncEngine = Depends(get_engine),
) -> list[HistoryEntry]:
    return await engine.read_history(limit)


@router.get("/rate", response_model=RateView, summary="Daily Rate")
async def get_rate(
    day: date | None = Query(None, description="Calendar date (defaults to today)"),
    engine: SyncEngine = Depends(get_engine),
) -> RateView:
    if day is None:
        snapshot = engine.rates.current(engine.clock())
    else:
        snapshot = engine.rates.derivation.snapshot(day)
    up, down = engine.rates.derivation.split(snapshot.value)
    return RateView(rate=snapshot, up_magnitude=up, down_magnitude=down)


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


@router.websocket("/feed")
async def score_feed(websocket: WebSocket) -> None:
    """Stream StoreEvent JSON for every score, history and rate change."""
    await websocket.accept()
    actor_id = resolve_actor(websocket)
    logger.info(f"Feed client connected: {actor_id}")

    queue: asyncio.Queue[StoreEvent] = asyncio.Queue()
    unsubscribe = websocket.app.state.feed.subscribe(
        on_score=lambda score: queue.put_nowait(
            StoreEvent(kind=StoreEventKind.SCORE, score=score)
        ),
        on_history_entry=lambda entry: queue.put_nowait(
            StoreEvent(kind=StoreEventKind.HISTORY, entry=entry)
        ),
        on_rate_change=lambda rate: queue.put_nowait(
            StoreEvent(kind=StoreEventKind.RATE, rate=rate)
        ),
    )
    disconnected = asyncio.create_task(_wait_for_disconnect(websocket))

    try:
        while not disconnected.done():
            next_event = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait(
                {next_event, disconnected}, return_when=asyncio.FIRST_COMPLETED
            )
            if next_event in done:
                await websocket.send_text(next_event.result().model_dump_json())
            else:
                next_event.cancel()
    finally:
        unsubscribe()
        disconnected.cancel()
        logger.info(f"Feed client disconnected: {actor_id}")
