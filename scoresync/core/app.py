"""
FastAPI application factory for scoresync.

Startup wires the storage tiers, the engine and the change feed onto
app.state; shutdown releases the store and the Redis pools.
"""

from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from fastapi import FastAPI

from ..domain.interfaces.commentary import ICommentaryProvider
from ..domain.interfaces.local_cache import ILocalCache
from ..domain.interfaces.score_store import IScoreStore
from ..domain.models import utc_now
from ..persistence.factory import create_local_cache, create_score_store
from ..persistence.redis.redis_manager import RedisManager
from .commentary import CommentaryService
from .config.settings import settings
from .cooldown import CooldownGuard
from .feed import ChangeFeed
from .logging.logger import get_app_logger, setup_app_logging
from .rate import RateDerivation, RateTracker
from .sync import SyncEngine


async def _startup(
    app: FastAPI,
    *,
    store: IScoreStore | None,
    cache: ILocalCache | None,
    commentary_provider: ICommentaryProvider | None,
    clock: Callable[[], datetime],
    uses_redis: bool,
) -> None:
    logger = get_app_logger()

    if uses_redis:
        try:
            await RedisManager.initialize()
        except ConnectionError as e:
            # Pools exist but are unhealthy: mutations degrade to the local tier
            logger.error(f"❌ Redis unavailable at startup, starting in LOCAL MODE: {e}")

    app_store = store or create_score_store()
    app_cache = cache or create_local_cache()

    rates = RateTracker(RateDerivation.from_settings(), app_cache, tz=settings.time_zone)
    guard = CooldownGuard(
        app_store,
        app_cache,
        window=timedelta(seconds=settings.cooldown_seconds),
        clock=clock,
    )

    app.state.store = app_store
    app.state.cache = app_cache
    app.state.rates = rates
    app.state.engine = SyncEngine(
        app_store,
        app_cache,
        guard=guard,
        rates=rates,
        clock=clock,
        history_limit=settings.history_limit,
        history_max_len=settings.history_max_len,
    )
    app.state.feed = ChangeFeed(
        app_store,
        rates,
        clock=clock,
        rate_check_interval=settings.feed_rate_check_seconds,
    )
    app.state.commentary = CommentaryService(
        commentary_provider, timeout=settings.commentary_timeout
    )

    logger.info(
        f"✅ scoresync {settings.version} ready - store: {app_store.name}, "
        f"cache: {app_cache.name}, rate today: {rates.current(clock()).value}"
    )


async def _shutdown(app: FastAPI, *, uses_redis: bool) -> None:
    logger = get_app_logger()

    store: IScoreStore | None = getattr(app.state, "store", None)
    if store is not None:
        await store.close()
    if uses_redis:
        await RedisManager.cleanup()

    logger.info("🛑 scoresync shut down")


def create_app(
    *,
    store: IScoreStore | None = None,
    cache: ILocalCache | None = None,
    commentary_provider: ICommentaryProvider | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """
    Build the scoresync FastAPI application.

    Args:
        store: Remote store to use instead of the one selected by REMOTE_STORE
        cache: Local cache to use instead of the one selected by LOCAL_CACHE
        commentary_provider: Optional commentary collaborator (static lines otherwise)
        clock: Time source shared by the engine, the cooldown guard and the feed

    Returns:
        FastAPI application
    """
    from ..api.middleware.actor_context import ActorContextMiddleware
    from ..api.middleware.error_handler import ErrorHandlerMiddleware
    from ..api.routes import health, score

    uses_redis = store is None and settings.remote_store == "redis"

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_app_logging()
        logger = get_app_logger()
        logger.debug("🚀 Starting scoresync lifespan startup phase...")
        try:
            await _startup(
                app,
                store=store,
                cache=cache,
                commentary_provider=commentary_provider,
                clock=clock,
                uses_redis=uses_redis,
            )
        except Exception as e:
            logger.error(f"❌ Error during startup phase: {e}", exc_info=True)
            raise

        try:
            yield
        finally:
            await _shutdown(app, uses_redis=uses_redis)

    app = FastAPI(
        title="scoresync",
        description="Shared score with per-actor cooldown and a daily rate",
        version=settings.version,
        lifespan=lifespan,
    )

    # Last added runs first: errors wrap the actor context
    app.add_middleware(ActorContextMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)

    app.include_router(health.router)
    app.include_router(score.router, prefix="/api")

    return app
