"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis relay).
Middleware, CORS, and routers all registered here.

The RealtimeHub is created per app and stored on app.state, so tests
can build a fresh app (and a fresh hub) without global state.
"""

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from laptoppos import __version__
from laptoppos.api import api_router
from laptoppos.config import settings
from laptoppos.log import configure_logging
from laptoppos.realtime.hub import RealtimeHub

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: FastAPI lifespan replaces on_event("startup") / on_event("shutdown").
    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "laptoppos.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from laptoppos.realtime.pubsub import close_redis, init_redis, relay_to_hub

    relay_task = None
    try:
        await init_redis()
        relay_task = asyncio.create_task(relay_to_hub(app.state.hub))
        logger.info("laptoppos.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("laptoppos.redis_unavailable", error=str(e))
        # Redis is optional; broadcasts stay local to this process
        await close_redis()

    yield

    # Shutdown
    logger.info("laptoppos.shutdown")

    if relay_task is not None:
        relay_task.cancel()
        try:
            await relay_task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            # Relay died earlier; still close the pool below
            logger.error("laptoppos.relay_failed", error=str(e))

    await close_redis()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="LaptopPOS Realtime",
        description="Live data-invalidation push for LaptopPOS clients",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.hub = RealtimeHub()

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RequestId → handler

    from laptoppos.middleware.request_id import RequestIdMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router)

    # Mount WebSocket route
    from laptoppos.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: laptoppos.main:app)
app = create_app()
