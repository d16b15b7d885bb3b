"""FastAPI application factory.

App factory pattern: create_app() returns a configured FastAPI instance
that owns one ConnectionRegistry, one NotificationBus and (from startup
on) one NotificationStore. Everything that needs them reads them from
app.state; there are no module-level singletons to reach into.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from beacon import __version__
from beacon.api import api_router
from beacon.config import Settings, settings as default_settings
from beacon.realtime.bus import NotificationBus
from beacon.realtime.registry import ConnectionRegistry
from beacon.storage.notification_store import NotificationStore

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    A store already placed on app.state (tests) is used as-is and left open.
    """
    cfg: Settings = app.state.settings
    logger.info(
        "beacon.starting",
        version=__version__,
        environment=cfg.environment,
        port=cfg.port,
    )

    owns_store = getattr(app.state, "store", None) is None
    if owns_store:
        store = NotificationStore.from_url(
            cfg.database_url,
            echo=cfg.debug,
            timeout=cfg.store_timeout_seconds,
            default_page=cfg.default_page,
            default_limit=cfg.default_page_limit,
            max_limit=cfg.max_page_limit,
        )
        if cfg.auto_create_schema:
            await store.init_schema()
        app.state.store = store

    yield

    logger.info("beacon.shutdown", **app.state.registry.stats())
    if owns_store:
        await app.state.store.close()
        app.state.store = None


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are a client error: 400, not 422."""
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    cfg = app_settings or default_settings
    app = FastAPI(
        title="Beacon",
        description="Per-user notifications: durable history plus real-time push",
        version=__version__,
        lifespan=lifespan,
    )

    registry = ConnectionRegistry()
    app.state.settings = cfg
    app.state.registry = registry
    app.state.bus = NotificationBus(registry, push_timeout=cfg.push_timeout_seconds)
    app.state.store = None

    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → handler

    from beacon.middleware.request_id import RequestIdMiddleware
    from beacon.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # Mount API routes
    app.include_router(api_router)

    # Mount WebSocket route (real-time pushes)
    from beacon.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: beacon.main:app)
app = create_app()
