"""
Emuji Backend: FastAPI Application Factory
=============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (uvicorn emuji.main:app) and by `python -m emuji`.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware:  [Request ID] → [Logging]               │
    │                                                      │
    │  Routes:      GET /health                            │
    │               GET /   GET /{spotify_uri}   POST /    │
    │                                                      │
    │  Exception handlers (plain-text bodies):             │
    │    ValidationError→400  NotFound→404  Database→500   │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, not fatal)
    3. Build the pooled Database and warm it to the idle floor
    Shutdown:
    1. Dispose the pool
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from emuji import __version__
from emuji.config import Settings, settings as default_settings
from emuji.database import Database
from emuji.exceptions import DatabaseError, NotFoundError, PoolTimeoutError, ValidationError
from emuji.middleware.logging import RequestLoggingMiddleware
from emuji.middleware.request_id import RequestIDMiddleware, request_id_var
from emuji.routes import emujis, health

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during startup, before the pool is built.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Own the connection pool for the lifetime of the app.

    A Database passed to create_app() is used as-is; otherwise one is built
    from settings. Either way it is disposed on shutdown.
    """
    config: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(config.log_level)
    logger.info("Emuji backend starting up...")

    try:
        config.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    if getattr(app.state, "database", None) is None:
        app.state.database = Database.from_settings(config)
    database: Database = app.state.database

    policy = database.policy
    logger.info(
        "Connection pool: min=%d max=%d acquire_timeout=%dms idle_timeout=%dms "
        "max_lifetime=%dms create_retry=%dms",
        policy.min_idle,
        policy.max_size,
        policy.acquire_timeout_ms,
        policy.idle_timeout_ms,
        policy.max_lifetime_ms,
        policy.create_retry_interval_ms,
    )

    try:
        opened = await database.warm()
        logger.info("Opened %d pooled connections", opened)
    except Exception as e:
        # The app still serves; requests fail with 500 until the database is back
        logger.error("Could not open initial pool connections: %s", str(e))

    logger.info("App listening on port %d", config.port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Emuji backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to plain-text responses.

    Handler hierarchy:
        ValidationError  → 400
        NotFoundError    → 404
        DatabaseError    → 500 (PoolTimeoutError and QueryError included)
        Exception        → 500 (unexpected errors)

    Bodies carry only the exception message; context and the chained driver
    error are logged server-side.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s | Context: %s", rid, exc.message, exc.context)
        return PlainTextResponse(exc.message, status_code=400)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        logger.info("[%s] %s: %s", rid, exc.message, exc.resource_id)
        return PlainTextResponse(exc.message, status_code=404)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        kind = "pool timeout" if isinstance(exc, PoolTimeoutError) else "query failure"
        logger.error(
            "[%s] error while attempting to %s: %s | Kind: %s | Context: %s",
            rid,
            exc.action or exc.message,
            exc.__cause__ or exc.message,
            kind,
            exc.context,
        )
        return PlainTextResponse(exc.message, status_code=500)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return PlainTextResponse("internal server error", status_code=500)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration; the module-level settings when omitted.
        database: A ready pool handle. When omitted the lifespan builds one.
    """
    app = FastAPI(
        title="Emuji API",
        description="Records emoji votes for songs and serves the latest picks.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings or default_settings
    app.state.database = database

    # Last added runs first: RequestID → Logging → route
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # /health before the catch-all /{spotify_uri}
    app.include_router(health.router)
    app.include_router(emujis.router)

    return app


app = create_app()
