"""
Outbound Ops API — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes logging setup, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn outbound_api.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                      FastAPI App                        │
    │                                                         │
    │  ASGI Middleware:  CORS → GZip                          │
    │                                                         │
    │  Per-route wrapper (with_request_logging):              │
    │  ┌──────────┐ ┌────────┐ ┌─────────┐ ┌───────────────┐  │
    │  │ Req ID   │→│ Timer  │→│ Handler │→│ Metrics / Log │  │
    │  └──────────┘ └────────┘ └─────────┘ └───────────────┘  │
    │                                                         │
    │  Routes: /api/health  /api/ping  /api/metrics           │
    │          /api/users/ops/{ops_id}  /api/lookup/...       │
    │          /api/auth/change-password  /api/auth/logout    │
    │                                                         │
    │  Backstop handlers: OutboundError / Exception → 500     │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  structured logging → error reporting → log startup
    Shutdown: dispose database engine → log shutdown
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from outbound_api import __version__
from outbound_api.config import settings
from outbound_api.database import dispose_engine
from outbound_api.exceptions import OutboundError
from outbound_api.middleware.request_context import (
    REQUEST_ID_HEADER,
    RequestContextFilter,
    get_request_id,
)
from outbound_api.routes import auth, health, lookup, metrics, users
from outbound_api.services.monitoring import init_error_reporting

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Structured Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(service)s %(name)s [%(request_id)s]: %(message)s

    The RequestContextFilter sits on the handler, so every record, from any
    module, carries the service name and the current request id. Structured
    fields passed through `extra=` stay available to JSON formatters.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter(settings.service_name))

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(service)s %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    init_error_reporting()
    logger.info(
        "%s %s (%s) starting up [environment=%s]",
        settings.app_name,
        settings.app_version,
        settings.service_name,
        settings.environment,
    )
    logger.info(
        "Rate limits: session %d/%dms, auth %d/%dms",
        settings.rate_limit_max_requests,
        settings.rate_limit_window_ms,
        settings.auth_rate_limit_max_requests,
        settings.auth_rate_limit_window_ms,
    )

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Backstop handlers for failures outside with_request_logging.

    Wrapped routes never reach these: the wrapper already converts their
    failures. These cover dependencies that fail before the handler runs
    (for example the session dependency's commit) and any unwrapped route.
    The response body matches the wrapper's generic 500.
    """

    def _internal_error() -> JSONResponse:
        rid = get_request_id()
        headers = {REQUEST_ID_HEADER: rid} if rid else None
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "request_id": rid or None},
            headers=headers,
        )

    @app.exception_handler(OutboundError)
    async def handle_outbound_error(request: Request, exc: OutboundError):
        logger.error("Unhandled application error: %s | Context: %s", exc.message, exc.context)
        return _internal_error()

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return _internal_error()


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title=f"{settings.app_name} API",
        description=(
            "Internal operations API: health, metrics, user lookup and session "
            "endpoints behind request logging, rate limiting and validation."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition: GZip → CORS → route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,  # session cookie
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "Retry-After",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(users.router)
    app.include_router(lookup.router)
    app.include_router(auth.router)

    return app


# uvicorn expects `outbound_api.main:app` to be importable
app = create_app()
