"""
PlaceMarker API: FastAPI Application Factory
============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       the lifespan hydrates the spatial store on startup and releases the
       database engine and the shared HTTP client on shutdown.
Who:   uvicorn (uvicorn placemarker.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                          │
    │                                                          │
    │  Middleware:  Request ID → Logging → GZip → CORS          │
    │                                                          │
    │  Routes:                                                 │
    │   /api/state, /api/places*, /api/search-radius,          │
    │   /api/region                    → SpatialStore           │
    │   /api/location/refresh,                                 │
    │   /api/device*                   → LocationProvider       │
    │   /api/notes/{place_id}          → NotesSyncService       │
    │   /api/discovery/*               → PlacesDiscoveryClient  │
    │   /health                                                │
    │                                                          │
    │  Exception Handlers: PlaceMarkerError tree → 400…503      │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config check → hydrate saved places
    Shutdown: close HTTP client → dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from placemarker import __version__
from placemarker.config import settings
from placemarker.database import dispose_engine
from placemarker.dependencies import close_http_client, get_spatial_store
from placemarker.exceptions import (
    DiscoveryError,
    IdentityUnavailableError,
    LocationUnavailableError,
    NoteSyncError,
    NotFoundError,
    PermissionDeniedError,
    PlaceMarkerError,
    StorageError,
    ValidationError,
)
from placemarker.middleware.logging import RequestLoggingMiddleware
from placemarker.middleware.request_id import RequestIDMiddleware, request_id_var
from placemarker.routes import discovery, health, location, notes, places

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at the configured level.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("PlaceMarker %s starting up", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Missing integrations narrow the feature set; the service still runs.
        logger.warning("Configuration incomplete: %s", e)

    hydrated = await get_spatial_store().hydrate()
    if not hydrated.ok:
        logger.error("Starting with no saved places: %s", hydrated.error.message)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("PlaceMarker shutting down")
    await close_http_client()
    await dispose_engine()
    logger.info("Shutdown complete")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

_STATUS_BY_ERROR = (
    (ValidationError, 400, "validation_error"),
    (PermissionDeniedError, 403, "permission_denied"),
    (NotFoundError, 404, "not_found"),
    (StorageError, 500, "storage_error"),
    (NoteSyncError, 502, "note_sync_error"),
    (DiscoveryError, 502, "discovery_error"),
    (LocationUnavailableError, 503, "location_unavailable"),
    (IdentityUnavailableError, 503, "identity_unavailable"),
)


def _error_response(status_code: int, error: str, exc: PlaceMarkerError) -> JSONResponse:
    rid = request_id_var.get("")
    # Storage context may hold SQL; it stays in the log.
    details = None if isinstance(exc, StorageError) else (exc.context or None)
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": exc.message,
            "details": details,
            "request_id": rid,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the PlaceMarkerError tree to HTTP responses.

        ValidationError           → 400
        PermissionDeniedError     → 403
        NotFoundError             → 404
        StorageError              → 500
        NoteSyncError             → 502
        DiscoveryError            → 502
        LocationUnavailableError  → 503
        IdentityUnavailableError  → 503
        PlaceMarkerError (base)   → 500
        Exception (fallback)      → 500, details logged only
    """

    def make_handler(status_code: int, error: str):
        async def handler(request: Request, exc: PlaceMarkerError) -> JSONResponse:
            log = logger.error if status_code >= 500 else logger.warning
            log("[%s] %s: %s | %s", request_id_var.get(""), error, exc.message, exc.context)
            return _error_response(status_code, error, exc)

        return handler

    for exc_class, status_code, error in _STATUS_BY_ERROR:
        app.add_exception_handler(exc_class, make_handler(status_code, error))

    app.add_exception_handler(PlaceMarkerError, make_handler(500, "server_error"))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="PlaceMarker API",
        description=(
            "Mark places on a map, see the marked places within a search radius "
            "of your location, and keep a private note on each place."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Last added runs first: RequestID → Logging → GZip → CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(places.router)
    app.include_router(location.router)
    app.include_router(notes.router)
    app.include_router(discovery.router)
    app.include_router(health.router)

    return app


app = create_app()
