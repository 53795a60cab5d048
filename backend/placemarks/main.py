"""
Placemarks Backend: FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app(settings) builds the collaborators, stores them on
       app.state, registers middleware, exception handlers and routers.
Who:   uvicorn (`uvicorn placemarks.main:app`) and the test suite, which
       builds its own app from test Settings.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Logging → Cache Headers       │
    │               → GZip → CORS                              │
    │                                                          │
    │  Routes:      /api/places/*   /api/maintenance/report    │
    │               /api/monitoring/indexes   /api/version     │
    │               /api/health/database   /health   /auth/*   │
    │                                                          │
    │  app.state:   settings, places_client, auth_service,     │
    │               engine, maintenance_service, index_monitor │
    │                                                          │
    │  Handlers:    ValidationError→400  unknown path→404      │
    │               UpstreamServiceError→500  Exception→500    │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:   configure logging, report missing credentials (the server
               still starts so /health can say what is wrong)
    Shutdown:  close the Places HTTP pool, dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from placemarks import __version__
from placemarks.config import Settings, settings as default_settings
from placemarks.database import build_engine, build_session_factory, dispose_engine
from placemarks.exceptions import (
    PlacemarksError,
    UpstreamServiceError,
    ValidationError,
)
from placemarks.middleware.cache_headers import CacheHeadersMiddleware
from placemarks.middleware.logging import RequestLoggingMiddleware
from placemarks.middleware.request_id import RequestIDMiddleware, request_id_var
from placemarks.routes import auth, health, maintenance, monitoring, places, version
from placemarks.services.auth_service import SupabaseAuthService
from placemarks.services.index_monitor import IndexMonitor
from placemarks.services.maintenance_service import MaintenanceService
from placemarks.services.places_client import PlacesClient

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure the root logger once, writing to stdout.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request chatter; our own access log covers these
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    cfg: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(cfg.log_level)
    logger.info("=" * 60)
    logger.info("Placemarks Backend %s starting up (%s)", __version__, cfg.environment)

    try:
        cfg.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", e)

    logger.info("Server ready at http://%s:%d", cfg.backend_host, cfg.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Placemarks Backend shutting down...")
    await app.state.places_client.aclose()
    await dispose_engine(app.state.engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def upstream_error_body(exc: UpstreamServiceError, request_id: str) -> Dict[str, Any]:
    """
    Route-shaped 500 body. Key order follows the envelope:
    success, error, details, timestamp, request_id.
    """
    body: Dict[str, Any] = {}
    if exc.envelope:
        body["success"] = False
    body["error"] = exc.message
    if exc.details is not None:
        body["details"] = exc.details
    if exc.timestamp is not None:
        body["timestamp"] = exc.timestamp
    body["request_id"] = request_id
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes and JSON envelopes.

        ValidationError       → 400
        Unknown path          → 404
        UpstreamServiceError  → 500 (route-specific envelope)
        PlacemarksError       → 500
        Exception             → 500 (generic message, stack trace logged)

    Response bodies never carry stack traces or driver messages beyond what
    the raising route chose to expose.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        rid = request_id_var.get("")
        if exc.status_code == 404:
            content = {"error": "Not found", "path": request.url.path, "request_id": rid}
        else:
            content = {"error": str(exc.detail), "request_id": rid}
        return JSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(UpstreamServiceError)
    async def handle_upstream_error(request: Request, exc: UpstreamServiceError):
        rid = request_id_var.get("")
        # The route already logged the underlying failure with its traceback.
        logger.info("[%s] Responding 500: %s", rid, exc.message)
        return JSONResponse(status_code=500, content=upstream_error_body(exc, rid))

    @app.exception_handler(PlacemarksError)
    async def handle_placemarks_error(request: Request, exc: PlacemarksError):
        rid = request_id_var.get("")
        logger.error("[%s] Unhandled application error: %s | Context: %s",
                     rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "request_id": rid},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "request_id": rid},
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build a fully wired application.

    Args:
        settings: Configuration to use; defaults to the environment-loaded
                  module settings. Tests pass their own.

    Collaborators are constructed here rather than in the lifespan so an
    app driven through httpx.ASGITransport (which skips lifespan events)
    is still complete. Nothing connects until first use.
    """
    cfg = settings or default_settings

    app = FastAPI(
        title="Placemarks API",
        description=(
            "Backend for Placemarks: Google Places proxy, Supabase OAuth "
            "callback, and database maintenance / index monitoring reports."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Collaborators ─────────────────────────────────────────────────────
    engine = build_engine(cfg)
    session_factory = build_session_factory(engine)
    maintenance_service = MaintenanceService(session_factory)

    app.state.settings = cfg
    app.state.engine = engine
    app.state.places_client = PlacesClient(cfg)
    app.state.auth_service = SupabaseAuthService(cfg)
    app.state.maintenance_service = maintenance_service
    app.state.index_monitor = IndexMonitor(session_factory, cfg, maintenance_service)

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → CacheHeaders → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(CacheHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Exception Handlers ────────────────────────────────────────────────
    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(places.router)
    app.include_router(maintenance.router)
    app.include_router(monitoring.router)
    app.include_router(health.router)
    app.include_router(version.router)
    app.include_router(auth.router)

    return app


# uvicorn imports `placemarks.main:app`
app = create_app()
