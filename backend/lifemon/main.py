"""
LifeMon Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers, the uploads
       static mount, health routes and the route-group registry.
Who:   Imported as `lifemon.main:app` by the serverless host or uvicorn;
       `run()` / the `lifemon` console script starts a local server.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware Chain:                                   │
    │  ┌──────┐ ┌────────┐ ┌─────────┐ ┌────────────────┐  │
    │  │ CORS │→│ Req ID │→│ Logging │→│ Caller Identity│  │
    │  └──────┘ └────────┘ └─────────┘ └────────────────┘  │
    │                                                      │
    │  Routes:                                             │
    │  GET /   GET /health   /uploads/* (static)           │
    │  /api/users  /api/food-logs  ...  (registry)         │
    │                                                      │
    │  Exception Handlers → {success: false, error}        │
    │  Validation/Conflict→400 │ Unknown→404 │ DB/IO→500  │
    └──────────────────────────────────────────────────────┘

Process lifecycle:
    Outside production `run()` opens a listening socket with uvicorn. In
    production the module-level `app` is handed to the hosting platform,
    which owns request dispatch; `run()` then returns without listening.
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Iterable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from lifemon import __version__
from lifemon.config import settings
from lifemon.database import dispose_engine
from lifemon.exceptions import (
    ConflictError,
    DatabaseError,
    FileStorageError,
    LifeMonError,
    ValidationError,
)
from lifemon.middleware.auth import CallerIdentityMiddleware
from lifemon.middleware.logging import RequestLoggingMiddleware
from lifemon.middleware.request_id import RequestIDMiddleware, request_id_var
from lifemon.routes import ROUTE_GROUPS, RouteGroup, mount_route_groups
from lifemon.routes import health

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "An internal error occurred. Please try again later."
CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s, to stdout (the
    hosting platform collects stdout).
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries log every operation at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)


def ensure_uploads_root() -> Path:
    uploads = Path(settings.uploads_root)
    try:
        uploads.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        # Read-only filesystems (serverless) still serve the API; uploads fail later
        logger.warning("Uploads directory %s is not writable: %s", uploads, str(e))
    return uploads


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: logging, uploads directory, route-group report.
    Shutdown: dispose the database engine.
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("LifeMon Backend starting up (environment=%s)...", settings.environment)

    uploads = ensure_uploads_root()
    logger.info("Uploads directory: %s", uploads.resolve())

    for group in getattr(app.state, "route_groups", []):
        if group.state == "available":
            logger.info("  %-14s %-20s available", group.name, group.prefix)
        else:
            logger.warning("  %-14s %-20s unavailable (%s)", group.name, group.prefix, group.error)

    logger.info("=" * 60)

    yield

    logger.info("LifeMon Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


def _server_error_text(exc: Exception) -> str:
    if not settings.expose_error_details:
        return GENERIC_SERVER_ERROR
    if isinstance(exc, LifeMonError):
        return exc.context.get("original_error") or exc.message
    return str(exc) or GENERIC_SERVER_ERROR


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        ValidationError / ConflictError → 400
        RequestValidationError          → 400 (malformed body or fields)
        HTTPException (Starlette)       → its status (unknown route → 404)
        FileStorageError / DatabaseError→ 500
        LifeMonError (base)             → 500
        Exception (fallback)            → 500

    500 bodies carry the underlying error text only outside production.
    """

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        rid = request_id_var.get("")
        logger.warning("[%s] Conflict: %s | Context: %s", rid, exc.message, exc.context)
        return _error(400, exc.message)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return _error(400, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        problems = []
        for err in exc.errors():
            location = ".".join(str(part) for part in err.get("loc", ())[1:])
            problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
        message = "; ".join(problems) or "Invalid request"
        logger.warning("[%s] Request validation error: %s", rid, message)
        return _error(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        message = exc.message if settings.expose_error_details else GENERIC_SERVER_ERROR
        return _error(500, message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return _error(500, _server_error_text(exc))

    @app.exception_handler(LifeMonError)
    async def handle_app_error(request: Request, exc: LifeMonError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return _error(500, _server_error_text(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return _error(500, _server_error_text(exc))


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def add_cors(app: FastAPI) -> None:
    """
    Cross-origin policy.

    Default: only settings.cors_origins receive CORS headers; preflights from
    other origins are answered 400. Requests without an Origin header
    (same-origin, server-to-server) are untouched.
    CORS_ALLOW_ALL=true: every origin is echoed back (debugging).
    """
    if settings.cors_allow_all:
        logger.warning("CORS allow-all mode is on: every origin is accepted")
        origin_options = {"allow_origin_regex": ".*"}
    else:
        origin_options = {"allow_origins": settings.cors_origins_list}

    app.add_middleware(
        CORSMiddleware,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
        **origin_options,
    )


def create_app(route_groups: Iterable[RouteGroup] = ROUTE_GROUPS) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        route_groups: registration table to mount (tests pass their own).

    Returns: Fully configured FastAPI instance.
    """
    app = FastAPI(
        title="LifeMon API",
        description="Backend for the LifeMon health-tracking web app.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = outermost. Execution order:
    # CORS → RequestID → Logging → CallerIdentity → routes
    app.add_middleware(CallerIdentityMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    add_cors(app)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Static uploads (public, no access control) ────────────────────────
    uploads = ensure_uploads_root()
    app.mount(
        settings.uploads_url_prefix,
        StaticFiles(directory=str(uploads), check_dir=False),
        name="uploads",
    )

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    mount_route_groups(app, route_groups)

    return app


app = create_app()


def run() -> None:
    """Start a local server, unless running under the production host."""
    setup_logging()
    if settings.is_production:
        logger.info("Production mode: requests are dispatched by the hosting platform; not listening.")
        return
    logger.info("LifeMon API listening on http://%s:%d", settings.backend_host, settings.port)
    uvicorn.run(
        "lifemon.main:app",
        host=settings.backend_host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
