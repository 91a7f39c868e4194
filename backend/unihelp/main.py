"""
UniHelp Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app(settings) returns a configured FastAPI
       instance; `app = create_app()` at the bottom is what uvicorn imports
       (uvicorn unihelp.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware Chain:                                           │
    │  ┌────────────┐ ┌──────────┐ ┌─────────┐ ┌──────┐ ┌──────┐   │
    │  │ Rate Limit │→│ Req ID   │→│ Logging │→│ GZip │→│ CORS │   │
    │  └────────────┘ └──────────┘ └─────────┘ └──────┘ └──────┘   │
    │                                                              │
    │  Routes (/api/v1):                                           │
    │    auth · notes · questions · answers · files                │
    │  Plus: GET /health, WS /notificationHub                      │
    │                                                              │
    │  app.state:                                                  │
    │    settings · engine · session_factory · broadcaster         │
    │    file_service                                              │
    │                                                              │
    │  Exception Handlers:                                         │
    │    Validation/Conflict→400 │ Unauth→401 │ Forbidden→403      │
    │    NotFound→404 │ RateLimit→429 │ Storage/DB/other→500       │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate security-critical configuration (fatal outside development)
    3. Create tables when DB_CREATE_TABLES is set

    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
import traceback
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from unihelp import __version__
from unihelp.config import Settings, get_settings
from unihelp.database import build_engine, build_session_factory, create_tables, dispose_engine
from unihelp.exceptions import (
    ConflictError,
    DatabaseError,
    FileStorageError,
    ForbiddenError,
    NotFoundError,
    RateLimitExceededError,
    UnauthenticatedError,
    UniHelpError,
    ValidationError,
)
from unihelp.middleware.logging import RequestLoggingMiddleware
from unihelp.middleware.rate_limit import RateLimitMiddleware
from unihelp.middleware.request_id import RequestIDMiddleware, current_request_id
from unihelp.routes import answers, auth, files, health, hub, notes, questions
from unihelp.services.file_service import FileService
from unihelp.services.notification_service import NotificationBroadcaster

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(settings: Settings) -> None:
    """
    Configure logging for the entire application.

    Format: 2026-10-19T12:00:00 [INFO] unihelp.services.answer_service: ...

    One line per record on stdout; container runtimes collect it from there.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings)
    logger.info("=" * 60)
    logger.info("UniHelp Backend %s starting up (%s)...", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # A guessable signing secret would let anyone mint tokens
        logger.critical("Configuration error: %s", str(e))
        logger.critical("Fix the configuration and restart the server.")
        raise

    if settings.db_create_tables:
        await create_tables(app.state.engine)
        logger.info("Database tables ensured (DB_CREATE_TABLES=true)")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("UniHelp Backend shutting down...")
    await dispose_engine(app.state.engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content = {
        "error": error,
        "message": message,
        "request_id": current_request_id(request),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and the standard error body.

    Handler hierarchy:
        ValidationError, RequestValidationError → 400 validation_error
        ConflictError                           → 400 conflict
        UnauthenticatedError                    → 401 unauthorized
        ForbiddenError                          → 403 forbidden
        NotFoundError                           → 404 not_found
        RateLimitExceededError                  → 429 rate_limit_exceeded
        FileStorageError, DatabaseError         → 500 server_error
        Exception (fallback)                    → 500 internal_server_error

    Only the fallback may include exception details, and only when the app
    runs with ENVIRONMENT=development.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", current_request_id(request), exc.message)
        return _error_response(request, 400, "validation_error", exc.message, exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """Body/query/path failed schema validation: report each failing field."""
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation failed: %s", current_request_id(request), errors)
        return _error_response(
            request,
            400,
            "validation_error",
            "One or more fields are invalid.",
            {"errors": errors},
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error_response(request, 400, "conflict", exc.message)

    @app.exception_handler(UnauthenticatedError)
    async def handle_unauthenticated(request: Request, exc: UnauthenticatedError):
        logger.info(
            "[%s] Unauthenticated: %s %s",
            current_request_id(request),
            exc.message,
            exc.context or "",
        )
        return _error_response(
            request,
            401,
            "unauthorized",
            exc.message,
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        return _error_response(request, 403, "forbidden", exc.message, exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(request, 404, "not_found", exc.message)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            request,
            429,
            "rate_limit_exceeded",
            exc.message,
            exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        # Context is logged, never returned
        logger.error(
            "[%s] Database error: %s | Context: %s",
            current_request_id(request),
            exc.message,
            exc.context,
        )
        return _error_response(
            request, 500, "server_error", "An internal error occurred. Please try again later."
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error(
            "[%s] File storage error: %s | Context: %s",
            current_request_id(request),
            exc.message,
            exc.context,
        )
        return _error_response(request, 500, "server_error", exc.message)

    @app.exception_handler(UniHelpError)
    async def handle_app_error(request: Request, exc: UniHelpError):
        logger.error("[%s] Unhandled application error: %s", current_request_id(request), exc.message)
        return _error_response(request, 500, "server_error", exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        """Unknown routes and wrong methods, in the standard error shape."""
        error = "not_found" if exc.status_code == 404 else "http_error"
        return _error_response(
            request,
            exc.status_code,
            error,
            str(exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: generic body in production, exception and trace in development."""
        rid = current_request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)

        settings: Settings = request.app.state.settings
        details = None
        if settings.is_development:
            details = {
                "exception": f"{type(exc).__name__}: {exc}",
                "trace": traceback.format_exception(type(exc), exc, exc.__traceback__),
            }
        return _error_response(
            request,
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
            details,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Explicit configuration. Defaults to the cached environment
                  settings; tests pass their own to isolate apps.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="UniHelp API",
        description=(
            "Q&A and study-notes backend for students. Answers to your questions "
            "are pushed in real time over the /notificationHub WebSocket."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Shared State ──────────────────────────────────────────────────────
    app.state.settings = settings
    app.state.engine = build_engine(settings)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.broadcaster = NotificationBroadcaster()
    app.state.file_service = FileService(
        storage_root=settings.storage_root,
        max_file_size=settings.max_file_size,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in REVERSE order of addition: RateLimit runs first, CORS last
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-Total-Count",
            "Location",
            "Retry-After",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(notes.router)
    app.include_router(questions.router)
    app.include_router(answers.router)
    app.include_router(files.router)
    app.include_router(health.router)
    app.include_router(hub.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
