"""
NoteDigest Backend: FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires logging, middleware, exception handlers and
       routers; `app` is the instance uvicorn serves
       (uvicorn notedigest.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain (outermost first):                │
    │  ┌──────────┐ ┌──────────┐ ┌────────────┐ ┌──────┐  │
    │  │  Req ID  │→│ Logging  │→│ Rate Limit │→│ CORS │  │
    │  └──────────┘ └──────────┘ └────────────┘ └──────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────────────────┐ ┌──────────────────┐  │
    │  │ /api/notes (CRUD, summ.) │ │ GET /api/health  │  │
    │  └──────────────────────────┘ └──────────────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ 400 │ 401 │ 404 │ Upstream→by kind │ DB→500  │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Tuple

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from notedigest import __version__
from notedigest.config import settings
from notedigest.database import dispose_engine
from notedigest.exceptions import (
    AuthenticationError,
    DatabaseError,
    ErrorKind,
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from notedigest.middleware.logging import RequestLoggingMiddleware
from notedigest.middleware.rate_limit import RateLimitMiddleware
from notedigest.middleware.request_id import RequestIDLogFilter, RequestIDMiddleware, request_id_var
from notedigest.routes import health, notes

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once for the whole application.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s
    The request id comes from RequestIDLogFilter ("-" outside a request).
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # httpx logs full request URLs at INFO, and the Gemini key is a query parameter
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: logging + config check. Shutdown: dispose the DB engine."""
    setup_logging()
    logger.info("NoteDigest Backend %s starting up (environment=%s)", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks report the gap and affected routes fail per request
        logger.error("Configuration error: %s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("NoteDigest Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

# ErrorKind → (HTTP status, user-facing message)
UPSTREAM_ERROR_RESPONSES: Dict[ErrorKind, Tuple[int, str]] = {
    ErrorKind.CONFIGURATION_MISSING: (500, "Summarization service is not properly configured"),
    ErrorKind.EMPTY_INPUT: (400, "Note content is empty"),
    ErrorKind.AUTH_FAILED: (401, "Summarization service authentication failed"),
    ErrorKind.RATE_LIMITED: (429, "Too many summarization requests. Please try again later."),
    ErrorKind.MALFORMED: (500, "Failed to summarize note. Please try again later."),
    ErrorKind.TIMEOUT: (504, "Summarization request timed out. Please try again."),
    ErrorKind.UNREACHABLE: (503, "Unable to reach summarization service. Please try again later."),
    ErrorKind.UNKNOWN: (500, "Failed to summarize note. Please try again later."),
}


def _error_body(error: str, message: str, **extra) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Handler hierarchy:
        ValidationError         → 400
        AuthenticationError     → 401 (+ WWW-Authenticate: Bearer)
        NotFoundError           → 404
        UpstreamServiceError    → per UPSTREAM_ERROR_RESPONSES
        DatabaseError           → 500
        Exception (fallback)    → 500

    Responses never include stack traces or SQL. The upstream diagnostic
    is only added outside production.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s", exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, details=exc.context or None),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        logger.info("Unauthorized request to %s: %s", request.url.path, exc.context.get("reason"))
        return JSONResponse(
            status_code=401,
            content=_error_body("unauthorized", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message),
        )

    @app.exception_handler(UpstreamServiceError)
    async def handle_upstream_error(request: Request, exc: UpstreamServiceError):
        status_code, message = UPSTREAM_ERROR_RESPONSES.get(
            exc.kind, UPSTREAM_ERROR_RESPONSES[ErrorKind.UNKNOWN]
        )
        logger.error(
            "Summarization failed: kind=%s attempts=%d message=%s",
            exc.kind.value,
            exc.attempts,
            exc.message,
        )
        details = None
        if not settings.is_production:
            details = {"diagnostic": exc.diagnostic or exc.message}
        return JSONResponse(
            status_code=status_code,
            content=_error_body(exc.kind.value, message, details=details),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("Database error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again later.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="NoteDigest API",
        description=(
            "Personal notes with on-demand summaries. Every route under /api/notes "
            "requires a bearer identity token and only ever sees the caller's notes."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition (last added = outermost)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(notes.router)
    app.include_router(health.router)

    return app


app = create_app()
