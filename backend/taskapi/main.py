"""
Task API — FastAPI Application Factory
=======================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers;
       uvicorn serves the module-level `app` (uvicorn taskapi.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Request ID  │→│ Logging  │→│ Rate Limit      │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌───────────────┐ ┌────────────┐  │
    │  │ /auth/*      │ │ /api/tasks/*  │ │ GET /health│  │
    │  └──────────────┘ └───────────────┘ └────────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ TaskApiError→by ErrorKind │ 422→400 │ *→500  │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from taskapi import __version__
from taskapi.config import settings
from taskapi.database import create_all_tables, dispose_engine
from taskapi.exceptions import AuthenticationError, ErrorKind, TaskApiError
from taskapi.middleware.logging import RequestLoggingMiddleware
from taskapi.middleware.rate_limit import RateLimitMiddleware
from taskapi.middleware.request_id import RequestIDMiddleware, request_id_var
from taskapi.routes import auth, health, tasks

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Called once during startup, before anything else logs.
    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Our access log replaces uvicorn's
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:  logging, configuration check (fatal), optional table creation.
    Shutdown: dispose the database engine.
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("Task API %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # A guessable signing secret lets anyone mint tokens
        logger.critical("Configuration error: %s", str(e))
        raise RuntimeError("Refusing to start with an unsafe configuration") from e

    if settings.db_auto_create:
        await create_all_tables()
        logger.info("Database tables ensured (DB_AUTO_CREATE=true)")

    logger.info("Token TTL: %ds", settings.access_token_ttl_seconds)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Task API shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

# ErrorKind → (HTTP status, public error code)
# FORBIDDEN shares NOT_FOUND's status and code so non-owners cannot confirm
# that a task id exists.
ERROR_RESPONSES: Dict[ErrorKind, Tuple[int, str]] = {
    ErrorKind.VALIDATION: (400, "validation_error"),
    ErrorKind.INVALID_CREDENTIALS: (400, "invalid_credentials"),
    ErrorKind.CONFLICT: (400, "conflict"),
    ErrorKind.UNAUTHENTICATED: (401, "unauthenticated"),
    ErrorKind.NOT_FOUND: (404, "not_found"),
    ErrorKind.FORBIDDEN: (404, "not_found"),
    ErrorKind.RATE_LIMITED: (429, "rate_limit_exceeded"),
    ErrorKind.INTERNAL: (500, "server_error"),
}

# Only these kinds echo exc.context back as "details"
_PUBLIC_DETAIL_KINDS = {ErrorKind.VALIDATION, ErrorKind.CONFLICT}

GENERIC_SERVER_ERROR = "An internal error occurred. Please try again later."


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        TaskApiError            → status from ERROR_RESPONSES[exc.kind]
        RequestValidationError  → 400 (schema errors share the 400 contract)
        Exception (fallback)    → 500, generic message

    Security: responses NEVER contain stack traces, SQL, or exc.context for
    auth and ownership failures. Those details are logged server-side.
    """

    @app.exception_handler(TaskApiError)
    async def handle_app_error(request: Request, exc: TaskApiError):
        rid = request_id_var.get("")
        status_code, error_code = ERROR_RESPONSES[exc.kind]

        if status_code >= 500:
            logger.error(
                "[%s] %s on %s: %s | Context: %s",
                rid, type(exc).__name__, request.url.path, exc.message, exc.context,
            )
        else:
            logger.warning(
                "[%s] %s on %s: %s | Context: %s",
                rid, type(exc).__name__, request.url.path, exc.message, exc.context,
            )

        content = {
            "error": error_code,
            "message": GENERIC_SERVER_ERROR if status_code >= 500 else exc.message,
            "request_id": rid,
        }
        if exc.kind in _PUBLIC_DETAIL_KINDS and exc.context:
            content["details"] = exc.context

        headers = {}
        if isinstance(exc, AuthenticationError):
            headers["WWW-Authenticate"] = "Bearer"

        return JSONResponse(status_code=status_code, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Malformed JSON, missing fields or wrong types in the request."""
        rid = request_id_var.get("")
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or "body",
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation failed on %s: %s", rid, request.url.path, errors)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "Request body or parameters are invalid",
                "details": {"errors": errors},
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Catch-all for truly unexpected errors.

        One bad request must never take the server down; the client gets a
        generic 500 and the stack trace goes to the log only.
        """
        rid = request_id_var.get("")
        logger.error(
            "[%s] Unexpected error on %s: %s",
            rid,
            request.url.path,
            str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Factory (rather than a bare module-level app) so tests can build fresh
    instances with their own dependency overrides.
    """
    app = FastAPI(
        title="Task API",
        description="Multi-user task tracker with bearer-token authentication.",
        version=__version__,
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition:
    # RequestID → Logging → RateLimit → routes
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(tasks.router)
    app.include_router(health.router)

    return app


app = create_app()
