"""
PhotoClick Relay — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes middleware registration, route mounting, exception
       handling and lifecycle management in one place.
How:   Factory pattern: create_app() builds the process-wide objects (settings,
       Gemini provider, identity verifier, dispatcher) once and stores them on
       `app.state`; routes reach them through dependencies.
Who:   Called by uvicorn (uvicorn photoclick.main:app) and by tests.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────┐ ┌──────┐ ┌─────────────┐  │
    │  │  Req ID  │→│ Logging │→│ GZip │→│    CORS     │  │
    │  └──────────┘ └─────────┘ └──────┘ └─────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  POST /api/generate  GET /api/config                │
    │  POST /api/login     GET /health                    │
    │                                                     │
    │  Exception Handlers:                                │
    │  PhotoClickError → its status code                  │
    │  HTTP errors → {error}   anything else → 500        │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup (standalone): validate configuration, fail fast on missing values.
    Startup (serverless): log missing values; affected requests answer 500.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from photoclick import __version__
from photoclick.config import Settings, settings as default_settings
from photoclick.exceptions import ConfigError, PhotoClickError
from photoclick.middleware.cors import CORSHeadersMiddleware
from photoclick.middleware.logging import RequestLoggingMiddleware
from photoclick.middleware.request_id import RequestIDMiddleware, request_id_var
from photoclick.routes import auth, health, relay
from photoclick.services.dispatcher import ActionDispatcher
from photoclick.services.provider_base import ContentProvider, IdentityVerifier

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str) -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during app startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    # Third-party libraries log every HTTP exchange at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("PhotoClick Relay starting up (%s mode)...", settings.deployment_mode)

    if settings.deployment_mode == "standalone":
        try:
            settings.validate_required()
        except ConfigError as e:
            logger.error("Configuration error: %s", e.message)
            logger.error("Fix the configuration and restart the server.")
            raise
    else:
        for problem in settings.missing_required():
            logger.error("Configuration error: %s", problem)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("PhotoClick Relay shutting down...")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(message: str, details: Optional[dict] = None) -> dict:
    body = {"error": message, "requestId": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Handler hierarchy:
        PhotoClickError (and subclasses) → exc.status_code
        Starlette HTTPException (404/405) → its status
        RequestValidationError            → 400
        Exception (fallback)              → 500

    Every body has the shape {"error": message, "details"?: {...}, "requestId": ...}.
    """

    @app.exception_handler(PhotoClickError)
    async def handle_relay_error(request: Request, exc: PhotoClickError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.context),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        fields = [
            {"loc": ".".join(str(p) for p in err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=_error_body("Invalid request.", {"fields": fields}),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Stack trace is logged server-side only, never returned."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body("An unknown server error occurred."),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[ContentProvider] = None,
    verifier: Optional[IdentityVerifier] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Frozen configuration; defaults to the environment-loaded singleton.
        provider: ContentProvider; defaults to Gemini when an API key is set.
        verifier: IdentityVerifier; defaults to Google's.

    Without a provider (no API key) the generation actions answer 500
    ConfigError per request; sign-in only needs the verifier and keeps working.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="PhotoClick Relay API",
        description=(
            "Relays image and prompt payloads from the PhotoClick front end to "
            "Google Gemini and returns normalized results."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    if provider is None and settings.provider_configured:
        from photoclick.services.gemini_service import GeminiContentProvider
        provider = GeminiContentProvider(settings)
    if verifier is None:
        from photoclick.services.identity_service import GoogleIdentityVerifier
        verifier = GoogleIdentityVerifier()

    app.state.settings = settings
    app.state.provider = provider
    app.state.dispatcher = ActionDispatcher(settings, provider, verifier)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute: RequestID → Logging → GZip → CORS
    app.add_middleware(CORSHeadersMiddleware, headers=settings.cors_headers)
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(relay.router)
    app.include_router(auth.router)
    app.include_router(health.router)

    return app


# uvicorn expects `photoclick.main:app` to be importable
app = create_app()
