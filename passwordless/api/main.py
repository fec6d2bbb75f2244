"""FastAPI application for the passwordless ceremonies.

``create_app()`` wires the ceremony routes under ``/api/webauthn``, the
health probe at the root, the middleware stack and the error envelope.
"""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from passwordless import __version__
from passwordless.api.routes import api_router, system_router
from passwordless.api.utils import error_response
from passwordless.ceremony.verifier import RelyingParty
from passwordless.exceptions import PasswordlessError, StoreUnavailable
from passwordless.logging_config import configure_logging
from passwordless.settings import Settings, get_settings
from passwordless.storage import close_db, init_db

logger = structlog.get_logger()

# Correlation ID of the request being served (async-safe)
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_app: FastAPI | None = None

# Attestation and assertion bodies are a few KB
MAX_REQUEST_BODY_BYTES = 65_536

CORRELATION_HEADER = "X-Correlation-ID"


def get_correlation_id() -> str | None:
    """Correlation ID of the current request, or None outside a request."""
    return _correlation_id.get()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Args:
        settings: Optional settings override (uses get_settings() if not provided)

    Returns:
        Configured FastAPI application

    Raises:
        ConfigurationError: If the WebAuthn origin does not belong to the RP ID
    """
    settings = settings or get_settings()

    configure_logging(settings.log_level)

    # Refuse to start with a relying party every browser would reject
    RelyingParty.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if settings.environment != "testing":
            await init_db()
            logger.info("database_ready", rp_id=settings.webauthn_rp_id)
        yield
        await close_db()

    app = FastAPI(
        title="Passwordless Auth",
        description="WebAuthn passkey registration and authentication",
        version=__version__,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    _install_middleware(app, settings)

    app.include_router(api_router, prefix="/api/webauthn")
    app.include_router(system_router)

    _register_exception_handlers(app, settings)

    return app


def allowed_origins(settings: Settings) -> list[str]:
    """CORS origins: ALLOWED_ORIGINS if set, else the WebAuthn origin.

    Development additionally admits the usual local frontend ports.
    """
    if settings.allowed_origins:
        return [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]

    origins = [settings.webauthn_origin.rstrip("/")]
    if settings.environment == "development":
        origins += [
            o for o in ("http://localhost:5173", "http://localhost:3000") if o not in origins
        ]
    return origins


def _install_middleware(app: FastAPI, settings: Settings) -> None:
    """Add middleware innermost first; the correlation layer ends up outermost."""
    from passwordless.api.middleware import RequestTracingMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", CORRELATION_HEADER],
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        content_length = request.headers.get("content-length", "")
        if content_length.isdigit() and int(content_length) > MAX_REQUEST_BODY_BYTES:
            return error_response(
                413,
                f"Request body too large. Maximum size is {MAX_REQUEST_BODY_BYTES} bytes.",
                "request_too_large",
            )
        return await call_next(request)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        if settings.environment in ("production", "staging"):
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        # Challenges and session tokens must never be cached
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store"
        return response

    app.add_middleware(RequestTracingMiddleware)

    @app.middleware("http")
    async def propagate_correlation_id(request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        _correlation_id.set(correlation_id)
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Render every error in the ``{"error": {...}}`` envelope."""

    @app.exception_handler(PasswordlessError)
    async def passwordless_error_handler(request: Request, exc: PasswordlessError):
        correlation_id = get_correlation_id() or exc.correlation_id
        if isinstance(exc, StoreUnavailable):
            status_code, error_type = 503, "store_unavailable"
        else:
            status_code, error_type = 500, "internal_error"

        logger.error(
            "passwordless_error",
            error_type=type(exc).__name__,
            correlation_id=correlation_id,
            exc_info=exc,
        )
        message = str(exc) if settings.debug else f"An error occurred. Correlation ID: {correlation_id}"
        return error_response(status_code, message, error_type, correlation_id=correlation_id)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return error_response(exc.status_code, str(exc.detail), "http_error")

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Malformed or incomplete bodies are reported as missing input
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
        message = "Missing or invalid fields"
        if fields:
            message = f"{message}: {', '.join(fields)}"
        return error_response(400, message, "missing_input")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        correlation_id = get_correlation_id() or str(uuid.uuid4())
        logger.exception("unhandled_exception", correlation_id=correlation_id, exc_info=exc)
        detail = str(exc) if settings.debug else "Internal server error"
        return error_response(500, detail, "internal_error", correlation_id=correlation_id)


def get_app() -> FastAPI:
    """Get or create the process-wide application."""
    global _app
    if _app is None:
        _app = create_app()
    return _app


def __getattr__(name: str) -> Any:
    """Build ``app`` on first access so importing this module stays side-effect free.

    uvicorn loads ``passwordless.api.main:app``.
    """
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
