"""Request tracing middleware.

Emits one structured log line per request with method, path, status,
duration and correlation ID. Request bodies are never logged: they carry
ceremony responses.
"""

import time
from collections.abc import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger()


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Log every request, including those that raise."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Lazy import to avoid circular dependency
        from passwordless.api.main import get_correlation_id

        start = time.perf_counter()
        fields = {
            "method": request.method,
            "path": request.url.path,
            "correlation_id": get_correlation_id(),
        }

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_error",
                duration_ms=_elapsed_ms(start),
                error_type=type(e).__name__,
                exc_info=e,
                **fields,
            )
            raise

        logger.info("request", status=response.status_code, duration_ms=_elapsed_ms(start), **fields)
        return response


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
