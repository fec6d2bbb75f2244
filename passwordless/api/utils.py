"""API utility functions.

Shared helpers for route handlers and exception handlers.
"""

import uuid

from fastapi.responses import JSONResponse


def error_response(
    status_code: int,
    message: str,
    error_type: str,
    *,
    correlation_id: str | None = None,
) -> JSONResponse:
    """Build the standard error envelope.

    Args:
        status_code: HTTP status
        message: Client-safe message
        error_type: Stable machine-readable error type
        correlation_id: Explicit correlation ID (defaults to the request's)

    Returns:
        JSONResponse with ``{"error": {...}}`` body and X-Correlation-ID header
    """
    # Lazy import to avoid circular dependency
    from passwordless.api.main import get_correlation_id

    correlation_id = correlation_id or get_correlation_id() or str(uuid.uuid4())
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": status_code,
                "message": message,
                "type": error_type,
                "correlation_id": correlation_id,
            }
        },
        headers={"X-Correlation-ID": correlation_id},
    )
