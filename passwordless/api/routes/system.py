"""System health endpoint.

``/health`` pings the database with a timeout and reports 503 when it is
unreachable, so load balancers stop routing ceremonies to this instance.
"""

import asyncio
import logging
from datetime import UTC, datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

# Import module (not function) so monkeypatching in tests works correctly.
import passwordless.storage as _storage_mod
from passwordless import __version__
from passwordless.api.schemas import HealthResponse, HealthStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])

_HEALTH_CHECK_TIMEOUT_S = 5.0


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Checks database connectivity. Returns 503 if the database is unreachable.",
)
async def health_check():
    """Report service and database health.

    Returns:
        HealthResponse (200 when healthy, 503 otherwise)
    """
    database_ok = await _check_database()
    health = HealthResponse(
        status=HealthStatus.HEALTHY if database_ok else HealthStatus.UNHEALTHY,
        database="connected" if database_ok else "disconnected",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
    if not database_ok:
        return JSONResponse(status_code=503, content=health.model_dump(mode="json"))
    return health


async def _check_database() -> bool:
    """Ping the database with a timeout."""

    async def _ping_db() -> None:
        async with _storage_mod.get_session() as session:
            await session.execute(text("SELECT 1"))

    try:
        await asyncio.wait_for(_ping_db(), timeout=_HEALTH_CHECK_TIMEOUT_S)
    except TimeoutError:
        logger.error("Database health check timed out after %.1fs", _HEALTH_CHECK_TIMEOUT_S)
        return False
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database health check failed: %s", e)
        return False
    return True
