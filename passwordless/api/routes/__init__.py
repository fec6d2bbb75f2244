"""API route registration.

Aggregates the ceremony routers for inclusion in the main application.
The system router is mounted at the root so ``/health`` stays outside the
ceremony prefix.
"""

from fastapi import APIRouter

from passwordless.api.routes.system import router as system_router
from passwordless.api.routes.webauthn import router as webauthn_router

# Ceremony endpoints, mounted under /api/webauthn
api_router = APIRouter()
api_router.include_router(webauthn_router)

__all__ = [
    "api_router",
    "system_router",
]
