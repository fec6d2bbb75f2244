"""FastAPI application factory for the passwordless auth service.

Provides the main application instance and factory function
for creating configured FastAPI apps.
"""

from passwordless.api.main import create_app, get_app

__all__ = [
    "create_app",
    "get_app",
]
