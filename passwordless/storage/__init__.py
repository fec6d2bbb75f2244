"""PostgreSQL engine and session management.

The engine and session factory are process-wide singletons created on
first use from settings. A re-entrant lock guards their creation because
``get_session_factory()`` builds the engine while holding it.
"""

import threading
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from passwordless.settings import Settings, get_settings

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_init_lock = threading.RLock()


def get_engine(settings: Settings | None = None) -> AsyncEngine:
    """Return the shared async engine, creating it on first call.

    Args:
        settings: Optional settings override (first call only)
    """
    global _engine

    if _engine is None:
        with _init_lock:
            if _engine is None:
                settings = settings or get_settings()
                _engine = create_async_engine(
                    str(settings.database_url),
                    pool_size=settings.database_pool_size,
                    max_overflow=settings.database_max_overflow,
                    pool_timeout=settings.database_pool_timeout,
                    pool_recycle=settings.database_pool_recycle,
                    pool_pre_ping=True,
                    echo=settings.debug,
                )

    return _engine


def get_session_factory(settings: Settings | None = None) -> async_sessionmaker[AsyncSession]:
    """Return the shared session factory.

    Sessions keep loaded attributes after commit: ceremony records are
    read after their transaction has closed.
    """
    global _session_factory

    if _session_factory is None:
        with _init_lock:
            if _session_factory is None:
                _session_factory = async_sessionmaker(
                    bind=get_engine(settings),
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=False,
                )

    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Open a session that is closed (never committed) on exit.

    Used for read-only checks such as the health probe; ceremony writes go
    through ``SqlCeremonyStore.transaction()``.
    """
    session = get_session_factory()()
    try:
        yield session
    finally:
        await session.close()


async def init_db() -> None:
    """Open the pool and check connectivity at startup."""
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))


async def create_schema() -> None:
    """Create all tables that do not exist yet.

    Development convenience used by ``passwordless init-db``; deployed
    databases run the Alembic migrations instead.
    """
    import passwordless.storage.entities  # noqa: F401
    from passwordless.storage.models import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine and forget both singletons."""
    global _engine, _session_factory

    with _init_lock:
        engine, _engine, _session_factory = _engine, None, None

    if engine is not None:
        await engine.dispose()


__all__ = [
    "close_db",
    "create_schema",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_db",
]
