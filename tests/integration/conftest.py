"""Integration test fixtures using testcontainers.

Provides a real PostgreSQL container for integration testing without
requiring external infrastructure.
"""

import os
import shutil
import subprocess


def _configure_container_runtime() -> None:
    """Auto-detect container runtime so testcontainers works with Docker or Podman.

    Detection order (first match wins):
      1. DOCKER_HOST already set: respect it.
      2. /var/run/docker.sock exists: standard Docker.
      3. Linux rootless Podman socket.
      4. macOS Podman machine socket via ``podman machine inspect``.
      5. None found: do nothing; tests will skip.
    """
    if os.environ.get("DOCKER_HOST"):
        return
    if os.path.exists("/var/run/docker.sock"):
        return

    linux_socket = f"/run/user/{os.getuid()}/podman/podman.sock"
    if os.path.exists(linux_socket):
        os.environ["DOCKER_HOST"] = f"unix://{linux_socket}"
        os.environ.setdefault("TESTCONTAINERS_RYUK_DISABLED", "true")
        return

    if shutil.which("podman"):
        try:
            result = subprocess.run(
                ["podman", "machine", "inspect",
                 "--format", "{{.ConnectionInfo.PodmanSocket.Path}}"],
                capture_output=True, text=True, timeout=5,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return
        sock = result.stdout.strip()
        if result.returncode == 0 and sock and os.path.exists(sock):
            os.environ["DOCKER_HOST"] = f"unix://{sock}"
            os.environ.setdefault("TESTCONTAINERS_RYUK_DISABLED", "true")


_configure_container_runtime()

from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from testcontainers.postgres import PostgresContainer

import passwordless.storage.entities  # noqa: F401 (register all models with Base.metadata)
from passwordless.ceremony import SqlCeremonyStore
from passwordless.storage.models import Base

# =============================================================================
# POSTGRESQL CONTAINER
# =============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """Start a PostgreSQL container shared by all integration tests."""
    try:
        with PostgresContainer(
            image="postgres:16-alpine",
            username="test",
            password="test",
            dbname="passwordless_test",
        ) as postgres:
            yield postgres
    except Exception as e:
        pytest.skip(f"Docker/Podman not available: {e}")


@pytest.fixture(scope="session")
def postgres_url(postgres_container: PostgresContainer) -> str:
    """Get async connection URL for the PostgreSQL container."""
    sync_url = postgres_container.get_connection_url()
    async_url = sync_url.replace("postgresql://", "postgresql+asyncpg://")
    return async_url.replace("psycopg2", "asyncpg")


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def integration_engine(postgres_url: str) -> AsyncGenerator[Any, None]:
    """Create async engine connected to the test container."""
    engine = create_async_engine(postgres_url, echo=False, pool_pre_ping=True, pool_size=10)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(integration_engine: Any) -> async_sessionmaker[AsyncSession]:
    """Session factory matching the application's configuration."""
    return async_sessionmaker(
        bind=integration_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(loop_scope="session")
async def clean_tables(integration_engine: Any) -> AsyncGenerator[None, None]:
    """Empty every table before and after the test.

    Ceremony tests commit for real (and race separate connections), so
    they cannot use a rolled-back outer transaction.
    """
    async with integration_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())

    yield

    async with integration_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())


@pytest.fixture
def sql_store(
    session_factory: async_sessionmaker[AsyncSession],
    clean_tables: None,
) -> SqlCeremonyStore:
    """SQL-backed ceremony store over a clean database."""
    return SqlCeremonyStore(session_factory, challenge_ttl_seconds=300, session_ttl_hours=168)


# =============================================================================
# MARKERS
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register integration test markers."""
    config.addinivalue_line(
        "markers",
        "integration: Integration tests requiring real services",
    )
    config.addinivalue_line(
        "markers",
        "requires_postgres: Tests requiring PostgreSQL container",
    )
