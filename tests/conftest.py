"""Shared test fixtures for the passwordless auth service.

Provides settings, the in-memory store and fake verifier, and an HTTP
client wired to an app whose ceremony dependencies use them.
"""

from collections.abc import AsyncGenerator
from typing import Any

import pytest

from passwordless.ceremony import (
    AuthenticationOrchestrator,
    CeremonyPreferences,
    RegistrationOrchestrator,
    RelyingParty,
)
from passwordless.settings import Settings
from tests.helpers.settings import make_test_settings
from tests.mocks import FakeCeremonyVerifier, InMemoryCeremonyStore

# =============================================================================
# SETTINGS
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Provide test settings with safe defaults."""
    return make_test_settings()


@pytest.fixture
def mock_settings(test_settings: Settings, monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Mock get_settings() to return test settings."""
    from passwordless import settings

    monkeypatch.setattr(settings, "get_settings", lambda: test_settings)
    return test_settings


# =============================================================================
# CEREMONY COLLABORATORS
# =============================================================================


@pytest.fixture
def memory_store() -> InMemoryCeremonyStore:
    """Fresh in-memory store per test."""
    return InMemoryCeremonyStore()


@pytest.fixture
def fake_verifier() -> FakeCeremonyVerifier:
    return FakeCeremonyVerifier()


@pytest.fixture
def relying_party(test_settings: Settings) -> RelyingParty:
    return RelyingParty.from_settings(test_settings)


@pytest.fixture
def registration(
    memory_store: InMemoryCeremonyStore,
    fake_verifier: FakeCeremonyVerifier,
    relying_party: RelyingParty,
) -> RegistrationOrchestrator:
    return RegistrationOrchestrator(memory_store, fake_verifier, relying_party, CeremonyPreferences())


@pytest.fixture
def authentication(
    memory_store: InMemoryCeremonyStore,
    fake_verifier: FakeCeremonyVerifier,
    relying_party: RelyingParty,
) -> AuthenticationOrchestrator:
    return AuthenticationOrchestrator(memory_store, fake_verifier, relying_party, CeremonyPreferences())


# =============================================================================
# API
# =============================================================================


@pytest.fixture
def test_app(
    mock_settings: Settings,
    memory_store: InMemoryCeremonyStore,
    fake_verifier: FakeCeremonyVerifier,
) -> Any:
    """Create FastAPI test application backed by the in-memory store."""
    from passwordless.api.deps import get_ceremony_store, get_verifier
    from passwordless.api.main import create_app

    app = create_app(mock_settings)
    app.dependency_overrides[get_ceremony_store] = lambda: memory_store
    app.dependency_overrides[get_verifier] = lambda: fake_verifier
    return app


@pytest.fixture
async def async_client(test_app: Any) -> AsyncGenerator[Any, None]:
    """Provide async HTTP client for API testing."""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        yield client


# =============================================================================
# MARKERS
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests (require services)")
