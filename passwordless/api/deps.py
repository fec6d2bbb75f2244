"""Shared FastAPI dependencies.

Builds the ceremony orchestrators per request from settings, the storage
session factory, and the py_webauthn verifier. Tests replace any of these
through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

# Import modules (not functions) so monkeypatching in tests works correctly.
import passwordless.settings as _settings_mod
import passwordless.storage as _storage_mod
from passwordless.ceremony import (
    AuthenticationOrchestrator,
    CeremonyPreferences,
    CeremonyStore,
    CeremonyVerifier,
    RegistrationOrchestrator,
    RelyingParty,
    SqlCeremonyStore,
)
from passwordless.ceremony.webauthn_verifier import WebAuthnCeremonyVerifier


def get_ceremony_store() -> CeremonyStore:
    """Provide the SQL-backed store using the shared session factory."""
    settings = _settings_mod.get_settings()
    return SqlCeremonyStore(
        _storage_mod.get_session_factory(),
        challenge_ttl_seconds=settings.challenge_ttl_seconds,
        session_ttl_hours=settings.session_ttl_hours,
    )


def get_verifier() -> CeremonyVerifier:
    """Provide the cryptographic ceremony verifier."""
    return WebAuthnCeremonyVerifier()


def get_relying_party() -> RelyingParty:
    """Provide the configured relying party."""
    return RelyingParty.from_settings(_settings_mod.get_settings())


def get_preferences() -> CeremonyPreferences:
    """Provide authenticator preferences from settings."""
    return CeremonyPreferences.from_settings(_settings_mod.get_settings())


def get_registration_orchestrator(
    store: Annotated[CeremonyStore, Depends(get_ceremony_store)],
    verifier: Annotated[CeremonyVerifier, Depends(get_verifier)],
    relying_party: Annotated[RelyingParty, Depends(get_relying_party)],
    preferences: Annotated[CeremonyPreferences, Depends(get_preferences)],
) -> RegistrationOrchestrator:
    return RegistrationOrchestrator(store, verifier, relying_party, preferences)


def get_authentication_orchestrator(
    store: Annotated[CeremonyStore, Depends(get_ceremony_store)],
    verifier: Annotated[CeremonyVerifier, Depends(get_verifier)],
    relying_party: Annotated[RelyingParty, Depends(get_relying_party)],
    preferences: Annotated[CeremonyPreferences, Depends(get_preferences)],
) -> AuthenticationOrchestrator:
    return AuthenticationOrchestrator(store, verifier, relying_party, preferences)


Registration = Annotated[RegistrationOrchestrator, Depends(get_registration_orchestrator)]
Authentication = Annotated[AuthenticationOrchestrator, Depends(get_authentication_orchestrator)]
