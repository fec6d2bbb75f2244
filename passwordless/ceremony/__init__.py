"""WebAuthn ceremony orchestration.

Registration and authentication orchestrators over an injected
``CeremonyStore`` and ``CeremonyVerifier``. Outcomes are tagged results.
"""

from passwordless.ceremony.authentication import AuthenticationOrchestrator
from passwordless.ceremony.registration import RegistrationOrchestrator
from passwordless.ceremony.results import (
    AuthenticatedSession,
    AuthenticationOptions,
    CeremonyResult,
    Failure,
    FailureKind,
    IdentitySummary,
    IssuedSession,
    RegistrationOptions,
    Success,
)
from passwordless.ceremony.store import CeremonyStore, SqlCeremonyStore
from passwordless.ceremony.verifier import (
    CeremonyPreferences,
    CeremonyVerifier,
    RelyingParty,
)

__all__ = [
    "AuthenticatedSession",
    "AuthenticationOptions",
    "AuthenticationOrchestrator",
    "CeremonyPreferences",
    "CeremonyResult",
    "CeremonyStore",
    "CeremonyVerifier",
    "Failure",
    "FailureKind",
    "IdentitySummary",
    "IssuedSession",
    "RegistrationOptions",
    "RegistrationOrchestrator",
    "RelyingParty",
    "SqlCeremonyStore",
    "Success",
]
