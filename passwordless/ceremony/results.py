"""Tagged ceremony outcomes.

Every orchestrator step returns either ``Success`` wrapping its value or
``Failure`` carrying one of the ``FailureKind`` classifications. Callers
branch on the type (or ``result.ok``) instead of catching exceptions.
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, Generic, TypeVar

T = TypeVar("T")


class FailureKind(str, enum.Enum):
    """Classified reasons a ceremony step can fail."""

    MISSING_INPUT = "missing_input"
    IDENTITY_NOT_FOUND = "identity_not_found"
    INVALID_OR_EXPIRED_CHALLENGE = "invalid_or_expired_challenge"
    VERIFICATION_FAILED = "verification_failed"
    DUPLICATE_CREDENTIAL = "duplicate_credential"
    CREDENTIAL_NOT_FOUND = "credential_not_found"
    POSSIBLE_CLONE_DETECTED = "possible_clone_detected"
    STORE_UNAVAILABLE = "store_unavailable"


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful ceremony step."""

    value: T
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Failure:
    """Failed ceremony step.

    ``detail`` is for server-side logs only and never sent to clients.
    """

    kind: FailureKind
    detail: str = ""
    ok: ClassVar[bool] = False


CeremonyResult = Success[T] | Failure


@dataclass(frozen=True)
class RegistrationOptions:
    """Options for ``navigator.credentials.create()`` plus the identity handle."""

    ceremony_params: dict[str, Any]
    identity_id: str


@dataclass(frozen=True)
class AuthenticationOptions:
    """Options for ``navigator.credentials.get()``."""

    ceremony_params: dict[str, Any]


@dataclass(frozen=True)
class IssuedSession:
    """Session minted at the end of a successful ceremony."""

    token: str
    identity_id: str
    expires_at: datetime


@dataclass(frozen=True)
class IdentitySummary:
    """Public view of an identity returned after login."""

    id: str
    email: str
    display_name: str


@dataclass(frozen=True)
class AuthenticatedSession:
    """Result of a successful authentication ceremony."""

    session: IssuedSession
    identity: IdentitySummary
