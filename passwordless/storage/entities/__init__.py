"""Database entity models.

All SQLAlchemy ORM models for the passwordless auth service.
"""

from passwordless.storage.entities.challenge import AuthChallenge, ChallengeKind
from passwordless.storage.entities.credential import DEFAULT_DEVICE_LABEL, WebAuthnCredential
from passwordless.storage.entities.identity import Identity
from passwordless.storage.entities.session import AuthSession

__all__ = [
    "AuthChallenge",
    "AuthSession",
    "ChallengeKind",
    "DEFAULT_DEVICE_LABEL",
    "Identity",
    "WebAuthnCredential",
]
