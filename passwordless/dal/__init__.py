"""Data Access Layer for the passwordless auth service.

One repository per record set: identities, credentials, challenges and
sessions. Each repository is bound to a single AsyncSession; transaction
boundaries belong to the caller.
"""

from passwordless.dal.challenges import ChallengeRepository
from passwordless.dal.credentials import CredentialRepository
from passwordless.dal.identities import IdentityRepository
from passwordless.dal.sessions import SessionRepository

__all__ = [
    "ChallengeRepository",
    "CredentialRepository",
    "IdentityRepository",
    "SessionRepository",
]
