"""Store interface injected into the ceremony orchestrators.

A ``CeremonyStore`` hands out transactions. Each transaction exposes the
four record sets the ceremonies touch (challenges, identities, credentials,
sessions) and commits when its ``async with`` block exits cleanly.
``SqlCeremonyStore`` is the SQLAlchemy implementation; tests inject an
in-memory one.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from passwordless.dal import (
    ChallengeRepository,
    CredentialRepository,
    IdentityRepository,
    SessionRepository,
)
from passwordless.dal.challenges import DEFAULT_CHALLENGE_TTL_SECONDS
from passwordless.dal.sessions import DEFAULT_SESSION_TTL_HOURS
from passwordless.exceptions import StoreUnavailable
from passwordless.storage.entities import (
    AuthChallenge,
    AuthSession,
    ChallengeKind,
    Identity,
    WebAuthnCredential,
)


class ChallengeStore(Protocol):
    async def issue(
        self, kind: ChallengeKind, bound_identity_id: str | None = None
    ) -> AuthChallenge: ...

    async def consume(
        self,
        kind: ChallengeKind,
        bound_identity_id: str | None = None,
        *,
        value: bytes,
        allow_unbound: bool = False,
    ) -> AuthChallenge: ...

    async def purge_expired(self, now: datetime | None = None) -> int: ...


class IdentityDirectory(Protocol):
    async def find_or_create(self, email: str, display_name: str) -> Identity: ...

    async def find_by_email(self, email: str) -> Identity | None: ...

    async def get_by_id(self, id: str) -> Identity | None: ...


class CredentialRegistry(Protocol):
    async def list_by_owner(self, identity_id: str) -> list[WebAuthnCredential]: ...

    async def find_by_id(self, credential_id: bytes) -> WebAuthnCredential | None: ...

    async def register(
        self,
        identity_id: str,
        credential_id: bytes,
        public_key: bytes,
        initial_counter: int,
        device_label: str | None = None,
        transports: list[str] | None = None,
    ) -> WebAuthnCredential: ...

    async def record_successful_use(
        self, credential_id: bytes, new_counter: int, *, expected_counter: int
    ) -> bool: ...


class SessionIssuer(Protocol):
    async def issue(self, identity_id: str) -> AuthSession: ...


class StoreTransaction(Protocol):
    challenges: ChallengeStore
    identities: IdentityDirectory
    credentials: CredentialRegistry
    sessions: SessionIssuer


class CeremonyStore(Protocol):
    def transaction(self) -> AbstractAsyncContextManager[StoreTransaction]: ...


@dataclass
class SqlStoreTransaction:
    """Repositories sharing one AsyncSession."""

    session: AsyncSession
    challenges: ChallengeRepository
    identities: IdentityRepository
    credentials: CredentialRepository
    sessions: SessionRepository


class SqlCeremonyStore:
    """``CeremonyStore`` over an SQLAlchemy async session factory."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        *,
        challenge_ttl_seconds: int = DEFAULT_CHALLENGE_TTL_SECONDS,
        session_ttl_hours: int = DEFAULT_SESSION_TTL_HOURS,
    ):
        self._session_factory = session_factory
        self._challenge_ttl_seconds = challenge_ttl_seconds
        self._session_ttl_hours = session_ttl_hours

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[SqlStoreTransaction, None]:
        """Open a session, yield the repositories, commit on clean exit.

        Any exception rolls the transaction back (the session is closed
        without commit). Driver-level failures other than integrity
        violations, and pool checkout timeouts, are re-raised as
        ``StoreUnavailable``.
        """
        session = self._session_factory()
        try:
            yield SqlStoreTransaction(
                session=session,
                challenges=ChallengeRepository(session, ttl_seconds=self._challenge_ttl_seconds),
                identities=IdentityRepository(session),
                credentials=CredentialRepository(session),
                sessions=SessionRepository(session, ttl_hours=self._session_ttl_hours),
            )
            await session.commit()
        except IntegrityError:
            raise
        except (DBAPIError, PoolTimeoutError, OSError) as e:
            raise StoreUnavailable(f"Store operation failed: {type(e).__name__}") from e
        finally:
            await session.close()
