"""Session issuer data access."""

import secrets
from datetime import timedelta
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from passwordless.dal.base import BaseRepository, utcnow
from passwordless.storage.entities.session import AuthSession

SESSION_TOKEN_BYTES = 32
DEFAULT_SESSION_TTL_HOURS = 7 * 24


class SessionRepository(BaseRepository[AuthSession]):
    """Mints opaque bearer tokens for authenticated identities."""

    model = AuthSession

    def __init__(self, session: AsyncSession, *, ttl_hours: int = DEFAULT_SESSION_TTL_HOURS):
        super().__init__(session)
        self.ttl = timedelta(hours=ttl_hours)

    async def issue(self, identity_id: str) -> AuthSession:
        """Create a session token for ``identity_id``."""
        now = utcnow()
        auth_session = AuthSession(
            id=str(uuid4()),
            token=secrets.token_urlsafe(SESSION_TOKEN_BYTES),
            identity_id=identity_id,
            created_at=now,
            updated_at=now,
            expires_at=now + self.ttl,
        )
        self.session.add(auth_session)
        await self.session.flush()
        return auth_session
