"""Challenge store data access.

Issues ceremony challenges and consumes them exactly once. Consumption is a
conditional update on ``used = false``; of two racing consumers only one
sees its update applied.
"""

import logging
import secrets
from datetime import datetime, timedelta
from uuid import uuid4

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from passwordless.dal.base import BaseRepository, utcnow
from passwordless.exceptions import ChallengeNotFoundError
from passwordless.storage.entities.challenge import AuthChallenge, ChallengeKind

logger = logging.getLogger(__name__)

CHALLENGE_BYTES = 32
DEFAULT_CHALLENGE_TTL_SECONDS = 300


class ChallengeRepository(BaseRepository[AuthChallenge]):
    """Repository for AuthChallenge issue/consume operations."""

    model = AuthChallenge

    def __init__(self, session: AsyncSession, *, ttl_seconds: int = DEFAULT_CHALLENGE_TTL_SECONDS):
        super().__init__(session)
        self.ttl = timedelta(seconds=ttl_seconds)

    async def issue(
        self,
        kind: ChallengeKind,
        bound_identity_id: str | None = None,
    ) -> AuthChallenge:
        """Persist a fresh random challenge.

        Args:
            kind: Ceremony the challenge is for
            bound_identity_id: Identity to bind to, or None for a
                discoverable ceremony

        Returns:
            The stored challenge
        """
        now = utcnow()
        challenge = AuthChallenge(
            id=str(uuid4()),
            value=secrets.token_bytes(CHALLENGE_BYTES),
            identity_id=bound_identity_id,
            kind=kind,
            created_at=now,
            updated_at=now,
            expires_at=now + self.ttl,
            used=False,
        )
        self.session.add(challenge)
        await self.session.flush()
        return challenge

    async def consume(
        self,
        kind: ChallengeKind,
        bound_identity_id: str | None = None,
        *,
        value: bytes,
        allow_unbound: bool = False,
    ) -> AuthChallenge:
        """Mark the live challenge carrying ``value`` as used and return it.

        Matching:
        - ``value`` must match exactly
        - ``kind`` must match, the challenge must be unused and unexpired
        - with ``bound_identity_id``: challenges bound to that identity, plus
          unbound ones when ``allow_unbound`` is set
        - without it: unbound challenges only

        Raises:
            ChallengeNotFoundError: If nothing matched or a concurrent
                consumer marked the candidate used first.
        """
        now = utcnow()
        query = select(AuthChallenge.id).where(
            AuthChallenge.value == value,
            AuthChallenge.kind == kind,
            AuthChallenge.used.is_(False),
            AuthChallenge.expires_at > now,
        )
        if bound_identity_id is None:
            query = query.where(AuthChallenge.identity_id.is_(None))
        elif allow_unbound:
            query = query.where(
                or_(
                    AuthChallenge.identity_id == bound_identity_id,
                    AuthChallenge.identity_id.is_(None),
                )
            )
        else:
            query = query.where(AuthChallenge.identity_id == bound_identity_id)

        candidate_id = (await self.session.execute(query)).scalar_one_or_none()
        if candidate_id is None:
            raise ChallengeNotFoundError(f"No live {kind.value} challenge")

        result = await self.session.execute(
            update(AuthChallenge)
            .where(AuthChallenge.id == candidate_id, AuthChallenge.used.is_(False))
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ChallengeNotFoundError(f"{kind.value} challenge already consumed")

        challenge = await self.session.get(AuthChallenge, candidate_id, populate_existing=True)
        if challenge is None:
            raise ChallengeNotFoundError(f"{kind.value} challenge vanished")
        return challenge

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Delete challenges whose expiry has passed.

        Returns:
            Number of rows deleted
        """
        cutoff = now or utcnow()
        result = await self.session.execute(
            delete(AuthChallenge)
            .where(AuthChallenge.expires_at <= cutoff)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
