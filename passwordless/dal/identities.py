"""Identity directory data access.

Resolves a human-supplied email to an internal identity, creating one on
first registration.
"""

import logging
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from passwordless.dal.base import BaseRepository
from passwordless.storage.entities.identity import Identity

logger = logging.getLogger(__name__)


class IdentityRepository(BaseRepository[Identity]):
    """Repository for Identity CRUD operations."""

    model = Identity

    async def find_by_email(self, email: str) -> Identity | None:
        """Look up an identity by exact email. No mutation."""
        result = await self.session.execute(select(Identity).where(Identity.email == email))
        return result.scalar_one_or_none()

    async def find_or_create(self, email: str, display_name: str) -> Identity:
        """Return the identity for ``email``, creating it if absent.

        The insert runs inside a savepoint. If a concurrent request created
        the same email first, the unique index rejects ours and the winner
        is returned instead, so one email never maps to two identities.

        Args:
            email: Email address (stored as given)
            display_name: Display name for a newly created identity

        Returns:
            Existing or newly created identity
        """
        existing = await self.find_by_email(email)
        if existing is not None:
            return existing

        identity = Identity(id=str(uuid4()), email=email, display_name=display_name)
        try:
            async with self.session.begin_nested():
                self.session.add(identity)
                await self.session.flush()
        except IntegrityError:
            winner = await self.find_by_email(email)
            if winner is None:
                raise
            return winner

        logger.info("Created identity %s", identity.id)
        return identity
