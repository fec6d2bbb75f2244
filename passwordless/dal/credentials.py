"""Credential registry data access.

Persists registered WebAuthn credentials and applies counter updates with
compare-and-set semantics.
"""

import logging
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from passwordless.dal.base import BaseRepository, utcnow
from passwordless.exceptions import DuplicateCredentialError
from passwordless.storage.entities.credential import DEFAULT_DEVICE_LABEL, WebAuthnCredential

logger = logging.getLogger(__name__)


class CredentialRepository(BaseRepository[WebAuthnCredential]):
    """Repository for WebAuthnCredential operations."""

    model = WebAuthnCredential

    async def list_by_owner(self, identity_id: str) -> list[WebAuthnCredential]:
        """List every credential owned by an identity, oldest first."""
        result = await self.session.execute(
            select(WebAuthnCredential)
            .where(WebAuthnCredential.identity_id == identity_id)
            .order_by(WebAuthnCredential.created_at)
        )
        return list(result.scalars().all())

    async def find_by_id(self, credential_id: bytes) -> WebAuthnCredential | None:
        """Look up a credential by its WebAuthn credential ID."""
        result = await self.session.execute(
            select(WebAuthnCredential).where(WebAuthnCredential.credential_id == credential_id)
        )
        return result.scalar_one_or_none()

    async def register(
        self,
        identity_id: str,
        credential_id: bytes,
        public_key: bytes,
        initial_counter: int,
        device_label: str | None = None,
        transports: list[str] | None = None,
    ) -> WebAuthnCredential:
        """Store a newly verified credential.

        Raises:
            DuplicateCredentialError: If ``credential_id`` is already
                registered. A concurrent insert of the same ID is caught by
                the unique index and reported the same way.
        """
        if await self.find_by_id(credential_id) is not None:
            raise DuplicateCredentialError()

        credential = WebAuthnCredential(
            id=str(uuid4()),
            identity_id=identity_id,
            credential_id=credential_id,
            public_key=public_key,
            sign_count=initial_counter,
            device_label=device_label or DEFAULT_DEVICE_LABEL,
            transports=transports,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(credential)
                await self.session.flush()
        except IntegrityError as e:
            raise DuplicateCredentialError() from e

        return credential

    async def record_successful_use(
        self,
        credential_id: bytes,
        new_counter: int,
        *,
        expected_counter: int,
    ) -> bool:
        """Store the new signature counter and touch ``last_used_at``.

        The update only applies while the stored counter still equals
        ``expected_counter`` (the value the caller validated against).

        Returns:
            True if the row was updated, False if another authentication
            moved the counter first.
        """
        result = await self.session.execute(
            update(WebAuthnCredential)
            .where(
                WebAuthnCredential.credential_id == credential_id,
                WebAuthnCredential.sign_count == expected_counter,
            )
            .values(sign_count=new_counter, last_used_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
