"""Registration ceremony orchestration.

Two steps per ceremony:

1. ``begin``: resolve or create the identity for an email, issue a
   registration challenge bound to it, and return creation options that
   exclude authenticators the identity already enrolled.
2. ``complete``: consume that challenge, verify the attestation, store the
   new credential, and issue a session.

A consumed challenge stays consumed even when a later step fails, so a
rejected attestation can never be retried against the same challenge.
"""

import logging
import uuid
from typing import Any

from passwordless.ceremony.results import (
    CeremonyResult,
    Failure,
    FailureKind,
    IssuedSession,
    RegistrationOptions,
    Success,
)
from passwordless.ceremony.store import CeremonyStore
from passwordless.ceremony.verifier import (
    CeremonyPreferences,
    CeremonyVerifier,
    CredentialDescriptor,
    RelyingParty,
)
from passwordless.exceptions import (
    ChallengeNotFoundError,
    DuplicateCredentialError,
    StoreUnavailable,
)
from passwordless.storage.entities import ChallengeKind

logger = logging.getLogger(__name__)


class RegistrationOrchestrator:
    """Runs registration ceremonies against an injected store and verifier."""

    def __init__(
        self,
        store: CeremonyStore,
        verifier: CeremonyVerifier,
        relying_party: RelyingParty,
        preferences: CeremonyPreferences | None = None,
    ):
        self._store = store
        self._verifier = verifier
        self._rp = relying_party
        self._preferences = preferences or CeremonyPreferences()

    async def begin(self, email: str, username: str) -> CeremonyResult[RegistrationOptions]:
        """Start a registration ceremony.

        Args:
            email: Identity email (created on first use)
            username: Display name for a new identity

        Returns:
            Success with creation options and the identity id, or Failure
            (MISSING_INPUT, STORE_UNAVAILABLE)
        """
        if not email or not username:
            return Failure(FailureKind.MISSING_INPUT, "email and username required")

        try:
            async with self._store.transaction() as tx:
                identity = await tx.identities.find_or_create(email, username)
                existing = await tx.credentials.list_by_owner(identity.id)
                challenge = await tx.challenges.issue(ChallengeKind.REGISTRATION, identity.id)
                params = self._verifier.prepare_registration(
                    self._rp,
                    identity_id=identity.id,
                    email=identity.email,
                    display_name=identity.display_name,
                    exclude_credentials=[
                        CredentialDescriptor(id=c.credential_id, transports=c.transports)
                        for c in existing
                    ],
                    preferences=self._preferences,
                    challenge=challenge.value,
                )
        except StoreUnavailable as e:
            logger.error("Registration options failed: %s", e)
            return Failure(FailureKind.STORE_UNAVAILABLE, str(e))

        logger.info(
            "Issued registration challenge for identity %s (%d existing credentials)",
            identity.id,
            len(existing),
        )
        return Success(RegistrationOptions(ceremony_params=params, identity_id=identity.id))

    async def complete(
        self,
        identity_id: str,
        response: dict[str, Any],
        device_label: str | None = None,
    ) -> CeremonyResult[IssuedSession]:
        """Finish a registration ceremony.

        Args:
            identity_id: Identity returned by ``begin``
            response: Attestation response from ``navigator.credentials.create()``
            device_label: Optional user-facing name for the authenticator

        Returns:
            Success with the issued session, or Failure (MISSING_INPUT,
            IDENTITY_NOT_FOUND, INVALID_OR_EXPIRED_CHALLENGE,
            VERIFICATION_FAILED, DUPLICATE_CREDENTIAL, STORE_UNAVAILABLE)
        """
        if not identity_id or not response:
            return Failure(FailureKind.MISSING_INPUT, "identity id and response required")
        if not _is_uuid(identity_id):
            return Failure(FailureKind.IDENTITY_NOT_FOUND, "malformed identity id")

        try:
            result = await self._complete(identity_id, response, device_label)
        except StoreUnavailable as e:
            logger.error("Registration verification failed: %s", e)
            return Failure(FailureKind.STORE_UNAVAILABLE, str(e))

        if isinstance(result, Failure):
            logger.warning("Registration failed for identity %s: %s", identity_id, result.kind.value)
        else:
            logger.info("Registration successful for identity %s", identity_id)
        return result

    async def _complete(
        self,
        identity_id: str,
        response: dict[str, Any],
        device_label: str | None,
    ) -> CeremonyResult[IssuedSession]:
        claimed = self._verifier.claimed_challenge(response)

        try:
            async with self._store.transaction() as tx:
                identity = await tx.identities.get_by_id(identity_id)
                if identity is None:
                    return Failure(FailureKind.IDENTITY_NOT_FOUND)
                # No readable challenge: leave the live one for the genuine response
                if claimed is None:
                    return Failure(
                        FailureKind.INVALID_OR_EXPIRED_CHALLENGE, "response names no challenge"
                    )
                challenge = await tx.challenges.consume(
                    ChallengeKind.REGISTRATION, identity.id, value=claimed
                )
        except ChallengeNotFoundError as e:
            return Failure(FailureKind.INVALID_OR_EXPIRED_CHALLENGE, str(e))

        verification = self._verifier.verify_registration(
            response,
            expected_challenge=challenge.value,
            expected_origin=self._rp.origin,
            expected_rp_id=self._rp.id,
            require_user_verification=self._preferences.require_user_verification,
        )
        if not verification.verified:
            return Failure(FailureKind.VERIFICATION_FAILED)

        try:
            async with self._store.transaction() as tx:
                await tx.credentials.register(
                    identity.id,
                    verification.credential_id,
                    verification.public_key,
                    verification.initial_counter,
                    device_label=device_label,
                    transports=verification.transports,
                )
                auth_session = await tx.sessions.issue(identity.id)
        except DuplicateCredentialError:
            return Failure(FailureKind.DUPLICATE_CREDENTIAL)

        return Success(
            IssuedSession(
                token=auth_session.token,
                identity_id=identity.id,
                expires_at=auth_session.expires_at,
            )
        )


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return False
    return True
