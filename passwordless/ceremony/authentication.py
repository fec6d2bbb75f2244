"""Authentication ceremony orchestration.

1. ``begin``: issue an authentication challenge. When the caller names an
   email that belongs to a known identity, the challenge is bound to it and
   the options carry an allow-list of its credentials. Otherwise the
   ceremony is discoverable: unbound challenge, empty allow-list. The two
   cases look the same to the caller, so emails cannot be enumerated.
2. ``complete``: find the credential named in the response, consume the
   matching challenge, verify the assertion, enforce the signature counter,
   and issue a session for the credential's owner.

Clone detection: once a credential has reported a non-zero counter, every
later assertion must report a strictly greater one. Authenticators that
always report 0 are tolerated.
"""

import logging
from typing import Any

from passwordless.ceremony.results import (
    AuthenticatedSession,
    AuthenticationOptions,
    CeremonyResult,
    Failure,
    FailureKind,
    IdentitySummary,
    IssuedSession,
    Success,
)
from passwordless.ceremony.store import CeremonyStore
from passwordless.ceremony.verifier import (
    CeremonyPreferences,
    CeremonyVerifier,
    CredentialDescriptor,
    RelyingParty,
)
from passwordless.exceptions import ChallengeNotFoundError, StoreUnavailable
from passwordless.storage.entities import ChallengeKind

logger = logging.getLogger(__name__)


def is_counter_acceptable(stored_counter: int, new_counter: int) -> bool:
    """Whether ``new_counter`` may follow ``stored_counter``.

    A stored counter of 0 accepts anything (the authenticator may not
    implement counters, or this is its first use). A non-zero stored
    counter requires strict growth.
    """
    if stored_counter == 0:
        return True
    return new_counter > stored_counter


class AuthenticationOrchestrator:
    """Runs authentication ceremonies against an injected store and verifier."""

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

    async def begin(self, email: str | None = None) -> CeremonyResult[AuthenticationOptions]:
        """Start an authentication ceremony.

        Args:
            email: Optional email narrowing the ceremony to one identity

        Returns:
            Success with request options, or Failure (STORE_UNAVAILABLE)
        """
        try:
            async with self._store.transaction() as tx:
                identity = await tx.identities.find_by_email(email) if email else None
                allow: list[CredentialDescriptor] = []
                if identity is not None:
                    allow = [
                        CredentialDescriptor(id=c.credential_id, transports=c.transports)
                        for c in await tx.credentials.list_by_owner(identity.id)
                    ]
                challenge = await tx.challenges.issue(
                    ChallengeKind.AUTHENTICATION,
                    identity.id if identity is not None else None,
                )
                params = self._verifier.prepare_authentication(
                    self._rp,
                    allow_credentials=allow,
                    preferences=self._preferences,
                    challenge=challenge.value,
                )
        except StoreUnavailable as e:
            logger.error("Authentication options failed: %s", e)
            return Failure(FailureKind.STORE_UNAVAILABLE, str(e))

        logger.info(
            "Issued %s authentication challenge",
            "bound" if identity is not None else "discoverable",
        )
        return Success(AuthenticationOptions(ceremony_params=params))

    async def complete(self, response: dict[str, Any]) -> CeremonyResult[AuthenticatedSession]:
        """Finish an authentication ceremony.

        Args:
            response: Assertion response from ``navigator.credentials.get()``

        Returns:
            Success with the session and identity summary, or Failure
            (MISSING_INPUT, CREDENTIAL_NOT_FOUND, INVALID_OR_EXPIRED_CHALLENGE,
            VERIFICATION_FAILED, POSSIBLE_CLONE_DETECTED, STORE_UNAVAILABLE)
        """
        if not response:
            return Failure(FailureKind.MISSING_INPUT, "response required")
        credential_id = self._verifier.credential_id_of(response)
        if not credential_id:
            return Failure(FailureKind.MISSING_INPUT, "response carries no credential id")

        try:
            result = await self._complete(credential_id, response)
        except StoreUnavailable as e:
            logger.error("Authentication verification failed: %s", e)
            return Failure(FailureKind.STORE_UNAVAILABLE, str(e))

        if isinstance(result, Failure):
            logger.warning("Authentication failed: %s", result.kind.value)
        else:
            logger.info("Authentication successful for identity %s", result.value.identity.id)
        return result

    async def _complete(
        self,
        credential_id: bytes,
        response: dict[str, Any],
    ) -> CeremonyResult[AuthenticatedSession]:
        claimed = self._verifier.claimed_challenge(response)
        # No readable challenge: leave live ones for the genuine response
        if claimed is None:
            return Failure(FailureKind.INVALID_OR_EXPIRED_CHALLENGE, "response names no challenge")

        try:
            async with self._store.transaction() as tx:
                credential = await tx.credentials.find_by_id(credential_id)
                if credential is None:
                    return Failure(FailureKind.CREDENTIAL_NOT_FOUND)
                identity = await tx.identities.get_by_id(credential.identity_id)
                if identity is None:
                    return Failure(FailureKind.CREDENTIAL_NOT_FOUND, "credential owner missing")
                challenge = await tx.challenges.consume(
                    ChallengeKind.AUTHENTICATION,
                    credential.identity_id,
                    value=claimed,
                    allow_unbound=True,
                )
        except ChallengeNotFoundError as e:
            return Failure(FailureKind.INVALID_OR_EXPIRED_CHALLENGE, str(e))

        stored_counter = credential.sign_count
        verification = self._verifier.verify_authentication(
            response,
            expected_challenge=challenge.value,
            expected_origin=self._rp.origin,
            expected_rp_id=self._rp.id,
            stored_public_key=credential.public_key,
            stored_counter=stored_counter,
            require_user_verification=self._preferences.require_user_verification,
        )
        if not verification.verified:
            return Failure(FailureKind.VERIFICATION_FAILED)

        if not is_counter_acceptable(stored_counter, verification.new_counter):
            logger.warning(
                "Signature counter did not increase for credential of identity %s "
                "(stored=%d, reported=%d)",
                identity.id,
                stored_counter,
                verification.new_counter,
            )
            return Failure(FailureKind.POSSIBLE_CLONE_DETECTED)

        async with self._store.transaction() as tx:
            updated = await tx.credentials.record_successful_use(
                credential_id,
                verification.new_counter,
                expected_counter=stored_counter,
            )
            if not updated:
                return Failure(
                    FailureKind.POSSIBLE_CLONE_DETECTED,
                    "counter changed during verification",
                )
            auth_session = await tx.sessions.issue(identity.id)

        return Success(
            AuthenticatedSession(
                session=IssuedSession(
                    token=auth_session.token,
                    identity_id=identity.id,
                    expires_at=auth_session.expires_at,
                ),
                identity=IdentitySummary(
                    id=identity.id,
                    email=identity.email,
                    display_name=identity.display_name,
                ),
            )
        )
