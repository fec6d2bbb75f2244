"""Ceremony verifier contract.

The orchestrators never touch WebAuthn cryptography directly. They ask a
``CeremonyVerifier`` to build ceremony options and to check signed
responses, so alternative backends can be swapped in without changing the
orchestration.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol
from urllib.parse import urlparse

from passwordless.exceptions import ConfigurationError
from passwordless.settings import Settings

Requirement = Literal["discouraged", "preferred", "required"]


@dataclass(frozen=True)
class RelyingParty:
    """Server-side identity that credentials are scoped to."""

    id: str
    name: str
    origin: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "RelyingParty":
        """Build the relying party from settings.

        The origin host must equal the RP ID or be a subdomain of it,
        otherwise browsers reject every ceremony.

        Raises:
            ConfigurationError: If origin and RP ID do not match.
        """
        rp_id = settings.webauthn_rp_id.strip().lower()
        origin = settings.webauthn_origin.strip().rstrip("/")
        host = (urlparse(origin).hostname or "").lower()
        if not (host == rp_id or host.endswith("." + rp_id)):
            raise ConfigurationError(
                f"WEBAUTHN_ORIGIN host '{host}' does not match WEBAUTHN_RP_ID '{rp_id}'"
            )
        return cls(id=rp_id, name=settings.webauthn_rp_name, origin=origin)


@dataclass(frozen=True)
class CeremonyPreferences:
    """Authenticator preferences sent with ceremony options."""

    resident_key: Requirement = "preferred"
    user_verification: Requirement = "preferred"
    require_user_verification: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "CeremonyPreferences":
        return cls(
            resident_key=settings.webauthn_resident_key,
            user_verification=settings.webauthn_user_verification,
            require_user_verification=settings.webauthn_require_user_verification,
        )


@dataclass(frozen=True)
class CredentialDescriptor:
    """Reference to a registered credential for allow/exclude lists."""

    id: bytes
    transports: list[str] | None = None


@dataclass(frozen=True)
class RegistrationVerification:
    """Outcome of verifying an attestation response."""

    verified: bool
    credential_id: bytes = b""
    public_key: bytes = b""
    initial_counter: int = 0
    transports: list[str] | None = None


@dataclass(frozen=True)
class AuthenticationVerification:
    """Outcome of verifying an assertion response."""

    verified: bool
    new_counter: int = 0


class CeremonyVerifier(Protocol):
    """Cryptographic backend for WebAuthn ceremonies."""

    def prepare_registration(
        self,
        relying_party: RelyingParty,
        *,
        identity_id: str,
        email: str,
        display_name: str,
        exclude_credentials: Sequence[CredentialDescriptor],
        preferences: CeremonyPreferences,
        challenge: bytes,
    ) -> dict[str, Any]: ...

    def verify_registration(
        self,
        response: dict[str, Any],
        *,
        expected_challenge: bytes,
        expected_origin: str,
        expected_rp_id: str,
        require_user_verification: bool = False,
    ) -> RegistrationVerification: ...

    def prepare_authentication(
        self,
        relying_party: RelyingParty,
        *,
        allow_credentials: Sequence[CredentialDescriptor],
        preferences: CeremonyPreferences,
        challenge: bytes,
    ) -> dict[str, Any]: ...

    def verify_authentication(
        self,
        response: dict[str, Any],
        *,
        expected_challenge: bytes,
        expected_origin: str,
        expected_rp_id: str,
        stored_public_key: bytes,
        stored_counter: int,
        require_user_verification: bool = False,
    ) -> AuthenticationVerification: ...

    def credential_id_of(self, response: dict[str, Any]) -> bytes | None:
        """Credential ID the response claims to be signed with, if readable."""
        ...

    def claimed_challenge(self, response: dict[str, Any]) -> bytes | None:
        """Challenge value embedded in the response's client data, if readable.

        Only used to pick which stored challenge to consume; the value is
        still checked cryptographically by ``verify_*``.
        """
        ...
