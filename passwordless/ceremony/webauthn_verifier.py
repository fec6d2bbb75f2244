"""Ceremony verifier backed by py_webauthn.

Builds ceremony options and verifies attestation/assertion responses with
the ``webauthn`` library. Library rejections are reported as
``verified=False`` results; nothing from the library escapes as an
exception.
"""

import json
import logging
from collections.abc import Sequence
from typing import Any, cast

from webauthn import (
    base64url_to_bytes,
    generate_authentication_options,
    generate_registration_options,
    options_to_json,
    verify_authentication_response,
    verify_registration_response,
)
from webauthn.helpers import parse_client_data_json
from webauthn.helpers.structs import (
    AttestationConveyancePreference,
    AuthenticatorSelectionCriteria,
    AuthenticatorTransport,
    PublicKeyCredentialDescriptor,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from passwordless.ceremony.verifier import (
    AuthenticationVerification,
    CeremonyPreferences,
    CredentialDescriptor,
    RegistrationVerification,
    RelyingParty,
)

logger = logging.getLogger(__name__)

_KNOWN_TRANSPORTS = {t.value for t in AuthenticatorTransport}


class WebAuthnCeremonyVerifier:
    """``CeremonyVerifier`` implementation using py_webauthn."""

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
    ) -> dict[str, Any]:
        options = generate_registration_options(
            rp_id=relying_party.id,
            rp_name=relying_party.name,
            user_id=identity_id.encode(),
            user_name=email,
            user_display_name=display_name,
            challenge=challenge,
            attestation=AttestationConveyancePreference.NONE,
            exclude_credentials=[_descriptor(c) for c in exclude_credentials],
            authenticator_selection=AuthenticatorSelectionCriteria(
                resident_key=ResidentKeyRequirement(preferences.resident_key),
                user_verification=UserVerificationRequirement(preferences.user_verification),
            ),
        )
        return _options_to_dict(options)

    def verify_registration(
        self,
        response: dict[str, Any],
        *,
        expected_challenge: bytes,
        expected_origin: str,
        expected_rp_id: str,
        require_user_verification: bool = False,
    ) -> RegistrationVerification:
        try:
            verification = verify_registration_response(
                credential=response,
                expected_challenge=expected_challenge,
                expected_rp_id=expected_rp_id,
                expected_origin=expected_origin,
                require_user_verification=require_user_verification,
            )
        except Exception as e:
            logger.warning("Registration response rejected: %s", e)
            return RegistrationVerification(verified=False)

        return RegistrationVerification(
            verified=True,
            credential_id=verification.credential_id,
            public_key=verification.credential_public_key,
            initial_counter=verification.sign_count,
            transports=_transports_of(response),
        )

    def prepare_authentication(
        self,
        relying_party: RelyingParty,
        *,
        allow_credentials: Sequence[CredentialDescriptor],
        preferences: CeremonyPreferences,
        challenge: bytes,
    ) -> dict[str, Any]:
        options = generate_authentication_options(
            rp_id=relying_party.id,
            challenge=challenge,
            allow_credentials=[_descriptor(c) for c in allow_credentials] or None,
            user_verification=UserVerificationRequirement(preferences.user_verification),
        )
        return _options_to_dict(options)

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
    ) -> AuthenticationVerification:
        # The library's own sign-count check is disabled (current count 0):
        # counter regressions are classified by the orchestrator.
        try:
            verification = verify_authentication_response(
                credential=response,
                expected_challenge=expected_challenge,
                expected_rp_id=expected_rp_id,
                expected_origin=expected_origin,
                credential_public_key=stored_public_key,
                credential_current_sign_count=0,
                require_user_verification=require_user_verification,
            )
        except Exception as e:
            logger.warning("Authentication response rejected: %s", e)
            return AuthenticationVerification(verified=False)

        return AuthenticationVerification(verified=True, new_counter=verification.new_sign_count)

    def credential_id_of(self, response: dict[str, Any]) -> bytes | None:
        raw_id = response.get("rawId") or response.get("id")
        if not isinstance(raw_id, str) or not raw_id:
            return None
        try:
            return base64url_to_bytes(raw_id)
        except ValueError:
            return None

    def claimed_challenge(self, response: dict[str, Any]) -> bytes | None:
        inner = response.get("response")
        if not isinstance(inner, dict):
            return None
        client_data = inner.get("clientDataJSON")
        if not isinstance(client_data, str) or not client_data:
            return None
        try:
            return parse_client_data_json(base64url_to_bytes(client_data)).challenge
        except Exception as e:
            logger.debug("Unreadable clientDataJSON: %s", e)
            return None


def _descriptor(credential: CredentialDescriptor) -> PublicKeyCredentialDescriptor:
    transports = None
    if credential.transports:
        transports = [
            AuthenticatorTransport(t) for t in credential.transports if t in _KNOWN_TRANSPORTS
        ]
    return PublicKeyCredentialDescriptor(id=credential.id, transports=transports)


def _transports_of(response: dict[str, Any]) -> list[str] | None:
    inner = response.get("response")
    if not isinstance(inner, dict):
        return None
    transports = inner.get("transports")
    if not isinstance(transports, list):
        return None
    return [t for t in transports if isinstance(t, str)]


def _options_to_dict(options: Any) -> dict[str, Any]:
    """Convert WebAuthn options object to a JSON-serializable dict.

    py_webauthn returns dataclass-like objects; options_to_json
    base64url-encodes the binary fields for the browser.
    """
    return cast("dict[str, Any]", json.loads(options_to_json(options)))
