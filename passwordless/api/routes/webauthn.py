"""WebAuthn ceremony routes.

Registration flow (public, creates the identity on first use):
1. POST /register/options -> creation options + identity id
2. POST /register/verify  -> stores credential, returns session token

Authentication flow (public):
1. POST /authenticate/options -> request options (email optional)
2. POST /authenticate/verify  -> returns session token + identity summary

Handlers translate tagged ceremony results into HTTP responses. Failure
details stay in the server log; clients only see the stable error type.
"""

import logging

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from passwordless.api.deps import Authentication, Registration
from passwordless.api.schemas import (
    AuthenticateOptionsRequest,
    AuthenticateOptionsResponse,
    AuthenticateVerifyRequest,
    AuthenticateVerifyResponse,
    IdentitySummaryModel,
    RegisterOptionsRequest,
    RegisterOptionsResponse,
    RegisterVerifyRequest,
    SessionResponse,
)
from passwordless.api.utils import error_response
from passwordless.ceremony.results import Failure, FailureKind

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebAuthn"])

_STORE_UNAVAILABLE = (503, "Service temporarily unavailable.", "store_unavailable")
_MISSING_INPUT = (400, "Missing required fields.", "missing_input")
_AUTH_FAILED = (400, "Authentication failed.", "authentication_failed")

# (status, client message, error type) per failure kind
_REGISTRATION_ERRORS: dict[FailureKind, tuple[int, str, str]] = {
    FailureKind.MISSING_INPUT: _MISSING_INPUT,
    FailureKind.IDENTITY_NOT_FOUND: (400, "Invalid or expired challenge.", "invalid_challenge"),
    FailureKind.INVALID_OR_EXPIRED_CHALLENGE: (
        400,
        "Invalid or expired challenge.",
        "invalid_challenge",
    ),
    FailureKind.VERIFICATION_FAILED: (400, "Registration verification failed.", "verification_failed"),
    FailureKind.DUPLICATE_CREDENTIAL: (400, "Credential already registered.", "duplicate_credential"),
    FailureKind.STORE_UNAVAILABLE: _STORE_UNAVAILABLE,
}

# Unknown credential, unknown owner, and a bad signature look identical
_AUTHENTICATION_ERRORS: dict[FailureKind, tuple[int, str, str]] = {
    FailureKind.MISSING_INPUT: _MISSING_INPUT,
    FailureKind.CREDENTIAL_NOT_FOUND: _AUTH_FAILED,
    FailureKind.IDENTITY_NOT_FOUND: _AUTH_FAILED,
    FailureKind.VERIFICATION_FAILED: _AUTH_FAILED,
    FailureKind.INVALID_OR_EXPIRED_CHALLENGE: (
        400,
        "Invalid or expired challenge.",
        "invalid_challenge",
    ),
    FailureKind.POSSIBLE_CLONE_DETECTED: (
        400,
        "Authenticator counter check failed.",
        "possible_clone_detected",
    ),
    FailureKind.STORE_UNAVAILABLE: _STORE_UNAVAILABLE,
}


def _failure_response(
    failure: Failure,
    table: dict[FailureKind, tuple[int, str, str]],
) -> JSONResponse:
    status_code, message, error_type = table.get(
        failure.kind, (400, "Request failed.", failure.kind.value)
    )
    return error_response(status_code, message, error_type)


# =============================================================================
# Registration
# =============================================================================


@router.post(
    "/register/options",
    response_model=RegisterOptionsResponse,
    summary="Begin passkey registration",
)
async def register_options(body: RegisterOptionsRequest, orchestrator: Registration):
    """Generate creation options for a new passkey.

    Creates the identity for ``email`` if it does not exist yet.
    """
    result = await orchestrator.begin(body.email, body.username)
    if isinstance(result, Failure):
        return _failure_response(result, _REGISTRATION_ERRORS)

    return RegisterOptionsResponse(
        ceremony_params=result.value.ceremony_params,
        identity_id=result.value.identity_id,
    )


@router.post(
    "/register/verify",
    response_model=SessionResponse,
    summary="Complete passkey registration",
)
async def register_verify(body: RegisterVerifyRequest, orchestrator: Registration):
    """Verify the attestation, store the credential, and issue a session."""
    result = await orchestrator.complete(body.identity_id, body.response, body.device_label)
    if isinstance(result, Failure):
        return _failure_response(result, _REGISTRATION_ERRORS)

    return SessionResponse(
        session_token=result.value.token,
        expires_at=result.value.expires_at,
    )


# =============================================================================
# Authentication
# =============================================================================


@router.post(
    "/authenticate/options",
    response_model=AuthenticateOptionsResponse,
    summary="Begin passkey authentication",
)
async def authenticate_options(
    orchestrator: Authentication,
    body: AuthenticateOptionsRequest | None = Body(default=None),
):
    """Generate request options.

    With an email of a known identity the options carry its credentials;
    otherwise the browser picks a discoverable credential.
    """
    email = body.email if body is not None else None
    result = await orchestrator.begin(email or None)
    if isinstance(result, Failure):
        return _failure_response(result, _AUTHENTICATION_ERRORS)

    return AuthenticateOptionsResponse(ceremony_params=result.value.ceremony_params)


@router.post(
    "/authenticate/verify",
    response_model=AuthenticateVerifyResponse,
    summary="Complete passkey authentication",
)
async def authenticate_verify(body: AuthenticateVerifyRequest, orchestrator: Authentication):
    """Verify the assertion and issue a session for the credential's owner."""
    result = await orchestrator.complete(body.response)
    if isinstance(result, Failure):
        return _failure_response(result, _AUTHENTICATION_ERRORS)

    authenticated = result.value
    return AuthenticateVerifyResponse(
        session_token=authenticated.session.token,
        expires_at=authenticated.session.expires_at,
        identity_summary=IdentitySummaryModel(
            id=authenticated.identity.id,
            email=authenticated.identity.email,
            display_name=authenticated.identity.display_name,
        ),
    )
