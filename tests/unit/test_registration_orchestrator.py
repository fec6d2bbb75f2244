"""Unit tests for the registration ceremony orchestrator.

Runs full ceremonies against the in-memory store and the fake verifier.
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from passwordless.ceremony import Failure, FailureKind, Success
from passwordless.dal.base import utcnow
from passwordless.storage.entities import ChallengeKind
from tests.mocks import attestation

CRED_A = b"\x01" * 16
CRED_B = b"\x02" * 16


async def _begin(registration, email="alice@example.com", username="alice"):
    result = await registration.begin(email, username)
    assert isinstance(result, Success)
    return result.value


@pytest.mark.asyncio
class TestBegin:
    async def test_creates_identity_and_bound_challenge(self, registration, memory_store):
        options = await _begin(registration)

        identity = memory_store.identity_by_email("alice@example.com")
        assert identity is not None
        assert identity.display_name == "alice"
        assert options.identity_id == identity.id

        challenges = memory_store.challenges_of(ChallengeKind.REGISTRATION)
        assert len(challenges) == 1
        assert challenges[0].identity_id == identity.id
        assert not challenges[0].used
        assert options.ceremony_params["challenge"] == challenges[0].value.hex()

    async def test_challenge_expires_after_five_minutes(self, registration, memory_store):
        before = utcnow()
        await _begin(registration)

        challenge = memory_store.challenges_of(ChallengeKind.REGISTRATION)[0]
        assert challenge.expires_at - before >= timedelta(seconds=300)
        assert challenge.expires_at - before < timedelta(seconds=301)

    async def test_options_carry_user_and_preferences(self, registration):
        options = await _begin(registration)

        params = options.ceremony_params
        assert params["user"] == {
            "id": options.identity_id,
            "name": "alice@example.com",
            "displayName": "alice",
        }
        assert params["rp"]["id"] == "localhost"
        assert params["authenticatorSelection"] == {
            "residentKey": "preferred",
            "userVerification": "preferred",
        }
        assert params["excludeCredentials"] == []

    async def test_existing_email_reuses_identity(self, registration, memory_store):
        first = await _begin(registration)
        second = await _begin(registration, username="someone-else")

        assert second.identity_id == first.identity_id
        assert len(memory_store.tables.identities) == 1
        assert memory_store.identity_by_email("alice@example.com").display_name == "alice"

    async def test_excludes_already_registered_credentials(self, registration):
        options = await _begin(registration)
        await registration.complete(
            options.identity_id, attestation(options.ceremony_params, CRED_A)
        )

        again = await _begin(registration)

        assert again.ceremony_params["excludeCredentials"] == [{"id": CRED_A.hex()}]

    @pytest.mark.parametrize(("email", "username"), [("", "alice"), ("alice@example.com", "")])
    async def test_missing_input(self, registration, memory_store, email, username):
        result = await registration.begin(email, username)

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.MISSING_INPUT
        assert memory_store.transactions_opened == 0

    async def test_store_unavailable(self, registration, memory_store):
        memory_store.unavailable = True

        result = await registration.begin("alice@example.com", "alice")

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.STORE_UNAVAILABLE


@pytest.mark.asyncio
class TestComplete:
    async def test_success_stores_credential_and_issues_session(self, registration, memory_store):
        options = await _begin(registration)
        response = attestation(
            options.ceremony_params,
            CRED_A,
            public_key=b"\x10\x20",
            counter=7,
            transports=["internal", "hybrid"],
        )

        result = await registration.complete(options.identity_id, response, "Work laptop")

        assert isinstance(result, Success)
        issued = result.value
        assert issued.identity_id == options.identity_id
        assert issued.token in memory_store.tables.sessions
        assert issued.expires_at - utcnow() > timedelta(hours=167)

        credential = memory_store.credential(CRED_A)
        assert credential.identity_id == options.identity_id
        assert credential.public_key == b"\x10\x20"
        assert credential.sign_count == 7
        assert credential.device_label == "Work laptop"
        assert credential.transports == ["internal", "hybrid"]

        assert memory_store.challenges_of(ChallengeKind.REGISTRATION)[0].used

    async def test_default_device_label(self, registration, memory_store):
        options = await _begin(registration)

        await registration.complete(options.identity_id, attestation(options.ceremony_params, CRED_A))

        assert memory_store.credential(CRED_A).device_label == "Unknown Device"

    async def test_verifier_receives_stored_challenge(self, registration, memory_store, fake_verifier):
        options = await _begin(registration)

        await registration.complete(options.identity_id, attestation(options.ceremony_params, CRED_A))

        stored = memory_store.challenges_of(ChallengeKind.REGISTRATION)[0]
        assert fake_verifier.verify_calls[-1]["expected_challenge"] == stored.value

    async def test_second_credential_for_same_identity(self, registration, memory_store):
        first = await _begin(registration)
        await registration.complete(first.identity_id, attestation(first.ceremony_params, CRED_A))
        second = await _begin(registration)

        result = await registration.complete(
            second.identity_id, attestation(second.ceremony_params, CRED_B)
        )

        assert isinstance(result, Success)
        assert memory_store.credential(CRED_B).identity_id == first.identity_id

    async def test_unknown_identity(self, registration):
        result = await registration.complete(str(uuid4()), {"credentialId": CRED_A.hex()})

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.IDENTITY_NOT_FOUND

    async def test_malformed_identity_id(self, registration, memory_store):
        result = await registration.complete("not-a-uuid", {"credentialId": CRED_A.hex()})

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.IDENTITY_NOT_FOUND
        assert memory_store.transactions_opened == 0

    @pytest.mark.parametrize("response", [{}, None])
    async def test_missing_response(self, registration, response):
        result = await registration.complete(str(uuid4()), response)

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.MISSING_INPUT

    async def test_no_outstanding_challenge(self, registration, memory_store):
        options = await _begin(registration)
        memory_store.tables.challenges.clear()

        result = await registration.complete(
            options.identity_id, attestation(options.ceremony_params, CRED_A)
        )

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.INVALID_OR_EXPIRED_CHALLENGE
        assert memory_store.credential(CRED_A) is None

    async def test_response_without_challenge_leaves_live_challenge(self, registration, memory_store):
        options = await _begin(registration)

        junk = await registration.complete(options.identity_id, {"credentialId": CRED_A.hex()})

        assert isinstance(junk, Failure)
        assert junk.kind == FailureKind.INVALID_OR_EXPIRED_CHALLENGE
        assert not memory_store.challenges_of(ChallengeKind.REGISTRATION)[0].used

        result = await registration.complete(
            options.identity_id, attestation(options.ceremony_params, CRED_A)
        )

        assert isinstance(result, Success)

    async def test_replayed_response_is_rejected(self, registration, memory_store):
        options = await _begin(registration)
        response = attestation(options.ceremony_params, CRED_A)
        await registration.complete(options.identity_id, response)

        replay = await registration.complete(options.identity_id, response)

        assert isinstance(replay, Failure)
        assert replay.kind == FailureKind.INVALID_OR_EXPIRED_CHALLENGE
        assert len(memory_store.tables.sessions) == 1

    async def test_expired_challenge(self, registration, memory_store):
        options = await _begin(registration)
        later = utcnow() + timedelta(seconds=301)
        memory_store.clock = lambda: later

        result = await registration.complete(
            options.identity_id, attestation(options.ceremony_params, CRED_A)
        )

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.INVALID_OR_EXPIRED_CHALLENGE

    async def test_failed_verification_still_consumes_challenge(self, registration, memory_store):
        options = await _begin(registration)

        rejected = await registration.complete(
            options.identity_id, attestation(options.ceremony_params, CRED_A, valid=False)
        )
        retry = await registration.complete(
            options.identity_id, attestation(options.ceremony_params, CRED_A)
        )

        assert rejected.kind == FailureKind.VERIFICATION_FAILED
        assert retry.kind == FailureKind.INVALID_OR_EXPIRED_CHALLENGE
        assert memory_store.credential(CRED_A) is None
        assert memory_store.tables.sessions == {}

    async def test_authentication_challenge_cannot_complete_registration(
        self, registration, authentication, memory_store
    ):
        options = await _begin(registration)
        auth_options = await authentication.begin("alice@example.com")
        # Drop the registration challenge so only the authentication one is live
        for challenge in memory_store.challenges_of(ChallengeKind.REGISTRATION):
            challenge.used = True

        result = await registration.complete(
            options.identity_id, attestation(auth_options.value.ceremony_params, CRED_A)
        )

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.INVALID_OR_EXPIRED_CHALLENGE

    async def test_challenge_of_other_identity_is_not_accepted(self, registration, memory_store):
        alice = await _begin(registration)
        bob = await _begin(registration, email="bob@example.com", username="bob")

        result = await registration.complete(
            alice.identity_id, attestation(bob.ceremony_params, CRED_A)
        )

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.INVALID_OR_EXPIRED_CHALLENGE

    async def test_duplicate_credential(self, registration, memory_store):
        alice = await _begin(registration)
        await registration.complete(alice.identity_id, attestation(alice.ceremony_params, CRED_A))
        bob = await _begin(registration, email="bob@example.com", username="bob")

        result = await registration.complete(bob.identity_id, attestation(bob.ceremony_params, CRED_A))

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.DUPLICATE_CREDENTIAL
        assert memory_store.credential(CRED_A).identity_id == alice.identity_id
        assert len(memory_store.tables.sessions) == 1

    async def test_store_unavailable(self, registration, memory_store):
        options = await _begin(registration)
        memory_store.unavailable = True

        result = await registration.complete(
            options.identity_id, attestation(options.ceremony_params, CRED_A)
        )

        assert isinstance(result, Failure)
        assert result.kind == FailureKind.STORE_UNAVAILABLE


@pytest.mark.asyncio
async def test_concurrent_completion_consumes_challenge_once(registration, memory_store):
    import asyncio

    options = await _begin(registration)
    response = attestation(options.ceremony_params, CRED_A)

    results = await asyncio.gather(
        registration.complete(options.identity_id, response),
        registration.complete(options.identity_id, response),
    )

    assert sum(isinstance(r, Success) for r in results) == 1
    failures = [r for r in results if isinstance(r, Failure)]
    assert failures[0].kind == FailureKind.INVALID_OR_EXPIRED_CHALLENGE
    assert len(memory_store.tables.sessions) == 1
