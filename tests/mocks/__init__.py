"""Test doubles for the ceremony store and verifier."""

from tests.mocks.store import InMemoryCeremonyStore
from tests.mocks.verifier import FakeCeremonyVerifier, assertion, attestation

__all__ = [
    "FakeCeremonyVerifier",
    "InMemoryCeremonyStore",
    "assertion",
    "attestation",
]
