"""Passwordless exception hierarchy.

Base exceptions for the storage and platform layers with correlation ID
support. Ceremony outcomes are not signalled with these: orchestrators
return tagged results (see ``passwordless.ceremony.results``) and only use
the store exceptions below internally.

Usage:
    from passwordless.exceptions import DuplicateCredentialError, StoreUnavailable

    try:
        await registry.register(...)
    except DuplicateCredentialError:
        ...
"""

import uuid


class PasswordlessError(Exception):
    """Base exception for all application errors.

    Carries a correlation_id for tracing errors across layers.
    """

    def __init__(self, message: str, *, correlation_id: str | None = None):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        super().__init__(message)


class StoreUnavailable(PasswordlessError):
    """The persistent store could not be reached or failed mid-operation.

    Never retried: a retry could consume a challenge twice.
    """

    pass


class ChallengeNotFoundError(PasswordlessError):
    """No unused, unexpired challenge matched the ceremony context."""

    pass


class DuplicateCredentialError(PasswordlessError):
    """A credential with the same credential ID is already registered."""

    def __init__(self, message: str = "Credential already registered", **kwargs):
        super().__init__(message, **kwargs)


class ConfigurationError(PasswordlessError):
    """Errors from application configuration."""

    pass
