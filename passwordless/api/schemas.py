"""API request and response schemas.

JSON bodies use camelCase field names; Python code uses snake_case. The
aliases also accept the field names earlier clients sent (``userId``,
``credential``, ``deviceName``).
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialising to camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Registration ─────────────────────────────────────────────────────────────


class RegisterOptionsRequest(CamelModel):
    """Start a registration ceremony."""

    email: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=1, max_length=255)


class RegisterOptionsResponse(CamelModel):
    """Creation options for the browser plus the identity handle."""

    ceremony_params: dict[str, Any]
    identity_id: str


class RegisterVerifyRequest(CamelModel):
    """Attestation response from ``navigator.credentials.create()``."""

    identity_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("identityId", "identity_id", "userId"),
    )
    response: dict[str, Any] = Field(
        ...,
        validation_alias=AliasChoices("response", "credential"),
    )
    device_label: str | None = Field(
        default=None,
        max_length=100,
        validation_alias=AliasChoices("deviceLabel", "device_label", "deviceName"),
    )


class SessionResponse(CamelModel):
    """Session issued after a successful ceremony."""

    session_token: str
    expires_at: datetime


# ─── Authentication ───────────────────────────────────────────────────────────


class AuthenticateOptionsRequest(CamelModel):
    """Start an authentication ceremony. Omit email for discoverable login."""

    email: str | None = Field(default=None, max_length=255)


class AuthenticateOptionsResponse(CamelModel):
    """Request options for the browser."""

    ceremony_params: dict[str, Any]


class AuthenticateVerifyRequest(CamelModel):
    """Assertion response from ``navigator.credentials.get()``."""

    response: dict[str, Any] = Field(
        ...,
        validation_alias=AliasChoices("response", "credential"),
    )


class IdentitySummaryModel(CamelModel):
    """Public identity details returned after login."""

    id: str
    email: str
    display_name: str


class AuthenticateVerifyResponse(SessionResponse):
    """Session plus the identity it belongs to."""

    identity_summary: IdentitySummaryModel


# ─── Errors / health ──────────────────────────────────────────────────────────


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Health check response."""

    status: HealthStatus = Field(..., description="Overall service health")
    database: str = Field(..., description="Database connectivity")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Health check timestamp",
    )
    version: str = Field(default="0.1.0", description="Application version")
