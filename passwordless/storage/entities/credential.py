"""WebAuthn credential entity model.

Stores the public key material of each registered authenticator. Each row
represents one authenticator bound to exactly one identity.
"""

from datetime import datetime

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, Index, LargeBinary, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from passwordless.storage.models import Base, TimestampMixin, UUIDMixin

DEFAULT_DEVICE_LABEL = "Unknown Device"


class WebAuthnCredential(Base, UUIDMixin, TimestampMixin):
    """Stored WebAuthn credential.

    ``public_key`` is kept verbatim and only interpreted by the ceremony
    verifier. ``sign_count`` never decreases across successful
    authentications.
    """

    __tablename__ = "webauthn_credentials"
    __table_args__ = (
        Index("ix_webauthn_credentials_credential_id", "credential_id", unique=True),
    )

    credential_id: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
        doc="WebAuthn credential ID (unique per authenticator)",
    )
    identity_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Owning identity",
    )
    public_key: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
        doc="COSE public key bytes for signature verification",
    )
    sign_count: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Signature counter for clone detection (unsigned 32-bit)",
    )
    transports: Mapped[list | None] = mapped_column(
        JSON,
        nullable=True,
        doc='Authenticator transports (e.g. ["internal", "hybrid"])',
    )
    device_label: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default=DEFAULT_DEVICE_LABEL,
        doc="User-friendly device label (e.g. 'iPhone 15')",
    )
    last_used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="When this credential was last used to authenticate",
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<WebAuthnCredential(device={self.device_label!r}, "
            f"identity_id={self.identity_id!r})>"
        )
