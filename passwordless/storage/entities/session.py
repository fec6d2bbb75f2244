"""Session entity model.

Opaque bearer tokens minted as the terminal step of a successful ceremony.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from passwordless.storage.models import Base, TimestampMixin, UUIDMixin


class AuthSession(Base, UUIDMixin, TimestampMixin):
    """Issued session token bound to an identity."""

    __tablename__ = "sessions"

    token: Mapped[str] = mapped_column(
        String(128),
        unique=True,
        nullable=False,
        index=True,
        doc="URL-safe random bearer token",
    )
    identity_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuthSession(identity_id={self.identity_id}, expires_at={self.expires_at})>"
