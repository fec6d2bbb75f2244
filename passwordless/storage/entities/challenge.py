"""Ceremony challenge entity model.

Short-lived random values handed to the browser with ceremony options and
consumed exactly once when the signed response comes back.
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, LargeBinary
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from passwordless.storage.models import Base, TimestampMixin, UUIDMixin


class ChallengeKind(str, enum.Enum):
    """Which ceremony a challenge was issued for."""

    REGISTRATION = "registration"
    AUTHENTICATION = "authentication"


class AuthChallenge(Base, UUIDMixin, TimestampMixin):
    """Outstanding ceremony challenge.

    Acceptable for verification iff unused, unexpired, and issued for the
    ceremony being completed. ``identity_id`` is null for discoverable
    (unbound) authentication ceremonies.
    """

    __tablename__ = "auth_challenges"
    __table_args__ = (
        Index("ix_auth_challenges_lookup", "kind", "identity_id", "used", "expires_at"),
    )

    value: Mapped[bytes] = mapped_column(
        LargeBinary,
        unique=True,
        nullable=False,
        doc="Random challenge bytes",
    )
    identity_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=True,
        doc="Identity the ceremony is bound to (null = discoverable)",
    )
    kind: Mapped[ChallengeKind] = mapped_column(
        Enum(
            ChallengeKind,
            name="challenge_kind",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Instant after which the challenge is never accepted",
    )
    used: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Set once the challenge has been consumed",
    )

    def __repr__(self) -> str:
        return f"<AuthChallenge(kind={self.kind.value}, identity_id={self.identity_id}, used={self.used})>"
