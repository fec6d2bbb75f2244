"""Identity entity model.

One row per human identity. Created on the first registration ceremony
for an unseen email and never deleted by the ceremony layer.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from passwordless.storage.models import Base, TimestampMixin, UUIDMixin


class Identity(Base, UUIDMixin, TimestampMixin):
    """A human identity that owns one or more WebAuthn credentials."""

    __tablename__ = "identities"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        doc="Email address, unique and case-sensitive as stored",
    )
    display_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Display name (the username supplied at registration)",
    )

    def __repr__(self) -> str:
        return f"<Identity(id={self.id}, email={self.email!r})>"
