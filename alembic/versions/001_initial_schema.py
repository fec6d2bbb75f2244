"""Create identity, credential, challenge and session tables.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

challenge_kind = sa.Enum("registration", "authentication", name="challenge_kind")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    """Create passwordless auth tables."""
    op.create_table(
        "identities",
        sa.Column("id", UUID(as_uuid=False), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_identities"),
    )
    op.create_index("ix_identities_email", "identities", ["email"], unique=True)

    op.create_table(
        "webauthn_credentials",
        sa.Column("id", UUID(as_uuid=False), nullable=False),
        sa.Column("credential_id", sa.LargeBinary(), nullable=False),
        sa.Column("identity_id", UUID(as_uuid=False), nullable=False),
        sa.Column("public_key", sa.LargeBinary(), nullable=False),
        sa.Column("sign_count", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("transports", sa.JSON(), nullable=True),
        sa.Column(
            "device_label",
            sa.String(100),
            nullable=False,
            server_default="Unknown Device",
        ),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_webauthn_credentials"),
        sa.ForeignKeyConstraint(
            ["identity_id"],
            ["identities.id"],
            name="fk_webauthn_credentials_identity_id_identities",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "ix_webauthn_credentials_credential_id",
        "webauthn_credentials",
        ["credential_id"],
        unique=True,
    )
    op.create_index(
        "ix_webauthn_credentials_identity_id",
        "webauthn_credentials",
        ["identity_id"],
    )

    op.create_table(
        "auth_challenges",
        sa.Column("id", UUID(as_uuid=False), nullable=False),
        sa.Column("value", sa.LargeBinary(), nullable=False),
        sa.Column("identity_id", UUID(as_uuid=False), nullable=True),
        sa.Column("kind", challenge_kind, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_auth_challenges"),
        sa.UniqueConstraint("value", name="uq_auth_challenges_value"),
        sa.ForeignKeyConstraint(
            ["identity_id"],
            ["identities.id"],
            name="fk_auth_challenges_identity_id_identities",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "ix_auth_challenges_lookup",
        "auth_challenges",
        ["kind", "identity_id", "used", "expires_at"],
    )

    op.create_table(
        "sessions",
        sa.Column("id", UUID(as_uuid=False), nullable=False),
        sa.Column("token", sa.String(128), nullable=False),
        sa.Column("identity_id", UUID(as_uuid=False), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_sessions"),
        sa.ForeignKeyConstraint(
            ["identity_id"],
            ["identities.id"],
            name="fk_sessions_identity_id_identities",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_sessions_token", "sessions", ["token"], unique=True)
    op.create_index("ix_sessions_identity_id", "sessions", ["identity_id"])


def downgrade() -> None:
    """Drop passwordless auth tables."""
    op.drop_index("ix_sessions_identity_id", table_name="sessions")
    op.drop_index("ix_sessions_token", table_name="sessions")
    op.drop_table("sessions")

    op.drop_index("ix_auth_challenges_lookup", table_name="auth_challenges")
    op.drop_table("auth_challenges")
    challenge_kind.drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_webauthn_credentials_identity_id", table_name="webauthn_credentials")
    op.drop_index("ix_webauthn_credentials_credential_id", table_name="webauthn_credentials")
    op.drop_table("webauthn_credentials")

    op.drop_index("ix_identities_email", table_name="identities")
    op.drop_table("identities")
