"""Create account creation tables.

Revision ID: 001_account_creation
Revises:
Create Date: 2026-10-18

Tables:
- funds, kyc_applications, users, investors: tenant records the signup
  flow reads and writes
- account_creation_tokens: single-use invite tokens
- email_verification_codes: 6-digit email codes, one live per (email, purpose)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_account_creation"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_KYC_STATUSES = (
    "draft",
    "submitted",
    "pre_qualified",
    "not_eligible",
    "meeting_scheduled",
    "meeting_complete",
    "account_invite_sent",
    "account_created",
)

_INVESTOR_STATUSES = (
    "prospect",
    "kyc_submitted",
    "account_created",
    "onboarding",
    "pending_validation",
    "active",
    "inactive",
)


def _in_list(column: str, values: Sequence[str]) -> str:
    return f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")"


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        sa.UUID(),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


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


def _fund_fk(ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        "fund_id",
        sa.UUID(),
        sa.ForeignKey("funds.id", ondelete=ondelete),
        nullable=False,
    )


def upgrade() -> None:
    # pgcrypto provides gen_random_uuid() for UUID primary keys
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "funds",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "kyc_applications",
        _uuid_pk(),
        _fund_fk(),
        sa.Column(
            "investor_category",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'individual'"),
        ),
        sa.Column("first_name", sa.String(255), nullable=True),
        sa.Column("last_name", sa.String(255), nullable=True),
        sa.Column("authorized_signer_first_name", sa.String(255), nullable=True),
        sa.Column("authorized_signer_last_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "status",
            sa.String(30),
            nullable=False,
            server_default=sa.text("'draft'"),
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "investor_category IN ('individual', 'entity')",
            name="ck_kyc_applications_investor_category",
        ),
        sa.CheckConstraint(
            _in_list("status", _KYC_STATUSES), name="ck_kyc_applications_status"
        ),
    )

    # users.id is the identity provider's user id; no server default
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("role", sa.String(20), nullable=False),
        _fund_fk(),
        *_timestamps(),
        sa.CheckConstraint("role IN ('investor', 'manager')", name="ck_users_role"),
    )

    op.create_table(
        "investors",
        _uuid_pk(),
        sa.Column(
            "user_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _fund_fk(),
        sa.Column(
            "first_name", sa.String(255), nullable=False, server_default=sa.text("''")
        ),
        sa.Column(
            "last_name", sa.String(255), nullable=False, server_default=sa.text("''")
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "status",
            sa.String(30),
            nullable=False,
            server_default=sa.text("'prospect'"),
        ),
        *_timestamps(),
        sa.CheckConstraint(
            _in_list("status", _INVESTOR_STATUSES), name="ck_investors_status"
        ),
    )

    op.create_table(
        "account_creation_tokens",
        _uuid_pk(),
        sa.Column(
            "kyc_application_id",
            sa.UUID(),
            sa.ForeignKey("kyc_applications.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        _fund_fk("RESTRICT"),
        sa.Column("token", sa.String(128), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_account_creation_tokens_kyc_application_id",
        "account_creation_tokens",
        ["kyc_application_id"],
    )
    op.create_index(
        "ix_account_creation_tokens_email", "account_creation_tokens", ["email"]
    )

    op.create_table(
        "email_verification_codes",
        _uuid_pk(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("code", sa.String(6), nullable=False),
        sa.Column("purpose", sa.String(20), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "attempts", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "purpose IN ('account_creation', 'password_reset', 'login')",
            name="ck_email_verification_codes_purpose",
        ),
        sa.CheckConstraint("attempts >= 0", name="ck_email_verification_codes_attempts"),
    )
    op.create_index(
        "ix_email_verification_codes_email_purpose",
        "email_verification_codes",
        ["email", "purpose"],
    )
    op.create_index(
        "ix_email_verification_codes_expires_at",
        "email_verification_codes",
        ["expires_at"],
    )
    # At most one unverified code per (email, purpose)
    op.create_index(
        "uq_email_verification_codes_live",
        "email_verification_codes",
        ["email", "purpose"],
        unique=True,
        postgresql_where=sa.text("verified_at IS NULL"),
    )


def downgrade() -> None:
    op.drop_index("uq_email_verification_codes_live")
    op.drop_index("ix_email_verification_codes_expires_at")
    op.drop_index("ix_email_verification_codes_email_purpose")
    op.drop_table("email_verification_codes")
    op.drop_index("ix_account_creation_tokens_email")
    op.drop_index("ix_account_creation_tokens_kyc_application_id")
    op.drop_table("account_creation_tokens")
    op.drop_table("investors")
    op.drop_table("users")
    op.drop_table("kyc_applications")
    op.drop_table("funds")
