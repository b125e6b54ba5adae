"""Account creation token model - emailed signup invitations.

Single-use, time-limited. Rows are never deleted: a consumed or expired
token stays as an audit record of the invite.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class AccountCreationToken(Base):
    """Account creation invite token.

    A token is valid while now < expires_at and used_at is NULL. Once
    used_at is set it is never cleared.

    Attributes:
        id: UUID primary key (returned to the operator as token_id).
        kyc_application_id: Application the invite was sent for.
        fund_id: Fund the investor will join.
        token: Opaque 64-char hex value embedded in the signup link.
        email: Invitee email; verification codes are issued to it.
        expires_at: created_at + 7 days.
        used_at: When the token was redeemed. NULL = unused.
        created_at: Issue timestamp.
    """

    __tablename__ = "account_creation_tokens"
    __table_args__ = (
        Index("ix_account_creation_tokens_kyc_application_id", "kyc_application_id"),
        Index("ix_account_creation_tokens_email", "email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    kyc_application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("kyc_applications.id", ondelete="RESTRICT"),
        nullable=False,
    )
    fund_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("funds.id", ondelete="RESTRICT"),
        nullable=False,
    )
    token: Mapped[str] = mapped_column(
        String(128),
        unique=True,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
