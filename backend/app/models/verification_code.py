"""Email verification code model - 6-digit one-time codes.

At most one unverified code may exist per (email, purpose). The partial
unique index enforces it at the storage layer, so a concurrent issue for
the same pair fails instead of leaving two live codes.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base

VERIFICATION_PURPOSES: tuple[str, ...] = ("account_creation", "password_reset", "login")


class EmailVerificationCode(Base):
    """One-time numeric code proving control of an email address.

    Attributes:
        id: UUID primary key.
        email: Address the code was sent to.
        code: Six decimal digits, 100000-999999.
        purpose: "account_creation", "password_reset", or "login".
        expires_at: created_at + 10 minutes.
        verified_at: When the code was accepted. NULL = still live.
        attempts: Failed comparisons so far.
        created_at: Issue timestamp.
    """

    __tablename__ = "email_verification_codes"
    __table_args__ = (
        CheckConstraint(
            "purpose IN ('account_creation', 'password_reset', 'login')",
            name="ck_email_verification_codes_purpose",
        ),
        CheckConstraint("attempts >= 0", name="ck_email_verification_codes_attempts"),
        Index("ix_email_verification_codes_email_purpose", "email", "purpose"),
        Index("ix_email_verification_codes_expires_at", "expires_at"),
        Index(
            "uq_email_verification_codes_live",
            "email",
            "purpose",
            unique=True,
            postgresql_where=text("verified_at IS NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    purpose: Mapped[str] = mapped_column(String(20), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
        default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
