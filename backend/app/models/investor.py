"""Investor model - investor profile within a fund."""

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin

INVESTOR_STATUSES: tuple[str, ...] = (
    "prospect",
    "kyc_submitted",
    "account_created",
    "onboarding",
    "pending_validation",
    "active",
    "inactive",
)


class Investor(Base, TimestampMixin):
    """Investor profile linked to a platform user.

    Attributes:
        id: UUID primary key.
        user_id: Owning platform user.
        fund_id: Fund the investor belongs to.
        first_name: Pre-filled from the KYC application.
        last_name: Pre-filled from the KYC application.
        email: Contact email.
        status: Investor lifecycle status.
    """

    __tablename__ = "investors"
    __table_args__ = (
        CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in INVESTOR_STATUSES) + ")",
            name="ck_investors_status",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    fund_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("funds.id", ondelete="CASCADE"),
        nullable=False,
    )
    first_name: Mapped[str] = mapped_column(
        String(255), nullable=False, server_default=text("''")
    )
    last_name: Mapped[str] = mapped_column(
        String(255), nullable=False, server_default=text("''")
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        server_default=text("'prospect'"),
    )
