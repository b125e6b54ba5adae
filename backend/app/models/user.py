"""User model - tenant-scoped platform account.

The primary key is the identity provider's user id, so a users row can
only exist after the identity account has been created.
"""

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin

USER_ROLES: tuple[str, ...] = ("investor", "manager")


class User(Base, TimestampMixin):
    """Platform user scoped to a fund.

    Attributes:
        id: Identity provider user id (not generated locally).
        email: Unique email address.
        role: "investor" or "manager".
        fund_id: Fund the user belongs to.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('investor', 'manager')", name="ck_users_role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    fund_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("funds.id", ondelete="CASCADE"),
        nullable=False,
    )
