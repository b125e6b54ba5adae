"""KYC application model - prospect intake record.

A prospect fills in a KYC application; after the fund manager's meeting the
application is the source of the account creation invite and of the names
pre-filled on the signup form.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.fund import Fund

KYC_STATUSES: tuple[str, ...] = (
    "draft",
    "submitted",
    "pre_qualified",
    "not_eligible",
    "meeting_scheduled",
    "meeting_complete",
    "account_invite_sent",
    "account_created",
)


class KycApplication(Base, TimestampMixin):
    """Prospect KYC application.

    Entity applications are signed by an authorized signer; their names
    replace the applicant names for account pre-fill.

    Attributes:
        id: UUID primary key.
        fund_id: Fund the prospect applied to.
        investor_category: "individual" or "entity".
        first_name: Applicant first name (individuals).
        last_name: Applicant last name (individuals).
        authorized_signer_first_name: Signer first name (entities).
        authorized_signer_last_name: Signer last name (entities).
        email: Contact email; account creation tokens are issued to it.
        status: Application lifecycle status.
    """

    __tablename__ = "kyc_applications"
    __table_args__ = (
        CheckConstraint(
            "investor_category IN ('individual', 'entity')",
            name="ck_kyc_applications_investor_category",
        ),
        CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in KYC_STATUSES) + ")",
            name="ck_kyc_applications_status",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    fund_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("funds.id", ondelete="CASCADE"),
        nullable=False,
    )
    investor_category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'individual'"),
    )
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    authorized_signer_first_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    authorized_signer_last_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        server_default=text("'draft'"),
    )

    fund: Mapped["Fund"] = relationship("Fund", lazy="joined")
