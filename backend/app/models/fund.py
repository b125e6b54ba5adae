"""Fund model - tenant root.

Every tenant-scoped row (users, investors, KYC applications, tokens)
references a fund. Only the columns the account workflow reads are mapped.
"""

import uuid

from sqlalchemy import String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class Fund(Base, TimestampMixin):
    """Investment fund managed on the platform.

    Attributes:
        id: UUID primary key.
        name: Display name used in investor emails.
    """

    __tablename__ = "funds"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
