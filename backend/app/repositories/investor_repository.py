"""Repository for Investor operations."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.investor import INVESTOR_STATUSES, Investor


class InvestorRepository:
    """Stateless repository for investors table operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        fund_id: uuid.UUID,
        first_name: str,
        last_name: str,
        email: str,
        status: str,
    ) -> Investor:
        """Create an investor profile.

        Args:
            db: Async database session.
            user_id: Owning platform user.
            fund_id: Fund the investor belongs to.
            first_name: Investor first name ("" when unknown).
            last_name: Investor last name ("" when unknown).
            email: Contact email.
            status: Initial status; must be one of INVESTOR_STATUSES.

        Returns:
            Created Investor with its generated id.

        Raises:
            ValueError: If status is unknown.
        """
        if status not in INVESTOR_STATUSES:
            msg = f"Unknown investor status: {status}"
            raise ValueError(msg)

        investor = Investor(
            user_id=user_id,
            fund_id=fund_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            status=status,
        )
        db.add(investor)
        await db.flush()
        await db.refresh(investor)
        return investor

    @staticmethod
    async def get_by_user_id(
        db: AsyncSession, user_id: uuid.UUID
    ) -> Investor | None:
        """Fetch the investor profile owned by a user.

        Args:
            db: Async database session.
            user_id: Owning platform user.

        Returns:
            Investor if found, None otherwise.
        """
        stmt = select(Investor).where(Investor.user_id == user_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()
