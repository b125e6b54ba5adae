"""Repository for KycApplication reads and status updates."""

import uuid

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.kyc_application import KYC_STATUSES, KycApplication


class KycApplicationRepository:
    """Stateless repository for kyc_applications table operations."""

    @staticmethod
    async def get_by_id(
        db: AsyncSession, application_id: uuid.UUID
    ) -> KycApplication | None:
        """Fetch an application with its fund eagerly loaded.

        Args:
            db: Async database session.
            application_id: UUID primary key.

        Returns:
            KycApplication if found, None otherwise.
        """
        return await db.get(KycApplication, application_id)

    @staticmethod
    async def update_status(
        db: AsyncSession, application_id: uuid.UUID, status: str
    ) -> int:
        """Set an application's status.

        Args:
            db: Async database session.
            application_id: UUID primary key.
            status: New status; must be one of KYC_STATUSES.

        Returns:
            Number of rows updated (0 if the application does not exist).

        Raises:
            ValueError: If status is not a known KYC status.
        """
        if status not in KYC_STATUSES:
            msg = f"Unknown KYC status: {status}"
            raise ValueError(msg)

        stmt = (
            update(KycApplication)
            .where(KycApplication.id == application_id)
            .values(status=status)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
