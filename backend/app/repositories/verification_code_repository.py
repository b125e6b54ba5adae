"""Repository for EmailVerificationCode operations.

Codes are addressed by (email, purpose). "Live" means verified_at IS NULL.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.verification_code import EmailVerificationCode


class VerificationCodeRepository:
    """Stateless repository for email_verification_codes table operations.

    All methods are static with no instance state.
    """

    @staticmethod
    async def delete_unverified(
        db: AsyncSession, *, email: str, purpose: str
    ) -> int:
        """Delete every live code for (email, purpose).

        Args:
            db: Async database session.
            email: Email address.
            purpose: Code purpose.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(EmailVerificationCode).where(
            EmailVerificationCode.email == email,
            EmailVerificationCode.purpose == purpose,
            EmailVerificationCode.verified_at.is_(None),
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        purpose: str,
        code: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> EmailVerificationCode:
        """Store a new live code.

        Args:
            db: Async database session.
            email: Email address the code is sent to.
            purpose: Code purpose.
            code: Six-digit code.
            expires_at: Code expiry timestamp.
            created_at: Issue timestamp.

        Returns:
            Created EmailVerificationCode.

        Raises:
            sqlalchemy.exc.IntegrityError: If a live code already exists for
                the pair (partial unique index).
        """
        record = EmailVerificationCode(
            email=email,
            purpose=purpose,
            code=code,
            expires_at=expires_at,
            attempts=0,
            created_at=created_at,
        )
        db.add(record)
        await db.flush()
        await db.refresh(record)
        return record

    @staticmethod
    async def get_latest_unverified(
        db: AsyncSession, *, email: str, purpose: str
    ) -> EmailVerificationCode | None:
        """Fetch the most recently created live code for (email, purpose).

        Args:
            db: Async database session.
            email: Email address.
            purpose: Code purpose.

        Returns:
            EmailVerificationCode if one is live, None otherwise.
        """
        stmt = (
            select(EmailVerificationCode)
            .where(
                EmailVerificationCode.email == email,
                EmailVerificationCode.purpose == purpose,
                EmailVerificationCode.verified_at.is_(None),
            )
            .order_by(EmailVerificationCode.created_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def increment_attempts(db: AsyncSession, code_id: uuid.UUID) -> None:
        """Add exactly one failed attempt to a code.

        Args:
            db: Async database session.
            code_id: Code primary key.
        """
        stmt = (
            update(EmailVerificationCode)
            .where(EmailVerificationCode.id == code_id)
            .values(attempts=EmailVerificationCode.attempts + 1)
        )
        await db.execute(stmt)

    @staticmethod
    async def mark_verified(
        db: AsyncSession, code_id: uuid.UUID, *, verified_at: datetime
    ) -> None:
        """Set verified_at on a code (terminal state).

        Args:
            db: Async database session.
            code_id: Code primary key.
            verified_at: Verification timestamp.
        """
        stmt = (
            update(EmailVerificationCode)
            .where(EmailVerificationCode.id == code_id)
            .values(verified_at=verified_at)
        )
        await db.execute(stmt)

    @staticmethod
    async def exists_verified_since(
        db: AsyncSession, *, email: str, purpose: str, since: datetime
    ) -> bool:
        """Check whether any code for the pair was verified at or after ``since``.

        Args:
            db: Async database session.
            email: Email address.
            purpose: Code purpose.
            since: Lower bound for verified_at (inclusive).

        Returns:
            True if a matching verified code exists.
        """
        stmt = (
            select(EmailVerificationCode.id)
            .where(
                EmailVerificationCode.email == email,
                EmailVerificationCode.purpose == purpose,
                EmailVerificationCode.verified_at >= since,
            )
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def delete_expired_before(db: AsyncSession, cutoff: datetime) -> int:
        """Delete codes whose expiry is older than ``cutoff`` (periodic cleanup).

        Args:
            db: Async database session.
            cutoff: Codes with expires_at < cutoff are removed.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(EmailVerificationCode).where(
            EmailVerificationCode.expires_at < cutoff,
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
