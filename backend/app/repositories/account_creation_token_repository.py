"""Repository for AccountCreationToken operations.

Tokens are looked up by their opaque value. Rows are only ever inserted
and stamped with used_at; there is no delete.
"""

import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.account_creation_token import AccountCreationToken


class AccountCreationTokenRepository:
    """Stateless repository for account_creation_tokens table operations.

    All methods are static with no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        kyc_application_id: uuid.UUID,
        fund_id: uuid.UUID,
        token: str,
        email: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> AccountCreationToken:
        """Store a new account creation token.

        Args:
            db: Async database session.
            kyc_application_id: Application the invite is for.
            fund_id: Fund the investor will join.
            token: Opaque token value.
            email: Invitee email address.
            expires_at: Token expiry timestamp.
            created_at: Issue timestamp.

        Returns:
            Created AccountCreationToken with its generated id.

        Raises:
            sqlalchemy.exc.IntegrityError: If the token value already exists.
        """
        record = AccountCreationToken(
            kyc_application_id=kyc_application_id,
            fund_id=fund_id,
            token=token,
            email=email,
            expires_at=expires_at,
            created_at=created_at,
        )
        db.add(record)
        await db.flush()
        await db.refresh(record)
        return record

    @staticmethod
    async def get_by_token(
        db: AsyncSession, token: str
    ) -> AccountCreationToken | None:
        """Look up a token by its value.

        Args:
            db: Async database session.
            token: Opaque token value.

        Returns:
            AccountCreationToken if found, None otherwise.
        """
        stmt = select(AccountCreationToken).where(AccountCreationToken.token == token)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def mark_used(db: AsyncSession, *, token: str, used_at: datetime) -> int:
        """Stamp used_at on an unused token.

        The update only matches rows whose used_at is still NULL, so a
        token that was consumed concurrently is never re-stamped.

        Args:
            db: Async database session.
            token: Opaque token value.
            used_at: Redemption timestamp.

        Returns:
            Number of rows updated (0 or 1).
        """
        stmt = (
            update(AccountCreationToken)
            .where(
                AccountCreationToken.token == token,
                AccountCreationToken.used_at.is_(None),
            )
            .values(used_at=used_at)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
