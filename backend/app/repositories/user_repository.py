"""Repository for User operations.

Users are created only by the account creation workflow (investors) or by
operator provisioning (managers). delete() exists for compensating a
half-finished signup.
"""

import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import USER_ROLES, User


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static with no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: Identity provider user id.

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Fetch a user by email address (case-insensitive).

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            User if found, None otherwise.
        """
        stmt = select(User).where(User.email == email.lower())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        email: str,
        role: str,
        fund_id: uuid.UUID,
    ) -> User:
        """Create a tenant-scoped user row for an identity.

        Email is normalized to lowercase before storage.

        Args:
            db: Async database session.
            user_id: Identity provider user id (becomes the primary key).
            email: User email address.
            role: "investor" or "manager".
            fund_id: Fund the user belongs to.

        Returns:
            Created User with database-generated fields populated.

        Raises:
            ValueError: If role is unknown.
            sqlalchemy.exc.IntegrityError: If id or email already exists.
        """
        if role not in USER_ROLES:
            msg = f"Unknown role: {role}"
            raise ValueError(msg)

        user = User(
            id=user_id,
            email=email.lower(),
            role=role,
            fund_id=fund_id,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def delete(db: AsyncSession, user_id: uuid.UUID) -> None:
        """Hard delete a user row.

        Args:
            db: Async database session.
            user_id: Identity provider user id.
        """
        await db.execute(delete(User).where(User.id == user_id))
