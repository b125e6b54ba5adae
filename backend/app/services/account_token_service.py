"""Account creation token store.

Issues, verifies, and consumes the single-use tokens emailed to prospects
when a fund manager invites them to create an investor account.

Lifecycle: issued -> (expired | consumed). Both end states are terminal
for validity; the row itself is kept.

All time checks take ``now`` from the caller. Nothing here reads the clock.
"""

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import StorageError, TokenRejection
from app.models.account_creation_token import AccountCreationToken
from app.repositories.account_creation_token_repository import (
    AccountCreationTokenRepository,
)

TOKEN_BYTE_LENGTH = 32
"""Random bytes per token (hex-encoded to 64 characters)."""


# =============================================================================
# Result Dataclasses
# =============================================================================


@dataclass(frozen=True)
class TokenRecord:
    """Detached snapshot of a stored token."""

    id: uuid.UUID
    kyc_application_id: uuid.UUID
    fund_id: uuid.UUID
    email: str
    expires_at: datetime
    used_at: datetime | None


@dataclass(frozen=True)
class TokenValidation:
    """Outcome of verifying a token.

    Exactly one of ``record`` (valid) or ``rejection`` (invalid) is set.
    """

    record: TokenRecord | None = None
    rejection: TokenRejection | None = None

    @property
    def valid(self) -> bool:
        return self.rejection is None and self.record is not None


@dataclass(frozen=True)
class IssuedToken:
    """A freshly persisted token."""

    token_id: uuid.UUID
    token: str
    expires_at: datetime


# =============================================================================
# Pure helpers
# =============================================================================


def generate_token(byte_length: int = TOKEN_BYTE_LENGTH) -> str:
    """Generate a cryptographically secure hex token."""
    return secrets.token_hex(byte_length)


def calculate_token_expiry(now: datetime, days: int | None = None) -> datetime:
    """Return the expiry for a token issued at ``now``."""
    ttl_days = settings.account_token_ttl_days if days is None else days
    return now + timedelta(days=ttl_days)


def evaluate_token(record: AccountCreationToken | None, now: datetime) -> TokenValidation:
    """Decide whether a stored token is redeemable at ``now``.

    Expiry is checked before use, so an expired token that was also used
    reports "expired".

    Args:
        record: Stored token row, or None if the lookup missed.
        now: Evaluation time.

    Returns:
        TokenValidation with either the record snapshot or a rejection.
    """
    if record is None:
        return TokenValidation(rejection=TokenRejection.NOT_FOUND)
    if now >= record.expires_at:
        return TokenValidation(rejection=TokenRejection.EXPIRED)
    if record.used_at is not None:
        return TokenValidation(rejection=TokenRejection.ALREADY_USED)
    return TokenValidation(
        record=TokenRecord(
            id=record.id,
            kyc_application_id=record.kyc_application_id,
            fund_id=record.fund_id,
            email=record.email,
            expires_at=record.expires_at,
            used_at=record.used_at,
        )
    )


# =============================================================================
# Store
# =============================================================================


class AccountTokenService:
    """Lifecycle of account creation tokens.

    verify() and mark_used() are separate round trips. Callers verify
    immediately before consuming; mark_used() only stamps a row that is
    still unused and reports whether it did.

    Args:
        db: Async database session. The caller owns commit/rollback.
        repository: Token persistence (defaults to the SQLAlchemy repository).
    """

    def __init__(
        self,
        db: AsyncSession,
        repository: type[AccountCreationTokenRepository] = AccountCreationTokenRepository,
    ) -> None:
        self._db = db
        self._repository = repository

    async def issue(
        self,
        application_id: uuid.UUID,
        fund_id: uuid.UUID,
        email: str,
        now: datetime,
    ) -> IssuedToken:
        """Create and persist a new token.

        Args:
            application_id: KYC application the invite is for.
            fund_id: Fund the investor will join.
            email: Invitee email address.
            now: Issue time.

        Returns:
            IssuedToken with the stored row id.

        Raises:
            StorageError: If the insert fails. No token is returned unless
                the row was written.
        """
        token = generate_token()
        expires_at = calculate_token_expiry(now)
        try:
            record = await self._repository.create(
                self._db,
                kyc_application_id=application_id,
                fund_id=fund_id,
                token=token,
                email=email,
                expires_at=expires_at,
                created_at=now,
            )
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to create account token: {exc}") from exc

        return IssuedToken(token_id=record.id, token=token, expires_at=expires_at)

    async def verify(self, token: str, now: datetime) -> TokenValidation:
        """Check a token without modifying it.

        Args:
            token: Opaque token value from the signup link.
            now: Evaluation time.

        Returns:
            TokenValidation (never raises for unknown/expired/used tokens).

        Raises:
            StorageError: If the lookup itself fails.
        """
        try:
            record = await self._repository.get_by_token(self._db, token)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to look up account token: {exc}") from exc
        return evaluate_token(record, now)

    async def mark_used(self, token: str, now: datetime) -> bool:
        """Consume a token.

        Args:
            token: Opaque token value.
            now: Redemption time, stored as used_at.

        Returns:
            True if this call consumed the token, False if it was already
            used (or does not exist).

        Raises:
            StorageError: If the update fails.
        """
        try:
            updated = await self._repository.mark_used(self._db, token=token, used_at=now)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to mark token as used: {exc}") from exc
        return updated == 1
