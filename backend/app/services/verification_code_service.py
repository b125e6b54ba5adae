"""Email verification code store.

Issues and checks the 6-digit one-time codes that prove control of an
email address. One live code per (email, purpose): issuing replaces any
unverified code for the pair.

Per-code lifecycle:
    issued(attempts=0) -> [mismatch: attempts + 1 while attempts < max]
                       -> verified | locked out | expired

All time checks take ``now`` from the caller.
"""

import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import StorageError
from app.repositories.verification_code_repository import VerificationCodeRepository

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999

RECENT_VERIFICATION_WINDOW = timedelta(minutes=5)
"""How long a verified code counts as "recently verified"."""

EXPIRED_CODE_RETENTION = timedelta(days=1)
"""Expired codes are kept this long before cleanup deletes them."""

_NO_CODE_MSG = "No verification code found. Please request a new code."
_EXPIRED_MSG = "Verification code has expired. Please request a new code."
_TOO_MANY_ATTEMPTS_MSG = "Too many failed attempts. Please request a new code."


class VerificationPurpose(str, Enum):
    """Which flow a verification code belongs to."""

    ACCOUNT_CREATION = "account_creation"
    PASSWORD_RESET = "password_reset"
    LOGIN = "login"


@dataclass(frozen=True)
class IssuedCode:
    """A freshly persisted code and its lifetime in seconds."""

    code: str
    expires_in: int


@dataclass(frozen=True)
class CodeVerification:
    """Outcome of checking a submitted code."""

    valid: bool
    error: str | None = None


def generate_verification_code() -> str:
    """Return a uniformly random code in [100000, 999999].

    The range has no leading zeros, so the string is always six digits.
    """
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def calculate_code_expiry(now: datetime, minutes: int | None = None) -> datetime:
    """Return the expiry for a code issued at ``now``."""
    ttl = settings.verification_code_ttl_minutes if minutes is None else minutes
    return now + timedelta(minutes=ttl)


def codes_match(stored: str, submitted: str) -> bool:
    """Compare a submitted code to the stored one.

    Exact string equality by default. With
    ``verification_code_constant_time_compare`` enabled the comparison runs
    in constant time.
    """
    if settings.verification_code_constant_time_compare:
        return hmac.compare_digest(stored.encode(), submitted.encode())
    return stored == submitted


def remaining_attempts_message(remaining: int) -> str:
    """Client message after a wrong code with ``remaining`` tries left."""
    if remaining <= 0:
        return _TOO_MANY_ATTEMPTS_MSG
    plural = "s" if remaining != 1 else ""
    return f"Invalid code. {remaining} attempt{plural} remaining."


class VerificationCodeService:
    """Issue, verify, and expire one-time codes.

    Args:
        db: Async database session. The caller owns commit/rollback; the
            attempt counter and verified_at are written in that session.
        repository: Code persistence (defaults to the SQLAlchemy repository).
    """

    def __init__(
        self,
        db: AsyncSession,
        repository: type[VerificationCodeRepository] = VerificationCodeRepository,
    ) -> None:
        self._db = db
        self._repository = repository

    @property
    def max_attempts(self) -> int:
        return settings.verification_code_max_attempts

    async def issue(
        self, email: str, purpose: VerificationPurpose, now: datetime
    ) -> IssuedCode:
        """Replace any live code for (email, purpose) with a new one.

        Args:
            email: Address the code will be sent to.
            purpose: Flow the code belongs to.
            now: Issue time.

        Returns:
            IssuedCode with the plain code and its lifetime in seconds.

        Raises:
            StorageError: If the delete or insert fails.
        """
        code = generate_verification_code()
        expires_at = calculate_code_expiry(now)
        try:
            await self._repository.delete_unverified(
                self._db, email=email, purpose=purpose.value
            )
            await self._repository.create(
                self._db,
                email=email,
                purpose=purpose.value,
                code=code,
                expires_at=expires_at,
                created_at=now,
            )
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to create verification code: {exc}") from exc

        return IssuedCode(
            code=code,
            expires_in=settings.verification_code_ttl_minutes * 60,
        )

    async def verify(
        self,
        email: str,
        code: str,
        purpose: VerificationPurpose,
        now: datetime,
    ) -> CodeVerification:
        """Check a submitted code against the live code for (email, purpose).

        A mismatch adds one attempt before returning. A verified code is no
        longer live, so submitting it again reports "no code found".

        Args:
            email: Address the code was sent to.
            code: Code submitted by the user.
            purpose: Flow the code belongs to.
            now: Evaluation time.

        Returns:
            CodeVerification with a client-facing error on failure.

        Raises:
            StorageError: If a read or write fails.
        """
        try:
            record = await self._repository.get_latest_unverified(
                self._db, email=email, purpose=purpose.value
            )
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to look up verification code: {exc}") from exc

        if record is None:
            return CodeVerification(valid=False, error=_NO_CODE_MSG)
        if now >= record.expires_at:
            return CodeVerification(valid=False, error=_EXPIRED_MSG)
        if record.attempts >= self.max_attempts:
            return CodeVerification(valid=False, error=_TOO_MANY_ATTEMPTS_MSG)

        if not codes_match(record.code, code):
            # The UPDATE also bumps the loaded row, so count from the value read.
            attempts_before = record.attempts
            try:
                await self._repository.increment_attempts(self._db, record.id)
            except SQLAlchemyError as exc:
                raise StorageError(
                    f"Failed to record verification attempt: {exc}"
                ) from exc
            remaining = self.max_attempts - attempts_before - 1
            return CodeVerification(
                valid=False, error=remaining_attempts_message(remaining)
            )

        try:
            await self._repository.mark_verified(self._db, record.id, verified_at=now)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to mark code as verified: {exc}") from exc
        return CodeVerification(valid=True)

    async def was_recently_verified(
        self, email: str, purpose: VerificationPurpose, now: datetime
    ) -> bool:
        """Whether a code for the pair was verified in the last five minutes.

        Read-only. A storage failure is logged and reported as False.
        """
        try:
            return await self._repository.exists_verified_since(
                self._db,
                email=email,
                purpose=purpose.value,
                since=now - RECENT_VERIFICATION_WINDOW,
            )
        except SQLAlchemyError:
            logger.warning("Recent verification lookup failed", exc_info=True)
            return False

    async def cleanup_expired(self, now: datetime) -> int:
        """Delete codes that expired more than a day before ``now``.

        Returns:
            Number of deleted codes.

        Raises:
            StorageError: If the delete fails.
        """
        try:
            deleted = await self._repository.delete_expired_before(
                self._db, now - EXPIRED_CODE_RETENTION
            )
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to clean up verification codes: {exc}") from exc
        logger.info("Deleted %d expired verification codes", deleted)
        return deleted
