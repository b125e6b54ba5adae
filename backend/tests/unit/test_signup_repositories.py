"""Tests for the token, verification code, and KYC application repositories.

Runs against PostgreSQL; skipped when the database is not reachable.
"""

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import KycApplication
from app.repositories.account_creation_token_repository import (
    AccountCreationTokenRepository,
)
from app.repositories.kyc_application_repository import KycApplicationRepository
from app.repositories.verification_code_repository import VerificationCodeRepository
from app.services.verification_code_service import (
    VerificationCodeService,
    VerificationPurpose,
)

_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
_EMAIL = "ada@example.com"
_PURPOSE = "account_creation"


async def _create_token(db: AsyncSession, application, token: str = "a" * 64):
    return await AccountCreationTokenRepository.create(
        db,
        kyc_application_id=application.id,
        fund_id=application.fund_id,
        token=token,
        email=application.email,
        expires_at=_NOW + timedelta(days=7),
        created_at=_NOW,
    )


async def _create_code(
    db: AsyncSession, *, code: str = "123456", created_at=_NOW, email: str = _EMAIL
):
    return await VerificationCodeRepository.create(
        db,
        email=email,
        purpose=_PURPOSE,
        code=code,
        expires_at=created_at + timedelta(minutes=10),
        created_at=created_at,
    )


class TestAccountCreationTokenRepository:
    async def test_create_and_lookup(self, db_session: AsyncSession, test_application):
        created = await _create_token(db_session, test_application)

        found = await AccountCreationTokenRepository.get_by_token(db_session, "a" * 64)

        assert found is not None
        assert found.id == created.id
        assert found.used_at is None

    async def test_unknown_token(self, db_session: AsyncSession):
        assert await AccountCreationTokenRepository.get_by_token(db_session, "b" * 64) is None

    async def test_token_value_is_unique(
        self, db_session: AsyncSession, test_application
    ):
        await _create_token(db_session, test_application)

        with pytest.raises(IntegrityError):
            await _create_token(db_session, test_application)

    async def test_mark_used_only_once(self, db_session: AsyncSession, test_application):
        """A second redemption of the same token matches no row."""
        await _create_token(db_session, test_application)

        first = await AccountCreationTokenRepository.mark_used(
            db_session, token="a" * 64, used_at=_NOW
        )
        second = await AccountCreationTokenRepository.mark_used(
            db_session, token="a" * 64, used_at=_NOW + timedelta(minutes=1)
        )

        assert (first, second) == (1, 0)
        db_session.expunge_all()
        found = await AccountCreationTokenRepository.get_by_token(db_session, "a" * 64)
        assert found.used_at == _NOW

    async def test_application_with_tokens_cannot_be_deleted(
        self, db_session: AsyncSession, test_application
    ):
        """Tokens are an audit trail; their application may not vanish under them."""
        await _create_token(db_session, test_application)

        with pytest.raises(IntegrityError):
            await db_session.execute(
                delete(KycApplication).where(KycApplication.id == test_application.id)
            )


class TestVerificationCodeRepository:
    async def test_latest_unverified_ignores_verified(self, db_session: AsyncSession):
        code = await _create_code(db_session)
        await VerificationCodeRepository.mark_verified(
            db_session, code.id, verified_at=_NOW
        )

        assert (
            await VerificationCodeRepository.get_latest_unverified(
                db_session, email=_EMAIL, purpose=_PURPOSE
            )
            is None
        )

    async def test_one_live_code_per_pair(self, db_session: AsyncSession):
        await _create_code(db_session)

        with pytest.raises(IntegrityError):
            await _create_code(db_session, code="654321")

    async def test_delete_unverified_clears_live_code(self, db_session: AsyncSession):
        await _create_code(db_session)

        deleted = await VerificationCodeRepository.delete_unverified(
            db_session, email=_EMAIL, purpose=_PURPOSE
        )
        replacement = await _create_code(db_session, code="654321")

        assert deleted == 1
        latest = await VerificationCodeRepository.get_latest_unverified(
            db_session, email=_EMAIL, purpose=_PURPOSE
        )
        assert latest.id == replacement.id

    async def test_increment_attempts_adds_one(self, db_session: AsyncSession):
        code = await _create_code(db_session)

        await VerificationCodeRepository.increment_attempts(db_session, code.id)
        await VerificationCodeRepository.increment_attempts(db_session, code.id)

        db_session.expunge_all()
        latest = await VerificationCodeRepository.get_latest_unverified(
            db_session, email=_EMAIL, purpose=_PURPOSE
        )
        assert latest.attempts == 2

    async def test_exists_verified_since(self, db_session: AsyncSession):
        code = await _create_code(db_session)
        await VerificationCodeRepository.mark_verified(
            db_session, code.id, verified_at=_NOW
        )

        assert await VerificationCodeRepository.exists_verified_since(
            db_session, email=_EMAIL, purpose=_PURPOSE, since=_NOW
        )
        assert not await VerificationCodeRepository.exists_verified_since(
            db_session, email=_EMAIL, purpose=_PURPOSE, since=_NOW + timedelta(seconds=1)
        )

    async def test_delete_expired_before(self, db_session: AsyncSession):
        await _create_code(db_session, created_at=_NOW - timedelta(days=2))
        await _create_code(
            db_session, email="grace@example.com", created_at=_NOW - timedelta(hours=12)
        )

        deleted = await VerificationCodeRepository.delete_expired_before(
            db_session, _NOW - timedelta(days=1)
        )

        assert deleted == 1


class TestKycApplicationRepository:
    async def test_get_by_id_loads_fund(self, db_session: AsyncSession, test_application):
        db_session.expunge_all()

        application = await KycApplicationRepository.get_by_id(
            db_session, test_application.id
        )

        assert application is not None
        assert application.fund.name == "Acme Growth Fund I"

    async def test_update_status(self, db_session: AsyncSession, test_application):
        updated = await KycApplicationRepository.update_status(
            db_session, test_application.id, "account_invite_sent"
        )

        assert updated == 1
        db_session.expunge_all()
        application = await KycApplicationRepository.get_by_id(
            db_session, test_application.id
        )
        assert application.status == "account_invite_sent"

    async def test_update_status_missing_application(self, db_session: AsyncSession):
        assert (
            await KycApplicationRepository.update_status(
                db_session, uuid.uuid4(), "account_created"
            )
            == 0
        )

    async def test_unknown_status_rejected(self, db_session: AsyncSession):
        with pytest.raises(ValueError, match="Unknown KYC status"):
            await KycApplicationRepository.update_status(
                db_session, uuid.uuid4(), "approved"
            )


class TestVerificationAttemptsAgainstDatabase:
    """Attempt counting through a real session, where UPDATE syncs loaded rows."""

    async def test_wrong_codes_count_down_two_one_zero(self, db_session: AsyncSession):
        service = VerificationCodeService(db_session)
        with patch(
            "app.services.verification_code_service.generate_verification_code",
            return_value="123456",
        ):
            await service.issue(_EMAIL, VerificationPurpose.ACCOUNT_CREATION, _NOW)

        errors = [
            (
                await service.verify(
                    _EMAIL, "654321", VerificationPurpose.ACCOUNT_CREATION, _NOW
                )
            ).error
            for _ in range(3)
        ]
        locked = await service.verify(
            _EMAIL, "123456", VerificationPurpose.ACCOUNT_CREATION, _NOW
        )

        assert errors == [
            "Invalid code. 2 attempts remaining.",
            "Invalid code. 1 attempt remaining.",
            "Too many failed attempts. Please request a new code.",
        ]
        assert locked.valid is False
        db_session.expunge_all()
        latest = await VerificationCodeRepository.get_latest_unverified(
            db_session, email=_EMAIL, purpose=_PURPOSE
        )
        assert latest.attempts == 3
