"""Tests for the account creation token store.

Covers token generation, expiry arithmetic, the evaluation order of
verify(), and single-use consumption.
"""

import re
import uuid
from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import StorageError, TokenRejection
from app.services.account_token_service import (
    AccountTokenService,
    calculate_token_expiry,
    evaluate_token,
    generate_token,
)
from tests.unit.conftest import (
    APPLICANT_EMAIL,
    APPLICATION_ID,
    FUND_ID,
    NOW,
    FakeSession,
    FakeTokenRepository,
)


def _service() -> tuple[AccountTokenService, FakeTokenRepository]:
    repo = FakeTokenRepository()
    return AccountTokenService(FakeSession(), repository=repo), repo


class TestGenerateToken:
    def test_is_64_lowercase_hex_chars(self):
        token = generate_token()
        assert re.fullmatch(r"[0-9a-f]{64}", token)

    def test_tokens_are_unique(self):
        assert len({generate_token() for _ in range(50)}) == 50


class TestCalculateTokenExpiry:
    def test_defaults_to_seven_days(self):
        assert calculate_token_expiry(NOW) == NOW + timedelta(days=7)

    def test_explicit_days(self):
        assert calculate_token_expiry(NOW, days=1) == NOW + timedelta(days=1)


class TestEvaluateToken:
    """verify() checks existence, then expiry, then use."""

    def _row(self, **overrides):
        values = {
            "id": uuid.uuid4(),
            "kyc_application_id": APPLICATION_ID,
            "fund_id": FUND_ID,
            "email": APPLICANT_EMAIL,
            "expires_at": NOW + timedelta(days=7),
            "used_at": None,
        }
        values.update(overrides)
        return SimpleNamespace(**values)

    def test_missing_token_is_invalid(self):
        result = evaluate_token(None, NOW)
        assert result.valid is False
        assert result.rejection is TokenRejection.NOT_FOUND
        assert result.rejection.value == "Invalid token"

    def test_unused_unexpired_token_is_valid(self):
        row = self._row()
        result = evaluate_token(row, NOW)
        assert result.valid is True
        assert result.record.email == APPLICANT_EMAIL
        assert result.record.kyc_application_id == APPLICATION_ID

    def test_expiry_instant_is_expired(self):
        row = self._row(expires_at=NOW)
        result = evaluate_token(row, NOW)
        assert result.rejection is TokenRejection.EXPIRED

    def test_used_token_is_rejected(self):
        row = self._row(used_at=NOW - timedelta(hours=1))
        result = evaluate_token(row, NOW)
        assert result.rejection is TokenRejection.ALREADY_USED
        assert result.rejection.value == "Token has already been used"

    def test_expired_and_used_reports_expired(self):
        row = self._row(expires_at=NOW - timedelta(seconds=1), used_at=NOW - timedelta(days=1))
        result = evaluate_token(row, NOW)
        assert result.rejection is TokenRejection.EXPIRED


class TestAccountTokenService:
    async def test_issue_persists_row_and_returns_its_id(self):
        service, repo = _service()

        issued = await service.issue(APPLICATION_ID, FUND_ID, APPLICANT_EMAIL, NOW)

        assert len(repo.rows) == 1
        assert issued.token_id == repo.rows[0].id
        assert issued.token == repo.rows[0].token
        assert issued.expires_at == NOW + timedelta(days=7)
        assert repo.rows[0].created_at == NOW

    async def test_verify_before_expiry_then_invalid_after(self):
        service, _ = _service()
        issued = await service.issue(APPLICATION_ID, FUND_ID, APPLICANT_EMAIL, NOW)

        assert (await service.verify(issued.token, NOW + timedelta(days=6))).valid
        late = await service.verify(issued.token, NOW + timedelta(days=7))
        assert late.rejection is TokenRejection.EXPIRED

    async def test_verify_does_not_modify_token(self):
        service, repo = _service()
        issued = await service.issue(APPLICATION_ID, FUND_ID, APPLICANT_EMAIL, NOW)

        await service.verify(issued.token, NOW)
        await service.verify(issued.token, NOW)

        assert repo.rows[0].used_at is None

    async def test_mark_used_is_single_use(self):
        service, repo = _service()
        issued = await service.issue(APPLICATION_ID, FUND_ID, APPLICANT_EMAIL, NOW)
        later = NOW + timedelta(minutes=5)

        assert await service.mark_used(issued.token, later) is True
        assert await service.mark_used(issued.token, later) is False
        assert repo.rows[0].used_at == later

        result = await service.verify(issued.token, later)
        assert result.rejection is TokenRejection.ALREADY_USED

    async def test_mark_used_unknown_token_returns_false(self):
        service, _ = _service()
        assert await service.mark_used("0" * 64, NOW) is False

    async def test_issue_storage_failure_raises_storage_error(self):
        service, repo = _service()
        repo.fail_on("create", OperationalError("INSERT", {}, Exception("down")))

        with pytest.raises(StorageError) as exc_info:
            await service.issue(APPLICATION_ID, FUND_ID, APPLICANT_EMAIL, NOW)

        assert exc_info.value.detail.startswith("Failed to create account token")
        assert exc_info.value.status_code == 500
        assert repo.rows == []

    async def test_lookup_failure_raises_storage_error(self):
        service, repo = _service()
        repo.fail_on("get_by_token", OperationalError("SELECT", {}, Exception("down")))

        with pytest.raises(StorageError):
            await service.verify("abc", NOW)
