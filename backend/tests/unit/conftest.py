"""In-memory collaborators for service and API unit tests.

The fakes mirror the repository method signatures so services can take
them through their ``repository=`` / ``users=`` style constructor
arguments. Records are SimpleNamespace objects with the model's columns.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any

import pytest

from app.providers.identity.mock_adapter import MockIdentityProvider
from app.services.account_creation_service import AccountCreationService
from app.services.account_token_service import AccountTokenService
from app.services.verification_code_service import VerificationCodeService

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
FUND_ID = uuid.UUID("10000000-0000-0000-0000-000000000001")
APPLICATION_ID = uuid.UUID("10000000-0000-0000-0000-000000000002")
APPLICANT_EMAIL = "ada@example.com"
VALID_PASSWORD = "Secur3Pass"  # nosec B105


class FakeSession:
    """Stands in for AsyncSession: savepoints and commits are counted."""

    def __init__(self) -> None:
        self.commits = 0
        self.savepoints = 0

    @asynccontextmanager
    async def begin_nested(self):
        self.savepoints += 1
        yield self

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        pass


class _Failing:
    """Per-method failure injection shared by the fake repositories."""

    def __init__(self) -> None:
        self.failures: dict[str, Exception] = {}

    def fail_on(self, method: str, error: Exception) -> None:
        self.failures[method] = error

    def _check(self, method: str) -> None:
        error = self.failures.get(method)
        if error is not None:
            raise error


class FakeTokenRepository(_Failing):
    def __init__(self) -> None:
        super().__init__()
        self.rows: list[SimpleNamespace] = []

    async def create(self, db: Any, *, kyc_application_id, fund_id, token, email, expires_at, created_at):
        self._check("create")
        row = SimpleNamespace(
            id=uuid.uuid4(),
            kyc_application_id=kyc_application_id,
            fund_id=fund_id,
            token=token,
            email=email,
            expires_at=expires_at,
            used_at=None,
            created_at=created_at,
        )
        self.rows.append(row)
        return row

    async def get_by_token(self, db: Any, token: str):
        self._check("get_by_token")
        return next((r for r in self.rows if r.token == token), None)

    async def mark_used(self, db: Any, *, token: str, used_at: datetime) -> int:
        self._check("mark_used")
        for row in self.rows:
            if row.token == token and row.used_at is None:
                row.used_at = used_at
                return 1
        return 0


class FakeCodeRepository(_Failing):
    def __init__(self) -> None:
        super().__init__()
        self.rows: list[SimpleNamespace] = []

    def live(self, email: str, purpose: str) -> list[SimpleNamespace]:
        return [
            r
            for r in self.rows
            if r.email == email and r.purpose == purpose and r.verified_at is None
        ]

    async def delete_unverified(self, db: Any, *, email: str, purpose: str) -> int:
        self._check("delete_unverified")
        doomed = self.live(email, purpose)
        self.rows = [r for r in self.rows if r not in doomed]
        return len(doomed)

    async def create(self, db: Any, *, email, purpose, code, expires_at, created_at):
        self._check("create")
        row = SimpleNamespace(
            id=uuid.uuid4(),
            email=email,
            purpose=purpose,
            code=code,
            expires_at=expires_at,
            verified_at=None,
            attempts=0,
            created_at=created_at,
        )
        self.rows.append(row)
        return row

    async def get_latest_unverified(self, db: Any, *, email: str, purpose: str):
        self._check("get_latest_unverified")
        live = sorted(self.live(email, purpose), key=lambda r: r.created_at)
        return live[-1] if live else None

    async def increment_attempts(self, db: Any, code_id: uuid.UUID) -> None:
        self._check("increment_attempts")
        for row in self.rows:
            if row.id == code_id:
                row.attempts += 1

    async def mark_verified(self, db: Any, code_id: uuid.UUID, *, verified_at: datetime) -> None:
        self._check("mark_verified")
        for row in self.rows:
            if row.id == code_id:
                row.verified_at = verified_at

    async def exists_verified_since(self, db: Any, *, email, purpose, since) -> bool:
        self._check("exists_verified_since")
        return any(
            r.email == email
            and r.purpose == purpose
            and r.verified_at is not None
            and r.verified_at >= since
            for r in self.rows
        )

    async def delete_expired_before(self, db: Any, cutoff: datetime) -> int:
        self._check("delete_expired_before")
        doomed = [r for r in self.rows if r.expires_at < cutoff]
        self.rows = [r for r in self.rows if r not in doomed]
        return len(doomed)


class FakeApplicationRepository(_Failing):
    def __init__(self) -> None:
        super().__init__()
        self.rows: dict[uuid.UUID, SimpleNamespace] = {}

    def add(self, **overrides: Any) -> SimpleNamespace:
        values: dict[str, Any] = {
            "id": APPLICATION_ID,
            "fund_id": FUND_ID,
            "investor_category": "individual",
            "first_name": "Ada",
            "last_name": "Lovelace",
            "authorized_signer_first_name": None,
            "authorized_signer_last_name": None,
            "email": APPLICANT_EMAIL,
            "status": "meeting_complete",
            "fund": SimpleNamespace(id=FUND_ID, name="Acme Growth Fund I"),
        }
        values.update(overrides)
        row = SimpleNamespace(**values)
        self.rows[row.id] = row
        return row

    async def get_by_id(self, db: Any, application_id: uuid.UUID):
        self._check("get_by_id")
        return self.rows.get(application_id)

    async def update_status(self, db: Any, application_id: uuid.UUID, status: str) -> int:
        self._check("update_status")
        row = self.rows.get(application_id)
        if row is None:
            return 0
        row.status = status
        return 1


class FakeInvestorRepository(_Failing):
    def __init__(self) -> None:
        super().__init__()
        self.rows: list[SimpleNamespace] = []

    async def create(self, db: Any, *, user_id, fund_id, first_name, last_name, email, status):
        self._check("create")
        row = SimpleNamespace(
            id=uuid.uuid4(),
            user_id=user_id,
            fund_id=fund_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            status=status,
        )
        self.rows.append(row)
        return row


class FakeUserRepository(_Failing):
    """Deleting a user also drops its investors (ON DELETE CASCADE)."""

    def __init__(self, investors: FakeInvestorRepository | None = None) -> None:
        super().__init__()
        self.rows: dict[uuid.UUID, SimpleNamespace] = {}
        self._investors = investors

    async def create(self, db: Any, *, user_id, email, role, fund_id):
        self._check("create")
        row = SimpleNamespace(id=user_id, email=email.lower(), role=role, fund_id=fund_id)
        self.rows[user_id] = row
        return row

    async def delete(self, db: Any, user_id: uuid.UUID) -> None:
        self._check("delete")
        self.rows.pop(user_id, None)
        if self._investors is not None:
            self._investors.rows = [
                r for r in self._investors.rows if r.user_id != user_id
            ]


class RecordingEmailSender:
    """AccountEmailSender that records messages and can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.failures: dict[str, Exception] = {}

    def _record(self, kind: str, **fields: Any) -> None:
        error = self.failures.get(kind)
        if error is not None:
            raise error
        self.sent.append({"kind": kind, **fields})

    def of_kind(self, kind: str) -> list[dict[str, Any]]:
        return [m for m in self.sent if m["kind"] == kind]

    async def send_verification_code(self, email: str, code: str, expires_in_minutes: int) -> None:
        self._record("code", email=email, code=code, expires_in_minutes=expires_in_minutes)

    async def send_account_invite(self, email: str, first_name: str, fund_name: str, create_account_url: str) -> None:
        self._record(
            "invite",
            email=email,
            first_name=first_name,
            fund_name=fund_name,
            url=create_account_url,
        )

    async def send_account_created(self, email: str, first_name: str, fund_name: str, portal_url: str) -> None:
        self._record(
            "created",
            email=email,
            first_name=first_name,
            fund_name=fund_name,
            portal_url=portal_url,
        )


class SignupWorld:
    """Orchestrator wired to fakes, plus handles on every fake."""

    def __init__(self) -> None:
        self.db = FakeSession()
        self.tokens = FakeTokenRepository()
        self.codes = FakeCodeRepository()
        self.applications = FakeApplicationRepository()
        self.investors = FakeInvestorRepository()
        self.users = FakeUserRepository(self.investors)
        self.identity = MockIdentityProvider()
        self.email = RecordingEmailSender()
        self.token_service = AccountTokenService(self.db, repository=self.tokens)
        self.code_service = VerificationCodeService(self.db, repository=self.codes)
        self.service = AccountCreationService(
            self.db,
            self.identity,
            self.email,
            token_service=self.token_service,
            code_service=self.code_service,
            applications=self.applications,
            users=self.users,
            investors=self.investors,
        )

    async def invite(self, now: datetime = NOW) -> str:
        """Issue a token for the stored application and return it."""
        issued = await self.token_service.issue(APPLICATION_ID, FUND_ID, APPLICANT_EMAIL, now)
        return issued.token

    def latest_code(self) -> str:
        return self.email.of_kind("code")[-1]["code"]


@pytest.fixture
def world() -> SignupWorld:
    signup = SignupWorld()
    signup.applications.add()
    return signup
