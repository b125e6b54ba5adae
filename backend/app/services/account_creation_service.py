"""Investor self-service account creation.

Drives the signup flow that starts with a fund manager's invite:

    send_account_invite -> (email link) -> verify_token
        -> send_verification_code -> create_account

create_account spans the identity provider and the portal database, so it
cannot run in one transaction. It is a saga on a CompensationStack:

    1. verify token                     fail closed
    2. verify email code                fail closed (attempts committed)
    3. load application prefill         404 if missing
    4. create identity user             critical, undo: delete identity user
    5. insert users row                 critical, undo: delete users row
    6. insert investors row             critical
    7. application -> account_created   best effort, not compensated
    8. mark token used + commit         critical
    9. sign in                          critical, nothing unwound
   10. confirmation email               best effort

Step 7 has no compensation: if it fails the account exists while the
application still reads meeting_complete / account_invite_sent.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import (
    AccountCreationError,
    AccountTokenError,
    ConflictError,
    NotFoundError,
    TokenRejection,
    VerificationCodeError,
)
from app.models.kyc_application import KycApplication
from app.providers.errors import IdentityConflictError
from app.providers.identity.base import IdentityProvider, IdentityUser
from app.repositories.investor_repository import InvestorRepository
from app.repositories.kyc_application_repository import KycApplicationRepository
from app.repositories.user_repository import UserRepository
from app.services.account_token_service import AccountTokenService, TokenRecord
from app.services.compensation import CompensationStack, StepCriticality, run_step
from app.services.verification_code_service import (
    VerificationCodeService,
    VerificationPurpose,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

INVESTOR_ROLE = "investor"
DEFAULT_FIRST_NAME = "Investor"
DEFAULT_FUND_NAME = "the fund"


# =============================================================================
# Collaborator protocol
# =============================================================================


class AccountEmailSender(Protocol):
    """Outbound emails used by the signup flow."""

    async def send_verification_code(
        self, email: str, code: str, expires_in_minutes: int
    ) -> None: ...

    async def send_account_invite(
        self, email: str, first_name: str, fund_name: str, create_account_url: str
    ) -> None: ...

    async def send_account_created(
        self, email: str, first_name: str, fund_name: str, portal_url: str
    ) -> None: ...


# =============================================================================
# Result Dataclasses
# =============================================================================


@dataclass(frozen=True)
class PrefillData:
    """Read-only summary shown on the signup form."""

    email: str
    first_name: str | None
    last_name: str | None
    kyc_application_id: uuid.UUID
    fund_id: uuid.UUID
    fund_name: str | None
    expires_at: datetime


@dataclass(frozen=True)
class SendCodeResult:
    sent: bool
    expires_in: int


@dataclass(frozen=True)
class CreateAccountInput:
    """Validated signup submission."""

    token: str
    verification_code: str
    password: str


@dataclass(frozen=True)
class CreatedUser:
    id: uuid.UUID
    email: str
    role: str


@dataclass(frozen=True)
class CreatedInvestor:
    id: uuid.UUID
    first_name: str
    last_name: str
    status: str


@dataclass(frozen=True)
class CreatedAccount:
    """Everything the client needs to continue as the new investor."""

    user: CreatedUser
    investor: CreatedInvestor
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class InviteResult:
    token_id: uuid.UUID
    expires_at: datetime
    email_sent: bool


@dataclass(frozen=True)
class _ApplicationNames:
    first_name: str | None
    last_name: str | None
    fund_name: str | None


# =============================================================================
# Helpers
# =============================================================================


def applicant_names(application: KycApplication) -> tuple[str | None, str | None]:
    """Names to pre-fill for an application.

    Entity applications are signed by an authorized signer, whose name
    replaces the applicant's.
    """
    if application.investor_category == "entity":
        return (
            application.authorized_signer_first_name,
            application.authorized_signer_last_name,
        )
    return application.first_name, application.last_name


def build_create_account_url(token: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/create-account/{token}"


def build_portal_url() -> str:
    return f"{settings.frontend_url.rstrip('/')}/investor"


def _identity_error(exc: Exception) -> Exception:
    if isinstance(exc, IdentityConflictError):
        return ConflictError(
            code="EMAIL_ALREADY_REGISTERED",
            message="An account with this email already exists",
        )
    return AccountCreationError(f"Failed to create user: {exc}")


def _step_error(prefix: str) -> Callable[[Exception], Exception]:
    def factory(exc: Exception) -> Exception:
        return AccountCreationError(f"{prefix}: {exc}")

    return factory


# =============================================================================
# Service
# =============================================================================


class AccountCreationService:
    """Signup orchestrator.

    Args:
        db: Async database session for the request.
        identity_provider: Holds the new investor's login.
        email_sender: Delivers invite, code, and confirmation emails.
        token_service: Account creation token store.
        code_service: Email verification code store.
        applications: KYC application persistence.
        users: users table persistence.
        investors: investors table persistence.
    """

    def __init__(
        self,
        db: AsyncSession,
        identity_provider: IdentityProvider,
        email_sender: AccountEmailSender,
        token_service: AccountTokenService | None = None,
        code_service: VerificationCodeService | None = None,
        applications: type[KycApplicationRepository] = KycApplicationRepository,
        users: type[UserRepository] = UserRepository,
        investors: type[InvestorRepository] = InvestorRepository,
    ) -> None:
        self._db = db
        self._identity = identity_provider
        self._email = email_sender
        self._tokens = token_service or AccountTokenService(db)
        self._codes = code_service or VerificationCodeService(db)
        self._applications = applications
        self._users = users
        self._investors = investors

    async def _require_token(self, token: str, now: datetime) -> TokenRecord:
        validation = await self._tokens.verify(token, now)
        if validation.rejection is not None:
            raise AccountTokenError(validation.rejection)
        if validation.record is None:
            raise AccountTokenError(TokenRejection.NOT_FOUND)
        return validation.record

    async def _load_application(self, application_id: uuid.UUID) -> KycApplication:
        application = await self._applications.get_by_id(self._db, application_id)
        if application is None:
            raise NotFoundError("KYC application")
        return application

    async def _application_names(self, application_id: uuid.UUID) -> _ApplicationNames:
        application = await self._load_application(application_id)
        first_name, last_name = applicant_names(application)
        fund_name = application.fund.name if application.fund is not None else None
        return _ApplicationNames(first_name, last_name, fund_name)

    async def _in_savepoint(self, action: Callable[[], Awaitable[T]]) -> T:
        # A failed statement only rolls back its savepoint; the session stays
        # usable for the compensations that follow.
        async with self._db.begin_nested():
            return await action()

    async def verify_token(self, token: str, now: datetime) -> PrefillData:
        """Check an invite token and return signup form pre-fill.

        Raises:
            AccountTokenError: Token unknown, expired, or used.
            NotFoundError: The invite's KYC application no longer exists.
        """
        record = await self._require_token(token, now)
        names = await self._application_names(record.kyc_application_id)
        return PrefillData(
            email=record.email,
            first_name=names.first_name,
            last_name=names.last_name,
            kyc_application_id=record.kyc_application_id,
            fund_id=record.fund_id,
            fund_name=names.fund_name,
            expires_at=record.expires_at,
        )

    async def send_verification_code(self, token: str, now: datetime) -> SendCodeResult:
        """Email a fresh 6-digit code to the token's address.

        The code is committed before sending. If the email fails the error
        propagates and the code stays valid.
        """
        record = await self._require_token(token, now)
        issued = await self._codes.issue(
            record.email, VerificationPurpose.ACCOUNT_CREATION, now
        )
        await self._db.commit()

        await self._email.send_verification_code(
            record.email, issued.code, issued.expires_in // 60
        )
        return SendCodeResult(sent=True, expires_in=issued.expires_in)

    async def create_account(
        self, data: CreateAccountInput, now: datetime
    ) -> CreatedAccount:
        """Create the investor's login, user row, and investor row.

        Raises:
            AccountTokenError: Token unknown, expired, or used.
            VerificationCodeError: Code missing, expired, exhausted, or wrong.
            NotFoundError: The invite's KYC application no longer exists.
            ConflictError: The email already has a login.
            AccountCreationError: A dependency failed. Everything created
                before the failure has been compensated, except when the
                failure happens at sign-in, after the account was committed.
        """
        record = await self._require_token(data.token, now)

        verification = await self._codes.verify(
            record.email,
            data.verification_code,
            VerificationPurpose.ACCOUNT_CREATION,
            now,
        )
        # Persist the attempt counter (or verified_at) whatever happens next.
        await self._db.commit()
        if not verification.valid:
            raise VerificationCodeError(
                verification.error or "Invalid verification code"
            )

        names = await self._application_names(record.kyc_application_id)

        async with CompensationStack("create_account") as saga:
            identity: IdentityUser = await saga.step(
                "create identity user",
                lambda: self._identity.create_user(
                    record.email, data.password, email_confirmed=True
                ),
                undo=lambda created: self._identity.delete_user(created.id),
                error=_identity_error,
            )
            user_id = uuid.UUID(identity.id)

            user = await saga.step(
                "create user record",
                lambda: self._in_savepoint(
                    lambda: self._users.create(
                        self._db,
                        user_id=user_id,
                        email=record.email,
                        role=INVESTOR_ROLE,
                        fund_id=record.fund_id,
                    )
                ),
                undo=lambda _created: self._in_savepoint(
                    lambda: self._users.delete(self._db, user_id)
                ),
                error=_step_error("Failed to create user record"),
            )

            investor = await saga.step(
                "create investor record",
                lambda: self._in_savepoint(
                    lambda: self._investors.create(
                        self._db,
                        user_id=user_id,
                        fund_id=record.fund_id,
                        first_name=names.first_name or "",
                        last_name=names.last_name or "",
                        email=record.email,
                        status="account_created",
                    )
                ),
                error=_step_error("Failed to create investor record"),
            )

            await saga.best_effort(
                "update application status",
                lambda: self._in_savepoint(
                    lambda: self._applications.update_status(
                        self._db, record.kyc_application_id, "account_created"
                    )
                ),
            )

            consumed = await saga.step(
                "mark token used",
                lambda: self._tokens.mark_used(data.token, now),
            )
            if not consumed:
                # Another request redeemed the token between verify and here.
                # Leaving the block unwinds the identity user and rows.
                raise AccountTokenError(TokenRejection.ALREADY_USED)

            await saga.step(
                "commit account records",
                self._db.commit,
                error=_step_error("Failed to save account"),
            )
            saga.clear()

        logger.info("Created investor account for user %s", user_id)

        try:
            session = await self._identity.sign_in_with_password(
                record.email, data.password
            )
        except Exception as exc:
            raise AccountCreationError(f"Failed to generate session: {exc}") from exc

        await saga.best_effort(
            "send confirmation email",
            lambda: self._email.send_account_created(
                record.email,
                names.first_name or DEFAULT_FIRST_NAME,
                names.fund_name or DEFAULT_FUND_NAME,
                build_portal_url(),
            ),
        )

        return CreatedAccount(
            user=CreatedUser(id=user.id, email=user.email, role=user.role),
            investor=CreatedInvestor(
                id=investor.id,
                first_name=investor.first_name,
                last_name=investor.last_name,
                status=investor.status,
            ),
            access_token=session.access_token,
            refresh_token=session.refresh_token,
        )

    async def send_account_invite(
        self, application_id: uuid.UUID, fund_id: uuid.UUID, now: datetime
    ) -> InviteResult:
        """Issue a token for a KYC application and email the signup link.

        The token and status change are committed before the email goes
        out; an email failure propagates and leaves the token valid.

        Raises:
            NotFoundError: Application missing or not in ``fund_id``.
            EmailDeliveryError: The invite email was not delivered.
        """
        application = await self._load_application(application_id)
        if application.fund_id != fund_id:
            raise NotFoundError("KYC application")
        first_name, _ = applicant_names(application)
        fund_name = application.fund.name if application.fund is not None else None

        issued = await self._tokens.issue(
            application.id, fund_id, application.email, now
        )

        await run_step(
            "update application status",
            lambda: self._in_savepoint(
                lambda: self._applications.update_status(
                    self._db, application.id, "account_invite_sent"
                )
            ),
            StepCriticality.BEST_EFFORT,
            CompensationStack("send_account_invite"),
        )
        await self._db.commit()

        await self._email.send_account_invite(
            application.email,
            first_name or DEFAULT_FIRST_NAME,
            fund_name or DEFAULT_FUND_NAME,
            build_create_account_url(issued.token),
        )
        logger.info("Sent account invite for application %s", application.id)

        return InviteResult(
            token_id=issued.token_id, expires_at=issued.expires_at, email_sent=True
        )
