"""Account creation request/response schemas.

Request models reject unknown fields. Response models are built from the
orchestrator's result dataclasses.
"""

import uuid
from datetime import datetime
from typing import Annotated

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    model_validator,
)

from app.core.auth import PASSWORD_MAX_LENGTH, validate_password_strength
from app.services.account_creation_service import (
    CreatedAccount,
    InviteResult,
    PrefillData,
    SendCodeResult,
)

TokenStr = Annotated[str, StringConstraints(min_length=1, max_length=128)]
VerificationCodeStr = Annotated[str, StringConstraints(pattern=r"^\d{6}$")]
PasswordStr = Annotated[
    str,
    StringConstraints(max_length=PASSWORD_MAX_LENGTH),
    AfterValidator(validate_password_strength),
]

# =============================================================================
# Requests
# =============================================================================


class VerifyTokenRequest(BaseModel):
    """Body for POST /account-creation/verify-token."""

    model_config = ConfigDict(extra="forbid")

    token: TokenStr


class SendCodeRequest(BaseModel):
    """Body for POST /account-creation/send-code."""

    model_config = ConfigDict(extra="forbid")

    token: TokenStr


class CreateAccountRequest(BaseModel):
    """Body for POST /account-creation/create.

    Attributes:
        token: Invite token from the signup link.
        verification_code: 6-digit code from the verification email.
        password: New password (8+ chars, upper, lower, digit).
        confirm_password: Must equal password.
    """

    model_config = ConfigDict(extra="forbid")

    token: TokenStr
    verification_code: VerificationCodeStr
    password: PasswordStr
    confirm_password: Annotated[str, Field(max_length=PASSWORD_MAX_LENGTH)]

    @model_validator(mode="after")
    def passwords_match(self) -> "CreateAccountRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class SendInviteRequest(BaseModel):
    """Body for POST /account-creation/send-invite."""

    model_config = ConfigDict(extra="forbid")

    kyc_application_id: uuid.UUID
    fund_id: uuid.UUID


# =============================================================================
# Responses
# =============================================================================


class VerifyTokenResponse(BaseModel):
    """Signup form pre-fill for a valid token."""

    valid: bool = True
    email: str
    first_name: str | None = None
    last_name: str | None = None
    kyc_application_id: uuid.UUID
    fund_id: uuid.UUID
    fund_name: str | None = None
    expires_at: datetime

    @classmethod
    def from_prefill(cls, prefill: PrefillData) -> "VerifyTokenResponse":
        return cls(
            email=prefill.email,
            first_name=prefill.first_name,
            last_name=prefill.last_name,
            kyc_application_id=prefill.kyc_application_id,
            fund_id=prefill.fund_id,
            fund_name=prefill.fund_name,
            expires_at=prefill.expires_at,
        )


class SendCodeResponse(BaseModel):
    """Code delivery confirmation.

    Attributes:
        sent: Always true on success.
        expires_in: Seconds until the code expires.
    """

    sent: bool
    expires_in: int

    @classmethod
    def from_result(cls, result: SendCodeResult) -> "SendCodeResponse":
        return cls(sent=result.sent, expires_in=result.expires_in)


class CreatedUserResponse(BaseModel):
    id: uuid.UUID
    email: str
    role: str


class CreatedInvestorResponse(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    status: str


class CreateAccountResponse(BaseModel):
    """New investor plus the session to continue as them."""

    user: CreatedUserResponse
    investor: CreatedInvestorResponse
    access_token: str
    refresh_token: str

    @classmethod
    def from_account(cls, account: CreatedAccount) -> "CreateAccountResponse":
        return cls(
            user=CreatedUserResponse(
                id=account.user.id,
                email=account.user.email,
                role=account.user.role,
            ),
            investor=CreatedInvestorResponse(
                id=account.investor.id,
                first_name=account.investor.first_name,
                last_name=account.investor.last_name,
                status=account.investor.status,
            ),
            access_token=account.access_token,
            refresh_token=account.refresh_token,
        )


class SendInviteResponse(BaseModel):
    token_id: uuid.UUID
    expires_at: datetime
    email_sent: bool

    @classmethod
    def from_result(cls, result: InviteResult) -> "SendInviteResponse":
        return cls(
            token_id=result.token_id,
            expires_at=result.expires_at,
            email_sent=result.email_sent,
        )
