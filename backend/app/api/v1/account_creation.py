"""Investor account creation endpoints.

Public signup flow (the invite token is the credential) plus the fund
manager's invite endpoint.

Endpoints:
- GET /account-creation/verify-token/{token}: signup form pre-fill
- POST /account-creation/verify-token: same, token in body
- POST /account-creation/send-code: email a 6-digit verification code
- POST /account-creation/create: create the investor account
- POST /account-creation/send-invite: manager sends the signup link
"""

from typing import Annotated

from fastapi import APIRouter, Path, Request, status

from app.api.deps import AccountCreation, ManagerUser, RequestTime
from app.core.config import settings
from app.core.errors import ForbiddenError
from app.core.rate_limiting import limiter
from app.core.responses import DataResponse
from app.schemas.account_creation import (
    CreateAccountRequest,
    CreateAccountResponse,
    SendCodeRequest,
    SendCodeResponse,
    SendInviteRequest,
    SendInviteResponse,
    VerifyTokenRequest,
    VerifyTokenResponse,
)
from app.services.account_creation_service import CreateAccountInput

router = APIRouter()


# ===================================================================
# Token verification
# ===================================================================


@router.get("/verify-token/{token}")
@limiter.limit(lambda: settings.rate_limit_verify_token)
async def verify_token_from_path(
    request: Request,  # noqa: ARG001
    token: Annotated[str, Path(min_length=1, max_length=128)],
    service: AccountCreation,
    now: RequestTime,
) -> DataResponse[VerifyTokenResponse]:
    """Return signup pre-fill for the token in the URL.

    Rate limit: settings.rate_limit_verify_token per IP.
    """
    prefill = await service.verify_token(token, now)
    return DataResponse(data=VerifyTokenResponse.from_prefill(prefill))


@router.post("/verify-token")
@limiter.limit(lambda: settings.rate_limit_verify_token)
async def verify_token(
    request: Request,  # noqa: ARG001
    body: VerifyTokenRequest,
    service: AccountCreation,
    now: RequestTime,
) -> DataResponse[VerifyTokenResponse]:
    """Return signup pre-fill for a token.

    Rate limit: settings.rate_limit_verify_token per IP.
    """
    prefill = await service.verify_token(body.token, now)
    return DataResponse(data=VerifyTokenResponse.from_prefill(prefill))


# ===================================================================
# Signup
# ===================================================================


@router.post("/send-code")
@limiter.limit(lambda: settings.rate_limit_send_code)
async def send_code(
    request: Request,  # noqa: ARG001
    body: SendCodeRequest,
    service: AccountCreation,
    now: RequestTime,
) -> DataResponse[SendCodeResponse]:
    """Email a verification code to the token's address.

    Each call replaces the previous unverified code.

    Rate limit: settings.rate_limit_send_code per IP.
    """
    result = await service.send_verification_code(body.token, now)
    return DataResponse(data=SendCodeResponse.from_result(result))


@router.post("/create", status_code=status.HTTP_201_CREATED)
@limiter.limit(lambda: settings.rate_limit_create_account)
async def create_account(
    request: Request,  # noqa: ARG001
    body: CreateAccountRequest,
    service: AccountCreation,
    now: RequestTime,
) -> DataResponse[CreateAccountResponse]:
    """Create the investor account and return a session.

    Rate limit: settings.rate_limit_create_account per IP.
    """
    account = await service.create_account(
        CreateAccountInput(
            token=body.token,
            verification_code=body.verification_code,
            password=body.password,
        ),
        now,
    )
    return DataResponse(data=CreateAccountResponse.from_account(account))


# ===================================================================
# Manager invite
# ===================================================================


@router.post("/send-invite")
@limiter.limit(lambda: settings.rate_limit_send_invite)
async def send_invite(
    request: Request,  # noqa: ARG001
    body: SendInviteRequest,
    manager: ManagerUser,
    service: AccountCreation,
    now: RequestTime,
) -> DataResponse[SendInviteResponse]:
    """Send a signup link for a KYC application in the manager's fund.

    Rate limit: settings.rate_limit_send_invite per manager.
    """
    # Security: managers may only invite into their own fund.
    if manager.fund_id != body.fund_id:
        raise ForbiddenError("Cannot send invites for another fund")

    result = await service.send_account_invite(
        body.kyc_application_id, body.fund_id, now
    )
    return DataResponse(data=SendInviteResponse.from_result(result))
