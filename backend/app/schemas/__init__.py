"""Pydantic request/response schemas for API endpoints."""

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

__all__ = [
    # Requests
    "CreateAccountRequest",
    "SendCodeRequest",
    "SendInviteRequest",
    "VerifyTokenRequest",
    # Responses
    "CreateAccountResponse",
    "SendCodeResponse",
    "SendInviteResponse",
    "VerifyTokenResponse",
]
