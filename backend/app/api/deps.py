"""Shared dependencies for API endpoints.

Authentication, clock, and service dependencies. Signup endpoints are
public (the invite token is the credential); operator endpoints validate
an identity-provider bearer JWT.
"""

import uuid
from datetime import UTC, datetime
from typing import Annotated

import jwt
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import decode_access_token, extract_bearer_token
from app.core.database import get_db
from app.core.email import ResendAccountEmailSender
from app.core.errors import ForbiddenError, UnauthorizedError
from app.models import User
from app.providers.factory import get_identity_provider
from app.providers.identity.base import IdentityProvider
from app.repositories.user_repository import UserRepository
from app.services.account_creation_service import (
    AccountCreationService,
    AccountEmailSender,
)

MANAGER_ROLE = "manager"

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_request_time() -> datetime:
    """Single timestamp for everything a request evaluates."""
    return datetime.now(UTC)


RequestTime = Annotated[datetime, Depends(get_request_time)]


async def get_current_user_id(request: Request) -> uuid.UUID:
    """Get current user ID from the bearer JWT.

    Validation steps:
    1. Read token from the Authorization header
    2. Decode + verify signature (HS256)
    3. Verify exp, aud, iss claims
    4. Extract sub as UUID

    Security: The 401 never says why auth failed (expired, bad sig, etc.).

    Raises:
        UnauthorizedError: For any auth failure.
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if not token:
        raise UnauthorizedError()

    try:
        payload = decode_access_token(token)
        return uuid.UUID(str(payload["sub"]))
    except (jwt.InvalidTokenError, KeyError, ValueError) as exc:
        raise UnauthorizedError() from exc


CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]


async def get_current_user(user_id: CurrentUserId, db: DbSession) -> User:
    """Get full User object for current user.

    Raises:
        UnauthorizedError: If the token's subject has no users row.
    """
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise UnauthorizedError()
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def require_manager(user: CurrentUser) -> User:
    """Allow fund managers only.

    Raises:
        ForbiddenError: If the user is not a manager.
    """
    if user.role != MANAGER_ROLE:
        raise ForbiddenError("Fund manager access required")
    return user


ManagerUser = Annotated[User, Depends(require_manager)]

IdentityProviderDep = Annotated[IdentityProvider, Depends(get_identity_provider)]


def get_email_sender() -> AccountEmailSender:
    return ResendAccountEmailSender()


EmailSender = Annotated[AccountEmailSender, Depends(get_email_sender)]


def get_account_creation_service(
    db: DbSession,
    identity_provider: IdentityProviderDep,
    email_sender: EmailSender,
) -> AccountCreationService:
    """Build the signup orchestrator for one request."""
    return AccountCreationService(db, identity_provider, email_sender)


AccountCreation = Annotated[
    AccountCreationService, Depends(get_account_creation_service)
]
