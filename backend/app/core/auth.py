"""Authentication helpers for bearer JWT validation and password rules.

Shared utilities used by the account creation endpoints.

Pipeline:
- extract_bearer_token: Authorization header parsing
- decode_access_token: HS256 signature + exp/aud/iss checks
- validate_password_strength: Format rules (sync, no network)
"""

import re
from typing import Any

import jwt

from app.core.config import settings

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128

_BEARER_PREFIX = "bearer "


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.lower().startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify an identity-provider access token and return its claims.

    Args:
        token: Encoded JWT.

    Returns:
        Decoded payload. ``sub`` and ``exp`` are always present.

    Raises:
        jwt.InvalidTokenError: Bad signature, expired, wrong audience or
            issuer, or missing required claims.
    """
    options: dict[str, Any] = {"require": ["exp", "sub"]}
    kwargs: dict[str, Any] = {}
    if settings.auth_issuer:
        kwargs["issuer"] = settings.auth_issuer
        options["require"].append("iss")
    payload: dict[str, Any] = jwt.decode(
        token,
        settings.auth_secret.get_secret_value(),
        algorithms=["HS256"],
        audience=settings.auth_audience,
        options=options,
        **kwargs,
    )
    return payload


def validate_password_strength(password: str) -> str:
    """Validate password meets strength requirements.

    8-128 chars with at least one uppercase letter, one lowercase letter,
    and one number.

    Args:
        password: Plain-text password to validate.

    Returns:
        The password, unchanged.

    Raises:
        ValueError: If password doesn't meet requirements.
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError("Password must be at least 8 characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValueError("Password must be at most 128 characters")
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        raise ValueError("Password must contain at least one number")
    return password
