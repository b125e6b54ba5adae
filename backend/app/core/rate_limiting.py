"""Rate limiting configuration using slowapi.

Security: Prevents code-guessing, email flooding, and token enumeration by
limiting request frequency on the account creation endpoints.

Authenticated (manager) requests key on the JWT subject so managers behind a
shared office IP do not throttle each other. Everything else keys on IP.

Usage in routers:
    from app.core.rate_limiting import limiter

    @router.post("/send-code")
    @limiter.limit(lambda: settings.rate_limit_send_code)
    async def send_code(request: Request, ...):
        ...
"""

import jwt
from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.core.auth import decode_access_token, extract_bearer_token
from app.core.config import settings


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Key format:
    - Valid bearer JWT: "user:{sub}"
    - No/invalid JWT: "unauth:{ip}"

    Args:
        request: The incoming request.

    Returns:
        Rate limit key string.
    """
    # Rate limiting only needs the sub claim. Full auth (role, fund) is
    # checked in deps.py.
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token:
        try:
            sub = str(decode_access_token(token)["sub"])
            # UUID-length subjects only
            if len(sub) <= 36:
                return f"user:{sub}"
        except (jwt.InvalidTokenError, KeyError):
            pass

    return f"unauth:{get_remote_address(request)}"


# Global limiter instance
# Configured with in-memory storage (suitable for single-instance deployment)
# For multi-instance, configure Redis storage via RATELIMIT_STORAGE_URL
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Security: Returns 429 Too Many Requests with standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # exc.detail looks like "5 per 1 hour"; fall back to 60 seconds
    # when the window is not a plain number of seconds.
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMITED",
                "message": f"Rate limit exceeded: {exc.detail}",
            }
        },
        headers={"Retry-After": retry_after},
    )
