"""API error classes.

HTTP status codes and machine-readable error codes for every failure the
API can report.

Server-side failures (5xx) carry a generic client-facing message plus a
``detail`` string with the underlying cause. The exception handler logs the
detail and never returns it to the client.
"""

from enum import Enum


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
        detail: Server-side diagnostic text. Logged, never returned.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
        detail: str | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        self.detail = detail
        super().__init__(detail or message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors, query param errors, etc.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no valid auth credentials provided.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class ForbiddenError(APIError):
    """Not allowed to access resource (403).

    Use when auth is valid but user lacks permission.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
        )


class NotFoundError(APIError):
    """Resource not found (404).

    Use when requested resource doesn't exist OR doesn't belong to the
    caller's fund. Revealing "exists but not yours" leaks information.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts custom code for specific conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )


# =============================================================================
# Account creation workflow
# =============================================================================


class TokenRejection(Enum):
    """Why an account creation token failed verification.

    Values are the client-facing reason strings.
    """

    NOT_FOUND = "Invalid token"
    EXPIRED = "Token has expired"
    ALREADY_USED = "Token has already been used"


# Already-used tokens are a state conflict; unknown and expired tokens
# mean the credential itself is not acceptable.
_TOKEN_REJECTION_STATUS: dict[TokenRejection, tuple[str, int]] = {
    TokenRejection.NOT_FOUND: ("INVALID_TOKEN", 401),
    TokenRejection.EXPIRED: ("TOKEN_EXPIRED", 401),
    TokenRejection.ALREADY_USED: ("TOKEN_ALREADY_USED", 409),
}


class AccountTokenError(APIError):
    """Account creation token is unknown, expired, or already used.

    Args:
        reason: The rejection reason reported by the token store.
    """

    def __init__(self, reason: TokenRejection) -> None:
        code, status_code = _TOKEN_REJECTION_STATUS[reason]
        self.reason = reason
        super().__init__(
            code=code,
            message=reason.value,
            status_code=status_code,
        )


class VerificationCodeError(APIError):
    """Submitted one-time code was rejected (400).

    The message is the verification code store's reason, e.g.
    "Invalid code. 2 attempts remaining."
    """

    def __init__(self, message: str) -> None:
        super().__init__(
            code="INVALID_VERIFICATION_CODE",
            message=message,
            status_code=400,
        )


class StorageError(APIError):
    """A database write or read required by the workflow failed (500).

    Args:
        detail: Underlying cause, e.g. "Failed to create account token: ...".
    """

    def __init__(self, detail: str) -> None:
        super().__init__(
            code="STORAGE_ERROR",
            message="An unexpected error occurred",
            status_code=500,
            detail=detail,
        )


class AccountCreationError(APIError):
    """A dependency failed while creating an investor account (500).

    Clients see a generic message. ``detail`` names the failed step and the
    underlying error, e.g. "Failed to create investor record: ...".
    """

    def __init__(self, detail: str) -> None:
        super().__init__(
            code="ACCOUNT_CREATION_FAILED",
            message="Failed to create account",
            status_code=500,
            detail=detail,
        )


class EmailDeliveryError(APIError):
    """Outbound email could not be delivered (502).

    Args:
        detail: Underlying cause (HTTP status, transport error).
    """

    def __init__(self, detail: str) -> None:
        super().__init__(
            code="EMAIL_DELIVERY_FAILED",
            message="Failed to send email",
            status_code=502,
            detail=detail,
        )
