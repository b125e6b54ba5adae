"""Provider error taxonomy.

Error classes for the identity provider abstraction layer.
"""


__all__ = [
    "ProviderError",
    "AuthenticationError",
    "IdentityConflictError",
    "TransientError",
]


class ProviderError(Exception):
    """Base class for all provider errors.

    All provider-specific exceptions should inherit from this class,
    allowing callers to catch all provider errors with a single handler.
    """

    pass


class AuthenticationError(ProviderError):
    """Credentials were rejected.

    Raised for a bad service key (admin calls) and for wrong user
    credentials (password sign-in). Not retryable.
    """

    pass


class IdentityConflictError(ProviderError):
    """An identity with this email already exists."""

    pass


class TransientError(ProviderError):
    """Temporary failure (network, server overload).

    Includes connection errors, timeouts, and 5xx responses.
    """

    pass
