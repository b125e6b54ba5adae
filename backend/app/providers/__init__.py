"""Provider abstraction layer.

Exports:
    Error classes for provider error handling
    Factory functions for provider instances
"""

from app.providers.errors import (
    AuthenticationError,
    IdentityConflictError,
    ProviderError,
    TransientError,
)
from app.providers.factory import get_identity_provider, reset_providers

__all__ = [
    # Errors
    "ProviderError",
    "AuthenticationError",
    "IdentityConflictError",
    "TransientError",
    # Factory
    "get_identity_provider",
    "reset_providers",
]
