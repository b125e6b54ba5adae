"""Provider factory functions.

Singleton pattern for provider instances.
"""

from app.core.config import settings
from app.providers.identity.base import IdentityProvider
from app.providers.identity.gotrue_adapter import GoTrueIdentityProvider
from app.providers.identity.mock_adapter import MockIdentityProvider

_identity_provider: IdentityProvider | None = None


def get_identity_provider() -> IdentityProvider:
    """Get or create the identity provider singleton.

    Returns:
        IdentityProvider selected by ``settings.identity_provider``.

    Raises:
        ValueError: If the configured provider is unknown.
    """
    global _identity_provider

    if _identity_provider is None:
        if settings.identity_provider == "gotrue":
            _identity_provider = GoTrueIdentityProvider()
        elif settings.identity_provider == "mock":
            _identity_provider = MockIdentityProvider()
        else:
            raise ValueError(f"Unknown identity provider: {settings.identity_provider}")

    return _identity_provider


def reset_providers() -> None:
    """Reset provider singletons.

    Used in tests to ensure isolation between test cases.
    """
    global _identity_provider
    _identity_provider = None
