"""Identity provider module.

Exports:
    IdentityProvider: Abstract base class for identity services
    IdentityUser, AuthSession: Result dataclasses
    GoTrueIdentityProvider: GoTrue/Supabase Auth implementation
    MockIdentityProvider: In-memory implementation
"""

from app.providers.identity.base import AuthSession, IdentityProvider, IdentityUser
from app.providers.identity.gotrue_adapter import GoTrueIdentityProvider
from app.providers.identity.mock_adapter import MockIdentityProvider

__all__ = [
    "AuthSession",
    "GoTrueIdentityProvider",
    "IdentityProvider",
    "IdentityUser",
    "MockIdentityProvider",
]
