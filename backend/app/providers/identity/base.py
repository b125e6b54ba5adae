"""Abstract base class and types for identity providers.

The identity provider owns login credentials. The portal database only
stores the provider's user id (``users.id``).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class IdentityUser:
    """A user account held by the identity provider.

    Attributes:
        id: Provider-assigned user id (UUID string).
        email: Login email.
    """

    id: str
    email: str


@dataclass(frozen=True)
class AuthSession:
    """Tokens returned by a successful sign-in."""

    access_token: str
    refresh_token: str
    expires_in: int | None = None


class IdentityProvider(ABC):
    """Admin and sign-in operations against the identity service."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Short provider name for logs (e.g., "gotrue")."""
        ...

    @abstractmethod
    async def create_user(
        self, email: str, password: str, *, email_confirmed: bool = True
    ) -> IdentityUser:
        """Create a login.

        Args:
            email: Login email.
            password: Initial password.
            email_confirmed: Mark the email as already confirmed.

        Returns:
            The created user.

        Raises:
            IdentityConflictError: If the email is already registered.
            ProviderError: On any other failure.
        """
        ...

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        """Delete a login by id.

        Raises:
            ProviderError: If the delete fails.
        """
        ...

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Exchange credentials for session tokens.

        Raises:
            AuthenticationError: If the credentials are rejected.
            ProviderError: On any other failure.
        """
        ...
