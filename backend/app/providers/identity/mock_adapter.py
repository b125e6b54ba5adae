"""Mock identity provider for testing and local development.

Keeps logins in memory. Failures can be injected per operation to
exercise rollback paths.
"""

import secrets
import uuid
from typing import Any

from app.providers.errors import (
    AuthenticationError,
    IdentityConflictError,
    ProviderError,
)
from app.providers.identity.base import AuthSession, IdentityProvider, IdentityUser

OPERATIONS = ("create_user", "delete_user", "sign_in_with_password")


class MockIdentityProvider(IdentityProvider):
    """In-memory identity provider.

    Attributes:
        users: Stored logins keyed by user id.
        calls: Record of all method invocations for test assertions.
    """

    def __init__(self) -> None:
        self.users: dict[str, dict[str, str]] = {}
        self.calls: list[dict[str, Any]] = []
        self._failures: dict[str, Exception] = {}

    @property
    def provider_name(self) -> str:
        """Return 'mock' for testing."""
        return "mock"

    def fail_on(self, operation: str, error: Exception | None = None) -> None:
        """Make every later call to ``operation`` raise.

        Args:
            operation: One of create_user, delete_user, sign_in_with_password.
            error: Exception to raise. Defaults to a generic ProviderError.
        """
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown operation: {operation}")
        self._failures[operation] = error or ProviderError(f"{operation} failed")

    def clear_failures(self) -> None:
        self._failures.clear()

    def _record(self, method: str, **kwargs: Any) -> None:
        self.calls.append({"method": method, **kwargs})
        failure = self._failures.get(method)
        if failure is not None:
            raise failure

    def get_user_by_email(self, email: str) -> IdentityUser | None:
        for user_id, user in self.users.items():
            if user["email"] == email:
                return IdentityUser(id=user_id, email=email)
        return None

    async def create_user(
        self, email: str, password: str, *, email_confirmed: bool = True
    ) -> IdentityUser:
        self._record("create_user", email=email, email_confirmed=email_confirmed)
        if self.get_user_by_email(email) is not None:
            raise IdentityConflictError(f"A user with email {email} has already been registered")
        user_id = str(uuid.uuid4())
        self.users[user_id] = {"email": email, "password": password}
        return IdentityUser(id=user_id, email=email)

    async def delete_user(self, user_id: str) -> None:
        self._record("delete_user", user_id=user_id)
        if self.users.pop(user_id, None) is None:
            raise ProviderError(f"User {user_id} not found")

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        self._record("sign_in_with_password", email=email)
        user = self.get_user_by_email(email)
        if user is None or self.users[user.id]["password"] != password:
            raise AuthenticationError("Invalid login credentials")
        return AuthSession(
            access_token=f"mock-access-{secrets.token_hex(8)}",
            refresh_token=f"mock-refresh-{secrets.token_hex(8)}",
            expires_in=3600,
        )
