"""GoTrue (Supabase Auth) identity adapter.

Talks to the GoTrue HTTP API with the service-role key:

- POST   /auth/v1/admin/users                  create a login
- DELETE /auth/v1/admin/users/{id}             delete a login
- POST   /auth/v1/token?grant_type=password    password sign-in
"""

import logging
from typing import Any

import httpx

from app.core.config import settings
from app.providers.errors import (
    AuthenticationError,
    IdentityConflictError,
    ProviderError,
    TransientError,
)
from app.providers.identity.base import AuthSession, IdentityProvider, IdentityUser

logger = logging.getLogger(__name__)

# GoTrue reports duplicate emails with 422 on older releases and 409 on newer ones.
_CONFLICT_MARKERS = ("already been registered", "already registered", "email_exists")


def _error_message(resp: httpx.Response) -> str:
    try:
        body: dict[str, Any] = resp.json()
    except ValueError:
        return resp.text[:200]
    for key in ("msg", "message", "error_description", "error"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return f"HTTP {resp.status_code}"


def _raise_for_response(resp: httpx.Response, operation: str) -> None:
    """Map a non-2xx GoTrue response onto the provider error taxonomy."""
    if resp.is_success:
        return
    message = f"{operation} failed: {_error_message(resp)}"
    status = resp.status_code
    if status >= 500:
        raise TransientError(message)
    if status in (401, 403):
        raise AuthenticationError(message)
    if status == 409:
        raise IdentityConflictError(message)
    if status in (400, 422):
        lowered = message.lower()
        if any(marker in lowered for marker in _CONFLICT_MARKERS):
            raise IdentityConflictError(message)
        if operation == "sign in":
            raise AuthenticationError(message)
    raise ProviderError(message)


class GoTrueIdentityProvider(IdentityProvider):
    """Identity provider backed by a GoTrue-compatible auth server.

    Args:
        base_url: Auth server root, e.g. ``https://<project>.supabase.co``.
        service_key: Service-role key used for admin calls.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.identity_url).rstrip("/")
        self._service_key = (
            service_key
            if service_key is not None
            else settings.identity_service_key.get_secret_value()
        )
        self._timeout = timeout if timeout is not None else settings.identity_timeout_seconds
        self._transport = transport

    @property
    def provider_name(self) -> str:
        return "gotrue"

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                resp = await client.request(
                    method, path, headers=self._headers(), **kwargs
                )
        except httpx.TransportError as exc:
            raise TransientError(f"{operation} failed: {exc}") from exc
        _raise_for_response(resp, operation)
        return resp

    async def create_user(
        self, email: str, password: str, *, email_confirmed: bool = True
    ) -> IdentityUser:
        resp = await self._request(
            "POST",
            "/auth/v1/admin/users",
            "create user",
            json={
                "email": email,
                "password": password,
                "email_confirm": email_confirmed,
            },
        )
        body = resp.json()
        # Some releases wrap the user object, others return it bare.
        user = body.get("user", body)
        if not user.get("id"):
            raise ProviderError("create user failed: response has no user id")
        return IdentityUser(id=str(user["id"]), email=user.get("email", email))

    async def delete_user(self, user_id: str) -> None:
        await self._request("DELETE", f"/auth/v1/admin/users/{user_id}", "delete user")
        logger.info("Deleted identity user %s", user_id)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        resp = await self._request(
            "POST",
            "/auth/v1/token",
            "sign in",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        body = resp.json()
        access_token = body.get("access_token")
        refresh_token = body.get("refresh_token")
        if not access_token or not refresh_token:
            raise ProviderError("sign in failed: response has no session")
        return AuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=body.get("expires_in"),
        )
