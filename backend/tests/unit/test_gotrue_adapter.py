"""Tests for the GoTrue identity adapter.

Requests are served by httpx.MockTransport; no auth server is contacted.
"""

import json

import httpx
import pytest

from app.providers.errors import (
    AuthenticationError,
    IdentityConflictError,
    ProviderError,
    TransientError,
)
from app.providers.identity.gotrue_adapter import GoTrueIdentityProvider

_BASE_URL = "https://auth.example.com"
_SERVICE_KEY = "service-role-key"  # nosec B105
_USER_ID = "7d3f6f1e-3c0b-4a55-9a3e-2f1a6b0c9d11"


def _provider(handler) -> tuple[GoTrueIdentityProvider, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    provider = GoTrueIdentityProvider(
        base_url=_BASE_URL,
        service_key=_SERVICE_KEY,
        timeout=5.0,
        transport=httpx.MockTransport(recording),
    )
    return provider, seen


class TestCreateUser:
    async def test_posts_to_admin_endpoint(self):
        provider, seen = _provider(
            lambda _req: httpx.Response(200, json={"id": _USER_ID, "email": "ada@example.com"})
        )

        user = await provider.create_user("ada@example.com", "Secur3Pass")

        [request] = seen
        assert request.method == "POST"
        assert request.url.path == "/auth/v1/admin/users"
        assert request.headers["apikey"] == _SERVICE_KEY
        assert request.headers["Authorization"] == f"Bearer {_SERVICE_KEY}"
        assert json.loads(request.content) == {
            "email": "ada@example.com",
            "password": "Secur3Pass",
            "email_confirm": True,
        }
        assert user.id == _USER_ID
        assert user.email == "ada@example.com"

    async def test_accepts_wrapped_user(self):
        provider, _ = _provider(
            lambda _req: httpx.Response(200, json={"user": {"id": _USER_ID}})
        )

        user = await provider.create_user("ada@example.com", "Secur3Pass")

        assert user.id == _USER_ID
        assert user.email == "ada@example.com"

    async def test_missing_id_raises(self):
        provider, _ = _provider(lambda _req: httpx.Response(200, json={}))

        with pytest.raises(ProviderError, match="no user id"):
            await provider.create_user("ada@example.com", "Secur3Pass")

    @pytest.mark.parametrize(
        ("status", "body"),
        [
            (409, {"msg": "email_exists"}),
            (422, {"msg": "A user with this email address has already been registered"}),
            (400, {"error_description": "Email already registered"}),
        ],
    )
    async def test_duplicate_email_is_conflict(self, status, body):
        provider, _ = _provider(lambda _req: httpx.Response(status, json=body))

        with pytest.raises(IdentityConflictError):
            await provider.create_user("ada@example.com", "Secur3Pass")

    async def test_server_error_is_transient(self):
        provider, _ = _provider(lambda _req: httpx.Response(503, text="unavailable"))

        with pytest.raises(TransientError, match="create user failed"):
            await provider.create_user("ada@example.com", "Secur3Pass")

    async def test_bad_service_key(self):
        provider, _ = _provider(lambda _req: httpx.Response(401, json={"msg": "Invalid API key"}))

        with pytest.raises(AuthenticationError, match="Invalid API key"):
            await provider.create_user("ada@example.com", "Secur3Pass")

    async def test_other_client_error(self):
        provider, _ = _provider(
            lambda _req: httpx.Response(422, json={"msg": "Password is too weak"})
        )

        with pytest.raises(ProviderError) as exc_info:
            await provider.create_user("ada@example.com", "weak")

        assert type(exc_info.value) is ProviderError

    async def test_network_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider, _ = _provider(handler)

        with pytest.raises(TransientError, match="connection refused"):
            await provider.create_user("ada@example.com", "Secur3Pass")


class TestDeleteUser:
    async def test_sends_delete(self):
        provider, seen = _provider(lambda _req: httpx.Response(200, json={}))

        await provider.delete_user(_USER_ID)

        [request] = seen
        assert request.method == "DELETE"
        assert request.url.path == f"/auth/v1/admin/users/{_USER_ID}"

    async def test_not_found_raises(self):
        provider, _ = _provider(lambda _req: httpx.Response(404, json={"msg": "User not found"}))

        with pytest.raises(ProviderError, match="User not found"):
            await provider.delete_user(_USER_ID)


class TestSignIn:
    async def test_password_grant(self):
        provider, seen = _provider(
            lambda _req: httpx.Response(
                200,
                json={
                    "access_token": "access",
                    "refresh_token": "refresh",
                    "expires_in": 3600,
                },
            )
        )

        session = await provider.sign_in_with_password("ada@example.com", "Secur3Pass")

        [request] = seen
        assert request.url.path == "/auth/v1/token"
        assert request.url.params["grant_type"] == "password"
        assert session.access_token == "access"
        assert session.refresh_token == "refresh"
        assert session.expires_in == 3600

    async def test_invalid_credentials(self):
        provider, _ = _provider(
            lambda _req: httpx.Response(
                400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"}
            )
        )

        with pytest.raises(AuthenticationError, match="Invalid login credentials"):
            await provider.sign_in_with_password("ada@example.com", "wrong")

    async def test_missing_tokens_raise(self):
        provider, _ = _provider(lambda _req: httpx.Response(200, json={"access_token": "a"}))

        with pytest.raises(ProviderError, match="no session"):
            await provider.sign_in_with_password("ada@example.com", "Secur3Pass")
