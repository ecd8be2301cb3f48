from __future__ import annotations

import asyncio
import json
from typing import List, Optional, Tuple

import httpx
import pytest

from bookmark_ai.auth import AuthError, AuthService, SupabaseAuthClient
from bookmark_ai.errors import BookmarkError, ValidationError
from bookmark_ai.models import AuthSession
from bookmark_ai.rate_limiter import RateLimiter


class FakeBackend:
    def __init__(self, error: Optional[AuthError] = None):
        self.error = error
        self.calls: List[Tuple[str, str]] = []

    async def sign_in(self, email: str, password: str) -> AuthSession:
        self.calls.append(("sign_in", email))
        if self.error:
            raise self.error
        return AuthSession(user_id="u1", email=email, access_token="token")

    async def sign_up(self, email: str, password: str) -> AuthSession:
        self.calls.append(("sign_up", email))
        if self.error:
            raise self.error
        return AuthSession(user_id="u2", email=email)

    async def reset_password(self, email: str, redirect_to: Optional[str] = None) -> None:
        self.calls.append(("reset", email))
        if self.error:
            raise self.error


def _service(backend: FakeBackend, max_attempts: int = 5) -> AuthService:
    return AuthService(backend, RateLimiter(max_attempts, 60_000))


def test_sign_in_passes_normalized_email():
    backend = FakeBackend()
    session = asyncio.run(_service(backend).sign_in(" User@Example.com ", "whatever"))
    assert session.email == "user@example.com"
    assert backend.calls == [("sign_in", "user@example.com")]


def test_sign_in_requires_password_but_not_strength():
    backend = FakeBackend()
    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(_service(backend).sign_in("user@example.com", "  "))
    assert excinfo.value.field == "password"
    asyncio.run(_service(backend).sign_in("user@example.com", "weak"))


def test_sign_up_checks_password_strength():
    backend = FakeBackend()
    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(_service(backend).sign_up("user@example.com", "password"))
    assert excinfo.value.message.startswith("Password must contain at least 3 of")
    assert backend.calls == []


def test_invalid_email_is_rejected_before_rate_limiting():
    backend = FakeBackend()
    service = _service(backend, max_attempts=1)
    for _ in range(3):
        with pytest.raises(ValidationError):
            asyncio.run(service.sign_in("not-an-email", "x"))
    asyncio.run(service.sign_in("user@example.com", "x"))


def test_rate_limit_is_keyed_by_normalized_email():
    backend = FakeBackend(error=AuthError("Invalid login credentials", 400))
    service = _service(backend, max_attempts=2)
    for email in ("a@example.com", "A@EXAMPLE.COM"):
        with pytest.raises(BookmarkError) as excinfo:
            asyncio.run(service.sign_in(email, "secret"))
        assert excinfo.value.code == "AUTH_INVALID_CREDENTIALS"
        assert excinfo.value.message == "Invalid email or password"

    with pytest.raises(BookmarkError) as excinfo:
        asyncio.run(service.sign_in("a@example.com", "secret"))
    assert excinfo.value.code == "AUTH_RATE_LIMITED"
    assert len(backend.calls) == 2

    asyncio.run(_service(FakeBackend()).sign_in("b@example.com", "secret"))


def test_reset_password_validates_email():
    backend = FakeBackend()
    with pytest.raises(ValidationError):
        asyncio.run(_service(backend).reset_password(""))
    asyncio.run(_service(backend).reset_password("Me@Example.com"))
    assert backend.calls == [("reset", "me@example.com")]


def test_supabase_client_sign_in_parses_session():
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "access_token": "at",
                "refresh_token": "rt",
                "user": {"id": "user-1", "email": "me@example.com"},
            },
        )

    async def scenario():
        client = SupabaseAuthClient("https://proj.supabase.co", "anon", transport=httpx.MockTransport(handler))
        try:
            return await client.sign_in("me@example.com", "pw")
        finally:
            await client.aclose()

    session = asyncio.run(scenario())
    assert session == AuthSession(user_id="user-1", email="me@example.com", access_token="at", refresh_token="rt")
    assert seen[0].url.path == "/auth/v1/token"
    assert seen[0].url.params["grant_type"] == "password"
    assert json.loads(seen[0].content) == {"email": "me@example.com", "password": "pw"}


def test_supabase_client_raises_error_description():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"})

    async def scenario():
        client = SupabaseAuthClient("https://proj.supabase.co", "anon", transport=httpx.MockTransport(handler))
        try:
            await client.sign_in("me@example.com", "pw")
        finally:
            await client.aclose()

    with pytest.raises(AuthError) as excinfo:
        asyncio.run(scenario())
    assert str(excinfo.value) == "Invalid login credentials"
    assert excinfo.value.status_code == 400
