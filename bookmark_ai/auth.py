from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from .errors import BookmarkError, ERROR_CODES, ValidationError, get_error_message
from .models import AuthSession
from .rate_limiter import RateLimiter
from .validation import validate_email, validate_password

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised when the authentication service rejects a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthBackend(Protocol):
    async def sign_in(self, email: str, password: str) -> AuthSession: ...

    async def sign_up(self, email: str, password: str) -> AuthSession: ...

    async def reset_password(self, email: str, redirect_to: Optional[str] = None) -> None: ...


class SupabaseAuthClient:
    """Thin client for the Supabase auth (GoTrue) endpoints."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 20.0,
    ):
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/auth/v1",
            headers={"apikey": api_key, "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def sign_in(self, email: str, password: str) -> AuthSession:
        data = await self._post(
            "/token", params={"grant_type": "password"}, json={"email": email, "password": password}
        )
        return _to_session(data, email)

    async def sign_up(self, email: str, password: str) -> AuthSession:
        data = await self._post("/signup", json={"email": email, "password": password})
        return _to_session(data, email)

    async def reset_password(self, email: str, redirect_to: Optional[str] = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        await self._post("/recover", params=params, json={"email": email})

    async def _post(self, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self._client.post(path, **kwargs)
        except httpx.RequestError as exc:
            raise AuthError(f"Auth request failed (fetch): {exc}") from exc
        if not response.is_success:
            raise AuthError(_error_text(response), response.status_code)
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Auth request returned HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if isinstance(body.get(key), str):
                return body[key]
    return f"Auth request returned HTTP {response.status_code}"


def _to_session(data: Dict[str, Any], email: str) -> AuthSession:
    user = data.get("user") if isinstance(data.get("user"), dict) else data
    user_id = user.get("id")
    if not user_id:
        raise AuthError("No session or user returned.", 200)
    return AuthSession(
        user_id=str(user_id),
        email=user.get("email") or email,
        access_token=data.get("access_token"),
        refresh_token=data.get("refresh_token"),
    )


class AuthService:
    """
    Sign-in / sign-up workflow.

    Input is validated first, then the attempt is counted against the injected
    rate limiter (keyed by the normalized email) before the backend is called.
    """

    def __init__(self, backend: AuthBackend, rate_limiter: RateLimiter):
        self._backend = backend
        self._rate_limiter = rate_limiter

    async def sign_in(self, email: str, password: str) -> AuthSession:
        normalized = self._check_email(email)
        if not isinstance(password, str) or not password.strip():
            raise ValidationError("VALIDATION_REQUIRED_FIELD", "Password is required", "password")
        return await self._attempt(normalized, lambda: self._backend.sign_in(normalized, password))

    async def sign_up(self, email: str, password: str) -> AuthSession:
        normalized = self._check_email(email)
        result = validate_password(password)
        if not result.is_valid:
            raise ValidationError.from_result(result, "password")
        return await self._attempt(normalized, lambda: self._backend.sign_up(normalized, password))

    async def reset_password(self, email: str, redirect_to: Optional[str] = None) -> None:
        normalized = self._check_email(email)
        try:
            await self._backend.reset_password(normalized, redirect_to)
        except AuthError as exc:
            raise BookmarkError("AUTH_USER_NOT_FOUND", get_error_message(exc), "medium") from exc
        logger.info("Password reset email requested")

    @staticmethod
    def _check_email(email: str) -> str:
        result = validate_email(email)
        if not result.is_valid:
            raise ValidationError.from_result(result, "email")
        return result.sanitized or ""

    async def _attempt(self, key: str, call) -> AuthSession:
        if not self._rate_limiter.try_acquire(key):
            raise BookmarkError("AUTH_RATE_LIMITED", ERROR_CODES["AUTH_RATE_LIMITED"], "medium")
        try:
            return await call()
        except AuthError as exc:
            logger.warning("Authentication failed (status=%s): %s", exc.status_code, exc)
            raise BookmarkError(_auth_code(exc), get_error_message(exc), "medium") from exc


def _auth_code(exc: AuthError) -> str:
    if exc.status_code is None:
        return "NETWORK_ERROR"
    text = str(exc)
    if "Invalid login credentials" in text:
        return "AUTH_INVALID_CREDENTIALS"
    if "User already registered" in text:
        return "AUTH_EMAIL_IN_USE"
    if "Password should be at least" in text:
        return "AUTH_WEAK_PASSWORD"
    return "UNKNOWN_ERROR"
