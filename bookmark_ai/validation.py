"""
Validation and sanitization of user-supplied input.

Every validator returns a fresh ``ValidationResult`` instead of raising, so form
handlers can show ``result.error`` next to the offending field.
"""

from __future__ import annotations

import logging
import re
from html import escape
from typing import Any, Optional

import httpx
from lxml import html

from . import config
from .config import (
    EMAIL_MAX_LENGTH,
    PASSWORD_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    PASSWORD_MIN_STRENGTH,
    TEXT_MAX_LENGTH,
    URL_MAX_LENGTH,
)
from .models import ValidationResult

logger = logging.getLogger(__name__)

_SCHEME_PREFIX = re.compile(r"^https?://", re.IGNORECASE)
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PASSWORD_SYMBOLS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")

# Characters a parsed host may never contain. Colons are left out for IPv6 literals.
_FORBIDDEN_HOST_CHARS = frozenset("#/<>?@[\\]^|%")

_PRIVATE_HOSTS = {"localhost", "127.0.0.1", "::1"}
_PRIVATE_PATTERNS = (
    re.compile(r"^192\.168\."),
    re.compile(r"^10\."),
    re.compile(r"^172\.(1[6-9]|2[0-9]|3[0-1])\."),
)


def is_private_host(hostname: str) -> bool:
    host = hostname.lower()
    if host in _PRIVATE_HOSTS:
        return True
    return any(pattern.match(host) for pattern in _PRIVATE_PATTERNS)


def _is_valid_host(host: str) -> bool:
    if not host:
        return False
    return not any(ch.isspace() or ch in _FORBIDDEN_HOST_CHARS for ch in host)


def validate_url(url: Any, *, production: Optional[bool] = None) -> ValidationResult:
    """
    Validate a bookmark URL and normalize it.

    Inputs without an http(s) scheme get ``https://`` prepended, even when they
    carry a different scheme (``ftp://host`` becomes ``https://ftp://host``).
    Private and loopback hosts are rejected only in production mode.
    """
    if not isinstance(url, str) or not url:
        return ValidationResult.fail("required", "URL is required")

    trimmed = url.strip()
    if not trimmed:
        return ValidationResult.fail("required", "URL cannot be empty")
    if len(trimmed) > URL_MAX_LENGTH:
        return ValidationResult.fail("too_long", f"URL is too long (max {URL_MAX_LENGTH} characters)")

    normalized = trimmed
    if not _SCHEME_PREFIX.match(normalized):
        normalized = f"https://{normalized}"

    try:
        parsed = httpx.URL(normalized)
    except (httpx.InvalidURL, ValueError) as exc:
        logger.debug("URL parse failed for %r: %s", normalized, exc)
        return ValidationResult.fail("invalid_format", "Invalid URL format")
    if not _is_valid_host(parsed.host):
        return ValidationResult.fail("invalid_format", "Invalid URL format")

    if parsed.scheme not in {"http", "https"}:
        return ValidationResult.fail("protocol_not_allowed", "Only HTTP and HTTPS URLs are allowed")

    if production is None:
        production = config.is_production()
    if production and is_private_host(parsed.host):
        return ValidationResult.fail("private_url_blocked", "Private/local URLs are not allowed")

    return ValidationResult.ok(normalized)


def validate_email(email: Any) -> ValidationResult:
    if not isinstance(email, str) or not email:
        return ValidationResult.fail("required", "Email is required")

    normalized = email.strip().lower()
    if not normalized:
        return ValidationResult.fail("required", "Email cannot be empty")
    if len(normalized) > EMAIL_MAX_LENGTH:
        return ValidationResult.fail("too_long", "Email is too long")
    if not _EMAIL_PATTERN.match(normalized):
        return ValidationResult.fail("invalid_format", "Invalid email format")

    return ValidationResult.ok(normalized)


def password_strength(password: str) -> int:
    checks = (
        any(ch.isascii() and ch.isupper() for ch in password),
        any(ch.isascii() and ch.islower() for ch in password),
        any(ch.isascii() and ch.isdigit() for ch in password),
        _PASSWORD_SYMBOLS.search(password) is not None,
    )
    return sum(1 for passed in checks if passed)


def validate_password(password: Any) -> ValidationResult:
    if not isinstance(password, str) or not password:
        return ValidationResult.fail("required", "Password is required")
    if len(password) < PASSWORD_MIN_LENGTH:
        return ValidationResult.fail(
            "too_short", f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
        )
    if len(password) > PASSWORD_MAX_LENGTH:
        return ValidationResult.fail(
            "too_long", f"Password is too long (max {PASSWORD_MAX_LENGTH} characters)"
        )
    if password_strength(password) < PASSWORD_MIN_STRENGTH:
        return ValidationResult.fail(
            "too_weak",
            "Password must contain at least 3 of: uppercase, lowercase, numbers, special characters",
        )
    # Passwords are never transformed.
    return ValidationResult.ok(password)


def strip_markup(text: str) -> str:
    """Return the text content of an HTML fragment, dropping tags, attributes and scripts."""
    if not text:
        return ""
    root = html.fragment_fromstring(text, create_parent="div")
    for node in root.xpath(".//script | .//style"):
        node.drop_tree()
    # Output stays entity-escaped, like a serialized text node.
    return escape(root.text_content(), quote=False)


def validate_and_sanitize_text(text: Any, max_length: int = TEXT_MAX_LENGTH) -> ValidationResult:
    """
    Validate optional free text such as a bookmark title.

    Unlike the other validators an empty value is accepted and sanitizes to "".
    """
    if not isinstance(text, str) or not text:
        return ValidationResult.ok("")
    if len(text) > max_length:
        return ValidationResult.fail("too_long", f"Text is too long (max {max_length} characters)")
    return ValidationResult.ok(strip_markup(text.strip()))
