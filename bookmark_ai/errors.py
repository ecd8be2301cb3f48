from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, TypeVar

from .models import AppError, ValidationResult
from .utils import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEVERITIES = ("low", "medium", "high", "critical")

ERROR_CODES: Dict[str, str] = {
    "AUTH_INVALID_CREDENTIALS": "Invalid email or password",
    "AUTH_USER_NOT_FOUND": "No account found with this email",
    "AUTH_EMAIL_IN_USE": "An account with this email already exists",
    "AUTH_WEAK_PASSWORD": "Password is too weak",
    "AUTH_SESSION_EXPIRED": "Your session has expired. Please sign in again",
    "AUTH_RATE_LIMITED": "Too many attempts. Please try again later",
    "BOOKMARK_INVALID_URL": "Please enter a valid URL",
    "BOOKMARK_DUPLICATE_URL": "This URL has already been bookmarked",
    "BOOKMARK_NOT_FOUND": "Bookmark not found",
    "BOOKMARK_PERMISSION_DENIED": "You do not have permission to access this bookmark",
    "BOOKMARK_SAVE_FAILED": "Failed to save bookmark",
    "BOOKMARK_DELETE_FAILED": "Failed to delete bookmark",
    "SUMMARY_GENERATION_FAILED": "Unable to generate summary for this URL",
    "SUMMARY_CONTENT_NOT_FOUND": "No content found to summarize",
    "SUMMARY_SERVICE_UNAVAILABLE": "Summary service is temporarily unavailable",
    "NETWORK_ERROR": "Network error. Please check your connection",
    "SERVER_ERROR": "Server error. Please try again later",
    "TIMEOUT_ERROR": "Request timed out. Please try again",
    "VALIDATION_REQUIRED_FIELD": "This field is required",
    "VALIDATION_INVALID_FORMAT": "Invalid format",
    "VALIDATION_TOO_LONG": "Input is too long",
    "VALIDATION_TOO_SHORT": "Input is too short",
    "UNKNOWN_ERROR": "An unexpected error occurred",
}

# Substrings of upstream error messages and the friendly message shown instead.
_KNOWN_MESSAGES = (
    ("Invalid login credentials", "AUTH_INVALID_CREDENTIALS"),
    ("User already registered", "AUTH_EMAIL_IN_USE"),
    ("Password should be at least", "AUTH_WEAK_PASSWORD"),
    ("JWT expired", "AUTH_SESSION_EXPIRED"),
    ("fetch", "NETWORK_ERROR"),
    ("timeout", "TIMEOUT_ERROR"),
)


class BookmarkError(Exception):
    """Application error carrying a stable code and a severity."""

    def __init__(self, code: str, message: str, severity: str = "medium"):
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown severity: {severity}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.severity = severity
        self.timestamp = utc_now()

    def to_app_error(self) -> AppError:
        return AppError(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            severity=self.severity,
        )


_VALIDATION_CODES = {
    "required": "VALIDATION_REQUIRED_FIELD",
    "too_long": "VALIDATION_TOO_LONG",
    "too_short": "VALIDATION_TOO_SHORT",
}


class ValidationError(BookmarkError):
    """User-correctable input problem; shown to the user, never retried."""

    def __init__(self, code: str, message: str, field: Optional[str] = None):
        super().__init__(code, message, "low")
        self.field = field

    @classmethod
    def from_result(
        cls, result: ValidationResult, field: Optional[str] = None, code: Optional[str] = None
    ) -> "ValidationError":
        resolved = code or _VALIDATION_CODES.get(result.code or "", "VALIDATION_INVALID_FORMAT")
        return cls(resolved, result.error or ERROR_CODES[resolved], field)


def get_error_message(error: object) -> str:
    if isinstance(error, BookmarkError):
        return error.message
    if isinstance(error, BaseException):
        text = str(error)
        for needle, code in _KNOWN_MESSAGES:
            if needle in text:
                return ERROR_CODES[code]
        return text
    if isinstance(error, str):
        return error
    return ERROR_CODES["UNKNOWN_ERROR"]


async def safe_async(
    fn: Callable[[], Awaitable[T]],
    fallback: Optional[T] = None,
) -> Tuple[Optional[T], Optional[AppError]]:
    """Await ``fn`` and return ``(data, error)`` instead of raising."""
    try:
        return await fn(), None
    except Exception as exc:  # noqa: BLE001
        app_error = AppError(
            code=exc.code if isinstance(exc, BookmarkError) else "UNKNOWN_ERROR",
            message=get_error_message(exc),
            timestamp=utc_now(),
            severity=exc.severity if isinstance(exc, BookmarkError) else "medium",
        )
        return fallback, app_error


def log_error(error: BaseException | AppError, context: Optional[Mapping[str, Any]] = None) -> None:
    info: Dict[str, Any] = {
        "message": error.message if isinstance(error, (BookmarkError, AppError)) else str(error),
        "timestamp": utc_now().isoformat(),
        "context": dict(context or {}),
    }
    if isinstance(error, (BookmarkError, AppError)):
        info["code"] = error.code
        info["severity"] = error.severity
    logger.error("Application error: %s", info)
