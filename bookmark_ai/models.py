from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None
    sanitized: Optional[str] = None
    code: Optional[str] = None  # e.g. "required", "too_long", "invalid_format"

    @classmethod
    def ok(cls, sanitized: str) -> "ValidationResult":
        return cls(is_valid=True, sanitized=sanitized)

    @classmethod
    def fail(cls, code: str, error: str) -> "ValidationResult":
        return cls(is_valid=False, error=error, code=code)


@dataclass
class BookmarkInput:
    url: str
    title: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class Bookmark:
    id: str
    user_id: str
    url: str
    title: str
    created_at: str
    updated_at: str
    favicon: Optional[str] = None
    summary: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    sort_order: int = 0

    @classmethod
    def from_record(cls, raw: Dict[str, Any]) -> "Bookmark":
        return cls(
            id=str(raw["id"]),
            user_id=str(raw["user_id"]),
            url=raw["url"],
            title=raw.get("title") or raw["url"],
            created_at=raw.get("created_at") or "",
            updated_at=raw.get("updated_at") or "",
            favicon=raw.get("favicon") or None,
            summary=raw.get("summary") or None,
            tags=list(raw.get("tags") or []),
            sort_order=int(raw.get("sort_order") or 0),
        )


@dataclass
class FetchedContent:
    content: str
    title: Optional[str] = None


@dataclass
class PageMetadata:
    title: str
    favicon: Optional[str] = None


@dataclass
class SummaryOutcome:
    bookmark_id: str
    status: str  # "success" | "failed"
    summary: Optional[str] = None
    error: Optional[str] = None

    def is_success(self) -> bool:
        return self.status == "success"


@dataclass
class AuthSession:
    user_id: str
    email: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


@dataclass
class AppError:
    code: str
    message: str
    timestamp: datetime
    severity: str = "medium"
    details: Optional[str] = None
