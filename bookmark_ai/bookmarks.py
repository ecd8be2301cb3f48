from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from .config import (
    BOOKMARKS_TABLE,
    DEFAULT_BASE_DELAY_MS,
    METADATA_MAX_RETRIES,
    TITLE_MAX_LENGTH,
)
from .errors import BookmarkError, ValidationError, get_error_message, log_error
from .models import Bookmark, BookmarkInput, PageMetadata
from .record_store import RecordStore, RecordStoreError
from .retry import with_retry
from .summary_job import SummaryJob
from .utils import favicon_url, hostname_of, shorten, title_from_domain, unique_sorted
from .validation import validate_and_sanitize_text, validate_url

logger = logging.getLogger(__name__)

TAG_MAX_LENGTH = 50


class BookmarkService:
    def __init__(
        self,
        store: RecordStore,
        summary_job: Optional[SummaryJob] = None,
        *,
        production: Optional[bool] = None,
        table: str = BOOKMARKS_TABLE,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._store = store
        self._summary_job = summary_job
        self._production = production
        self._table = table
        self._sleep = sleep

    async def add_bookmark(self, user_id: str, data: BookmarkInput) -> Bookmark:
        """
        Validate and save a bookmark, then try to summarize it.

        A failed summary is logged and the bookmark is kept without one.
        """
        _require_user(user_id)

        url_result = validate_url(data.url, production=self._production)
        if not url_result.is_valid:
            raise ValidationError.from_result(url_result, "url", code="BOOKMARK_INVALID_URL")
        title_result = validate_and_sanitize_text(data.title or "", TITLE_MAX_LENGTH)
        if not title_result.is_valid:
            raise ValidationError.from_result(title_result, "title", code="VALIDATION_TOO_LONG")

        url = url_result.sanitized or ""
        try:
            existing = await self._store.select(self._table, {"user_id": user_id, "url": url}, limit=1)
            if existing:
                raise BookmarkError("BOOKMARK_DUPLICATE_URL", "This URL has already been bookmarked", "low")

            metadata = await with_retry(
                lambda: self.extract_metadata(url),
                METADATA_MAX_RETRIES,
                DEFAULT_BASE_DELAY_MS,
                sleep=self._sleep,
            )
            siblings = await self._store.select(self._table, {"user_id": user_id})
            record = await self._store.insert(
                self._table,
                {
                    "user_id": user_id,
                    "url": url,
                    "title": title_result.sanitized or metadata.title or hostname_of(url),
                    "favicon": metadata.favicon,
                    "tags": normalize_tags(data.tags),
                    "sort_order": len(siblings),
                },
            )
        except RecordStoreError as exc:
            error = BookmarkError("BOOKMARK_SAVE_FAILED", get_error_message(exc), "medium")
            log_error(error, {"url": data.url})
            raise error from exc

        bookmark = Bookmark.from_record(record)
        logger.info("Saved bookmark id=%s url=%s", bookmark.id, bookmark.url)

        if self._summary_job is None:
            return bookmark
        try:
            outcome = await self._summary_job.run(bookmark.id)
        except Exception as exc:  # noqa: BLE001
            log_error(
                BookmarkError("SUMMARY_GENERATION_FAILED", get_error_message(exc), "low"),
                {"bookmarkId": bookmark.id, "url": url},
            )
            return bookmark
        if not outcome.is_success():
            log_error(
                BookmarkError("SUMMARY_GENERATION_FAILED", outcome.error or "Summary failed", "low"),
                {"bookmarkId": bookmark.id, "url": url},
            )
            return bookmark
        bookmark.summary = outcome.summary
        return bookmark

    async def delete_bookmark(self, user_id: str, bookmark_id: str) -> None:
        _require_user(user_id)
        try:
            # Scoped by owner so a user can only delete their own bookmarks.
            deleted = await self._store.delete(self._table, {"id": bookmark_id, "user_id": user_id})
        except RecordStoreError as exc:
            error = BookmarkError("BOOKMARK_DELETE_FAILED", get_error_message(exc), "medium")
            log_error(error, {"bookmarkId": bookmark_id})
            raise error from exc
        if not deleted:
            raise BookmarkError("BOOKMARK_NOT_FOUND", "Bookmark not found", "low")
        logger.info("Deleted bookmark id=%s", bookmark_id)

    async def list_bookmarks(
        self, user_id: str, tag: Optional[str] = None, *, manual_order: bool = False
    ) -> List[Bookmark]:
        """Newest first, or by ``sort_order`` when ``manual_order`` is set."""
        _require_user(user_id)
        if manual_order:
            rows = await self._store.select(self._table, {"user_id": user_id}, order_by="sort_order")
        else:
            rows = await self._store.select(
                self._table, {"user_id": user_id}, order_by="created_at", descending=True
            )
        bookmarks = [Bookmark.from_record(row) for row in rows]
        if tag:
            bookmarks = [b for b in bookmarks if tag in b.tags]
        return bookmarks

    async def get_all_tags(self, user_id: str) -> List[str]:
        bookmarks = await self.list_bookmarks(user_id)
        return unique_sorted(tag for b in bookmarks for tag in b.tags)

    async def reorder_bookmarks(self, user_id: str, ordered_ids: Sequence[str]) -> None:
        _require_user(user_id)
        for position, bookmark_id in enumerate(ordered_ids):
            await self._store.update(
                self._table, {"id": bookmark_id, "user_id": user_id}, {"sort_order": position}
            )
        logger.info("Reordered %s bookmarks for user %s", len(ordered_ids), user_id)

    async def extract_metadata(self, url: str) -> PageMetadata:
        try:
            domain = hostname_of(url)
        except Exception as exc:  # noqa: BLE001
            log_error(exc, {"url": url})
            return PageMetadata(title=shorten(url), favicon=None)
        if not domain:
            return PageMetadata(title=shorten(url), favicon=None)
        return PageMetadata(title=title_from_domain(domain), favicon=favicon_url(domain))


def normalize_tags(tags: Optional[Sequence[str]]) -> List[str]:
    cleaned: List[str] = []
    for tag in tags or []:
        result = validate_and_sanitize_text(tag, TAG_MAX_LENGTH)
        if not result.is_valid:
            raise ValidationError.from_result(result, "tags")
        if result.sanitized and result.sanitized not in cleaned:
            cleaned.append(result.sanitized)
    return cleaned


def _require_user(user_id: str) -> None:
    if not user_id:
        raise BookmarkError("AUTH_SESSION_EXPIRED", "User not authenticated", "high")
