from __future__ import annotations

import logging
from typing import Optional

import httpx

from .config import BOOKMARKS_TABLE
from .content_fetcher import ContentFetcher, ContentFetchError
from .errors import get_error_message
from .models import SummaryOutcome
from .record_store import RecordNotFoundError, RecordStore, RecordStoreError, fetch_one
from .summarizer import Summarizer, SummaryError
from .utils import iso_now
from .validation import is_private_host

logger = logging.getLogger(__name__)


class SummaryJobError(Exception):
    """Raised when a bookmark summary cannot be produced or saved."""


def is_safe_url(url: str) -> bool:
    """Only public http(s) URLs are fetched, whatever the execution mode."""
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, ValueError):
        return False
    if parsed.scheme not in {"http", "https"} or not parsed.host:
        return False
    return not is_private_host(parsed.host)


class SummaryJob:
    def __init__(
        self,
        store: RecordStore,
        fetcher: ContentFetcher,
        summarizer: Optional[Summarizer] = None,
        table: str = BOOKMARKS_TABLE,
    ):
        self._store = store
        self._fetcher = fetcher
        self._summarizer = summarizer or Summarizer()
        self._table = table

    async def generate(self, bookmark_id: str) -> str:
        """Fetch the bookmark's page, summarize it and store the summary on the record."""
        try:
            record = await fetch_one(self._store, self._table, {"id": bookmark_id})
        except RecordNotFoundError as exc:
            raise SummaryJobError("Bookmark not found") from exc
        except RecordStoreError as exc:
            logger.error("Database fetch error: %s", exc)
            raise SummaryJobError("Bookmark not found") from exc

        url = record.get("url")
        if not url:
            raise SummaryJobError("Invalid bookmark data")
        if not is_safe_url(url):
            raise SummaryJobError("URL is not safe to process")

        logger.info("Processing summary for: %s", url)
        try:
            fetched = await self._fetcher.fetch(url)
        except ContentFetchError as exc:
            raise SummaryJobError(str(exc)) from exc

        if not fetched.content or not fetched.content.strip():
            raise SummaryJobError("No content found to summarize")

        try:
            summary = self._summarizer.summarize(fetched.content)
        except SummaryError as exc:
            raise SummaryJobError(str(exc)) from exc

        try:
            await self._store.update(
                self._table, {"id": bookmark_id}, {"summary": summary, "updated_at": iso_now()}
            )
        except RecordStoreError as exc:
            logger.error("Database update error: %s", exc)
            raise SummaryJobError("Failed to save summary") from exc

        logger.info("Successfully generated summary for bookmark %s", bookmark_id)
        return summary

    async def run(self, bookmark_id: str) -> SummaryOutcome:
        """Like ``generate`` but reports failure in the outcome instead of raising."""
        try:
            summary = await self.generate(bookmark_id)
        except SummaryJobError as exc:
            logger.exception("Summary generation failed for bookmark %s: %s", bookmark_id, exc)
            return SummaryOutcome(bookmark_id=bookmark_id, status="failed", error=str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected summary failure for bookmark %s: %s", bookmark_id, exc)
            return SummaryOutcome(bookmark_id=bookmark_id, status="failed", error=get_error_message(exc))
        return SummaryOutcome(bookmark_id=bookmark_id, status="success", summary=summary)
