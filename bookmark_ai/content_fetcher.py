from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Protocol

import httpx
from lxml import etree, html
from readability import Document
from readability.readability import Unparseable

from .config import FETCH_TIMEOUT_SECONDS, MAX_CONTENT_LENGTH, READER_API_URL, USER_AGENT
from .models import FetchedContent
from .utils import trim_text

logger = logging.getLogger(__name__)

# Many sites answer 403 to bot-looking User-Agents, so direct fetches default
# to ordinary browser UAs. HTTP_USER_AGENT overrides the first candidate.
DEFAULT_PRIMARY_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
DEFAULT_SECONDARY_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64; rv:133.0) Gecko/20100101 Firefox/133.0"
)


class ContentFetchError(Exception):
    """Raised when page content cannot be fetched."""


class RemoteServiceError(ContentFetchError):
    """Raised when the content service answers with an error or unusable payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ContentFetcher(Protocol):
    async def fetch(self, url: str) -> FetchedContent: ...


class ReaderApiFetcher:
    """Fetches readable page text through the Jina reader API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: str = READER_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = FETCH_TIMEOUT_SECONDS,
    ):
        headers = {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
            "X-With-Generated-Alt": "true",
        }
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._base_url = base_url
        self._headers = headers
        self._transport = transport
        self._timeout = timeout

    async def fetch(self, url: str) -> FetchedContent:
        logger.info("Fetching content via reader API: %s", url)
        async with httpx.AsyncClient(
            headers=self._headers, timeout=self._timeout, transport=self._transport
        ) as client:
            try:
                response = await client.get(f"{self._base_url}{url}")
            except httpx.TimeoutException as exc:
                raise ContentFetchError(f"Content fetch timeout: {exc}") from exc
            except httpx.RequestError as exc:
                raise ContentFetchError(f"Content fetch failed: {exc}") from exc

        if not response.is_success:
            logger.error("Reader API error: %s %s", response.status_code, response.reason_phrase)
            raise RemoteServiceError(
                f"Failed to fetch content: HTTP {response.status_code}", response.status_code
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteServiceError("Invalid response from content service", response.status_code) from exc
        if not isinstance(payload, dict):
            raise RemoteServiceError("Invalid response from content service", response.status_code)
        return parse_reader_payload(payload)


def parse_reader_payload(payload: Dict[str, Any]) -> FetchedContent:
    """Accept both ``{"data": {"content", "title"}}`` and a flat ``{"content", "title"}``."""
    data = payload.get("data")
    nested = data if isinstance(data, dict) else {}
    content = nested.get("content") or payload.get("content") or ""
    title = nested.get("title") or payload.get("title") or None
    return FetchedContent(
        content=content if isinstance(content, str) else "",
        title=title if isinstance(title, str) else None,
    )


class DirectPageFetcher:
    """Downloads the page itself and extracts the main text with readability."""

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        max_chars: int = MAX_CONTENT_LENGTH,
    ):
        self._transport = transport
        self._timeout = timeout
        self._max_chars = max_chars

    async def fetch(self, url: str) -> FetchedContent:
        html_text = await self._fetch_html(url)
        try:
            text, title = extract_readable_text(html_text, url)
        except (Unparseable, etree.ParserError) as exc:
            raise ContentFetchError(f"Could not extract page content: {exc}") from exc
        trimmed = trim_text(text.strip(), self._max_chars)
        logger.info("Extracted %s characters from %s", len(trimmed), url)
        return FetchedContent(content=trimmed, title=title)

    async def _fetch_html(self, url: str) -> str:
        logger.info("Fetching URL: %s", url)
        last_status: int | None = None
        user_agents = _user_agent_candidates()
        for idx, user_agent in enumerate(user_agents, start=1):
            async with httpx.AsyncClient(
                headers=_request_headers(user_agent),
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                try:
                    response = await client.get(url)
                except httpx.RequestError as exc:
                    raise ContentFetchError(f"HTTP request failed: {exc}") from exc

            last_status = response.status_code
            if response.status_code in (403, 406) and idx < len(user_agents):
                logger.warning(
                    "HTTP %s for %s; retrying with another User-Agent (attempt %s/%s)",
                    response.status_code,
                    url,
                    idx,
                    len(user_agents),
                )
                continue
            if not response.is_success:
                raise RemoteServiceError(
                    f"Failed to fetch content: HTTP {response.status_code}", response.status_code
                )
            return response.text

        raise RemoteServiceError(f"Failed to fetch content: HTTP {last_status}", last_status)


def extract_readable_text(html_text: str, url: str) -> tuple[str, Optional[str]]:
    doc = Document(html_text, url=url)
    summary_html = doc.summary(html_partial=True)
    tree = html.fromstring(summary_html)
    title = (doc.short_title() or "").strip() or None
    return tree.text_content(), title


def _request_headers(user_agent: str) -> dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }


def _user_agent_candidates() -> list[str]:
    env_user_agent = (os.getenv("HTTP_USER_AGENT") or "").strip()
    candidates: list[str] = []
    if env_user_agent:
        candidates.append(env_user_agent)
    candidates.extend([DEFAULT_PRIMARY_USER_AGENT, DEFAULT_SECONDARY_USER_AGENT])
    # dedupe, keep order
    return list(dict.fromkeys(candidates))
