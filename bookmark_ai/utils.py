from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List
from urllib.parse import urlencode

import httpx

from .config import FAVICON_SERVICE_URL


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_now() -> str:
    return utc_now().isoformat()


def trim_text(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


def hostname_of(url: str) -> str:
    return httpx.URL(url).host


def title_from_domain(domain: str) -> str:
    """
    Turn a hostname into a display title.

    ``www.example.com`` -> ``Example``. The leading ``www.`` and the last label are dropped.
    """
    name = domain[4:] if domain.startswith("www.") else domain
    if "." in name:
        name = name.rsplit(".", 1)[0]
    return name[:1].upper() + name[1:]


def favicon_url(domain: str, size: int = 32) -> str:
    return f"{FAVICON_SERVICE_URL}?{urlencode({'domain': domain, 'sz': size})}"


def shorten(text: str, max_chars: int = 50) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def unique_sorted(values: Iterable[str]) -> List[str]:
    return sorted({v for v in values if v})


def status_for_error_message(message: str) -> int:
    """Map an error message to the HTTP status used by the summary endpoint."""
    if "not found" in message:
        return 404
    if "not allowed" in message:
        return 405
    if "Invalid" in message:
        return 400
    return 500
