from __future__ import annotations

import asyncio
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from bookmark_ai.api import create_app
from bookmark_ai.content_fetcher import RemoteServiceError
from bookmark_ai.models import FetchedContent
from bookmark_ai.record_store import InMemoryRecordStore
from bookmark_ai.summary_job import SummaryJob
from bookmark_ai.utils import status_for_error_message

CONTENT = "Bookmarks are saved links to pages. Summaries help you remember why you saved them."


class FakeFetcher:
    def __init__(self, content: str = CONTENT, fail: bool = False):
        self.content = content
        self.fail = fail

    async def fetch(self, url: str) -> FetchedContent:
        if self.fail:
            raise RemoteServiceError("Failed to fetch content: HTTP 503", 503)
        return FetchedContent(content=self.content)


@pytest.fixture
def store():
    return InMemoryRecordStore()


def _client(store: InMemoryRecordStore, fetcher: FakeFetcher | None = None) -> TestClient:
    return TestClient(create_app(SummaryJob(store, fetcher or FakeFetcher())))


def _seed(store: InMemoryRecordStore, url: str = "https://example.com/a") -> str:
    return asyncio.run(store.insert("bookmarks", {"user_id": "u1", "url": url, "title": "A"}))["id"]


def _assert_error(response, status: int, message: str) -> None:
    assert response.status_code == status
    body = response.json()
    assert body["error"] == message
    datetime.fromisoformat(body["timestamp"])


def test_health(store):
    response = _client(store).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_generate_summary_success(store):
    bookmark_id = _seed(store)
    response = _client(store).post("/generate-summary", json={"bookmarkId": bookmark_id})
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "summary": "Bookmarks are saved links to pages. Summaries help you remember why you saved them.",
        "bookmarkId": bookmark_id,
    }
    assert response.headers["access-control-allow-origin"] == "*"


def test_generate_summary_unknown_bookmark_is_404(store):
    response = _client(store).post("/generate-summary", json={"bookmarkId": "missing"})
    _assert_error(response, 404, "Bookmark not found")


def test_generate_summary_rejects_other_methods(store):
    response = _client(store).get("/generate-summary")
    _assert_error(response, 405, "Method not allowed")


def test_generate_summary_preflight(store):
    response = _client(store).options("/generate-summary")
    assert response.status_code == 200
    assert "content-type" in response.headers["access-control-allow-headers"]


def test_generate_summary_invalid_json_is_400(store):
    response = _client(store).post(
        "/generate-summary", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    _assert_error(response, 400, "Invalid JSON payload")


def test_generate_summary_missing_id_is_500(store):
    response = _client(store).post("/generate-summary", json={"bookmarkId": 42})
    _assert_error(response, 500, "Valid bookmark ID is required")


def test_generate_summary_unsafe_url_is_500(store):
    bookmark_id = _seed(store, "http://localhost/secret")
    response = _client(store).post("/generate-summary", json={"bookmarkId": bookmark_id})
    _assert_error(response, 500, "URL is not safe to process")


def test_generate_summary_fetch_failure(store):
    bookmark_id = _seed(store)
    response = _client(store, FakeFetcher(fail=True)).post("/generate-summary", json={"bookmarkId": bookmark_id})
    _assert_error(response, 500, "Failed to fetch content: HTTP 503")


def test_status_for_error_message():
    assert status_for_error_message("Bookmark not found") == 404
    assert status_for_error_message("Method not allowed") == 405
    assert status_for_error_message("Invalid bookmark data") == 400
    assert status_for_error_message("Failed to save summary") == 500
