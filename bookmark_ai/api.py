"""HTTP surface for on-demand summary generation."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from . import config
from .content_fetcher import ContentFetcher, DirectPageFetcher, ReaderApiFetcher
from .record_store import SupabaseRecordStore
from .summary_job import SummaryJob, SummaryJobError
from .utils import iso_now, status_for_error_message

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

SUMMARY_PATH = "/generate-summary"


def error_response(message: str) -> JSONResponse:
    return JSONResponse(
        {"error": message, "timestamp": iso_now()},
        status_code=status_for_error_message(message),
        headers=CORS_HEADERS,
    )


def create_app(
    summary_job: SummaryJob,
    *,
    on_shutdown: Optional[Callable[[], Awaitable[None]]] = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        if on_shutdown is not None:
            await on_shutdown()

    app = FastAPI(title="BookmarkAI", lifespan=lifespan)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "healthy"}

    @app.api_route(SUMMARY_PATH, methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
    async def generate_summary(request: Request) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        if request.method != "POST":
            return error_response("Method not allowed")

        try:
            try:
                payload = await request.json()
            except ValueError as exc:
                raise SummaryJobError("Invalid JSON payload") from exc
            bookmark_id = payload.get("bookmarkId") if isinstance(payload, dict) else None
            if not bookmark_id or not isinstance(bookmark_id, str):
                raise SummaryJobError("Valid bookmark ID is required")
            summary = await summary_job.generate(bookmark_id)
        except SummaryJobError as exc:
            logger.error("Summary generation error: %s", exc)
            return error_response(str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected summary generation failure: %s", exc)
            return error_response(str(exc) or "Unknown error occurred")

        return JSONResponse(
            {"success": True, "summary": summary, "bookmarkId": bookmark_id},
            headers=CORS_HEADERS,
        )

    return app


def build_fetcher(settings: config.Settings) -> ContentFetcher:
    if settings.content_fetcher == config.CONTENT_FETCHER_DIRECT:
        return DirectPageFetcher()
    return ReaderApiFetcher(api_key=settings.reader_api_key)


def create_app_from_settings(settings: config.Settings) -> FastAPI:
    store = SupabaseRecordStore(settings.supabase_url, settings.supabase_service_role_key)
    job = SummaryJob(store=store, fetcher=build_fetcher(settings))
    logger.info("Using content fetcher=%s env=%s", settings.content_fetcher, settings.app_env)
    return create_app(job, on_shutdown=store.aclose)
