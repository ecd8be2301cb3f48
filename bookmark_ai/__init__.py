"""Bookmark saving with input validation, rate limiting and extractive summaries."""

__all__ = [
    "config",
    "models",
    "validation",
    "rate_limiter",
    "retry",
    "summarizer",
    "errors",
    "record_store",
    "content_fetcher",
    "auth",
    "bookmarks",
    "summary_job",
    "api",
]
