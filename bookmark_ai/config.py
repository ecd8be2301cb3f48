from __future__ import annotations

import os
from dataclasses import dataclass

# --------------------------------
# Validation limits

URL_MAX_LENGTH = 2048
EMAIL_MAX_LENGTH = 320
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
# Required number of character classes (upper, lower, digit, symbol)
PASSWORD_MIN_STRENGTH = 3
TEXT_MAX_LENGTH = 500
TITLE_MAX_LENGTH = 200

# --------------------------------
# Summarization

# Cleaned content is cut to this many characters before sentence splitting
MAX_CONTENT_LENGTH = 10_000
SUMMARY_MAX_LENGTH = 500
SUMMARY_MAX_SENTENCES = 3
# Sentences of this length or shorter are treated as noise
MIN_SENTENCE_LENGTH = 10
FALLBACK_SUMMARY_LENGTH = 200

# --------------------------------
# Rate limiting / retry

SIGN_IN_MAX_ATTEMPTS = 5
SIGN_IN_WINDOW_MS = 60_000
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
METADATA_MAX_RETRIES = 2

# --------------------------------
# Remote collaborators

READER_API_URL = "https://r.jina.ai/"
FETCH_TIMEOUT_SECONDS = 30.0
USER_AGENT = "BookmarkAI/1.0"
BOOKMARKS_TABLE = "bookmarks"
FAVICON_SERVICE_URL = "https://www.google.com/s2/favicons"

CONTENT_FETCHER_READER = "reader"
CONTENT_FETCHER_DIRECT = "direct"
# --------------------------------


def is_production() -> bool:
    return (os.getenv("APP_ENV") or "").strip().lower() == "production"


@dataclass
class Settings:
    supabase_url: str
    supabase_service_role_key: str
    supabase_anon_key: str | None = None
    reader_api_key: str | None = None
    content_fetcher: str = CONTENT_FETCHER_READER
    app_env: str = "development"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    @property
    def production(self) -> bool:
        return self.app_env == "production"

    @staticmethod
    def from_env() -> "Settings":
        def require(name: str) -> str:
            value = os.getenv(name)
            if value is None or not value.strip():
                raise ValueError(f"Environment variable {name} is required.")
            return value.strip()

        def optional_with_default(name: str, default: str) -> str:
            value = os.getenv(name)
            if value is None or not value.strip():
                return default
            return value.strip()

        def optional(name: str) -> str | None:
            value = os.getenv(name)
            if value is None or not value.strip():
                return None
            return value.strip()

        content_fetcher = optional_with_default("CONTENT_FETCHER", CONTENT_FETCHER_READER).lower()
        if content_fetcher not in {CONTENT_FETCHER_READER, CONTENT_FETCHER_DIRECT}:
            raise ValueError(f"CONTENT_FETCHER must be 'reader' or 'direct', got {content_fetcher!r}.")

        port_raw = optional_with_default("PORT", "8000")
        try:
            port = int(port_raw)
        except ValueError as exc:
            raise ValueError(f"PORT must be an integer, got {port_raw!r}.") from exc

        return Settings(
            supabase_url=require("SUPABASE_URL").rstrip("/"),
            supabase_service_role_key=require("SUPABASE_SERVICE_ROLE_KEY"),
            supabase_anon_key=optional("SUPABASE_ANON_KEY"),
            reader_api_key=optional("READER_API_KEY"),
            content_fetcher=content_fetcher,
            app_env=optional_with_default("APP_ENV", "development").lower(),
            host=optional_with_default("HOST", "127.0.0.1"),
            port=port,
            log_level=optional_with_default("LOG_LEVEL", "INFO").upper(),
        )
