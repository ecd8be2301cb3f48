from __future__ import annotations

import pytest

from bookmark_ai import config
from bookmark_ai.utils import favicon_url, shorten, title_from_domain, trim_text

REQUIRED = {
    "SUPABASE_URL": "https://proj.supabase.co/",
    "SUPABASE_SERVICE_ROLE_KEY": "service-key",
}


def _set_env(monkeypatch, **overrides):
    for key in ("SUPABASE_ANON_KEY", "READER_API_KEY", "CONTENT_FETCHER", "APP_ENV", "HOST", "PORT", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    for key, value in {**REQUIRED, **overrides}.items():
        monkeypatch.setenv(key, value)


def test_settings_from_env_defaults(monkeypatch):
    _set_env(monkeypatch)
    settings = config.Settings.from_env()
    assert settings.supabase_url == "https://proj.supabase.co"
    assert settings.content_fetcher == "reader"
    assert settings.port == 8000
    assert settings.reader_api_key is None
    assert settings.production is False


def test_settings_from_env_overrides(monkeypatch):
    _set_env(monkeypatch, CONTENT_FETCHER="Direct", APP_ENV="Production", PORT="9000", LOG_LEVEL="debug")
    settings = config.Settings.from_env()
    assert settings.content_fetcher == "direct"
    assert settings.production is True
    assert settings.port == 9000
    assert settings.log_level == "DEBUG"


def test_settings_from_env_requires_supabase(monkeypatch):
    _set_env(monkeypatch)
    monkeypatch.setenv("SUPABASE_URL", "  ")
    with pytest.raises(ValueError, match="SUPABASE_URL"):
        config.Settings.from_env()


def test_settings_from_env_rejects_unknown_fetcher(monkeypatch):
    _set_env(monkeypatch, CONTENT_FETCHER="scraper")
    with pytest.raises(ValueError):
        config.Settings.from_env()


def test_title_from_domain():
    assert title_from_domain("www.example.com") == "Example"
    assert title_from_domain("news.ycombinator.com") == "News.ycombinator"
    assert title_from_domain("localhost") == "Localhost"


def test_favicon_url():
    assert favicon_url("example.com") == "https://www.google.com/s2/favicons?domain=example.com&sz=32"


def test_trim_and_shorten():
    assert trim_text("abcdef", 3) == "abc"
    assert trim_text("abc", 3) == "abc"
    assert shorten("x" * 60) == "x" * 50 + "..."

