from __future__ import annotations

import logging
import re
from typing import List

from .config import (
    FALLBACK_SUMMARY_LENGTH,
    MAX_CONTENT_LENGTH,
    MIN_SENTENCE_LENGTH,
    SUMMARY_MAX_LENGTH,
    SUMMARY_MAX_SENTENCES,
)
from .utils import trim_text

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED_CHARS = re.compile(r"[^\w\s.,!?;:()-]", re.ASCII)
_SENTENCE_END = re.compile(r"[.!?]+")

SENTENCE_SEPARATOR = ". "
ELLIPSIS = "..."


class SummaryError(Exception):
    """Raised when summarization fails."""


class ContentUnavailableError(SummaryError):
    """Raised when there is nothing usable to summarize."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code


class Summarizer:
    """Extractive summarizer: keeps the leading sentences of the cleaned text."""

    def __init__(
        self,
        max_summary_length: int = SUMMARY_MAX_LENGTH,
        max_content_length: int = MAX_CONTENT_LENGTH,
    ):
        if max_summary_length <= 0:
            raise ValueError("max_summary_length must be positive")
        if max_content_length <= 0:
            raise ValueError("max_content_length must be positive")
        self._max_summary_length = max_summary_length
        self._max_content_length = max_content_length

    def summarize(self, content: str) -> str:
        if not content:
            raise ContentUnavailableError("empty_content", "No content to summarize")

        cleaned = clean_content(content)
        if not cleaned:
            raise ContentUnavailableError(
                "no_content_after_cleaning", "No meaningful content found after cleaning"
            )
        cleaned = trim_text(cleaned, self._max_content_length)

        sentences = split_sentences(cleaned)
        if not sentences:
            logger.info("No sentences longer than %s chars; using leading text", MIN_SENTENCE_LENGTH)
            return cleaned[: min(FALLBACK_SUMMARY_LENGTH, len(cleaned))] + ELLIPSIS

        summary = ""
        count = 0
        for sentence in sentences:
            candidate = summary + (SENTENCE_SEPARATOR if summary else "") + sentence
            if len(candidate) > self._max_summary_length and summary:
                break
            summary = candidate
            count += 1
            if count >= SUMMARY_MAX_SENTENCES:
                break

        if not summary.endswith("."):
            summary += "."
        logger.info("Summary generated (%s chars from %s sentences)", len(summary), count)
        return summary


def clean_content(content: str) -> str:
    collapsed = _WHITESPACE.sub(" ", content)
    return _DISALLOWED_CHARS.sub("", collapsed).strip()


def split_sentences(text: str) -> List[str]:
    candidates = (part.strip() for part in _SENTENCE_END.split(text))
    return [sentence for sentence in candidates if len(sentence) > MIN_SENTENCE_LENGTH]
