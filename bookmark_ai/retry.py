from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from .config import DEFAULT_BASE_DELAY_MS, DEFAULT_MAX_RETRIES

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await ``operation`` up to ``max_retries`` times with exponential backoff.

    After the attempt numbered ``n`` fails the runner waits
    ``base_delay_ms * 2 ** (n - 1)`` milliseconds. When the last attempt fails
    its exception is re-raised unchanged.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    for attempt in range(1, max_retries + 1):
        try:
            return await operation()
        except Exception as exc:  # noqa: BLE001
            if attempt == max_retries:
                logger.warning("Giving up after %s attempts: %s", attempt, exc)
                raise
            delay_ms = base_delay_ms * 2 ** (attempt - 1)
            logger.warning(
                "Attempt %s/%s failed (%s); retrying in %sms", attempt, max_retries, exc, delay_ms
            )
            await sleep(delay_ms / 1000.0)

    raise AssertionError("unreachable")  # pragma: no cover
