"""Bounded retry with exponential backoff for transient backend failures."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from .errors import BackendError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    retries: int,
    backoff: float,
    description: str = "backend call",
) -> T:
    """Run ``operation``, retrying only errors flagged as retryable."""

    attempt = 0
    while True:
        try:
            return await operation()
        except BackendError as exc:
            if not exc.retryable or attempt >= retries:
                raise
            delay = backoff * (2**attempt)
            attempt += 1
            logger.warning("%s failed (%s); retry %d/%d in %.2fs", description, exc, attempt, retries, delay)
            await asyncio.sleep(delay)


__all__ = ["call_with_retry"]
