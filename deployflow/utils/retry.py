"""Backoff helpers for retrying step commands."""

from __future__ import annotations

import asyncio
import random

MAX_DELAY = 30.0


def compute_backoff(
    attempt: int, base: float = 1.5, jitter: float = 0.5, max_delay: float = MAX_DELAY
) -> float:
    """Exponential backoff with jitter, capped at ``max_delay`` seconds."""
    if base <= 0:
        return 0.0
    delay = min(base ** attempt, max_delay)
    return delay + random.uniform(0, jitter)


async def schedule_retry(attempt: int, base: float = 1.5, jitter: float = 0.5) -> None:
    """Sleep before retry number ``attempt``. A non-positive base disables waiting."""
    if base <= 0:
        return
    await asyncio.sleep(compute_backoff(attempt, base=base, jitter=jitter))
