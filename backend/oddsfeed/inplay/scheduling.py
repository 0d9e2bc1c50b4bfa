"""Timer scheduling capability injected into the engine, plus backoff math."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol

BACKOFF_BASE_DELAY = 1.0  # seconds
BACKOFF_MAX_DELAY = 30.0  # seconds


def backoff_delay(
    attempt: int,
    base: float = BACKOFF_BASE_DELAY,
    cap: float = BACKOFF_MAX_DELAY,
) -> float:
    """Exponential backoff before jitter: base * 2**attempt, capped."""
    # Clamp the exponent so huge attempt counts can't overflow the float.
    return min(base * 2 ** min(attempt, 32), cap)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs a callback once after a delay. The returned handle can cancel it."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)
