"""Per-backend call serialization with minimum spacing.

Each backend gets exactly one RateLimiter for the life of the process. Calls
issued against a limiter run one at a time in arrival order, and a call never
starts sooner than ``min_interval_ms`` after the previous one finished.

Classes:
    RateLimiter: FIFO gate for one backend.
    RateLimiterRegistry: Hands out the shared limiter for a backend identity.

Example:
    >>> limiter = RateLimiter("anthropic", min_interval_ms=500)
    >>> result = await limiter.run(lambda: client.call(prompt))
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RateLimiter:
    """Serializes tasks and enforces a minimum interval between them.

    ``asyncio.Lock`` wakes waiters in the order they called ``acquire``,
    which gives the FIFO guarantee. The finish time is recorded whether the
    task succeeded or raised, so a failure still spaces the next call but
    never blocks it beyond that.

    Attributes:
        name: Label of the backend this limiter protects.
        min_interval_ms: Minimum gap between the end of one task and the
            start of the next.
    """

    def __init__(self, name: str, min_interval_ms: float = 0) -> None:
        if min_interval_ms < 0:
            raise ValueError("min_interval_ms must not be negative")
        self.name = name
        self.min_interval_ms = min_interval_ms
        self._lock = asyncio.Lock()
        self._last_finished_at: Optional[float] = None

    @property
    def pending(self) -> bool:
        """True while a task holds the limiter."""
        return self._lock.locked()

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run ``task`` once its turn comes.

        Args:
            task: Zero-argument callable returning an awaitable.

        Returns:
            Whatever ``task`` returns.
        """
        async with self._lock:
            wait_seconds = self._remaining_interval()
            if wait_seconds > 0:
                logger.debug("[%s] spacing call by %.0fms", self.name, wait_seconds * 1000)
                await asyncio.sleep(wait_seconds)
            try:
                return await task()
            finally:
                self._last_finished_at = time.monotonic()

    def _remaining_interval(self) -> float:
        if self._last_finished_at is None or self.min_interval_ms <= 0:
            return 0.0
        elapsed = time.monotonic() - self._last_finished_at
        return max(0.0, self.min_interval_ms / 1000 - elapsed)


class RateLimiterRegistry:
    """Process-wide table of rate limiters keyed by backend identity.

    Build one registry at startup and pass it to every backend client;
    constructing private limiters silently breaks the spacing guarantee.
    """

    def __init__(self) -> None:
        self._limiters: dict[str, RateLimiter] = {}

    def get(self, name: str, min_interval_ms: float = 0) -> RateLimiter:
        """Return the limiter for ``name``, creating it on first use.

        The interval given on first use wins; later calls with a different
        interval get the existing limiter unchanged.
        """
        limiter = self._limiters.get(name)
        if limiter is None:
            limiter = RateLimiter(name, min_interval_ms)
            self._limiters[name] = limiter
        elif limiter.min_interval_ms != min_interval_ms:
            logger.debug(
                "Rate limiter '%s' already exists with %sms; ignoring %sms",
                name,
                limiter.min_interval_ms,
                min_interval_ms,
            )
        return limiter

    def __contains__(self, name: str) -> bool:
        return name in self._limiters

    def __len__(self) -> int:
        return len(self._limiters)


__all__ = ["RateLimiter", "RateLimiterRegistry"]
