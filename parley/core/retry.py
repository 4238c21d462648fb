"""Bounded retry with exponential backoff.

The retry executor wraps any awaitable-producing operation and re-invokes it
after failures the caller considers transient. It knows nothing about
backends; the retryability decision comes entirely from the ``should_retry``
predicate, which by default trusts ``BackendError.retryable``.

Example:
    >>> policy = RetryPolicy(attempts=3, base_delay_ms=300, max_delay_ms=3000)
    >>> result = await with_retry(lambda: client.call(), policy)
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from parley.core.exceptions import BackendError

logger = logging.getLogger(__name__)

T = TypeVar("T")

ShouldRetry = Callable[[BaseException], bool]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration.

    Attributes:
        attempts: Maximum number of invocations (not retries).
        base_delay_ms: Delay before the second invocation.
        max_delay_ms: Upper bound for any single delay.
        jitter: Extra random delay as a fraction of the computed delay
            (0.0 disables jitter).
    """

    attempts: int = 3
    base_delay_ms: int = 300
    max_delay_ms: int = 3000
    jitter: float = 0.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("delays must not be negative")
        if not 0.0 <= self.jitter <= 1.0:
            raise ValueError("jitter must be between 0.0 and 1.0")

    def backoff_ms(self, attempt: int) -> float:
        """Delay to wait after the given failed attempt (1-based)."""
        delay = min(self.max_delay_ms, self.base_delay_ms * 2 ** (attempt - 1))
        if self.jitter:
            delay += delay * self.jitter * random.random()
        return delay


DEFAULT_RETRY_POLICY = RetryPolicy()


def default_should_retry(error: BaseException) -> bool:
    """Trust ``BackendError.retryable``; treat unknown errors as transient."""
    if isinstance(error, BackendError):
        return error.retryable
    return True


def backend_errors_only(error: BaseException) -> bool:
    """Retry only retryable BackendErrors, never unknown exception types."""
    return isinstance(error, BackendError) and error.retryable


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    should_retry: Optional[ShouldRetry] = None,
    *,
    label: str = "operation",
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Invoke ``operation`` until it succeeds or retrying is pointless.

    Args:
        operation: Zero-argument callable returning an awaitable.
        policy: Attempt count and backoff bounds.
        should_retry: Predicate deciding whether an error is transient.
        label: Name used in log lines.
        sleep: Coroutine used to wait between attempts.

    Returns:
        The first successful result of ``operation``.

    Raises:
        The last error raised by ``operation``, unchanged.
    """
    policy = policy or DEFAULT_RETRY_POLICY
    predicate = should_retry or default_should_retry

    for attempt in range(1, policy.attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            has_next_attempt = attempt < policy.attempts
            if not predicate(exc) or not has_next_attempt:
                raise

            delay_ms = policy.backoff_ms(attempt)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.0fms: %s",
                label,
                attempt,
                policy.attempts,
                delay_ms,
                exc,
            )
            await sleep(delay_ms / 1000)

    # Unreachable: the loop either returns or raises.
    raise RuntimeError(f"{label}: retry loop exited without a result")


__all__ = [
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    "default_should_retry",
    "backend_errors_only",
    "with_retry",
]
