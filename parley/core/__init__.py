"""Core building blocks shared by every Parley subsystem.

- Exceptions: the ParleyError hierarchy, including the uniform BackendError
- Resilience: RateLimiter / RateLimiterRegistry and the with_retry executor
- Parsing: ParseResult and defensive parsers for model output
- Tasks: BestEffortRunner for side effects that must never fail a request

Usage:
    from parley.core import BackendError, RetryPolicy, with_retry

    try:
        await with_retry(lambda: client.call(), RetryPolicy(attempts=3))
    except BackendError as e:
        print(e.backend, e.retryable)
"""

from parley.core.exceptions import (
    ParleyError,
    ConfigurationError,
    BackendError,
    BackendTimeoutError,
    EmptyResponseError,
    RouterExhaustedError,
    MemoryStoreError,
)
from parley.core.parsing import ParseResult, parse_choice, parse_string_array
from parley.core.rate_limiter import RateLimiter, RateLimiterRegistry
from parley.core.retry import (
    DEFAULT_RETRY_POLICY,
    RetryPolicy,
    backend_errors_only,
    default_should_retry,
    with_retry,
)
from parley.core.tasks import BestEffortRunner

__all__ = [
    # Exceptions
    "ParleyError",
    "ConfigurationError",
    "BackendError",
    "BackendTimeoutError",
    "EmptyResponseError",
    "RouterExhaustedError",
    "MemoryStoreError",
    # Parsing
    "ParseResult",
    "parse_choice",
    "parse_string_array",
    # Resilience
    "RateLimiter",
    "RateLimiterRegistry",
    "DEFAULT_RETRY_POLICY",
    "RetryPolicy",
    "backend_errors_only",
    "default_should_retry",
    "with_retry",
    # Tasks
    "BestEffortRunner",
]
