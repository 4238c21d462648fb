"""Shared types and the base client for text-generation backends.

Every backend client exposes one operation, ``generate_text``, and wraps its
transport call the same way:

    rate limiter  ->  retry executor  ->  timeout  ->  transport

Backend-native failures are translated to BackendError by the subclass so
that ``retryable`` is the only signal the retry executor and the router
look at.

Classes:
    GenerationRequest: Immutable input to a backend call.
    GenerationResult: Output of a successful backend call (non-empty text).
    TextGenerator: Protocol satisfied by every backend client.
    BaseBackendClient: Template implementing the wrapping described above.

Example:
    >>> client = OllamaClient(settings.ollama, limiter, policy)
    >>> result = await client.generate_text(GenerationRequest(prompt="oi"))
    >>> result.backend, result.text
    ('ollama', 'Olá! Como posso ajudar?')
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

from parley.core.exceptions import BackendError, BackendTimeoutError, EmptyResponseError
from parley.core.rate_limiter import RateLimiter
from parley.core.retry import DEFAULT_RETRY_POLICY, RetryPolicy, backend_errors_only, with_retry

logger = logging.getLogger(__name__)


# =============================================================================
# Request / Result Types
# =============================================================================


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable input to a backend call.

    Attributes:
        prompt: The fully composed user prompt.
        system_prompt: Optional system instructions.
        temperature: Sampling temperature, backend default when None.
        max_tokens: Completion cap, backend default when None.
    """

    prompt: str
    system_prompt: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass
class GenerationResult:
    """Output of a successful backend call.

    Attributes:
        backend: Name of the backend that answered.
        model: Model reported by (or requested from) the backend.
        text: Generated text, never empty.
        latency_ms: Wall time of the successful attempt.
        input_tokens: Prompt tokens, when the backend reports them.
        output_tokens: Completion tokens, when the backend reports them.
        raw: The backend's raw payload.
    """

    backend: str
    model: str
    text: str
    latency_ms: int
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    raw: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise EmptyResponseError(self.backend)


@runtime_checkable
class TextGenerator(Protocol):
    """Anything that can answer a GenerationRequest."""

    name: str

    async def generate_text(self, request: GenerationRequest) -> GenerationResult:
        ...


def is_retryable_status(status_code: Optional[int]) -> bool:
    """408, 429 and every 5xx are transient; other statuses are not."""
    if status_code is None:
        return False
    return status_code in (408, 429) or status_code >= 500


# =============================================================================
# Base Client
# =============================================================================


class BaseBackendClient(ABC):
    """Template for backend clients.

    Subclasses implement ``_send`` (perform one transport call and return the
    native response, raising BackendError on failure) and ``_parse`` (turn
    that response into ``(text, model, input_tokens, output_tokens)``).

    Attributes:
        name: Backend identity used in errors, logs and chain configuration.
        rate_limiter: Serializes and spaces calls to this backend.
        retry_policy: Attempt count and backoff for transient failures.
        timeout: Seconds allowed per attempt, enforced here.
        fallback: Client to delegate to once every attempt has failed.
    """

    name: str = "backend"

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 30.0,
        fallback: Optional[TextGenerator] = None,
    ) -> None:
        self.rate_limiter = rate_limiter or RateLimiter(self.name)
        self.retry_policy = retry_policy or DEFAULT_RETRY_POLICY
        self.timeout = timeout
        self.fallback = fallback

    async def generate_text(self, request: GenerationRequest) -> GenerationResult:
        """Generate text for ``request``.

        Raises:
            BackendError: When every attempt failed and no fallback is set,
                or when the fallback itself failed.
        """
        try:
            return await self.rate_limiter.run(
                lambda: with_retry(
                    lambda: self._attempt(request),
                    self.retry_policy,
                    backend_errors_only,
                    label=f"{self.name} request",
                )
            )
        except BackendError as exc:
            if self.fallback is None:
                raise
            logger.warning(
                "%s failed, delegating to %s: %s",
                self.name,
                self.fallback.name,
                exc,
                extra={"backend": self.name},
            )
            return await self.fallback.generate_text(request)

    async def _attempt(self, request: GenerationRequest) -> GenerationResult:
        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(self._send(request), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise BackendTimeoutError(self.name, self.timeout, cause=exc) from exc
        latency_ms = int((time.perf_counter() - started) * 1000)

        text, model, input_tokens, output_tokens = self._parse(response)
        if not text or not text.strip():
            raise EmptyResponseError(self.name)

        return GenerationResult(
            backend=self.name,
            model=model,
            text=text,
            latency_ms=latency_ms,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            raw=response,
        )

    @abstractmethod
    async def _send(self, request: GenerationRequest) -> Any:
        """Perform one transport call, raising BackendError on failure."""

    @abstractmethod
    def _parse(self, response: Any) -> tuple[str, str, Optional[int], Optional[int]]:
        """Extract ``(text, model, input_tokens, output_tokens)``."""

    async def aclose(self) -> None:
        """Release transport resources. No-op unless overridden."""


__all__ = [
    "GenerationRequest",
    "GenerationResult",
    "TextGenerator",
    "BaseBackendClient",
    "is_retryable_status",
]
