"""Local Ollama backend over its HTTP generate endpoint.

Ollama is the offline backend: cheap, private, and the only one allowed in
force-local mode. When it is down, the client can escalate a request to a
hosted fallback client instead of failing.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from parley.backends.base import (
    BaseBackendClient,
    GenerationRequest,
    TextGenerator,
    is_retryable_status,
)
from parley.config.settings import OllamaSettings
from parley.core.exceptions import BackendError, BackendTimeoutError
from parley.core.rate_limiter import RateLimiter
from parley.core.retry import RetryPolicy

logger = logging.getLogger(__name__)


class OllamaClient(BaseBackendClient):
    """Client for ``POST /api/generate`` on a local Ollama server.

    Example:
        >>> client = OllamaClient(OllamaSettings(model="llama3.2:3b"))
        >>> result = await client.generate_text(GenerationRequest(prompt="oi"))
        >>> await client.aclose()
    """

    name = "ollama"

    def __init__(
        self,
        settings: Optional[OllamaSettings] = None,
        rate_limiter: Optional[RateLimiter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        fallback: Optional[TextGenerator] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or OllamaSettings()
        super().__init__(
            rate_limiter=rate_limiter,
            retry_policy=retry_policy,
            timeout=self.settings.timeout,
            fallback=fallback,
        )
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self.settings.timeout)

    def build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.settings.model,
            "prompt": request.prompt,
            "stream": self.settings.stream,
        }
        if request.system_prompt:
            payload["system"] = request.system_prompt
        options: dict[str, Any] = {}
        if request.temperature is not None:
            options["temperature"] = request.temperature
        if request.max_tokens is not None:
            options["num_predict"] = request.max_tokens
        if options:
            payload["options"] = options
        return payload

    async def _send(self, request: GenerationRequest) -> dict[str, Any]:
        try:
            response = await self._http.post(
                self.settings.api_url,
                json=self.build_payload(request),
                headers={"Content-Type": self.settings.content_type},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise BackendTimeoutError(self.name, self.timeout, cause=exc) from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise BackendError(
                f"HTTP {status}: {exc.response.text[:200]}",
                backend=self.name,
                status_code=status,
                retryable=is_retryable_status(status),
                cause=exc,
            ) from exc
        except httpx.TransportError as exc:
            raise BackendError(
                f"Connection failed: {exc}",
                backend=self.name,
                retryable=True,
                cause=exc,
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise BackendError(
                "Malformed JSON response",
                backend=self.name,
                retryable=False,
                cause=exc,
            ) from exc
        if not isinstance(data, dict):
            raise BackendError("Unexpected response shape", backend=self.name)
        return data

    def _parse(self, response: dict[str, Any]) -> tuple[str, str, Optional[int], Optional[int]]:
        return (
            response.get("response") or "",
            response.get("model") or self.settings.model,
            response.get("prompt_eval_count"),
            response.get("eval_count"),
        )

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()


__all__ = ["OllamaClient"]
