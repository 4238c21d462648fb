"""Hosted Anthropic backend using the official async SDK.

SDK retries are disabled (``max_retries=0``) so that attempt counting and
backoff stay with the shared retry executor.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import anthropic

from parley.backends.base import BaseBackendClient, GenerationRequest, is_retryable_status
from parley.config.settings import AnthropicSettings
from parley.core.exceptions import BackendError, BackendTimeoutError
from parley.core.rate_limiter import RateLimiter
from parley.core.retry import RetryPolicy

logger = logging.getLogger(__name__)


class AnthropicClient(BaseBackendClient):
    """Client for the Anthropic Messages API."""

    name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str] = None,
        settings: Optional[AnthropicSettings] = None,
        rate_limiter: Optional[RateLimiter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sdk_client: Optional[anthropic.AsyncAnthropic] = None,
    ) -> None:
        self.settings = settings or AnthropicSettings()
        super().__init__(
            rate_limiter=rate_limiter,
            retry_policy=retry_policy,
            timeout=self.settings.timeout,
        )
        self._sdk = sdk_client or anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)

    async def _send(self, request: GenerationRequest) -> Any:
        params: dict[str, Any] = {
            "model": self.settings.model,
            "max_tokens": request.max_tokens or self.settings.max_tokens,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.system_prompt:
            params["system"] = request.system_prompt
        if request.temperature is not None:
            params["temperature"] = request.temperature

        try:
            return await self._sdk.messages.create(**params)
        except anthropic.APITimeoutError as exc:
            raise BackendTimeoutError(self.name, self.timeout, cause=exc) from exc
        except anthropic.APIConnectionError as exc:
            raise BackendError(
                f"Connection failed: {exc}",
                backend=self.name,
                retryable=True,
                cause=exc,
            ) from exc
        except anthropic.APIStatusError as exc:
            raise BackendError(
                f"HTTP {exc.status_code}: {exc.message}",
                backend=self.name,
                status_code=exc.status_code,
                retryable=is_retryable_status(exc.status_code),
                cause=exc,
            ) from exc

    def _parse(self, response: Any) -> tuple[str, str, Optional[int], Optional[int]]:
        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        usage = getattr(response, "usage", None)
        return (
            text,
            getattr(response, "model", None) or self.settings.model,
            getattr(usage, "input_tokens", None),
            getattr(usage, "output_tokens", None),
        )

    async def aclose(self) -> None:
        await self._sdk.close()


__all__ = ["AnthropicClient"]
