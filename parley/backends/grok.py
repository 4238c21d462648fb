"""Hosted Grok backend through its OpenAI-compatible chat completions API."""

from __future__ import annotations

import logging
from typing import Any, Optional

import openai

from parley.backends.base import BaseBackendClient, GenerationRequest, is_retryable_status
from parley.config.settings import GrokSettings
from parley.core.exceptions import BackendError, BackendTimeoutError
from parley.core.rate_limiter import RateLimiter
from parley.core.retry import RetryPolicy

logger = logging.getLogger(__name__)


class GrokClient(BaseBackendClient):
    """Client for Grok via ``openai.AsyncOpenAI`` pointed at the x.ai base URL."""

    name = "grok"

    def __init__(
        self,
        api_key: Optional[str] = None,
        settings: Optional[GrokSettings] = None,
        rate_limiter: Optional[RateLimiter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sdk_client: Optional[openai.AsyncOpenAI] = None,
    ) -> None:
        self.settings = settings or GrokSettings()
        super().__init__(
            rate_limiter=rate_limiter,
            retry_policy=retry_policy,
            timeout=self.settings.timeout,
        )
        self._sdk = sdk_client or openai.AsyncOpenAI(
            api_key=api_key,
            base_url=self.settings.base_url,
            max_retries=0,
        )

    async def _send(self, request: GenerationRequest) -> Any:
        messages = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})

        params: dict[str, Any] = {
            "model": self.settings.model,
            "messages": messages,
            "max_tokens": request.max_tokens or self.settings.max_tokens,
        }
        if request.temperature is not None:
            params["temperature"] = request.temperature

        try:
            return await self._sdk.chat.completions.create(**params)
        except openai.APITimeoutError as exc:
            raise BackendTimeoutError(self.name, self.timeout, cause=exc) from exc
        except openai.APIConnectionError as exc:
            raise BackendError(
                f"Connection failed: {exc}",
                backend=self.name,
                retryable=True,
                cause=exc,
            ) from exc
        except openai.APIStatusError as exc:
            raise BackendError(
                f"HTTP {exc.status_code}: {exc.message}",
                backend=self.name,
                status_code=exc.status_code,
                retryable=is_retryable_status(exc.status_code),
                cause=exc,
            ) from exc

    def _parse(self, response: Any) -> tuple[str, str, Optional[int], Optional[int]]:
        choices = getattr(response, "choices", None) or []
        text = (choices[0].message.content or "") if choices else ""
        usage = getattr(response, "usage", None)
        return (
            text,
            getattr(response, "model", None) or self.settings.model,
            getattr(usage, "prompt_tokens", None),
            getattr(usage, "completion_tokens", None),
        )

    async def aclose(self) -> None:
        await self._sdk.close()


__all__ = ["GrokClient"]
