"""Build backend clients from settings.

Only backends with enough configuration are built: Ollama when enabled,
Anthropic and Grok when their API keys are present. The router records
missing backends as "not configured" and moves on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from parley.backends.anthropic import AnthropicClient
from parley.backends.base import BaseBackendClient
from parley.backends.grok import GrokClient
from parley.backends.ollama import OllamaClient
from parley.config.settings import ParleySettings
from parley.core.rate_limiter import RateLimiterRegistry
from parley.core.retry import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class BackendClients:
    """The configured clients, any of which may be absent."""

    ollama: Optional[OllamaClient] = None
    anthropic: Optional[AnthropicClient] = None
    grok: Optional[GrokClient] = None

    def as_mapping(self) -> dict[str, BaseBackendClient]:
        """Configured clients keyed by backend name."""
        clients = {"ollama": self.ollama, "anthropic": self.anthropic, "grok": self.grok}
        return {name: client for name, client in clients.items() if client is not None}

    async def aclose(self) -> None:
        for client in self.as_mapping().values():
            await client.aclose()


def _retry_policy(settings: ParleySettings, attempts: int) -> RetryPolicy:
    return RetryPolicy(
        attempts=attempts,
        base_delay_ms=settings.retry.base_delay_ms,
        max_delay_ms=settings.retry.max_delay_ms,
        jitter=settings.retry.jitter,
    )


def create_backend_clients(
    settings: ParleySettings,
    limiters: Optional[RateLimiterRegistry] = None,
) -> BackendClients:
    """Create every backend client the settings allow.

    Args:
        settings: Application settings.
        limiters: Registry providing one rate limiter per backend name.

    Returns:
        BackendClients with unconfigured backends left as None.
    """
    limiters = limiters or RateLimiterRegistry()
    clients = BackendClients()

    if settings.api_keys.anthropic_api_key:
        clients.anthropic = AnthropicClient(
            api_key=settings.api_keys.anthropic_api_key,
            settings=settings.anthropic,
            rate_limiter=limiters.get("anthropic", settings.anthropic.min_interval_ms),
            retry_policy=_retry_policy(settings, settings.anthropic.retry_attempts),
        )

    if settings.api_keys.grok_api_key and settings.grok.base_url:
        clients.grok = GrokClient(
            api_key=settings.api_keys.grok_api_key,
            settings=settings.grok,
            rate_limiter=limiters.get("grok", settings.grok.min_interval_ms),
            retry_policy=_retry_policy(settings, settings.grok.retry_attempts),
        )

    if settings.ollama.enabled:
        fallback = None
        if settings.ollama.fallback_to_anthropic and not settings.routing.force_local:
            fallback = clients.anthropic
        clients.ollama = OllamaClient(
            settings=settings.ollama,
            rate_limiter=limiters.get("ollama", settings.ollama.min_interval_ms),
            retry_policy=_retry_policy(settings, settings.ollama.retry_attempts),
            fallback=fallback,
        )

    logger.info("Configured backends: %s", ", ".join(clients.as_mapping()) or "none")
    return clients


__all__ = ["BackendClients", "create_backend_clients"]
