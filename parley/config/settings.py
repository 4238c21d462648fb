"""Pydantic settings for Parley.

This module defines the ParleySettings class that loads configuration from
environment variables and .env files through pydantic-settings. Settings are
read once at startup and treated as immutable for the life of the process.

Settings Categories:
    - Core: debug mode, log level, log format, environment
    - Backends: per-backend URL, model, timeout, retry count and spacing
    - Retry: shared exponential backoff bounds
    - Routing: per-tier fallback chains and the force-local override
    - Memory: long-term store path and short-term/RAG limits
    - Training: where scored exchanges are collected
    - API Keys: backend credentials

Environment Variables:
    PARLEY_LOG_LEVEL: Logging level (default: INFO)
    PARLEY_OLLAMA__API_URL: Ollama generate endpoint
    PARLEY_OLLAMA__MODEL: Ollama model tag (default: llama3.2:3b)
    PARLEY_ANTHROPIC__MODEL: Anthropic model (default: claude-3-5-sonnet-latest)
    PARLEY_GROK__BASE_URL: OpenAI-compatible base URL for Grok
    PARLEY_ROUTING__FORCE_LOCAL: Route every tier to the local backend only
    PARLEY_MEMORY__DATABASE_PATH: SQLite file for long-term memories
    ANTHROPIC_API_KEY: API key for Anthropic
    GROK_API_KEY: API key for Grok

Usage:
    from parley.config.settings import get_settings

    settings = get_settings()
    print(settings.routing.chains["complex"])
    print(settings.memory.short_term_limit)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Default Constants
# =============================================================================

TIER_NAMES = ("simple", "medium", "complex")
"""Valid complexity tier names, cheapest first."""

BACKEND_NAMES = ("ollama", "anthropic", "grok")
"""Backends Parley knows how to build."""

DEFAULT_FALLBACK_CHAINS: dict[str, list[str]] = {
    "simple": ["ollama", "grok", "anthropic"],
    "medium": ["grok", "ollama", "anthropic"],
    "complex": ["anthropic", "grok", "ollama"],
}
"""Fast local model first for trivia, conversational model for chat,
strongest model for technical work."""

DEFAULT_TIMEOUT = 30.0
"""Default per-request timeout in seconds."""

DEFAULT_RETRY_ATTEMPTS = 3
"""Default number of invocations per backend call."""


# =============================================================================
# Backend Settings
# =============================================================================


class OllamaSettings(BaseModel):
    """Settings for the local Ollama backend.

    Attributes:
        enabled: Whether to build the Ollama client at all.
        api_url: Full URL of the /api/generate endpoint.
        model: Model tag to request.
        content_type: Content-Type header for the request body.
        stream: Ask Ollama to stream (the client reads a single JSON body).
        timeout: Request timeout in seconds.
        retry_attempts: Invocations per call before giving up.
        min_interval_ms: Minimum spacing between calls.
        fallback_to_anthropic: Escalate to Anthropic when Ollama is down.
    """

    enabled: bool = Field(default=True, description="Build the Ollama client")
    api_url: str = Field(
        default="http://localhost:11434/api/generate",
        description="Ollama generate endpoint",
    )
    model: str = Field(default="llama3.2:3b", description="Ollama model tag")
    content_type: str = Field(default="application/json")
    stream: bool = Field(default=False)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    retry_attempts: int = Field(default=DEFAULT_RETRY_ATTEMPTS, ge=1, le=10)
    min_interval_ms: int = Field(default=200, ge=0)
    fallback_to_anthropic: bool = Field(
        default=True,
        description="Delegate to Anthropic after Ollama exhausts its retries (ignored in force-local mode)",
    )


class AnthropicSettings(BaseModel):
    """Settings for the hosted Anthropic backend."""

    model: str = Field(default="claude-3-5-sonnet-latest")
    max_tokens: int = Field(default=1024, ge=1, le=200000)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    retry_attempts: int = Field(default=DEFAULT_RETRY_ATTEMPTS, ge=1, le=10)
    min_interval_ms: int = Field(default=500, ge=0)


class GrokSettings(BaseModel):
    """Settings for the hosted Grok backend (OpenAI-compatible API)."""

    base_url: Optional[str] = Field(
        default="https://api.x.ai/v1",
        description="OpenAI-compatible base URL",
    )
    model: str = Field(default="grok-2")
    max_tokens: int = Field(default=1024, ge=1, le=200000)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    retry_attempts: int = Field(default=DEFAULT_RETRY_ATTEMPTS, ge=1, le=10)
    min_interval_ms: int = Field(default=0, ge=0)


class RetrySettings(BaseModel):
    """Backoff bounds shared by every backend.

    Attributes:
        base_delay_ms: Delay after the first failure.
        max_delay_ms: Cap on any single delay.
        jitter: Random extra delay as a fraction of the computed delay.
    """

    base_delay_ms: int = Field(default=300, ge=0)
    max_delay_ms: int = Field(default=3000, ge=0)
    jitter: float = Field(default=0.0, ge=0.0, le=1.0)


# =============================================================================
# Routing Settings
# =============================================================================


class RoutingSettings(BaseModel):
    """Fallback chains and routing overrides.

    Attributes:
        chains: Ordered backend names per complexity tier.
        force_local: Restrict every tier to ``local_backend``.
        local_backend: Backend used by force-local mode and slow classification.
        default_tier: Tier used when backend classification fails.
    """

    chains: dict[str, list[str]] = Field(
        default_factory=lambda: {tier: list(chain) for tier, chain in DEFAULT_FALLBACK_CHAINS.items()}
    )
    force_local: bool = Field(default=False)
    local_backend: str = Field(default="ollama")
    default_tier: str = Field(default="simple")

    @field_validator("chains")
    @classmethod
    def validate_chains(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        """Normalize names, reject unknown tiers, drop duplicate backends."""
        normalized: dict[str, list[str]] = {}
        for tier, backends in v.items():
            tier_name = tier.lower().strip()
            if tier_name not in TIER_NAMES:
                raise ValueError(
                    f"Invalid tier '{tier}'. Must be one of: {', '.join(TIER_NAMES)}"
                )
            seen: list[str] = []
            for backend in backends:
                name = backend.lower().strip()
                if name and name not in seen:
                    seen.append(name)
            normalized[tier_name] = seen
        for tier in TIER_NAMES:
            normalized.setdefault(tier, list(DEFAULT_FALLBACK_CHAINS[tier]))
        return normalized

    @field_validator("default_tier")
    @classmethod
    def validate_default_tier(cls, v: str) -> str:
        normalized = v.lower().strip()
        if normalized not in TIER_NAMES:
            raise ValueError(
                f"Invalid tier '{v}'. Must be one of: {', '.join(TIER_NAMES)}"
            )
        return normalized

    @field_validator("local_backend")
    @classmethod
    def validate_local_backend(cls, v: str) -> str:
        return v.lower().strip()


# =============================================================================
# Memory and Training Settings
# =============================================================================


class MemorySettings(BaseModel):
    """Settings for long-term and short-term memory.

    Attributes:
        database_path: SQLite file backing the long-term store.
        short_term_limit: Turns kept per conversation.
        top_memories: Long-term memories injected per prompt.
        max_keywords: Keywords extracted per message for the search query.
        max_facts: Facts kept per extraction.
        extraction_input_chars: Text length sent to the extractor.
        serialize_conversations: Queue concurrent requests per conversation.
    """

    database_path: Path = Field(default=Path("data/memory.db"))
    short_term_limit: int = Field(default=10, ge=1)
    top_memories: int = Field(default=7, ge=0)
    max_keywords: int = Field(default=10, ge=1)
    max_facts: int = Field(default=5, ge=1)
    extraction_input_chars: int = Field(default=2000, ge=100)
    serialize_conversations: bool = Field(default=True)

    @field_validator("database_path", mode="before")
    @classmethod
    def convert_to_path(cls, v: Any) -> Path:
        if isinstance(v, str):
            return Path(v)
        return v


class TrainingSettings(BaseModel):
    """Settings for training-data collection."""

    enabled: bool = Field(default=True)
    output_path: Path = Field(default=Path("data/training.jsonl"))

    @field_validator("output_path", mode="before")
    @classmethod
    def convert_to_path(cls, v: Any) -> Path:
        if isinstance(v, str):
            return Path(v)
        return v


class APIKeySettings(BaseSettings):
    """Backend credentials, loaded WITHOUT the PARLEY_ prefix."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    anthropic_api_key: Optional[str] = Field(default=None)
    grok_api_key: Optional[str] = Field(default=None)


# =============================================================================
# Main Settings Class
# =============================================================================


class ParleySettings(BaseSettings):
    """Main settings class for Parley.

    Environment variables use the PARLEY_ prefix and ``__`` for nesting
    (``PARLEY_ROUTING__FORCE_LOCAL=true``). API keys use their standard names.

    Attributes:
        debug: Enable debug logging.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Emit JSON lines instead of plain text.
        environment: Deployment environment.
        ollama: Local backend configuration.
        anthropic: Anthropic backend configuration.
        grok: Grok backend configuration.
        retry: Shared backoff configuration.
        routing: Fallback chains and overrides.
        memory: Memory configuration.
        training: Training-data collection configuration.
        api_keys: Backend credentials.
    """

    model_config = SettingsConfigDict(
        env_prefix="PARLEY_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    environment: str = Field(default="development")

    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    anthropic: AnthropicSettings = Field(default_factory=AnthropicSettings)
    grok: GrokSettings = Field(default_factory=GrokSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    routing: RoutingSettings = Field(default_factory=RoutingSettings)
    memory: MemorySettings = Field(default_factory=MemorySettings)
    training: TrainingSettings = Field(default_factory=TrainingSettings)

    api_keys: APIKeySettings = Field(default_factory=APIKeySettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(sorted(valid_levels))}"
            )
        return normalized

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate and normalize environment."""
        valid_envs = {"development", "staging", "production", "test"}
        normalized = v.lower()
        if normalized not in valid_envs:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {', '.join(sorted(valid_envs))}"
            )
        return normalized

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    def configured_backends(self) -> list[str]:
        """Names of the backends that have enough configuration to be built."""
        backends = []
        if self.ollama.enabled and self.ollama.api_url:
            backends.append("ollama")
        if self.api_keys.anthropic_api_key:
            backends.append("anthropic")
        if self.api_keys.grok_api_key and self.grok.base_url:
            backends.append("grok")
        return backends

    def to_dict(self) -> dict[str, Any]:
        """Export settings as a dictionary with API keys masked."""
        data = self.model_dump()
        if "api_keys" in data:
            for key in data["api_keys"]:
                if data["api_keys"][key]:
                    data["api_keys"][key] = "***MASKED***"
        return data


# =============================================================================
# Singleton Pattern
# =============================================================================

_settings_instance: Optional[ParleySettings] = None


def get_settings() -> ParleySettings:
    """Get the cached settings instance, creating it on first call."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = ParleySettings()
    return _settings_instance


def reload_settings() -> ParleySettings:
    """Reload settings from the environment, replacing the cached instance.

    Mostly useful in tests after changing environment variables.
    """
    global _settings_instance
    _settings_instance = ParleySettings()
    return _settings_instance


def clear_settings_cache() -> None:
    """Drop the cached instance so the next get_settings() builds a new one."""
    global _settings_instance
    _settings_instance = None


__all__ = [
    "ParleySettings",
    "OllamaSettings",
    "AnthropicSettings",
    "GrokSettings",
    "RetrySettings",
    "RoutingSettings",
    "MemorySettings",
    "TrainingSettings",
    "APIKeySettings",
    "get_settings",
    "reload_settings",
    "clear_settings_cache",
    "TIER_NAMES",
    "BACKEND_NAMES",
    "DEFAULT_FALLBACK_CHAINS",
    "DEFAULT_TIMEOUT",
    "DEFAULT_RETRY_ATTEMPTS",
]
