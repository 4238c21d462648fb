"""Configuration module for Parley.

Usage:
    from parley.config import get_settings

    settings = get_settings()
    if settings.routing.force_local:
        print("local-only mode")
"""

from parley.config.settings import (
    # Main settings class
    ParleySettings,
    # Nested settings classes
    OllamaSettings,
    AnthropicSettings,
    GrokSettings,
    RetrySettings,
    RoutingSettings,
    MemorySettings,
    TrainingSettings,
    APIKeySettings,
    # Singleton functions
    get_settings,
    reload_settings,
    clear_settings_cache,
    # Constants
    TIER_NAMES,
    BACKEND_NAMES,
    DEFAULT_FALLBACK_CHAINS,
)

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
]
