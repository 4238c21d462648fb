"""Text-generation backends for Parley.

Classes:
    GenerationRequest / GenerationResult: Backend call input and output
    BaseBackendClient: Rate limit, retry and timeout wrapping for every client
    OllamaClient: Local backend over HTTP (httpx)
    AnthropicClient: Hosted backend via the anthropic SDK
    GrokClient: Hosted backend via the OpenAI-compatible API (openai SDK)
"""

from parley.backends.anthropic import AnthropicClient
from parley.backends.base import (
    BaseBackendClient,
    GenerationRequest,
    GenerationResult,
    TextGenerator,
    is_retryable_status,
)
from parley.backends.factory import BackendClients, create_backend_clients
from parley.backends.grok import GrokClient
from parley.backends.ollama import OllamaClient

__all__ = [
    "GenerationRequest",
    "GenerationResult",
    "TextGenerator",
    "BaseBackendClient",
    "is_retryable_status",
    "OllamaClient",
    "AnthropicClient",
    "GrokClient",
    "BackendClients",
    "create_backend_clients",
]
