"""Parley - request dispatch and context augmentation for conversational agents.

Parley sits between inbound chat messages and the text-generation backends
that answer them:
- Routes each request through a per-complexity fallback chain of backends
  (local Ollama, Anthropic, Grok) with rate limiting and retries
- Augments each message with ranked long-term facts, recent turns and a
  personality profile before dispatch
- Extracts durable facts from free text into a full-text-searchable store
"""

__version__ = "0.4.0"
__all__ = ["__version__"]
