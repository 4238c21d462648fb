"""Shared pytest fixtures for Parley tests.

This module provides common fixtures used across all test modules:
- FakeBackend, a scripted TextGenerator that records its requests
- Environment isolation so host PARLEY_* variables never leak into tests
- Settings cache reset before and after every test
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional, Union

import pytest

from parley.backends.base import GenerationRequest, GenerationResult
from parley.config.settings import clear_settings_cache


ScriptedReply = Union[str, BaseException]


class FakeBackend:
    """TextGenerator that replays a script of replies.

    Each call pops the next entry: strings become a GenerationResult,
    exceptions are raised. When the script runs out the last entry repeats.
    """

    def __init__(self, name: str, responses: Optional[list[ScriptedReply]] = None) -> None:
        self.name = name
        self.responses: list[ScriptedReply] = list(responses or ["ok"])
        self.requests: list[GenerationRequest] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def generate_text(self, request: GenerationRequest) -> GenerationResult:
        self.requests.append(request)
        reply = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(reply, BaseException):
            raise reply
        return GenerationResult(
            backend=self.name,
            model=f"{self.name}-model",
            text=reply,
            latency_ms=5,
            input_tokens=10,
            output_tokens=20,
        )


# -----------------------------------------------------------------------------
# Test Isolation Fixtures
# -----------------------------------------------------------------------------

_ISOLATED_KEYS = ("ANTHROPIC_API_KEY", "GROK_API_KEY")


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Strip Parley env vars, run inside tmp_path and reset the settings cache.

    Running inside tmp_path keeps a developer's .env file and the default
    data/ directory out of the tests.
    """
    for key in list(os.environ):
        if key.startswith("PARLEY_") or key in _ISOLATED_KEYS:
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()
    # CLI tests call setup_logging, which detaches the tree from caplog
    parley_logger = logging.getLogger("parley")
    parley_logger.handlers.clear()
    parley_logger.propagate = True
    parley_logger.setLevel(logging.NOTSET)


# -----------------------------------------------------------------------------
# Backend Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def make_backend() -> Callable[..., FakeBackend]:
    """Factory for scripted fake backends.

    Returns:
        A callable ``make_backend(name, *responses)``.
    """

    def _make(name: str, *responses: ScriptedReply) -> FakeBackend:
        return FakeBackend(name, list(responses) if responses else None)

    return _make
