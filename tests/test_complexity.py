"""Tests for complexity classification."""

from __future__ import annotations

import pytest

from parley.core.exceptions import BackendError
from parley.routing.complexity import (
    ComplexityClassifier,
    ComplexityTier,
    classify_user_message,
)


class TestClassifyUserMessage:
    """Tests for the zero-latency heuristic."""

    @pytest.mark.parametrize("message", ["oi", "Olá!", "bom dia", "ok", "valeu!", "sim"])
    def test_greetings_and_acks_are_simple(self, message):
        assert classify_user_message(message) is ComplexityTier.SIMPLE

    def test_short_message_is_simple(self):
        """Four words or fewer is simple."""
        assert classify_user_message("qual é seu nome") is ComplexityTier.SIMPLE

    def test_long_message_is_complex(self):
        """More than sixty words is complex regardless of content."""
        message = " ".join(["palavra"] * 70)
        assert classify_user_message(message) is ComplexityTier.COMPLEX

    def test_technical_keyword_is_complex(self):
        assert classify_user_message("preciso debugar uma função recursiva") is ComplexityTier.COMPLEX

    def test_short_technical_message_is_complex(self):
        """Complex checks run before the short-message rule."""
        assert classify_user_message("fix this bug") is ComplexityTier.COMPLEX

    def test_code_block_is_complex(self):
        message = "what does this do?\n```python\nprint(1)\n```"
        assert classify_user_message(message) is ComplexityTier.COMPLEX

    def test_build_request_is_complex(self):
        assert (
            classify_user_message("cria uma api simples em python para mim")
            is ComplexityTier.COMPLEX
        )

    def test_plain_statement_is_medium(self):
        """A ten-word ordinary statement is medium."""
        message = "I have been thinking about moving to another city soon"
        assert len(message.split()) == 10
        assert classify_user_message(message) is ComplexityTier.MEDIUM


class TestComplexityTier:
    """Tests for ComplexityTier.from_value."""

    def test_from_string(self):
        assert ComplexityTier.from_value(" Complex ") is ComplexityTier.COMPLEX

    def test_passthrough(self):
        assert ComplexityTier.from_value(ComplexityTier.MEDIUM) is ComplexityTier.MEDIUM

    def test_unknown_raises(self):
        with pytest.raises(ValueError):
            ComplexityTier.from_value("extreme")


class TestComplexityClassifier:
    """Tests for ComplexityClassifier."""

    def test_classify_uses_heuristic(self):
        classifier = ComplexityClassifier()
        assert classifier.classify("oi") is ComplexityTier.SIMPLE

    @pytest.mark.asyncio
    async def test_backend_answer_is_used(self, make_backend):
        """A valid one-word answer becomes the tier."""
        backend = make_backend("ollama", "Complex.")
        classifier = ComplexityClassifier(backend=backend)

        assert await classifier.classify_with_backend("write a compiler") is ComplexityTier.COMPLEX
        request = backend.requests[0]
        assert request.temperature == 0
        assert "write a compiler" in request.prompt

    @pytest.mark.asyncio
    async def test_task_is_truncated(self, make_backend):
        """Only the first 500 characters of the task are sent."""
        backend = make_backend("ollama", "medium")
        classifier = ComplexityClassifier(backend=backend)

        await classifier.classify_with_backend("x" * 600 + "TAIL")
        assert "TAIL" not in backend.requests[0].prompt

    @pytest.mark.asyncio
    async def test_unexpected_answer_uses_default(self, make_backend):
        backend = make_backend("ollama", "difficult")
        classifier = ComplexityClassifier(backend=backend, default_tier="medium")
        assert await classifier.classify_with_backend("anything") is ComplexityTier.MEDIUM

    @pytest.mark.asyncio
    async def test_backend_failure_uses_default(self, make_backend):
        """Classification never raises."""
        backend = make_backend("ollama", BackendError("down", backend="ollama"))
        classifier = ComplexityClassifier(backend=backend)
        assert await classifier.classify_with_backend("anything") is ComplexityTier.SIMPLE

    @pytest.mark.asyncio
    async def test_no_backend_uses_default(self):
        classifier = ComplexityClassifier(default_tier=ComplexityTier.COMPLEX)
        assert await classifier.classify_with_backend("anything") is ComplexityTier.COMPLEX
