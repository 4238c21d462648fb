"""Tests for the memory extractor."""

from __future__ import annotations

import pytest

from parley.core.exceptions import BackendError
from parley.memory.extraction import MemoryExtractor
from parley.memory.schemas import MemoryCategory


class TestExtractFacts:
    """Tests for MemoryExtractor.extract_facts."""

    @pytest.mark.asyncio
    async def test_parses_json_array(self, make_backend):
        backend = make_backend("ollama", '["User Lucas loves TypeScript", "User Lucas dislikes PHP"]')
        extractor = MemoryExtractor(backend)

        facts = await extractor.extract_facts("I'm Lucas, I love TypeScript and hate PHP")

        assert facts == ["User Lucas loves TypeScript", "User Lucas dislikes PHP"]
        request = backend.requests[0]
        assert request.temperature == 0
        assert "I love TypeScript" in request.prompt

    @pytest.mark.asyncio
    async def test_array_wrapped_in_prose(self, make_backend):
        backend = make_backend("ollama", 'Here you go:\n["fact one"]\nDone.')
        assert await MemoryExtractor(backend).extract_facts("text") == ["fact one"]

    @pytest.mark.asyncio
    async def test_caps_fact_count(self, make_backend):
        backend = make_backend("ollama", '["a", "b", "c", "d"]')
        extractor = MemoryExtractor(backend, max_facts=2)
        assert await extractor.extract_facts("text") == ["a", "b"]

    @pytest.mark.asyncio
    async def test_input_is_truncated(self, make_backend):
        backend = make_backend("ollama", "[]")
        extractor = MemoryExtractor(backend, input_chars=100)

        await extractor.extract_facts("y" * 100 + "OVERFLOW")
        assert "OVERFLOW" not in backend.requests[0].prompt

    @pytest.mark.asyncio
    async def test_unparseable_output(self, make_backend):
        """Garbage output yields no facts instead of an error."""
        backend = make_backend("ollama", "I could not find any facts, sorry!")
        assert await MemoryExtractor(backend).extract_facts("text") == []

    @pytest.mark.asyncio
    async def test_backend_failure(self, make_backend):
        backend = make_backend("ollama", BackendError("down", backend="ollama"))
        assert await MemoryExtractor(backend).extract_facts("text") == []

    @pytest.mark.asyncio
    async def test_empty_input_skips_backend(self, make_backend):
        backend = make_backend("ollama")
        assert await MemoryExtractor(backend).extract_facts("   ") == []
        assert backend.calls == 0


class TestClassifyFact:
    """Tests for MemoryExtractor.classify_fact."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "answer,expected",
        [
            ("preference", MemoryCategory.PREFERENCE),
            ("Opinion.", MemoryCategory.OPINION),
            ("event", MemoryCategory.EVENT),
            ("learned_fact", MemoryCategory.FACT),
            ("user_preference", MemoryCategory.PREFERENCE),
            ("banana", MemoryCategory.GENERAL),
        ],
    )
    async def test_answers(self, make_backend, answer, expected):
        backend = make_backend("ollama", answer)
        assert await MemoryExtractor(backend).classify_fact("some fact") is expected

    @pytest.mark.asyncio
    async def test_backend_failure_is_general(self, make_backend):
        backend = make_backend("ollama", BackendError("down", backend="ollama"))
        assert await MemoryExtractor(backend).classify_fact("x") is MemoryCategory.GENERAL
