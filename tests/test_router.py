"""Tests for the chain-walking router."""

from __future__ import annotations

import pytest

from parley.backends.base import GenerationRequest
from parley.core.exceptions import BackendError, RouterExhaustedError
from parley.routing.chains import FallbackChain
from parley.routing.complexity import ComplexityTier
from parley.routing.router import Router
from parley.telemetry.usage import UsageTracker

CHAINS = FallbackChain(
    {
        "simple": ["ollama", "grok", "anthropic"],
        "medium": ["grok", "ollama", "anthropic"],
        "complex": ["anthropic", "grok", "ollama"],
    }
)


class TestRouter:
    """Tests for Router.route."""

    @pytest.mark.asyncio
    async def test_first_backend_answers(self, make_backend):
        """The first configured backend in the chain is used."""
        ollama = make_backend("ollama", "oi!")
        grok = make_backend("grok", "unused")
        router = Router({"ollama": ollama, "grok": grok}, CHAINS)

        outcome = await router.route(GenerationRequest(prompt="oi"), tier="simple")

        assert outcome.backend == "ollama"
        assert outcome.text == "oi!"
        assert outcome.tier is ComplexityTier.SIMPLE
        assert outcome.fallback_used is False
        assert outcome.errors == []
        assert grok.calls == 0

    @pytest.mark.asyncio
    async def test_falls_back_after_failure(self, make_backend):
        """A failing backend is recorded and the next one answers."""
        ollama = make_backend("ollama", BackendError("HTTP 503: busy", backend="ollama", retryable=True))
        grok = make_backend("grok", "from grok")
        router = Router({"ollama": ollama, "grok": grok}, CHAINS)

        outcome = await router.route(GenerationRequest(prompt="oi"), tier=ComplexityTier.SIMPLE)

        assert outcome.backend == "grok"
        assert outcome.fallback_used is True
        assert outcome.attempted_backends == ["ollama", "grok"]
        assert outcome.errors == ["ollama: HTTP 503: busy"]

    @pytest.mark.asyncio
    async def test_unconfigured_backends_skipped(self, make_backend):
        """Missing clients are skipped without counting as a fallback."""
        anthropic = make_backend("anthropic", "deep answer")
        router = Router({"anthropic": anthropic}, CHAINS)

        outcome = await router.route(GenerationRequest(prompt="x"), tier="simple")

        assert outcome.backend == "anthropic"
        assert outcome.fallback_used is False
        assert outcome.errors == ["ollama: not configured", "grok: not configured"]

    @pytest.mark.asyncio
    async def test_unknown_exception_falls_through(self, make_backend):
        """Non-backend errors do not stop the chain."""
        ollama = make_backend("ollama", RuntimeError("bug"))
        grok = make_backend("grok", "fine")
        router = Router({"ollama": ollama, "grok": grok}, CHAINS)

        outcome = await router.route(GenerationRequest(prompt="x"), tier="simple")
        assert outcome.backend == "grok"
        assert outcome.errors == ["ollama: bug"]

    @pytest.mark.asyncio
    async def test_exhausted(self, make_backend):
        """When everything fails the caller gets every error."""
        ollama = make_backend("ollama", BackendError("HTTP 500: x", backend="ollama"))
        router = Router({"ollama": ollama}, CHAINS)

        with pytest.raises(RouterExhaustedError) as exc_info:
            await router.route(GenerationRequest(prompt="x"), tier="medium")

        error = exc_info.value
        assert error.tier == "medium"
        assert error.errors == [
            "grok: not configured",
            "ollama: HTTP 500: x",
            "anthropic: not configured",
        ]

    @pytest.mark.asyncio
    async def test_empty_chain_exhausts(self, make_backend):
        router = Router({"ollama": make_backend("ollama")}, FallbackChain({"complex": ["ollama"]}))
        with pytest.raises(RouterExhaustedError):
            await router.route(GenerationRequest(prompt="x"), tier="simple")

    @pytest.mark.asyncio
    async def test_tier_classified_when_omitted(self, make_backend):
        """Without a tier, the message (or prompt) is classified locally."""
        anthropic = make_backend("anthropic", "code")
        router = Router({"anthropic": anthropic, "ollama": make_backend("ollama")}, CHAINS)

        outcome = await router.route(
            GenerationRequest(prompt="[MESSAGE]\n..."),
            message="preciso debugar uma função recursiva",
        )

        assert outcome.tier is ComplexityTier.COMPLEX
        assert outcome.backend == "anthropic"

    @pytest.mark.asyncio
    async def test_force_local_chain(self, make_backend):
        """A restricted chain never reaches hosted backends."""
        ollama = make_backend("ollama", BackendError("down", backend="ollama"))
        anthropic = make_backend("anthropic", "hosted")
        router = Router({"ollama": ollama, "anthropic": anthropic}, CHAINS.restricted_to("ollama"))

        with pytest.raises(RouterExhaustedError):
            await router.route(GenerationRequest(prompt="x"), tier="complex")
        assert anthropic.calls == 0

    @pytest.mark.asyncio
    async def test_usage_recorded(self, make_backend):
        """Failures and the final success are tracked per backend."""
        usage = UsageTracker()
        ollama = make_backend("ollama", BackendError("down", backend="ollama", retryable=True))
        grok = make_backend("grok", "ok")
        router = Router({"ollama": ollama, "grok": grok}, CHAINS, usage=usage)

        await router.route(GenerationRequest(prompt="x"), tier="simple")

        by_backend = usage.get_usage_by_backend()
        assert by_backend["ollama"]["failure_count"] == 1
        assert by_backend["grok"]["call_count"] == 1
        assert by_backend["grok"]["total_tokens"] == 30
        assert usage.records[0].error_code == "BACKEND_ERROR"
        assert usage.get_summary()["fallbacks"] == 1

    @pytest.mark.asyncio
    async def test_outcome_to_dict(self, make_backend):
        router = Router({"ollama": make_backend("ollama", "hi")}, CHAINS)
        outcome = await router.route(GenerationRequest(prompt="x"), tier="simple")

        data = outcome.to_dict()
        assert data["backend"] == "ollama"
        assert data["tier"] == "simple"
        assert data["fallback_used"] is False
