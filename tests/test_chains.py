"""Tests for per-tier fallback chains."""

from __future__ import annotations

import pytest

from parley.config.settings import DEFAULT_FALLBACK_CHAINS, RoutingSettings
from parley.routing.chains import FallbackChain
from parley.routing.complexity import ComplexityTier


class TestFallbackChain:
    """Tests for FallbackChain."""

    def test_defaults(self):
        """Without configuration the default chains apply."""
        chain = FallbackChain()
        for tier, backends in DEFAULT_FALLBACK_CHAINS.items():
            assert chain.for_tier(tier) == tuple(backends)

    def test_duplicates_removed(self):
        """A backend appears at most once per tier, first position wins."""
        chain = FallbackChain({"simple": ["ollama", "grok", "ollama"]})
        assert chain.for_tier("simple") == ("ollama", "grok")

    def test_missing_tiers_are_empty(self):
        chain = FallbackChain({"complex": ["anthropic"]})
        assert chain.for_tier(ComplexityTier.SIMPLE) == ()
        assert chain.for_tier(ComplexityTier.COMPLEX) == ("anthropic",)

    def test_restricted_to(self):
        """Force-local restriction sends every tier to one backend."""
        chain = FallbackChain().restricted_to("ollama")
        assert chain.as_dict() == {"simple": ["ollama"], "medium": ["ollama"], "complex": ["ollama"]}

    def test_restriction_does_not_mutate(self):
        """The configured chain is left untouched."""
        chain = FallbackChain()
        chain.restricted_to("ollama")
        assert chain == FallbackChain()

    def test_immutable(self):
        chain = FallbackChain()
        with pytest.raises(TypeError):
            chain._chains[ComplexityTier.SIMPLE] = ("grok",)

    def test_from_settings(self):
        settings = RoutingSettings(chains={"simple": ["grok"]})
        chain = FallbackChain.from_settings(settings)
        assert chain.for_tier("simple") == ("grok",)
        assert chain.for_tier("complex") == tuple(DEFAULT_FALLBACK_CHAINS["complex"])

    def test_from_settings_force_local(self):
        settings = RoutingSettings(force_local=True, local_backend="ollama")
        chain = FallbackChain.from_settings(settings)
        assert all(chain.for_tier(tier) == ("ollama",) for tier in ComplexityTier)
