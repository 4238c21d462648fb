"""Per-tier fallback chains.

A FallbackChain maps each ComplexityTier to an ordered list of backend
names. Chains are loaded once at startup and never change afterwards; the
force-local override produces a separate restricted chain rather than
mutating the configured one.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from parley.config.settings import DEFAULT_FALLBACK_CHAINS, RoutingSettings
from parley.routing.complexity import ComplexityTier


def _dedupe(backends: Iterable[str]) -> tuple[str, ...]:
    seen: list[str] = []
    for backend in backends:
        if backend not in seen:
            seen.append(backend)
    return tuple(seen)


class FallbackChain:
    """Immutable mapping from tier to an ordered, duplicate-free backend list.

    Example:
        >>> chain = FallbackChain({"simple": ["ollama", "grok", "ollama"]})
        >>> chain.for_tier("simple")
        ('ollama', 'grok')
        >>> chain.restricted_to("ollama").for_tier("complex")
        ('ollama',)
    """

    def __init__(self, chains: Optional[Mapping["ComplexityTier | str", Iterable[str]]] = None) -> None:
        source = chains if chains is not None else DEFAULT_FALLBACK_CHAINS
        resolved: dict[ComplexityTier, tuple[str, ...]] = {}
        for tier, backends in source.items():
            resolved[ComplexityTier.from_value(tier)] = _dedupe(backends)
        for tier in ComplexityTier:
            resolved.setdefault(tier, ())
        self._chains = MappingProxyType(resolved)

    @classmethod
    def from_settings(cls, settings: RoutingSettings) -> "FallbackChain":
        """Build the chain to route with, honouring force-local mode."""
        chain = cls(settings.chains)
        if settings.force_local:
            return chain.restricted_to(settings.local_backend)
        return chain

    def for_tier(self, tier: "ComplexityTier | str") -> tuple[str, ...]:
        return self._chains[ComplexityTier.from_value(tier)]

    def restricted_to(self, backend: str) -> "FallbackChain":
        """A chain that sends every tier to ``backend`` only."""
        return FallbackChain({tier: [backend] for tier in ComplexityTier})

    def as_dict(self) -> dict[str, list[str]]:
        return {tier.value: list(backends) for tier, backends in self._chains.items()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FallbackChain):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self) -> str:
        return f"FallbackChain({self.as_dict()!r})"


__all__ = ["FallbackChain"]
