"""Routing layer for Parley.

Key Components:
    ComplexityTier: simple / medium / complex.
    ComplexityClassifier: Local heuristic plus a backend-assisted slow path.
    FallbackChain: Ordered backends per tier.
    Router: Walks a chain and returns a RouterOutcome.

Usage:
    from parley.routing import Router, FallbackChain, ComplexityTier

    outcome = await router.route(request, tier=ComplexityTier.COMPLEX)
"""

from parley.routing.chains import FallbackChain
from parley.routing.complexity import (
    ComplexityClassifier,
    ComplexityTier,
    classify_user_message,
)
from parley.routing.router import Router, RouterOutcome

__all__ = [
    "ComplexityTier",
    "ComplexityClassifier",
    "classify_user_message",
    "FallbackChain",
    "Router",
    "RouterOutcome",
]
