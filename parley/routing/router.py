"""Chain-level routing across text-generation backends.

The router resolves a complexity tier, looks up that tier's fallback chain
and tries each backend in order until one succeeds:

    Idle -> Attempting(backend_1) -> Success
                                  -> Attempting(backend_2) -> ... -> AllFailed

Backends with no configured client are skipped and recorded as
"not configured". If every entry is skipped or fails, RouterExhaustedError
carries the tier and the per-backend errors to the caller. This is the one
failure the engine never swallows.

Usage:
    from parley.routing import Router, FallbackChain

    router = Router(clients.as_mapping(), FallbackChain.from_settings(settings.routing))
    outcome = await router.route(GenerationRequest(prompt="oi"))
    print(outcome.backend, outcome.tier, outcome.fallback_used)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from parley.backends.base import GenerationRequest, GenerationResult, TextGenerator
from parley.core.exceptions import RouterExhaustedError
from parley.routing.chains import FallbackChain
from parley.routing.complexity import ComplexityClassifier, ComplexityTier
from parley.telemetry.usage import UsageTracker

logger = logging.getLogger(__name__)


# =============================================================================
# Outcome
# =============================================================================


@dataclass
class RouterOutcome(GenerationResult):
    """A GenerationResult annotated with how it was obtained.

    Attributes:
        tier: Tier the request was routed under.
        fallback_used: True when an earlier configured backend failed first.
        attempted_backends: Configured backends actually called, in order.
        errors: One "{backend}: {message}" entry per skipped or failed backend.
    """

    tier: ComplexityTier = ComplexityTier.SIMPLE
    fallback_used: bool = False
    attempted_backends: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_result(
        cls,
        result: GenerationResult,
        tier: ComplexityTier,
        attempted_backends: list[str],
        errors: list[str],
    ) -> "RouterOutcome":
        return cls(
            backend=result.backend,
            model=result.model,
            text=result.text,
            latency_ms=result.latency_ms,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
            raw=result.raw,
            tier=tier,
            fallback_used=len(attempted_backends) > 1,
            attempted_backends=list(attempted_backends),
            errors=list(errors),
        )

    def to_dict(self) -> dict:
        return {
            "backend": self.backend,
            "model": self.model,
            "tier": self.tier.value,
            "latency_ms": self.latency_ms,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "fallback_used": self.fallback_used,
            "attempted_backends": list(self.attempted_backends),
            "errors": list(self.errors),
        }


# =============================================================================
# Router
# =============================================================================


class Router:
    """Walks a tier's fallback chain and returns the first success.

    The router depends only on the TextGenerator protocol, never on concrete
    backend classes.

    Attributes:
        clients: Configured backends keyed by name.
        chains: Fallback chains (already restricted in force-local mode).
        classifier: Used when the caller does not supply a tier.
        usage: Optional tracker receiving one record per attempt.
    """

    def __init__(
        self,
        clients: Mapping[str, TextGenerator],
        chains: Optional[FallbackChain] = None,
        classifier: Optional[ComplexityClassifier] = None,
        usage: Optional[UsageTracker] = None,
    ) -> None:
        self.clients = dict(clients)
        self.chains = chains or FallbackChain()
        self.classifier = classifier or ComplexityClassifier()
        self.usage = usage

    async def route(
        self,
        request: GenerationRequest,
        tier: "ComplexityTier | str | None" = None,
        message: Optional[str] = None,
    ) -> RouterOutcome:
        """Dispatch ``request`` through the chain for its tier.

        Args:
            request: What to generate.
            tier: Tier to route under; classified locally when omitted.
            message: Raw user message to classify; defaults to the prompt.

        Returns:
            RouterOutcome from the first backend that succeeded.

        Raises:
            RouterExhaustedError: If every chain entry was skipped or failed.
        """
        if tier is None:
            resolved = self.classifier.classify(message if message is not None else request.prompt)
        else:
            resolved = ComplexityTier.from_value(tier)

        attempted: list[str] = []
        errors: list[str] = []

        for backend in self.chains.for_tier(resolved):
            client = self.clients.get(backend)
            if client is None:
                errors.append(f"{backend}: not configured")
                continue

            if attempted:
                logger.warning(
                    "Falling back to %s",
                    backend,
                    extra={"backend": backend, "tier": resolved.value},
                )
            attempted.append(backend)

            try:
                result = await client.generate_text(request)
            except Exception as exc:
                error_code = getattr(exc, "code", type(exc).__name__)
                errors.append(f"{backend}: {exc}")
                logger.warning(
                    "Backend %s failed: %s",
                    backend,
                    exc,
                    extra={"backend": backend, "tier": resolved.value, "error_code": error_code},
                )
                if self.usage is not None:
                    self.usage.record_failure(backend, resolved.value, error_code)
                continue

            outcome = RouterOutcome.from_result(result, resolved, attempted, errors)
            logger.info(
                "Routed to %s (fallback=%s)",
                outcome.backend,
                outcome.fallback_used,
                extra={
                    "backend": outcome.backend,
                    "tier": resolved.value,
                    "latency_ms": outcome.latency_ms,
                },
            )
            if self.usage is not None:
                self.usage.record_success(
                    outcome.backend,
                    outcome.model,
                    resolved.value,
                    outcome.input_tokens,
                    outcome.output_tokens,
                    outcome.latency_ms,
                    outcome.fallback_used,
                )
            return outcome

        logger.error(
            "All backends failed: %s",
            " | ".join(errors),
            extra={"tier": resolved.value},
        )
        raise RouterExhaustedError(resolved.value, errors)


__all__ = ["Router", "RouterOutcome"]
