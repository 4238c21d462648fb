"""Per-backend usage accounting.

The router records every backend attempt here: successes with their token
counts and latency, failures with the error code. Usage is tracked in
tokens rather than currency so the numbers stay comparable across local and
hosted backends.

Example:
    >>> tracker = UsageTracker()
    >>> tracker.record_success("ollama", "llama3.2:3b", "simple", 12, 40, 85)
    >>> tracker.record_failure("grok", "medium", "BACKEND_ERROR")
    >>> tracker.get_usage_by_backend()["ollama"]["call_count"]
    1
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


@dataclass
class UsageRecord:
    """Record of a single backend attempt.

    Attributes:
        backend: Backend name (ollama, anthropic, grok).
        model: Model that answered, when known.
        tier: Complexity tier the request was routed under.
        input_tokens: Prompt tokens reported by the backend.
        output_tokens: Completion tokens reported by the backend.
        latency_ms: Wall time of the call.
        success: Whether the backend produced a result.
        fallback_used: Whether an earlier backend in the chain failed first.
        error_code: Error code for failed attempts.
        timestamp: When the attempt finished (UTC).
    """

    backend: str
    tier: str
    model: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: int = 0
    success: bool = True
    fallback_used: bool = False
    error_code: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> dict:
        return {
            "backend": self.backend,
            "model": self.model,
            "tier": self.tier,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
            "latency_ms": self.latency_ms,
            "success": self.success,
            "fallback_used": self.fallback_used,
            "error_code": self.error_code,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class UsageTracker:
    """Accumulates UsageRecords and summarizes them per backend."""

    records: list[UsageRecord] = field(default_factory=list)

    def record_success(
        self,
        backend: str,
        model: Optional[str],
        tier: str,
        input_tokens: Optional[int],
        output_tokens: Optional[int],
        latency_ms: int,
        fallback_used: bool = False,
    ) -> None:
        """Record a successful backend call.

        Raises:
            ValueError: If a token count is negative.
        """
        input_tokens = input_tokens or 0
        output_tokens = output_tokens or 0
        if input_tokens < 0 or output_tokens < 0:
            raise ValueError("Token counts cannot be negative")
        self.records.append(
            UsageRecord(
                backend=backend,
                model=model,
                tier=tier,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                latency_ms=latency_ms,
                fallback_used=fallback_used,
            )
        )

    def record_failure(self, backend: str, tier: str, error_code: Optional[str] = None) -> None:
        self.records.append(
            UsageRecord(backend=backend, tier=tier, success=False, error_code=error_code)
        )

    @property
    def total_tokens(self) -> int:
        return sum(r.total_tokens for r in self.records)

    @property
    def call_count(self) -> int:
        return len(self.records)

    def get_usage_by_backend(self) -> dict[str, dict[str, int]]:
        """Group token counts, calls and failures by backend name."""
        usage: dict[str, dict[str, int]] = {}

        for record in self.records:
            if record.backend not in usage:
                usage[record.backend] = {
                    "input_tokens": 0,
                    "output_tokens": 0,
                    "total_tokens": 0,
                    "call_count": 0,
                    "failure_count": 0,
                    "total_latency_ms": 0,
                }
            stats = usage[record.backend]
            if record.success:
                stats["input_tokens"] += record.input_tokens
                stats["output_tokens"] += record.output_tokens
                stats["total_tokens"] += record.total_tokens
                stats["call_count"] += 1
                stats["total_latency_ms"] += record.latency_ms
            else:
                stats["failure_count"] += 1

        return usage

    def get_summary(self) -> dict:
        """Summary statistics across every recorded attempt.

        Returns:
            Dictionary with total_calls, successes, failures, total_tokens,
            by_backend and time_range.
        """
        successes = sum(1 for r in self.records if r.success)
        summary = {
            "total_calls": len(self.records),
            "successes": successes,
            "failures": len(self.records) - successes,
            "fallbacks": sum(1 for r in self.records if r.fallback_used),
            "total_tokens": self.total_tokens,
            "by_backend": self.get_usage_by_backend(),
        }

        if self.records:
            ordered = sorted(self.records, key=lambda r: r.timestamp)
            summary["time_range"] = {
                "first_call": ordered[0].timestamp.isoformat(),
                "last_call": ordered[-1].timestamp.isoformat(),
            }
        else:
            summary["time_range"] = None

        return summary

    def to_json(self) -> str:
        return json.dumps([record.to_dict() for record in self.records], indent=2)

    def clear(self) -> None:
        self.records.clear()


__all__ = ["UsageRecord", "UsageTracker"]
