"""Training-data collectors.

The RAG orchestrator hands every answered exchange to a collector through
its best-effort runner, so a collector may raise freely: the failure is
logged and the response is unaffected.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from parley.routing.router import RouterOutcome
from parley.training.schemas import (
    ScoredTrainingEntry,
    TrainingContext,
    TrainingDataSource,
    TrainingDataType,
    TrainingEntry,
    TrainingMetadata,
)
from parley.training.scorer import compute_quality_score

logger = logging.getLogger(__name__)


@runtime_checkable
class TrainingDataCollector(Protocol):
    """Receives each answered exchange."""

    async def from_router_outcome(
        self,
        input_message: str,
        outcome: RouterOutcome,
        source: "TrainingDataSource | str",
        context: Optional[TrainingContext] = None,
    ) -> None:
        ...


def build_entry(
    input_message: str,
    outcome: RouterOutcome,
    source: "TrainingDataSource | str",
    context: Optional[TrainingContext] = None,
    entry_type: TrainingDataType = TrainingDataType.CONVERSATION,
) -> TrainingEntry:
    """Assemble a TrainingEntry from a routed exchange."""
    return TrainingEntry(
        type=entry_type,
        input=input_message,
        output=outcome.text,
        source=TrainingDataSource(source),
        context=context or TrainingContext(),
        metadata=TrainingMetadata(
            backend=outcome.backend,
            model=outcome.model,
            latency_ms=outcome.latency_ms,
            input_tokens=outcome.input_tokens,
            output_tokens=outcome.output_tokens,
            tier=outcome.tier.value,
            fallback_used=outcome.fallback_used,
        ),
    )


class JsonlTrainingCollector:
    """Appends scored entries to a JSON Lines file.

    Example:
        >>> collector = JsonlTrainingCollector(Path("data/training.jsonl"))
        >>> await collector.from_router_outcome("oi", outcome, "whatsapp")
    """

    def __init__(self, output_path: Union[str, Path]) -> None:
        self.output_path = Path(output_path)
        self._lock = asyncio.Lock()

    async def collect(self, entry: TrainingEntry) -> ScoredTrainingEntry:
        scored = ScoredTrainingEntry(
            **entry.model_dump(),
            quality_score=compute_quality_score(entry),
        )
        line = json.dumps(scored.to_record(), ensure_ascii=False) + "\n"

        def append() -> None:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            with self.output_path.open("a", encoding="utf-8") as handle:
                handle.write(line)

        async with self._lock:
            await asyncio.get_running_loop().run_in_executor(None, append)

        logger.debug(
            "Collected %s entry with score %.2f", scored.type.value, scored.quality_score
        )
        return scored

    async def from_router_outcome(
        self,
        input_message: str,
        outcome: RouterOutcome,
        source: "TrainingDataSource | str",
        context: Optional[TrainingContext] = None,
    ) -> None:
        await self.collect(build_entry(input_message, outcome, source, context))


__all__ = ["TrainingDataCollector", "JsonlTrainingCollector", "build_entry"]
