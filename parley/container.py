"""Application wiring.

Rate limiters and short-term memory are process-wide shared state: built
more than once, rate spacing and conversation continuity silently break.
create_container() builds every long-lived object exactly once from
settings and hands them out together.

Example:
    >>> container = create_container(get_settings())
    >>> response = await container.orchestrator.respond(
    ...     "oi", RagRequestContext(conversation_id="cli")
    ... )
    >>> await container.aclose()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from parley.backends.base import TextGenerator
from parley.backends.factory import BackendClients, create_backend_clients
from parley.config.settings import ParleySettings, get_settings
from parley.core.exceptions import ConfigurationError
from parley.core.rate_limiter import RateLimiterRegistry
from parley.core.tasks import BestEffortRunner
from parley.memory.extraction import MemoryExtractor
from parley.memory.rag import PersonalityProvider, RagOrchestrator
from parley.memory.service import MemoryService
from parley.memory.short_term import ShortTermMemory
from parley.memory.store import LongTermMemoryStore
from parley.routing.chains import FallbackChain
from parley.routing.complexity import ComplexityClassifier
from parley.routing.router import Router
from parley.telemetry.usage import UsageTracker
from parley.training.collector import JsonlTrainingCollector

logger = logging.getLogger(__name__)


@dataclass
class ParleyContainer:
    """Every singleton the engine needs."""

    settings: ParleySettings
    limiters: RateLimiterRegistry
    clients: BackendClients
    usage: UsageTracker
    classifier: ComplexityClassifier
    router: Router
    store: LongTermMemoryStore
    memory: MemoryService
    short_term: ShortTermMemory
    orchestrator: RagOrchestrator

    async def aclose(self) -> None:
        """Flush background work and release connections."""
        await self.orchestrator.aclose()
        await self.clients.aclose()
        await self.store.close()


def _auxiliary_backend(clients: BackendClients, preferred: str) -> Optional[TextGenerator]:
    """Backend for extraction and slow classification: the local one if possible."""
    mapping = clients.as_mapping()
    if preferred in mapping:
        return mapping[preferred]
    return next(iter(mapping.values()), None)


def create_container(
    settings: Optional[ParleySettings] = None,
    personality_provider: Optional[PersonalityProvider] = None,
) -> ParleyContainer:
    """Build the engine from settings.

    Args:
        settings: Application settings; the cached instance when omitted.
        personality_provider: Async callback supplying the system prompt.

    Returns:
        A ParleyContainer. Call ``aclose()`` when done.

    Raises:
        ConfigurationError: If force-local mode is on but the local backend
            is not configured.
    """
    settings = settings or get_settings()

    limiters = RateLimiterRegistry()
    clients = create_backend_clients(settings, limiters)
    auxiliary = _auxiliary_backend(clients, settings.routing.local_backend)

    usage = UsageTracker()
    classifier = ComplexityClassifier(backend=auxiliary, default_tier=settings.routing.default_tier)
    router = Router(
        clients.as_mapping(),
        FallbackChain.from_settings(settings.routing),
        classifier=classifier,
        usage=usage,
    )

    store = LongTermMemoryStore(settings.memory.database_path)
    extractor = (
        MemoryExtractor(
            auxiliary,
            max_facts=settings.memory.max_facts,
            input_chars=settings.memory.extraction_input_chars,
        )
        if auxiliary is not None
        else None
    )
    memory = MemoryService(store, extractor)
    short_term = ShortTermMemory(settings.memory.short_term_limit)

    collector = (
        JsonlTrainingCollector(settings.training.output_path)
        if settings.training.enabled
        else None
    )
    orchestrator = RagOrchestrator(
        memory,
        router,
        short_term,
        collector=collector,
        personality_provider=personality_provider,
        classifier=classifier,
        top_memories=settings.memory.top_memories,
        max_keywords=settings.memory.max_keywords,
        serialize_conversations=settings.memory.serialize_conversations,
        background=BestEffortRunner(),
    )

    if settings.routing.force_local:
        if settings.routing.local_backend not in clients.as_mapping():
            raise ConfigurationError(
                f"Force-local mode needs the '{settings.routing.local_backend}' backend configured",
                config_key="routing.local_backend",
            )
        logger.info("Force-local mode: every tier routes to %s", settings.routing.local_backend)

    return ParleyContainer(
        settings=settings,
        limiters=limiters,
        clients=clients,
        usage=usage,
        classifier=classifier,
        router=router,
        store=store,
        memory=memory,
        short_term=short_term,
        orchestrator=orchestrator,
    )


__all__ = ["ParleyContainer", "create_container"]
