"""Memory service: the public face of long-term memory.

Callers outside a chat turn (schedulers, adapters, the CLI) use this to
persist and query facts; the RAG orchestrator uses it for retrieval.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from parley.memory.extraction import MemoryExtractor
from parley.memory.schemas import Memory, MemoryCategory, MemorySource
from parley.memory.store import LongTermMemoryStore

logger = logging.getLogger(__name__)


class MemoryService:
    """Extract, store and retrieve long-term memories.

    Example:
        >>> service = MemoryService(store, extractor)
        >>> await service.remember("Lucas loves TypeScript and hates PHP", "whatsapp")
        [Memory(id=1, content='User Lucas loves TypeScript', ...), ...]
        >>> await service.build_context("typescript")
        'Relevant memories:\\n- User Lucas loves TypeScript'
    """

    def __init__(self, store: LongTermMemoryStore, extractor: Optional[MemoryExtractor] = None) -> None:
        self.store = store
        self.extractor = extractor

    async def remember(
        self,
        text: str,
        source: "MemorySource | str",
        category: "MemoryCategory | str | None" = None,
    ) -> list[Memory]:
        """Extract facts from ``text`` and store each one.

        Each fact is classified individually unless ``category`` is given.
        Returns an empty list when no extractor is configured or nothing
        worth keeping was found.
        """
        if self.extractor is None:
            logger.warning("remember() called without an extractor; nothing stored")
            return []

        facts = await self.extractor.extract_facts(text)
        saved: list[Memory] = []
        for fact in facts:
            resolved = (
                MemoryCategory.parse(category)
                if category is not None
                else await self.extractor.classify_fact(fact)
            )
            memory = await self.store.save(fact, fact, resolved, source)
            logger.info(
                "Stored memory id=%d category=%s: %s",
                memory.id,
                memory.category.value,
                fact[:80],
            )
            saved.append(memory)
        return saved

    async def search(self, query: str, limit: int = 10) -> list[Memory]:
        return await self.store.search(query, limit)

    async def build_context(self, query: str, limit: int = 5) -> str:
        """Relevant memories as a prompt-ready block, or "" when none match."""
        memories = await self.store.search(query, limit)
        if not memories:
            return ""
        lines = "\n".join(f"- {memory.content}" for memory in memories)
        return f"Relevant memories:\n{lines}"

    async def save_raw(
        self,
        content: str,
        source: "MemorySource | str",
        category: "MemoryCategory | str" = MemoryCategory.GENERAL,
    ) -> Memory:
        """Store ``content`` as-is, skipping extraction."""
        return await self.store.save(content, content, category, source)

    async def count(self) -> int:
        return await self.store.count()

    async def mark_accessed(self, memory_ids: Iterable[int]) -> None:
        await self.store.increment_access(memory_ids)

    async def top_accessed(self, limit: int = 10) -> list[Memory]:
        return await self.store.top_accessed(limit)

    async def find_by_category(self, category: "MemoryCategory | str", limit: int = 20) -> list[Memory]:
        return await self.store.find_by_category(category, limit)


__all__ = ["MemoryService"]
