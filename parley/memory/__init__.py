"""Memory subsystem for Parley.

Layers:
    - Long-term: LongTermMemoryStore (SQLite FTS5) behind MemoryService
    - Extraction: MemoryExtractor turns free text into atomic facts
    - Short-term: ShortTermMemory keeps recent turns per conversation
    - RAG: RagOrchestrator composes memory-augmented prompts and routes them

Usage:
    from parley.memory import MemoryService, LongTermMemoryStore

    service = MemoryService(LongTermMemoryStore("data/memory.db"), extractor)
    await service.save_raw("User prefers short answers", "whatsapp", "preference")
    print(await service.build_context("answers"))
"""

from parley.memory.extraction import MemoryExtractor
from parley.memory.rag import (
    DEFAULT_PERSONALITY,
    ComposedPrompt,
    RagOrchestrator,
    RagRequestContext,
    RagResponse,
    compose_prompt,
    extract_keywords,
)
from parley.memory.schemas import Memory, MemoryCategory, MemorySource
from parley.memory.service import MemoryService
from parley.memory.short_term import NO_HISTORY, ShortTermMemory, ShortTermTurn, TurnRole
from parley.memory.store import LongTermMemoryStore

__all__ = [
    # Schemas
    "Memory",
    "MemoryCategory",
    "MemorySource",
    # Long-term
    "LongTermMemoryStore",
    "MemoryService",
    "MemoryExtractor",
    # Short-term
    "ShortTermMemory",
    "ShortTermTurn",
    "TurnRole",
    "NO_HISTORY",
    # RAG
    "RagOrchestrator",
    "RagRequestContext",
    "RagResponse",
    "ComposedPrompt",
    "compose_prompt",
    "extract_keywords",
    "DEFAULT_PERSONALITY",
]
