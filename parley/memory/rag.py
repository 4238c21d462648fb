"""Retrieval-augmented response orchestration.

RagOrchestrator.respond() is the single entry point for chat adapters. For
each inbound message it:

    1. extracts search keywords from the message
    2. searches long-term memory with them
    3. marks the surfaced memories as accessed (after dispatch)
    4. reads the conversation's short-term transcript
    5. resolves the personality / system prompt
    6. composes a stable system prompt and a dynamic user prompt
    7. classifies the raw message's complexity locally
    8. routes the composed request
    9. appends the user and assistant turns to short-term memory
   10. hands the exchange to the training-data collector in the background

Only step 8 may fail the call (RouterExhaustedError). Memory search,
personality resolution and collection degrade instead of raising.

Classes:
    RagRequestContext: Per-call conversation metadata.
    ComposedPrompt: System prompt plus user prompt.
    RagResponse: Text, routing outcome and retrieval details.
    RagOrchestrator: The pipeline above.

Example:
    >>> orchestrator = RagOrchestrator(memory_service, router, short_term)
    >>> response = await orchestrator.respond(
    ...     "oi", RagRequestContext(conversation_id="5511999999999", source="whatsapp")
    ... )
    >>> response.text, response.outcome.backend
    ('Oi! Tudo certo por aí?', 'ollama')
"""

from __future__ import annotations

import contextlib
import logging
import re
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Optional

from parley.backends.base import GenerationRequest
from parley.core.exceptions import ParleyError
from parley.core.tasks import BestEffortRunner
from parley.memory.schemas import Memory
from parley.memory.service import MemoryService
from parley.memory.short_term import ShortTermMemory, TurnRole
from parley.routing.complexity import ComplexityClassifier, ComplexityTier
from parley.routing.router import Router, RouterOutcome
from parley.training.collector import TrainingDataCollector
from parley.training.schemas import TrainingContext, TrainingDataSource

logger = logging.getLogger(__name__)

PersonalityProvider = Callable[[], Awaitable[str]]


# =============================================================================
# Prompt Constants
# =============================================================================

DEFAULT_PERSONALITY = (
    "You are an autonomous conversational agent with a consistent voice. "
    "Be direct, opinionated and genuine; never generic, never robotic. "
    "Reply in the language the user writes in."
)

NO_MEMORIES = "(no stored memories relevant to this message)"

RESPONSE_INSTRUCTIONS = (
    "Match the user's language unless asked otherwise.",
    "Keep the answer proportional: a short message gets a short reply.",
    "Plain chat text only: no markdown, lists or headings.",
    "Skip filler openers and artificial enthusiasm; get to the point.",
    "Use the memories only when they genuinely bear on this message.",
)

STOPWORDS = frozenset(
    {
        # Portuguese
        "a", "o", "os", "as", "de", "do", "da", "dos", "das", "e", "em", "no", "na",
        "nos", "nas", "por", "para", "com", "sem", "um", "uma", "uns", "umas", "que",
        "se", "como", "ao", "aos", "à", "às", "é", "ser", "foi", "vou", "vai", "você",
        "vc", "eu", "tu", "ele", "ela", "eles", "elas", "me", "te", "lhe", "isso",
        "isto", "aquilo", "qual", "quais", "quando", "onde", "porque", "porquê",
        # English
        "the", "is", "are", "to", "for", "of", "in", "on", "and", "or", "an", "this",
        "that", "it", "you", "i",
    }
)

MIN_KEYWORD_LENGTH = 3

_NON_WORD = re.compile(r"[^\w\s]|_")


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class RagRequestContext:
    """Conversation metadata for one respond() call.

    Attributes:
        conversation_id: Opaque key of the conversation.
        source: Channel the message arrived on.
        channel: Finer-grained channel label, if any.
        user_role: "owner" or "user".
        topic: Topic hint passed to the collector.
        tier: Forces a complexity tier instead of classifying.
    """

    conversation_id: str
    source: "TrainingDataSource | str" = TrainingDataSource.INTERNAL
    channel: Optional[str] = None
    user_role: Optional[str] = None
    topic: Optional[str] = None
    tier: "ComplexityTier | str | None" = None


@dataclass(frozen=True)
class ComposedPrompt:
    system_prompt: str
    prompt: str

    def render(self) -> str:
        """Both parts as one labeled string, for auditing."""
        return f"[SYSTEM]\n{self.system_prompt}\n\n[PROMPT]\n{self.prompt}"


@dataclass
class RagResponse:
    """Result of RagOrchestrator.respond().

    Attributes:
        text: The backend's answer, verbatim.
        outcome: Full routing outcome.
        used_memories: Long-term memories injected into the prompt.
        extracted_keywords: Keywords used for the memory search.
        composed_prompt: Audit rendering of the prompt that was sent.
    """

    text: str
    outcome: RouterOutcome
    used_memories: list[Memory] = field(default_factory=list)
    extracted_keywords: list[str] = field(default_factory=list)
    composed_prompt: str = ""


# =============================================================================
# Pipeline Steps
# =============================================================================


def extract_keywords(message: str, max_keywords: int = 10) -> list[str]:
    """Search keywords from a message, in order of first appearance.

    Lowercases, replaces anything that is not a letter or digit with a
    space, then drops short tokens and stop words and removes duplicates.
    """
    cleaned = _NON_WORD.sub(" ", message.lower())
    keywords: list[str] = []
    for word in cleaned.split():
        if len(word) < MIN_KEYWORD_LENGTH or word in STOPWORDS or word in keywords:
            continue
        keywords.append(word)
        if len(keywords) >= max_keywords:
            break
    return keywords


def compose_prompt(
    message: str,
    personality: str,
    memories: list[Memory],
    short_term_context: str,
) -> ComposedPrompt:
    """Build the stable system prompt and the per-message user prompt.

    The personality alone forms the system prompt so backends can cache it;
    everything that changes per message goes into the user prompt.
    """
    memories_block = (
        "\n".join(f"- {memory.content}" for memory in memories) if memories else NO_MEMORIES
    )
    instructions = "\n".join(RESPONSE_INSTRUCTIONS)
    prompt = "\n\n".join(
        [
            f"[MEMORIES]\n{memories_block}",
            f"[CONVERSATION]\n{short_term_context}",
            f"[MESSAGE]\n{message}",
            f"[INSTRUCTIONS]\n{instructions}",
        ]
    )
    return ComposedPrompt(system_prompt=personality, prompt=prompt)


# =============================================================================
# Orchestrator
# =============================================================================


class RagOrchestrator:
    """Memory-augmented front door to the router.

    Attributes:
        memory: Long-term memory service.
        router: Dispatches the composed request.
        short_term: Shared short-term memory.
        collector: Optional training-data collector.
        personality_provider: Optional async callback for the system prompt.
        classifier: Local complexity classifier.
        top_memories: Memories injected per prompt.
        max_keywords: Keywords used per search.
        serialize_conversations: Hold the conversation lock across the call.
        background: Runner for best-effort side effects.
    """

    def __init__(
        self,
        memory: MemoryService,
        router: Router,
        short_term: ShortTermMemory,
        collector: Optional[TrainingDataCollector] = None,
        personality_provider: Optional[PersonalityProvider] = None,
        classifier: Optional[ComplexityClassifier] = None,
        top_memories: int = 7,
        max_keywords: int = 10,
        serialize_conversations: bool = True,
        background: Optional[BestEffortRunner] = None,
    ) -> None:
        self.memory = memory
        self.router = router
        self.short_term = short_term
        self.collector = collector
        self.personality_provider = personality_provider
        self.classifier = classifier or ComplexityClassifier()
        self.top_memories = top_memories
        self.max_keywords = max_keywords
        self.serialize_conversations = serialize_conversations
        self.background = background or BestEffortRunner()

    async def respond(self, message: str, context: RagRequestContext) -> RagResponse:
        """Answer ``message`` with memory-augmented context.

        Raises:
            RouterExhaustedError: If no backend could answer.
        """
        keywords = extract_keywords(message, self.max_keywords)
        query = " ".join(keywords) if keywords else message
        memories = await self._search_memories(query)

        async with self._conversation_lock(context.conversation_id):
            short_term_context = self.short_term.format_context(context.conversation_id)
            personality = await self.resolve_personality()
            composed = compose_prompt(message, personality, memories, short_term_context)

            tier = (
                ComplexityTier.from_value(context.tier)
                if context.tier is not None
                else self.classifier.classify(message)
            )
            request = GenerationRequest(prompt=composed.prompt, system_prompt=composed.system_prompt)

            try:
                outcome = await self.router.route(request, tier=tier)
            finally:
                await self._mark_accessed(memories)

            self.short_term.add_message(context.conversation_id, TurnRole.USER, message)
            self.short_term.add_message(context.conversation_id, TurnRole.ASSISTANT, outcome.text)
            conversation_length = self.short_term.count(context.conversation_id)

        if self.collector is not None:
            training_context = TrainingContext(
                channel=context.channel,
                user_role=context.user_role,
                topic=context.topic,
                memories_used=[memory.content for memory in memories],
                conversation_length=conversation_length,
            )
            self.background.submit(
                self.collector.from_router_outcome(message, outcome, context.source, training_context),
                label="training-data",
            )

        return RagResponse(
            text=outcome.text,
            outcome=outcome,
            used_memories=memories,
            extracted_keywords=keywords,
            composed_prompt=composed.render(),
        )

    async def resolve_personality(self) -> str:
        """The provider's personality text, or DEFAULT_PERSONALITY; never raises."""
        if self.personality_provider is None:
            return DEFAULT_PERSONALITY
        try:
            personality = await self.personality_provider()
        except Exception as exc:
            logger.warning("Personality provider failed, using default: %s", exc)
            return DEFAULT_PERSONALITY
        if not personality or not personality.strip():
            return DEFAULT_PERSONALITY
        return personality.strip()

    async def _search_memories(self, query: str) -> list[Memory]:
        if self.top_memories <= 0:
            return []
        try:
            return await self.memory.search(query, self.top_memories)
        except ParleyError as exc:
            logger.warning("Memory search failed, continuing without memories: %s", exc)
            return []

    async def _mark_accessed(self, memories: list[Memory]) -> None:
        if not memories:
            return
        try:
            await self.memory.mark_accessed(memory.id for memory in memories)
        except ParleyError as exc:
            logger.warning("Could not update memory access counts: %s", exc)

    @contextlib.asynccontextmanager
    async def _conversation_lock(self, conversation_id: str) -> AsyncIterator[None]:
        if not self.serialize_conversations:
            yield
            return
        async with self.short_term.lock(conversation_id):
            yield

    async def aclose(self) -> None:
        """Wait for pending background work."""
        await self.background.drain()


__all__ = [
    "RagOrchestrator",
    "RagRequestContext",
    "RagResponse",
    "ComposedPrompt",
    "compose_prompt",
    "extract_keywords",
    "DEFAULT_PERSONALITY",
    "STOPWORDS",
]
