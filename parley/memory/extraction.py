"""Fact extraction from free text.

The extractor asks a backend for standalone, reusable facts as a JSON array
and for a one-word category per fact. Model output is treated as untrusted:
it goes through the defensive parsers in ``parley.core.parsing`` and any
failure degrades to an empty fact list or the ``general`` category.
Extraction enriches context; it is never allowed to fail a caller.

Example:
    >>> extractor = MemoryExtractor(ollama_client)
    >>> await extractor.extract_facts("I'm Lucas, I love TypeScript and hate PHP")
    ['User Lucas loves TypeScript', 'User Lucas dislikes PHP']
    >>> await extractor.classify_fact("User Lucas loves TypeScript")
    <MemoryCategory.PREFERENCE: 'preference'>
"""

from __future__ import annotations

import logging

from parley.backends.base import GenerationRequest, TextGenerator
from parley.core.parsing import parse_choice, parse_string_array
from parley.memory.schemas import CATEGORY_ALIASES, MemoryCategory

logger = logging.getLogger(__name__)


# =============================================================================
# Prompts
# =============================================================================

EXTRACTION_SYSTEM_PROMPT = (
    "You pull durable facts out of text. "
    "Reply with a JSON array of strings and nothing else."
)

EXTRACTION_PROMPT_TEMPLATE = """List the facts worth remembering from the text below.

Guidelines:
- Keep: user preferences, knowledge learned, opinions, notable events
- Drop: greetings, small talk, one-off context, unanswered questions
- Each fact must read on its own, e.g. "User Ana prefers Python over Java"
- Output a JSON array of strings only, like ["fact one", "fact two"]
- At most {max_facts} facts; output [] when nothing is worth keeping

Text:
\"\"\"
{text}
\"\"\""""

CATEGORY_PROMPT_TEMPLATE = """Pick the single category that fits this fact.
Categories: preference | fact | opinion | event | general
Fact: "{fact}"
Answer with the category name only:"""


class MemoryExtractor:
    """Turns text into atomic facts and categorizes them.

    Attributes:
        backend: Backend used for both extraction and classification.
        max_facts: Cap on facts returned per call.
        input_chars: Characters of input sent to the backend.
    """

    def __init__(
        self,
        backend: TextGenerator,
        max_facts: int = 5,
        input_chars: int = 2000,
    ) -> None:
        self.backend = backend
        self.max_facts = max_facts
        self.input_chars = input_chars

    async def extract_facts(self, text: str) -> list[str]:
        """Extract at most ``max_facts`` fact sentences; never raises."""
        if not text or not text.strip():
            return []

        request = GenerationRequest(
            prompt=EXTRACTION_PROMPT_TEMPLATE.format(
                max_facts=self.max_facts,
                text=text[: self.input_chars],
            ),
            system_prompt=EXTRACTION_SYSTEM_PROMPT,
            temperature=0,
        )
        try:
            result = await self.backend.generate_text(request)
        except Exception as exc:
            logger.warning("Fact extraction failed: %s", exc)
            return []

        parsed = parse_string_array(result.text)
        if not parsed.ok:
            logger.warning("Could not parse facts: %s", parsed.error)
            return []

        facts = [fact.strip() for fact in parsed.value]
        return facts[: self.max_facts]

    async def classify_fact(self, fact: str) -> MemoryCategory:
        """Categorize one fact, defaulting to GENERAL; never raises."""
        request = GenerationRequest(
            prompt=CATEGORY_PROMPT_TEMPLATE.format(fact=fact),
            temperature=0,
        )
        try:
            result = await self.backend.generate_text(request)
        except Exception as exc:
            logger.warning("Fact classification failed: %s", exc)
            return MemoryCategory.GENERAL

        choices = [category.value for category in MemoryCategory] + list(CATEGORY_ALIASES)
        parsed = parse_choice(result.text, choices)
        if not parsed.ok:
            logger.debug("Unrecognized category answer: %s", parsed.error)
            return MemoryCategory.GENERAL
        return MemoryCategory.parse(parsed.value)


__all__ = ["MemoryExtractor", "EXTRACTION_SYSTEM_PROMPT"]
