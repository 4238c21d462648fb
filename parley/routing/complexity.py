"""Complexity classification for routing.

A request's complexity tier decides which fallback chain the router walks.
Two paths exist:

    classify_user_message: Zero-latency regex heuristic over the raw user
        message. Used on the hot path; never does I/O.
    ComplexityClassifier.classify_with_backend: Asks a cheap backend to
        answer with one tier word. Used only when no raw message exists
        (e.g. an already composed prompt). Degrades to a default tier on
        any failure.

The heuristic recognizes Portuguese and English greetings, acknowledgements
and technical phrasing.

Example:
    >>> classify_user_message("oi")
    <ComplexityTier.SIMPLE: 'simple'>
    >>> classify_user_message("preciso debugar uma função recursiva")
    <ComplexityTier.COMPLEX: 'complex'>
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional

from parley.backends.base import GenerationRequest, TextGenerator
from parley.core.parsing import parse_choice

logger = logging.getLogger(__name__)


# =============================================================================
# Tier Enumeration
# =============================================================================


class ComplexityTier(str, Enum):
    """Coarse complexity of a request, cheapest first."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"

    @classmethod
    def from_value(cls, value: "str | ComplexityTier") -> "ComplexityTier":
        if isinstance(value, cls):
            return value
        return cls(str(value).lower().strip())


# =============================================================================
# Local Heuristic
# =============================================================================

COMPLEX_WORD_COUNT = 60
SIMPLE_WORD_COUNT = 4

_CODE_BLOCK = re.compile(r"```[\s\S]*```")
_TECHNICAL_KEYWORDS = re.compile(
    r"\b(debug|debugar|bug|implement[ae]r?|algoritmo|algorithm|arquitetura|architecture|refactor)\b"
)
_BUILD_REQUEST = re.compile(
    r"\b(cri[ae]\s+(um|uma)|desenvolv[ae]r?|escreva\s+(um|uma)|gera\s+(um|uma))\b"
    r".{0,40}"
    r"\b(código|code|script|função|function|classe|class|sistema|api|módulo)\b"
)
_GREETING = re.compile(
    r"^(oi|olá|ola|hey|hi|hello|e\s*aí|e\s*ai|tudo\s*bem|tudo\s*bom|bom\s*dia|boa\s*tarde|boa\s*noite)[\s!?.,]*$"
)
_ACKNOWLEDGEMENT = re.compile(
    r"^(ok|certo|entendido|vlw|valeu|obrigad[oa]|tmj|blz|beleza|show|perfeito|ótimo|otimo"
    r"|excelente|top|não|nao|sim|yes|no)[\s!?.,]*$"
)


def classify_user_message(message: str) -> ComplexityTier:
    """Classify a raw user message without any I/O.

    Complex checks run first so a short "fix this bug" is still complex:
        - more than 60 words, a fenced code block, or technical keywords
          -> COMPLEX
        - 4 words or fewer, or a bare greeting/acknowledgement -> SIMPLE
        - anything else -> MEDIUM
    """
    text = message.lower().strip()
    word_count = len(text.split())

    if word_count > COMPLEX_WORD_COUNT:
        return ComplexityTier.COMPLEX
    if _CODE_BLOCK.search(text):
        return ComplexityTier.COMPLEX
    if _TECHNICAL_KEYWORDS.search(text) or _BUILD_REQUEST.search(text):
        return ComplexityTier.COMPLEX

    if word_count <= SIMPLE_WORD_COUNT:
        return ComplexityTier.SIMPLE
    if _GREETING.match(text) or _ACKNOWLEDGEMENT.match(text):
        return ComplexityTier.SIMPLE

    return ComplexityTier.MEDIUM


# =============================================================================
# Classifier
# =============================================================================

CLASSIFY_SYSTEM_PROMPT = (
    "You classify how demanding a task is. "
    "Answer with a single word: simple, medium, or complex."
)

CLASSIFY_PROMPT_TEMPLATE = """Rate the complexity of the task below.
- simple: greetings, yes/no questions, short facts, translation
- medium: conversation, opinions, summaries, explanations, light creative writing
- complex: writing or debugging code, deep analysis, planning, research, long structured documents

Task: "{task}"

One word only (simple, medium, or complex):"""

CLASSIFY_TASK_CHARS = 500


class ComplexityClassifier:
    """Assigns a ComplexityTier to messages and prompts.

    Attributes:
        backend: Cheap backend used by the slow path, if any.
        default_tier: Tier returned when the slow path cannot decide.
    """

    def __init__(
        self,
        backend: Optional[TextGenerator] = None,
        default_tier: "ComplexityTier | str" = ComplexityTier.SIMPLE,
    ) -> None:
        self.backend = backend
        self.default_tier = ComplexityTier.from_value(default_tier)

    def classify(self, message: str) -> ComplexityTier:
        """Hot-path classification of a raw user message."""
        tier = classify_user_message(message)
        logger.debug("Classified message locally as %s", tier.value, extra={"tier": tier.value})
        return tier

    async def classify_with_backend(self, prompt: str) -> ComplexityTier:
        """Ask the backend for a tier; never raises.

        Falls back to ``default_tier`` when no backend is set, the backend
        fails, or its answer is not one of the three tier words.
        """
        if self.backend is None:
            return self.default_tier

        request = GenerationRequest(
            prompt=CLASSIFY_PROMPT_TEMPLATE.format(task=prompt[:CLASSIFY_TASK_CHARS]),
            system_prompt=CLASSIFY_SYSTEM_PROMPT,
            temperature=0,
        )
        try:
            result = await self.backend.generate_text(request)
        except Exception as exc:
            logger.warning(
                "Backend classification failed, using %s: %s", self.default_tier.value, exc
            )
            return self.default_tier

        parsed = parse_choice(result.text, [tier.value for tier in ComplexityTier])
        if not parsed.ok:
            logger.warning(
                "Unexpected classification answer, using %s: %s",
                self.default_tier.value,
                parsed.error,
            )
            return self.default_tier
        return ComplexityTier(parsed.value)


__all__ = [
    "ComplexityTier",
    "ComplexityClassifier",
    "classify_user_message",
    "CLASSIFY_SYSTEM_PROMPT",
]
