"""Defensive parsing of model output.

Model output is untrusted input. Parsers here never raise; they return a
ParseResult that either carries a value or the reason parsing failed, and
callers pick their own safe default with ``unwrap_or``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Generic, Iterable, Optional, TypeVar

T = TypeVar("T")

_FIRST_WORD = re.compile(r"[^\W\d_]+(?:_[^\W\d_]+)*", re.UNICODE)


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Outcome of parsing untrusted text.

    Attributes:
        value: The parsed value when parsing succeeded.
        error: Why parsing failed, when it did.
    """

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ParseResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "ParseResult[T]":
        return cls(error=error)

    def unwrap_or(self, default: T) -> T:
        """Return the parsed value, or ``default`` if parsing failed."""
        if self.ok and self.value is not None:
            return self.value
        return default


def _string_items(data: Any) -> Optional[list[str]]:
    if not isinstance(data, list):
        return None
    return [item.strip() for item in data if isinstance(item, str) and item.strip()]


def _first_bracketed_array(raw: str) -> Optional[Any]:
    """Decode the first JSON array that starts at any ``[`` in ``raw``."""
    decoder = json.JSONDecoder()
    start = raw.find("[")
    while start != -1:
        try:
            data, _ = decoder.raw_decode(raw, start)
        except json.JSONDecodeError:
            start = raw.find("[", start + 1)
            continue
        if isinstance(data, list):
            return data
        start = raw.find("[", start + 1)
    return None


def parse_string_array(raw: Optional[str]) -> ParseResult[list[str]]:
    """Parse a JSON array of strings out of model output.

    Tries the trimmed text as JSON first, then the first ``[...]`` found
    anywhere in the text (models like to wrap JSON in prose or code fences).
    Non-string and blank entries are dropped.
    """
    if raw is None or not raw.strip():
        return ParseResult.failure("empty output")

    try:
        items = _string_items(json.loads(raw.strip()))
        if items is not None:
            return ParseResult.success(items)
    except json.JSONDecodeError:
        pass

    items = _string_items(_first_bracketed_array(raw))
    if items is not None:
        return ParseResult.success(items)

    return ParseResult.failure(f"no JSON array in output: {raw[:200]!r}")


def parse_choice(raw: Optional[str], choices: Iterable[str]) -> ParseResult[str]:
    """Parse a single-word answer constrained to ``choices``.

    Only the first word counts; case and trailing punctuation are ignored.
    """
    if raw is None or not raw.strip():
        return ParseResult.failure("empty output")

    match = _FIRST_WORD.search(raw.strip().lower())
    if match is None:
        return ParseResult.failure(f"no word in output: {raw[:100]!r}")

    word = match.group(0)
    allowed = {choice.lower() for choice in choices}
    if word not in allowed:
        return ParseResult.failure(f"unexpected answer {word!r}")
    return ParseResult.success(word)


__all__ = ["ParseResult", "parse_string_array", "parse_choice"]
