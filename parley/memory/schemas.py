"""Long-term memory schemas.

Classes:
    MemoryCategory: Kind of fact (preference, fact, opinion, event, general)
    MemorySource: Channel the fact came from
    Memory: A persisted atomic fact
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryCategory(str, Enum):
    """Kind of fact stored in long-term memory."""

    PREFERENCE = "preference"
    FACT = "fact"
    OPINION = "opinion"
    EVENT = "event"
    GENERAL = "general"

    @classmethod
    def parse(cls, value: "str | MemoryCategory | None") -> "MemoryCategory":
        """Resolve a category name, accepting legacy aliases.

        Unknown or empty values resolve to GENERAL.
        """
        if isinstance(value, cls):
            return value
        if not value:
            return cls.GENERAL
        name = str(value).lower().strip()
        name = CATEGORY_ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            return cls.GENERAL


CATEGORY_ALIASES: dict[str, str] = {
    "user_preference": "preference",
    "learned_fact": "fact",
}
"""Older category names still found in stored rows and model answers."""


class MemorySource(str, Enum):
    """Where a memory came from."""

    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    TWITTER = "twitter"
    STUDY = "study"
    INTERNAL = "internal"


class Memory(BaseModel):
    """A persisted atomic fact.

    Attributes:
        id: Store-assigned identifier.
        content: The fact, as one standalone sentence.
        searchable_text: Text indexed for full-text search.
        category: Kind of fact.
        source: Channel the fact came from.
        access_count: Times the memory was surfaced to a prompt.
        created_at: UTC timestamp of insertion.
    """

    id: int
    content: str
    searchable_text: str
    category: MemoryCategory = MemoryCategory.GENERAL
    source: Optional[MemorySource] = None
    access_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: object) -> MemoryCategory:
        return MemoryCategory.parse(v)  # type: ignore[arg-type]


__all__ = ["Memory", "MemoryCategory", "MemorySource", "CATEGORY_ALIASES", "utc_now"]
