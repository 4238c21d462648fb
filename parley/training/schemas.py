"""Training-data schemas.

Every answered exchange can be kept as a TrainingEntry for later curation.
Entries carry the routing metadata that produced the answer and the
conversation context around it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TrainingDataType(str, Enum):
    CONVERSATION = "conversation"
    TWEET_READ = "tweet_read"
    TWEET_WRITE = "tweet_write"
    STUDY = "study"
    CODE_ANALYSIS = "code_analysis"
    OPINION = "opinion"
    ANALYTICS = "analytics"


HIGH_VALUE_TYPES = frozenset(
    {TrainingDataType.STUDY, TrainingDataType.CODE_ANALYSIS, TrainingDataType.OPINION}
)


class TrainingDataSource(str, Enum):
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    TWITTER = "twitter"
    INTERNAL = "internal"


class TweetEngagement(BaseModel):
    likes: int = Field(default=0, ge=0)
    retweets: int = Field(default=0, ge=0)
    replies: int = Field(default=0, ge=0)


class TrainingMetadata(BaseModel):
    """How the output was produced. Unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    backend: Optional[str] = None
    model: Optional[str] = None
    latency_ms: Optional[int] = None
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    tier: Optional[str] = None
    fallback_used: Optional[bool] = None
    tweet_engagement: Optional[TweetEngagement] = None


class TrainingContext(BaseModel):
    """Conversation context around an exchange. Unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    channel: Optional[str] = None
    user_role: Optional[str] = None
    topic: Optional[str] = None
    memories_used: list[str] = Field(default_factory=list)
    conversation_length: int = Field(default=0, ge=0)


class TrainingEntry(BaseModel):
    """One input/output pair worth keeping.

    Attributes:
        type: Kind of exchange.
        input: What the agent was asked.
        output: What the agent answered.
        source: Channel the exchange came from.
        context: Conversation context.
        metadata: Routing metadata.
    """

    type: TrainingDataType = TrainingDataType.CONVERSATION
    input: str
    output: str
    source: TrainingDataSource = TrainingDataSource.INTERNAL
    context: TrainingContext = Field(default_factory=TrainingContext)
    metadata: TrainingMetadata = Field(default_factory=TrainingMetadata)


class ScoredTrainingEntry(TrainingEntry):
    quality_score: float = Field(ge=0.1, le=1.0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


__all__ = [
    "TrainingDataType",
    "TrainingDataSource",
    "TweetEngagement",
    "TrainingMetadata",
    "TrainingContext",
    "TrainingEntry",
    "ScoredTrainingEntry",
    "HIGH_VALUE_TYPES",
]
