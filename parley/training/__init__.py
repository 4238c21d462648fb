"""Training-data collection: entry schemas, quality scoring, JSONL collector."""

from parley.training.collector import JsonlTrainingCollector, TrainingDataCollector, build_entry
from parley.training.schemas import (
    ScoredTrainingEntry,
    TrainingContext,
    TrainingDataSource,
    TrainingDataType,
    TrainingEntry,
    TrainingMetadata,
    TweetEngagement,
)
from parley.training.scorer import compute_quality_score

__all__ = [
    "TrainingDataCollector",
    "JsonlTrainingCollector",
    "build_entry",
    "TrainingEntry",
    "ScoredTrainingEntry",
    "TrainingContext",
    "TrainingMetadata",
    "TrainingDataType",
    "TrainingDataSource",
    "TweetEngagement",
    "compute_quality_score",
]
