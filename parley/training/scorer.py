"""Heuristic quality score for training entries.

Scores run from 0.1 to 1.0 and start at 0.5:

    output under 20 chars          -> 0.1 flat
    output under 50 chars          -> -0.2
    output 200+ chars              -> +0.1  (500+ chars: +0.2)
    conversation of 3+ turns       -> +0.1  (6+ turns: +0.2)
    tweet write with engagement    -> up to +0.3, logarithmic
    study / code analysis / opinion -> +0.1
"""

from __future__ import annotations

import math

from parley.training.schemas import HIGH_VALUE_TYPES, TrainingDataType, TrainingEntry

MIN_SCORE = 0.1
MAX_SCORE = 1.0


def _engagement_bonus(entry: TrainingEntry) -> float:
    engagement = entry.metadata.tweet_engagement
    if engagement is None:
        return 0.0
    total = engagement.likes + engagement.retweets * 2 + engagement.replies * 1.5
    if total <= 0:
        return 0.0
    return min(0.3, math.log10(total + 1) * 0.15)


def compute_quality_score(entry: TrainingEntry) -> float:
    """Score ``entry`` between 0.1 and 1.0, rounded to two decimals."""
    output_length = len(entry.output.strip())
    if output_length < 20:
        return MIN_SCORE

    score = 0.5

    if output_length < 50:
        score -= 0.2
    elif output_length >= 500:
        score += 0.2
    elif output_length >= 200:
        score += 0.1

    turns = entry.context.conversation_length
    if turns >= 6:
        score += 0.2
    elif turns >= 3:
        score += 0.1

    if entry.type is TrainingDataType.TWEET_WRITE:
        score += _engagement_bonus(entry)

    if entry.type in HIGH_VALUE_TYPES:
        score += 0.1

    return max(MIN_SCORE, min(MAX_SCORE, round(score, 2)))


__all__ = ["compute_quality_score", "MIN_SCORE", "MAX_SCORE"]
