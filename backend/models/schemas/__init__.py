"""Contracts passed between the scoring stages."""

from models.schemas.body_language import BodyLanguageScore
from models.schemas.per_answer import (
    AggregateScores,
    CategoryScores,
    PerAnswerScore,
    ScoringAnomaly,
)
from models.schemas.transcript_metrics import TranscriptMetrics

__all__ = [
    "AggregateScores",
    "BodyLanguageScore",
    "CategoryScores",
    "PerAnswerScore",
    "ScoringAnomaly",
    "TranscriptMetrics",
]
