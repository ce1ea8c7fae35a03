"""Per-answer scores and the aggregate computed over a whole session."""

from typing import Literal

from pydantic import ConfigDict

from models.base import CamelModel


class CategoryScores(CamelModel):
    model_config = ConfigDict(frozen=True)

    content: float = 0.0  # 0-100
    speech: float = 0.0  # 0-100
    body_language: float = 0.0  # 0-100


class PerAnswerScore(CamelModel):
    """Score for one question/answer pair. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    overall: float = 0.0  # 0-100
    categories: CategoryScores = CategoryScores()
    # 0-based question this score belongs to; list position when unset
    question_index: int | None = None


AnomalyType = Literal["insufficient_response", "low_score_with_substance"]


class ScoringAnomaly(CamelModel):
    question_index: int
    score: float
    word_count: int
    anomaly_type: AnomalyType
    corrected_score: float


class AggregateScores(CamelModel):
    """Running means plus participation and anomaly signals."""

    count: int = 0
    mean_overall: float = 0.0
    mean_content: float = 0.0
    mean_speech: float = 0.0
    mean_body: float = 0.0

    # overall <= insufficient_score, regardless of transcript length
    insufficient_count: int = 0
    # subset of insufficient answers that also had too few words
    silent_count: int = 0
    insufficient_flagged: bool = False

    anomalies: list[ScoringAnomaly] = []

    @property
    def substance_anomalies(self) -> list[ScoringAnomaly]:
        return [a for a in self.anomalies if a.anomaly_type == "low_score_with_substance"]
