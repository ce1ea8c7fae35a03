"""Session-level aggregation of per-answer scores.

Two distinct signals come out of the scan, and narrative code must keep
them apart:

- insufficient: overall <= policy.insufficient_score. Flagged for the
  session when there are >= insufficient_min_count of them or they make up
  >= insufficient_min_ratio of all answers. Only the subset with too few
  words (silent) may be described as "no answer".
- low_score_with_substance: overall < anomaly_score_threshold while the
  transcript has more than anomaly_min_words words. Likely a scoring error,
  never a missing response.
"""

import logging

import numpy as np

from models.schemas.per_answer import AggregateScores, PerAnswerScore, ScoringAnomaly
from services.scoring_policy import DEFAULT_POLICY, ScoringPolicy
from services.transcript_analyzer import word_count

logger = logging.getLogger(__name__)


def scores_by_question(scores: list[PerAnswerScore]) -> dict[int, PerAnswerScore]:
    """Key scores by question index, falling back to list position."""
    return {
        s.question_index if s.question_index is not None else pos: s
        for pos, s in enumerate(scores)
    }


def _answer_words(answers: list[str], index: int) -> int:
    return word_count(answers[index]) if 0 <= index < len(answers) else 0


def detect_anomalies(
    scores: list[PerAnswerScore],
    answers: list[str],
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> list[ScoringAnomaly]:
    """At most one anomaly per answer, in question order."""
    anomalies: list[ScoringAnomaly] = []
    for i, score in sorted(scores_by_question(scores).items()):
        words = _answer_words(answers, i)
        if words > policy.anomaly_min_words and score.overall < policy.anomaly_score_threshold:
            anomalies.append(ScoringAnomaly(
                question_index=i,
                score=score.overall,
                word_count=words,
                anomaly_type="low_score_with_substance",
                corrected_score=max(score.overall, policy.anomaly_score_floor),
            ))
        elif score.overall <= policy.insufficient_score:
            anomalies.append(ScoringAnomaly(
                question_index=i,
                score=score.overall,
                word_count=words,
                anomaly_type="insufficient_response",
                corrected_score=score.overall,
            ))
    return anomalies


def aggregate(
    scores: list[PerAnswerScore],
    answers: list[str] | None = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> AggregateScores:
    """Arithmetic means over the full list plus participation flags."""
    if not scores:
        return AggregateScores()

    answer_texts = answers or []
    overall = np.array([s.overall for s in scores], dtype=float)
    content = np.array([s.categories.content for s in scores], dtype=float)
    speech = np.array([s.categories.speech for s in scores], dtype=float)
    body = np.array([s.categories.body_language for s in scores], dtype=float)

    indexed = scores_by_question(scores)
    insufficient = [i for i, s in indexed.items() if s.overall <= policy.insufficient_score]
    silent = [i for i in insufficient if _answer_words(answer_texts, i) <= policy.anomaly_min_words]
    n = len(scores)
    flagged = (
        len(insufficient) >= policy.insufficient_min_count
        or len(insufficient) / n >= policy.insufficient_min_ratio
    )

    result = AggregateScores(
        count=n,
        mean_overall=float(np.mean(overall)),
        mean_content=float(np.mean(content)),
        mean_speech=float(np.mean(speech)),
        mean_body=float(np.mean(body)),
        insufficient_count=len(insufficient),
        silent_count=len(silent),
        insufficient_flagged=flagged,
        anomalies=detect_anomalies(scores, answer_texts, policy),
    )
    logger.info(
        "Aggregated %d answers: mean=%.1f insufficient=%d silent=%d anomalies=%d",
        n, result.mean_overall, result.insufficient_count, result.silent_count, len(result.anomalies),
    )
    return result
