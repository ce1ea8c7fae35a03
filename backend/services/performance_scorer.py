"""Per-answer heuristic scoring.

Combines transcript metrics, the body-language signal and ASR confidence
into content / speech / body category scores and a weighted overall.

    content = 0.6 * accuracy + 0.4 * clarity
    speech  = 0.5 * fluency + 0.3 * clarity + 0.2 * tone
    body    = body_language.overall_score
    overall = policy-weighted sum (default 0.7 / 0.2 / 0.1)

Answers shorter than policy.min_answer_words get content = speech = 0 so
skipping a question can never score well.
"""

import logging
import re

from models.responses import (
    ContentDetails,
    PerformanceDetails,
    PerformanceScoreResult,
    SpeechDetails,
)
from models.schemas.body_language import NEUTRAL_BODY_LANGUAGE, BodyLanguageScore
from models.schemas.per_answer import CategoryScores
from models.schemas.transcript_metrics import TranscriptMetrics
from services.scoring_policy import DEFAULT_POLICY, ScoringPolicy, clamp_score
from services.transcript_analyzer import analyze_transcript, normalize_text

logger = logging.getLogger(__name__)

READABILITY_TARGET = 70.0
IDEAL_SENTENCE_MIN = 10
IDEAL_SENTENCE_MAX = 22
IDEAL_SENTENCE_CENTER = 16
SHORT_ANSWER_WORDS = 20
SHORT_ANSWER_CLARITY_PENALTY = 15
TONE_TARGET = 0.35


def _readability_closeness(metrics: TranscriptMetrics) -> float:
    return 100 - min(100.0, abs(metrics.readability_ease - READABILITY_TARGET))


def _keyword_present(keyword: str, normalized_answer: str) -> bool:
    k = normalize_text(keyword)
    if not k:
        return False
    return re.search(rf"(?<!\S){re.escape(k)}(?!\S)", normalized_answer) is not None


def compute_content_details(
    transcript: str,
    metrics: TranscriptMetrics,
    expected_keywords: list[str] | None = None,
) -> ContentDetails:
    notes: list[str] = []
    missing: list[str] | None = None

    if expected_keywords:
        normalized = normalize_text(transcript)
        missing = [kw for kw in expected_keywords if not _keyword_present(kw, normalized)]
        coverage = (len(expected_keywords) - len(missing)) / len(expected_keywords)
        if coverage < 0.6:
            notes.append("Key points missing; address the main aspects of the question.")
    else:
        # Lower-confidence proxy: longer, less repetitive answers cover more
        coverage = min(1.0, (metrics.words / 120) * (1 - metrics.repeated_bigram_rate)) * 0.8 + 0.1
        notes.append(
            "No target keywords provided; accuracy estimated heuristically from length and repetition."
        )

    if IDEAL_SENTENCE_MIN <= metrics.avg_sentence_length <= IDEAL_SENTENCE_MAX:
        length_band = 100.0
    else:
        length_band = max(0.0, 100 - abs(metrics.avg_sentence_length - IDEAL_SENTENCE_CENTER) * 6)
    clarity = round(0.65 * _readability_closeness(metrics) + 0.35 * length_band)

    if metrics.words < SHORT_ANSWER_WORDS:
        clarity = max(0, clarity - SHORT_ANSWER_CLARITY_PENALTY)
        notes.append("Response is quite short; add more detail to improve clarity and completeness.")

    return ContentDetails(
        accuracy_score=clamp_score(100 * coverage),
        clarity_score=clamp_score(clarity),
        keyword_coverage=coverage,
        expected_keywords=expected_keywords,
        missing_keywords=missing,
        notes=notes,
    )


def compute_speech_details(
    metrics: TranscriptMetrics,
    asr_confidence: float | None = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> SpeechDetails:
    notes: list[str] = []

    filler_penalty = min(60.0, metrics.filler_rate * 600)  # -60 at 10% fillers
    repetition_penalty = min(25.0, metrics.repeated_bigram_rate * 250)
    fluency = max(0.0, 95 - filler_penalty - repetition_penalty)
    if metrics.filler_rate > 0.05:
        notes.append("Reduce filler words (um/uh/like).")
    if metrics.repeated_bigram_rate > 0.05:
        notes.append("Avoid repeating phrases; vary wording.")

    tone_closeness = max(0.0, 1 - abs(metrics.positivity - TONE_TARGET) / 0.5)
    tone = round(60 + 40 * tone_closeness)
    if metrics.positivity < 0.1:
        notes.append("Adopt a slightly more positive, confident tone.")

    conf = policy.default_asr_confidence if asr_confidence is None else max(0.0, min(1.0, asr_confidence))
    clarity = round(0.6 * (conf * 100) + 0.4 * _readability_closeness(metrics))
    if conf < 0.6:
        notes.append("Speak a bit more clearly or reduce background noise (ASR confidence was low).")

    return SpeechDetails(
        fluency_score=clamp_score(fluency),
        tone_score=clamp_score(tone),
        clarity_score=clamp_score(clarity),
        filler_rate=metrics.filler_rate,
        type_token_ratio=metrics.type_token_ratio,
        avg_sentence_length=metrics.avg_sentence_length,
        positivity=metrics.positivity,
        asr_confidence=conf,
        notes=notes,
    )


def body_score(body: BodyLanguageScore | None, policy: ScoringPolicy = DEFAULT_POLICY) -> int:
    if body is None:
        return clamp_score(policy.default_body_score)
    if body.overall_score is None:
        return clamp_score(policy.unset_body_score)
    return clamp_score(body.overall_score)


def combine_overall(content: float, speech: float, body: float, policy: ScoringPolicy = DEFAULT_POLICY) -> int:
    w = policy.weights
    return clamp_score(w.content * content + w.speech * speech + w.body * body)


def score_performance(
    transcript: str | None,
    body: BodyLanguageScore | None = None,
    asr_confidence: float | None = None,
    expected_keywords: list[str] | None = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> PerformanceScoreResult:
    """Score one answer from local signals only. Deterministic."""
    text = transcript or ""
    metrics = analyze_transcript(text)

    content = compute_content_details(text, metrics, expected_keywords)
    speech = compute_speech_details(metrics, asr_confidence, policy)

    content_score = clamp_score(0.6 * content.accuracy_score + 0.4 * content.clarity_score)
    speech_score = clamp_score(
        0.5 * speech.fluency_score + 0.3 * speech.clarity_score + 0.2 * speech.tone_score
    )
    body_value = body_score(body, policy)

    if metrics.words < policy.min_answer_words:
        logger.debug("Answer has %d words; zeroing content and speech", metrics.words)
        content_score = 0
        speech_score = 0
        content.notes.append(
            f"Answer has fewer than {policy.min_answer_words} words; content and speech were not scored."
        )

    return PerformanceScoreResult(
        categories=CategoryScores(content=content_score, speech=speech_score, body_language=body_value),
        overall=combine_overall(content_score, speech_score, body_value, policy),
        details=PerformanceDetails(
            content=content,
            speech=speech,
            body_language=body if body is not None else NEUTRAL_BODY_LANGUAGE,
            transcript_metrics=metrics,
        ),
    )
