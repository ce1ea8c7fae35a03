"""Answer scoring: heuristic baseline plus optional LLM content score.

Flow:
1. score_performance() on the transcript, body signal and ASR confidence
2. LLM content score (optional; None on any failure)
3. Combine: content from the LLM when available, speech/body from the
   heuristic, overall re-weighted with the policy weights
"""

import logging

from models.requests import InterviewContext
from models.responses import ScoreAnswerResponse, ScoreDiagnostics
from models.schemas.body_language import BodyLanguageScore
from models.schemas.per_answer import CategoryScores, PerAnswerScore
from services import llm_content_scorer
from services.performance_scorer import combine_overall, score_performance
from services.scoring_policy import DEFAULT_POLICY, ScoringPolicy, clamp_score, get_route_policy

logger = logging.getLogger(__name__)

DEFAULT_RECOMMENDATIONS = [
    "Address all parts of the question directly.",
    "Add specific numbers, names, and evidence.",
    "Reduce filler words and maintain a steady pace.",
]


async def score_answer(
    question: str,
    answer: str,
    body_language: BodyLanguageScore | None = None,
    asr_confidence: float | None = None,
    expected_keywords: list[str] | None = None,
    context: InterviewContext | None = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
    use_llm: bool = True,
) -> ScoreAnswerResponse:
    """Score one answer. Never raises for LLM problems."""
    ctx = context or InterviewContext()
    perf = score_performance(answer, body_language, asr_confidence, expected_keywords, policy)
    metrics = perf.details.transcript_metrics

    llm_result = None
    if use_llm:
        llm_result = await llm_content_scorer.score_content(question, answer, ctx)

    content = perf.categories.content
    if llm_result is not None:
        content = llm_content_scorer.correct_content_score(
            llm_result, metrics.words, get_route_policy(ctx.route), policy
        )
    if metrics.words < policy.min_answer_words:
        content = 0

    speech = perf.categories.speech
    body = perf.categories.body_language
    categories = CategoryScores(content=clamp_score(content), speech=speech, body_language=body)
    overall = combine_overall(categories.content, speech, body, policy)

    if llm_result is not None:
        rubric = llm_result.rubric
        summary = llm_result.summary
        recommendations = llm_result.recommendations or DEFAULT_RECOMMENDATIONS
        red_flags = llm_result.red_flags
    else:
        rubric = {
            "communication": perf.details.speech.clarity_score,
            "relevance": 60,
            "specificity": 50,
            "consistency": 65,
        }
        notes = perf.details.content.notes + perf.details.speech.notes
        summary = " ".join(notes) or "Good effort. Improve structure, reduce fillers, and add concrete details."
        recommendations = DEFAULT_RECOMMENDATIONS
        red_flags = []

    logger.info(
        "Answer scored: overall=%d content=%d speech=%d body=%d words=%d llm=%s",
        overall, categories.content, speech, body, metrics.words, llm_result is not None,
    )

    w = policy.weights
    return ScoreAnswerResponse(
        overall=overall,
        categories=categories,
        content_score=round(categories.content),
        speech_score=round(speech),
        body_score=round(body),
        weights={"content": w.content, "speech": w.speech, "bodyLanguage": w.body},
        rubric=rubric,
        summary=summary,
        recommendations=recommendations,
        red_flags=red_flags,
        diagnostics=ScoreDiagnostics(heuristic=perf, used_llm=llm_result is not None),
    )


def to_per_answer_score(scored: ScoreAnswerResponse) -> PerAnswerScore:
    return PerAnswerScore(overall=scored.overall, categories=scored.categories)
