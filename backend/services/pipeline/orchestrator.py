"""Final evaluation orchestrator.

Flow:
    profile + history (+ per-answer scores)
      ├─ validate input                  → InvalidEvaluationInput (400)
      ├─ get_route_policy(route)         → schema + thresholds, once
      ├─ decision_engine.evaluate_with_llm()
      │       LLMReportOk                → report
      │       LLMParseError / ProviderUnavailable
      │               ↓
      └─ heuristic_fallback.evaluate_heuristically()
                      ↓
         FinalReport

Anything unexpected past input validation becomes the technical-error
report, so callers always receive a usable result.
"""

import logging
from typing import Any

from pydantic import ValidationError

from models.requests import ConversationEntry, StudentProfile
from models.responses import FinalReport
from models.schemas.llm_result import LLMReportOk
from models.schemas.per_answer import PerAnswerScore
from services.pipeline import decision_engine, heuristic_fallback
from services.pipeline.ladder import LadderSchedule
from services.scoring_policy import DEFAULT_POLICY, ScoringPolicy, get_route_policy
from services.session_scores import SessionScoreBook

logger = logging.getLogger(__name__)


class InvalidEvaluationInput(ValueError):
    """Structurally invalid finalize() input. The only caller-visible error."""


def _coerce_inputs(
    student_profile: Any,
    conversation_history: Any,
    per_answer_scores: Any,
) -> tuple[StudentProfile, list[ConversationEntry], list[PerAnswerScore]]:
    if student_profile is None:
        raise InvalidEvaluationInput("Missing studentProfile")
    if not isinstance(conversation_history, list):
        raise InvalidEvaluationInput("conversationHistory must be a list")
    if per_answer_scores is not None and not isinstance(per_answer_scores, list):
        raise InvalidEvaluationInput("perAnswerScores must be a list")

    try:
        profile = StudentProfile.model_validate(student_profile)
        history = [ConversationEntry.model_validate(h) for h in conversation_history]
        scores = [PerAnswerScore.model_validate(s) for s in per_answer_scores or []]
    except ValidationError as e:
        raise InvalidEvaluationInput(str(e)) from e
    return profile, history, scores


async def finalize(
    route: str | None,
    student_profile: StudentProfile | dict | None,
    conversation_history: list | None,
    per_answer_scores: list | None = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
    schedule: LadderSchedule | None = None,
) -> FinalReport:
    """Produce the final interview report. Raises only InvalidEvaluationInput."""
    profile, history, scores = _coerce_inputs(student_profile, conversation_history, per_answer_scores)
    route_policy = get_route_policy(route)

    logger.info(
        "Final evaluation: route=%s answers=%d per_answer_scores=%d",
        route_policy.route, len(history), len(scores),
    )

    try:
        outcome = await decision_engine.evaluate_with_llm(
            route_policy, profile, history, scores, policy, schedule
        )
        if isinstance(outcome, LLMReportOk):
            return outcome.report

        logger.warning("LLM final evaluation unavailable (%s): %s", outcome.kind, outcome.reason)
        return heuristic_fallback.evaluate_heuristically(
            route_policy, history, scores, policy, reason=outcome.reason or outcome.kind
        )
    except Exception:
        logger.exception("Final evaluation failed, returning technical-error report")
        return heuristic_fallback.technical_error_report(route_policy)


async def finalize_session(
    book: SessionScoreBook,
    route: str | None,
    student_profile: StudentProfile | dict | None,
    conversation_history: list | None,
    policy: ScoringPolicy = DEFAULT_POLICY,
    schedule: LadderSchedule | None = None,
) -> FinalReport:
    """Settle background scoring for the session, then finalize."""
    scores = await book.settle()
    return await finalize(route, student_profile, conversation_history, scores, policy, schedule)
