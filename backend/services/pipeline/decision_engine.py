"""Final decision engine: prompt choice, LLM ladder and response validation.

Flow:
    route policy (looked up once by the caller)
      ├─ choose_prompt()       → optimized when per-answer scores cover
      │                          most questions, full transcript otherwise
      ├─ ladder.run_ladder()   → FULL_ATTEMPT → RETRY → FALLBACK
      └─ validate_report()     → FinalReport with every limit applied

evaluate_with_llm() never raises for provider or payload problems; it
returns LLMReportOk, LLMParseError or ProviderUnavailable.
"""

import logging

from models.requests import ConversationEntry, StudentProfile
from models.responses import DetailedInsight, FinalReport
from models.schemas.llm_result import LLMOutcome, LLMParseError, LLMReportOk, ProviderUnavailable
from models.schemas.per_answer import PerAnswerScore
from services import llm_provider, prompt_builder
from services.pipeline import ladder, report_limits
from services.score_aggregator import scores_by_question
from services.scoring_policy import DEFAULT_POLICY, RoutePolicy, ScoringPolicy, clamp_score

logger = logging.getLogger(__name__)

FINAL_TEMPERATURE = 0.3
FINAL_MAX_TOKENS = 4000


def score_coverage(history: list[ConversationEntry], scores: list[PerAnswerScore]) -> float:
    if not history:
        return 0.0
    covered = sum(1 for i in scores_by_question(scores) if 0 <= i < len(history))
    return covered / len(history)


def choose_prompt(
    route: RoutePolicy,
    profile: StudentProfile,
    history: list[ConversationEntry],
    scores: list[PerAnswerScore],
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> prompt_builder.PromptPair:
    coverage = score_coverage(history, scores)
    if scores and coverage >= policy.optimized_prompt_coverage:
        prompt = prompt_builder.build_optimized_prompt(route, profile, history, scores)
    else:
        prompt = prompt_builder.build_full_prompt(route, profile, history, scores)
    logger.info(
        "Final prompt: %s (coverage %.0f%%, ~%d tokens)",
        prompt.kind, coverage * 100, prompt.token_estimate,
    )
    return prompt


# ---------------------------------------------------------------------------
# Response validation
# ---------------------------------------------------------------------------

def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if isinstance(v, (str, int, float)) and str(v).strip()]


def _parse_insights(value: object) -> list[DetailedInsight]:
    if not isinstance(value, list):
        return []
    insights: list[DetailedInsight] = []
    for raw in value:
        if not isinstance(raw, dict):
            continue
        example = raw.get("example")
        insights.append(report_limits.bounded_insight(
            category=str(raw.get("category") or "general"),
            type_=str(raw.get("type") or ""),
            finding=str(raw.get("finding") or ""),
            action_item=str(raw.get("actionItem") or raw.get("action_item") or ""),
            example=str(example) if example else None,
        ))
        if len(insights) >= report_limits.MAX_INSIGHTS:
            break
    return insights


def validate_report(data: dict, route: RoutePolicy) -> FinalReport:
    """Coerce a parsed LLM payload into a FinalReport for this route's schema."""
    decision = data.get("decision")
    if decision not in report_limits.VALID_DECISIONS:
        logger.warning("LLM returned invalid decision %r, using borderline", decision)
        decision = "borderline"

    overall_raw = llm_provider.as_number(data.get("overall"))
    overall = clamp_score(overall_raw) if overall_raw is not None else 0

    # Only this route's dimension names; a missing one takes the overall score
    raw_dims = data.get("dimensions") if isinstance(data.get("dimensions"), dict) else {}
    dimensions: dict[str, float] = {}
    for name in route.dimensions:
        value = llm_provider.as_number(raw_dims.get(name))
        dimensions[name] = value if value is not None else overall

    return report_limits.build_report(
        decision=decision,
        overall=overall,
        dimensions=dimensions,
        summary=str(data.get("summary") or ""),
        detailed_insights=_parse_insights(data.get("detailedInsights")),
        strengths=_string_list(data.get("strengths")),
        weaknesses=_string_list(data.get("weaknesses")),
        recommendations=_string_list(data.get("recommendations")),
        scoring_method="llm",
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

async def evaluate_with_llm(
    route: RoutePolicy,
    profile: StudentProfile,
    history: list[ConversationEntry],
    scores: list[PerAnswerScore],
    policy: ScoringPolicy = DEFAULT_POLICY,
    schedule: ladder.LadderSchedule | None = None,
) -> LLMOutcome:
    config = llm_provider.select_provider(route.route, "final_evaluation")
    llm_provider.log_provider_selection(route.route, "final_evaluation", config)
    if config is None:
        return ProviderUnavailable(reason="no LLM provider configured")

    prompt = choose_prompt(route, profile, history, scores, policy)
    result = await ladder.run_ladder(
        config, prompt.system, prompt.user, schedule,
        temperature=FINAL_TEMPERATURE, max_tokens=FINAL_MAX_TOKENS,
    )
    if result.response is None:
        return ProviderUnavailable(reason="; ".join(result.errors) or "LLM call failed")

    if result.response.usage:
        logger.info("Final evaluation used %d tokens", result.response.usage.total_tokens)

    try:
        data = llm_provider.parse_json_object(result.response.content)
        report = validate_report(data, route)
    except Exception as e:
        logger.error("Failed to parse final evaluation response: %s", e)
        return LLMParseError(reason=str(e))

    logger.info("LLM final decision: %s (%d)", report.decision, report.overall)
    return LLMReportOk(report=report)
