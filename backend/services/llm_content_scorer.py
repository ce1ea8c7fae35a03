"""LLM content scoring for a single answer.

Returns an LLMContentScore or None. Every failure (no provider, timeout,
provider error, malformed JSON) yields None so the heuristic content score
is used unchanged; nothing propagates to the caller.
"""

import json
import logging

from config import settings
from models.requests import InterviewContext
from models.schemas.llm_result import LLMContentScore
from services import llm_provider, prompt_builder
from services.scoring_policy import DEFAULT_POLICY, RoutePolicy, ScoringPolicy, get_route_policy

logger = logging.getLogger(__name__)

# UK rubric split: domain dimensions can legitimately be 0 for factual
# questions ("Which visa centre will you use?") while core dimensions are fine
UK_DOMAIN_DIMENSIONS = ("courseAndUniversityFit", "financialRequirement", "complianceAndIntent")
UK_CORE_DIMENSIONS = ("communication", "relevance", "specificity", "consistency")
UK_CORE_HEALTHY_AVERAGE = 60.0

RECENT_HISTORY = 2
MAX_SUMMARY_CHARS = 600
MAX_LIST_ITEMS = 5


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def _str_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v][:MAX_LIST_ITEMS]


def parse_content_score(data: dict) -> LLMContentScore:
    """Validate the answer-scoring payload. Raises ValueError if unusable."""
    score = llm_provider.as_number(data.get("contentScore"))
    if score is None:
        raise ValueError("contentScore missing or not numeric")

    rubric: dict[str, float] = {}
    raw_rubric = data.get("rubric")
    if isinstance(raw_rubric, dict):
        for key, value in raw_rubric.items():
            num = llm_provider.as_number(value)
            if num is not None:
                rubric[str(key)] = _clamp(num)

    return LLMContentScore(
        content_score=_clamp(score),
        rubric=rubric,
        summary=str(data.get("summary") or "")[:MAX_SUMMARY_CHARS],
        recommendations=_str_list(data.get("recommendations")),
        red_flags=_str_list(data.get("redFlags")),
    )


def correct_content_score(
    result: LLMContentScore,
    answer_words: int,
    route: RoutePolicy,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> float:
    """Apply the zero-dimension correction (UK schema) and the substance floor."""
    score = result.content_score
    rubric = result.rubric

    if route.uses_uk_schema and all(rubric.get(d, -1) == 0 for d in UK_DOMAIN_DIMENSIONS):
        core_avg = sum(rubric.get(d, 0.0) for d in UK_CORE_DIMENSIONS) / len(UK_CORE_DIMENSIONS)
        if core_avg >= UK_CORE_HEALTHY_AVERAGE:
            logger.info("Zero-dimension pattern: content %.0f -> core average %.0f", score, core_avg)
            score = core_avg

    if answer_words > policy.anomaly_min_words and score < policy.anomaly_score_floor:
        score = policy.anomaly_score_floor
    return _clamp(score)


async def score_content(
    question: str,
    answer: str,
    context: InterviewContext,
) -> LLMContentScore | None:
    """Ask the LLM for a content score. None means use the heuristic score."""
    route = get_route_policy(context.route)
    config = llm_provider.select_provider(route.route, "answer_scoring")
    if config is None:
        return None
    llm_provider.log_provider_selection(route.route, "answer_scoring", config)

    system, user = prompt_builder.build_answer_scoring_prompt(
        route, question, answer, context.conversation_history[-RECENT_HISTORY:]
    )
    try:
        response = await llm_provider.call_provider(
            config, system, user, temperature=0.3, max_tokens=1500,
            timeout_s=settings.llm_answer_timeout_s,
        )
        return parse_content_score(llm_provider.parse_json_object(response.content))
    except llm_provider.LLMProviderError as e:
        logger.warning("LLM answer scoring unavailable, using heuristic content score: %s", e)
    except (json.JSONDecodeError, ValueError) as e:
        logger.error("Failed to parse LLM answer score: %s", e)
    return None
