"""Size limits for FinalReport fields and the helpers that enforce them."""

from models.base import Decision
from models.responses import DetailedInsight, FinalReport

MAX_SUMMARY_CHARS = 3000
MAX_INSIGHTS = 12
MAX_INSIGHT_FIELD_CHARS = 300
MAX_CATEGORY_CHARS = 100
MAX_STRENGTHS = 5
MAX_WEAKNESSES = 5
MAX_ITEM_CHARS = 200
MAX_RECOMMENDATIONS = 10
MAX_RECOMMENDATION_CHARS = 300

VALID_DECISIONS: frozenset[str] = frozenset({"accepted", "rejected", "borderline"})


def truncate_list(items: list[str], max_items: int, max_chars: int) -> list[str]:
    return [str(item)[:max_chars] for item in items if item][:max_items]


def bounded_insight(
    category: str,
    type_: str,
    finding: str,
    action_item: str,
    example: str | None = None,
) -> DetailedInsight:
    return DetailedInsight(
        category=(category or "general")[:MAX_CATEGORY_CHARS],
        type=type_ if type_ in ("strength", "weakness") else "weakness",
        finding=finding[:MAX_INSIGHT_FIELD_CHARS],
        example=example[:MAX_INSIGHT_FIELD_CHARS] if example else None,
        action_item=action_item[:MAX_INSIGHT_FIELD_CHARS],
    )


def build_report(
    decision: Decision,
    overall: float,
    dimensions: dict[str, float],
    summary: str,
    detailed_insights: list[DetailedInsight],
    strengths: list[str],
    weaknesses: list[str],
    recommendations: list[str],
    scoring_method: str,
) -> FinalReport:
    """Assemble a FinalReport with every limit applied."""
    return FinalReport(
        decision=decision if decision in VALID_DECISIONS else "borderline",
        overall=max(0, min(100, round(overall))),
        dimensions={k: max(0, min(100, round(v))) for k, v in dimensions.items()},
        summary=summary[:MAX_SUMMARY_CHARS],
        detailed_insights=detailed_insights[:MAX_INSIGHTS],
        strengths=truncate_list(strengths, MAX_STRENGTHS, MAX_ITEM_CHARS),
        weaknesses=truncate_list(weaknesses, MAX_WEAKNESSES, MAX_ITEM_CHARS),
        recommendations=truncate_list(recommendations, MAX_RECOMMENDATIONS, MAX_RECOMMENDATION_CHARS),
        scoring_method=scoring_method,
    )
