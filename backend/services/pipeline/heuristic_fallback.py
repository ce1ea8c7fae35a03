"""Deterministic heuristic fallback for the final decision.

Used whenever the LLM path produced no report. Makes no external calls
and always returns a complete FinalReport.

Two sub-paths:
    scores available   → dimensions from aggregate category means
    no scores          → regex signals over the raw transcript text,
                         each mapped to a detailed / generic / absent credit

Both share decide(), which applies the route thresholds and, where the
route enforces it, the minimum-dimension floor.
"""

import logging
import re

from models.requests import ConversationEntry
from models.responses import DetailedInsight, FinalReport
from models.schemas.per_answer import AggregateScores, PerAnswerScore
from services.pipeline import report_limits
from services.score_aggregator import aggregate
from services.scoring_policy import DEFAULT_POLICY, RoutePolicy, ScoringPolicy, clamp_score
from services.transcript_analyzer import split_words

logger = logging.getLogger(__name__)

TECHNICAL_ERROR_SCORE = 60
FULLER_ANSWER_WORDS = 30


def decide(
    overall: float,
    floor_values: list[float],
    route: RoutePolicy,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> str:
    """Route thresholds plus the minimum-dimension floor where it applies.

    With the floor, any value below floor_reject rejects regardless of the
    overall score, and acceptance also needs every value >= floor_accept.
    """
    floor = route.enforce_dimension_floor and bool(floor_values)
    lowest = min(floor_values) if floor else 100.0

    if floor and lowest < policy.floor_reject:
        return "rejected"
    if overall < route.borderline_floor:
        return "rejected"
    if overall >= route.accept_threshold and lowest >= policy.floor_accept:
        return "accepted"
    return "borderline"


# ---------------------------------------------------------------------------
# Scored path
# ---------------------------------------------------------------------------

def _score_dimensions(agg: AggregateScores, route: RoutePolicy) -> dict[str, float]:
    communication = agg.mean_speech
    content = agg.mean_content
    if route.uses_uk_schema:
        return {
            "communication": communication,
            "courseAndUniversityFit": content,
            "financialRequirement": content,
            "accommodationLogistics": content,
            "complianceCredibility": content,
            "postStudyIntent": content,
        }
    return {"communication": communication, "content": content, "financials": content, "intent": content}


def _category_findings(
    agg: AggregateScores,
    policy: ScoringPolicy,
) -> tuple[list[str], list[str], list[DetailedInsight]]:
    strengths: list[str] = []
    weaknesses: list[str] = []
    insights: list[DetailedInsight] = []

    # (category, mean, strength band, weakness band, strength text, weakness text, action)
    checks = [
        (
            "content", agg.mean_content, policy.strength_band, policy.weakness_band,
            "Answers were specific and relevant",
            "Answers lacked specific details",
            "Prepare concrete figures, names and examples for each topic",
        ),
        (
            "speech", agg.mean_speech, policy.strength_band, policy.weakness_band,
            "Clear and fluent delivery",
            "Delivery was hesitant or unclear",
            "Practise answering aloud and cut filler words",
        ),
        (
            "bodyLanguage", agg.mean_body, policy.body_strength_band, policy.body_weakness_band,
            "Confident body language",
            "Body language reduced credibility",
            "Keep eye contact, sit upright and use open gestures",
        ),
    ]
    for category, mean, strong, weak, good, bad, action in checks:
        if mean >= strong:
            strengths.append(f"{good} ({mean:.0f}/100)")
            insights.append(report_limits.bounded_insight(
                category, "strength", f"{good}, averaging {mean:.0f}/100.", "Keep this up in the real interview",
            ))
        elif mean < weak:
            weaknesses.append(f"{bad} ({mean:.0f}/100)")
            insights.append(report_limits.bounded_insight(
                category, "weakness", f"{bad}, averaging {mean:.0f}/100.", action,
            ))
    return strengths, weaknesses, insights


def _participation_findings(agg: AggregateScores) -> tuple[list[str], list[DetailedInsight]]:
    """Narrative for insufficient answers and scoring anomalies.

    Only silent answers (too few words) may be called missing. Low scores on
    substantive answers are reported as possible scoring errors.
    """
    weaknesses: list[str] = []
    insights: list[DetailedInsight] = []

    if agg.insufficient_flagged:
        finding = f"{agg.insufficient_count} of {agg.count} answers scored 10 or below."
        if agg.silent_count:
            finding += f" {agg.silent_count} of them were silent or too brief to assess."
            weaknesses.append(f"Inadequate participation: {agg.silent_count} of {agg.count} answers were silent or too brief")
            action = "Answer every question fully, with at least two or three complete sentences"
        else:
            weaknesses.append(f"{agg.insufficient_count} of {agg.count} answers scored very low")
            action = "Review the low-scoring answers and strengthen their content"
        insights.append(report_limits.bounded_insight("participation", "weakness", finding, action))

    substance = agg.substance_anomalies
    if substance:
        questions = ", ".join(f"Q{a.question_index + 1}" for a in substance)
        insights.append(report_limits.bounded_insight(
            "scoring",
            "weakness",
            f"{questions} scored low despite substantive answers; these scores may not reflect the response.",
            "Review these answers manually before relying on the overall score",
        ))
    return weaknesses, insights


def _score_recommendations(agg: AggregateScores, policy: ScoringPolicy) -> list[str]:
    recs: list[str] = []
    if agg.mean_content < policy.recommendation_band:
        recs.append("Improve answer content: add specific details, numbers, and concrete examples")
    if agg.mean_speech < policy.recommendation_band:
        recs.append("Improve speech delivery: reduce filler words, speak more clearly")
    if agg.mean_body < policy.body_weakness_band:
        recs.append("Improve body language: maintain eye contact, sit upright, use open gestures")
    if agg.insufficient_flagged and agg.silent_count:
        recs.append("Respond to every question; skipped or one-line answers are treated as refusals")
    return recs


def evaluate_from_scores(
    route: RoutePolicy,
    history: list[ConversationEntry],
    scores: list[PerAnswerScore],
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> FinalReport:
    agg = aggregate(scores, [h.answer for h in history], policy)
    dimensions = _score_dimensions(agg, route)
    floor_values = [agg.mean_content, agg.mean_speech, agg.mean_body]
    decision = decide(agg.mean_overall, floor_values, route, policy)

    strengths, weaknesses, insights = _category_findings(agg, policy)
    participation_weaknesses, participation_insights = _participation_findings(agg)
    weaknesses = participation_weaknesses + weaknesses
    insights = participation_insights + insights

    if decision == "accepted":
        verdict = "Strong performance across content, speech, and body language."
    elif decision == "rejected":
        verdict = "Significant weaknesses detected in answer quality and delivery."
    else:
        verdict = "Mixed performance with room for improvement."
    summary = (
        f"Based on per-answer analysis: average score {agg.mean_overall:.0f}/100 across "
        f"{agg.count} questions (content {agg.mean_content:.0f}, speech {agg.mean_speech:.0f}, "
        f"body language {agg.mean_body:.0f}). {verdict}"
    )
    if route.enforce_dimension_floor and min(floor_values) < policy.floor_reject:
        summary += f" At least one category fell below {policy.floor_reject:.0f}, which outweighs the average."

    return report_limits.build_report(
        decision=decision,
        overall=agg.mean_overall,
        dimensions=dimensions,
        summary=summary,
        detailed_insights=insights,
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=_score_recommendations(agg, policy),
        scoring_method="heuristic_scores",
    )


# ---------------------------------------------------------------------------
# Keyword path
# ---------------------------------------------------------------------------

_28_DAY_RE = re.compile(r"28[-\s]?day", re.IGNORECASE)
_GBP_AMOUNT_RE = re.compile(r"(?:£|pounds?|gbp)\s*1[5-9],?\d{3}|£\s*2[0-5],?\d{3}", re.IGNORECASE)
_EUR_AMOUNT_RE = re.compile(r"(?:€|euros?|eur)\s*\d{1,3},?\d{3}|\d{1,3},?\d{3}\s*(?:€|euros?)", re.IGNORECASE)
_USD_AMOUNT_RE = re.compile(r"(?:\$|usd|dollars?)\s*\d{1,3},?\d{3}|\d{1,3},?\d{3}\s*(?:dollars|usd)", re.IGNORECASE)
_MODULE_RE = re.compile(
    r"(?:module|course|subject|unit).*?(?:analytics|management|engineering|computing|finance|marketing)",
    re.IGNORECASE,
)
_UK_WORK_LIMIT_RE = re.compile(r"20\s*hours?|part[-\s]?time\s*work", re.IGNORECASE)
_FR_WORK_LIMIT_RE = re.compile(r"964\s*hours?|20\s*hours?|part[-\s]?time\s*work", re.IGNORECASE)
_ACCOMMODATION_DETAIL_RE = re.compile(
    r"(?:accommodation|housing|halls?|dorm|flat|room|apartment).*?"
    r"(?:£|€|\$|pounds?|euros?|\d+\s*(?:per|/)\s*(?:week|month))",
    re.IGNORECASE,
)

_FINANCE_RE = re.compile(r"fund|financ|bank|maintenance|proof|statement|tuition|fees|sponsor", re.IGNORECASE)
_COURSE_RE = re.compile(r"course|module|university|ranking|curriculum|faculty|program", re.IGNORECASE)
_ACCOMMODATION_RE = re.compile(r"accommodation|rent|housing|dorm|hostel|flat|room|living", re.IGNORECASE)
_COMPLIANCE_RE = re.compile(r"\bcas\b|ukvi|campus france|visa|rules|work|hours", re.IGNORECASE)
_INTENT_RE = re.compile(r"return|plans after|post-study|career|job|graduate route", re.IGNORECASE)

_SPONSOR_DETAIL_RE = re.compile(r"\b(?:father|mother|parents?|uncle|sponsor)\b.*?\b(?:income|salary|business|works?|earns?)\b", re.IGNORECASE)
_PROGRAM_DETAIL_RE = re.compile(r"curriculum|professor|research|lab(?:oratory)?|faculty|specializ", re.IGNORECASE)
_RETURN_DETAIL_RE = re.compile(r"\breturn\b.*?\b(?:job|company|business|position|offer|family)\b", re.IGNORECASE)


class KeywordSignals:
    """Which disclosures appear anywhere in the transcript."""

    def __init__(self, history: list[ConversationEntry], route: RoutePolicy) -> None:
        answers = [h.answer or "" for h in history]
        text = " ".join(answers)
        words = split_words(text)
        self.answer_count = len(answers)
        self.avg_len = len(words) / len(answers) if answers else 0.0

        self.has_28_day_rule = bool(_28_DAY_RE.search(text))
        if route.currency == "€":
            self.has_amount = bool(_EUR_AMOUNT_RE.search(text))
            self.has_work_limit = bool(_FR_WORK_LIMIT_RE.search(text))
        elif route.currency == "$":
            self.has_amount = bool(_USD_AMOUNT_RE.search(text))
            self.has_work_limit = bool(_UK_WORK_LIMIT_RE.search(text))
        else:
            self.has_amount = bool(_GBP_AMOUNT_RE.search(text))
            self.has_work_limit = bool(_UK_WORK_LIMIT_RE.search(text))
        self.has_modules = bool(_MODULE_RE.search(text))
        self.has_accommodation_detail = bool(_ACCOMMODATION_DETAIL_RE.search(text))

        self.has_finance = bool(_FINANCE_RE.search(text))
        self.has_course = bool(_COURSE_RE.search(text))
        self.has_accommodation = bool(_ACCOMMODATION_RE.search(text))
        self.has_compliance = bool(_COMPLIANCE_RE.search(text))
        self.has_intent = bool(_INTENT_RE.search(text))

        self.has_sponsor_detail = bool(_SPONSOR_DETAIL_RE.search(text))
        self.has_program_detail = bool(_PROGRAM_DETAIL_RE.search(text))
        self.has_return_detail = bool(_RETURN_DETAIL_RE.search(text))


def _tier(detailed: bool, generic: bool, credits: tuple[float, float, float]) -> float:
    if detailed:
        return credits[0]
    if generic:
        return credits[1]
    return credits[2]


def _communication_score(avg_len: float) -> float:
    """Longer answers read as more coherent, up to a cap."""
    return clamp_score(35 + min(60.0, (avg_len / 45) * 60))


# Weighted sums over each dimension schema
UK_KEYWORD_WEIGHTS = {
    "communication": 0.2,
    "courseAndUniversityFit": 0.2,
    "financialRequirement": 0.25,
    "accommodationLogistics": 0.15,
    "complianceCredibility": 0.1,
    "postStudyIntent": 0.1,
}
USA_KEYWORD_WEIGHTS = {"communication": 0.4, "content": 0.3, "financials": 0.2, "intent": 0.1}


def _keyword_dimensions(signals: KeywordSignals, route: RoutePolicy) -> dict[str, float]:
    communication = _communication_score(signals.avg_len)
    if route.uses_uk_schema:
        # France has no 28-day rule; a specific euro amount is the detailed signal
        funds_detailed = signals.has_amount and (signals.has_28_day_rule or route.currency == "€")
        return {
            "communication": communication,
            "courseAndUniversityFit": _tier(signals.has_modules, signals.has_course, (72, 55, 40)),
            "financialRequirement": _tier(funds_detailed, signals.has_finance, (75, 55, 35)),
            "accommodationLogistics": _tier(signals.has_accommodation_detail, signals.has_accommodation, (68, 50, 35)),
            "complianceCredibility": _tier(signals.has_work_limit, signals.has_compliance, (70, 55, 40)),
            "postStudyIntent": _tier(False, signals.has_intent, (62, 62, 45)),
        }
    return {
        "communication": communication,
        "content": _tier(signals.has_program_detail, signals.has_course, (72, 65, 55)),
        "financials": _tier(signals.has_amount and signals.has_sponsor_detail, signals.has_finance, (78, 70, 50)),
        "intent": _tier(signals.has_return_detail, signals.has_intent, (72, 65, 50)),
    }


def _keyword_recommendations(signals: KeywordSignals, route: RoutePolicy) -> list[str]:
    recs: list[str] = []
    if route.route == "uk_student":
        if not signals.has_28_day_rule or not signals.has_amount:
            recs.append("State exact maintenance amount (£18,000+ for London) and mention 28-day bank balance rule explicitly.")
        if not signals.has_modules:
            recs.append("Name at least 3 specific modules from your course syllabus (not generic categories).")
        if not signals.has_accommodation_detail:
            recs.append("Provide specific accommodation plan: location, cost per week/month, pre-booked or planned.")
        if not signals.has_work_limit:
            recs.append("Demonstrate understanding of 20 hours/week work limit during term time.")
        if not signals.has_intent:
            recs.append("Clearly state post-study plans (return home or Graduate Route) with specifics.")
    elif route.uses_uk_schema:
        if not signals.has_amount:
            recs.append("State your funding in exact euro amounts, including tuition and monthly living costs.")
        if not signals.has_modules:
            recs.append("Name specific modules from your programme and explain how they fit your background.")
        if not signals.has_accommodation_detail:
            recs.append("Describe your accommodation in France: city, type of housing and monthly rent.")
        if not signals.has_work_limit:
            recs.append("Show you know the student work limit (964 hours per year).")
        if not signals.has_intent:
            recs.append("Explain your post-study plans and ties to your home country.")
    else:
        if not signals.has_finance or not signals.has_amount:
            recs.append("Explain who funds your studies with specific amounts, sponsor occupation and income.")
        if not signals.has_course or not signals.has_program_detail:
            recs.append("Link your chosen program and university to your background and career goals with specifics.")
        if not signals.has_intent or not signals.has_return_detail:
            recs.append("State clear plans to return home, with a concrete job or family tie.")
        if not signals.has_compliance:
            recs.append("Show you understand F1 rules on on-campus work and maintaining status.")
    if signals.avg_len < FULLER_ANSWER_WORDS:
        recs.append("Give fuller, structured answers with concrete numbers and examples.")
    return recs


def _keyword_findings(dimensions: dict[str, float]) -> tuple[list[str], list[str], list[DetailedInsight]]:
    strengths: list[str] = []
    weaknesses: list[str] = []
    insights: list[DetailedInsight] = []
    for name, value in dimensions.items():
        if value >= 65:
            strengths.append(f"Covered {name} with specific details ({value:.0f}/100)")
            insights.append(report_limits.bounded_insight(
                name, "strength", f"Answers addressed {name} with concrete detail.", "Keep these details consistent",
            ))
        elif value < 50:
            weaknesses.append(f"Little or no evidence for {name} ({value:.0f}/100)")
            insights.append(report_limits.bounded_insight(
                name, "weakness", f"Answers gave little evidence for {name}.", f"Prepare specific points on {name}",
            ))
    return strengths, weaknesses, insights


def evaluate_from_keywords(
    route: RoutePolicy,
    history: list[ConversationEntry],
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> FinalReport:
    signals = KeywordSignals(history, route)
    dimensions = _keyword_dimensions(signals, route)
    weights = UK_KEYWORD_WEIGHTS if route.uses_uk_schema else USA_KEYWORD_WEIGHTS
    overall = clamp_score(sum(weights[name] * value for name, value in dimensions.items()))
    decision = decide(overall, list(dimensions.values()), route, policy)

    strengths, weaknesses, insights = _keyword_findings(dimensions)
    summary = (
        f"Heuristic assessment from topic coverage across {signals.answer_count} answers "
        f"(average {signals.avg_len:.0f} words per answer): overall {overall}/100."
    )
    return report_limits.build_report(
        decision=decision,
        overall=overall,
        dimensions=dimensions,
        summary=summary,
        detailed_insights=insights,
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=_keyword_recommendations(signals, route),
        scoring_method="heuristic_keywords",
    )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def evaluate_heuristically(
    route: RoutePolicy,
    history: list[ConversationEntry],
    scores: list[PerAnswerScore] | None = None,
    policy: ScoringPolicy = DEFAULT_POLICY,
    reason: str | None = None,
) -> FinalReport:
    """Fallback report. `reason` is set when the AI evaluation was unavailable."""
    if scores:
        logger.info("Heuristic fallback from %d per-answer scores", len(scores))
        report = evaluate_from_scores(route, history, scores, policy)
    else:
        logger.warning("No per-answer scores available, using keyword heuristics")
        report = evaluate_from_keywords(route, history, policy)

    if reason:
        notice = "AI evaluation was unavailable due to a technical issue; this report uses heuristic scoring"
        report = report.model_copy(update={
            "weaknesses": report_limits.truncate_list(
                [notice] + report.weaknesses, report_limits.MAX_WEAKNESSES, report_limits.MAX_ITEM_CHARS
            ),
        })
    return report


def technical_error_report(route: RoutePolicy) -> FinalReport:
    """Conservative report for when even the fallback could not run."""
    return report_limits.build_report(
        decision="borderline",
        overall=TECHNICAL_ERROR_SCORE,
        dimensions={name: TECHNICAL_ERROR_SCORE for name in route.dimensions},
        summary="Final evaluation failed due to a technical error. Returning a conservative result.",
        detailed_insights=[],
        strengths=[],
        weaknesses=["The evaluation could not be completed due to a technical error"],
        recommendations=[
            "Provide concrete details (numbers, names, evidence).",
            "Clarify finances and accommodation plans.",
        ],
        scoring_method="technical_error",
    )
