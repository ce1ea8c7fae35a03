"""All prompt templates for LLM calls.

Final evaluation has two shapes:
- full: the whole Q&A transcript plus route rubric (used when few answers
  have per-answer scores)
- optimized: one compact line of numbers per answer plus aggregate means
  and red flags (used when per-answer scores cover most of the interview)
"""

import re
from typing import Literal

from pydantic import BaseModel

from models.requests import ConversationEntry, StudentProfile
from models.schemas.per_answer import PerAnswerScore
from services.score_aggregator import scores_by_question
from services.scoring_policy import RoutePolicy
from services.transcript_analyzer import word_count

PromptKind = Literal["full", "optimized"]

EXCERPT_CHARS = 100
MAX_PROMPT_FLAGS = 3


class PromptPair(BaseModel):
    system: str
    user: str
    kind: PromptKind
    token_estimate: int = 0


class AnswerSummary(BaseModel):
    question_number: int
    question_type: str = "unknown"
    difficulty: str = "medium"
    overall: int = 0
    content: int = 0
    speech: int = 0
    body_language: int = 0
    word_count: int = 0
    excerpt: str = ""
    red_flags: list[str] = []


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters."""
    return -(-len(text) // 4)


# ---------------------------------------------------------------------------
# Red flags
# ---------------------------------------------------------------------------

_DIGIT_RE = re.compile(r"\d")
_AGENT_RE = re.compile(r"\b(?:agent|consultant)s?\b", re.IGNORECASE)
_TOLD_RE = re.compile(r"\b(?:told|said|advised)\b", re.IGNORECASE)
_ACCOMMODATION_RE = re.compile(r"\b(?:accommodation|housing)\b", re.IGNORECASE)
_VAGUE_PLAN_RE = re.compile(r"\bwill\s+(?:find|look|arrange)\b", re.IGNORECASE)


def detect_red_flags(answer: str, min_words: int = 10) -> list[str]:
    lower = answer.lower()
    flags: list[str] = []
    if "sufficient" in lower and not _DIGIT_RE.search(lower):
        flags.append("Vague financial terms without specific amounts")
    if _AGENT_RE.search(answer) and _TOLD_RE.search(answer):
        flags.append("Heavy reliance on agent/consultant")
    if _ACCOMMODATION_RE.search(answer) and _VAGUE_PLAN_RE.search(answer):
        flags.append("No concrete accommodation plan")
    n_words = word_count(answer)
    if n_words < min_words:
        flags.append(f"Very brief answer ({n_words} words)")
    return flags


def build_answer_summary(entry: ConversationEntry, score: PerAnswerScore | None, index: int) -> AnswerSummary:
    answer = entry.answer or ""
    excerpt = answer[:EXCERPT_CHARS].strip()
    if len(answer) > EXCERPT_CHARS:
        excerpt += "..."
    cats = score.categories if score else None
    return AnswerSummary(
        question_number=index + 1,
        question_type=entry.question_type or "unknown",
        difficulty=entry.difficulty or "medium",
        overall=round(score.overall) if score else 0,
        content=round(cats.content) if cats else 0,
        speech=round(cats.speech) if cats else 0,
        body_language=round(cats.body_language) if cats else 0,
        word_count=word_count(answer),
        excerpt=excerpt,
        red_flags=detect_red_flags(answer),
    )


# ---------------------------------------------------------------------------
# Shared fragments
# ---------------------------------------------------------------------------

def _dimensions_json(route: RoutePolicy) -> str:
    return ", ".join(f'"{d}": <integer 0-100>' for d in route.dimensions)


def _output_format(route: RoutePolicy) -> str:
    return f"""Respond with ONLY valid JSON (no markdown, no code fences) in this exact structure:
{{
  "decision": "accepted" | "rejected" | "borderline",
  "overall": <integer 0-100>,
  "dimensions": {{{_dimensions_json(route)}}},
  "summary": "<2-3 paragraph final assessment>",
  "detailedInsights": [
    {{"category": "<dimension or topic>", "type": "strength" | "weakness", "finding": "<what happened>", "example": "<short quote, optional>", "actionItem": "<concrete next step>"}}
  ],
  "strengths": [<up to 5 short strings>],
  "weaknesses": [<up to 5 short strings>],
  "recommendations": [<up to 10 short strings>]
}}"""


def _profile_block(profile: StudentProfile) -> str:
    return (
        f"Name: {profile.name} ({profile.country})\n"
        f"University: {profile.intended_university or 'Not specified'}\n"
        f"Field: {profile.field_of_study or 'Not specified'}\n"
        f"Previous Education: {profile.previous_education or 'Not specified'}"
    )


def _uk_france_system(route: RoutePolicy) -> str:
    uk = route.route == "uk_student"
    money = "£18,000+ for London and the 28-day bank balance rule" if uk else "specific amounts in euros and clear funding documents"
    work = "20 hours/week term-time work limit" if uk else "student work permit limits (964 hours/year)"
    return f"""You are a STRICT {route.country} student visa credibility evaluator conducting the FINAL assessment. Review the ENTIRE interview and decide based on real refusal patterns.

EVALUATION CRITERIA (each 0-100):
1. courseAndUniversityFit: names 3+ specific modules, explains why THIS course fits their background, shows independent research.
2. financialRequirement: knows exact requirements ({money}), clear tuition + living cost breakdown.
3. accommodationLogistics: specific plan with location and cost per week/month.
4. complianceCredibility: understands the {work}, applied independently rather than agent-led.
5. postStudyIntent: clear post-study plan without unclear immigration intent.
6. communication: natural, consistent, not scripted.

DECISION THRESHOLDS:
- accepted: overall >= {route.accept_threshold:.0f} and no major red flags
- borderline: overall {route.borderline_floor:.0f}-{route.accept_threshold - 1:.0f} or minor red flags
- rejected: overall < {route.borderline_floor:.0f} or any major red flag

MAJOR RED FLAGS: cannot name course modules, financial vagueness, no accommodation plan, work rule confusion, heavy agent dependency, contradictions.

Be strict but consistent with the evidence. Return STRICT JSON only."""


def _usa_system(route: RoutePolicy) -> str:
    return f"""You are a STRICT US Embassy F1 visa officer conducting the FINAL interview assessment. Review the ENTIRE interview and make a FINAL decision.

EVALUATION CRITERIA (each 0-100):
- communication: clear, coherent, confident (not coached or scripted)
- content: solid academic rationale for THIS program at THIS university
- financials: SPECIFIC amounts and sponsor details (name, occupation, income)
- intent: strong home ties and concrete return plans

RED FLAGS: financial vagueness, contradictions between answers, weak return intent, cannot explain program fit beyond rankings.

DECISION THRESHOLDS:
- accepted: overall >= {route.accept_threshold:.0f}, no major red flags
- borderline: overall {route.borderline_floor:.0f}-{route.accept_threshold - 1:.0f}, minor concerns
- rejected: overall < {route.borderline_floor:.0f} or any major red flag

Return STRICT JSON only."""


def _system_prompt(route: RoutePolicy) -> str:
    return _uk_france_system(route) if route.uses_uk_schema else _usa_system(route)


# ---------------------------------------------------------------------------
# Final evaluation prompts
# ---------------------------------------------------------------------------

def build_full_prompt(
    route: RoutePolicy,
    profile: StudentProfile,
    history: list[ConversationEntry],
    per_answer_scores: list[PerAnswerScore] | None = None,
) -> PromptPair:
    """Full transcript prompt with inline per-answer scores where available."""
    scores = per_answer_scores or []
    indexed = scores_by_question(scores)
    blocks = []
    for i, entry in enumerate(history):
        block = f"Q{i + 1}: {entry.question}\nA{i + 1}: {entry.answer}"
        s = indexed.get(i)
        if s is not None:
            block += (
                f"\n[Score: {round(s.overall)}/100 (Content: {round(s.categories.content)}, "
                f"Speech: {round(s.categories.speech)}, Body: {round(s.categories.body_language)})]"
            )
        blocks.append(block)

    avg_note = ""
    if scores:
        avg = sum(s.overall for s in scores) / len(scores)
        avg_note = (
            f"\n\nPER-ANSWER AVERAGE SCORE: {round(avg)}/100\n"
            "(Based on content + speech + body language analysis of each answer)"
        )

    system = _system_prompt(route)
    user = f"""STUDENT PROFILE:
{_profile_block(profile)}{avg_note}

FULL INTERVIEW TRANSCRIPT:
{chr(10).join(blocks) if blocks else '(no answers recorded)'}

---

Consider the per-answer scores above (if provided) alongside your holistic evaluation. Your final decision should be consistent with these granular scores while focusing on credibility and overall readiness.

{_output_format(route)}"""
    return PromptPair(system=system, user=user, kind="full", token_estimate=estimate_tokens(system + user))


def build_optimized_prompt(
    route: RoutePolicy,
    profile: StudentProfile,
    history: list[ConversationEntry],
    per_answer_scores: list[PerAnswerScore],
) -> PromptPair:
    """Compact prompt built from per-answer numbers instead of the transcript."""
    indexed = scores_by_question(per_answer_scores)
    summaries = [
        build_answer_summary(entry, indexed.get(i), i)
        for i, entry in enumerate(history)
    ]
    n = len(summaries) or 1

    def _avg(attr: str) -> int:
        return round(sum(getattr(s, attr) for s in summaries) / n)

    lines = []
    for s in summaries:
        flag_note = f" flags:{len(s.red_flags)}" if s.red_flags else ""
        lines.append(
            f"Q{s.question_number}: {s.overall}/100 (C{s.content} S{s.speech} B{s.body_language}) "
            f"{s.word_count}w{flag_note}"
        )

    unique_flags = list(dict.fromkeys(f for s in summaries for f in s.red_flags))
    flags_line = f"\nFLAGS: {'; '.join(unique_flags[:MAX_PROMPT_FLAGS])}" if unique_flags else ""

    system = (
        f"{route.country} visa evaluator. Assess interview performance from per-answer scores.\n\n"
        f"CRITERIA: {', '.join(route.dimensions)}\n\n"
        f"THRESHOLDS:\n"
        f"- accepted: overall >= {route.accept_threshold:.0f}, no major red flags\n"
        f"- borderline: overall {route.borderline_floor:.0f}-{route.accept_threshold - 1:.0f} or minor flags\n"
        f"- rejected: overall < {route.borderline_floor:.0f} or major flags\n\n"
        "Answers scored low despite many words may be scoring errors; do not describe them as silent.\n"
        "Return STRICT JSON only."
    )
    user = f"""{profile.name} ({profile.country}) -> {profile.intended_university or 'N/A'}

SCORES ({len(summaries)}Q):
{chr(10).join(lines)}

AVG: Overall {_avg('overall')} | Content {_avg('content')} | Speech {_avg('speech')} | Body {_avg('body_language')}{flags_line}

{_output_format(route)}"""
    return PromptPair(system=system, user=user, kind="optimized", token_estimate=estimate_tokens(system + user))


# ---------------------------------------------------------------------------
# Per-answer content scoring prompt
# ---------------------------------------------------------------------------

def build_answer_scoring_prompt(
    route: RoutePolicy,
    question: str,
    answer: str,
    recent_history: list[ConversationEntry],
) -> tuple[str, str]:
    """System and user prompt for scoring the content of one answer."""
    if route.uses_uk_schema:
        rubric_keys = (
            '"communication", "relevance", "specificity", "consistency", '
            '"courseAndUniversityFit", "financialRequirement", "complianceAndIntent"'
        )
        focus = "course knowledge, exact maintenance funds, accommodation, work rules and independent research"
    else:
        rubric_keys = (
            '"communication", "relevance", "specificity", "consistency", '
            '"academicPreparedness", "financialCapability", "intentToReturn"'
        )
        focus = "specific amounts, sponsor details, program fit and return intent"

    system = f"""You are a STRICT {route.country} student visa officer scoring ONE interview answer.
Start at 50/100 and adjust on concrete evidence. Demand specifics ({focus}).
Penalize vague or coached answers and contradictions with earlier answers.
Return ONLY strict JSON."""

    history = "\n".join(f"Q: {h.question}\nA: {h.answer}" for h in recent_history) or "(none)"
    user = f"""RECENT ANSWERS (for consistency checks):
{history}

CURRENT QUESTION: {question}
CURRENT ANSWER: {answer}

Respond with ONLY valid JSON in this exact structure:
{{
  "rubric": {{ {rubric_keys} as integers 0-100 }},
  "contentScore": <integer 0-100>,
  "summary": "<1-2 sentences>",
  "recommendations": [<2-3 short strings>],
  "redFlags": [<short strings, may be empty>]
}}"""
    return system, user
