"""Outcomes of LLM calls.

The decision engine returns exactly one of LLMReportOk, LLMParseError or
ProviderUnavailable; callers branch on the type instead of catching.
"""

from typing import Literal, Union

from models.base import CamelModel
from models.responses import FinalReport


class LLMReportOk(CamelModel):
    kind: Literal["ok"] = "ok"
    report: FinalReport


class LLMParseError(CamelModel):
    kind: Literal["parse_error"] = "parse_error"
    reason: str = ""


class ProviderUnavailable(CamelModel):
    kind: Literal["provider_unavailable"] = "provider_unavailable"
    reason: str = ""


LLMOutcome = Union[LLMReportOk, LLMParseError, ProviderUnavailable]


class LLMContentScore(CamelModel):
    """Validated answer-scoring payload from the LLM."""

    content_score: float = 0.0  # 0-100
    rubric: dict[str, float] = {}
    summary: str = ""
    recommendations: list[str] = []
    red_flags: list[str] = []
