from pydantic import Field

from models.base import CamelModel, Decision, InsightType
from models.schemas.body_language import BodyLanguageScore
from models.schemas.per_answer import CategoryScores
from models.schemas.transcript_metrics import TranscriptMetrics


class ContentDetails(CamelModel):
    accuracy_score: int = 0  # 0-100, keyword coverage when keywords are given
    clarity_score: int = 0  # 0-100, readability + sentence length band
    keyword_coverage: float = 0.0  # 0.0-1.0
    expected_keywords: list[str] | None = None
    missing_keywords: list[str] | None = None
    notes: list[str] = []


class SpeechDetails(CamelModel):
    fluency_score: int = 0
    tone_score: int = 0
    clarity_score: int = 0
    filler_rate: float = 0.0
    type_token_ratio: float = 0.0
    avg_sentence_length: float = 0.0
    positivity: float = 0.0
    asr_confidence: float = 0.0
    notes: list[str] = []


class PerformanceDetails(CamelModel):
    content: ContentDetails = ContentDetails()
    speech: SpeechDetails = SpeechDetails()
    body_language: BodyLanguageScore | None = None
    transcript_metrics: TranscriptMetrics = TranscriptMetrics()


class PerformanceScoreResult(CamelModel):
    categories: CategoryScores = CategoryScores()
    overall: int = 0
    details: PerformanceDetails = PerformanceDetails()


class ScoreDiagnostics(CamelModel):
    heuristic: PerformanceScoreResult
    used_llm: bool = False


class ScoreAnswerResponse(CamelModel):
    overall: int = 0
    categories: CategoryScores = CategoryScores()
    content_score: int = 0
    speech_score: int = 0
    body_score: int = 0
    weights: dict[str, float] = {}
    rubric: dict[str, float] = {}
    summary: str = ""
    recommendations: list[str] = []
    red_flags: list[str] = []
    diagnostics: ScoreDiagnostics


class DetailedInsight(CamelModel):
    category: str = "general"
    type: InsightType = "weakness"
    finding: str = ""
    example: str | None = None
    action_item: str = ""


class FinalReport(CamelModel):
    """Final interview decision. Limits mirror what the report renderer accepts."""

    decision: Decision = "borderline"
    overall: int = Field(0, ge=0, le=100)
    dimensions: dict[str, int] = {}
    summary: str = Field("", max_length=3000)
    detailed_insights: list[DetailedInsight] = Field(default_factory=list, max_length=12)
    strengths: list[str] = Field(default_factory=list, max_length=5)
    weaknesses: list[str] = Field(default_factory=list, max_length=5)
    recommendations: list[str] = Field(default_factory=list, max_length=10)
    scoring_method: str = "llm"
