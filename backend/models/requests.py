from pydantic import Field

from models.base import CamelModel
from models.schemas.body_language import BodyLanguageScore
from models.schemas.per_answer import PerAnswerScore


class StudentProfile(CamelModel):
    name: str = ""
    country: str = ""
    intended_university: str | None = None
    field_of_study: str | None = None
    previous_education: str | None = None


class ConversationEntry(CamelModel):
    question: str = ""
    answer: str = ""
    timestamp: str | None = None
    question_type: str | None = None
    difficulty: str | None = None


class InterviewContext(CamelModel):
    visa_type: str = "F1"
    route: str | None = None
    student_profile: StudentProfile = StudentProfile()
    conversation_history: list[ConversationEntry] = []


class ScoreAnswerRequest(CamelModel):
    question: str = Field("", max_length=2000)
    answer: str | None = Field(None, max_length=20000)
    body_language: BodyLanguageScore | None = None
    assembly_confidence: float | None = Field(None, ge=0.0, le=1.0)
    expected_keywords: list[str] | None = None
    interview_context: InterviewContext | None = None


class FinalEvaluationRequest(CamelModel):
    # unknown routes resolve to usa_f1 via get_route_policy
    route: str | None = None
    student_profile: StudentProfile | None = None
    conversation_history: list[ConversationEntry] | None = None
    per_answer_scores: list[PerAnswerScore] | None = None
