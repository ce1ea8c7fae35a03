"""Body-language signal supplied per answer by the video analysis client."""

from pydantic import ConfigDict

from models.base import CamelModel


class PostureMetrics(CamelModel):
    torso_angle_deg: float = 0.0
    head_tilt_deg: float = 0.0
    slouch_detected: bool = False
    score: float = 0.0  # 0-100


class GestureMetrics(CamelModel):
    left: str = "unknown"  # open, fist, unknown
    right: str = "unknown"
    confidence: float = 0.0
    score: float = 0.0


class ExpressionMetrics(CamelModel):
    eye_contact_score: float = 0.0
    smile_score: float = 0.0
    confidence: float = 0.0
    score: float = 0.0


class BodyLanguageScore(CamelModel):
    """Opaque record; scoring only ever reads overall_score."""

    model_config = ConfigDict(frozen=True, extra="allow")

    posture: PostureMetrics | None = None
    gestures: GestureMetrics | None = None
    expressions: ExpressionMetrics | None = None
    overall_score: float | None = None  # 0-100
    feedback: list[str] = []


# Used when the client sends no body-language record at all
NEUTRAL_BODY_LANGUAGE = BodyLanguageScore(
    posture=PostureMetrics(score=60),
    gestures=GestureMetrics(score=60),
    expressions=ExpressionMetrics(eye_contact_score=55, smile_score=55, confidence=0.5, score=55),
    overall_score=58,
)
