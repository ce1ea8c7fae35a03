"""Scoring policy: tunable weights, thresholds and the per-route table.

Every number that decides a score or a verdict lives here. Callers receive
a ScoringPolicy explicitly (DEFAULT_POLICY unless overridden) and look up
the RoutePolicy once, at the entry of a route-dependent operation.
"""

from pydantic import BaseModel

from models.base import Route

DEFAULT_ROUTE: Route = "usa_f1"

UK_DIMENSIONS: tuple[str, ...] = (
    "communication",
    "courseAndUniversityFit",
    "financialRequirement",
    "accommodationLogistics",
    "complianceCredibility",
    "postStudyIntent",
)
USA_DIMENSIONS: tuple[str, ...] = ("communication", "content", "financials", "intent")


class CategoryWeights(BaseModel):
    content: float = 0.7
    speech: float = 0.2
    body: float = 0.1


class ScoringPolicy(BaseModel):
    weights: CategoryWeights = CategoryWeights()

    # Per-answer scorer
    min_answer_words: int = 10
    default_body_score: float = 58.0  # no body-language record supplied
    unset_body_score: float = 50.0  # record supplied without an overall score
    default_asr_confidence: float = 0.75

    # Participation: answers scored at or below this count as insufficient
    insufficient_score: float = 10.0
    insufficient_min_count: int = 3
    insufficient_min_ratio: float = 0.30

    # Low score despite a substantive transcript
    anomaly_score_threshold: float = 40.0
    anomaly_min_words: int = 10
    anomaly_score_floor: float = 30.0

    # Share of questions with per-answer scores needed for the compact prompt
    optimized_prompt_coverage: float = 0.75

    # Narrative bands over aggregate category means
    strength_band: float = 75.0
    weakness_band: float = 60.0
    body_strength_band: float = 60.0
    body_weakness_band: float = 50.0
    # Scored-path recommendations fire below this category mean
    recommendation_band: float = 70.0

    # Minimum-dimension floor (routes with enforce_dimension_floor)
    floor_accept: float = 60.0
    floor_reject: float = 40.0


class RoutePolicy(BaseModel):
    route: Route
    country: str
    dimensions: tuple[str, ...]
    accept_threshold: float
    borderline_floor: float
    enforce_dimension_floor: bool = False
    currency: str = ""

    @property
    def uses_uk_schema(self) -> bool:
        return self.dimensions == UK_DIMENSIONS


ROUTE_POLICIES: dict[str, RoutePolicy] = {
    "uk_student": RoutePolicy(
        route="uk_student",
        country="UK",
        dimensions=UK_DIMENSIONS,
        accept_threshold=70,
        borderline_floor=50,
        enforce_dimension_floor=True,
        currency="£",
    ),
    "usa_f1": RoutePolicy(
        route="usa_f1",
        country="USA",
        dimensions=USA_DIMENSIONS,
        accept_threshold=75,
        borderline_floor=55,
        currency="$",
    ),
    "france_ema": RoutePolicy(
        route="france_ema",
        country="France",
        dimensions=UK_DIMENSIONS,
        accept_threshold=75,
        borderline_floor=55,
        currency="€",
    ),
    "france_icn": RoutePolicy(
        route="france_icn",
        country="France",
        dimensions=UK_DIMENSIONS,
        accept_threshold=75,
        borderline_floor=55,
        currency="€",
    ),
}

DEFAULT_POLICY = ScoringPolicy()


def get_route_policy(route: str | None) -> RoutePolicy:
    """Resolve a route to its policy. Missing or unknown routes use usa_f1."""
    return ROUTE_POLICIES.get(route or DEFAULT_ROUTE, ROUTE_POLICIES[DEFAULT_ROUTE])


def clamp_score(value: float) -> int:
    """Round and clamp to the 0-100 score range."""
    return max(0, min(100, round(value)))
