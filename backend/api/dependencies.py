"""Shared dependencies for API routes."""

from services.scoring_policy import DEFAULT_POLICY, ScoringPolicy


def get_scoring_policy() -> ScoringPolicy:
    return DEFAULT_POLICY
