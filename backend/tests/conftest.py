"""Shared test configuration, pytest markers and fixtures."""

import pytest

from config import settings
from models.requests import ConversationEntry, StudentProfile
from models.schemas.per_answer import CategoryScores, PerAnswerScore


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "llm: replaces the LLM provider call with a stub (no network)"
    )
    config.addinivalue_line(
        "markers", "scenario: end-to-end decision scenarios"
    )


@pytest.fixture(autouse=True)
def _no_llm_keys(monkeypatch):
    """Run every test without provider keys unless a test sets one."""
    monkeypatch.setattr(settings, "cometapi_api_key", "")
    monkeypatch.setattr(settings, "gemini_api_key", "")
    monkeypatch.setattr(settings, "llm_retry_backoff_s", 0.0)


@pytest.fixture
def with_llm_key(monkeypatch):
    monkeypatch.setattr(settings, "cometapi_api_key", "test-key")


@pytest.fixture
def profile() -> StudentProfile:
    return StudentProfile(
        name="Aarav Sharma",
        country="Nepal",
        intended_university="University of Manchester",
        field_of_study="Data Science",
        previous_education="BSc Computer Science",
    )


def _make_score(overall: float, content: float, speech: float, body: float) -> PerAnswerScore:
    return PerAnswerScore(
        overall=overall,
        categories=CategoryScores(content=content, speech=speech, body_language=body),
    )


def _make_history(answers: list[str]) -> list[ConversationEntry]:
    return [
        ConversationEntry(question=f"Question {i + 1}?", answer=a)
        for i, a in enumerate(answers)
    ]


@pytest.fixture
def make_score():
    return _make_score


@pytest.fixture
def make_history():
    return _make_history


SUBSTANTIVE_ANSWER = (
    "I chose this programme because the modules in machine learning and data "
    "engineering match my previous degree and my plan to work in analytics back home."
)


@pytest.fixture
def substantive_answer() -> str:
    return SUBSTANTIVE_ANSWER
