"""Tests for the final evaluation orchestrator."""

import json

import pytest

from models.responses import FinalReport
from services import llm_provider
from services.pipeline import decision_engine
from services.pipeline.ladder import AttemptSpec, LadderSchedule, LadderState
from services.pipeline.orchestrator import InvalidEvaluationInput, finalize, finalize_session
from services.scoring_policy import UK_DIMENSIONS, USA_DIMENSIONS
from services.session_scores import SessionScoreBook

FAST_SCHEDULE = LadderSchedule(attempts=[
    AttemptSpec(state=LadderState.FULL_ATTEMPT, timeout_s=0.5),
    AttemptSpec(state=LadderState.RETRY, timeout_s=0.5, backoff_s=0.0),
])

PROFILE = {"name": "Aarav Sharma", "country": "Nepal", "intendedUniversity": "University of Manchester"}


def _history(n: int) -> list[dict]:
    return [
        {"question": f"Question {i + 1}?", "answer": "I will study data science and return home to work."}
        for i in range(n)
    ]


def _scores(overall: float, content: float, speech: float, body: float, n: int) -> list[dict]:
    return [
        {"overall": overall, "categories": {"content": content, "speech": speech, "bodyLanguage": body}}
        for _ in range(n)
    ]


def _raise_overflow(data, route):
    raise OverflowError("cannot convert float infinity to integer")


def _assert_well_formed(report: FinalReport) -> None:
    assert report.decision in ("accepted", "rejected", "borderline")
    assert 0 <= report.overall <= 100
    assert len(report.summary) <= 3000
    assert len(report.detailed_insights) <= 12
    assert len(report.strengths) <= 5
    assert len(report.weaknesses) <= 5
    assert len(report.recommendations) <= 10


class TestInputValidation:
    @pytest.mark.asyncio
    async def test_missing_profile(self):
        with pytest.raises(InvalidEvaluationInput):
            await finalize("uk_student", None, _history(1))

    @pytest.mark.asyncio
    async def test_history_not_a_list(self):
        with pytest.raises(InvalidEvaluationInput):
            await finalize("uk_student", PROFILE, "Q1: why? A1: because")

    @pytest.mark.asyncio
    async def test_malformed_scores(self):
        with pytest.raises(InvalidEvaluationInput):
            await finalize("uk_student", PROFILE, _history(1), [{"overall": "high"}])


@pytest.mark.scenario
class TestFallbackScenarios:
    @pytest.mark.asyncio
    async def test_silent_session_rejected_on_usa(self):
        history = [{"question": f"Q{i}?", "answer": ""} for i in range(5)]
        report = await finalize("usa_f1", PROFILE, history, _scores(0, 0, 0, 58, 5), schedule=FAST_SCHEDULE)
        assert report.decision == "rejected"
        assert set(report.dimensions) == set(USA_DIMENSIONS)
        _assert_well_formed(report)

    @pytest.mark.asyncio
    async def test_uk_accepted_when_floor_met(self):
        report = await finalize("uk_student", PROFILE, _history(4), _scores(72, 74, 66, 62, 4))
        assert report.decision == "accepted"
        assert set(report.dimensions) == set(UK_DIMENSIONS)

    @pytest.mark.asyncio
    async def test_uk_rejected_when_one_category_below_floor(self):
        report = await finalize("uk_student", PROFILE, _history(4), _scores(72, 85, 75, 35, 4))
        assert report.decision == "rejected"

    @pytest.mark.asyncio
    async def test_unknown_route_uses_usa_schema(self):
        report = await finalize(None, PROFILE, _history(2), _scores(60, 60, 60, 60, 2))
        assert set(report.dimensions) == set(USA_DIMENSIONS)

    @pytest.mark.asyncio
    async def test_keyword_path_without_scores(self):
        report = await finalize("uk_student", PROFILE, _history(3))
        assert report.scoring_method == "heuristic_keywords"
        assert set(report.dimensions) == set(UK_DIMENSIONS)
        _assert_well_formed(report)


@pytest.mark.llm
class TestWithProvider:
    @pytest.mark.asyncio
    async def test_timeout_on_both_attempts_gives_borderline_with_notice(self, monkeypatch, with_llm_key):
        calls = []

        async def _timeout(*args, **kwargs):
            calls.append(args)
            raise llm_provider.LLMTimeoutError("cometapi timeout after 45 seconds")

        monkeypatch.setattr(llm_provider, "call_provider", _timeout)
        report = await finalize("usa_f1", PROFILE, _history(4), _scores(62, 62, 62, 62, 4), schedule=FAST_SCHEDULE)
        assert len(calls) == 2
        assert report.decision == "borderline"
        assert report.weaknesses
        assert "technical issue" in report.weaknesses[0]
        _assert_well_formed(report)

    @pytest.mark.asyncio
    async def test_llm_report_returned(self, monkeypatch, with_llm_key):
        payload = {
            "decision": "rejected",
            "overall": 41,
            "dimensions": {name: 41 for name in UK_DIMENSIONS},
            "summary": "Could not name modules.",
            "detailedInsights": [{"category": "courseAndUniversityFit", "type": "weakness",
                                  "finding": "No modules named.", "actionItem": "Learn three modules."}],
        }

        async def _ok(*args, **kwargs):
            return llm_provider.LLMResponse(content=json.dumps(payload))

        monkeypatch.setattr(llm_provider, "call_provider", _ok)
        report = await finalize("uk_student", PROFILE, _history(2), schedule=FAST_SCHEDULE)
        assert report.scoring_method == "llm"
        assert report.decision == "rejected"
        assert report.detailed_insights[0].action_item == "Learn three modules."

    @pytest.mark.asyncio
    async def test_parse_error_falls_back(self, monkeypatch, with_llm_key):
        async def _garbage(*args, **kwargs):
            return llm_provider.LLMResponse(content="<html>Service busy</html>")

        monkeypatch.setattr(llm_provider, "call_provider", _garbage)
        report = await finalize("uk_student", PROFILE, _history(2), _scores(65, 65, 65, 65, 2), schedule=FAST_SCHEDULE)
        assert report.scoring_method == "heuristic_scores"

    @pytest.mark.asyncio
    async def test_infinite_overall_is_treated_as_missing(self, monkeypatch, with_llm_key):
        async def _inf(*args, **kwargs):
            return llm_provider.LLMResponse(content='{"decision": "accepted", "overall": Infinity}')

        monkeypatch.setattr(llm_provider, "call_provider", _inf)
        report = await finalize("uk_student", PROFILE, _history(2), _scores(65, 65, 65, 65, 2), schedule=FAST_SCHEDULE)
        assert report.scoring_method == "llm"
        assert report.overall == 0

    @pytest.mark.asyncio
    async def test_validation_failure_uses_heuristic_fallback(self, monkeypatch, with_llm_key):
        async def _ok(*args, **kwargs):
            return llm_provider.LLMResponse(content='{"decision": "accepted", "overall": 80}')

        monkeypatch.setattr(llm_provider, "call_provider", _ok)
        monkeypatch.setattr(decision_engine, "validate_report", _raise_overflow)
        report = await finalize("uk_student", PROFILE, _history(2), _scores(65, 65, 65, 65, 2), schedule=FAST_SCHEDULE)
        assert report.scoring_method == "heuristic_scores"

    @pytest.mark.asyncio
    async def test_unexpected_exception_gives_technical_error_report(self, monkeypatch):
        async def _crash(*args, **kwargs):
            raise KeyError("unexpected")

        monkeypatch.setattr(decision_engine, "evaluate_with_llm", _crash)
        report = await finalize("uk_student", PROFILE, _history(2))
        assert report.decision == "borderline"
        assert report.overall == 60
        assert report.dimensions == {name: 60 for name in UK_DIMENSIONS}
        assert report.scoring_method == "technical_error"


class TestFinalizeSession:
    @pytest.mark.asyncio
    async def test_settles_scores_before_finalizing(self, make_score):
        book = SessionScoreBook("session-1")

        async def _score(value):
            return make_score(value, value, value, value)

        for i in range(4):
            book.schedule(i, _score(80))
        report = await finalize_session(book, "usa_f1", PROFILE, _history(4))
        assert book.pending == 0
        assert report.scoring_method == "heuristic_scores"
        assert report.decision == "accepted"

    @pytest.mark.asyncio
    async def test_failed_middle_task_does_not_shift_scores(self, make_score, substantive_answer):
        book = SessionScoreBook("session-2")

        async def _score(value):
            return make_score(value, value, value, value)

        async def _fail():
            raise RuntimeError("scoring crashed")

        book.schedule(0, _score(80))
        book.schedule(1, _fail())
        book.schedule(2, _score(5))
        history = [
            {"question": "Why this course?", "answer": substantive_answer},
            {"question": "Who is your sponsor?", "answer": substantive_answer},
            {"question": "Where will you live?", "answer": ""},
        ]
        report = await finalize_session(book, "usa_f1", PROFILE, history)
        assert report.scoring_method == "heuristic_scores"
        assert not [i for i in report.detailed_insights if i.category == "scoring"]
