"""Tests for the per-answer heuristic scorer."""

import pytest

from models.schemas.body_language import BodyLanguageScore
from services.performance_scorer import (
    body_score,
    combine_overall,
    compute_content_details,
    score_performance,
)
from services.scoring_policy import CategoryWeights, ScoringPolicy
from services.transcript_analyzer import analyze_transcript


class TestShortAnswerZeroing:
    def test_empty_answer(self):
        result = score_performance("")
        assert result.categories.content == 0
        assert result.categories.speech == 0
        assert result.details.transcript_metrics.words == 0

    def test_short_answer_ignores_body_and_confidence(self):
        body = BodyLanguageScore(overall_score=95)
        result = score_performance("Yes I have the funds.", body=body, asr_confidence=1.0)
        assert result.categories.content == 0
        assert result.categories.speech == 0
        assert result.categories.body_language == 95
        assert result.overall == combine_overall(0, 0, 95)

    def test_ten_words_is_scored(self):
        answer = "My father will sponsor my studies with his business income."
        assert analyze_transcript(answer).words == 10
        result = score_performance(answer)
        assert result.categories.content > 0
        assert result.categories.speech > 0


class TestBodyScore:
    def setup_method(self):
        self.policy = ScoringPolicy()

    def test_default_when_missing(self):
        assert body_score(None, self.policy) == 58

    def test_unset_overall(self):
        assert body_score(BodyLanguageScore(), self.policy) == 50

    def test_clamped(self):
        assert body_score(BodyLanguageScore(overall_score=140), self.policy) == 100
        assert body_score(BodyLanguageScore(overall_score=-5), self.policy) == 0


class TestContentDetails:
    def test_keyword_coverage(self, substantive_answer):
        metrics = analyze_transcript(substantive_answer)
        details = compute_content_details(
            substantive_answer, metrics, ["machine learning", "analytics", "scholarship"]
        )
        assert details.keyword_coverage == pytest.approx(2 / 3)
        assert details.missing_keywords == ["scholarship"]
        assert details.accuracy_score == 67

    def test_keywords_match_whole_words_only(self):
        text = "I studied finance and accounting for four years at Tribhuvan University in Kathmandu."
        details = compute_content_details(text, analyze_transcript(text), ["fin", "finance"])
        assert details.missing_keywords == ["fin"]

    def test_without_keywords_uses_length_proxy(self, substantive_answer):
        details = compute_content_details(substantive_answer, analyze_transcript(substantive_answer))
        assert details.expected_keywords is None
        assert 10 <= details.accuracy_score <= 90
        assert any("heuristically" in n for n in details.notes)


class TestScorePerformance:
    def test_scores_in_range(self, substantive_answer):
        result = score_performance(substantive_answer, asr_confidence=0.9)
        for value in (
            result.overall,
            result.categories.content,
            result.categories.speech,
            result.categories.body_language,
        ):
            assert 0 <= value <= 100

    def test_deterministic(self, substantive_answer):
        first = score_performance(substantive_answer, asr_confidence=0.8, expected_keywords=["modules"])
        second = score_performance(substantive_answer, asr_confidence=0.8, expected_keywords=["modules"])
        assert first == second

    def test_policy_weights_apply(self, substantive_answer):
        policy = ScoringPolicy(weights=CategoryWeights(content=0.0, speech=0.0, body=1.0))
        result = score_performance(substantive_answer, BodyLanguageScore(overall_score=80), policy=policy)
        assert result.overall == 80

    def test_fillers_lower_speech(self):
        clean = "I will study data science at Manchester because the course fits my degree."
        filled = "Um I will uh study data science at um Manchester because uh the course like fits my degree."
        assert score_performance(filled).categories.speech < score_performance(clean).categories.speech

    def test_low_asr_confidence_adds_note(self, substantive_answer):
        result = score_performance(substantive_answer, asr_confidence=0.3)
        assert any("ASR confidence" in n for n in result.details.speech.notes)
