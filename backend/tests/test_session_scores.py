"""Tests for the per-session score book."""

import asyncio

import pytest

from services.answer_scorer import score_answer
from services.score_aggregator import aggregate
from services.session_scores import SessionScoreBook


class TestSessionScoreBook:
    @pytest.mark.asyncio
    async def test_settle_orders_by_question_index(self, make_score):
        book = SessionScoreBook("s1")

        async def _slow(score, delay):
            await asyncio.sleep(delay)
            return score

        book.schedule(1, _slow(make_score(60, 60, 60, 60), 0.02))
        book.schedule(0, _slow(make_score(40, 40, 40, 40), 0.0))
        book.record(2, make_score(80, 80, 80, 80))

        scores = await book.settle()
        assert [s.overall for s in scores] == [40, 60, 80]
        assert book.pending == 0

    @pytest.mark.asyncio
    async def test_failed_task_contributes_nothing(self, make_score):
        book = SessionScoreBook("s2")

        async def _fail():
            raise RuntimeError("scoring crashed")

        async def _ok():
            return make_score(70, 70, 70, 70)

        book.schedule(0, _fail())
        book.schedule(1, _ok())
        scores = await book.settle()
        assert len(scores) == 1
        assert scores[0].overall == 70
        assert scores[0].question_index == 1

    @pytest.mark.asyncio
    async def test_failed_middle_task_keeps_later_answers_aligned(self, make_score, substantive_answer):
        book = SessionScoreBook("s3")

        async def _score(value):
            return make_score(value, value, value, value)

        async def _fail():
            raise RuntimeError("scoring crashed")

        book.schedule(0, _score(80))
        book.schedule(1, _fail())
        book.schedule(2, _score(5))
        scores = await book.settle()

        agg = aggregate(scores, [substantive_answer, substantive_answer, ""])
        assert [s.question_index for s in scores] == [0, 2]
        assert agg.substance_anomalies == []
        assert [(a.question_index, a.anomaly_type) for a in agg.anomalies] == [(2, "insufficient_response")]
        assert agg.silent_count == 1

    @pytest.mark.asyncio
    async def test_accepts_score_answer_responses(self, substantive_answer):
        book = SessionScoreBook()
        book.schedule(0, score_answer("Why this course?", substantive_answer, use_llm=False))
        scores = await book.settle()
        assert len(scores) == 1
        assert 0 <= scores[0].overall <= 100

    @pytest.mark.asyncio
    async def test_duplicate_index_rejected(self, make_score):
        book = SessionScoreBook()
        book.record(0, make_score(50, 50, 50, 50))
        with pytest.raises(ValueError):
            book.record(0, make_score(60, 60, 60, 60))

    @pytest.mark.asyncio
    async def test_settle_empty(self):
        assert await SessionScoreBook().settle() == []
