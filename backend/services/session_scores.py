"""Per-session collector for background answer scoring.

Scoring for an answer is started as a task while the next question is
being prepared; the caller only awaits the next question. Before the
final evaluation, settle() awaits every scheduled task so the aggregate
sees the complete list. A task that failed contributes nothing, and every
returned score carries its question_index so later answers keep their
pairing with the transcript.
"""

import asyncio
import logging
from collections.abc import Awaitable

from models.responses import ScoreAnswerResponse
from models.schemas.per_answer import PerAnswerScore
from services.answer_scorer import to_per_answer_score

logger = logging.getLogger(__name__)


class SessionScoreBook:
    def __init__(self, session_id: str = "") -> None:
        self.session_id = session_id
        self._tasks: dict[int, asyncio.Task] = {}
        self._scores: dict[int, PerAnswerScore] = {}

    def schedule(
        self,
        question_index: int,
        scoring: Awaitable[ScoreAnswerResponse | PerAnswerScore],
    ) -> asyncio.Task:
        """Start scoring for one question in the background."""
        if question_index in self._tasks or question_index in self._scores:
            raise ValueError(f"Question {question_index} already scored for session {self.session_id!r}")
        task = asyncio.ensure_future(scoring)
        self._tasks[question_index] = task
        return task

    def record(self, question_index: int, score: ScoreAnswerResponse | PerAnswerScore) -> None:
        """Store a score computed elsewhere."""
        if question_index in self._tasks or question_index in self._scores:
            raise ValueError(f"Question {question_index} already scored for session {self.session_id!r}")
        self._scores[question_index] = _as_per_answer(score, question_index)

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tasks.values() if not t.done())

    async def settle(self) -> list[PerAnswerScore]:
        """Await all scheduled scoring and return indexed scores in question order."""
        if self._tasks:
            indexes = list(self._tasks)
            results = await asyncio.gather(*self._tasks.values(), return_exceptions=True)
            for index, result in zip(indexes, results):
                if isinstance(result, BaseException):
                    logger.error(
                        "Scoring for question %d in session %r failed: %s",
                        index, self.session_id, result,
                    )
                    continue
                self._scores[index] = _as_per_answer(result, index)
            self._tasks.clear()

        return [self._scores[i] for i in sorted(self._scores)]


def _as_per_answer(score: ScoreAnswerResponse | PerAnswerScore, question_index: int) -> PerAnswerScore:
    if isinstance(score, ScoreAnswerResponse):
        score = to_per_answer_score(score)
    return score.model_copy(update={"question_index": question_index})
