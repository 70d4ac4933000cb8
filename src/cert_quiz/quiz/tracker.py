"""Per-question answer selection."""

from __future__ import annotations

import logging
from typing import Optional

from .models import QuizSession
from .store import QuizCache

__all__ = ["AnswerTracker"]

_LOGGER = logging.getLogger(__name__)


class AnswerTracker:
    """Record selections on a session and write each change through.

    Single-answer questions keep at most one selected option; selecting a
    new one replaces the old. Multiple-answer questions toggle membership.
    """

    def __init__(self, session: QuizSession, cache: QuizCache) -> None:
        self.session = session
        self.cache = cache

    def select(
        self, option: int, question_index: Optional[int] = None
    ) -> frozenset[int]:
        index = self._resolve(question_index)
        question = self.session.questions[index]
        if not 0 <= option < len(question.options):
            raise ValueError(
                f"Option {option} is out of range for question {index + 1} "
                f"({len(question.options)} options)"
            )

        current = set(self.session.answers.get(index, ()))
        if question.is_multiple:
            current ^= {option}
        else:
            current = {option}
        self.session.answers[index] = current
        self._persist()
        return frozenset(current)

    def clear(self, question_index: Optional[int] = None) -> None:
        """Empty the selection while keeping the question marked as touched."""

        index = self._resolve(question_index)
        self.session.answers[index] = set()
        self._persist()

    def _resolve(self, question_index: Optional[int]) -> int:
        index = (
            self.session.current_index
            if question_index is None
            else question_index
        )
        if not 0 <= index < self.session.total:
            raise ValueError(f"Question index {index} is out of range")
        return index

    def _persist(self) -> None:
        self.cache.save_progress(self.session.progress_to_dict())
        _LOGGER.debug(
            "Saved answers",
            extra={
                "key": self.cache.key,
                "answered": self.session.answered_count(),
            },
        )
