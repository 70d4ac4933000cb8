"""Current-question pointer and per-question status indicators."""

from __future__ import annotations

from enum import Enum
from typing import List

from .models import QuizSession
from .store import QuizCache

__all__ = ["QuestionStatus", "Navigator"]


class QuestionStatus(Enum):
    UNTOUCHED = "untouched"
    CLEARED = "cleared"
    ANSWERED = "answered"


class Navigator:
    """Move between questions. Completeness is never checked here."""

    def __init__(self, session: QuizSession, cache: QuizCache) -> None:
        self.session = session
        self.cache = cache

    @property
    def index(self) -> int:
        return self.session.current_index

    @property
    def is_first(self) -> bool:
        return self.session.current_index == 0

    @property
    def is_last(self) -> bool:
        return self.session.current_index >= self.session.total - 1

    def next(self) -> bool:
        if self.is_last:
            return False
        return self._move(self.session.current_index + 1)

    def previous(self) -> bool:
        if self.is_first:
            return False
        return self._move(self.session.current_index - 1)

    def jump_to(self, index: int) -> bool:
        if not 0 <= index < self.session.total:
            return False
        return self._move(index)

    def status(self, index: int) -> QuestionStatus:
        if index not in self.session.answers:
            return QuestionStatus.UNTOUCHED
        if not self.session.answers[index]:
            return QuestionStatus.CLEARED
        return QuestionStatus.ANSWERED

    def statuses(self) -> List[QuestionStatus]:
        return [self.status(i) for i in range(self.session.total)]

    def _move(self, index: int) -> bool:
        self.session.current_index = index
        self.cache.save_progress(self.session.progress_to_dict())
        return True
