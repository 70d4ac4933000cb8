"""Scoring: set-equality correctness and the fixed pass threshold."""

from __future__ import annotations

from typing import Iterable

from .errors import IncompleteSubmission
from .models import CorrectAnswer, QuizSession, ScoreResult

__all__ = ["PASS_THRESHOLD", "is_correct", "percentage", "score_session"]

PASS_THRESHOLD = 70


def is_correct(selected: Iterable[int], correct_answer: CorrectAnswer) -> bool:
    """Order-independent exact match of selected and correct indices."""

    return frozenset(selected) == correct_answer.indices


def percentage(correct_count: int, total: int) -> int:
    """``round(correct / total * 100)`` rounding halves up, in integers."""

    if total <= 0:
        return 0
    return (200 * correct_count + total) // (2 * total)


def score_session(session: QuizSession) -> ScoreResult:
    """Score a fully answered session.

    Raises :class:`IncompleteSubmission` when any question has an empty or
    missing selection. The session is not modified.
    """

    remaining = session.unanswered_count()
    if remaining:
        raise IncompleteSubmission(remaining)

    correctness = tuple(
        is_correct(session.selection_for(i), question.correct_answer)
        for i, question in enumerate(session.questions)
    )
    correct_count = sum(correctness)
    pct = percentage(correct_count, session.total)
    return ScoreResult(
        correctness=correctness,
        correct_count=correct_count,
        total=session.total,
        percentage=pct,
        passed=pct >= PASS_THRESHOLD,
    )
