"""Result packaging: the durable record and the transient results view."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from .models import (
    QuestionOutcome,
    QuizSession,
    ResultRecord,
    ScoreResult,
)

__all__ = [
    "DEFAULT_PROVIDER",
    "ResultsView",
    "render_selection",
    "elapsed_seconds",
    "make_test_id",
    "package_result",
    "build_results_view",
]

DEFAULT_PROVIDER = "AWS"

_QUIZ_SETTINGS = {
    "time_limit": None,
    "shuffle_questions": False,
    "show_correct_answers": True,
}


def render_selection(options: Sequence[str], indices: Iterable[int]) -> str:
    """Join the option texts of ``indices`` in option order."""

    return ", ".join(
        options[i] for i in sorted(indices) if 0 <= i < len(options)
    )


def elapsed_seconds(start: datetime, end: datetime) -> int:
    return max(0, math.floor((end - start).total_seconds()))


def make_test_id(now: datetime) -> str:
    return f"quiz-{int(now.timestamp() * 1000)}"


def package_result(
    session: QuizSession,
    score: ScoreResult,
    *,
    ended_at: Optional[datetime] = None,
    email: Optional[str] = None,
    provider: str = DEFAULT_PROVIDER,
    test_id: Optional[str] = None,
) -> ResultRecord:
    """Project a scored session into its durable :class:`ResultRecord`."""

    end = ended_at or datetime.now(timezone.utc)
    outcomes = []
    for i, question in enumerate(session.questions):
        selected = session.selection_for(i)
        outcomes.append(
            QuestionOutcome(
                question_id=question.id,
                question_text=question.prompt,
                options=question.options,
                selected=tuple(sorted(selected)),
                correct=tuple(sorted(question.correct_indices)),
                user_answer=render_selection(question.options, selected),
                correct_answer=render_selection(
                    question.options, question.correct_indices
                ),
                is_correct=score.correctness[i],
                explanation=question.explanation,
                difficulty=question.difficulty,
                topic=question.topic,
            )
        )

    exam_info = session.payload.exam_info
    return ResultRecord(
        test_id=test_id or make_test_id(end),
        exam_id=session.exam_id,
        certificate_name=exam_info.name or session.exam_id,
        certificate_provider=provider,
        certificate_code=(exam_info.type or session.quiz_type.value).upper(),
        email=email,
        score=score.correct_count,
        total_questions=score.total,
        percentage=score.percentage,
        passed=score.passed,
        time_spent=elapsed_seconds(session.started_at, end),
        start_time=session.started_at,
        end_time=end,
        questions=tuple(outcomes),
        quiz_settings=dict(_QUIZ_SETTINGS),
    )


@dataclass(frozen=True)
class ResultsView:
    """What the results screen shows after a submission."""

    record: ResultRecord
    history_saved: bool
    persistence_error: Optional[str] = None

    @property
    def exam_name(self) -> str:
        return self.record.certificate_name

    @property
    def incorrect(self) -> tuple[QuestionOutcome, ...]:
        return tuple(q for q in self.record.questions if not q.is_correct)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record": self.record.to_dict(),
            "historySaved": self.history_saved,
            "persistenceError": self.persistence_error,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ResultsView":
        if not isinstance(payload, Mapping) or "record" not in payload:
            raise ValueError("Malformed results view")
        error = payload.get("persistenceError")
        return cls(
            record=ResultRecord.from_dict(payload["record"]),
            history_saved=bool(payload.get("historySaved", False)),
            persistence_error=str(error) if error else None,
        )


def build_results_view(
    record: ResultRecord, *, persistence_error: Optional[str] = None
) -> ResultsView:
    return ResultsView(
        record=record,
        history_saved=persistence_error is None,
        persistence_error=persistence_error,
    )
