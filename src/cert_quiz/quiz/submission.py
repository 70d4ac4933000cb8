"""Submission: score once, persist, clear the cache, hand off the result."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from .errors import PersistenceFailure
from .models import ResultRecord, ScoreResult, QuizSession
from .results import (
    DEFAULT_PROVIDER,
    ResultsView,
    build_results_view,
    package_result,
)
from .scoring import score_session
from .storage import ResultStorage
from .store import QuizCache, TransientSlot

__all__ = ["SubmissionOutcome", "submit_quiz", "consume_results"]

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionOutcome:
    record: ResultRecord
    score: ScoreResult
    persistence_error: Optional[str] = None

    @property
    def history_saved(self) -> bool:
        return self.persistence_error is None


def submit_quiz(
    session: QuizSession,
    cache: QuizCache,
    storage: ResultStorage,
    slot: TransientSlot,
    *,
    email: Optional[str] = None,
    provider: str = DEFAULT_PROVIDER,
    now: Optional[datetime] = None,
) -> SubmissionOutcome:
    """Score and hand off a finished session.

    :class:`IncompleteSubmission` propagates before anything is stored. A
    storage failure does not stop the hand-off; it is reported on the
    returned outcome instead.
    """

    score = score_session(session)
    record = package_result(
        session,
        score,
        ended_at=now or datetime.now(timezone.utc),
        email=email,
        provider=provider,
    )

    persistence_error: Optional[str] = None
    try:
        storage.save(record)
    except PersistenceFailure as exc:
        persistence_error = str(exc)
    except Exception as exc:
        persistence_error = f"Could not save result {record.test_id}: {exc}"
    if persistence_error:
        _LOGGER.error(
            "Result not saved to history",
            extra={"test_id": record.test_id, "error": persistence_error},
        )

    cache.clear()
    view = build_results_view(record, persistence_error=persistence_error)
    slot.put(view.to_dict())
    _LOGGER.info(
        "Quiz submitted",
        extra={
            "test_id": record.test_id,
            "score": score.correct_count,
            "total": score.total,
            "passed": score.passed,
        },
    )
    return SubmissionOutcome(
        record=record, score=score, persistence_error=persistence_error
    )


def consume_results(
    slot: TransientSlot,
    *,
    grace_seconds: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[ResultsView]:
    """Read the hand-off slot once.

    Returns ``None`` after ``grace_seconds`` when nothing was handed off;
    callers send the user back to quiz setup.
    """

    payload = slot.consume()
    if payload is None:
        if grace_seconds > 0:
            sleep(grace_seconds)
        payload = slot.consume()
    if payload is None:
        _LOGGER.info("No quiz results to show; returning to setup")
        return None
    try:
        return ResultsView.from_dict(payload)
    except ValueError as exc:
        _LOGGER.warning(
            "Discarding malformed results hand-off",
            extra={"error": str(exc)},
        )
        return None
