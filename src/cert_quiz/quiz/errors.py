"""Exceptions raised by the quiz session engine."""

from __future__ import annotations


class QuizError(RuntimeError):
    """Base class for recoverable quiz engine failures."""


class GenerationFailure(QuizError):
    """The generation collaborator failed or returned malformed data.

    Always retryable; ``QuizLoader.retry()`` re-issues the request.
    """

    retryable = True


class IncompleteSubmission(QuizError):
    """Submission attempted while some questions have no selection."""

    def __init__(self, remaining: int) -> None:
        self.remaining = remaining
        noun = "question" if remaining == 1 else "questions"
        super().__init__(
            f"Answer all questions before submitting: {remaining} {noun} "
            "remaining."
        )


class DecodeFailure(QuizError):
    """A topic-selection transport payload could not be decoded."""


class PersistenceFailure(QuizError):
    """The durable result storage rejected a scored result."""


class StoreUnavailable(QuizError):
    """A session store backend cannot read or write."""
