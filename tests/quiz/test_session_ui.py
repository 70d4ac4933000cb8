from __future__ import annotations

from typing import Iterable, List

import pytest
from rich.console import Console

from cert_quiz.quiz.models import QuizSession
from cert_quiz.quiz.navigator import Navigator
from cert_quiz.quiz.results import build_results_view, package_result
from cert_quiz.quiz.scoring import score_session
from cert_quiz.quiz.session import (
    SessionCommand,
    parse_session_command,
    render_results,
    run_quiz_session,
)
from cert_quiz.quiz.store import QuizCache, TransientSlot
from cert_quiz.quiz.submission import submit_quiz
from cert_quiz.quiz.tracker import AnswerTracker
from fixtures import make_session
from fixtures.quiz import STARTED_AT


class ScriptedInput:
    def __init__(self, entries: Iterable[str]) -> None:
        self._entries = iter(entries)

    def __call__(self) -> str:
        return next(self._entries)


class ListStorage:
    def __init__(self) -> None:
        self.records: List = []

    def save(self, record) -> None:
        self.records.append(record)


def _console() -> Console:
    return Console(record=True, width=100, color_system=None)


def _run(session: QuizSession, cache: QuizCache, entries, storage=None):
    console = _console()
    tracker = AnswerTracker(session, cache)
    navigator = Navigator(session, cache)
    storage = storage if storage is not None else ListStorage()

    def on_submit():
        return submit_quiz(
            session,
            cache,
            storage,
            TransientSlot(cache.store),
            now=STARTED_AT,
        )

    result = run_quiz_session(
        session,
        tracker,
        navigator,
        console,
        ScriptedInput(entries),
        on_submit=on_submit,
    )
    return result, console.export_text()


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("n", SessionCommand("next")),
        ("Previous", SessionCommand("prev")),
        ("s", SessionCommand("submit")),
        ("exit", SessionCommand("quit")),
        ("clear", SessionCommand("clear")),
        ("g 3", SessionCommand("goto", target=2)),
        ("goto 1", SessionCommand("goto", target=0)),
        ("b", SessionCommand("select", choices=(1,))),
        ("A, c", SessionCommand("select", choices=(0, 2))),
    ],
)
def test_parse_session_command(raw, expected) -> None:
    assert parse_session_command(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "g x", "42", "a1"])
def test_parse_session_command_rejects_noise(raw) -> None:
    assert parse_session_command(raw) is None


def test_full_session_submits_results(cache: QuizCache) -> None:
    session = make_session()
    storage = ListStorage()

    result, output = _run(
        session,
        cache,
        ["b", "n", "a", "c", "n", "d", "submit"],
        storage=storage,
    )

    assert result.exit_action == "submitted"
    assert result.outcome.score.correct_count == 3
    assert result.outcome.score.passed
    assert storage.records == [result.outcome.record]
    assert "Question 1 / 3" in output
    assert "Select all that apply." in output


def test_submit_with_missing_answers_keeps_session_open(
    cache: QuizCache,
) -> None:
    session = make_session()

    result, output = _run(session, cache, ["a", "submit", "quit"])

    assert result.exit_action == "quit"
    assert result.outcome is None
    assert "2 questions remaining" in output
    assert "Progress saved" in output
    assert cache.load_progress()["answers"] == {"0": [0]}


def test_invalid_choices_and_targets_are_reported(cache: QuizCache) -> None:
    session = make_session()

    result, output = _run(session, cache, ["e", "g 9", "p", "zz?"])

    assert result.exit_action == "quit"
    assert "'E' is not a valid choice" in output
    assert "No question 9. Choose 1-3." in output
    assert "Already at the first question." in output
    assert "Unrecognized command" in output
    assert "Session interrupted." in output
    assert session.answers == {}


def test_clear_marks_question_as_touched(cache: QuizCache) -> None:
    session = make_session()

    _run(session, cache, ["a", "clear"])

    assert session.answers == {0: set()}
    assert session.answered_count() == 0


def test_render_results_lists_misses_and_storage_warning() -> None:
    session = make_session()
    session.answers = {0: {1}, 1: {0}, 2: {3}}
    record = package_result(
        session, score_session(session), ended_at=STARTED_AT
    )
    view = build_results_view(record, persistence_error="disk full")
    console = _console()

    render_results(console, view)
    output = console.export_text()

    assert "Quiz Results" in output
    assert "2/3" in output
    assert "67%" in output
    assert "NOT PASSED" in output
    assert "Explanation: question 2" in output
    assert "Explanation: question 1" not in output
    assert "History not saved" in output
    assert "disk full" in output
