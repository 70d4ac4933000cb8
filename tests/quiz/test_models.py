from __future__ import annotations

from datetime import datetime, timezone

import pytest

from cert_quiz.quiz.models import (
    MultipleAnswer,
    Question,
    QuizPayload,
    QuizType,
    ResultRecord,
    SingleAnswer,
    parse_correct_answer,
    topics_from_sequence,
)
from fixtures import make_session, payload_dict, question_dict


def test_parse_correct_answer_variants() -> None:
    assert parse_correct_answer(2) == SingleAnswer(2)
    assert parse_correct_answer([2, 0]) == MultipleAnswer(frozenset({0, 2}))
    assert SingleAnswer(1).indices == frozenset({1})
    for bad in (True, [], ["a"], "1", None):
        with pytest.raises(ValueError):
            parse_correct_answer(bad)


def test_question_from_dict_applies_defaults() -> None:
    raw = question_dict(4, correct=[1, 3])
    del raw["difficulty"]
    del raw["topic"]
    question = Question.from_dict(raw, position=3, default_topic="Networking")

    assert question.id == "4"
    assert question.is_multiple
    assert question.correct_indices == frozenset({1, 3})
    assert question.difficulty == "Medium"
    assert question.topic == "Networking"
    assert question.to_dict()["correctAnswer"] == [1, 3]


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"options": ["only one"]}, "at least 2 options"),
        ({"options": ["a", " "]}, "empty option"),
        ({"correctAnswer": 4}, "invalid option"),
        ({"correctAnswer": [0, -1]}, "invalid option"),
    ],
)
def test_question_validation_errors(overrides, message) -> None:
    raw = dict(question_dict(1), **overrides)
    with pytest.raises(ValueError, match=message):
        Question.from_dict(raw)


def test_payload_requires_questions_and_exam_info() -> None:
    with pytest.raises(ValueError, match="Invalid quiz data"):
        QuizPayload.from_dict({"questions": []})
    with pytest.raises(ValueError, match="Invalid quiz data"):
        QuizPayload.from_dict({"examInfo": {}, "questions": "nope"})
    with pytest.raises(ValueError, match="no questions"):
        QuizPayload.from_dict({"examInfo": {}, "questions": []})

    payload = QuizPayload.from_dict(payload_dict())
    assert payload.exam_info.total_questions == 3
    assert QuizPayload.from_dict(payload.to_dict()) == payload


def test_quiz_type_from_value() -> None:
    assert QuizType.from_value(" Custom ") is QuizType.CUSTOM
    with pytest.raises(ValueError, match="complete, custom"):
        QuizType.from_value("timed")


def test_session_progress_roundtrip_and_sanitizing() -> None:
    session = make_session()
    session.answers = {0: {1}, 1: set()}
    session.current_index = 2

    restored = make_session(started_at=datetime(2030, 1, 1, tzinfo=timezone.utc))
    restored.restore_progress(session.progress_to_dict())
    assert restored.answers == {0: {1}, 1: set()}
    assert restored.current_index == 2
    assert restored.started_at == session.started_at
    assert restored.answered_count() == 1
    assert restored.progress_percentage() == pytest.approx(100 / 3)

    restored.restore_progress(
        {
            "currentQuestionIndex": 9,
            "answers": {"0": [0, 7, "x"], "5": [1], "bad": [1], "1": "no"},
            "startedAt": "not a date",
        }
    )
    assert restored.answers == {0: {0}}
    assert restored.current_index == 2


def test_result_record_from_dict_rejects_garbage() -> None:
    with pytest.raises(ValueError, match="Malformed result record"):
        ResultRecord.from_dict({"testId": "x"})


def test_topics_from_sequence_dedupes_in_order() -> None:
    assert topics_from_sequence([" a|b ", "", "c|d", "a|b"]) == ("a|b", "c|d")
    assert topics_from_sequence(None) == ()
