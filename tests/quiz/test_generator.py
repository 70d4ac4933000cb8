from __future__ import annotations

import json
from pathlib import Path

import pytest

from cert_quiz.quiz.errors import GenerationFailure
from cert_quiz.quiz.generator import (
    BankQuizGenerator,
    GenerationRequest,
    OpenAIQuizGenerator,
    build_generation_prompt,
)
from fixtures import FakeOpenAIClient, question_dict, write_bank


def _request(**overrides) -> GenerationRequest:
    values = dict(
        exam_name="AWS Solutions Architect",
        exam_level="Associate",
        quiz_type="custom",
        selected_topics=("Security|IAM", "Networking|VPC", "Storage|S3"),
        question_count=2,
    )
    values.update(overrides)
    return GenerationRequest(**values)


def test_prompt_lists_topics_and_count() -> None:
    system, user = build_generation_prompt(_request())
    assert "JSON" in system
    assert "Create 2 mock multiple-choice questions" in user
    assert "IAM, VPC, S3" in user
    assert "Associate" in user

    _, complete = build_generation_prompt(
        _request(quiz_type="complete", selected_topics=())
    )
    assert "topics: AWS Solutions Architect." in complete


def test_openai_generator_parses_fenced_json() -> None:
    client = FakeOpenAIClient()
    questions = [
        {"question": "Q1?", "options": ["a", "b", "c", "d"],
         "correctAnswer": 2, "explanation": "x"},
        {"question": "Q2?", "options": ["a", "b", "c", "d"],
         "correctAnswer": [0, 1], "difficulty": "Hard", "topic": "VPC"},
    ]
    client.queue_response(
        "Here you go:\n```json\n" + json.dumps(questions) + "\n```"
    )
    generator = OpenAIQuizGenerator(client, model="gpt-test", max_tokens=99)

    payload = generator(_request())

    call = client.calls[0]
    assert call["model"] == "gpt-test"
    assert call["max_tokens"] == 99
    assert call["messages"][0]["role"] == "system"
    assert payload["examInfo"] == {
        "name": "AWS Solutions Architect",
        "type": "Custom Quiz",
        "totalQuestions": 2,
    }
    first, second = payload["questions"]
    assert first["id"] == 1
    assert first["topic"] == "IAM"
    assert first["difficulty"] == "Medium"
    assert second["correctAnswer"] == [0, 1]
    assert second["topic"] == "VPC"


@pytest.mark.parametrize(
    "content, message",
    [
        ("", "empty response"),
        ("no json here", "No JSON array"),
        ("[not valid json]", "Failed to parse"),
    ],
)
def test_openai_generator_bad_responses(content, message) -> None:
    client = FakeOpenAIClient()
    client.queue_response(content)
    with pytest.raises(GenerationFailure, match=message):
        OpenAIQuizGenerator(client)(_request())


def test_openai_generator_wraps_client_errors() -> None:
    client = FakeOpenAIClient(error=ConnectionError("offline"))
    with pytest.raises(GenerationFailure, match="offline") as info:
        OpenAIQuizGenerator(client)(_request())
    assert info.value.retryable


def test_openai_generator_reports_missing_credentials() -> None:
    def factory():
        raise RuntimeError("OPENAI_API_KEY not found")

    generator = OpenAIQuizGenerator(client_factory=factory)
    with pytest.raises(GenerationFailure, match="OPENAI_API_KEY"):
        generator(_request())


def _bank(tmp_path: Path) -> Path:
    path = tmp_path / "bank.jsonl"
    write_bank(
        path,
        [
            question_dict(1, topic="IAM"),
            question_dict(2, topic="IAM"),
            question_dict(3, topic="VPC"),
            question_dict(4, topic="Billing"),
        ],
    )
    return path


def test_bank_generator_filters_custom_topics(tmp_path: Path) -> None:
    generator = BankQuizGenerator(_bank(tmp_path), seed=7)
    payload = generator(_request(question_count=10))

    topics = sorted(q["topic"] for q in payload["questions"])
    assert topics == ["IAM", "IAM", "VPC"]
    assert [q["id"] for q in payload["questions"]] == [1, 2, 3]


def test_bank_generator_balances_topics(tmp_path: Path) -> None:
    generator = BankQuizGenerator(_bank(tmp_path), seed=1)
    payload = generator(_request(quiz_type="complete", question_count=3))
    assert sorted(q["topic"] for q in payload["questions"]) == [
        "Billing",
        "IAM",
        "VPC",
    ]


def test_bank_generator_failures(tmp_path: Path) -> None:
    with pytest.raises(GenerationFailure, match="not found"):
        BankQuizGenerator(tmp_path / "missing.jsonl")(_request())
    with pytest.raises(GenerationFailure, match="No questions"):
        BankQuizGenerator(_bank(tmp_path))(
            _request(selected_topics=("Databases|RDS",))
        )
