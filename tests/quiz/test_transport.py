from __future__ import annotations

import base64
import json
from urllib.parse import quote

import pytest

from cert_quiz.quiz.errors import DecodeFailure
from cert_quiz.quiz.transport import (
    CUSTOM_MIN_TOPICS,
    DEMO_MIN_TOPICS,
    decode_topics,
    decode_topics_strict,
    encode_topics,
    join_topic,
    split_topic,
    validate_topic_selection,
)

TOPICS = ["Design Resilient Architectures|Multi-AZ", "Security|IAM é"]


def test_encode_decode_is_reversible() -> None:
    token = encode_topics(TOPICS)
    assert "=" not in token
    assert decode_topics(token) == TOPICS


def test_decode_accepts_standard_base64_and_plain_json() -> None:
    standard = base64.b64encode(json.dumps(TOPICS).encode()).decode()
    assert decode_topics(standard) == TOPICS
    assert decode_topics(quote(json.dumps(TOPICS))) == TOPICS
    assert decode_topics(json.dumps(TOPICS)) == TOPICS


@pytest.mark.parametrize(
    "token",
    ["%%%not-base64", encode_topics([]) + "garbage!", "eyJhIjogMX0", "[1, 2]"],
)
def test_corrupted_tokens_degrade_to_empty_selection(token) -> None:
    assert decode_topics(token) == []
    with pytest.raises(DecodeFailure):
        decode_topics_strict(token)


def test_empty_token() -> None:
    assert decode_topics(None) == []
    assert decode_topics_strict("  ") == []


def test_split_and_join_topic() -> None:
    assert split_topic("Security | IAM") == ("Security", "IAM")
    assert split_topic("IAM") == ("", "IAM")
    assert join_topic("Security", "IAM") == "Security|IAM"
    assert join_topic("", "IAM") == "IAM"


def test_topic_minimums_by_entry_point() -> None:
    assert (CUSTOM_MIN_TOPICS, DEMO_MIN_TOPICS) == (3, 2)
    validate_topic_selection(["a", "b"], minimum=DEMO_MIN_TOPICS)
    with pytest.raises(ValueError, match="at least 3"):
        validate_topic_selection(["a", "b"])
