"""Topic-selection transport: a reversible text token for a topic list.

Topics are ``"category|topic"`` strings. A token is the URL-safe base64 of
the JSON array. Decoding also accepts percent-encoded or raw JSON arrays,
which older links carried.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import List, Optional, Sequence, Tuple
from urllib.parse import unquote

from .errors import DecodeFailure

__all__ = [
    "CUSTOM_MIN_TOPICS",
    "DEMO_MIN_TOPICS",
    "encode_topics",
    "decode_topics",
    "decode_topics_strict",
    "split_topic",
    "join_topic",
    "validate_topic_selection",
]

_LOGGER = logging.getLogger(__name__)

# Custom quizzes need three topics; the demo entry point accepts two.
CUSTOM_MIN_TOPICS = 3
DEMO_MIN_TOPICS = 2

_SEPARATOR = "|"


def split_topic(value: str) -> Tuple[str, str]:
    """Split ``"category|topic"``; a bare topic has an empty category."""

    category, sep, topic = str(value).partition(_SEPARATOR)
    if not sep:
        return "", category.strip()
    return category.strip(), topic.strip()


def join_topic(category: str, topic: str) -> str:
    return f"{category}{_SEPARATOR}{topic}" if category else topic


def encode_topics(topics: Sequence[str]) -> str:
    raw = json.dumps(list(topics), ensure_ascii=False).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64_json(token: str) -> str:
    padded = token + "=" * (-len(token) % 4)
    altchars = b"-_" if ("-" in token or "_" in token) else None
    return base64.b64decode(padded, altchars=altchars, validate=True).decode(
        "utf-8"
    )


def decode_topics_strict(token: str) -> List[str]:
    """Decode a token or raise :class:`DecodeFailure`."""

    text = (token or "").strip()
    if not text:
        return []
    candidates: List[str] = []
    try:
        candidates.append(_b64_json(text))
    except (binascii.Error, ValueError):
        pass
    candidates.append(unquote(text))

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, list) and all(isinstance(t, str) for t in data):
            return data
    raise DecodeFailure("Topic selection token is not a JSON list of strings")


def decode_topics(token: Optional[str]) -> List[str]:
    """Decode a token, degrading to no pre-selection on any failure."""

    if not token:
        return []
    try:
        return decode_topics_strict(token)
    except DecodeFailure as exc:
        _LOGGER.warning(
            "Ignoring undecodable topic selection",
            extra={"error": str(exc), "token_length": len(token)},
        )
        return []


def validate_topic_selection(
    topics: Sequence[str], *, minimum: int = CUSTOM_MIN_TOPICS
) -> None:
    if len(topics) < minimum:
        raise ValueError(
            f"Select at least {minimum} topics for a custom quiz "
            f"({len(topics)} selected)."
        )
