"""Quiz generation collaborators.

A generator is any callable taking a :class:`GenerationRequest` and
returning the wire payload ``{"examInfo": {...}, "questions": [...]}``.
Failures are reported as :class:`GenerationFailure`; payload validation
happens in the loader so every generator is checked the same way.
"""

from __future__ import annotations

import json
import logging
import random
import re
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
)

from ..core.ai import load_client
from ..core.files import read_jsonl
from .errors import GenerationFailure
from .transport import split_topic

__all__ = [
    "GenerationRequest",
    "QuizGenerator",
    "OpenAIQuizGenerator",
    "BankQuizGenerator",
    "build_generation_prompt",
    "exam_type_label",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_QUESTION_COUNT = 10


@dataclass(frozen=True)
class GenerationRequest:
    exam_name: str
    exam_level: str
    quiz_type: str
    selected_topics: Tuple[str, ...]
    question_count: int = DEFAULT_QUESTION_COUNT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "examName": self.exam_name,
            "examLevel": self.exam_level,
            "quizType": self.quiz_type,
            "selectedTopics": list(self.selected_topics),
            "questionCount": self.question_count,
        }


class QuizGenerator(Protocol):
    def __call__(self, request: GenerationRequest) -> Mapping[str, Any]: ...


def exam_type_label(quiz_type: str) -> str:
    return "Complete Quiz" if quiz_type == "complete" else "Custom Quiz"


def _exam_info(request: GenerationRequest) -> Dict[str, Any]:
    return {
        "name": request.exam_name,
        "type": exam_type_label(request.quiz_type),
        "totalQuestions": request.question_count,
    }


def build_generation_prompt(request: GenerationRequest) -> Tuple[str, str]:
    """Return (system, user) prompts asking for a JSON array of questions."""

    topics = ", ".join(
        split_topic(topic)[1] for topic in request.selected_topics
    ) or request.exam_name
    system_prompt = (
        "You write realistic certification practice questions and answer "
        "only with JSON."
    )
    user_prompt = (
        f"Create {request.question_count} mock multiple-choice questions for "
        f"the {request.exam_name} certification exam at the "
        f"{request.exam_level} level.\n\n"
        f"Emphasize the following topics: {topics}.\n\n"
        "Make half of the questions scenario-based or practical and half "
        "conceptual.\n"
        "For each question include: the question text; four answer options "
        "WITHOUT letter prefixes; the correct answer index (0-3); a detailed "
        "explanation; a difficulty (Easy, Medium or Hard); the topic.\n"
        "Some questions should have a single answer and some should allow "
        "multiple correct answers; for those use an array such as [0, 2].\n\n"
        "Return a JSON array of objects with this structure:\n"
        '{"id": 1, "question": str, "options": [str, str, str, str], '
        '"correctAnswer": int | [int], "explanation": str, '
        '"difficulty": str, "topic": str}'
    )
    return system_prompt, user_prompt


def _extract_json_array(content: str) -> List[Any]:
    fenced = re.search(r"```(?:json)?\s*(.+?)```", content, re.DOTALL)
    payload = fenced.group(1) if fenced else content
    match = re.search(r"\[.*\]", payload, re.DOTALL)
    if not match:
        raise GenerationFailure("No JSON array found in model response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise GenerationFailure("Failed to parse model response") from exc
    if not isinstance(data, list):
        raise GenerationFailure("Model response is not a JSON array")
    return data


def _normalize_question(
    raw: Mapping[str, Any], position: int, default_topic: str
) -> Dict[str, Any]:
    options = raw.get("options")
    return {
        "id": position + 1,
        "question": raw.get("question") or f"Question {position + 1}",
        "options": options if isinstance(options, list) else [],
        "correctAnswer": raw.get("correctAnswer", 0),
        "explanation": raw.get("explanation") or "No explanation provided",
        "difficulty": raw.get("difficulty") or "Medium",
        "topic": raw.get("topic") or default_topic,
    }


class OpenAIQuizGenerator:
    """Generate questions with an OpenAI chat completion."""

    def __init__(
        self,
        client: object = None,
        *,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        max_tokens: int = 4000,
        client_factory: Callable[[], object] = load_client,
    ) -> None:
        self._client = client
        self._client_factory = client_factory
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _resolve_client(self) -> object:
        if self._client is None:
            try:
                self._client = self._client_factory()
            except RuntimeError as exc:
                raise GenerationFailure(str(exc)) from exc
        return self._client

    def __call__(self, request: GenerationRequest) -> Dict[str, Any]:
        client = self._resolve_client()
        system_prompt, user_prompt = build_generation_prompt(request)
        _LOGGER.info(
            "Requesting quiz generation",
            extra={"request": request.to_dict(), "model": self.model},
        )
        try:
            resp = client.chat.completions.create(  # type: ignore[attr-defined]
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
            content = (resp.choices[0].message.content or "").strip()
        except Exception as exc:
            raise GenerationFailure(f"Quiz generation failed: {exc}") from exc
        if not content:
            raise GenerationFailure("Model returned an empty response")

        records = _extract_json_array(content)
        default_topic = (
            split_topic(request.selected_topics[0])[1]
            if request.selected_topics
            else "General"
        )
        questions = [
            _normalize_question(rec, i, default_topic)
            for i, rec in enumerate(records)
            if isinstance(rec, Mapping)
        ]
        return {"examInfo": _exam_info(request), "questions": questions}


def _topic_matches(question_topic: str, selected: Sequence[str]) -> bool:
    needle = question_topic.strip().lower()
    for entry in selected:
        category, topic = split_topic(entry)
        candidates = {entry.lower(), topic.lower(), category.lower()}
        if needle in candidates:
            return True
    return False


def _balanced_pick(
    bank: Sequence[Dict[str, Any]], num: int, rng: random.Random
) -> List[Dict[str, Any]]:
    groups: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    for question in bank:
        groups[str(question.get("topic", ""))].append(question)
    for questions in groups.values():
        rng.shuffle(questions)
    topics = sorted(groups)
    selected: List[Dict[str, Any]] = []
    # round-robin across topics before repeating any question
    while len(selected) < min(num, len(bank)):
        for topic in topics:
            if groups[topic] and len(selected) < num:
                selected.append(groups[topic].pop())
    return selected


class BankQuizGenerator:
    """Serve questions from a local JSON-lines question bank.

    Custom quizzes only draw questions whose ``topic`` matches one of the
    selected ``category|topic`` entries; complete quizzes draw from the
    whole bank. Selection round-robins across topics.
    """

    def __init__(self, bank_path: Path, *, seed: Optional[int] = None):
        self.bank_path = Path(bank_path)
        self.seed = seed

    def _load_bank(self) -> List[Dict[str, Any]]:
        try:
            bank = read_jsonl(self.bank_path)
        except FileNotFoundError as exc:
            raise GenerationFailure(
                f"Question bank not found: {self.bank_path}"
            ) from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise GenerationFailure(
                f"Question bank unreadable: {self.bank_path}: {exc}"
            ) from exc
        return bank

    def __call__(self, request: GenerationRequest) -> Dict[str, Any]:
        bank = self._load_bank()
        if request.quiz_type == "custom":
            bank = [
                q
                for q in bank
                if _topic_matches(
                    str(q.get("topic", "")), request.selected_topics
                )
            ]
        if not bank:
            raise GenerationFailure(
                "No questions in the bank match the selected topics"
            )
        picked = _balanced_pick(
            bank, request.question_count, random.Random(self.seed)
        )
        questions = [dict(q, id=i + 1) for i, q in enumerate(picked)]
        return {"examInfo": _exam_info(request), "questions": questions}
