"""Quiz data model: questions, sessions, scores and result records.

Wire payloads (generator output, cached sessions, stored results) use the
camelCase keys produced by the quiz generation service. The dataclasses
here are the validated, immutable view of those payloads; ``from_dict``
raises ``ValueError`` with an actionable message when a payload is
malformed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Set, Tuple, Union


class QuizType(Enum):
    COMPLETE = "complete"
    CUSTOM = "custom"

    @classmethod
    def from_value(cls, value: str) -> "QuizType":
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ValueError(
            f"Unknown quiz type '{value}'. Expected one of: {expected}."
        )


@dataclass(frozen=True)
class SingleAnswer:
    """Exactly one correct option."""

    index: int

    @property
    def indices(self) -> frozenset[int]:
        return frozenset({self.index})


@dataclass(frozen=True)
class MultipleAnswer:
    """Select-all-that-apply: every listed option must be chosen."""

    indices: frozenset[int]


CorrectAnswer = Union[SingleAnswer, MultipleAnswer]


def parse_correct_answer(raw: object) -> CorrectAnswer:
    """Build the tagged answer from an index or a list of indices."""

    if isinstance(raw, bool):
        raise ValueError("correctAnswer must be an index or list of indices")
    if isinstance(raw, int):
        return SingleAnswer(raw)
    if isinstance(raw, (list, tuple)):
        if not raw:
            raise ValueError("correctAnswer list must not be empty")
        if not all(isinstance(i, int) and not isinstance(i, bool) for i in raw):
            raise ValueError("correctAnswer list must contain only indices")
        return MultipleAnswer(frozenset(raw))
    raise ValueError("correctAnswer must be an index or list of indices")


def correct_answer_to_json(answer: CorrectAnswer) -> Union[int, list[int]]:
    if isinstance(answer, SingleAnswer):
        return answer.index
    return sorted(answer.indices)


@dataclass(frozen=True)
class Question:
    id: str
    prompt: str
    options: Tuple[str, ...]
    correct_answer: CorrectAnswer
    explanation: str = ""
    difficulty: str = "Medium"
    topic: str = "General"

    @property
    def is_multiple(self) -> bool:
        return isinstance(self.correct_answer, MultipleAnswer)

    @property
    def correct_indices(self) -> frozenset[int]:
        return self.correct_answer.indices

    @classmethod
    def from_dict(
        cls,
        payload: Mapping[str, Any],
        *,
        position: int = 0,
        default_topic: str = "General",
    ) -> "Question":
        if not isinstance(payload, Mapping):
            raise ValueError("question must be a mapping")
        options = payload.get("options")
        if not isinstance(options, (list, tuple)):
            raise ValueError("question options must be a list")
        question = cls(
            id=str(payload.get("id", position + 1)),
            prompt=str(
                payload.get("question") or f"Question {position + 1}"
            ).strip(),
            options=tuple(str(option) for option in options),
            correct_answer=parse_correct_answer(payload.get("correctAnswer")),
            explanation=str(payload.get("explanation") or "").strip(),
            difficulty=str(payload.get("difficulty") or "Medium"),
            topic=str(payload.get("topic") or default_topic),
        )
        validate_question(question)
        return question

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "question": self.prompt,
            "options": list(self.options),
            "correctAnswer": correct_answer_to_json(self.correct_answer),
            "explanation": self.explanation,
            "difficulty": self.difficulty,
            "topic": self.topic,
        }


def validate_question(question: Question) -> None:
    """Check option count and that every referenced index is in range."""

    if len(question.options) < 2:
        raise ValueError(
            f"question {question.id} needs at least 2 options, "
            f"found {len(question.options)}"
        )
    if not all(option.strip() for option in question.options):
        raise ValueError(f"question {question.id} has an empty option")
    invalid = sorted(
        i for i in question.correct_indices
        if i < 0 or i >= len(question.options)
    )
    if invalid:
        raise ValueError(
            f"question {question.id} references invalid option index(es) "
            f"{invalid}"
        )


@dataclass(frozen=True)
class ExamInfo:
    name: str
    type: str
    total_questions: int

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ExamInfo":
        if not isinstance(payload, Mapping):
            raise ValueError("examInfo must be a mapping")
        return cls(
            name=str(payload.get("name", "")),
            type=str(payload.get("type", "")),
            total_questions=int(payload.get("totalQuestions", 0) or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "totalQuestions": self.total_questions,
        }


@dataclass(frozen=True)
class QuizPayload:
    """A generated (or cached) quiz: exam metadata plus ordered questions."""

    exam_info: ExamInfo
    questions: Tuple[Question, ...]

    @classmethod
    def from_dict(
        cls,
        payload: Mapping[str, Any],
        *,
        default_topic: str = "General",
    ) -> "QuizPayload":
        if not isinstance(payload, Mapping):
            raise ValueError("quiz payload must be a mapping")
        raw_questions = payload.get("questions")
        if not isinstance(raw_questions, list) or "examInfo" not in payload:
            raise ValueError("Invalid quiz data structure received")
        if not raw_questions:
            raise ValueError("quiz payload contains no questions")
        questions = tuple(
            Question.from_dict(item, position=i, default_topic=default_topic)
            for i, item in enumerate(raw_questions)
        )
        return cls(
            exam_info=ExamInfo.from_dict(payload["examInfo"]),
            questions=questions,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "examInfo": self.exam_info.to_dict(),
            "questions": [question.to_dict() for question in self.questions],
        }


@dataclass
class QuizSession:
    """Mutable state of one quiz attempt.

    ``answers`` only holds questions the user has touched; an entry with an
    empty set means the user selected and then cleared every option.
    """

    exam_id: str
    quiz_type: QuizType
    topics: Tuple[str, ...]
    payload: QuizPayload
    current_index: int = 0
    answers: Dict[int, Set[int]] = field(default_factory=dict)
    started_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def questions(self) -> Tuple[Question, ...]:
        return self.payload.questions

    @property
    def total(self) -> int:
        return len(self.payload.questions)

    @property
    def current(self) -> Question:
        return self.payload.questions[self.current_index]

    def selection_for(self, index: int) -> frozenset[int]:
        return frozenset(self.answers.get(index, ()))

    def answered_count(self) -> int:
        return sum(1 for i in range(self.total) if self.answers.get(i))

    def unanswered_count(self) -> int:
        return self.total - self.answered_count()

    def progress_percentage(self) -> float:
        if not self.total:
            return 0.0
        return self.answered_count() / self.total * 100

    def progress_to_dict(self) -> Dict[str, Any]:
        return {
            "currentQuestionIndex": self.current_index,
            "answers": {
                str(index): sorted(selection)
                for index, selection in self.answers.items()
            },
            "startedAt": self.started_at.isoformat(),
        }

    def restore_progress(self, progress: Mapping[str, Any]) -> None:
        """Apply cached progress, dropping entries that no longer fit."""

        answers: Dict[int, Set[int]] = {}
        raw_answers = progress.get("answers") or {}
        if isinstance(raw_answers, Mapping):
            for key, values in raw_answers.items():
                try:
                    index = int(key)
                except (TypeError, ValueError):
                    continue
                if not 0 <= index < self.total or not isinstance(
                    values, list
                ):
                    continue
                limit = len(self.questions[index].options)
                answers[index] = {
                    v for v in values
                    if isinstance(v, int) and 0 <= v < limit
                }
        self.answers = answers

        current = progress.get("currentQuestionIndex", 0)
        if isinstance(current, int) and 0 <= current < self.total:
            self.current_index = current

        started = progress.get("startedAt")
        if isinstance(started, str):
            try:
                self.started_at = datetime.fromisoformat(started)
            except ValueError:
                pass


@dataclass(frozen=True)
class ScoreResult:
    correctness: Tuple[bool, ...]
    correct_count: int
    total: int
    percentage: int
    passed: bool


@dataclass(frozen=True)
class QuestionOutcome:
    question_id: str
    question_text: str
    options: Tuple[str, ...]
    selected: Tuple[int, ...]
    correct: Tuple[int, ...]
    user_answer: str
    correct_answer: str
    is_correct: bool
    explanation: str
    difficulty: str
    topic: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questionId": self.question_id,
            "questionText": self.question_text,
            "options": list(self.options),
            "selected": list(self.selected),
            "correct": list(self.correct),
            "userAnswer": self.user_answer,
            "correctAnswer": self.correct_answer,
            "isCorrect": self.is_correct,
            "explanation": self.explanation,
            "difficulty": self.difficulty,
            "topic": self.topic,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "QuestionOutcome":
        return cls(
            question_id=str(payload.get("questionId", "")),
            question_text=str(payload.get("questionText", "")),
            options=tuple(str(o) for o in payload.get("options", [])),
            selected=tuple(int(i) for i in payload.get("selected", [])),
            correct=tuple(int(i) for i in payload.get("correct", [])),
            user_answer=str(payload.get("userAnswer", "")),
            correct_answer=str(payload.get("correctAnswer", "")),
            is_correct=bool(payload.get("isCorrect", False)),
            explanation=str(payload.get("explanation", "")),
            difficulty=str(payload.get("difficulty", "")),
            topic=str(payload.get("topic", "")),
        )


@dataclass(frozen=True)
class ResultRecord:
    """Durable projection of a scored attempt."""

    test_id: str
    exam_id: str
    certificate_name: str
    certificate_provider: str
    certificate_code: str
    email: Optional[str]
    score: int
    total_questions: int
    percentage: int
    passed: bool
    time_spent: int
    start_time: datetime
    end_time: datetime
    questions: Tuple[QuestionOutcome, ...]
    quiz_settings: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "testId": self.test_id,
            "examId": self.exam_id,
            "certificateName": self.certificate_name,
            "certificateProvider": self.certificate_provider,
            "certificateCode": self.certificate_code,
            "emailId": self.email,
            "score": self.score,
            "totalQuestions": self.total_questions,
            "percentage": self.percentage,
            "passed": self.passed,
            "timeSpent": self.time_spent,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
            "questions": [outcome.to_dict() for outcome in self.questions],
            "quizSettings": dict(self.quiz_settings),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ResultRecord":
        try:
            return cls(
                test_id=str(payload["testId"]),
                exam_id=str(payload.get("examId", "")),
                certificate_name=str(payload.get("certificateName", "")),
                certificate_provider=str(
                    payload.get("certificateProvider", "")
                ),
                certificate_code=str(payload.get("certificateCode", "")),
                email=payload.get("emailId"),
                score=int(payload["score"]),
                total_questions=int(payload["totalQuestions"]),
                percentage=int(payload["percentage"]),
                passed=bool(payload.get("passed", False)),
                time_spent=int(payload.get("timeSpent", 0)),
                start_time=datetime.fromisoformat(str(payload["startTime"])),
                end_time=datetime.fromisoformat(str(payload["endTime"])),
                questions=tuple(
                    QuestionOutcome.from_dict(item)
                    for item in payload.get("questions", [])
                ),
                quiz_settings=dict(payload.get("quizSettings") or {}),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Malformed result record: {exc}") from exc


def topics_from_sequence(values: Optional[Sequence[str]]) -> Tuple[str, ...]:
    """Normalize a topic list: strip blanks, keep first occurrence order."""

    seen: Dict[str, None] = {}
    for value in values or ():
        text = str(value).strip()
        if text and text not in seen:
            seen[text] = None
    return tuple(seen)
