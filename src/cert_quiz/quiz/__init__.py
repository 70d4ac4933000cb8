from .errors import (
    DecodeFailure,
    GenerationFailure,
    IncompleteSubmission,
    PersistenceFailure,
    QuizError,
    StoreUnavailable,
)
from .generator import (
    BankQuizGenerator,
    GenerationRequest,
    OpenAIQuizGenerator,
    build_generation_prompt,
)
from .loader import LoaderRegistry, LoaderState, LoaderStatus, QuizLoader
from .models import (
    MultipleAnswer,
    Question,
    QuizPayload,
    QuizSession,
    QuizType,
    ResultRecord,
    ScoreResult,
    SingleAnswer,
)
from .navigator import Navigator, QuestionStatus
from .results import ResultsView, build_results_view, package_result
from .scoring import PASS_THRESHOLD, is_correct, score_session
from .storage import JsonlResultStorage
from .store import (
    FileBackend,
    MemoryBackend,
    QuizCache,
    SessionStore,
    TransientSlot,
    session_fingerprint,
)
from .submission import SubmissionOutcome, consume_results, submit_quiz
from .tracker import AnswerTracker
from .transport import (
    CUSTOM_MIN_TOPICS,
    DEMO_MIN_TOPICS,
    decode_topics,
    decode_topics_strict,
    encode_topics,
)

__all__ = [
    "QuizError",
    "GenerationFailure",
    "IncompleteSubmission",
    "DecodeFailure",
    "PersistenceFailure",
    "StoreUnavailable",
    "GenerationRequest",
    "OpenAIQuizGenerator",
    "BankQuizGenerator",
    "build_generation_prompt",
    "QuizLoader",
    "LoaderRegistry",
    "LoaderState",
    "LoaderStatus",
    "Question",
    "QuizPayload",
    "QuizSession",
    "QuizType",
    "SingleAnswer",
    "MultipleAnswer",
    "ResultRecord",
    "ScoreResult",
    "Navigator",
    "QuestionStatus",
    "AnswerTracker",
    "PASS_THRESHOLD",
    "is_correct",
    "score_session",
    "package_result",
    "build_results_view",
    "ResultsView",
    "JsonlResultStorage",
    "SessionStore",
    "MemoryBackend",
    "FileBackend",
    "QuizCache",
    "TransientSlot",
    "session_fingerprint",
    "submit_quiz",
    "consume_results",
    "SubmissionOutcome",
    "CUSTOM_MIN_TOPICS",
    "DEMO_MIN_TOPICS",
    "encode_topics",
    "decode_topics",
    "decode_topics_strict",
]
