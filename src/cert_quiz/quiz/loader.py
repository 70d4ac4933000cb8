"""Quiz loader: resolve a cached quiz or generate a fresh one.

The loader is a small state machine (``IDLE -> LOADING -> READY | FAILED``)
owned by one (exam, quiz type, topics) tuple. While it is ``LOADING`` any
further load request is suppressed, so the generator sees at most one
outstanding call. Generation is split into ``begin`` and
``complete``/``fail`` so a caller can run the request elsewhere and hand the
result back; ``load`` does all three synchronously.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .errors import GenerationFailure
from .generator import GenerationRequest, QuizGenerator
from .models import QuizPayload, QuizSession, QuizType
from .store import QuizCache, SessionStore, session_fingerprint
from .transport import split_topic

__all__ = [
    "LoaderStatus",
    "LoaderState",
    "PendingGeneration",
    "QuizLoader",
    "LoaderRegistry",
]

_LOGGER = logging.getLogger(__name__)

_tickets = itertools.count(1)


class LoaderStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class LoaderState:
    status: LoaderStatus
    session: Optional[QuizSession] = None
    error: Optional[GenerationFailure] = None
    from_cache: bool = False


@dataclass(frozen=True)
class PendingGeneration:
    ticket: int
    request: GenerationRequest


_IDLE = LoaderState(LoaderStatus.IDLE)


class QuizLoader:
    def __init__(
        self,
        *,
        store: SessionStore,
        generator: QuizGenerator,
        exam_id: str,
        quiz_type: QuizType,
        topics: Sequence[str],
        request: GenerationRequest,
    ) -> None:
        self.exam_id = exam_id
        self.quiz_type = quiz_type
        self.topics: Tuple[str, ...] = tuple(topics)
        self.request = request
        self.cache = QuizCache(
            store, session_fingerprint(exam_id, quiz_type.value, self.topics)
        )
        self._generator = generator
        self._state = _IDLE
        self._pending: Optional[PendingGeneration] = None
        self._disposed = False

    @property
    def state(self) -> LoaderState:
        return self._state

    @property
    def key(self) -> str:
        return self.cache.key

    def load(self, *, force_refresh: bool = False) -> LoaderState:
        pending = self.begin(force_refresh=force_refresh)
        if pending is None:
            return self._state
        try:
            raw = self._generator(pending.request)
        except GenerationFailure as exc:
            return self.fail(pending, exc)
        except Exception as exc:
            _LOGGER.exception("Quiz generator raised unexpectedly")
            return self.fail(
                pending, GenerationFailure(f"Quiz generation failed: {exc}")
            )
        return self.complete(pending, raw)

    def begin(
        self, *, force_refresh: bool = False
    ) -> Optional[PendingGeneration]:
        """Resolve from cache or enter ``LOADING`` and return a ticket.

        Returns ``None`` when no generation call should be made: the loader
        is disposed, already loading, already ready, or served from cache.
        """

        if self._disposed:
            return None
        status = self._state.status
        if status is LoaderStatus.LOADING:
            _LOGGER.debug(
                "Suppressing duplicate quiz load", extra={"key": self.key}
            )
            return None
        if status is LoaderStatus.READY and not force_refresh:
            return None

        if not force_refresh:
            session = self._restore_cached()
            if session is not None:
                self._state = LoaderState(
                    LoaderStatus.READY, session=session, from_cache=True
                )
                _LOGGER.info("Resumed cached quiz", extra={"key": self.key})
                return None

        self._pending = PendingGeneration(next(_tickets), self.request)
        self._state = LoaderState(LoaderStatus.LOADING)
        return self._pending

    def complete(
        self, pending: PendingGeneration, raw: Mapping[str, Any]
    ) -> LoaderState:
        if not self._accepts(pending):
            return self._state
        try:
            payload = QuizPayload.from_dict(
                raw, default_topic=self._default_topic()
            )
        except ValueError as exc:
            return self.fail(
                pending, GenerationFailure(f"Malformed quiz data: {exc}")
            )

        self._pending = None
        session = QuizSession(
            exam_id=self.exam_id,
            quiz_type=self.quiz_type,
            topics=self.topics,
            payload=payload,
        )
        self.cache.save_payload(payload.to_dict())
        self.cache.save_progress(session.progress_to_dict())
        self._state = LoaderState(LoaderStatus.READY, session=session)
        _LOGGER.info(
            "Generated quiz",
            extra={"key": self.key, "questions": session.total},
        )
        return self._state

    def fail(
        self, pending: PendingGeneration, error: GenerationFailure
    ) -> LoaderState:
        if not self._accepts(pending):
            return self._state
        self._pending = None
        self._state = LoaderState(LoaderStatus.FAILED, error=error)
        _LOGGER.warning(
            "Quiz generation failed",
            extra={"key": self.key, "error": str(error)},
        )
        return self._state

    def retry(self) -> LoaderState:
        if self._state.status is LoaderStatus.FAILED:
            self._state = _IDLE
        return self.load()

    def dispose(self) -> None:
        """Stop applying results; late completions are discarded."""

        self._disposed = True
        self._pending = None

    def _accepts(self, pending: PendingGeneration) -> bool:
        if self._disposed or self._pending is None:
            _LOGGER.debug(
                "Discarding late generation result",
                extra={"key": self.key, "ticket": pending.ticket},
            )
            return False
        return pending.ticket == self._pending.ticket

    def _default_topic(self) -> str:
        if self.request.selected_topics:
            return split_topic(self.request.selected_topics[0])[1]
        return "General"

    def _restore_cached(self) -> Optional[QuizSession]:
        cached = self.cache.load_payload()
        if cached is None:
            return None
        try:
            payload = QuizPayload.from_dict(cached)
        except ValueError as exc:
            _LOGGER.warning(
                "Discarding malformed cached quiz",
                extra={"key": self.key, "error": str(exc)},
            )
            self.cache.clear()
            return None
        session = QuizSession(
            exam_id=self.exam_id,
            quiz_type=self.quiz_type,
            topics=self.topics,
            payload=payload,
        )
        progress = self.cache.load_progress()
        if isinstance(progress, Mapping):
            session.restore_progress(progress)
        return session


class LoaderRegistry:
    """One loader per session fingerprint, so a tuple never loads twice."""

    def __init__(self, store: SessionStore, generator: QuizGenerator):
        self._store = store
        self._generator = generator
        self._loaders: Dict[str, QuizLoader] = {}

    def loader_for(
        self,
        *,
        exam_id: str,
        quiz_type: QuizType,
        topics: Sequence[str],
        request: GenerationRequest,
    ) -> QuizLoader:
        key = session_fingerprint(exam_id, quiz_type.value, topics)
        loader = self._loaders.get(key)
        if loader is None:
            loader = QuizLoader(
                store=self._store,
                generator=self._generator,
                exam_id=exam_id,
                quiz_type=quiz_type,
                topics=topics,
                request=request,
            )
            self._loaders[key] = loader
        return loader

    def discard(self, key: str) -> None:
        loader = self._loaders.pop(key, None)
        if loader is not None:
            loader.dispose()
