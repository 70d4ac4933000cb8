"""Session store: scoped key/value persistence for in-progress quizzes.

The store is a thin facade over a backend. ``FileBackend`` keeps one JSON
document per key under the workspace ``sessions/`` directory;
``MemoryBackend`` serves tests and is the fallback whenever the file
backend cannot be used. Storage trouble is logged and never fatal.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Protocol

from .errors import StoreUnavailable

__all__ = [
    "StoreBackend",
    "MemoryBackend",
    "FileBackend",
    "SessionStore",
    "TransientSlot",
    "session_fingerprint",
    "topic_fingerprint",
    "QuizCache",
    "RESULTS_SLOT_KEY",
]

_LOGGER = logging.getLogger(__name__)

RESULTS_SLOT_KEY = "quiz_results"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def topic_fingerprint(topics: Iterable[str]) -> str:
    """Order-independent digest of a topic selection ("" when empty)."""

    normalized = sorted({str(t).strip() for t in topics if str(t).strip()})
    if not normalized:
        return ""
    digest = hashlib.sha256(
        json.dumps(normalized, ensure_ascii=False).encode("utf-8")
    )
    return digest.hexdigest()[:16]


def session_fingerprint(
    exam_id: str, quiz_type: str, topics: Iterable[str] = ()
) -> str:
    """Cache key for the (exam, quiz type, topics) tuple."""

    key = f"quiz_{exam_id}_{quiz_type}"
    fingerprint = topic_fingerprint(topics)
    if fingerprint:
        key = f"{key}_{fingerprint}"
    return key


class StoreBackend(Protocol):
    def read(self, key: str) -> Optional[str]: ...

    def write(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryBackend:
    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def write(self, key: str, value: str) -> None:
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._items)


class FileBackend:
    """One JSON file per key inside ``root``."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        slug = _UNSAFE_CHARS.sub("_", key).strip("_")[:80] or "entry"
        suffix = hashlib.sha1(key.encode("utf-8")).hexdigest()[:8]
        return self._root / f"{slug}-{suffix}.json"

    def read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreUnavailable(f"Cannot read {path}: {exc}") from exc

    def write(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp = path.with_suffix(".tmp")
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            tmp.write_text(value, encoding="utf-8")
            tmp.replace(path)
        except OSError as exc:
            raise StoreUnavailable(f"Cannot write {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StoreUnavailable(f"Cannot delete {path}: {exc}") from exc


class SessionStore:
    """JSON value store that degrades to memory when its backend fails."""

    def __init__(self, backend: Optional[StoreBackend] = None) -> None:
        self._backend: StoreBackend = backend or MemoryBackend()
        self._degraded = False

    @property
    def degraded(self) -> bool:
        return self._degraded

    def get(self, key: str) -> Any:
        raw = self._call("read", key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            _LOGGER.warning(
                "Discarding unreadable session entry", extra={"key": key}
            )
            self.remove(key)
            return None

    def set(self, key: str, value: Any) -> None:
        self._call("write", key, json.dumps(value, ensure_ascii=False))

    def remove(self, key: str) -> None:
        self._call("delete", key)

    def _call(self, method: str, *args: str) -> Any:
        try:
            return getattr(self._backend, method)(*args)
        except StoreUnavailable as exc:
            self._degrade(exc)
            return getattr(self._backend, method)(*args)

    def _degrade(self, exc: StoreUnavailable) -> None:
        _LOGGER.warning(
            "Session storage unavailable; continuing in memory only",
            extra={"error": str(exc)},
        )
        self._backend = MemoryBackend()
        self._degraded = True


class TransientSlot:
    """Single-read hand-off slot: ``consume()`` returns the value once."""

    def __init__(self, store: SessionStore, key: str = RESULTS_SLOT_KEY):
        self._store = store
        self._key = key

    def put(self, value: Any) -> None:
        self._store.set(self._key, value)

    def consume(self) -> Any:
        value = self._store.get(self._key)
        if value is not None:
            self._store.remove(self._key)
        return value

    def clear(self) -> None:
        self._store.remove(self._key)


class QuizCache:
    """The two store entries owned by one quiz session.

    ``<key>`` holds the generated quiz payload and ``<key>_answers`` holds
    progress (selections, current index, start time).
    """

    def __init__(self, store: SessionStore, key: str) -> None:
        self.store = store
        self.key = key

    @property
    def progress_key(self) -> str:
        return f"{self.key}_answers"

    def load_payload(self) -> Any:
        return self.store.get(self.key)

    def save_payload(self, payload: Any) -> None:
        self.store.set(self.key, payload)

    def load_progress(self) -> Any:
        return self.store.get(self.progress_key)

    def save_progress(self, progress: Any) -> None:
        self.store.set(self.progress_key, progress)

    def clear(self) -> None:
        self.store.remove(self.key)
        self.store.remove(self.progress_key)
