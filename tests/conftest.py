from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from cert_quiz.quiz.store import MemoryBackend, QuizCache, SessionStore  # noqa: E402
from fixtures import HTMLFake  # noqa: E402


@pytest.fixture
def memory_backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(memory_backend: MemoryBackend) -> SessionStore:
    return SessionStore(memory_backend)


@pytest.fixture
def cache(store: SessionStore) -> QuizCache:
    return QuizCache(store, "quiz_saa-c03_complete")


@pytest.fixture
def workspace_env(tmp_path: Path) -> Dict[str, str]:
    """Environment mapping that points the workspace at a tmp directory."""

    return {"CERT_QUIZ_DATA_HOME": str(tmp_path / "data")}


@pytest.fixture(autouse=True)
def _clear_pdf_calls() -> Iterator[None]:
    HTMLFake.pop_calls()
    yield
    HTMLFake.pop_calls()
