"""Durable result storage backed by a JSON-lines history file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol

from ..core.files import append_jsonl, read_jsonl
from .errors import PersistenceFailure
from .models import ResultRecord

__all__ = ["ResultStorage", "JsonlResultStorage", "HISTORY_FILENAME"]

_LOGGER = logging.getLogger(__name__)

HISTORY_FILENAME = "history.jsonl"


class ResultStorage(Protocol):
    def save(self, record: ResultRecord) -> None: ...


class JsonlResultStorage:
    """Append-only result history, one record per line."""

    def __init__(self, results_dir: Path) -> None:
        self.path = Path(results_dir) / HISTORY_FILENAME

    def save(self, record: ResultRecord) -> None:
        try:
            append_jsonl(self.path, record.to_dict())
        except OSError as exc:
            raise PersistenceFailure(
                f"Could not save result {record.test_id}: {exc}"
            ) from exc
        _LOGGER.info(
            "Saved result",
            extra={"test_id": record.test_id, "path": str(self.path)},
        )

    def list_records(self) -> List[ResultRecord]:
        if not self.path.exists():
            return []
        try:
            rows = read_jsonl(self.path, skip_invalid=True)
        except OSError as exc:
            raise PersistenceFailure(
                f"Could not read result history {self.path}: {exc}"
            ) from exc
        records: List[ResultRecord] = []
        for row in rows:
            try:
                records.append(ResultRecord.from_dict(row))
            except ValueError as exc:
                _LOGGER.warning(
                    "Skipping malformed history entry",
                    extra={"error": str(exc)},
                )
        return records

    def get(self, test_id: str) -> Optional[ResultRecord]:
        for record in self.list_records():
            if record.test_id == test_id:
                return record
        return None
