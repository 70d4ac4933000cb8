"""JSON-lines file helpers."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, List, Mapping

__all__ = ["read_jsonl", "append_jsonl"]

_LOGGER = logging.getLogger(__name__)


def read_jsonl(path: Path, *, skip_invalid: bool = False) -> List[Any]:
    """Parse every non-blank line of ``path``.

    A line that is not valid JSON raises ``json.JSONDecodeError`` unless
    ``skip_invalid`` is set, in which case it is logged and dropped.
    """

    data: List[Any] = []
    with Path(path).open("r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data.append(json.loads(line))
            except json.JSONDecodeError as exc:
                if not skip_invalid:
                    raise
                _LOGGER.warning(
                    "Skipping unreadable JSON line",
                    extra={
                        "path": str(path),
                        "line": lineno,
                        "error": str(exc),
                    },
                )
    return data


def append_jsonl(path: Path, record: Mapping[str, object]) -> None:
    """Append ``record`` as one line, starting a fresh line if needed."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps(record, ensure_ascii=False) + "\n"
    if p.is_file() and p.stat().st_size:
        with p.open("rb") as fh:
            fh.seek(-1, os.SEEK_END)
            if fh.read(1) != b"\n":
                line = "\n" + line
    with p.open("a", encoding="utf-8") as fh:
        fh.write(line)
