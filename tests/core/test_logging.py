from __future__ import annotations

import json
import logging
from pathlib import Path

from cert_quiz.core import logging as core_logging


def _close(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_configure_logger_writes_json(tmp_path: Path) -> None:
    logger, log_path = core_logging.configure_logger(
        "cert_quiz.test_json", log_dir=tmp_path / "logs", level="INFO"
    )
    try:
        logger.info("quiz loaded", extra={"key": "quiz_x", "count": 3})
        logger.debug("hidden")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.exception(
                "failed", extra={"path": tmp_path, "items": {1, 2}}
            )
        for handler in logger.handlers:
            handler.flush()

        lines = log_path.read_text(encoding="utf-8").strip().splitlines()
        assert log_path.name == "test_json.log"
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["message"] == "quiz loaded"
        assert first["level"] == "INFO"
        assert first["extra"] == {"key": "quiz_x", "count": 3}
        last = json.loads(lines[1])
        assert "ValueError: boom" in last["exception"]
        assert last["extra"]["path"] == str(tmp_path)
        assert sorted(last["extra"]["items"]) == [1, 2]
    finally:
        _close(logger)


def test_configure_logger_is_idempotent_and_toggles_console(
    tmp_path: Path,
) -> None:
    name = "cert_quiz.test_console"
    logger, first_path = core_logging.configure_logger(
        name, log_dir=tmp_path, verbose=True
    )
    try:
        assert len(logger.handlers) == 2
        again, second_path = core_logging.configure_logger(
            name, log_dir=tmp_path / "other", verbose=False
        )
        assert again is logger
        assert second_path == first_path
        assert len(logger.handlers) == 1
    finally:
        _close(logger)
