"""Read, overlay and write the TOML tables behind ``cert_quiz.toml``."""

from __future__ import annotations

import copy
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Mapping

__all__ = [
    "TomlConfigError",
    "load_toml",
    "overlay",
    "write_toml_template",
]


class TomlConfigError(RuntimeError):
    """A config file is missing, unparsable, or does not match the schema."""


def load_toml(path: Path) -> Dict[str, Any]:
    try:
        with Path(path).open("rb") as fh:
            return tomllib.load(fh)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Could not parse {path}: {exc}") from exc


def overlay(
    defaults: Mapping[str, Any], loaded: Mapping[str, Any]
) -> Dict[str, Any]:
    """Return a copy of ``defaults`` with ``loaded`` laid over it.

    ``defaults`` doubles as the schema: every key in ``loaded`` must already
    exist there, and nested tables must stay tables. Unknown keys are
    collected and reported in a single error.
    """

    merged = copy.deepcopy(dict(defaults))
    unknown: List[str] = []
    _overlay_table(merged, loaded, prefix="", unknown=unknown)
    if unknown:
        listed = ", ".join(f"'{key}'" for key in unknown)
        raise TomlConfigError(f"Unknown configuration key(s): {listed}.")
    return merged


def _overlay_table(
    target: Dict[str, Any],
    loaded: Mapping[str, Any],
    *,
    prefix: str,
    unknown: List[str],
) -> None:
    for key, value in loaded.items():
        dotted = prefix + key
        if key not in target:
            unknown.append(dotted)
            continue
        if isinstance(target[key], dict):
            if not isinstance(value, Mapping):
                raise TomlConfigError(
                    f"[{dotted}] must be a table, not "
                    f"{type(value).__name__}."
                )
            _overlay_table(
                target[key], value, prefix=f"{dotted}.", unknown=unknown
            )
        else:
            target[key] = value


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
    mode: int = 0o600,
) -> Path:
    """Write a config template, refusing to clobber an existing file."""

    if path.exists() and not overwrite:
        raise TomlConfigError(
            f"Config already exists: {path} (pass --force to replace it)"
        )
    try:
        tomllib.loads(template)
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Template is not valid TOML: {exc}") from exc
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(template, encoding="utf-8")
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - filesystem dependent
        pass
    return path
