"""Configuration loader for cert-quiz."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import Mapping, MutableMapping, Optional

from cert_quiz.core import config as core_config
from cert_quiz.core import workspace as workspace_mod

CONFIG_FILENAME = "cert_quiz.toml"
CONFIG_ENV = "CERT_QUIZ_CONFIG"
ENV_PREFIX = "CERT_QUIZ_"

_DEFAULT_MODEL = "gpt-4o-mini"
_DEFAULT_LOG_LEVEL = "INFO"
_PAPERS = ("a4", "letter")


class CertQuizConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


class GenerationProvider(Enum):
    OPENAI = "openai"
    BANK = "bank"

    @classmethod
    def from_value(cls, value: str) -> "GenerationProvider":
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise CertQuizConfigError(
            f"Unknown generation provider '{value}'. Expected one of: "
            f"{expected}."
        )


@dataclass(frozen=True)
class GenerationConfig:
    provider: GenerationProvider
    model: str
    temperature: float
    max_tokens: int
    question_count: int
    bank_path: Optional[Path]


@dataclass(frozen=True)
class QuizConfig:
    min_custom_topics: int
    results_grace_seconds: float


@dataclass(frozen=True)
class ReportConfig:
    paper: str
    margin_mm: float


@dataclass(frozen=True)
class CertQuizConfig:
    """Fully resolved configuration for a cert-quiz run."""

    generation: GenerationConfig
    quiz: QuizConfig
    report: ReportConfig
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    provider: Optional[GenerationProvider] = None
    model: Optional[str] = None
    question_count: Optional[int] = None
    bank_path: Optional[Path] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    config: CertQuizConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def template_text() -> str:
    """Return the packaged ``cert_quiz.toml`` template."""

    resource = resources.files("cert_quiz.templates").joinpath(CONFIG_FILENAME)
    return resource.read_text(encoding="utf-8")


def default_config_path(layout: workspace_mod.WorkspaceLayout) -> Path:
    return layout.path_for("config") / CONFIG_FILENAME


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    layout = workspace_mod.ensure_workspace(env=env_map, path=workspace_path)
    requested_path = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=default_config_path(layout),
    )

    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested_path.exists():
        loaded_path = requested_path
        try:
            table = core_config.overlay(
                table, core_config.load_toml(requested_path)
            )
        except core_config.TomlConfigError as exc:
            raise CertQuizConfigError(str(exc)) from exc
    elif config_path is not None or _has_env_config(env_map):
        raise CertQuizConfigError(f"Config file not found: {requested_path}")

    gen = table["generation"]
    provider = overrides.provider or GenerationProvider.from_value(
        _pick_first(_env_string(env_map, "PROVIDER"), gen["provider"])
    )
    model = _require_string(
        _pick_first(overrides.model, _env_string(env_map, "MODEL"),
                    gen["model"]),
        "generation.model",
    )
    temperature = _coerce_float(
        _pick_first(_env_string(env_map, "TEMPERATURE"), gen["temperature"]),
        "generation.temperature",
        minimum=0.0,
    )
    max_tokens = _coerce_int(gen["max_tokens"], "generation.max_tokens")
    question_count = _coerce_int(
        _pick_first(
            overrides.question_count,
            _env_string(env_map, "QUESTION_COUNT"),
            gen["question_count"],
        ),
        "generation.question_count",
    )
    bank_path = _resolve_bank_path(
        _pick_first(
            overrides.bank_path,
            _env_string(env_map, "BANK_PATH"),
            gen["bank_path"],
        ),
        layout=layout,
    )
    if provider is GenerationProvider.BANK and bank_path is None:
        raise CertQuizConfigError(
            "generation.bank_path is required when provider is 'bank'."
        )

    quiz = table["quiz"]
    report = table["report"]
    paper = _require_string(report["paper"], "report.paper").lower()
    if paper not in _PAPERS:
        raise CertQuizConfigError(
            f"report.paper must be one of: {', '.join(_PAPERS)}."
        )

    config = CertQuizConfig(
        generation=GenerationConfig(
            provider=provider,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            question_count=question_count,
            bank_path=bank_path,
        ),
        quiz=QuizConfig(
            min_custom_topics=_coerce_int(
                quiz["min_custom_topics"], "quiz.min_custom_topics"
            ),
            results_grace_seconds=_coerce_float(
                quiz["results_grace_seconds"],
                "quiz.results_grace_seconds",
                minimum=0.0,
            ),
        ),
        report=ReportConfig(
            paper=paper,
            margin_mm=_coerce_float(
                report["margin_mm"], "report.margin_mm", minimum=5.0
            ),
        ),
        log_level=_require_string(
            _pick_first(
                overrides.log_level,
                _env_string(env_map, "LOG_LEVEL"),
                table["logging"]["level"],
            ),
            "logging.level",
        ).upper(),
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _default_table() -> MutableMapping[str, MutableMapping[str, object]]:
    return {
        "generation": {
            "provider": GenerationProvider.OPENAI.value,
            "model": _DEFAULT_MODEL,
            "temperature": 0.2,
            "max_tokens": 4000,
            "question_count": 10,
            "bank_path": "",
        },
        "quiz": {"min_custom_topics": 3, "results_grace_seconds": 2.0},
        "report": {"paper": "a4", "margin_mm": 20.0},
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = env_map.get(CONFIG_ENV)
    if env_candidate and env_candidate.strip():
        return Path(env_candidate.strip()).expanduser()
    return default_path


def _has_env_config(env_map: Mapping[str, str]) -> bool:
    env_candidate = env_map.get(CONFIG_ENV)
    return bool(env_candidate and env_candidate.strip())


def _resolve_bank_path(
    value: object, *, layout: workspace_mod.WorkspaceLayout
) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
        value = Path(value.strip())
    if not isinstance(value, Path):
        raise CertQuizConfigError("generation.bank_path must be a string.")
    candidate = value.expanduser()
    if not candidate.is_absolute():
        return (layout.home / candidate).resolve()
    return candidate


def _require_string(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise CertQuizConfigError(f"{name} must be a non-empty string.")
    return value.strip()


def _coerce_int(value: object, name: str) -> int:
    if isinstance(value, bool):
        raise CertQuizConfigError(f"{name} must be an integer.")
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise CertQuizConfigError(f"{name} must be an integer.") from exc
    if number < 1:
        raise CertQuizConfigError(f"{name} must be at least 1.")
    return number


def _coerce_float(value: object, name: str, *, minimum: float) -> float:
    if isinstance(value, bool):
        raise CertQuizConfigError(f"{name} must be a number.")
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise CertQuizConfigError(f"{name} must be a number.") from exc
    if number < minimum:
        raise CertQuizConfigError(f"{name} must be at least {minimum}.")
    return number


def _env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
