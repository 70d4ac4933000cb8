from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Dict

import pytest

from cert_quiz.config import (
    CertQuizConfigError,
    ConfigOverrides,
    GenerationProvider,
    default_config_path,
    load_config,
    template_text,
)


def _write_config(env: Dict[str, str], body: str) -> Path:
    path = Path(env["CERT_QUIZ_DATA_HOME"]) / "config" / "cert_quiz.toml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
    return path


def test_defaults_without_config_file(workspace_env) -> None:
    result = load_config(env=workspace_env)

    assert result.config_path is None
    assert result.layout.home == Path(
        workspace_env["CERT_QUIZ_DATA_HOME"]
    ).resolve()
    gen = result.config.generation
    assert gen.provider is GenerationProvider.OPENAI
    assert gen.model == "gpt-4o-mini"
    assert gen.question_count == 10
    assert gen.bank_path is None
    assert result.config.quiz.min_custom_topics == 3
    assert result.config.report.paper == "a4"
    assert result.config.log_level == "INFO"


def test_packaged_template_parses_to_defaults(
    workspace_env, tmp_path
) -> None:
    parsed = tomllib.loads(template_text())
    assert set(parsed) == {"generation", "quiz", "report", "logging"}

    _write_config(workspace_env, template_text())
    result = load_config(env=workspace_env)
    defaults = load_config(
        env={"CERT_QUIZ_DATA_HOME": str(tmp_path / "empty")}
    )

    assert result.config_path == default_config_path(result.layout)
    assert defaults.config_path is None
    assert result.config == defaults.config


def test_precedence_cli_over_env_over_file(workspace_env) -> None:
    _write_config(
        workspace_env,
        '[generation]\nmodel = "from-file"\nquestion_count = 5\n'
        '[logging]\nlevel = "warning"\n',
    )
    env = {
        **workspace_env,
        "CERT_QUIZ_MODEL": "from-env",
        "CERT_QUIZ_QUESTION_COUNT": "7",
    }

    from_env = load_config(env=env).config
    assert from_env.generation.model == "from-env"
    assert from_env.generation.question_count == 7
    assert from_env.log_level == "WARNING"

    from_cli = load_config(
        env=env,
        overrides=ConfigOverrides(model="from-cli", question_count=3),
    ).config
    assert from_cli.generation.model == "from-cli"
    assert from_cli.generation.question_count == 3


def test_unknown_keys_are_rejected(workspace_env) -> None:
    _write_config(workspace_env, "[quiz]\ntime_limit = 30\n")

    with pytest.raises(CertQuizConfigError, match="quiz.time_limit"):
        load_config(env=workspace_env)


def test_bank_provider_requires_a_bank_path(workspace_env) -> None:
    with pytest.raises(CertQuizConfigError, match="bank_path is required"):
        load_config(
            env={**workspace_env, "CERT_QUIZ_PROVIDER": "bank"},
        )


def test_relative_bank_path_resolves_from_workspace(workspace_env) -> None:
    result = load_config(
        env={
            **workspace_env,
            "CERT_QUIZ_PROVIDER": "bank",
            "CERT_QUIZ_BANK_PATH": "banks/aws.jsonl",
        }
    )

    assert result.config.generation.provider is GenerationProvider.BANK
    assert result.config.generation.bank_path == (
        result.layout.home / "banks" / "aws.jsonl"
    ).resolve()


@pytest.mark.parametrize(
    "body,message",
    [
        ('[report]\npaper = "a3"\n', "report.paper"),
        ("[report]\nmargin_mm = 1\n", "report.margin_mm"),
        ('[generation]\nprovider = "llama"\n', "Unknown generation provider"),
        ("[generation]\nquestion_count = 0\n", "at least 1"),
        ('[generation]\ntemperature = "hot"\n', "must be a number"),
    ],
)
def test_invalid_values(workspace_env, body, message) -> None:
    _write_config(workspace_env, body)

    with pytest.raises(CertQuizConfigError, match=message):
        load_config(env=workspace_env)


def test_explicit_missing_config_is_an_error(workspace_env, tmp_path) -> None:
    with pytest.raises(CertQuizConfigError, match="not found"):
        load_config(env=workspace_env, config_path=tmp_path / "nope.toml")

    with pytest.raises(CertQuizConfigError, match="not found"):
        load_config(
            env={
                **workspace_env,
                "CERT_QUIZ_CONFIG": str(tmp_path / "nope.toml"),
            }
        )
