"""`cert-quiz` command dispatcher."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from importlib import import_module, metadata
from typing import Callable, Dict, Optional, Sequence, TextIO


@dataclass(frozen=True)
class CommandSpec:
    """A subcommand routed to ``module:func``, which takes ``argv``."""

    name: str
    summary: str
    target: str
    is_interactive: bool = False

    def load(self) -> Callable[[Sequence[str]], Optional[int]]:
        module_name, _, func_name = self.target.partition(":")
        return getattr(import_module(module_name), func_name)

    def run(self, argv: Sequence[str]) -> int:
        handler = self.load()
        saved_argv = sys.argv
        sys.argv = [f"cert-quiz {self.name}", *argv]
        try:
            result = handler(list(argv))
        except SystemExit as exc:
            return _exit_code(exc)
        finally:
            sys.argv = saved_argv
        return result if isinstance(result, int) else 0


_QUIZ_CLI = "cert_quiz.quiz.cli"

COMMANDS: Dict[str, CommandSpec] = {
    spec.name: spec
    for spec in (
        CommandSpec(
            "init",
            "Bootstrap the cert-quiz workspace.",
            "cert_quiz.workspace.cli:main",
        ),
        CommandSpec(
            "config",
            "Write the default cert_quiz.toml template.",
            f"{_QUIZ_CLI}:config_main",
        ),
        CommandSpec(
            "start",
            "Start or resume a certification practice quiz.",
            f"{_QUIZ_CLI}:start_main",
            is_interactive=True,
        ),
        CommandSpec(
            "history",
            "List stored quiz results.",
            f"{_QUIZ_CLI}:history_main",
        ),
        CommandSpec(
            "report",
            "Render a stored result as a PDF review report.",
            f"{_QUIZ_CLI}:report_main",
        ),
        CommandSpec(
            "topics",
            "Encode or decode topic-selection tokens.",
            f"{_QUIZ_CLI}:topics_main",
        ),
    )
}


def format_command_table() -> str:
    width = max(len(name) for name in COMMANDS)
    rows = ["Available commands:"]
    for spec in COMMANDS.values():
        marker = " (interactive)" if spec.is_interactive else ""
        rows.append(f"  {spec.name:<{width}}  {spec.summary}{marker}")
    return "\n".join(rows)


def format_usage() -> str:
    return (
        "Usage: cert-quiz <command> [args...]\n"
        "Run `cert-quiz list` for commands or `cert-quiz help <name>` for "
        "details.\n\n" + format_command_table()
    )


def _emit(text: str, stream: Optional[TextIO] = None) -> None:
    print(text, file=stream or sys.stdout)


def _unknown(name: str) -> int:
    _emit(f"Unknown command '{name}'.", sys.stderr)
    _emit(format_command_table(), sys.stderr)
    return 2


def _exit_code(exc: SystemExit) -> int:
    if exc.code is None or isinstance(exc.code, int):
        return exc.code or 0
    _emit(str(exc.code), sys.stderr)
    return 1


def _version() -> str:
    try:
        return metadata.version("cert-quiz")
    except metadata.PackageNotFoundError:
        from cert_quiz import __version__

        return __version__


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        _emit(format_usage())
        return 2

    head, tail = args[0], args[1:]
    if head in ("-h", "--help"):
        _emit(format_usage())
        return 0
    if head in ("-V", "--version", "version"):
        _emit(_version())
        return 0
    if head == "list":
        _emit(format_command_table())
        return 0
    if head == "help":
        if not tail:
            _emit(format_usage())
            return 0
        spec = COMMANDS.get(tail[0])
        if spec is None:
            return _unknown(tail[0])
        _emit(f"{spec.name}: {spec.summary}")
        _emit(
            f"Run `cert-quiz {spec.name} --help` for CLI-specific options."
        )
        return 0

    spec = COMMANDS.get(head)
    if spec is None:
        return _unknown(head)
    return spec.run(tail)


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
