"""CLI entry points for quiz sessions, history, reports and topic tokens."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from cert_quiz.config import (
    CONFIG_FILENAME,
    CertQuizConfigError,
    ConfigOverrides,
    GenerationProvider,
    LoadResult,
    default_config_path,
    load_config,
    template_text,
)
from cert_quiz.core import config as core_config
from cert_quiz.core import workspace as workspace_mod
from cert_quiz.core.logging import configure_logger
from cert_quiz.report import (
    ReportError,
    layout_report,
    report_filename,
    write_pdf,
)

from .errors import DecodeFailure, PersistenceFailure
from .generator import (
    BankQuizGenerator,
    GenerationRequest,
    OpenAIQuizGenerator,
    QuizGenerator,
)
from .loader import LoaderRegistry, LoaderStatus
from .models import QuizType, ResultRecord, topics_from_sequence
from .navigator import Navigator
from .results import DEFAULT_PROVIDER
from .session import render_results, run_quiz_session
from .storage import JsonlResultStorage
from .store import FileBackend, SessionStore, TransientSlot
from .submission import consume_results, submit_quiz
from .tracker import AnswerTracker
from .transport import (
    DEMO_MIN_TOPICS,
    decode_topics,
    decode_topics_strict,
    encode_topics,
    validate_topic_selection,
)

InputProvider = Callable[[], str]


# ---------------------------------------------------------------- start


def _build_start_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cert-quiz start",
        description=(
            "Start (or resume) a certification practice quiz in the terminal."
        ),
    )
    parser.add_argument("exam_id", help="Exam identifier, e.g. saa-c03.")
    parser.add_argument(
        "--type",
        dest="quiz_type",
        choices=[member.value for member in QuizType],
        default=QuizType.COMPLETE.value,
        help="complete covers every exam domain; custom uses --topic values.",
    )
    parser.add_argument(
        "--topic",
        dest="topics",
        action="append",
        default=[],
        metavar="CATEGORY|TOPIC",
        help="Topic to include (repeatable).",
    )
    parser.add_argument(
        "--topics-token",
        help="Encoded topic selection from `cert-quiz topics encode`.",
    )
    parser.add_argument("--exam-name", help="Display name of the exam.")
    parser.add_argument(
        "--cert-provider",
        default=DEFAULT_PROVIDER,
        help="Certification provider recorded with the result "
        "(default: %(default)s).",
    )
    parser.add_argument(
        "--exam-level",
        default="Associate",
        help="Certification level used in the generation prompt.",
    )
    parser.add_argument(
        "--count", type=int, help="Number of questions to generate."
    )
    parser.add_argument(
        "--bank",
        type=Path,
        help="Serve questions from a JSON-lines question bank.",
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Ignore a cached quiz for these parameters and generate anew.",
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help=(
            "Offline demo from the question bank; custom demos need only "
            f"{DEMO_MIN_TOPICS} topics."
        ),
    )
    parser.add_argument(
        "--report",
        type=Path,
        metavar="PDF",
        help="Write a PDF review report after submission.",
    )
    parser.add_argument("--email", help="Email recorded with the result.")
    _add_common_arguments(parser)
    return parser


def start_main(
    argv: Sequence[str] | None = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[InputProvider] = None,
    generator: Optional[QuizGenerator] = None,
    env: Optional[Mapping[str, str]] = None,
) -> int:
    parser = _build_start_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.count is not None and args.count < 1:
        parser.error("--count must be at least 1.")

    overrides = ConfigOverrides(
        provider=GenerationProvider.BANK if (args.bank or args.demo) else None,
        question_count=args.count,
        bank_path=args.bank,
        log_level=args.log_level,
    )
    loaded = _load(parser, args, overrides=overrides, env=env)
    config = loaded.config
    logger, _ = configure_logger(
        "cert_quiz",
        log_dir=loaded.layout.path_for("logs"),
        level=config.log_level,
        verbose=args.verbose,
    )

    console = console or Console()
    if input_provider is None:
        input_provider = lambda: console.input("[bold cyan]> [/]")  # noqa: E731

    quiz_type = QuizType.from_value(args.quiz_type)
    topics = topics_from_sequence(
        [*args.topics, *decode_topics(args.topics_token)]
    )
    if quiz_type is QuizType.CUSTOM:
        minimum = (
            DEMO_MIN_TOPICS if args.demo else config.quiz.min_custom_topics
        )
        try:
            validate_topic_selection(topics, minimum=minimum)
        except ValueError as exc:
            console.print(f"[red]{exc}[/red]")
            return 2

    request = GenerationRequest(
        exam_name=args.exam_name or args.exam_id,
        exam_level=args.exam_level,
        quiz_type=quiz_type.value,
        selected_topics=topics,
        question_count=config.generation.question_count,
    )
    if generator is None:
        generator = _build_generator(loaded)

    store = SessionStore(FileBackend(loaded.layout.path_for("sessions")))
    registry = LoaderRegistry(store, generator)
    loader = registry.loader_for(
        exam_id=args.exam_id,
        quiz_type=quiz_type,
        topics=topics,
        request=request,
    )
    logger.info(
        "Starting quiz",
        extra={"key": loader.key, "request": request.to_dict()},
    )

    with console.status("Preparing your quiz..."):
        state = loader.load(force_refresh=args.refresh)
    while state.status is LoaderStatus.FAILED:
        console.print(Text(str(state.error), style="red"))
        answer = _safe_input(input_provider, console, "Retry? [y/N]")
        if answer.strip().lower() not in {"y", "yes"}:
            registry.discard(loader.key)
            return 1
        with console.status("Retrying..."):
            state = loader.retry()

    session = state.session
    if session is None:  # pragma: no cover - READY always carries a session
        return 1
    if state.from_cache:
        console.print(
            f"[green]Resuming saved quiz: {session.answered_count()}/"
            f"{session.total} answered.[/green]"
        )

    storage = JsonlResultStorage(loaded.layout.path_for("results"))
    slot = TransientSlot(store)
    slot.clear()
    tracker = AnswerTracker(session, loader.cache)
    navigator = Navigator(session, loader.cache)

    result = run_quiz_session(
        session,
        tracker,
        navigator,
        console,
        input_provider,
        on_submit=lambda: submit_quiz(
            session,
            loader.cache,
            storage,
            slot,
            email=args.email,
            provider=args.cert_provider,
        ),
    )
    registry.discard(loader.key)
    if result.exit_action != "submitted":
        return 0

    view = consume_results(
        slot, grace_seconds=config.quiz.results_grace_seconds
    )
    if view is None:
        console.print(
            "[yellow]No results to show. Start a new quiz with "
            "`cert-quiz start`.[/yellow]"
        )
        return 1
    render_results(console, view)

    exit_code = 0 if view.history_saved else 1
    if args.report is not None:
        try:
            written = _write_report(view.record, args.report, loaded)
        except (ReportError, ValueError) as exc:
            console.print(f"[red]{exc}[/red]")
            return 1
        console.print(f"Wrote report to {written}")
    return exit_code


def _build_generator(loaded: LoadResult) -> QuizGenerator:
    gen = loaded.config.generation
    if gen.provider is GenerationProvider.BANK:
        return BankQuizGenerator(gen.bank_path)  # type: ignore[arg-type]
    return OpenAIQuizGenerator(
        model=gen.model,
        temperature=gen.temperature,
        max_tokens=gen.max_tokens,
    )


def _safe_input(
    input_provider: InputProvider, console: Console, prompt: str
) -> str:
    console.print(Text(prompt))
    try:
        return input_provider()
    except (EOFError, KeyboardInterrupt, StopIteration):
        return ""


# -------------------------------------------------------------- history


def history_main(
    argv: Sequence[str] | None = None,
    *,
    console: Optional[Console] = None,
    env: Optional[Mapping[str, str]] = None,
) -> int:
    parser = argparse.ArgumentParser(
        prog="cert-quiz history",
        description="List stored quiz results, newest first.",
    )
    parser.add_argument(
        "--limit", type=int, default=20, help="Show at most N results."
    )
    _add_common_arguments(parser)
    args = parser.parse_args(list(argv) if argv is not None else None)
    loaded = _load(parser, args, env=env)
    console = console or Console()

    storage = JsonlResultStorage(loaded.layout.path_for("results"))
    try:
        records = storage.list_records()
    except PersistenceFailure as exc:
        console.print(f"[red]{exc}[/red]")
        return 1
    if not records:
        console.print("No stored results yet.")
        return 0

    records.sort(key=lambda record: record.end_time, reverse=True)
    table = Table(title="Quiz history", box=box.SIMPLE, expand=True)
    table.add_column("Result id")
    table.add_column("Exam", overflow="fold")
    table.add_column("Score", justify="right")
    table.add_column("Result", justify="center")
    table.add_column("Finished")
    for record in records[: max(args.limit, 1)]:
        table.add_row(
            record.test_id,
            Text(record.certificate_name),
            f"{record.score}/{record.total_questions} "
            f"({record.percentage}%)",
            "PASS" if record.passed else "FAIL",
            f"{record.end_time:%Y-%m-%d %H:%M}",
        )
    console.print(table)
    return 0


# --------------------------------------------------------------- report


def report_main(
    argv: Sequence[str] | None = None,
    *,
    console: Optional[Console] = None,
    env: Optional[Mapping[str, str]] = None,
    html_cls: object = None,
    css_cls: object = None,
) -> int:
    parser = argparse.ArgumentParser(
        prog="cert-quiz report",
        description="Render a stored quiz result as a PDF review report.",
    )
    parser.add_argument("result_id", help="Result id from `cert-quiz history`.")
    parser.add_argument(
        "output",
        type=Path,
        help="PDF path, or a directory to receive <exam>_Summary_<date>.pdf.",
    )
    _add_common_arguments(parser)
    args = parser.parse_args(list(argv) if argv is not None else None)
    loaded = _load(parser, args, env=env)
    configure_logger(
        "cert_quiz",
        log_dir=loaded.layout.path_for("logs"),
        level=loaded.config.log_level,
        verbose=args.verbose,
    )
    console = console or Console()

    storage = JsonlResultStorage(loaded.layout.path_for("results"))
    try:
        record = storage.get(args.result_id)
    except PersistenceFailure as exc:
        console.print(f"[red]{exc}[/red]")
        return 1
    if record is None:
        console.print(f"[red]No stored result '{args.result_id}'.[/red]")
        return 1

    try:
        written = _write_report(
            record, args.output, loaded, html_cls=html_cls, css_cls=css_cls
        )
    except (ReportError, ValueError) as exc:
        console.print(f"[red]{exc}[/red]")
        return 1
    console.print(f"Wrote report to {written}")
    return 0


def _write_report(
    record: ResultRecord,
    output: Path,
    loaded: LoadResult,
    *,
    html_cls: object = None,
    css_cls: object = None,
) -> Path:
    document = layout_report(
        record,
        paper=loaded.config.report.paper,
        margin=loaded.config.report.margin_mm,
    )
    target = Path(output).expanduser()
    if target.is_dir():
        target = target / report_filename(record, record.end_time)
    return write_pdf(document, target, html_cls=html_cls, css_cls=css_cls)


# --------------------------------------------------------------- topics


def topics_main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="cert-quiz topics",
        description="Encode or decode topic-selection tokens.",
    )
    sub = parser.add_subparsers(dest="action", required=True)
    encode = sub.add_parser("encode", help="Encode CATEGORY|TOPIC values.")
    encode.add_argument("topics", nargs="+", metavar="CATEGORY|TOPIC")
    decode = sub.add_parser("decode", help="Decode a topic token.")
    decode.add_argument("token")
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.action == "encode":
        sys.stdout.write(encode_topics(topics_from_sequence(args.topics)) + "\n")
        return 0
    try:
        topics = decode_topics_strict(args.token)
    except DecodeFailure as exc:
        sys.stderr.write(str(exc) + "\n")
        return 2
    sys.stdout.write("".join(f"{topic}\n" for topic in topics))
    return 0


# --------------------------------------------------------------- config


def config_main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="cert-quiz config",
        description="Manage the cert-quiz configuration file.",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    init_parser = sub.add_parser(
        "init", help=f"Write the default {CONFIG_FILENAME} template."
    )
    init_parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Destination for the config TOML (defaults to the workspace "
            "config directory)."
        ),
    )
    init_parser.add_argument(
        "--workspace",
        type=Path,
        help="Workspace root used to resolve the default config path.",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the destination if a config already exists.",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        if args.path is not None:
            target = args.path.expanduser()
            if not target.is_absolute():
                target = (Path.cwd() / target).resolve()
        else:
            layout = workspace_mod.ensure_workspace(path=args.workspace)
            target = default_config_path(layout)
        written = core_config.write_toml_template(
            target, template=template_text(), overwrite=args.force
        )
    except (workspace_mod.WorkspaceError, core_config.TomlConfigError) as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    sys.stdout.write(f"Wrote cert-quiz config to {written}\n")
    return 0


# --------------------------------------------------------------- shared


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a TOML config file (defaults to the workspace config).",
    )
    parser.add_argument(
        "--workspace", type=Path, help="Override the workspace root."
    )
    parser.add_argument("--log-level", help="Logging level (default INFO).")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Also log to stderr at DEBUG level.",
    )


def _load(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    *,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
) -> LoadResult:
    if overrides is None:
        overrides = ConfigOverrides(log_level=args.log_level)
    try:
        return load_config(
            config_path=args.config,
            overrides=overrides,
            env=env,
            workspace_path=args.workspace,
        )
    except (CertQuizConfigError, workspace_mod.WorkspaceError) as exc:
        parser.error(str(exc))
        raise  # pragma: no cover - parser.error exits
