"""Rich-powered quiz session loop and results view.

The loop renders the current question, reads one command per prompt and
routes it to the :class:`AnswerTracker` or :class:`Navigator`. Submission
goes through a callback so the caller decides how a finished attempt is
scored and stored; an incomplete attempt is reported and the loop keeps
going.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .errors import IncompleteSubmission
from .models import QuizSession
from .navigator import Navigator, QuestionStatus
from .results import ResultsView
from .submission import SubmissionOutcome
from .tracker import AnswerTracker

InputProvider = Callable[[], str]
SubmitHandler = Callable[[], SubmissionOutcome]
ExitAction = Literal["submitted", "quit"]

_STATUS_MARKS = {
    QuestionStatus.UNTOUCHED: ("○", "dim"),
    QuestionStatus.CLEARED: ("◌", "yellow"),
    QuestionStatus.ANSWERED: ("●", "green"),
}


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: Literal["next", "prev", "goto", "submit", "quit", "select", "clear"]
    choices: tuple[int, ...] = ()
    target: Optional[int] = None


@dataclass(frozen=True)
class QuizSessionResult:
    exit_action: ExitAction
    outcome: Optional[SubmissionOutcome] = None


def parse_session_command(raw: str | None) -> SessionCommand | None:
    """Parse raw user input into a structured command."""

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"n", "next"}:
        return SessionCommand("next")
    if lowered in {"p", "prev", "previous"}:
        return SessionCommand("prev")
    if lowered in {"submit", "s"}:
        return SessionCommand("submit")
    if lowered in {"quit", "q", "exit"}:
        return SessionCommand("quit")
    if lowered == "clear":
        return SessionCommand("clear")

    head, _, rest = lowered.partition(" ")
    if head in {"g", "go", "goto"}:
        try:
            number = int(rest.strip())
        except ValueError:
            return None
        return SessionCommand("goto", target=number - 1)

    letters = lowered.replace(",", "").replace(" ", "")
    if letters.isalpha():
        return SessionCommand(
            "select", choices=tuple(ord(ch) - ord("a") for ch in letters)
        )
    return None


def run_quiz_session(
    session: QuizSession,
    tracker: AnswerTracker,
    navigator: Navigator,
    console: Console,
    input_provider: InputProvider,
    *,
    on_submit: SubmitHandler,
) -> QuizSessionResult:
    """Run an interactive quiz session using Rich-rendered prompts."""

    while True:
        render_question(console, session, navigator)
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            return QuizSessionResult("quit")
        command = parse_session_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue

        if command.type == "quit":
            console.print(
                "\n[bold yellow]Progress saved. Run the same command to "
                "resume.[/]"
            )
            return QuizSessionResult("quit")
        if command.type == "submit":
            try:
                outcome = on_submit()
            except IncompleteSubmission as exc:
                console.print(f"[red]{exc}[/red]")
                continue
            return QuizSessionResult("submitted", outcome)
        _apply_command(command, tracker, navigator, console)


def _apply_command(
    command: SessionCommand,
    tracker: AnswerTracker,
    navigator: Navigator,
    console: Console,
) -> None:
    if command.type == "next":
        if not navigator.next():
            console.print("[dim]Already at the last question.[/dim]")
    elif command.type == "prev":
        if not navigator.previous():
            console.print("[dim]Already at the first question.[/dim]")
    elif command.type == "goto":
        target = command.target if command.target is not None else -1
        if not navigator.jump_to(target):
            console.print(
                f"[red]No question {target + 1}. Choose 1-"
                f"{tracker.session.total}.[/red]"
            )
    elif command.type == "clear":
        tracker.clear()
    elif command.type == "select":
        for choice in command.choices:
            try:
                tracker.select(choice)
            except ValueError:
                console.print(
                    f"[red]'{chr(ord('A') + choice)}' is not a valid choice "
                    "for this question.[/red]"
                )


def render_question(
    console: Console, session: QuizSession, navigator: Navigator
) -> None:
    question = session.current
    header = Text.assemble(
        (f"Question {session.current_index + 1}", "bold cyan"),
        (f" / {session.total}", "dim"),
    )
    console.print()
    console.rule(header)
    console.print(
        Text(f"{question.topic} · {question.difficulty}", style="dim")
    )
    console.print(Text(question.prompt, style="bold"))
    if question.is_multiple:
        console.print(Text("Select all that apply.", style="italic yellow"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Choice")
    selected = session.selection_for(session.current_index)
    mark = "■" if question.is_multiple else "•"
    for index, option in enumerate(question.options):
        chosen = index in selected
        row_text = Text((mark if chosen else " ") + " ")
        option_text = Text(option)
        if chosen:
            option_text.stylize("bold green")
        row_text += option_text
        table.add_row(chr(ord("A") + index), row_text)
    console.print(table)

    strip = Text()
    for index, status in enumerate(navigator.statuses()):
        symbol, style = _STATUS_MARKS[status]
        label = f"{index + 1}{symbol}"
        if index == session.current_index:
            label = f"[{label}]"
            style = f"{style} bold"
        strip.append(label + " ", style=style)
    console.print(strip)

    keys = ", ".join(chr(ord("A") + i) for i in range(len(question.options)))
    console.print(
        Text(
            f"Answered {session.answered_count()}/{session.total} "
            f"({session.progress_percentage():.0f}%) | Commands: choices "
            f"[{keys}], clear, n (next), p (prev), g <num>, submit, quit",
            style="dim",
        )
    )


def render_results(console: Console, view: ResultsView) -> None:
    record = view.record
    console.print()
    console.rule(Text("Quiz Results", style="bold magenta"))

    verdict = (
        Text("PASSED", style="bold green")
        if record.passed
        else Text("NOT PASSED", style="bold red")
    )
    overview = Table(
        show_header=False, box=box.MINIMAL_DOUBLE_HEAD, expand=False
    )
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Exam", Text(record.certificate_name))
    overview.add_row("Score", f"{record.score}/{record.total_questions}")
    overview.add_row("Percentage", f"{record.percentage}%")
    overview.add_row("Result", verdict)
    minutes, seconds = divmod(record.time_spent, 60)
    overview.add_row("Time spent", f"{minutes}m {seconds:02d}s")
    overview.add_row("Result id", record.test_id)
    console.print(overview)

    responses = Table(title="Responses", box=box.SIMPLE, expand=True)
    responses.add_column("#", justify="right")
    responses.add_column("Question", overflow="fold")
    responses.add_column("Your answer", overflow="fold")
    responses.add_column("Correct answer", overflow="fold")
    responses.add_column("Result", justify="center")
    for idx, outcome in enumerate(record.questions, start=1):
        responses.add_row(
            str(idx),
            Text(outcome.question_text),
            Text(outcome.user_answer or "-"),
            Text(outcome.correct_answer),
            "✅" if outcome.is_correct else "❌",
        )
    console.print(responses)

    for idx, outcome in enumerate(record.questions, start=1):
        if outcome.is_correct or not outcome.explanation:
            continue
        console.print(
            Panel(
                Text(outcome.explanation),
                title=f"Explanation: question {idx}",
                border_style="red",
            )
        )

    if not view.history_saved:
        console.print(
            Panel(
                Text(
                    f"{view.persistence_error}\nYour score is shown above "
                    "but this attempt may be missing from `cert-quiz "
                    "history`."
                ),
                title="History not saved",
                border_style="yellow",
            )
        )
