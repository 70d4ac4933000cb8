"""Paginated layout of a quiz result review.

``layout_report`` turns a :class:`ResultRecord` into a :class:`ReportDocument`:
pages of absolutely positioned text, rectangle and rule items measured in
millimetres. The layout is pure; rendering to HTML/PDF lives in
``cert_quiz.report.render``.

Pagination works on a vertical cursor. Each question block is measured
before it is emitted and moves to a fresh page when it does not fit the
remaining space. A block taller than a whole page flows line by line across
page breaks, but its coloured header band is always placed whole.
"""

from __future__ import annotations

import re
import textwrap
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple, Union

from ..quiz.models import QuestionOutcome, ResultRecord

__all__ = [
    "PAPER_SIZES",
    "REPORT_TITLE",
    "TextItem",
    "RectItem",
    "RuleItem",
    "ReportPage",
    "ReportDocument",
    "wrap_text",
    "clean_option",
    "option_annotation",
    "report_filename",
    "layout_report",
]

Color = Tuple[int, int, int]
Item = Union["TextItem", "RectItem", "RuleItem"]

# width x height in millimetres
PAPER_SIZES = {"a4": (210.0, 297.0), "letter": (215.9, 279.4)}

REPORT_TITLE = "Quiz Summary Report"
REPORT_SUBTITLE = "Detailed review of all questions and answers"
YOUR_ANSWER = "[ YOUR ANSWER ]"
CORRECT_ANSWER = "[ CORRECT ANSWER ]"

BLACK: Color = (0, 0, 0)
CORRECT_FILL: Color = (220, 255, 220)
INCORRECT_FILL: Color = (255, 220, 220)
PANEL_FILL: Color = (245, 245, 245)
RULE_COLOR: Color = (200, 200, 200)
META_COLOR: Color = (100, 100, 100)
FOOTER_COLOR: Color = (150, 150, 150)
CHOSEN_RIGHT: Color = (0, 150, 0)
CHOSEN_WRONG: Color = (200, 0, 0)
MISSED_RIGHT: Color = (0, 100, 0)

PT_TO_MM = 0.3528
# average glyph advance as a fraction of the font size (Helvetica-like)
CHAR_WIDTH_EM = 0.5

BAND_HEIGHT = 12.0
BAND_GAP = 8.0
QUESTION_SIZE = 11.0
QUESTION_LINE = 5.0
OPTION_SIZE = 10.0
OPTION_LINE = 4.0
OPTION_GAP = 2.0
SECTION_GAP = 5.0
PANEL_PAD_TOP = 2.0
PANEL_LABEL = 6.0
PANEL_PAD_BOTTOM = 4.0
EXPLANATION_SIZE = 9.0
EXPLANATION_LINE = 4.0
META_SIZE = 8.0
META_LINE = 4.0
BLOCK_GAP = 10.0

_OPTION_PREFIX = re.compile(r"^[A-Z]\.\s*")


@dataclass(frozen=True)
class TextItem:
    x: float
    y: float
    width: float
    height: float
    text: str
    size: float
    bold: bool = False
    color: Color = BLACK
    align: str = "left"


@dataclass(frozen=True)
class RectItem:
    x: float
    y: float
    width: float
    height: float
    fill: Color


@dataclass(frozen=True)
class RuleItem:
    x: float
    y: float
    width: float
    color: Color = RULE_COLOR


@dataclass
class ReportPage:
    number: int
    items: List[Item] = field(default_factory=list)


@dataclass
class ReportDocument:
    width: float
    height: float
    margin: float
    title: str
    pages: List[ReportPage] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def texts(self) -> List[str]:
        return [
            item.text
            for page in self.pages
            for item in page.items
            if isinstance(item, TextItem)
        ]


def wrap_text(text: str, width_mm: float, size_pt: float) -> List[str]:
    """Wrap ``text`` to the number of glyphs that fit in ``width_mm``."""

    per_line = max(1, int(width_mm / (size_pt * PT_TO_MM * CHAR_WIDTH_EM)))
    lines: List[str] = []
    for paragraph in str(text).splitlines() or [""]:
        lines.extend(textwrap.wrap(paragraph, width=per_line) or [""])
    while lines and not lines[-1]:
        lines.pop()
    return lines


def clean_option(text: str) -> str:
    return _OPTION_PREFIX.sub("", str(text).strip(), count=1)


def option_annotation(
    index: int, outcome: QuestionOutcome
) -> Tuple[str, Color]:
    chosen = index in outcome.selected
    right = index in outcome.correct
    suffixes = []
    if chosen:
        suffixes.append(YOUR_ANSWER)
    if right:
        suffixes.append(CORRECT_ANSWER)
    if chosen and right:
        color = CHOSEN_RIGHT
    elif chosen:
        color = CHOSEN_WRONG
    elif right:
        color = MISSED_RIGHT
    else:
        color = BLACK
    return " ".join(suffixes), color


def report_filename(record: ResultRecord, generated_at: datetime) -> str:
    name = re.sub(r"[^\w.-]+", "_", record.certificate_name or "Quiz")
    return f"{name.strip('_') or 'Quiz'}_Summary_{generated_at:%Y-%m-%d}.pdf"


@dataclass
class _Block:
    outcome: QuestionOutcome
    number: int
    question_lines: List[str]
    options: List[Tuple[List[str], Color]]
    explanation_lines: List[str]

    @property
    def height(self) -> float:
        options = sum(
            len(lines) * OPTION_LINE + OPTION_GAP for lines, _ in self.options
        )
        return (
            BAND_HEIGHT
            + BAND_GAP
            + len(self.question_lines) * QUESTION_LINE
            + SECTION_GAP
            + options
            + SECTION_GAP
            + _panel_height(len(self.explanation_lines))
            + SECTION_GAP
            + META_LINE
            + BLOCK_GAP
        )


def _panel_height(lines: int) -> float:
    return PANEL_PAD_TOP + PANEL_LABEL + lines * EXPLANATION_LINE + (
        PANEL_PAD_BOTTOM
    )


class _Cursor:
    """Vertical cursor over a growing list of pages."""

    def __init__(self, document: ReportDocument) -> None:
        self.document = document
        self.top = document.margin
        self.bottom = document.height - document.margin
        self.y = self.top
        self.new_page()

    @property
    def page(self) -> ReportPage:
        return self.document.pages[-1]

    @property
    def remaining(self) -> float:
        return self.bottom - self.y

    @property
    def at_top(self) -> bool:
        return self.y <= self.top

    def new_page(self) -> None:
        self.document.pages.append(ReportPage(len(self.document.pages) + 1))
        self.y = self.top

    def ensure(self, height: float) -> bool:
        """Break the page if ``height`` does not fit; True when it broke."""

        if height > self.remaining and not self.at_top:
            self.new_page()
            return True
        return False

    def add(self, item: Item) -> None:
        self.page.items.append(item)


def _measure(
    outcome: QuestionOutcome, number: int, content_width: float
) -> _Block:
    options = []
    for index, option in enumerate(outcome.options):
        annotation, color = option_annotation(index, outcome)
        text = f"{chr(65 + index)}. {clean_option(option)}"
        if annotation:
            text = f"{text} {annotation}"
        options.append(
            (wrap_text(text, content_width - 20, OPTION_SIZE), color)
        )
    return _Block(
        outcome=outcome,
        number=number,
        question_lines=wrap_text(
            outcome.question_text, content_width - 10, QUESTION_SIZE
        ),
        options=options,
        explanation_lines=wrap_text(
            outcome.explanation or "No explanation provided",
            content_width - 20,
            EXPLANATION_SIZE,
        ),
    )


def _emit_header(
    cursor: _Cursor, record: ResultRecord, generated_at: datetime
) -> None:
    doc = cursor.document
    x = doc.margin
    width = doc.width - 2 * doc.margin
    cursor.add(TextItem(x, 15.0, width, 10.0, REPORT_TITLE, 22, True,
                        align="center"))
    cursor.add(TextItem(x, 27.0, width, 6.0, REPORT_SUBTITLE, 12,
                        align="center"))
    info = [
        f"Exam: {record.certificate_name}",
        f"Date: {generated_at:%Y-%m-%d}",
        f"Total Questions: {record.total_questions}",
        f"Score: {record.score}/{record.total_questions} "
        f"({record.percentage}%)",
    ]
    y = 40.0
    for line in info:
        cursor.add(TextItem(x, y, width, 5.0, line, 10, align="center"))
        y += 5.0
    y += 8.0
    cursor.add(RuleItem(x, y, width))
    cursor.y = y + 12.0


def _emit_lines(
    cursor: _Cursor,
    lines: Sequence[str],
    *,
    x: float,
    width: float,
    line_height: float,
    size: float,
    color: Color = BLACK,
) -> None:
    for line in lines:
        cursor.ensure(line_height)
        cursor.add(TextItem(x, cursor.y, width, line_height, line, size,
                            color=color))
        cursor.y += line_height


def _emit_panel(
    cursor: _Cursor, lines: Sequence[str], *, x: float, width: float
) -> None:
    """Shaded explanation panel; split into one rectangle per page."""

    cursor.ensure(PANEL_PAD_TOP + PANEL_LABEL + EXPLANATION_LINE)
    start_y = cursor.y
    slot = len(cursor.page.items)
    cursor.y += PANEL_PAD_TOP
    cursor.add(TextItem(x + 5, cursor.y, width - 10, PANEL_LABEL,
                        "Explanation:", 10, True))
    cursor.y += PANEL_LABEL

    def close(end_y: float) -> None:
        cursor.page.items.insert(
            slot, RectItem(x, start_y, width, end_y - start_y, PANEL_FILL)
        )

    for line in lines:
        if EXPLANATION_LINE > cursor.remaining:
            close(cursor.y)
            cursor.new_page()
            start_y = cursor.y
            slot = 0
        cursor.add(TextItem(x + 5, cursor.y, width - 10, EXPLANATION_LINE,
                            line, EXPLANATION_SIZE))
        cursor.y += EXPLANATION_LINE
    end_y = min(cursor.y + PANEL_PAD_BOTTOM, cursor.bottom)
    close(end_y)
    cursor.y = end_y


def _emit_block(cursor: _Cursor, block: _Block) -> None:
    doc = cursor.document
    margin = doc.margin
    content_width = doc.width - 2 * margin
    outcome = block.outcome

    # measure, then decide
    cursor.ensure(block.height)
    cursor.ensure(BAND_HEIGHT)
    fill = CORRECT_FILL if outcome.is_correct else INCORRECT_FILL
    status = "[CORRECT]" if outcome.is_correct else "[INCORRECT]"
    cursor.add(RectItem(margin, cursor.y, content_width, BAND_HEIGHT, fill))
    cursor.add(TextItem(margin + 5, cursor.y + 3, content_width - 10, 6.0,
                        f"Question {block.number}", 14, True))
    cursor.add(TextItem(margin + 5, cursor.y + 3, content_width - 10, 6.0,
                        status, 14, True, align="right"))
    cursor.y += BAND_HEIGHT + BAND_GAP

    _emit_lines(
        cursor,
        block.question_lines,
        x=margin + 5,
        width=content_width - 10,
        line_height=QUESTION_LINE,
        size=QUESTION_SIZE,
    )
    cursor.y += SECTION_GAP

    for lines, color in block.options:
        _emit_lines(
            cursor,
            lines,
            x=margin + 10,
            width=content_width - 20,
            line_height=OPTION_LINE,
            size=OPTION_SIZE,
            color=color,
        )
        cursor.y += OPTION_GAP
    cursor.y += SECTION_GAP

    _emit_panel(
        cursor, block.explanation_lines, x=margin + 5, width=content_width - 10
    )
    cursor.y += SECTION_GAP

    cursor.ensure(META_LINE)
    cursor.add(
        TextItem(
            margin + 5,
            cursor.y,
            content_width - 10,
            META_LINE,
            f"Difficulty: {outcome.difficulty} | Topic: {outcome.topic}",
            META_SIZE,
            color=META_COLOR,
        )
    )
    cursor.y = min(cursor.y + META_LINE + BLOCK_GAP, cursor.bottom)


def layout_report(
    record: ResultRecord,
    *,
    paper: str = "a4",
    margin: float = 20.0,
    generated_at: Optional[datetime] = None,
) -> ReportDocument:
    try:
        width, height = PAPER_SIZES[paper.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported paper size: {paper}. Choose from "
            f"{sorted(PAPER_SIZES)}"
        ) from None
    if not 5 <= margin <= min(width, height) / 4:
        raise ValueError(f"Margin {margin}mm is out of range")

    generated_at = generated_at or datetime.now()
    document = ReportDocument(
        width=width,
        height=height,
        margin=margin,
        title=f"{REPORT_TITLE}: {record.certificate_name}",
    )
    cursor = _Cursor(document)
    _emit_header(cursor, record, generated_at)

    content_width = width - 2 * margin
    for number, outcome in enumerate(record.questions, start=1):
        _emit_block(cursor, _measure(outcome, number, content_width))

    cursor.add(
        TextItem(
            margin,
            height - 10 - META_LINE / 2,
            content_width,
            META_LINE,
            f"Generated on {generated_at:%Y-%m-%d %H:%M:%S}",
            META_SIZE,
            color=FOOTER_COLOR,
            align="center",
        )
    )
    return document
