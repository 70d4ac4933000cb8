from __future__ import annotations

import re
from datetime import datetime
from typing import List, Sequence

import pytest

from cert_quiz.quiz.models import QuestionOutcome, ResultRecord
from cert_quiz.quiz.results import package_result
from cert_quiz.quiz.scoring import score_session
from cert_quiz.report.layout import (
    BAND_HEIGHT,
    CHOSEN_RIGHT,
    CHOSEN_WRONG,
    CORRECT_FILL,
    INCORRECT_FILL,
    MISSED_RIGHT,
    PANEL_FILL,
    RectItem,
    ReportDocument,
    TextItem,
    clean_option,
    layout_report,
    option_annotation,
    report_filename,
    wrap_text,
)
from fixtures import make_session, payload_dict, question_dict
from fixtures.quiz import STARTED_AT

GENERATED_AT = datetime(2024, 5, 2, 14, 30, 0)
_BAND_LABEL = re.compile(r"^Question \d+$")


def _record(count: int = 3, *, explanation: str = "Because it is."):
    questions = [
        question_dict(i + 1, correct=0, explanation=explanation)
        for i in range(count)
    ]
    session = make_session(payload_dict(questions))
    session.answers = {i: {0 if i % 2 == 0 else 1} for i in range(count)}
    return package_result(
        session, score_session(session), ended_at=STARTED_AT
    )


def _outcome(**overrides) -> QuestionOutcome:
    values = dict(
        question_id="1",
        question_text="Which service stores objects?",
        options=("A. S3", "B. EBS", "C. EFS", "D. Glacier"),
        selected=(0, 2),
        correct=(2, 3),
        user_answer="A. S3, C. EFS",
        correct_answer="C. EFS, D. Glacier",
        is_correct=False,
        explanation="S3 and Glacier are object stores.",
        difficulty="Easy",
        topic="Storage",
    )
    values.update(overrides)
    return QuestionOutcome(**values)


def _with_questions(record: ResultRecord, outcomes: Sequence[QuestionOutcome]):
    return ResultRecord(
        **{**record.__dict__, "questions": tuple(outcomes)}
    )


def _bands(document: ReportDocument):
    for page in document.pages:
        for item in page.items:
            if isinstance(item, RectItem) and item.fill in (
                CORRECT_FILL,
                INCORRECT_FILL,
            ):
                yield page.number, item


def _question_numbers(document: ReportDocument) -> List[List[str]]:
    return [
        [
            item.text
            for item in page.items
            if isinstance(item, TextItem) and _BAND_LABEL.match(item.text)
        ]
        for page in document.pages
    ]


def test_blocks_move_whole_to_the_next_page() -> None:
    document = layout_report(_record(5), generated_at=GENERATED_AT)

    assert document.page_count == 3
    assert _question_numbers(document) == [
        ["Question 1", "Question 2"],
        ["Question 3", "Question 4"],
        ["Question 5"],
    ]
    for page in document.pages:
        bands = sum(
            1
            for item in page.items
            if isinstance(item, RectItem) and item.fill != PANEL_FILL
        )
        metas = sum(
            1
            for item in page.items
            if isinstance(item, TextItem) and item.text.startswith("Difficulty")
        )
        assert bands == metas


def test_content_stays_inside_the_margins() -> None:
    document = layout_report(
        _record(9, explanation="word " * 200), generated_at=GENERATED_AT
    )
    bottom = document.height - document.margin

    for page in document.pages:
        for item in page.items:
            if isinstance(item, TextItem) and item.text.startswith(
                "Generated on"
            ):
                continue
            assert item.y + getattr(item, "height", 0) <= bottom + 1e-6


def test_long_explanation_flows_without_splitting_the_band() -> None:
    record = _with_questions(
        _record(1),
        [_outcome(), _outcome(explanation="lorem ipsum " * 1500)],
    )

    document = layout_report(record, generated_at=GENERATED_AT)

    assert document.page_count >= 4
    bands = list(_bands(document))
    assert [number for number, _ in bands] == [1, 2]
    for _, band in bands:
        assert band.height == BAND_HEIGHT
        assert band.y + band.height <= document.height - document.margin

    for page in document.pages[2:]:
        panels = [
            item
            for item in page.items
            if isinstance(item, RectItem) and item.fill == PANEL_FILL
        ]
        assert len(panels) == 1
        assert panels[0].y == document.margin
        assert page.items[0] is panels[0]


def test_option_lines_carry_suffixes_and_colours() -> None:
    record = _with_questions(_record(1), [_outcome()])

    document = layout_report(record, generated_at=GENERATED_AT)
    options = {
        item.text: item.color
        for item in document.pages[0].items
        if isinstance(item, TextItem) and item.text[:2] in {"A.", "B.", "C.", "D."}
    }

    assert options == {
        "A. S3 [ YOUR ANSWER ]": CHOSEN_WRONG,
        "B. EBS": (0, 0, 0),
        "C. EFS [ YOUR ANSWER ] [ CORRECT ANSWER ]": CHOSEN_RIGHT,
        "D. Glacier [ CORRECT ANSWER ]": MISSED_RIGHT,
    }
    assert "[INCORRECT]" in document.texts()
    assert "Difficulty: Easy | Topic: Storage" in document.texts()


def test_option_annotation_for_untouched_option() -> None:
    assert option_annotation(1, _outcome()) == ("", (0, 0, 0))


def test_header_and_footer() -> None:
    document = layout_report(_record(5), generated_at=GENERATED_AT)

    first = [i.text for i in document.pages[0].items if isinstance(i, TextItem)]
    assert first[0] == "Quiz Summary Report"
    assert "Exam: AWS Solutions Architect" in first
    assert "Score: 3/5 (60%)" in first
    assert "Date: 2024-05-02" in first

    footers = [
        (page.number, item)
        for page in document.pages
        for item in page.items
        if isinstance(item, TextItem) and item.text.startswith("Generated on")
    ]
    assert len(footers) == 1
    number, footer = footers[0]
    assert number == document.page_count
    assert footer.text == "Generated on 2024-05-02 14:30:00"
    assert footer.y == pytest.approx(document.height - 12)


def test_missing_explanation_has_placeholder() -> None:
    record = _with_questions(_record(1), [_outcome(explanation="")])

    document = layout_report(record, generated_at=GENERATED_AT)

    assert "No explanation provided" in document.texts()


def test_letter_paper_and_invalid_settings() -> None:
    document = layout_report(_record(1), paper="Letter", margin=15)
    assert (document.width, document.height) == (215.9, 279.4)

    with pytest.raises(ValueError, match="Unsupported paper size"):
        layout_report(_record(1), paper="a3")
    with pytest.raises(ValueError, match="out of range"):
        layout_report(_record(1), margin=2)


@pytest.mark.parametrize(
    "raw,expected",
    [("B. Use S3", "Use S3"), ("  C.Glacier", "Glacier"), ("Use S3", "Use S3")],
)
def test_clean_option(raw, expected) -> None:
    assert clean_option(raw) == expected


def test_wrap_text_respects_width() -> None:
    lines = wrap_text("alpha " * 100, 50.0, 10.0)

    assert len(lines) > 1
    assert all(len(line) <= int(50.0 / (10.0 * 0.3528 * 0.5)) for line in lines)
    assert wrap_text("", 50.0, 10.0) == []


def test_report_filename() -> None:
    assert (
        report_filename(_record(1), GENERATED_AT)
        == "AWS_Solutions_Architect_Summary_2024-05-02.pdf"
    )
