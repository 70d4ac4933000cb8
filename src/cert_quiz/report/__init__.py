"""Paginated, colour-coded review reports for scored quiz attempts."""

from __future__ import annotations

from .layout import (
    PAPER_SIZES,
    REPORT_TITLE,
    ReportDocument,
    ReportPage,
    layout_report,
    report_filename,
)
from .render import ReportError, render_html, write_pdf

__all__ = [
    "PAPER_SIZES",
    "REPORT_TITLE",
    "ReportDocument",
    "ReportPage",
    "ReportError",
    "layout_report",
    "report_filename",
    "render_html",
    "write_pdf",
]
