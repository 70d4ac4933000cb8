"""Render a laid-out report to HTML (Jinja2) and PDF (WeasyPrint)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Tuple

from jinja2 import Environment, Template

from .layout import RectItem, ReportDocument, RuleItem

__all__ = [
    "ReportError",
    "report_template",
    "build_page_css",
    "render_html",
    "write_pdf",
]

_LOGGER = logging.getLogger(__name__)


class ReportError(RuntimeError):
    """The report could not be written."""


def report_template() -> Template:
    tpl = """
    <!DOCTYPE html>
    <html>
    <head>
      <meta charset="utf-8">
      <title>{{ document.title }}</title>
      <style>
        body { margin: 0; font-family: Helvetica, Arial, sans-serif; }
        .page {
          position: relative;
          width: {{ document.width }}mm;
          height: {{ document.height }}mm;
          overflow: hidden;
          page-break-after: always;
        }
        .page:last-child { page-break-after: auto; }
        .text, .rect, .rule { position: absolute; }
        .text { white-space: pre; overflow: visible; }
        .bold { font-weight: bold; }
      </style>
    </head>
    <body>
    {% for page in document.pages %}
      <section class="page" data-page="{{ page.number }}">
      {% for item in page.items %}
        {% if item is rect %}
        <div class="rect" style="left: {{ item.x|mm }}; top: {{ item.y|mm }}; width: {{ item.width|mm }}; height: {{ item.height|mm }}; background: {{ item.fill|rgb }};"></div>
        {% elif item is rule %}
        <div class="rule" style="left: {{ item.x|mm }}; top: {{ item.y|mm }}; width: {{ item.width|mm }}; border-top: 0.3mm solid {{ item.color|rgb }};"></div>
        {% else %}
        <div class="text{% if item.bold %} bold{% endif %}" style="left: {{ item.x|mm }}; top: {{ item.y|mm }}; width: {{ item.width|mm }}; line-height: {{ item.height|mm }}; font-size: {{ item.size }}pt; color: {{ item.color|rgb }}; text-align: {{ item.align }};">{{ item.text }}</div>
        {% endif %}
      {% endfor %}
      </section>
    {% endfor %}
    </body>
    </html>
    """
    env = Environment(autoescape=True)
    env.filters["mm"] = lambda value: f"{value:.2f}mm"
    env.filters["rgb"] = lambda color: "rgb({}, {}, {})".format(*color)
    env.tests["rect"] = lambda item: isinstance(item, RectItem)
    env.tests["rule"] = lambda item: isinstance(item, RuleItem)
    return env.from_string(tpl)


def build_page_css(document: ReportDocument) -> str:
    return (
        "@page {\n"
        f"  size: {document.width}mm {document.height}mm;\n"
        "  margin: 0;\n"
        "}\n"
    )


def render_html(document: ReportDocument) -> str:
    return report_template().render(document=document)


def write_pdf(
    document: ReportDocument,
    output: Path,
    *,
    html_cls: Any = None,
    css_cls: Any = None,
    base_url: Optional[str] = None,
) -> Path:
    """Write ``document`` to ``output`` as PDF and return the resolved path."""

    if html_cls is None or css_cls is None:
        html_cls, css_cls = _load_weasyprint()
    out_path = Path(output).expanduser().resolve()
    html_doc = render_html(document)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        html_cls(
            string=html_doc, base_url=base_url or Path.cwd().as_uri()
        ).write_pdf(
            target=str(out_path),
            stylesheets=[css_cls(string=build_page_css(document))],
        )
    except OSError as exc:
        raise ReportError(f"Could not write report {out_path}: {exc}") from exc
    _LOGGER.info(
        "Wrote report",
        extra={"path": str(out_path), "pages": document.page_count},
    )
    return out_path


def _load_weasyprint() -> Tuple[Any, Any]:
    try:
        from weasyprint import CSS, HTML

        return HTML, CSS
    except Exception as exc:
        raise ReportError(
            "WeasyPrint is required. Install system libraries (Cairo, Pango) "
            "and the 'weasyprint' package."
        ) from exc
