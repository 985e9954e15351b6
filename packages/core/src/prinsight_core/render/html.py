"""Pure HTML rendering of report content.

The output is a single self-contained document (inline styles, no external
assets). Rendering depends only on its arguments, so re-rendering stored
content always yields the same bytes.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from prinsight_core.models import ReportContent
from prinsight_core.render.glyphs import clean_content

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"
_TEMPLATE_NAME = "report.html"

AUDIENCE_LABELS = {
    "pm": "Project Manager",
    "qa": "Quality Assurance",
    "client": "Client",
    "mvp_summary": "MVP Summary",
    "client_overview": "Client Overview",
    "qa_overview": "QA Overview",
}

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)


def audience_label(kind: str) -> str:
    return AUDIENCE_LABELS.get(kind, kind)


def _format_date(value: datetime | None) -> str | None:
    if value is None:
        return None
    return f"{value.month}/{value.day}/{value.year}"


def render_html(content: ReportContent, kind: str, generated_at: datetime | None = None) -> str:
    """Render content for an audience (or repository report type) to HTML.

    Glyph substitution is applied to every text field first; all text is
    HTML-escaped by the template.
    """
    template = _env.get_template(_TEMPLATE_NAME)
    return template.render(
        content=clean_content(content),
        audience_label=audience_label(kind),
        generated_on=_format_date(generated_at),
    )
