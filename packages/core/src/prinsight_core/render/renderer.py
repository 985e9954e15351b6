"""Report rendering: content → HTML file → PDF file.

Per report the artifacts progress NoContent → ContentGenerated → HtmlWritten
→ PdfWritten. HtmlWritten is an accepted resting state: when rasterization
fails the HTML file is already on disk and can be served instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from prinsight_core.errors import RenderError
from prinsight_core.models import ReportContent
from prinsight_core.render.html import render_html
from prinsight_core.render.pdf import html_to_pdf


@dataclass
class RenderedReport:
    html: str
    html_path: Path
    pdf_path: Path | None = None

    @property
    def servable_path(self) -> Path:
        """The PDF when it exists, otherwise the HTML fallback."""
        return self.pdf_path if self.pdf_path is not None else self.html_path


class ReportRenderer:
    def __init__(
        self,
        reports_dir: str | Path = "reports",
        browser_executable: str | None = None,
        timeout_ms: int = 30000,
    ):
        self.reports_dir = Path(reports_dir)
        self.browser_executable = browser_executable
        self.timeout_ms = timeout_ms

    def paths_for(self, report_id: str, kind: str) -> tuple[Path, Path]:
        stem = f"{report_id}-{kind}"
        return self.reports_dir / f"{stem}.html", self.reports_dir / f"{stem}.pdf"

    def render_html(self, content: ReportContent, kind: str, generated_at: datetime | None = None) -> str:
        return render_html(content, kind, generated_at)

    def write_html(
        self,
        report_id: str,
        content: ReportContent,
        kind: str,
        generated_at: datetime | None = None,
    ) -> RenderedReport:
        html = self.render_html(content, kind, generated_at)
        html_path, _ = self.paths_for(report_id, kind)
        try:
            self.reports_dir.mkdir(parents=True, exist_ok=True)
            html_path.write_text(html, encoding="utf-8")
        except OSError as e:
            raise RenderError(f"Could not write {html_path}: {e}") from e
        return RenderedReport(html=html, html_path=html_path)

    def write_pdf(self, rendered: RenderedReport) -> Path:
        pdf_path = rendered.html_path.with_suffix(".pdf")
        rendered.pdf_path = html_to_pdf(
            rendered.html_path,
            pdf_path,
            executable_path=self.browser_executable,
            timeout_ms=self.timeout_ms,
        )
        return rendered.pdf_path

    def render(
        self,
        report_id: str,
        content: ReportContent,
        kind: str,
        generated_at: datetime | None = None,
    ) -> RenderedReport:
        """Write the HTML and then the PDF; raises RenderError if either step fails."""
        rendered = self.write_html(report_id, content, kind, generated_at)
        self.write_pdf(rendered)
        return rendered

