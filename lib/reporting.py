"""
Reporting Module - Arsenal Module
Turns a laid-out report into HTML (Jinja2) and PDF (WeasyPrint).
"""

import logging
import re
from datetime import date
from pathlib import Path
from typing import Optional

try:
    from jinja2 import Environment, FileSystemLoader, select_autoescape
except ModuleNotFoundError:  # pragma: no cover - optional dependency guard
    Environment = None  # type: ignore[assignment]
    FileSystemLoader = None  # type: ignore[assignment]
    select_autoescape = None  # type: ignore[assignment]

try:
    from weasyprint import HTML
except (ImportError, OSError):  # pragma: no cover - missing package or native libs
    HTML = None  # type: ignore[assignment]

from lib.report_layout import PAGE_HEIGHT, PAGE_WIDTH, ReportDocument

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
PT_TO_MM = 0.3528


def report_file_name(file_name: str, generated_on: date) -> str:
    """lease-analysis-<normalized name>-<YYYY-MM-DD>.pdf"""
    normalized = re.sub(r"[^a-z0-9]", "_", file_name, flags=re.IGNORECASE).lower()
    return f"lease-analysis-{normalized}-{generated_on.isoformat()}.pdf"


def _rgb(color: Optional[tuple]) -> str:
    if color is None:
        return "transparent"
    return "rgb({}, {}, {})".format(*color)


def _mm(value: float) -> str:
    return f"{value:.2f}mm"


class ReportGenerator:
    """Generates PDF reports from laid-out report documents."""

    def __init__(self, templates_dir: Optional[str] = None) -> None:
        if Environment is None or FileSystemLoader is None:
            raise RuntimeError("jinja2 is required to generate reports.")
        if select_autoescape is None:
            raise RuntimeError("jinja2 autoescape support is required to generate reports.")

        self.templates_dir = Path(templates_dir) if templates_dir else DEFAULT_TEMPLATES_DIR
        if not self.templates_dir.exists():
            raise ValueError(f"Templates directory not found: {self.templates_dir}")

        # Reports render model-provided text; keep HTML autoescaping enabled.
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )
        self.env.filters["rgb"] = _rgb
        self.env.filters["mm"] = _mm
        self.template_name = "reports/lease_report.html"

        try:
            self.env.get_template(self.template_name)
        except Exception as e:
            raise ValueError(f"PDF template not found: {self.template_name}") from e

    def render_html(self, document: ReportDocument) -> str:
        template = self.env.get_template(self.template_name)
        return template.render(
            document=document,
            page_width=PAGE_WIDTH,
            page_height=PAGE_HEIGHT,
            pt_to_mm=PT_TO_MM,
        )

    def generate_pdf(self, document: ReportDocument) -> bytes:
        """
        Generate PDF report binary

        Args:
            document: Laid-out report with footers already stamped

        Returns:
            PDF bytes
        """
        if HTML is None:
            raise RuntimeError("weasyprint is required to generate reports.")

        try:
            html_content = self.render_html(document)
            return HTML(string=html_content).write_pdf()
        except Exception as e:
            logger.error("PDF generation failed: %s", e)
            raise
