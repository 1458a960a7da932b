"""
Report Layout - Arsenal Module
Pure, deterministic page layout for lease analysis reports.

Layout runs in two passes: a single cursor walks the record top to bottom and
fills page buffers, then footers ("Page i of N") are stamped once N is known.
Units are millimetres on an A4 page; font sizes are points.
"""

import textwrap
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple, Union

from lib.models import AnalysisRecord, Severity

PAGE_WIDTH = 210.0
PAGE_HEIGHT = 297.0
MARGIN = 20.0
CONTENT_WIDTH = PAGE_WIDTH - MARGIN * 2
# Issue titles stop short of the severity tag at MARGIN + 120.
ISSUE_TITLE_WIDTH = 115.0

# Average Helvetica glyph width in mm per point of font size.
CHAR_WIDTH_FACTOR = 0.19
LINE_HEIGHT_FACTOR = 0.5

Color = Tuple[int, int, int]

BLACK: Color = (0, 0, 0)
WHITE: Color = (255, 255, 255)
MUTED: Color = (100, 100, 100)
OUTLINE: Color = (200, 200, 200)
BRAND: Color = (3, 2, 19)
FAVORABLE: Color = (34, 197, 94)
CAUTIONARY: Color = (234, 179, 8)
ADVERSE: Color = (239, 68, 68)

REPORT_TITLE = "Lease Analysis Report"
FOOTER_BRAND = "Generated by Tenant Rights Platform"


@dataclass(frozen=True)
class TextItem:
    x: float
    y: float
    text: str
    font_size: float = 12
    color: Color = BLACK
    kind: str = field(default="text", init=False)


@dataclass(frozen=True)
class RectItem:
    x: float
    y: float
    width: float
    height: float
    fill: Optional[Color] = None
    stroke: Optional[Color] = None
    kind: str = field(default="rect", init=False)


LayoutItem = Union[TextItem, RectItem]


@dataclass(frozen=True)
class ReportPage:
    items: Tuple[LayoutItem, ...] = ()


@dataclass(frozen=True)
class ReportDocument:
    pages: Tuple[ReportPage, ...]
    generated_on: date
    source_file_name: str

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def texts(self) -> List[str]:
        return [item.text for page in self.pages for item in page.items if isinstance(item, TextItem)]


def tier_color(score: int) -> Color:
    """Three-tier palette shared by score, severity and risk level."""
    if score >= 80:
        return FAVORABLE
    if score >= 60:
        return CAUTIONARY
    return ADVERSE


_SEVERITY_TIER = {Severity.LOW: 100, Severity.MEDIUM: 60, Severity.HIGH: 0}


def severity_color(severity: Severity) -> Color:
    return tier_color(_SEVERITY_TIER[severity])


def wrap_text(text: str, max_width: float, font_size: float) -> List[str]:
    chars_per_line = max(1, int(max_width / (font_size * CHAR_WIDTH_FACTOR)))
    lines: List[str] = []
    for paragraph in text.splitlines() or [""]:
        lines.extend(textwrap.wrap(paragraph, width=chars_per_line) or [""])
    return lines


def _display_date(value: str) -> str:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return value


class _LayoutCursor:
    """Holds the vertical cursor and the page buffers being filled."""

    def __init__(self) -> None:
        self.pages: List[List[LayoutItem]] = [[]]
        self.y = MARGIN

    def ensure_space(self, needed: float) -> None:
        if self.y + needed > PAGE_HEIGHT - MARGIN:
            self.pages.append([])
            self.y = MARGIN

    def add(self, item: LayoutItem) -> None:
        self.pages[-1].append(item)

    def text(self, x: float, text: str, font_size: float = 12, color: Color = BLACK) -> None:
        self.add(TextItem(x=x, y=self.y, text=text, font_size=font_size, color=color))

    def wrapped(
        self,
        text: str,
        x: float,
        max_width: float,
        font_size: float = 12,
        color: Color = BLACK,
    ) -> None:
        line_height = font_size * LINE_HEIGHT_FACTOR
        for line in wrap_text(text, max_width, font_size):
            self.ensure_space(line_height)
            self.add(TextItem(x=x, y=self.y, text=line, font_size=font_size, color=color))
            self.y += line_height

    def heading(self, title: str) -> None:
        self.text(MARGIN, title, font_size=16)
        self.y += 15


def _title_band(cursor: _LayoutCursor, record: AnalysisRecord) -> None:
    cursor.add(RectItem(x=0, y=0, width=PAGE_WIDTH, height=40, fill=BRAND))
    cursor.add(TextItem(x=MARGIN, y=25, text=REPORT_TITLE, font_size=24, color=WHITE))
    if record.ai_powered:
        cursor.add(TextItem(x=MARGIN, y=35, text="AI-Powered Analysis with Gemini", font_size=12, color=WHITE))
    cursor.y = 60


def _document_info(cursor: _LayoutCursor, record: AnalysisRecord) -> None:
    cursor.heading("Document Information")
    cursor.wrapped(f"File Name: {record.file_name}", MARGIN, CONTENT_WIDTH)
    cursor.y += 4
    cursor.text(MARGIN, f"Analysis Date: {_display_date(record.analysis_date)}")
    cursor.y += 10
    if record.location:
        cursor.text(MARGIN, f"Location: {record.location}")
        cursor.y += 10
    cursor.y += 10


def _overall_score(cursor: _LayoutCursor, record: AnalysisRecord) -> None:
    cursor.ensure_space(40)
    cursor.heading("Overall Assessment")
    bar_width = 100.0
    cursor.add(
        RectItem(
            x=MARGIN,
            y=cursor.y,
            width=bar_width * record.overall_score / 100,
            height=8,
            fill=tier_color(record.overall_score),
        )
    )
    cursor.add(RectItem(x=MARGIN, y=cursor.y, width=bar_width, height=8, stroke=OUTLINE))
    cursor.add(TextItem(x=MARGIN + 110, y=cursor.y + 6, text=f"{record.overall_score}%", font_size=14))
    cursor.y += 25


def _authenticity(cursor: _LayoutCursor, record: AnalysisRecord) -> None:
    authenticity = record.document_authenticity
    cursor.ensure_space(60)
    cursor.heading("Document Verification")

    if authenticity.is_legitimate:
        cursor.text(MARGIN, "Document Appears Legitimate", color=FAVORABLE)
    else:
        cursor.text(MARGIN, "Document Verification Failed", color=ADVERSE)
    cursor.y += 10
    cursor.text(MARGIN, f"Confidence: {authenticity.confidence}%")
    cursor.y += 15

    if authenticity.concerns:
        cursor.text(MARGIN, "Verification Concerns:")
        cursor.y += 10
        for concern in authenticity.concerns:
            cursor.wrapped(f"• {concern}", MARGIN + 10, CONTENT_WIDTH - 10, font_size=10)
            cursor.y += 5
    cursor.y += 10


def _risk(cursor: _LayoutCursor, record: AnalysisRecord) -> None:
    risk = record.risk_assessment
    cursor.ensure_space(80)
    cursor.heading("Risk Assessment")
    for label, count in (
        ("High Risk Issues", risk.high_risk),
        ("Medium Risk Issues", risk.medium_risk),
        ("Low Risk Issues", risk.low_risk),
    ):
        cursor.text(MARGIN, f"{label}: {count}")
        cursor.y += 10
    cursor.text(
        MARGIN,
        f"Overall Risk Level: {risk.overall_risk_level.value.upper()}",
        color=severity_color(risk.overall_risk_level),
    )
    cursor.y += 20


def _issues(cursor: _LayoutCursor, record: AnalysisRecord) -> None:
    if not record.issues:
        return

    cursor.ensure_space(40)
    cursor.heading("Issues Identified")
    indent = MARGIN + 5
    width = CONTENT_WIDTH - 5
    for index, issue in enumerate(record.issues, start=1):
        cursor.ensure_space(60)
        cursor.text(
            MARGIN + 120,
            f"[{issue.severity.value.upper()}]",
            color=severity_color(issue.severity),
        )
        cursor.wrapped(f"{index}. {issue.title}", MARGIN, ISSUE_TITLE_WIDTH)
        cursor.y += 4

        cursor.wrapped(issue.description, indent, width, font_size=10)
        cursor.y += 5
        if issue.clause_reference:
            cursor.wrapped(f"Clause Reference: {issue.clause_reference}", indent, width, font_size=10, color=MUTED)
            cursor.y += 3
        cursor.wrapped(f"Suggestion: {issue.suggestion}", indent, width, font_size=11)
        cursor.y += 5
        if issue.legal_basis:
            cursor.wrapped(f"Legal Basis: {issue.legal_basis}", indent, width, font_size=10, color=MUTED)
            cursor.y += 5
        cursor.y += 10


def _numbered_list(cursor: _LayoutCursor, entries: Sequence[str]) -> None:
    for index, entry in enumerate(entries, start=1):
        cursor.ensure_space(20)
        cursor.wrapped(f"{index}. {entry}", MARGIN, CONTENT_WIDTH)
        cursor.y += 8


def _location_advice(cursor: _LayoutCursor, record: AnalysisRecord) -> None:
    if not record.location_specific_advice:
        return

    cursor.ensure_space(40)
    cursor.text(MARGIN, "Location-Specific Advice", font_size=16)
    if record.location:
        cursor.text(MARGIN + 120, f"({record.location})", color=MUTED)
    cursor.y += 15
    _numbered_list(cursor, record.location_specific_advice)
    cursor.y += 10


def _recommendations(cursor: _LayoutCursor, record: AnalysisRecord) -> None:
    cursor.ensure_space(40)
    cursor.heading("General Recommendations")
    _numbered_list(cursor, record.recommendations)


def _verification_notes(cursor: _LayoutCursor, record: AnalysisRecord) -> None:
    if not record.verification_notes:
        return

    cursor.y += 10
    cursor.ensure_space(40)
    cursor.heading("Verification Notes")
    for note in record.verification_notes:
        cursor.ensure_space(20)
        cursor.wrapped(f"• {note}", MARGIN, CONTENT_WIDTH, font_size=11, color=MUTED)
        cursor.y += 8


SECTIONS = (
    _title_band,
    _document_info,
    _overall_score,
    _authenticity,
    _risk,
    _issues,
    _location_advice,
    _recommendations,
    _verification_notes,
)


def stamp_footers(pages: Sequence[ReportPage], generated_on: date) -> Tuple[ReportPage, ...]:
    """Return new pages with a page-numbered footer appended to each."""
    total = len(pages)
    stamped: List[ReportPage] = []
    for number, page in enumerate(pages, start=1):
        footer = (
            TextItem(
                x=MARGIN,
                y=PAGE_HEIGHT - 10,
                text=f"{FOOTER_BRAND} - Page {number} of {total}",
                font_size=10,
                color=MUTED,
            ),
            TextItem(
                x=PAGE_WIDTH - MARGIN - 40,
                y=PAGE_HEIGHT - 10,
                text=generated_on.isoformat(),
                font_size=10,
                color=MUTED,
            ),
        )
        stamped.append(ReportPage(items=page.items + footer))
    return tuple(stamped)


def render(record: AnalysisRecord, generated_on: date) -> ReportDocument:
    """Lay out the full report for a stored analysis."""
    cursor = _LayoutCursor()
    for section in SECTIONS:
        section(cursor, record)

    pages = tuple(ReportPage(items=tuple(items)) for items in cursor.pages)
    return ReportDocument(
        pages=stamp_footers(pages, generated_on),
        generated_on=generated_on,
        source_file_name=record.file_name,
    )
