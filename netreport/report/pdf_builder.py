"""PDF report builder – Canvas-based site report layout.

Sections, each starting on a new page:

1. Summary: title, report metadata, alert/intervention/maintenance statistics.
2. Charts: the three chart images, then any supplementary images.
3. Alert, intervention and maintenance details (only for non-empty record sets).

Rendering is two-pass.  :func:`layout_report` measures every block and
assigns it to a page; only then are pages drawn, so every footer reads
``Page X of N`` with the true physical page count.
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import BinaryIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen.canvas import Canvas

from .. import __version__
from ..report_theme import REPORT_COLORS
from .pdf_layout import Block, PlacedBlock, Section, fit_rect_preserve_aspect, paginate
from .report_data import DetailEntry, DetailSection, ReportImage, ReportTemplateData, StatBlock

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Style tokens
# ---------------------------------------------------------------------------

PAGE_SIZE = A4
PAGE_W, PAGE_H = PAGE_SIZE
MARGIN = 50
CONTENT_W = PAGE_W - 2 * MARGIN
FOOTER_Y = 28

TEXT_CLR = REPORT_COLORS["text_primary"]
SUB_CLR = REPORT_COLORS["text_secondary"]
MUTED_CLR = REPORT_COLORS["text_muted"]
LINE_CLR = REPORT_COLORS["border"]

FONT = "Helvetica"
FONT_B = "Helvetica-Bold"
FS_TITLE = 20
FS_H2 = 16
FS_BODY = 12
FS_DETAIL = 10
FS_FOOTER = 8

BLOCK_GAP = 10
CHART_BOX_H = 220
SUPPLEMENTARY_BOX_H = 280
MAX_HEADING_LINES = 3


# ---------------------------------------------------------------------------
# Low-level drawing helpers
# ---------------------------------------------------------------------------


def _hex(c: str) -> colors.Color:
    return colors.HexColor(c)


def _leading(size: float) -> float:
    return size * 1.25


def _wrap_lines(text: str, font: str, size: float, width: float) -> list[str]:
    lines: list[str] = []
    for paragraph in text.split("\n"):
        lines.extend(simpleSplit(paragraph, font, size, width) or [""])
    return lines


def _truncate(lines: list[str], max_lines: int) -> list[str]:
    if len(lines) <= max_lines:
        return lines
    kept = lines[:max_lines]
    last = kept[-1]
    kept[-1] = (last[: len(last) - 3] + "...") if len(last) > 3 else "..."
    return kept


def _draw_lines(
    c: Canvas,
    x: float,
    y_top: float,
    lines: list[str],
    *,
    font: str,
    size: float,
    color: str = TEXT_CLR,
    centered: bool = False,
) -> float:
    """Draw pre-wrapped lines top-down.  Returns the baseline of the last line."""
    leading = _leading(size)
    c.setFillColor(_hex(color))
    c.setFont(font, size)
    y = y_top - size
    for line in lines:
        if centered:
            c.drawCentredString(PAGE_W / 2.0, y, line)
        else:
            c.drawString(x, y, line)
        y -= leading
    return y + leading


def _draw_footer(c: Canvas, page_num: int, total: int, label: str) -> None:
    c.saveState()
    c.setFont(FONT, FS_FOOTER)
    c.setFillColor(_hex(MUTED_CLR))
    c.drawString(MARGIN, FOOTER_Y, label)
    c.drawCentredString(PAGE_W / 2.0, FOOTER_Y, f"Page {page_num} of {total}")
    c.drawRightString(PAGE_W - MARGIN, FOOTER_Y, f"netreport {__version__}")
    c.restoreState()


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


def _text_block(
    text: str,
    *,
    font: str = FONT,
    size: float = FS_BODY,
    color: str = TEXT_CLR,
    centered: bool = False,
    max_lines: int | None = None,
) -> Block:
    lines = _wrap_lines(text, font, size, CONTENT_W)
    if max_lines is not None:
        lines = _truncate(lines, max_lines)

    def draw(c: Canvas, y_top: float) -> None:
        _draw_lines(c, MARGIN, y_top, lines, font=font, size=size, color=color, centered=centered)

    return Block(height=len(lines) * _leading(size), draw=draw)


def _heading_block(text: str) -> Block:
    lines = _truncate(_wrap_lines(text, FONT_B, FS_H2, CONTENT_W), MAX_HEADING_LINES)
    height = len(lines) * _leading(FS_H2) + 4

    def draw(c: Canvas, y_top: float) -> None:
        y = _draw_lines(c, MARGIN, y_top, lines, font=FONT_B, size=FS_H2)
        c.setStrokeColor(_hex(LINE_CLR))
        c.setLineWidth(0.8)
        c.line(MARGIN, y - 5, MARGIN + CONTENT_W, y - 5)

    return Block(height=height, draw=draw)


def _labelled_lines_block(
    heading: str | None,
    lines: list[str],
    *,
    size: float,
    heading_font: str = FONT_B,
    heading_size: float = FS_BODY,
) -> Block:
    """A heading followed by body lines, kept together on one page."""
    heading_lines = (
        _truncate(_wrap_lines(heading, heading_font, heading_size, CONTENT_W), MAX_HEADING_LINES)
        if heading
        else []
    )
    body_lines = [
        wrapped for line in lines for wrapped in _wrap_lines(line, FONT, size, CONTENT_W - 10)
    ]
    height = len(heading_lines) * _leading(heading_size) + len(body_lines) * _leading(size)

    def draw(c: Canvas, y_top: float) -> None:
        y = y_top
        if heading_lines:
            y -= len(heading_lines) * _leading(heading_size)
            _draw_lines(c, MARGIN, y_top, heading_lines, font=heading_font, size=heading_size)
        _draw_lines(c, MARGIN + 10, y, body_lines, font=FONT, size=size, color=SUB_CLR)

    return Block(height=height, draw=draw)


def _stat_block(block: StatBlock) -> Block:
    return _labelled_lines_block(
        block.heading, block.lines, size=FS_BODY, heading_font=FONT_B, heading_size=FS_H2
    )


def _detail_entry_block(entry: DetailEntry) -> Block:
    return _labelled_lines_block(
        entry.heading,
        [f"{label}: {value}" for label, value in entry.fields],
        size=FS_DETAIL,
    )


def _image_block(image: ReportImage, box_h: float) -> Block:
    reader = ImageReader(BytesIO(image.data))
    src_w, src_h = reader.getSize()
    x, _, w, h = fit_rect_preserve_aspect(src_w, src_h, MARGIN, 0, CONTENT_W, box_h)

    def draw(c: Canvas, y_top: float) -> None:
        c.drawImage(reader, x, y_top - h, width=w, height=h, mask="auto")

    return Block(height=h, draw=draw)


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def _summary_section(data: ReportTemplateData) -> Section:
    blocks = [
        _text_block(data.title, font=FONT_B, size=FS_TITLE, centered=True, max_lines=2),
        _labelled_lines_block(None, [f"{label}: {value}" for label, value in data.metadata], size=FS_BODY),
    ]
    blocks.extend(_stat_block(block) for block in data.stat_blocks)
    return Section("summary", blocks, continuation=lambda: _heading_block("Summary (continued)"))


def _charts_section(data: ReportTemplateData) -> Section:
    blocks = [_heading_block("Charts")]
    blocks.extend(_image_block(chart, CHART_BOX_H) for chart in data.charts)
    blocks.extend(
        _image_block(image, SUPPLEMENTARY_BOX_H) for image in data.supplementary_images
    )
    return Section("charts", blocks, continuation=lambda: _heading_block("Charts (continued)"))


def _detail_section(section: DetailSection) -> Section:
    blocks = [_heading_block(section.title)]
    blocks.extend(_detail_entry_block(entry) for entry in section.entries)
    title = section.title
    return Section(title, blocks, continuation=lambda: _heading_block(f"{title} (continued)"))


def layout_report(data: ReportTemplateData) -> list[list[PlacedBlock]]:
    """First pass: measure all content and assign it to physical pages."""
    sections = [_summary_section(data)]
    if data.charts or data.supplementary_images:
        sections.append(_charts_section(data))
    sections.extend(_detail_section(section) for section in data.detail_sections)
    return paginate(sections, top=PAGE_H - MARGIN, bottom=MARGIN, gap=BLOCK_GAP)


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def draw_report_pdf(
    out: BinaryIO, data: ReportTemplateData, pages: list[list[PlacedBlock]]
) -> int:
    """Second pass: draw pages from :func:`layout_report` into *out*; returns the page count."""
    total = len(pages)
    c = Canvas(out, pagesize=PAGE_SIZE, pageCompression=0)
    c.setTitle(data.title)
    c.setAuthor("netreport")
    c.setSubject(data.footer_label)
    for page_num, placements in enumerate(pages, start=1):
        for placed in placements:
            placed.block.draw(c, placed.y_top)
        _draw_footer(c, page_num, total, data.footer_label)
        c.showPage()
    c.save()
    LOGGER.debug("Rendered report %r with %d page(s)", data.title, total)
    return total


def write_report_pdf(out: BinaryIO, data: ReportTemplateData) -> int:
    """Lay out and draw the report into *out*; returns the page count."""
    return draw_report_pdf(out, data, layout_report(data))


def build_report_pdf(data: ReportTemplateData) -> bytes:
    """Render the report into memory and return the PDF bytes."""
    buf = BytesIO()
    write_report_pdf(buf, data)
    return buf.getvalue()
