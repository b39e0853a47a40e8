from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable

from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader

from casefile.config import Settings, get_settings
from casefile.errors import AssetLoadFailure, CasefileError, EmptySelection, LinkAttachFailure, RenderFailure
from casefile.types import DocumentArtifact, DocumentSettings, Report, TOCEntry

from .attachments import ResolvedAttachment, resolve_attachments, strip_attachment_sections
from .bands import BandStamper, case_label, finalize_bands
from .classifier import ContentBlock, Heading, Label, ListItem, extract_report_title, iter_content_blocks
from .cursor import PageCursor
from .pages import (
    BLACK,
    LINK_BLUE,
    PageGeometry,
    PageSet,
    ReportFonts,
    render_pdf,
    resolve_fonts,
    text_width,
    wrap_text,
    wrap_text_hard,
)
from .toc import render_table_of_contents


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]

# Block padding below the last line, per block type.
HEADING_PADDING = 5 * mm
LABEL_PADDING = 3 * mm
PARAGRAPH_PADDING = 3 * mm
LIST_PADDING = 2 * mm
LIST_BULLET = '•'
LIST_TEXT_INDENT = 8 * mm
LIST_WRAP_INSET = 10 * mm

ATTACHMENT_GAP = 15 * mm
ATTACHMENT_TITLE_HEIGHT = 10 * mm
ATTACHMENT_BOX_TOP_PADDING = 6 * mm
ATTACHMENT_BOX_BOTTOM_PADDING = 3 * mm
ATTACHMENT_ENTRY_HEIGHT = 7 * mm
# Extra height per wrapped line of a long filename.
ATTACHMENT_LINE_STEP = 4.5 * mm
ATTACHMENT_FONT_SIZE = 10
ATTACHMENT_INSET = 5 * mm
ATTACHMENT_BOX_FILL = (250 / 255, 250 / 255, 250 / 255)
ATTACHMENT_BOX_STROKE = (150 / 255, 150 / 255, 150 / 255)

COVER_LOGO_SIZE = 50 * mm
COVER_LOGO_Y = 40 * mm
COVER_TITLE_Y = 110 * mm
COVER_DISCLAIMER_FROM_BOTTOM = 60 * mm


@dataclass(frozen=True)
class BlockLayout:
    lines: list[str]
    font: str
    size: float
    line_height: float
    padding: float
    x: float
    centered: bool = False
    bullet: bool = False

    @property
    def height(self) -> float:
        return len(self.lines) * self.line_height + self.padding


@dataclass(frozen=True)
class AttachmentRow:
    lines: list[str]
    url: str
    filename: str

    @property
    def height(self) -> float:
        return ATTACHMENT_ENTRY_HEIGHT + (len(self.lines) - 1) * ATTACHMENT_LINE_STEP


def output_filename(category_name: str | None) -> str:
    base = re.sub(r'[\\/]+', '', str(category_name or '')).strip() or 'General'
    return f'{base}.pdf'


def format_generated_date(moment: datetime) -> str:
    return f'{moment:%B} {moment.day}, {moment.year}'


class _Progress:
    """Coarse, monotonic progress side channel; failures in the callback are ignored."""

    def __init__(self, callback: ProgressCallback | None):
        self.callback = callback
        self.percent = 0

    def __call__(self, percent: float, phase: str) -> None:
        self.percent = max(self.percent, min(100, int(percent)))
        logger.info('[%3d%%] %s', self.percent, phase)
        if self.callback is None:
            return
        try:
            self.callback(self.percent, phase)
        except Exception as exc:
            logger.debug('Progress callback failed: %s', exc)


def load_logo(path: str | Path | None) -> ImageReader | None:
    if not path:
        return None
    try:
        image = ImageReader(str(path))
        image.getSize()
    except Exception as exc:
        raise AssetLoadFailure(f'cover logo could not be loaded from {path}: {exc}') from exc
    return image


class DocumentComposer:
    """Lays out selected reports onto pages and emits the case file PDF."""

    def __init__(
        self,
        reports: list[Report],
        settings: DocumentSettings,
        *,
        category_name: str = '',
        site_url: str | None = None,
        runtime: Settings | None = None,
        progress: ProgressCallback | None = None,
        generated_at: datetime | None = None,
    ):
        self.reports = reports
        self.settings = settings
        self.category_name = category_name
        self.site_url = site_url
        self.runtime = runtime or get_settings()
        self.progress = _Progress(progress)
        self.generated_at = generated_at or datetime.now()

        self.geometry = PageGeometry.from_settings(settings)
        self.fonts: ReportFonts = resolve_fonts(settings.font)
        self.pages = PageSet(self.geometry)
        self.bands = BandStamper(self.geometry, self.fonts, settings, category_name=category_name)
        self.toc_entries: list[TOCEntry] = []
        self.toc_page_number: int | None = None
        self._cursor: PageCursor | None = None

    @property
    def line_height(self) -> float:
        return self.settings.font_size * 0.6 * mm

    # Cover and TOC placeholder

    def render_cover(self) -> None:
        geo = self.geometry
        number = self.pages.add_page(kind='cover')
        page = self.pages.page(number)
        self.bands.stamp_header(page)

        try:
            logo = load_logo(self.settings.cover_image)
        except AssetLoadFailure as exc:
            logger.warning('Failed to add cover logo: %s', exc)
            logo = None
        if logo is not None:
            page.draw_image(logo, geo.width / 2 - COVER_LOGO_SIZE / 2, COVER_LOGO_Y, COVER_LOGO_SIZE, COVER_LOGO_SIZE)

        y = COVER_TITLE_Y
        y = self._centered_lines(page, self.settings.cover_title, self.fonts.bold, 24, y, 12 * mm)
        y += 10 * mm
        y = self._centered_lines(page, self.settings.cover_subtitle, self.fonts.bold, 16, y, 8 * mm)

        y += 20 * mm
        info = (
            f'Generated: {format_generated_date(self.generated_at)}',
            case_label(self.category_name),
            f'Total Reports: {len(self.reports)}',
        )
        for index, line in enumerate(info):
            self._centered_lines(page, line, self.fonts.body, 12, y + index * 8 * mm, 8 * mm)

        disclaimer_y = geo.height - COVER_DISCLAIMER_FROM_BOTTOM
        self._centered_lines(page, self.settings.cover_disclaimer, self.fonts.body, 10, disclaimer_y, 5 * mm)

    def _centered_lines(self, page, text: str, font: str, size: float, y: float, step: float) -> float:
        geo = self.geometry
        for line in wrap_text(text, font, size, geo.content_width):
            page.draw_text((geo.width - text_width(line, font, size)) / 2, y, line, font, size, BLACK)
            y += step
        return y

    def reserve_toc_page(self) -> int:
        self.toc_page_number = self.pages.add_page(kind='toc')
        return self.toc_page_number

    # Report content

    def layout_block(self, block: ContentBlock) -> BlockLayout:
        geo = self.geometry
        size = self.settings.font_size
        if isinstance(block, Heading):
            heading_size = max(1.0, size + (4 - block.level))
            return BlockLayout(
                lines=wrap_text(block.text, self.fonts.bold, heading_size, geo.content_width),
                font=self.fonts.bold,
                size=heading_size,
                line_height=heading_size * 0.6 * mm,
                padding=HEADING_PADDING,
                x=geo.margin,
                centered=block.centered,
            )
        if isinstance(block, Label):
            return BlockLayout(
                lines=wrap_text(block.text, self.fonts.bold, size, geo.content_width),
                font=self.fonts.bold,
                size=size,
                line_height=self.line_height,
                padding=LABEL_PADDING,
                x=geo.margin,
            )
        if isinstance(block, ListItem):
            return BlockLayout(
                lines=wrap_text(block.text, self.fonts.body, size, geo.content_width - LIST_WRAP_INSET),
                font=self.fonts.body,
                size=size,
                line_height=self.line_height,
                padding=LIST_PADDING,
                x=geo.margin + LIST_TEXT_INDENT,
                bullet=True,
            )
        return BlockLayout(
            lines=wrap_text(block.text, self.fonts.body, size, geo.content_width),
            font=self.fonts.body,
            size=size,
            line_height=self.line_height,
            padding=PARAGRAPH_PADDING,
            x=geo.margin,
        )

    def _baseline_offset(self, layout: BlockLayout) -> float:
        return min(layout.size * 0.8, layout.line_height)

    def _draw_line(self, layout: BlockLayout, page_number: int, y: float, line: str, *, first: bool) -> None:
        geo = self.geometry
        page = self.pages.page(page_number)
        baseline = y + self._baseline_offset(layout)
        x = layout.x
        if layout.centered:
            x = geo.margin + (geo.content_width - text_width(line, layout.font, layout.size)) / 2
        if layout.bullet and first:
            page.draw_text(geo.margin, baseline, LIST_BULLET, layout.font, layout.size, BLACK)
        page.draw_text(x, baseline, line, layout.font, layout.size, BLACK)

    def render_block(self, cursor: PageCursor, block: ContentBlock) -> None:
        layout = self.layout_block(block)
        if layout.height > self.geometry.printable_height:
            # Too tall for any page: place line by line so nothing is clipped.
            for index, line in enumerate(layout.lines):
                page_number, y = cursor.reserve(layout.line_height)
                self._draw_line(layout, page_number, y, line, first=index == 0)
                cursor.advance(layout.line_height)
            cursor.advance(layout.padding)
            return

        page_number, y = cursor.reserve(layout.height)
        for index, line in enumerate(layout.lines):
            self._draw_line(layout, page_number, y + index * layout.line_height, line, first=index == 0)
        cursor.advance(layout.height)

    def layout_attachments(self, attachments: list[ResolvedAttachment]) -> list[AttachmentRow]:
        """Number each attachment and wrap long filenames instead of cutting them short."""
        max_width = self.geometry.content_width - 2 * ATTACHMENT_INSET
        return [
            AttachmentRow(
                lines=wrap_text_hard(
                    f'{number}. {attachment.filename}',
                    self.fonts.body,
                    ATTACHMENT_FONT_SIZE,
                    max_width,
                ),
                url=attachment.url,
                filename=attachment.filename,
            )
            for number, attachment in enumerate(attachments, start=1)
        ]

    def _chunk_attachment_rows(self, rows: list[AttachmentRow]) -> list[list[AttachmentRow]]:
        usable = (
            self.geometry.printable_height
            - ATTACHMENT_TITLE_HEIGHT
            - ATTACHMENT_BOX_TOP_PADDING
            - ATTACHMENT_BOX_BOTTOM_PADDING
        )
        chunks: list[list[AttachmentRow]] = []
        current: list[AttachmentRow] = []
        used = 0.0
        for row in rows:
            if current and used + row.height > usable:
                chunks.append(current)
                current, used = [], 0.0
            current.append(row)
            used += row.height
        if current:
            chunks.append(current)
        return chunks

    def render_attachments(self, cursor: PageCursor, attachments: list[ResolvedAttachment]) -> None:
        """Boxed, numbered list of attachment links, kept on one page when it fits."""
        if not attachments:
            return
        cursor.advance(min(ATTACHMENT_GAP, max(0.0, cursor.remaining)))

        chunks = self._chunk_attachment_rows(self.layout_attachments(attachments))
        for chunk_index, chunk in enumerate(chunks):
            box_height = (
                ATTACHMENT_BOX_TOP_PADDING
                + sum(row.height for row in chunk)
                + ATTACHMENT_BOX_BOTTOM_PADDING
            )
            page_number, y = cursor.reserve(ATTACHMENT_TITLE_HEIGHT + box_height)
            title = 'Attachments' if chunk_index == 0 else 'Attachments (continued)'
            self._draw_attachment_box(page_number, y, title, chunk, box_height)
            cursor.advance(ATTACHMENT_TITLE_HEIGHT + box_height)

    def _draw_attachment_box(
        self,
        page_number: int,
        y: float,
        title: str,
        rows: list[AttachmentRow],
        box_height: float,
    ) -> None:
        geo = self.geometry
        page = self.pages.page(page_number)
        size = self.settings.font_size
        page.draw_text(geo.margin, y + min(size * 0.8, ATTACHMENT_TITLE_HEIGHT), title, self.fonts.bold, size, BLACK)

        box_top = y + ATTACHMENT_TITLE_HEIGHT
        page.draw_rect(
            geo.margin,
            box_top,
            geo.content_width,
            box_height,
            fill=ATTACHMENT_BOX_FILL,
            stroke=ATTACHMENT_BOX_STROKE,
        )

        text_x = geo.margin + ATTACHMENT_INSET
        baseline = box_top + ATTACHMENT_BOX_TOP_PADDING
        for row in rows:
            for index, line in enumerate(row.lines):
                line_y = baseline + index * ATTACHMENT_LINE_STEP
                width = text_width(line, self.fonts.body, ATTACHMENT_FONT_SIZE)
                page.draw_text(text_x, line_y, line, self.fonts.body, ATTACHMENT_FONT_SIZE, LINK_BLUE)
                page.draw_line(text_x, line_y + 1, text_x + width, line_y + 1, color=LINK_BLUE, line_width=0.3 * mm)
                try:
                    page.link_url(text_x, line_y - ATTACHMENT_FONT_SIZE, width, ATTACHMENT_FONT_SIZE + 3, row.url)
                except LinkAttachFailure as exc:
                    logger.debug('Failed to create attachment link for %s: %s', row.filename, exc)
            baseline += row.height

    def render_report(self, index: int, report: Report) -> TOCEntry:
        if self._cursor is None:
            self._cursor = PageCursor.open(self.pages, self.bands)
        else:
            self._cursor.new_page()
        cursor = self._cursor

        entry = TOCEntry(
            report_number=index + 1,
            post_title=report.title,
            report_title=extract_report_title(report.content),
            page_number=cursor.page_number,
        )

        for block in iter_content_blocks(strip_attachment_sections(report.content)):
            self.render_block(cursor, block)

        attachments = resolve_attachments(
            report.content,
            report.attachments,
            site_url=self.site_url,
            default_origin=self.runtime.default_site_origin,
            upload_dirs=self.runtime.upload_dirs(),
        )
        self.render_attachments(cursor, attachments)
        return entry

    # Full run

    def compose(self) -> DocumentArtifact:
        if not self.reports:
            raise EmptySelection()
        total = len(self.reports)
        self.progress(0, 'Initializing PDF generation...')

        self.progress(10, 'Creating cover page...')
        if self.settings.include_cover_page:
            self.render_cover()
            if total > 0:
                self.reserve_toc_page()

        self.progress(20, 'Processing case file content...')
        for index, report in enumerate(self.reports):
            self.progress(40 + (index / total) * 50, f'Processing report {index + 1} of {total}...')
            self.toc_entries.append(self.render_report(index, report))
        self.progress(90, 'Creating table of contents...')

        if self.toc_page_number is not None:
            self.toc_entries = render_table_of_contents(
                self.pages,
                self.bands,
                self.fonts,
                self.toc_entries,
                self.toc_page_number,
            )
        self.progress(92, 'Finalizing document...')

        finalize_bands(self.pages, self.bands)
        self.progress(95, 'Generating PDF file...')

        content = render_pdf(
            self.pages,
            title=self.settings.cover_title or 'Case File',
            author=self.settings.header_text,
            subject=case_label(self.category_name),
        )
        self.progress(100, 'PDF generation completed successfully!')
        return DocumentArtifact(
            filename=output_filename(self.category_name),
            content=content,
            page_count=len(self.pages),
            toc_entries=list(self.toc_entries),
            toc_page_number=self.toc_page_number,
        )


def compose_document(
    reports: Iterable[Report],
    settings: DocumentSettings | None = None,
    *,
    category_name: str = '',
    site_url: str | None = None,
    progress: ProgressCallback | None = None,
    runtime: Settings | None = None,
    generated_at: datetime | None = None,
) -> DocumentArtifact:
    selected = list(reports or [])
    if not selected:
        raise EmptySelection()

    runtime = runtime or get_settings()
    composer = DocumentComposer(
        selected,
        settings or runtime.default_document_settings(),
        category_name=category_name,
        site_url=site_url,
        runtime=runtime,
        progress=progress,
        generated_at=generated_at,
    )
    try:
        return composer.compose()
    except CasefileError:
        raise
    except Exception as exc:
        logger.warning('PDF generation failed: %s', exc)
        raise RenderFailure(f'PDF generation failed: {exc}') from exc
