from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from reportlab.lib.units import mm

from casefile.errors import LinkAttachFailure
from casefile.types import TOCEntry

from .bands import BandStamper
from .cursor import PageCursor
from .pages import BLACK, PageGeometry, PageSet, ReportFonts, text_width, wrap_text


logger = logging.getLogger(__name__)

TOC_TITLE = 'TABLE OF CONTENTS'
TOC_TITLE_SIZE = 18
TOC_TITLE_Y = 35 * mm
TOC_FIRST_ENTRY_Y = 55 * mm
TOC_CONTINUATION_TOP = 40 * mm
TOC_ENTRY_SIZE = 12
TOC_LINE_STEP = 5 * mm
TOC_ENTRY_GAP = 6 * mm
TOC_TITLE_INDENT = 20 * mm
TOC_PAGE_COLUMN_GAP = 40 * mm


@dataclass(frozen=True)
class TocRow:
    entry: TOCEntry
    number_text: str
    title_lines: list[str]
    page_text: str
    page_text_width: float

    @property
    def height(self) -> float:
        return len(self.title_lines) * TOC_LINE_STEP + TOC_ENTRY_GAP


def layout_row(entry: TOCEntry, geometry: PageGeometry, fonts: ReportFonts) -> TocRow:
    page_text = f'Page {entry.page_number}'
    page_width = text_width(page_text, fonts.body, TOC_ENTRY_SIZE)
    available = geometry.content_width - page_width - TOC_PAGE_COLUMN_GAP
    return TocRow(
        entry=entry,
        number_text=f'{entry.report_number}.',
        title_lines=wrap_text(entry.display_title, fonts.body, TOC_ENTRY_SIZE, available),
        page_text=page_text,
        page_text_width=page_width,
    )


def shift_entries(entries: Iterable[TOCEntry], after_page: int, offset: int) -> list[TOCEntry]:
    """Renumber entries that start after `after_page` by `offset` inserted pages."""
    shifted: list[TOCEntry] = []
    for entry in entries:
        if offset and entry.page_number > after_page:
            entry = entry.model_copy(update={'page_number': entry.page_number + offset})
        shifted.append(entry)
    return shifted


def _place_rows(cursor: PageCursor, rows: list[TocRow], fonts: ReportFonts, *, draw: bool) -> None:
    geo = cursor.geometry
    for row in rows:
        page_number, y = cursor.reserve(row.height)
        if draw:
            page = cursor.pages.page(page_number)
            page.draw_text(geo.margin, y, row.number_text, fonts.body, TOC_ENTRY_SIZE, BLACK)
            for index, line in enumerate(row.title_lines):
                page.draw_text(
                    geo.margin + TOC_TITLE_INDENT,
                    y + index * TOC_LINE_STEP,
                    line,
                    fonts.body,
                    TOC_ENTRY_SIZE,
                    BLACK,
                )
            page.draw_text(
                geo.width - geo.margin - row.page_text_width,
                y,
                row.page_text,
                fonts.body,
                TOC_ENTRY_SIZE,
                BLACK,
            )
            try:
                page.link_page(
                    geo.margin,
                    y - 4 * mm,
                    geo.content_width,
                    len(row.title_lines) * TOC_LINE_STEP + 4 * mm,
                    row.entry.page_number,
                )
            except LinkAttachFailure as exc:
                logger.debug('Failed to create TOC link for report %d: %s', row.entry.report_number, exc)
        cursor.advance(row.height)


def count_toc_pages(entries: Iterable[TOCEntry], geometry: PageGeometry, fonts: ReportFonts) -> int:
    scratch = PageSet(geometry)
    scratch.add_page(kind='toc')
    cursor = PageCursor(scratch, None, page_number=1, top=TOC_CONTINUATION_TOP, y=TOC_FIRST_ENTRY_Y, kind='toc')
    _place_rows(cursor, [layout_row(entry, geometry, fonts) for entry in entries], fonts, draw=False)
    return len(scratch)


def render_table_of_contents(
    pages: PageSet,
    bands: BandStamper,
    fonts: ReportFonts,
    entries: list[TOCEntry],
    toc_page_number: int,
) -> list[TOCEntry]:
    """Back-patch the reserved TOC page and return entries with final page numbers.

    When the entries overflow the reserved page, continuation pages are inserted
    right after it and every later entry is renumbered before anything is drawn.
    """
    geo = pages.geometry
    extra = 0
    shifted = list(entries)
    for _ in range(len(entries) + 1):
        shifted = shift_entries(entries, toc_page_number, extra)
        needed = count_toc_pages(shifted, geo, fonts) - 1
        if needed <= extra:
            break
        extra = needed

    page = pages.page(toc_page_number)
    bands.stamp_header(page)
    title_width = text_width(TOC_TITLE, fonts.bold, TOC_TITLE_SIZE)
    page.draw_text((geo.width - title_width) / 2, TOC_TITLE_Y, TOC_TITLE, fonts.bold, TOC_TITLE_SIZE, BLACK)

    cursor = PageCursor(
        pages,
        bands,
        page_number=toc_page_number,
        top=TOC_CONTINUATION_TOP,
        y=TOC_FIRST_ENTRY_Y,
        kind='toc',
    )
    _place_rows(cursor, [layout_row(entry, geo, fonts) for entry in shifted], fonts, draw=True)
    bands.stamp_footer(pages.page(cursor.page_number))

    if cursor.breaks != extra:
        raise RuntimeError(
            f'table of contents used {cursor.breaks + 1} pages but {extra + 1} were planned'
        )
    if extra:
        logger.info('Table of contents spans %d pages; later pages renumbered', extra + 1)
    return shifted
