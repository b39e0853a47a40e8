from __future__ import annotations

import logging

from reportlab.lib.units import mm

from casefile.types import DocumentSettings

from .pages import (
    FOOTER_BAND_HEIGHT,
    HEADER_BAND_HEIGHT,
    WHITE,
    DrawOp,
    Page,
    PageGeometry,
    PageSet,
    RectOp,
    ReportFonts,
    TextOp,
    parse_hex_color,
    text_width,
)


logger = logging.getLogger(__name__)

HEADER_FONT_SIZE = 10
FOOTER_FONT_SIZE = 8
HEADER_BASELINE = 12 * mm
FOOTER_BASELINE_FROM_BOTTOM = 4 * mm


def case_label(category_name: str | None) -> str:
    return f"Case #: {str(category_name or '').strip() or 'General'}"


class BandStamper:
    """Builds header/footer band ops and writes them into a page's band slots."""

    def __init__(
        self,
        geometry: PageGeometry,
        fonts: ReportFonts,
        settings: DocumentSettings,
        *,
        category_name: str | None = None,
    ):
        self.geometry = geometry
        self.fonts = fonts
        self.settings = settings
        self.case_text = case_label(category_name)
        self.header_color = parse_hex_color(settings.header_color)
        self.footer_color = parse_hex_color(settings.footer_color)

    def header_ops(self) -> list[DrawOp]:
        geo = self.geometry
        right_x = geo.width - geo.margin - text_width(self.case_text, self.fonts.bold, HEADER_FONT_SIZE)
        return [
            RectOp(x=0, y=0, width=geo.width, height=HEADER_BAND_HEIGHT, fill=self.header_color),
            TextOp(
                x=geo.margin,
                y=HEADER_BASELINE,
                text=self.settings.header_text,
                font=self.fonts.bold,
                size=HEADER_FONT_SIZE,
                color=WHITE,
            ),
            TextOp(
                x=right_x,
                y=HEADER_BASELINE,
                text=self.case_text,
                font=self.fonts.bold,
                size=HEADER_FONT_SIZE,
                color=WHITE,
            ),
        ]

    def footer_ops(self, page_number: int | None = None, total_pages: int | None = None) -> list[DrawOp]:
        geo = self.geometry
        baseline = geo.height - FOOTER_BASELINE_FROM_BOTTOM
        ops: list[DrawOp] = [
            RectOp(
                x=0,
                y=geo.height - FOOTER_BAND_HEIGHT,
                width=geo.width,
                height=FOOTER_BAND_HEIGHT,
                fill=self.footer_color,
            ),
            TextOp(
                x=geo.margin,
                y=baseline,
                text=self.settings.footer_text,
                font=self.fonts.body,
                size=FOOTER_FONT_SIZE,
                color=WHITE,
            ),
        ]
        if page_number is not None and total_pages is not None:
            page_text = f'Page {page_number} of {total_pages}'
            ops.append(
                TextOp(
                    x=geo.width - geo.margin - text_width(page_text, self.fonts.body, FOOTER_FONT_SIZE),
                    y=baseline,
                    text=page_text,
                    font=self.fonts.body,
                    size=FOOTER_FONT_SIZE,
                    color=WHITE,
                )
            )
        return ops

    def stamp_header(self, page: Page) -> None:
        page.header = self.header_ops()

    def stamp_footer(self, page: Page, page_number: int | None = None, total_pages: int | None = None) -> None:
        page.footer = self.footer_ops(page_number, total_pages)


def finalize_bands(pages: PageSet, stamper: BandStamper) -> int:
    """Re-stamp every page's bands now that the page count is final.

    Band slots are replaced, not appended to, so running this twice yields the
    same page content. The cover page keeps a header band and no footer.
    """
    total = len(pages)
    for number, page in pages:
        stamper.stamp_header(page)
        if page.kind == 'cover':
            page.footer = []
            continue
        stamper.stamp_footer(page, number, total)
    logger.debug('Finalized header/footer bands on %d pages', total)
    return total
