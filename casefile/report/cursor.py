from __future__ import annotations

import logging

from .bands import BandStamper
from .pages import PageGeometry, PageSet


logger = logging.getLogger(__name__)

_EPSILON = 0.01


class PageCursor:
    """Running write position over a PageSet.

    `y` is the offset from the top of the current page in points. Page numbers
    only move forward, and only through `new_page`. New pages are inserted
    directly after the current one, which is an append while the cursor sits on
    the last page.
    """

    def __init__(
        self,
        pages: PageSet,
        bands: BandStamper | None,
        *,
        page_number: int,
        top: float | None = None,
        y: float | None = None,
        kind: str = 'content',
    ):
        self.pages = pages
        self.bands = bands
        self.kind = kind
        self.top = pages.geometry.content_top if top is None else float(top)
        self.page_number = page_number
        self.y = self.top if y is None else float(y)
        self.breaks = 0

    @classmethod
    def open(cls, pages: PageSet, bands: BandStamper | None, *, kind: str = 'content') -> 'PageCursor':
        """Append a fresh page with its header band and return a cursor on it."""
        number = pages.add_page(kind=kind)
        if bands is not None:
            bands.stamp_header(pages.page(number))
        return cls(pages, bands, page_number=number, kind=kind)

    @property
    def geometry(self) -> PageGeometry:
        return self.pages.geometry

    @property
    def bottom(self) -> float:
        return self.geometry.printable_bottom

    @property
    def at_top(self) -> bool:
        return self.y <= self.top + _EPSILON

    @property
    def remaining(self) -> float:
        return self.bottom - self.y

    def fits(self, height: float) -> bool:
        return self.y + height <= self.bottom + _EPSILON

    def reserve(self, height: float) -> tuple[int, float]:
        """Return where a block of `height` should be drawn, breaking first if needed.

        A cursor already at the top of a page never breaks again, so a block
        taller than the printable area is placed instead of looping.
        """
        if not self.fits(height) and not self.at_top:
            self.new_page()
        return self.page_number, self.y

    def advance(self, height: float) -> None:
        if height < 0:
            raise ValueError(f'cannot advance by negative height: {height}')
        self.y += height

    def new_page(self) -> int:
        if self.bands is not None:
            self.bands.stamp_footer(self.pages.page(self.page_number))
        number = self.pages.insert_page_after(self.page_number, kind=self.kind)
        if self.bands is not None:
            self.bands.stamp_header(self.pages.page(number))
        self.page_number = number
        self.y = self.top
        self.breaks += 1
        logger.debug('Page break -> page %d', number)
        return number
