from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Union

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas as pdf_canvas

from casefile.errors import LinkAttachFailure
from casefile.types import DocumentSettings


logger = logging.getLogger(__name__)

LETTER_MM = (216 * mm, 279 * mm)

HEADER_BAND_HEIGHT = 20 * mm
FOOTER_BAND_HEIGHT = 12 * mm
CONTENT_TOP = 32 * mm
# Footer band plus safety margin kept free below the last content line.
BOTTOM_RESERVE = 40 * mm
MIN_CONTENT_WIDTH = 20 * mm

Color = tuple[float, float, float]
BLACK: Color = (0.0, 0.0, 0.0)
WHITE: Color = (1.0, 1.0, 1.0)
LINK_BLUE: Color = (0.0, 0.0, 1.0)


def parse_hex_color(value: object) -> Color:
    token = str(value or '').strip().lstrip('#')
    if len(token) != 6:
        return BLACK
    try:
        return (
            int(token[0:2], 16) / 255.0,
            int(token[2:4], 16) / 255.0,
            int(token[4:6], 16) / 255.0,
        )
    except ValueError:
        return BLACK


@dataclass(frozen=True)
class ReportFonts:
    body: str
    bold: str


_FONT_FAMILIES: tuple[tuple[str, ReportFonts], ...] = (
    ('times', ReportFonts(body='Times-Roman', bold='Times-Bold')),
    ('courier', ReportFonts(body='Courier', bold='Courier-Bold')),
    ('mono', ReportFonts(body='Courier', bold='Courier-Bold')),
    ('helvetica', ReportFonts(body='Helvetica', bold='Helvetica-Bold')),
    ('arial', ReportFonts(body='Helvetica', bold='Helvetica-Bold')),
    ('sans', ReportFonts(body='Helvetica', bold='Helvetica-Bold')),
)


def resolve_fonts(family: str | None) -> ReportFonts:
    lowered = str(family or '').strip().lower()
    for token, fonts in _FONT_FAMILIES:
        if token in lowered:
            return fonts
    return _FONT_FAMILIES[0][1]


def text_width(text: str, font: str, size: float) -> float:
    return pdfmetrics.stringWidth(str(text or ''), font, size)


def wrap_text(text: str, font: str, size: float, width: float) -> list[str]:
    lines = simpleSplit(str(text or ''), font, size, max(width, MIN_CONTENT_WIDTH))
    return lines or ['']


def wrap_text_hard(text: str, font: str, size: float, width: float) -> list[str]:
    """Like `wrap_text`, but words wider than `width` are broken between characters."""
    lines: list[str] = []
    for line in wrap_text(text, font, size, width):
        while len(line) > 1 and text_width(line, font, size) > width:
            cut = len(line) - 1
            while cut > 1 and text_width(line[:cut], font, size) > width:
                cut -= 1
            lines.append(line[:cut])
            line = line[cut:]
        lines.append(line)
    return lines or ['']


@dataclass(frozen=True)
class PageGeometry:
    width: float
    height: float
    margin: float

    @classmethod
    def from_settings(cls, settings: DocumentSettings) -> 'PageGeometry':
        size = LETTER_MM if str(settings.paper_size).strip().lower() == 'letter' else A4
        short_side, long_side = min(size), max(size)
        if str(settings.orientation).strip().lower() == 'landscape':
            width, height = long_side, short_side
        else:
            width, height = short_side, long_side
        margin = min(max(0.0, float(settings.margins)) * mm, width / 2 - MIN_CONTENT_WIDTH / 2)
        return cls(width=width, height=height, margin=max(0.0, margin))

    @property
    def content_width(self) -> float:
        return max(self.width - 2 * self.margin, MIN_CONTENT_WIDTH)

    @property
    def content_top(self) -> float:
        return CONTENT_TOP

    @property
    def printable_bottom(self) -> float:
        return self.height - BOTTOM_RESERVE

    @property
    def printable_height(self) -> float:
        return self.printable_bottom - self.content_top


# Draw operations use top-down coordinates in points; text `y` is the baseline.

@dataclass(frozen=True)
class TextOp:
    x: float
    y: float
    text: str
    font: str
    size: float
    color: Color = BLACK


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float
    width: float
    height: float
    fill: Color | None = None
    stroke: Color | None = None
    line_width: float = 0.5


@dataclass(frozen=True)
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    color: Color = BLACK
    line_width: float = 0.5


@dataclass(frozen=True)
class ImageOp:
    x: float
    y: float
    width: float
    height: float
    image: Any


@dataclass(frozen=True)
class UrlLinkOp:
    x: float
    y: float
    width: float
    height: float
    url: str


@dataclass(frozen=True)
class PageLinkOp:
    x: float
    y: float
    width: float
    height: float
    page_number: int


DrawOp = Union[TextOp, RectOp, LineOp, ImageOp, UrlLinkOp, PageLinkOp]


@dataclass
class Page:
    kind: str = 'content'
    body: list[DrawOp] = field(default_factory=list)
    header: list[DrawOp] = field(default_factory=list)
    footer: list[DrawOp] = field(default_factory=list)

    def draw_text(self, x: float, y: float, text: str, font: str, size: float, color: Color = BLACK) -> None:
        self.body.append(TextOp(x=x, y=y, text=text, font=font, size=size, color=color))

    def draw_rect(self, x: float, y: float, width: float, height: float, **style: Any) -> None:
        self.body.append(RectOp(x=x, y=y, width=width, height=height, **style))

    def draw_line(self, x1: float, y1: float, x2: float, y2: float, **style: Any) -> None:
        self.body.append(LineOp(x1=x1, y1=y1, x2=x2, y2=y2, **style))

    def draw_image(self, image: Any, x: float, y: float, width: float, height: float) -> None:
        self.body.append(ImageOp(x=x, y=y, width=width, height=height, image=image))

    def link_url(self, x: float, y: float, width: float, height: float, url: str) -> None:
        if not str(url or '').strip():
            raise LinkAttachFailure('link target URL is empty')
        if width <= 0 or height <= 0:
            raise LinkAttachFailure(f'link region is empty: {width}x{height}')
        self.body.append(UrlLinkOp(x=x, y=y, width=width, height=height, url=url))

    def link_page(self, x: float, y: float, width: float, height: float, page_number: int) -> None:
        if page_number < 1:
            raise LinkAttachFailure(f'invalid link target page: {page_number}')
        if width <= 0 or height <= 0:
            raise LinkAttachFailure(f'link region is empty: {width}x{height}')
        self.body.append(PageLinkOp(x=x, y=y, width=width, height=height, page_number=page_number))

    def texts(self) -> list[str]:
        return [op.text for op in self.body if isinstance(op, TextOp)]


class PageSet:
    """Pages addressable by absolute 1-based number; insertions renumber later pages."""

    def __init__(self, geometry: PageGeometry):
        self.geometry = geometry
        self._pages: list[Page] = []

    def __len__(self) -> int:
        return len(self._pages)

    def __iter__(self) -> Iterator[tuple[int, Page]]:
        for index, page in enumerate(self._pages, start=1):
            yield index, page

    def add_page(self, kind: str = 'content') -> int:
        self._pages.append(Page(kind=kind))
        return len(self._pages)

    def insert_page_after(self, page_number: int, kind: str = 'content') -> int:
        if page_number < 0 or page_number > len(self._pages):
            raise IndexError(f'page {page_number} out of range 0..{len(self._pages)}')
        self._pages.insert(page_number, Page(kind=kind))
        return page_number + 1

    def page(self, page_number: int) -> Page:
        if page_number < 1 or page_number > len(self._pages):
            raise IndexError(f'page {page_number} out of range 1..{len(self._pages)}')
        return self._pages[page_number - 1]


def _page_key(page_number: int) -> str:
    return f'page-{page_number}'


def _safe_canvas_font(canvas, font_name: str, size: float) -> None:
    for candidate in (str(font_name or '').strip(), 'Times-Roman', 'Helvetica'):
        if not candidate:
            continue
        try:
            canvas.setFont(candidate, size)
            return
        except Exception:
            continue


def _link_rect(op: UrlLinkOp | PageLinkOp, page_height: float) -> tuple[float, float, float, float]:
    return (op.x, page_height - op.y - op.height, op.x + op.width, page_height - op.y)


def _attach_link(canvas, op: UrlLinkOp | PageLinkOp, page_height: float) -> None:
    rect = _link_rect(op, page_height)
    try:
        if isinstance(op, UrlLinkOp):
            canvas.linkURL(op.url, rect, relative=0, thickness=0)
        else:
            canvas.linkRect('', _page_key(op.page_number), Rect=rect, relative=0, thickness=0)
    except Exception as exc:
        raise LinkAttachFailure(str(exc)) from exc


def _draw_op(canvas, op: DrawOp, page_height: float) -> None:
    if isinstance(op, TextOp):
        canvas.setFillColorRGB(*op.color)
        _safe_canvas_font(canvas, op.font, op.size)
        canvas.drawString(op.x, page_height - op.y, op.text)
    elif isinstance(op, RectOp):
        if op.fill is not None:
            canvas.setFillColorRGB(*op.fill)
        if op.stroke is not None:
            canvas.setStrokeColorRGB(*op.stroke)
            canvas.setLineWidth(op.line_width)
        canvas.rect(
            op.x,
            page_height - op.y - op.height,
            op.width,
            op.height,
            stroke=1 if op.stroke is not None else 0,
            fill=1 if op.fill is not None else 0,
        )
    elif isinstance(op, LineOp):
        canvas.setStrokeColorRGB(*op.color)
        canvas.setLineWidth(op.line_width)
        canvas.line(op.x1, page_height - op.y1, op.x2, page_height - op.y2)
    elif isinstance(op, ImageOp):
        try:
            canvas.drawImage(
                op.image,
                op.x,
                page_height - op.y - op.height,
                width=op.width,
                height=op.height,
                preserveAspectRatio=True,
                mask='auto',
            )
        except Exception as exc:
            logger.warning('Failed to draw image on PDF page: %s', exc)
    else:
        try:
            _attach_link(canvas, op, page_height)
        except LinkAttachFailure as exc:
            logger.debug('Failed to attach PDF link: %s', exc)


def render_pdf(pages: PageSet, *, title: str, author: str = '', subject: str = '') -> bytes:
    geometry = pages.geometry
    buffer = io.BytesIO()
    canvas = pdf_canvas.Canvas(buffer, pagesize=(geometry.width, geometry.height))
    canvas.setTitle(title)
    canvas.setAuthor(author)
    canvas.setSubject(subject)
    canvas.setProducer('Case File Composer')

    for number, page in pages:
        canvas.bookmarkPage(_page_key(number))
        canvas.saveState()
        for op in (*page.body, *page.header, *page.footer):
            _draw_op(canvas, op, geometry.height)
        canvas.restoreState()
        canvas.showPage()

    canvas.save()
    return buffer.getvalue()
