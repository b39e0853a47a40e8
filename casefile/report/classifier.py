from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Iterable, Iterator

from casefile.adapters.markup import MarkupNode, parse_markup


FIELD_LABELS = frozenset(
    {
        'Date of Report',
        'Time of Report',
        'Incident Location',
        'Report Title',
        'Narrative',
        'Attachments',
        'ATTACHMENTS',
        'Submitting Agent',
        'Approving Supervisor',
        'Approving Commander',
    }
)

_LINE_SPLIT_PATTERN = re.compile(r'\n|<br\s*/?>', re.IGNORECASE)
_TAG_PATTERN = re.compile(r'<[^>]*>')
_HEADING_TAG_PATTERN = re.compile(r'<h([1-6])[^>]*>', re.IGNORECASE)
_DATE_CODE_PATTERN = re.compile(r'^\d{2}-\d{4}-\d{2}-\d{2}$')
_SEPARATOR_PATTERN = re.compile(r'^[\s\-_=]*$')

_REPORT_TITLE_PATTERNS = (
    re.compile(r'Report Title\s*:\s*([^\n\r]+)', re.IGNORECASE),
    re.compile(r'Report Title[:\s]*([^\n\r]+)', re.IGNORECASE),
)
_REPORT_TITLE_MAX_CHARS = 200

_SKIPPED_TAGS = frozenset({'hr', 'br', 'script', 'style', 'head', 'title', 'meta', 'link'})


@dataclass(frozen=True)
class Heading:
    level: int
    text: str

    @property
    def centered(self) -> bool:
        return self.level <= 3


@dataclass(frozen=True)
class Label:
    text: str


@dataclass(frozen=True)
class Paragraph:
    text: str


@dataclass(frozen=True)
class ListItem:
    text: str


ContentBlock = Heading | Label | Paragraph | ListItem


def is_field_label(text: str) -> bool:
    stripped = str(text or '').strip()
    if not stripped:
        return False
    return stripped in FIELD_LABELS or stripped.endswith(':')


def is_dropped_line(text: str) -> bool:
    """Separator runs and bare date codes are source formatting, not content."""
    stripped = str(text or '').strip()
    if _DATE_CODE_PATTERN.match(stripped):
        return True
    return bool(_SEPARATOR_PATTERN.match(text or ''))


def _visible_text(line: str) -> str:
    return html.unescape(_TAG_PATTERN.sub('', line)).strip()


def _text_block(text: str) -> Label | Paragraph:
    if is_field_label(text):
        return Label(text)
    return Paragraph(text)


def _classify_line(raw_line: str, text: str) -> ContentBlock:
    if is_field_label(text):
        return Label(text)
    heading = _HEADING_TAG_PATTERN.search(raw_line)
    if heading:
        return Heading(level=int(heading.group(1)), text=text)
    return Paragraph(text)


def _walk_nodes(nodes: Iterable[MarkupNode]) -> Iterator[ContentBlock]:
    for node in nodes:
        if node.is_text:
            text = node.text.strip()
            if text and not is_dropped_line(text):
                yield _text_block(text)
            continue

        tag = node.tag or ''
        if tag in _SKIPPED_TAGS:
            continue

        if re.fullmatch(r'h[1-6]', tag):
            text = node.text_content().strip()
            if text and not is_dropped_line(text):
                yield Heading(level=int(tag[1]), text=text)
            continue

        if tag == 'p':
            text = node.text_content().strip()
            if text and not is_dropped_line(text):
                yield _text_block(text)
            continue

        if tag in {'ul', 'ol'}:
            for element in node.iter_elements():
                if element.tag != 'li':
                    continue
                text = element.text_content().strip()
                if text and not is_dropped_line(text):
                    yield ListItem(text)
            continue

        yield from _walk_nodes(node.children)


def iter_markup_blocks(content: str) -> Iterator[ContentBlock]:
    """Structural walk of parsed markup: headings, paragraphs and list items."""
    yield from _walk_nodes(parse_markup(content).children)


def iter_content_blocks(content: str) -> Iterator[ContentBlock]:
    """Classify raw report markup into content blocks.

    Lines (split on newlines and ``<br>``) are classified first. Only when that
    yields nothing is the markup parsed and walked structurally.
    """
    source = str(content or '')
    emitted = False
    for raw_line in _LINE_SPLIT_PATTERN.split(source):
        line = raw_line.strip()
        if not line:
            continue
        text = _visible_text(line)
        if not text or is_dropped_line(text):
            continue
        emitted = True
        yield _classify_line(line, text)

    if emitted:
        return

    yield from iter_markup_blocks(source)


def extract_report_title(content: str) -> str | None:
    root = parse_markup(content)
    text = root.text_content()
    for pattern in _REPORT_TITLE_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()

    for element, following in root.iter_elements_with_next():
        element_text = element.text_content()
        lowered = element_text.lower()
        if 'report title' not in lowered:
            continue
        if following is not None:
            candidate = following.text_content().strip()
            if 0 < len(candidate) < _REPORT_TITLE_MAX_CHARS:
                return candidate
        after = element_text[lowered.index('report title') + len('report title'):]
        cleaned = re.sub(r'^[:\s]*', '', after).split('\n')[0].strip()
        if 0 < len(cleaned) < _REPORT_TITLE_MAX_CHARS:
            return cleaned
    return None
