from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator

from bs4 import BeautifulSoup, Tag
from bs4.element import NavigableString, PreformattedString


logger = logging.getLogger(__name__)

ROOT_TAG = '#root'


@dataclass
class MarkupNode:
    """Generic markup tree node; `tag` is None for text nodes."""

    tag: str | None
    attrs: dict[str, str] = field(default_factory=dict)
    children: list['MarkupNode'] = field(default_factory=list)
    text: str = ''

    @property
    def is_text(self) -> bool:
        return self.tag is None

    def text_content(self) -> str:
        if self.is_text:
            return self.text
        return ''.join(child.text_content() for child in self.children)

    def iter_elements(self) -> Iterator['MarkupNode']:
        for child in self.children:
            if child.is_text:
                continue
            yield child
            yield from child.iter_elements()

    def find(self, tag: str) -> 'MarkupNode | None':
        wanted = tag.lower()
        for element in self.iter_elements():
            if element.tag == wanted:
                return element
        return None

    def get(self, key: str) -> str | None:
        return self.attrs.get(key)

    def iter_elements_with_next(self) -> Iterator[tuple['MarkupNode', 'MarkupNode | None']]:
        """Document-order elements paired with their next element sibling."""
        elements = [child for child in self.children if not child.is_text]
        for index, element in enumerate(elements):
            following = elements[index + 1] if index + 1 < len(elements) else None
            yield element, following
            yield from element.iter_elements_with_next()


def _convert(node: Tag) -> MarkupNode:
    attrs: dict[str, str] = {}
    for key, value in (node.attrs or {}).items():
        if isinstance(value, (list, tuple)):
            attrs[str(key)] = ' '.join(str(item) for item in value)
        else:
            attrs[str(key)] = str(value)

    converted = MarkupNode(tag=str(node.name or '').lower(), attrs=attrs)
    for child in node.children:
        if isinstance(child, PreformattedString):
            continue
        if isinstance(child, Tag):
            converted.children.append(_convert(child))
        elif isinstance(child, NavigableString):
            converted.children.append(MarkupNode(tag=None, text=str(child)))
    return converted


def parse_markup(text: str) -> MarkupNode:
    """Parse HTML-ish text into a MarkupNode tree; invalid markup degrades to text."""
    source = str(text or '')
    try:
        soup = BeautifulSoup(source, 'html.parser')
    except Exception as exc:
        logger.debug('Markup parse failed, treating as plain text: %s', exc)
        return MarkupNode(tag=ROOT_TAG, children=[MarkupNode(tag=None, text=source)])

    root = _convert(soup)
    root.tag = ROOT_TAG
    return root
