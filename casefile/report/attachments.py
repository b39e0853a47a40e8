from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from casefile.adapters.markup import parse_markup
from casefile.types import Attachment


logger = logging.getLogger(__name__)

DEFAULT_SITE_ORIGIN = 'https://cmansrms.us'
DEFAULT_UPLOAD_DIRS = (
    '/wp-content/uploads/formidable/',
    '/wp-content/uploads/',
    '/uploads/',
    '/files/',
    '/attachments/',
    '/',
)

# From an ATTACHMENTS marker (any case, at the start of a line) to a blank line,
# an all-caps header line, or the end.
ATTACHMENT_SECTION_PATTERN = re.compile(
    r'(?<![^\n])[ \t]*(?i:attachments)[\s\S]*?'
    r'(?=\n[ \t]*\n|\n[ \t]*[A-Z][A-Z0-9 \t&/()\-]*[A-Z]:?[ \t]*(?:\n|\Z)|\Z)'
)
_FILENAME_PATTERN = re.compile(
    r'[A-Za-z0-9_-]+\.(?:jpeg|jpg|png|gif|pdf|docx|doc|txt|xlsx|xls|pptx|ppt|zip|rar|7z)\b',
    re.IGNORECASE,
)
_TYPE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ('image', re.compile(r'\.(?:jpe?g|png|gif|bmp|tiff)$', re.IGNORECASE)),
    ('pdf', re.compile(r'\.pdf$', re.IGNORECASE)),
    ('doc', re.compile(r'\.docx?$', re.IGNORECASE)),
    ('txt', re.compile(r'\.txt$', re.IGNORECASE)),
)

_PARENTHETICAL_PATTERN = re.compile(r'\s*\([^)]*\)')
_NORMALIZE_STEPS = (
    re.compile(r'-\d+x\d+'),
    # Trailing counters only count on names without an extension.
    re.compile(r'-\d+$'),
    re.compile(r'_\d+x\d+'),
    re.compile(r'\s+\(\d+\)'),
    re.compile(r'\s*-\s*copy', re.IGNORECASE),
)


@dataclass(frozen=True)
class ResolvedAttachment:
    filename: str
    url: str


def strip_attachment_sections(content: str) -> str:
    return ATTACHMENT_SECTION_PATTERN.sub('', str(content or ''))


def attachment_type(filename: str) -> str:
    for tag, pattern in _TYPE_PATTERNS:
        if pattern.search(filename):
            return tag
    return 'file'


def extract_content_attachments(content: str, *, start_id: int = 1) -> list[Attachment]:
    extracted: list[Attachment] = []
    next_id = start_id
    for section in ATTACHMENT_SECTION_PATTERN.finditer(str(content or '')):
        for match in _FILENAME_PATTERN.finditer(section.group(0)):
            filename = match.group(0)
            extracted.append(
                Attachment(id=next_id, title=filename, url=f'/{filename}', type=attachment_type(filename))
            )
            next_id += 1
    return extracted


def _parse_title_link(title: str) -> tuple[str | None, str | None]:
    if '<a' not in title:
        return None, None
    link = parse_markup(title).find('a')
    if link is None:
        return None, None
    text = link.text_content().strip() or 'Attachment'
    return text, link.get('href')


def clean_filename(filename: str, url: str = '') -> str:
    name = _PARENTHETICAL_PATTERN.sub('', str(filename or ''))
    if '/' in name:
        name = name.split('/')[-1] or name

    if not name or '/' in name:
        tail = str(url or '').split('/')[-1]
        if tail and '.' in tail:
            name = tail

    return re.sub(r'[\\/]', '', (name or 'Attachment').strip()) or 'Attachment'


def normalize_filename(filename: str) -> str:
    """Dedup key: size variants and copy markers collapse to one name.

    Numbered files such as ``exhibit-1.pdf`` and ``exhibit-2.pdf`` stay distinct.
    """
    key = str(filename or '')
    for pattern in _NORMALIZE_STEPS:
        key = pattern.sub('', key)
    return key.strip()


def _guess_upload_path(filename: str, url: str, upload_dirs: Iterable[str]) -> str:
    if url.startswith('http'):
        return url
    if '/' in url and not url.startswith('/'):
        return url
    clean = filename or url.lstrip('/')
    prefix = next(iter(upload_dirs), '/')
    return f'{prefix}{clean}'


def absolute_url(url: str, site_url: str | None, default_origin: str = DEFAULT_SITE_ORIGIN) -> str:
    if url.startswith('http'):
        return url
    path = url if url.startswith('/') else f'/{url}'
    base = str(site_url or '').strip()
    if base:
        return f"{base.rstrip('/')}{path}"
    return f"{default_origin.rstrip('/')}{path}"


def parse_attachment(
    attachment: Attachment,
    *,
    site_url: str | None = None,
    default_origin: str = DEFAULT_SITE_ORIGIN,
    upload_dirs: Iterable[str] = DEFAULT_UPLOAD_DIRS,
) -> ResolvedAttachment:
    filename = attachment.title or ''
    url = attachment.url or ''

    link_text, link_href = _parse_title_link(filename)
    if link_text is not None:
        filename = link_text
        if link_href:
            url = link_href

    filename = clean_filename(filename, url)
    url = _guess_upload_path(filename, url, upload_dirs)
    return ResolvedAttachment(filename=filename, url=absolute_url(url, site_url, default_origin))


def resolve_attachments(
    content: str,
    attachments: Iterable[Attachment] = (),
    *,
    site_url: str | None = None,
    default_origin: str = DEFAULT_SITE_ORIGIN,
    upload_dirs: Iterable[str] = DEFAULT_UPLOAD_DIRS,
) -> list[ResolvedAttachment]:
    """Original attachments first, then names listed in ATTACHMENTS sections, deduplicated."""
    originals = list(attachments or [])
    combined = originals + extract_content_attachments(content, start_id=len(originals) + 1)
    dirs = list(upload_dirs)

    seen: set[str] = set()
    resolved: list[ResolvedAttachment] = []
    for attachment in combined:
        item = parse_attachment(
            attachment,
            site_url=site_url,
            default_origin=default_origin,
            upload_dirs=dirs,
        )
        key = normalize_filename(item.filename)
        if key in seen:
            logger.debug('Dropping duplicate attachment %s (key %s)', item.filename, key)
            continue
        seen.add(key)
        resolved.append(item)
    return resolved
