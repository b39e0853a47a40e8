"""
Tests for the page cursor's break decisions.
"""
import pytest

from casefile.report.bands import BandStamper
from casefile.report.cursor import PageCursor
from casefile.report.pages import PageGeometry, PageSet, resolve_fonts
from casefile.types import DocumentSettings


@pytest.fixture
def settings():
    return DocumentSettings()


@pytest.fixture
def pages(settings):
    return PageSet(PageGeometry.from_settings(settings))


@pytest.fixture
def bands(pages, settings):
    return BandStamper(pages.geometry, resolve_fonts(settings.font), settings, category_name='24-001')


class TestPageCursor:
    def test_open_starts_at_content_top_with_header(self, pages, bands):
        cursor = PageCursor.open(pages, bands)
        assert cursor.page_number == 1
        assert cursor.y == pages.geometry.content_top
        assert cursor.at_top
        assert pages.page(1).header

    def test_reserve_within_bounds_stays_on_page(self, pages, bands):
        cursor = PageCursor.open(pages, bands)
        assert cursor.reserve(50) == (1, pages.geometry.content_top)
        assert len(pages) == 1

    def test_reserve_past_bound_breaks(self, pages, bands):
        cursor = PageCursor.open(pages, bands)
        cursor.advance(cursor.remaining - 10)
        page_number, y = cursor.reserve(20)
        assert page_number == 2
        assert y == pages.geometry.content_top
        assert len(pages) == 2
        assert pages.page(1).footer
        assert pages.page(2).header

    def test_exact_fit_does_not_break(self, pages, bands):
        cursor = PageCursor.open(pages, bands)
        cursor.advance(cursor.remaining - 30)
        assert cursor.reserve(30)[0] == 1

    def test_oversized_block_is_placed_without_looping(self, pages, bands):
        cursor = PageCursor.open(pages, bands)
        huge = pages.geometry.printable_height * 3
        assert cursor.reserve(huge) == (1, pages.geometry.content_top)
        cursor.advance(huge)
        assert cursor.reserve(10)[0] == 2
        assert len(pages) == 2

    def test_page_numbers_never_decrease(self, pages, bands):
        cursor = PageCursor.open(pages, bands)
        seen = []
        for _ in range(200):
            page_number, _ = cursor.reserve(40)
            seen.append(page_number)
            cursor.advance(40)
        assert seen == sorted(seen)
        assert seen[-1] == len(pages)
        assert cursor.breaks == len(pages) - 1

    def test_negative_advance_rejected(self, pages, bands):
        cursor = PageCursor.open(pages, bands)
        with pytest.raises(ValueError):
            cursor.advance(-1)

    def test_new_page_inserts_after_current(self, pages, bands):
        for kind in ('cover', 'toc', 'content'):
            pages.add_page(kind=kind)
        cursor = PageCursor(pages, bands, page_number=2, kind='toc')
        assert cursor.new_page() == 3
        assert len(pages) == 4
        assert [page.kind for _, page in pages] == ['cover', 'toc', 'toc', 'content']

    def test_cursor_without_bands_only_counts(self, pages):
        pages.add_page()
        cursor = PageCursor(pages, None, page_number=1)
        cursor.advance(cursor.remaining + 1)
        cursor.reserve(1)
        assert len(pages) == 2
        assert pages.page(2).header == []
