"""Tests for paginator module."""

import pytest
from PIL import Image

from bookformatter.errors import NoSectionsError
from bookformatter.layout import SectionKind
from bookformatter.paginator import PageAssembler, PageGeometry, PaginationContext
from bookformatter.raster import ImageRaster
from bookformatter.renderer import RenderedSection

# 20 x 30 mm usable area: a 20px wide section maps 1px -> 1mm, 30 rows per page
SMALL_PAGE = PageGeometry(page_width=30, page_height=40, margin=5)


def section(anchor, kind, height, width=20, chapter_number=None):
    """A blank white section of the given pixel height."""
    img = Image.new("RGB", (width, height), (255, 255, 255))
    return RenderedSection(anchor=anchor, kind=kind, raster=ImageRaster(img),
                           chapter_number=chapter_number)


def chapter(number, height):
    return section(f"chapter-{number}", SectionKind.CHAPTER, height, chapter_number=number)


class TestPageGeometry:
    """Tests for page geometry math."""

    def test_a4_defaults(self):
        geometry = PageGeometry()
        assert geometry.usable_width == pytest.approx(182)
        assert geometry.usable_height == pytest.approx(269)

    def test_scale_uses_width(self):
        assert SMALL_PAGE.scale(20) == pytest.approx(1.0)
        assert SMALL_PAGE.scale(40) == pytest.approx(0.5)

    def test_page_capacity(self):
        assert SMALL_PAGE.page_capacity(20) == 30
        assert SMALL_PAGE.page_capacity(40) == 60
        assert PageGeometry().page_capacity(1000) == 1478


class TestPaginationContext:
    """Tests for the pagination context."""

    def test_first_page_has_no_break(self):
        context = PaginationContext()
        first = context.new_page()
        second = context.new_page()
        assert (first.index, first.break_before) == (1, False)
        assert (second.index, second.break_before) == (2, True)
        assert context.current_page == 2


class TestPageAssembler:
    """Tests for assembling pages from sections."""

    def test_numbering_is_continuous(self):
        """Page indices run 1..N across section boundaries."""
        sections = [
            section("title", SectionKind.TITLE, 30),
            chapter(1, 70),
            chapter(2, 10),
        ]
        result = PageAssembler(SMALL_PAGE).paginate(sections)

        assert [p.index for p in result.pages] == [1, 2, 3, 4, 5]
        assert [p.break_before for p in result.pages] == [False, True, True, True, True]
        assert result.page_count == 5

    def test_page_map_records_first_page(self):
        sections = [
            section("title", SectionKind.TITLE, 10),
            section("toc", SectionKind.TOC, 45),
            chapter(1, 70),
            chapter(2, 5),
        ]
        result = PageAssembler(SMALL_PAGE).paginate(sections)

        assert result.page_map == {"toc": 2, "chapter-1": 4, "chapter-2": 7}

    def test_unanchored_sections_not_recorded(self):
        sections = [
            section("title", SectionKind.TITLE, 10),
            section("copyright", SectionKind.COPYRIGHT, 10),
            section("foreword", SectionKind.FOREWORD, 10),
        ]
        result = PageAssembler(SMALL_PAGE).paginate(sections)
        assert result.page_map == {}

    def test_later_slices_do_not_overwrite(self):
        """A multi-page chapter keeps its first page in the map."""
        result = PageAssembler(SMALL_PAGE).paginate([chapter(1, 95)])
        assert result.page_count == 4
        assert result.page_map["chapter-1"] == 1

    def test_duplicate_chapter_numbers_last_wins(self):
        """The second chapter with the same number owns the anchor."""
        sections = [chapter(3, 40), chapter(3, 20)]
        result = PageAssembler(SMALL_PAGE).paginate(sections)
        assert result.page_map["chapter-3"] == 3

    def test_slice_placement(self):
        """Slices sit at the margins, scaled uniformly from pixels."""
        sections = [section("title", SectionKind.TITLE, 50, width=40)]
        result = PageAssembler(SMALL_PAGE).paginate(sections)

        placed = result.pages[0].slices[0]
        assert (placed.x, placed.y) == (5, 5)
        assert placed.width == pytest.approx(20)
        assert placed.height == pytest.approx(25)
        assert placed.data.startswith(b"\xff\xd8")

    def test_one_slice_per_page(self):
        result = PageAssembler(SMALL_PAGE).paginate([chapter(1, 65)])
        assert all(len(page.slices) == 1 for page in result.pages)
        heights = [page.slices[0].height for page in result.pages]
        assert heights == pytest.approx([30, 30, 5])

    def test_accepts_lazy_iterator(self):
        sections = (chapter(n, 10) for n in range(1, 4))
        result = PageAssembler(SMALL_PAGE).paginate(sections)
        assert result.page_map == {"chapter-1": 1, "chapter-2": 2, "chapter-3": 3}

    def test_no_sections(self):
        with pytest.raises(NoSectionsError):
            PageAssembler(SMALL_PAGE).paginate([])
