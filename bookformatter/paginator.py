"""
Page assembly: places section slices onto a continuous page sequence and
records where each addressable section begins.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import Iterable

from .errors import NoSectionsError
from .layout import SectionKind
from .renderer import RenderedSection
from .slicer import PageSlicer

logger = logging.getLogger(__name__)

# Sections whose first page is recorded in the page map
ANCHORED_KINDS = frozenset({SectionKind.TOC, SectionKind.CHAPTER})


@dataclass(frozen=True)
class PageGeometry:
    """Fixed physical page format, in millimetres."""

    page_width: float = 210.0
    page_height: float = 297.0
    margin: float = 14.0

    @property
    def usable_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def usable_height(self) -> float:
        return self.page_height - 2 * self.margin

    def scale(self, pixel_width: int) -> float:
        """Millimetres per pixel for a buffer of ``pixel_width``, both axes."""
        return self.usable_width / pixel_width

    def page_capacity(self, pixel_width: int) -> int:
        """Pixel rows that fill one page's usable height."""
        return max(1, round(self.usable_height / self.scale(pixel_width)))


@dataclass
class PlacedSlice:
    """A JPEG-encoded image slice placed on a page (mm from top-left)."""

    data: bytes
    x: float
    y: float
    width: float
    height: float


@dataclass
class Page:
    """One physical page; ``index`` is 1-based."""

    index: int
    break_before: bool
    slices: list[PlacedSlice] = field(default_factory=list)


@dataclass
class PaginationContext:
    """Pagination state for one export invocation.

    Created fresh per export and threaded through every section; pages and
    the page map only ever grow.
    """

    pages: list[Page] = field(default_factory=list)
    page_map: dict[str, int] = field(default_factory=dict)
    sections: int = 0

    @property
    def current_page(self) -> int:
        return len(self.pages)

    def new_page(self) -> Page:
        # Only the very first page of the document starts without a break
        page = Page(index=len(self.pages) + 1, break_before=bool(self.pages))
        self.pages.append(page)
        return page


@dataclass
class PaginationResult:
    """Output of the first pass: the pages and the completed page map."""

    pages: list[Page]
    page_map: dict[str, int]

    @property
    def page_count(self) -> int:
        return len(self.pages)


class PageAssembler:
    """Slices rendered sections onto pages in generation order."""

    def __init__(
        self,
        geometry: PageGeometry,
        max_lookback: int = 80,
        threshold: int = 230,
        jpeg_quality: int = 80,
    ) -> None:
        self.geometry = geometry
        self.max_lookback = max_lookback
        self.threshold = threshold
        self.jpeg_quality = jpeg_quality

    def paginate(self, sections: Iterable[RenderedSection]) -> PaginationResult:
        """Paginate every section, one at a time.

        Args:
            sections: Rendered sections in generation order; may be a lazy
                iterator so only one bitmap is alive at a time

        Raises:
            NoSectionsError: If ``sections`` is empty
        """
        context = PaginationContext()
        for section in sections:
            context = self.place_section(context, section)

        if context.sections == 0:
            raise NoSectionsError("No book sections found")

        logger.info(f"Paginated {context.sections} sections onto {context.current_page} pages")
        return PaginationResult(pages=context.pages, page_map=context.page_map)

    def place_section(self, context: PaginationContext, section: RenderedSection) -> PaginationContext:
        """Slice one section onto new pages and return the updated context."""
        raster = section.raster
        scale = self.geometry.scale(raster.width)
        slicer = PageSlicer(
            self.geometry.page_capacity(raster.width),
            max_lookback=self.max_lookback,
            threshold=self.threshold,
        )
        result = slicer.slice(raster)
        if result.stopped_early:
            logger.warning(f"Section {section.anchor} was truncated during slicing")

        for i, (start, end) in enumerate(result.ranges):
            page = context.new_page()
            if i == 0 and section.kind in ANCHORED_KINDS:
                # Duplicate anchors (repeated chapter numbers): the later section wins
                if section.anchor in context.page_map:
                    logger.debug(f"Anchor {section.anchor} repeated; now page {page.index}")
                context.page_map[section.anchor] = page.index
            page.slices.append(self._place(raster, start, end, scale))

        context.sections += 1
        logger.debug(f"Section {section.anchor}: {len(result.ranges)} page(s)")
        return context

    def _place(self, raster, start: int, end: int, scale: float) -> PlacedSlice:
        """Encode rows ``[start, end)`` and position them inside the margins."""
        buffer = io.BytesIO()
        raster.crop(start, end).save(buffer, "JPEG", quality=self.jpeg_quality)
        return PlacedSlice(
            data=buffer.getvalue(),
            x=self.geometry.margin,
            y=self.geometry.margin,
            width=self.geometry.usable_width,
            height=(end - start) * scale,
        )
