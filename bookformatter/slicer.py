"""
Whitespace-aware slicing of tall section bitmaps into page-sized ranges.
"""

import logging
from dataclasses import dataclass, field

from .raster import RasterSource, is_blank_row

logger = logging.getLogger(__name__)


@dataclass
class SliceResult:
    """Pixel row ranges for one section.

    Attributes:
        ranges: Ordered, non-overlapping ``(start, end)`` pairs
        stopped_early: True if slicing stopped before reaching the section
            height because no forward progress was possible
    """

    ranges: list[tuple[int, int]] = field(default_factory=list)
    stopped_early: bool = False

    @property
    def cuts(self) -> list[int]:
        """End row of every slice."""
        return [end for _, end in self.ranges]


def find_safe_break_row(
    raster: RasterSource,
    target: int,
    max_lookback: int = 80,
    threshold: int = 230,
) -> int:
    """Find the nearest blank row at or above ``target``.

    Scans from ``target`` upward to ``max(0, target - max_lookback)``.

    Returns:
        The first blank row found, or ``target`` if there is none in range
    """
    low = max(0, target - max_lookback)
    for y in range(target, low - 1, -1):
        if is_blank_row(raster, y, threshold):
            return y
    return target


class PageSlicer:
    """Splits a section's pixel buffer into page-sized row ranges."""

    def __init__(self, page_capacity: int, max_lookback: int = 80, threshold: int = 230) -> None:
        """Initialize the slicer.

        Args:
            page_capacity: Pixel rows that fill one physical page
            max_lookback: Maximum rows to search above the ideal cut
            threshold: Minimum channel intensity of a blank pixel
        """
        if page_capacity < 1:
            raise ValueError(f"page_capacity must be >= 1, got {page_capacity}")
        self.page_capacity = page_capacity
        self.max_lookback = max_lookback
        self.threshold = threshold

    def slice(self, raster: RasterSource) -> SliceResult:
        """Slice ``raster`` into ranges covering ``[0, height)``.

        The last slice always takes everything that remains, even if that
        means cutting through a line of text.
        """
        height = raster.height
        result = SliceResult()
        start = 0

        while start < height:
            ideal_end = min(start + self.page_capacity, height)

            if ideal_end == height:
                cut = height
            else:
                cut = find_safe_break_row(raster, ideal_end, self.max_lookback, self.threshold)

            if cut - start <= 0:
                logger.warning(
                    f"No forward progress slicing at row {start} of {height}; "
                    f"dropping the remaining {height - start} rows"
                )
                result.stopped_early = True
                break

            result.ranges.append((start, cut))
            start = cut

        return result
