"""Tests for slicer module."""

import pytest
from PIL import Image, ImageDraw

from bookformatter.raster import ImageRaster, is_blank_row
from bookformatter.slicer import PageSlicer, SliceResult, find_safe_break_row


def make_raster(height, blank_rows=(), width=12, ink=(0, 0, 0)):
    """Solid ink image with the given rows left white."""
    img = Image.new("RGB", (width, height), ink)
    draw = ImageDraw.Draw(img)
    for y in blank_rows:
        draw.line([(0, y), (width - 1, y)], fill=(255, 255, 255))
    return ImageRaster(img)


class CountingRaster:
    """Wraps a raster and counts row queries."""

    def __init__(self, raster):
        self._raster = raster
        self.rows_read = 0

    @property
    def width(self):
        return self._raster.width

    @property
    def height(self):
        return self._raster.height

    def row(self, y):
        self.rows_read += 1
        return self._raster.row(y)

    def crop(self, top, bottom):
        return self._raster.crop(top, bottom)


def assert_gap_free(result: SliceResult, height: int):
    """Ranges must tile [0, height) exactly."""
    assert result.ranges[0][0] == 0
    assert result.ranges[-1][1] == height
    for (_, end), (start, _) in zip(result.ranges, result.ranges[1:]):
        assert end == start
    for start, end in result.ranges:
        assert end > start


class TestBlankRows:
    """Tests for blank row detection."""

    def test_white_row_is_blank(self):
        raster = make_raster(5, blank_rows=[2])
        assert is_blank_row(raster, 2)
        assert not is_blank_row(raster, 1)

    def test_threshold_is_inclusive(self):
        """A row at exactly 230 counts as blank."""
        raster = ImageRaster(Image.new("RGB", (4, 2), (230, 230, 230)))
        assert is_blank_row(raster, 0)

    def test_any_dark_channel_disqualifies(self):
        """One channel below threshold makes the row ink."""
        raster = ImageRaster(Image.new("RGB", (4, 2), (229, 255, 255)))
        assert not is_blank_row(raster, 0)

    def test_single_dark_pixel_disqualifies(self):
        img = Image.new("RGB", (8, 3), (255, 255, 255))
        img.putpixel((7, 1), (10, 10, 10))
        raster = ImageRaster(img)
        assert is_blank_row(raster, 0)
        assert not is_blank_row(raster, 1)

    def test_transparent_image_flattened_on_white(self):
        """Transparent pixels read as white page background."""
        raster = ImageRaster(Image.new("RGBA", (4, 2), (0, 0, 0, 0)))
        assert is_blank_row(raster, 0)


class TestFindSafeBreakRow:
    """Tests for the upward blank-row search."""

    def test_returns_nearest_blank_row(self):
        """The blank row closest to the target wins."""
        raster = make_raster(100, blank_rows=[32, 38])
        assert find_safe_break_row(raster, 40, max_lookback=10) == 38

    def test_target_itself_can_qualify(self):
        raster = make_raster(100, blank_rows=[40])
        assert find_safe_break_row(raster, 40, max_lookback=10) == 40

    def test_falls_back_to_target(self):
        """No blank row within the lookback window."""
        raster = make_raster(100, blank_rows=[20])
        assert find_safe_break_row(raster, 40, max_lookback=10) == 40

    def test_lookback_window_is_inclusive(self):
        raster = make_raster(100, blank_rows=[30])
        assert find_safe_break_row(raster, 40, max_lookback=10) == 30

    def test_lookback_clamped_at_zero(self):
        raster = make_raster(20, blank_rows=[0])
        assert find_safe_break_row(raster, 5, max_lookback=80) == 0


class TestPageSlicer:
    """Tests for slicing sections into pages."""

    def test_cuts_at_blank_row(self):
        raster = make_raster(100, blank_rows=[35])
        result = PageSlicer(40, max_lookback=10).slice(raster)
        assert result.ranges == [(0, 35), (35, 75), (75, 100)]
        assert not result.stopped_early

    def test_fallback_cuts_through_content(self):
        """Solid ink is cut at the ideal end of each page."""
        raster = make_raster(100)
        result = PageSlicer(30, max_lookback=10).slice(raster)
        assert result.cuts == [30, 60, 90, 100]

    def test_height_equal_to_capacity(self):
        """Exactly one page, with no break search."""
        raster = CountingRaster(make_raster(50))
        result = PageSlicer(50).slice(raster)
        assert result.ranges == [(0, 50)]
        assert raster.rows_read == 0

    def test_shorter_than_capacity(self):
        result = PageSlicer(50).slice(make_raster(12))
        assert result.ranges == [(0, 12)]

    def test_final_slice_takes_remainder(self):
        """The last slice always ends at the section height."""
        raster = make_raster(95, blank_rows=[88])
        result = PageSlicer(45, max_lookback=5).slice(raster)
        assert result.cuts[-1] == 95

    @pytest.mark.parametrize("height,capacity,lookback,blank", [
        (300, 70, 20, range(0, 300, 9)),
        (301, 64, 80, range(5, 301, 17)),
        (257, 50, 0, range(0, 257, 3)),
        (400, 33, 12, []),
    ])
    def test_ranges_tile_section(self, height, capacity, lookback, blank):
        raster = make_raster(height, blank_rows=blank)
        result = PageSlicer(capacity, max_lookback=lookback).slice(raster)
        assert_gap_free(result, height)

    @pytest.mark.parametrize("lookback", [0, 5, 20, 40])
    def test_cut_bounds(self, lookback):
        """Non-final cuts stay within the lookback window below the ideal end."""
        capacity = 50
        raster = make_raster(500, blank_rows=range(3, 500, 23))
        result = PageSlicer(capacity, max_lookback=lookback).slice(raster)

        for start, end in result.ranges[:-1]:
            ideal_end = start + capacity
            assert ideal_end - lookback <= end <= ideal_end
        assert result.cuts == sorted(result.cuts)

    def test_early_stop_is_reported(self):
        """A cut that makes no progress stops slicing and is flagged."""
        raster = make_raster(50, blank_rows=[0])
        result = PageSlicer(10, max_lookback=20).slice(raster)
        assert result.stopped_early
        assert result.ranges == []

    def test_early_stop_keeps_earlier_slices(self):
        # Blank rows only at 10: second page would need to cut at 10 again
        raster = make_raster(60, blank_rows=[10])
        result = PageSlicer(10, max_lookback=20).slice(raster)
        assert result.ranges == [(0, 10)]
        assert result.stopped_early

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            PageSlicer(0)
