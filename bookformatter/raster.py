"""
Row-level pixel access over rendered section bitmaps.
"""

from typing import Protocol, Sequence

from PIL import Image

WHITE = (255, 255, 255)


class RasterSource(Protocol):
    """Fixed-width, variable-height pixel buffer with a white background."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def row(self, y: int) -> Sequence[tuple[int, ...]]:
        """Pixels of row ``y`` as channel tuples, left to right."""
        ...

    def crop(self, top: int, bottom: int) -> Image.Image:
        """Rows ``[top, bottom)`` as an RGB image."""
        ...


class ImageRaster:
    """RasterSource backed by a Pillow image."""

    def __init__(self, image: Image.Image) -> None:
        # Flatten transparency onto white so blank detection sees the page colour
        if image.mode in ("RGBA", "LA", "P"):
            rgba = image.convert("RGBA")
            background = Image.new("RGB", rgba.size, WHITE)
            background.paste(rgba, mask=rgba.getchannel("A"))
            image = background
        elif image.mode != "RGB":
            image = image.convert("RGB")
        self.image = image
        self._pixels = image.load()

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def row(self, y: int) -> list[tuple[int, ...]]:
        pixels = self._pixels
        return [pixels[x, y] for x in range(self.image.width)]

    def crop(self, top: int, bottom: int) -> Image.Image:
        return self.image.crop((0, top, self.image.width, bottom))


def is_blank_row(raster: RasterSource, y: int, threshold: int = 230) -> bool:
    """True if every pixel in row ``y`` is near-white (blank interline space)."""
    for pixel in raster.row(y):
        # Ink in any colour channel disqualifies the row
        if pixel[0] < threshold or pixel[1] < threshold or pixel[2] < threshold:
            return False
    return True
