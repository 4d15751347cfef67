"""
Section rendering: turns a logical section into a fixed-width bitmap.

The engine only depends on the ``SectionRenderer`` protocol. ``PillowSectionRenderer``
is a reference implementation drawing text with Pillow.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from PIL import Image, ImageDraw, ImageFont

from .layout import BlockStyle, SectionKind, SectionSpec
from .raster import WHITE, ImageRaster, RasterSource

logger = logging.getLogger(__name__)

INK = (20, 20, 20)
MUTED_INK = (85, 85, 85)
ACCENT_INK = (90, 60, 30)


@dataclass
class LinkRun:
    """A rendered chapter-reference text run, in section pixel coordinates."""

    target: str | None
    x: int
    y: int
    width: int
    height: int


@dataclass
class RenderedSection:
    """A section rendered to pixels."""

    anchor: str
    kind: SectionKind
    raster: RasterSource
    chapter_number: int | None = None
    link_runs: list[LinkRun] = field(default_factory=list)


class SectionRenderer(Protocol):
    """Anything that can render a section to a white-background bitmap."""

    def render(self, section: SectionSpec) -> RenderedSection: ...


@dataclass(frozen=True)
class _BlockFormat:
    scale: float
    align: str
    space_before: float
    space_after: float
    color: tuple[int, int, int] = INK


# Sizes and spacing are multiples of the base font size
BLOCK_FORMATS = {
    BlockStyle.GENRE: _BlockFormat(0.8, "center", 2.0, 0.5, MUTED_INK),
    BlockStyle.TITLE: _BlockFormat(2.2, "center", 1.0, 0.8),
    BlockStyle.AUTHOR: _BlockFormat(1.2, "center", 0.5, 1.0, MUTED_INK),
    BlockStyle.THEME: _BlockFormat(0.8, "center", 1.0, 0.5, ACCENT_INK),
    BlockStyle.LABEL: _BlockFormat(0.9, "center", 1.0, 0.5, MUTED_INK),
    BlockStyle.HEADING: _BlockFormat(1.5, "center", 0.5, 1.5),
    BlockStyle.BODY: _BlockFormat(1.0, "left", 0.0, 0.8),
    BlockStyle.NOTE: _BlockFormat(0.85, "center", 0.0, 0.4, MUTED_INK),
    BlockStyle.ORNAMENT: _BlockFormat(1.0, "center", 1.5, 1.5, MUTED_INK),
    BlockStyle.TOC_ENTRY: _BlockFormat(1.0, "center", 0.0, 0.8, ACCENT_INK),
    BlockStyle.SPACER: _BlockFormat(1.0, "left", 0.0, 0.0),
}


@dataclass
class _Line:
    text: str
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont
    x: int
    y: int
    color: tuple[int, int, int]
    link_target: str | None


class PillowSectionRenderer:
    """Renders sections with Pillow at a fixed pixel width."""

    LINE_SPACING = 1.5

    def __init__(
        self,
        width: int = 1000,
        base_font_size: int = 22,
        font_path: Path | None = None,
    ) -> None:
        """Initialize the renderer.

        Args:
            width: Pixel width of every rendered section
            base_font_size: Body text size in pixels
            font_path: TrueType font file; Pillow's bundled font if None
        """
        self.width = width
        self.base_font_size = base_font_size
        self.font_path = font_path
        self.padding_x = max(1, round(width * 0.06))
        self.padding_y = base_font_size * 2
        self._fonts: dict[int, ImageFont.FreeTypeFont | ImageFont.ImageFont] = {}

    def render(self, section: SectionSpec) -> RenderedSection:
        """Render one section to an RGB bitmap."""
        if section.kind is SectionKind.COVER and section.image is not None:
            image = self._render_cover(section)
            runs: list[LinkRun] = []
        else:
            image, runs = self._render_text(section)

        logger.debug(f"Rendered section {section.anchor}: {image.width}x{image.height}px")
        return RenderedSection(
            anchor=section.anchor,
            kind=section.kind,
            raster=ImageRaster(image),
            chapter_number=section.chapter_number,
            link_runs=runs,
        )

    def _render_cover(self, section: SectionSpec) -> Image.Image:
        with section.image.open() as cover:
            flat = ImageRaster(cover).image
            height = max(1, round(flat.height * self.width / flat.width))
            return flat.resize((self.width, height), Image.LANCZOS)

    def _render_text(self, section: SectionSpec) -> tuple[Image.Image, list[LinkRun]]:
        lines, height = self._layout(section)

        image = Image.new("RGB", (self.width, height), WHITE)
        draw = ImageDraw.Draw(image)
        runs = []
        for line in lines:
            draw.text((line.x, line.y), line.text, font=line.font, fill=line.color)
            if line.link_target is not None:
                left, top, right, bottom = draw.textbbox((line.x, line.y), line.text, font=line.font)
                runs.append(LinkRun(line.link_target, left, top, right - left, bottom - top))

        return image, runs

    def _layout(self, section: SectionSpec) -> tuple[list[_Line], int]:
        """Position every line; returns the lines and the section height."""
        max_width = self.width - 2 * self.padding_x
        lines: list[_Line] = []
        y = self.padding_y

        for block in section.blocks:
            fmt = BLOCK_FORMATS[block.style]
            size = max(1, round(self.base_font_size * fmt.scale))
            font = self._font(size)
            line_height = self._line_height(font)

            if block.style is BlockStyle.SPACER:
                y += line_height
                continue

            y += round(fmt.space_before * self.base_font_size)
            for text in self._wrap(block.text, font, max_width):
                text_width = font.getlength(text)
                if fmt.align == "center":
                    x = round(self.padding_x + (max_width - text_width) / 2)
                else:
                    x = self.padding_x
                lines.append(_Line(text, font, x, y, fmt.color, block.link_target))
                y += line_height
            y += round(fmt.space_after * self.base_font_size)

        return lines, max(1, y + self.padding_y)

    def _wrap(self, text: str, font, max_width: int) -> list[str]:
        """Greedy word wrap; single newlines force a break."""
        wrapped = []
        for raw_line in text.split("\n"):
            words = raw_line.split()
            if not words:
                wrapped.append("")
                continue
            current = words[0]
            for word in words[1:]:
                candidate = f"{current} {word}"
                if font.getlength(candidate) <= max_width:
                    current = candidate
                else:
                    wrapped.append(current)
                    current = word
            wrapped.append(current)
        return wrapped

    def _line_height(self, font) -> int:
        ascent, descent = font.getmetrics()
        return round((ascent + descent) * self.LINE_SPACING)

    def _font(self, size: int):
        font = self._fonts.get(size)
        if font is None:
            if self.font_path:
                font = ImageFont.truetype(str(self.font_path), size)
            else:
                font = ImageFont.load_default(size=size)
            self._fonts[size] = font
        return font
