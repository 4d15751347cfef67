"""
Configuration for the export engine.
"""

import re
from dataclasses import dataclass
from pathlib import Path

from .paginator import PageGeometry


@dataclass
class ExportConfig:
    """Configuration for a single export invocation.

    Attributes:
        output_dir: Directory the file sink writes into
        language: Book language code (e.g., 'en', 'es', 'zh')

        # Fixed page format (millimetres)
        page_width_mm: Physical page width (A4 by default)
        page_height_mm: Physical page height
        margin_mm: Margin applied on all four sides

        # Page slicing
        max_lookback_px: How far above the ideal cut to search for a blank row
        whiteness_threshold: Minimum channel value for a pixel to count as blank

        # Rendering
        render_width_px: Fixed pixel width of every rendered section
        base_font_size: Body text size in pixels
        font_path: Optional TrueType font (Pillow's bundled font otherwise)
        jpeg_quality: Quality used when encoding page slices

        # Reproducibility
        seed: Seed for catalog number / identifier generation (None = random)

        # Output
        output_formats: Which formats to generate
    """

    output_dir: Path
    language: str = "en"

    page_width_mm: float = 210.0
    page_height_mm: float = 297.0
    margin_mm: float = 14.0

    max_lookback_px: int = 80
    whiteness_threshold: int = 230

    render_width_px: int = 1000
    base_font_size: int = 22
    font_path: Path | None = None
    jpeg_quality: int = 80

    seed: int | None = None

    output_formats: tuple[str, ...] = ("pdf", "epub")

    def __post_init__(self) -> None:
        """Validate and convert paths."""
        self.output_dir = Path(self.output_dir)

        if self.font_path:
            self.font_path = Path(self.font_path)

        if self.margin_mm < 0:
            raise ValueError(f"margin_mm must be >= 0, got {self.margin_mm}")

        if self.page_width_mm <= 2 * self.margin_mm or self.page_height_mm <= 2 * self.margin_mm:
            raise ValueError("Margins leave no usable page area")

        if self.max_lookback_px < 0:
            raise ValueError(f"max_lookback_px must be >= 0, got {self.max_lookback_px}")

        if not 0 <= self.whiteness_threshold <= 255:
            raise ValueError(
                f"whiteness_threshold must be in [0, 255], got {self.whiteness_threshold}"
            )

        if self.render_width_px < 1:
            raise ValueError(f"render_width_px must be >= 1, got {self.render_width_px}")

        if self.base_font_size < 1:
            raise ValueError(f"base_font_size must be >= 1, got {self.base_font_size}")

        if not 1 <= self.jpeg_quality <= 95:
            raise ValueError(f"jpeg_quality must be in [1, 95], got {self.jpeg_quality}")

        valid_formats = {"pdf", "epub"}
        invalid = set(self.output_formats) - valid_formats
        if invalid:
            raise ValueError(f"Invalid output formats: {invalid}. Valid: {valid_formats}")

    @property
    def geometry(self) -> PageGeometry:
        """Fixed page geometry for the paginated document."""
        return PageGeometry(
            page_width=self.page_width_mm,
            page_height=self.page_height_mm,
            margin=self.margin_mm,
        )

    def output_filename(self, title: str, fmt: str) -> str:
        """Suggested file name for an exported book."""
        if fmt == "pdf":
            stem = title or "book"
        else:
            stem = re.sub(r"\s+", "_", title)
        return f"{_safe_filename(stem)}.{fmt}"


def _safe_filename(name: str) -> str:
    """Generate safe filename from a book title."""
    safe = "".join(c if c.isalnum() or c in " -_" else "_" for c in name)
    return safe.strip()[:100] or "book"
