"""
BookFormatter - Export structured manuscripts to PDF and EPUB

A complete export engine for:
1. Laying out a manuscript as ordered sections (cover, front matter, chapters)
2. Rendering each section to a fixed-width bitmap
3. Slicing bitmaps into pages at blank interline rows
4. Linking table-of-contents entries to chapter pages
5. Packaging the manuscript as an EPUB archive
"""

__version__ = "1.0.0"
__author__ = "BookFormatter"

from .config import ExportConfig
from .exporter import BookExporter
from .manuscript import Chapter, Manuscript, load_manuscript

__all__ = ["BookExporter", "Chapter", "ExportConfig", "Manuscript", "load_manuscript"]
