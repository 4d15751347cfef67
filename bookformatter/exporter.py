"""
Export orchestration: fixed-layout PDF and EPUB from one manuscript.
"""

import logging
import sys
import time
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Protocol

from .config import ExportConfig
from .epub_builder import EPUBBuilder, EPUBMetadata
from .errors import LayoutRootMissingError, NoSectionsError
from .layout import LayoutRoot, SectionKind, build_layout
from .links import LinkAnnotation, LinkResolver
from .manuscript import CatalogNumberGenerator, Manuscript, decode_cover
from .paginator import PageAssembler, PaginationResult
from .pdf_writer import PDFWriter
from .renderer import PillowSectionRenderer, SectionRenderer

logger = logging.getLogger(__name__)


class OutputSink(Protocol):
    """Persists a finished export."""

    def save(self, data: bytes, filename: str) -> Path | None: ...


class FileSink:
    """Writes exports into a directory."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def save(self, data: bytes, filename: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        path.write_bytes(data)
        logger.info(f"Saved {path} ({len(data)} bytes)")
        return path


@dataclass
class PDFExport:
    """A finished fixed-layout document plus its pagination bookkeeping."""

    data: bytes
    pagination: PaginationResult
    links: list[LinkAnnotation] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return self.pagination.page_count


@dataclass
class ExportResult:
    """Result of running a full export."""

    success: bool
    pdf_path: Path | None
    epub_path: Path | None
    page_count: int
    message: str


class BookExporter:
    """Exports a manuscript to a paginated PDF and an EPUB.

    Usage:
        config = ExportConfig(output_dir="./output", seed=7)
        exporter = BookExporter(config)
        result = exporter.run(manuscript, cover=cover_bytes)
    """

    def __init__(
        self,
        config: ExportConfig,
        renderer: SectionRenderer | None = None,
        sink: OutputSink | None = None,
        published: date | None = None,
    ) -> None:
        """Initialize the exporter.

        Args:
            config: Export configuration
            renderer: Section renderer (Pillow reference renderer if None)
            sink: Where finished files go (``config.output_dir`` if None)
            published: Publication date printed on the copyright page
        """
        self.config = config
        self._setup_logging()
        self.renderer = renderer or PillowSectionRenderer(
            width=config.render_width_px,
            base_font_size=config.base_font_size,
            font_path=config.font_path,
        )
        self.sink = sink or FileSink(config.output_dir)
        self.published = published

    def _setup_logging(self) -> None:
        """Ensure logging is configured.

        Only sets up a basic config if no handlers are configured,
        allowing the CLI to control logging setup.
        """
        if not logging.root.handlers:
            logging.basicConfig(
                level=logging.INFO,
                format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            )

    def _published(self) -> date:
        return self.published or date.today()

    def layout(self, manuscript: Manuscript, cover: str | bytes | None = None) -> LayoutRoot:
        """Lay out the manuscript for the fixed-layout document.

        A cover that cannot be decoded raises here; only the EPUB path
        tolerates a broken cover.
        """
        generator = CatalogNumberGenerator(self.config.seed)
        asset = decode_cover(cover) if cover is not None else None
        return build_layout(manuscript, asset, generator.catalog_number(), self._published())

    def export_pdf(self, manuscript: Manuscript, cover: str | bytes | None = None) -> PDFExport:
        """Build the fixed-layout document."""
        return self.render_pdf(self.layout(manuscript, cover))

    def render_pdf(self, root: LayoutRoot | None) -> PDFExport:
        """Paginate a layout root, resolve its links and write the PDF.

        Raises:
            LayoutRootMissingError: If ``root`` is None
            NoSectionsError: If the root has no sections
        """
        if root is None:
            raise LayoutRootMissingError("Book container not found")
        if not root.sections:
            raise NoSectionsError("No book sections found")

        geometry = self.config.geometry
        assembler = PageAssembler(
            geometry,
            max_lookback=self.config.max_lookback_px,
            threshold=self.config.whiteness_threshold,
            jpeg_quality=self.config.jpeg_quality,
        )

        # Pass 1: every page number must be known before any link is resolved
        pagination = assembler.paginate(self.renderer.render(section) for section in root.sections)

        # Pass 2: table-of-contents links
        resolver = LinkResolver(self.renderer, geometry)
        links = resolver.resolve(root.find(SectionKind.TOC), pagination.page_map)

        writer = PDFWriter(geometry, title=root.title, author=root.author)
        return PDFExport(data=writer.write(pagination.pages, links), pagination=pagination, links=links)

    def export_epub(self, manuscript: Manuscript, cover: str | bytes | None = None) -> bytes:
        """Build the EPUB package."""
        generator = CatalogNumberGenerator(self.config.seed)
        metadata = EPUBMetadata(
            title=manuscript.title,
            author=manuscript.author,
            language=self.config.language,
            catalog_number=generator.catalog_number(),
            identifier=generator.identifier(),
            published=self._published(),
        )
        return EPUBBuilder(metadata).build(manuscript, cover)

    def run(self, manuscript: Manuscript, cover: str | bytes | None = None) -> ExportResult:
        """Run every configured export and persist the results.

        Returns:
            ExportResult with output paths and status
        """
        formats = self.config.output_formats

        def step(num: int, name: str) -> None:
            sys.stderr.write(f"\n[{num}/{len(formats)}] {name}\n")
            sys.stderr.flush()

        start_time = time.time()
        sys.stderr.write(f"Exporting: {manuscript.title}\n")
        sys.stderr.write(f"Output: {self.config.output_dir}\n")
        sys.stderr.flush()

        pdf_path = None
        epub_path = None
        page_count = 0

        try:
            for num, fmt in enumerate(formats, start=1):
                filename = self.config.output_filename(manuscript.title, fmt)
                if fmt == "pdf":
                    step(num, "Paginating PDF")
                    export = self.export_pdf(manuscript, cover)
                    page_count = export.page_count
                    pdf_path = self.sink.save(export.data, filename)
                else:
                    step(num, "Packaging EPUB")
                    epub_path = self.sink.save(self.export_epub(manuscript, cover), filename)

        except Exception as e:
            logger.exception("Export failed")
            return ExportResult(
                success=False,
                pdf_path=pdf_path,
                epub_path=epub_path,
                page_count=page_count,
                message=f"Export failed: {e}",
            )

        elapsed = time.time() - start_time
        sys.stderr.write(f"\n{'─' * 40}\n")
        sys.stderr.write(f"Complete in {elapsed:.1f}s\n")
        if pdf_path:
            sys.stderr.write(f"  PDF: {pdf_path} ({page_count} pages)\n")
        if epub_path:
            sys.stderr.write(f"  EPUB: {epub_path}\n")
        sys.stderr.flush()

        return ExportResult(
            success=True,
            pdf_path=pdf_path,
            epub_path=epub_path,
            page_count=page_count,
            message=f"Exported {manuscript.title}",
        )
