"""
Fixed-layout PDF output with reportlab.
"""

import io
import logging
from collections import defaultdict

from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .links import LinkAnnotation
from .paginator import Page, PageGeometry

logger = logging.getLogger(__name__)


def page_destination(index: int) -> str:
    """Named destination for a 1-based page index."""
    return f"page-{index}"


class PDFWriter:
    """Writes placed page slices and link annotations to a PDF."""

    def __init__(self, geometry: PageGeometry, title: str = "", author: str = "") -> None:
        self.geometry = geometry
        self.title = title
        self.author = author

    def write(self, pages: list[Page], annotations: list[LinkAnnotation]) -> bytes:
        """Render the document.

        Args:
            pages: Pages from pagination, in order
            annotations: Resolved links; each is drawn on its source page

        Returns:
            PDF bytes
        """
        page_height = self.geometry.page_height
        buffer = io.BytesIO()
        pdf = canvas.Canvas(
            buffer,
            pagesize=(self.geometry.page_width * mm, page_height * mm),
            invariant=1,
        )
        pdf.setTitle(self.title)
        pdf.setAuthor(self.author)

        links_by_page: dict[int, list[LinkAnnotation]] = defaultdict(list)
        for annotation in annotations:
            links_by_page[annotation.source_page].append(annotation)

        for page in pages:
            if page.break_before:
                pdf.showPage()
            pdf.bookmarkPage(page_destination(page.index))

            # Layout is top-left based; the PDF origin is bottom-left
            for placed in page.slices:
                pdf.drawImage(
                    ImageReader(io.BytesIO(placed.data)),
                    placed.x * mm,
                    (page_height - placed.y - placed.height) * mm,
                    width=placed.width * mm,
                    height=placed.height * mm,
                )

            for link in links_by_page.get(page.index, []):
                x, y, width, height = link.rect
                pdf.linkRect(
                    "",
                    page_destination(link.target_page),
                    (x * mm, (page_height - y - height) * mm, (x + width) * mm, (page_height - y) * mm),
                    relative=0,
                    thickness=0,
                )

        pdf.showPage()
        pdf.save()

        logger.info(f"Wrote PDF with {len(pages)} pages and {len(annotations)} links")
        return buffer.getvalue()
