"""
Second-pass resolution of table-of-contents links to page numbers.
"""

import logging
from dataclasses import dataclass

from .layout import TOC_ANCHOR, SectionSpec
from .paginator import PageGeometry
from .renderer import SectionRenderer

logger = logging.getLogger(__name__)


@dataclass
class LinkAnnotation:
    """A clickable region on ``source_page`` that jumps to ``target_page``.

    ``rect`` is ``(x, y, width, height)`` in millimetres from the page's
    top-left corner.
    """

    source_page: int
    rect: tuple[float, float, float, float]
    target_page: int


class LinkResolver:
    """Maps table-of-contents entries to the pages their chapters start on.

    Must run after pagination has completed: target pages are forward
    references that only exist once the whole document is laid out.
    """

    def __init__(self, renderer: SectionRenderer, geometry: PageGeometry) -> None:
        self.renderer = renderer
        self.geometry = geometry

    def resolve(self, toc_section: SectionSpec | None, page_map: dict[str, int]) -> list[LinkAnnotation]:
        """Build link annotations for the table of contents.

        Links whose target never received a page are dropped.

        Args:
            toc_section: The table-of-contents section, or None if there is none
            page_map: Completed anchor -> first page mapping

        Returns:
            Annotations placed on the page the table of contents begins on
        """
        toc_page = page_map.get(TOC_ANCHOR)
        if toc_section is None or toc_page is None:
            return []

        # Fresh render: the page slices do not carry sub-region coordinates
        rendered = self.renderer.render(toc_section)
        runs = [run for run in rendered.link_runs if run.target]
        if not runs:
            return []

        scale = self.geometry.scale(rendered.raster.width)
        margin = self.geometry.margin

        annotations = []
        for run in runs:
            target_page = page_map.get(run.target)
            if target_page is None:
                logger.debug(f"Dropping table of contents link to {run.target}: no page")
                continue
            annotations.append(LinkAnnotation(
                source_page=toc_page,
                rect=(
                    margin + run.x * scale,
                    margin + run.y * scale,
                    run.width * scale,
                    run.height * scale,
                ),
                target_page=target_page,
            ))

        logger.info(f"Resolved {len(annotations)}/{len(runs)} table of contents links")
        return annotations
