"""
Logical document layout: the ordered sections a manuscript is rendered as.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from .manuscript import CoverAsset, Manuscript, split_paragraphs

TOC_ANCHOR = "toc"

RIGHTS_NOTICE = (
    "All rights reserved. No portion of this book may be reproduced, stored in a "
    "retrieval system, or transmitted in any form or by any means without prior "
    "written permission from the author."
)

FICTION_DISCLAIMER = (
    "This is a work of fiction. Names, characters, places, and incidents are either "
    "products of the author's imagination or are used fictitiously."
)


class SectionKind(Enum):
    """Kinds of logical document sections."""

    COVER = "cover"
    TITLE = "title"
    COPYRIGHT = "copyright"
    FOREWORD = "foreword"
    PREFACE = "preface"
    TOC = "toc"
    CHAPTER = "chapter"
    ACKNOWLEDGEMENTS = "acknowledgements"


class BlockStyle(Enum):
    """Visual role of a text block inside a section."""

    GENRE = "genre"
    TITLE = "title"
    AUTHOR = "author"
    THEME = "theme"
    LABEL = "label"
    HEADING = "heading"
    BODY = "body"
    NOTE = "note"
    ORNAMENT = "ornament"
    TOC_ENTRY = "toc_entry"
    SPACER = "spacer"


@dataclass
class TextBlock:
    """One block of text; ``link_target`` marks a chapter reference."""

    text: str
    style: BlockStyle = BlockStyle.BODY
    link_target: str | None = None


@dataclass
class SectionSpec:
    """A logical section of the document, before rendering."""

    anchor: str
    kind: SectionKind
    blocks: list[TextBlock] = field(default_factory=list)
    chapter_number: int | None = None
    image: CoverAsset | None = None


@dataclass
class LayoutRoot:
    """Ordered sections in generation order."""

    title: str
    author: str = ""
    sections: list[SectionSpec] = field(default_factory=list)

    def find(self, kind: SectionKind) -> SectionSpec | None:
        """First section of the given kind, if any."""
        for section in self.sections:
            if section.kind is kind:
                return section
        return None


def copyright_lines(manuscript: Manuscript, catalog_number: str, published: date) -> list[str]:
    """Copyright page text, shared by the PDF and EPUB outputs."""
    return [
        f"Copyright © {published.year} {manuscript.author}",
        RIGHTS_NOTICE,
        FICTION_DISCLAIMER,
        f"First published: {published.strftime('%B %Y')}",
        f"ISBN: {catalog_number}",
    ]


def toc_label(chapter_number: int, title: str | None) -> str:
    return f"Chapter {chapter_number}: {title or 'Untitled'}"


def _matter_section(anchor: str, kind: SectionKind, label: str, text: str,
                    ornament_first: bool = False) -> SectionSpec:
    blocks = [TextBlock(label, BlockStyle.LABEL)]
    blocks.extend(TextBlock(p) for p in split_paragraphs(text))
    ornament = TextBlock("***", BlockStyle.ORNAMENT)
    if ornament_first:
        blocks.insert(0, ornament)
    else:
        blocks.append(ornament)
    return SectionSpec(anchor=anchor, kind=kind, blocks=blocks)


def build_layout(
    manuscript: Manuscript,
    cover: CoverAsset | None,
    catalog_number: str,
    published: date,
) -> LayoutRoot:
    """Lay a manuscript out as sections in generation order.

    Order: cover? -> title -> copyright -> foreword? -> preface? -> toc? ->
    chapters (input order) -> acknowledgements?. The table of contents is
    only laid out when the manuscript has chapters.
    """
    root = LayoutRoot(title=manuscript.title, author=manuscript.author)
    sections = root.sections

    if cover is not None:
        sections.append(SectionSpec(anchor="cover", kind=SectionKind.COVER, image=cover))

    title_blocks = []
    if manuscript.genre:
        title_blocks.append(TextBlock(manuscript.genre, BlockStyle.GENRE))
    title_blocks.append(TextBlock(manuscript.title, BlockStyle.TITLE))
    title_blocks.append(TextBlock(f"by {manuscript.author}", BlockStyle.AUTHOR))
    if manuscript.themes:
        title_blocks.append(TextBlock("  ·  ".join(manuscript.themes), BlockStyle.THEME))
    sections.append(SectionSpec(anchor="title", kind=SectionKind.TITLE, blocks=title_blocks))

    copyright_blocks = []
    for i, line in enumerate(copyright_lines(manuscript, catalog_number, published)):
        if 0 < i < 4:
            copyright_blocks.append(TextBlock("", BlockStyle.SPACER))
        copyright_blocks.append(TextBlock(line, BlockStyle.NOTE))
    sections.append(SectionSpec(anchor="copyright", kind=SectionKind.COPYRIGHT,
                                blocks=copyright_blocks))

    if manuscript.foreword:
        sections.append(_matter_section("foreword", SectionKind.FOREWORD, "Foreword",
                                        manuscript.foreword))
    if manuscript.preface:
        sections.append(_matter_section("preface", SectionKind.PREFACE, "Preface",
                                        manuscript.preface))

    if manuscript.chapters:
        toc_blocks = [TextBlock("Table of Contents", BlockStyle.HEADING)]
        for chap in manuscript.chapters:
            toc_blocks.append(TextBlock(toc_label(chap.chapter_number, chap.title),
                                        BlockStyle.TOC_ENTRY, link_target=chap.anchor))
        toc_blocks.append(TextBlock("***", BlockStyle.ORNAMENT))
        sections.append(SectionSpec(anchor=TOC_ANCHOR, kind=SectionKind.TOC, blocks=toc_blocks))

    for index, chap in enumerate(manuscript.chapters):
        blocks = [TextBlock(f"Chapter {chap.chapter_number}", BlockStyle.LABEL)]
        if chap.title:
            blocks.append(TextBlock(chap.title, BlockStyle.HEADING))
        blocks.extend(TextBlock(p) for p in split_paragraphs(chap.content))
        if index < len(manuscript.chapters) - 1:
            blocks.append(TextBlock("***", BlockStyle.ORNAMENT))
        sections.append(SectionSpec(anchor=chap.anchor, kind=SectionKind.CHAPTER,
                                    blocks=blocks, chapter_number=chap.chapter_number))

    if manuscript.acknowledgements:
        sections.append(_matter_section("acknowledgements", SectionKind.ACKNOWLEDGEMENTS,
                                        "Acknowledgements", manuscript.acknowledgements,
                                        ornament_first=True))

    return root
