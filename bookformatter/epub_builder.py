"""
EPUB packaging of a manuscript.
"""

import io
import logging
import zipfile
from dataclasses import dataclass, field
from datetime import date

from .layout import copyright_lines
from .manuscript import CoverAsset, Manuscript, decode_cover, split_paragraphs

logger = logging.getLogger(__name__)

MIMETYPE = "application/epub+zip"
XHTML_MEDIA_TYPE = "application/xhtml+xml"

# Fixed entry timestamp so identical input gives identical archives
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


@dataclass
class EPUBMetadata:
    """Metadata for EPUB file.

    ``identifier`` and ``published`` have no defaults; callers draw them from
    a ``CatalogNumberGenerator`` and a fixed date so packages are reproducible.
    """

    title: str
    identifier: str
    published: date
    author: str = "Unknown Author"
    language: str = "en"
    catalog_number: str = ""

    def __post_init__(self) -> None:
        if not self.identifier:
            raise ValueError("EPUB identifier must not be empty")


@dataclass
class ManifestItem:
    """An entry of the package manifest."""

    id: str
    href: str
    media_type: str
    properties: str | None = None

    def to_xml(self) -> str:
        props = f' properties="{self.properties}"' if self.properties else ""
        return f'<item id="{self.id}" href="{self.href}" media-type="{self.media_type}"{props}/>'


@dataclass
class SpineItem:
    """A reading-order reference to a manifest item."""

    idref: str
    linear: str | None = None

    def to_xml(self) -> str:
        linear = f' linear="{self.linear}"' if self.linear else ""
        return f'<itemref idref="{self.idref}"{linear}/>'


@dataclass
class NavPoint:
    """An entry of the navigation map; ``order`` starts at 1."""

    order: int
    label: str
    src: str


@dataclass
class PackageContents:
    """Everything accumulated while building one package, in generation order."""

    documents: list[tuple[str, str]] = field(default_factory=list)
    manifest: list[ManifestItem] = field(default_factory=list)
    spine: list[SpineItem] = field(default_factory=list)
    nav_points: list[NavPoint] = field(default_factory=list)
    cover: CoverAsset | None = None

    @property
    def cover_href(self) -> str | None:
        if self.cover is None:
            return None
        return f"cover.{self.cover.extension}"


class EPUBBuilder:
    """Builds EPUB 2 packages from manuscripts."""

    def __init__(self, metadata: EPUBMetadata) -> None:
        """Initialize EPUB builder.

        Args:
            metadata: Book metadata
        """
        self.metadata = metadata

    def build(self, manuscript: Manuscript, cover: str | bytes | None = None) -> bytes:
        """Build an EPUB archive from a manuscript.

        Args:
            manuscript: The book to package
            cover: Optional cover payload (data URL, base64 text or raw bytes).
                A payload that cannot be decoded is skipped with a warning.

        Returns:
            The EPUB archive as bytes
        """
        contents = PackageContents()

        if cover is not None:
            self._add_cover(contents, cover)

        self._add_title_page(contents, manuscript)
        self._add_copyright_page(contents, manuscript)

        if manuscript.foreword:
            self._add_matter(contents, "foreword", "Foreword", manuscript.foreword)
        if manuscript.preface:
            self._add_matter(contents, "preface", "Preface", manuscript.preface)

        chapter_ids = self._chapter_ids(manuscript)
        self._add_toc_page(contents, manuscript, chapter_ids)

        for chap, chap_id in zip(manuscript.chapters, chapter_ids):
            body = f"<h3>Chapter {chap.chapter_number}</h3>"
            if chap.title:
                body += f"<h2>{self._escape_xml(chap.title)}</h2>"
            body += self._render_paragraphs(chap.content)
            self._add_document(contents, chap_id, f"Chapter {chap.chapter_number}", body)

        if manuscript.acknowledgements:
            self._add_matter(contents, "acknowledgements", "Acknowledgements",
                             manuscript.acknowledgements)

        archive = self._write_archive(contents)
        logger.info(
            f"Created EPUB with {len(contents.spine)} documents"
            f"{' and a cover' if contents.cover else ''}: {len(archive)} bytes"
        )
        return archive

    def _write_archive(self, contents: PackageContents) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as epub:
            # Mimetype must be first and uncompressed
            self._writestr(epub, "mimetype", MIMETYPE, zipfile.ZIP_STORED)
            self._writestr(epub, "META-INF/container.xml", self._container_xml())

            for href, xhtml in contents.documents:
                self._writestr(epub, f"OEBPS/{href}", xhtml)

            self._writestr(epub, "OEBPS/style.css", self._stylesheet())

            if contents.cover is not None:
                self._writestr(epub, f"OEBPS/{contents.cover_href}", contents.cover.data)

            self._writestr(epub, "OEBPS/toc.ncx", self._toc_ncx(contents.nav_points))
            self._writestr(epub, "OEBPS/content.opf", self._content_opf(contents))

        return buffer.getvalue()

    def _writestr(self, epub: zipfile.ZipFile, name: str, data: str | bytes,
                  compress_type: int = zipfile.ZIP_DEFLATED) -> None:
        info = zipfile.ZipInfo(name, date_time=ZIP_TIMESTAMP)
        info.compress_type = compress_type
        info.external_attr = 0o644 << 16
        epub.writestr(info, data)

    def _add_document(self, contents: PackageContents, doc_id: str, title: str, body: str) -> None:
        """Register a content document in the manifest, spine and navigation map."""
        href = f"{doc_id}.xhtml"
        contents.documents.append((href, self._xhtml(title, body)))
        contents.manifest.append(ManifestItem(doc_id, href, XHTML_MEDIA_TYPE))
        contents.spine.append(SpineItem(doc_id))
        contents.nav_points.append(NavPoint(len(contents.nav_points) + 1, title, href))

    def _add_cover(self, contents: PackageContents, payload: str | bytes) -> None:
        try:
            asset = decode_cover(payload)
        except (ValueError, OSError, SyntaxError) as e:
            logger.warning(f"Could not process cover image for EPUB: {e}")
            return

        contents.cover = asset
        contents.manifest.append(
            ManifestItem("cover-image", contents.cover_href, asset.media_type, "cover-image")
        )
        self._add_document(
            contents,
            "cover",
            "Cover",
            '<div style="text-align: center; padding: 0; margin: 0;">'
            f'<img class="cover-image" src="{contents.cover_href}" alt="Cover"/></div>',
        )

        # The cover always opens the reading order
        cover_ref = contents.spine.pop()
        cover_ref.linear = "yes"
        contents.spine.insert(0, cover_ref)

    def _add_title_page(self, contents: PackageContents, manuscript: Manuscript) -> None:
        genre = manuscript.genre or "Fiction"
        body = (
            '<div class="title-page">\n'
            f"  <h2>{self._escape_xml(genre)}</h2>\n"
            f"  <h1>{self._escape_xml(manuscript.title)}</h1>\n"
            f"  <h3>by {self._escape_xml(manuscript.author)}</h3>\n"
            "</div>"
        )
        self._add_document(contents, "title", "Title Page", body)

    def _add_copyright_page(self, contents: PackageContents, manuscript: Manuscript) -> None:
        lines = copyright_lines(manuscript, self.metadata.catalog_number, self.metadata.published)
        paragraphs = [f"<p>{self._escape_xml(line)}</p>" for line in lines]
        body = (
            '<div class="copyright-page">\n'
            + "\n<br/>\n".join(paragraphs[:4])
            + "\n" + "\n".join(paragraphs[4:])
            + "\n</div>"
        )
        self._add_document(contents, "copyright", "Copyright", body)

    def _add_matter(self, contents: PackageContents, doc_id: str, label: str, text: str) -> None:
        body = f"<h2>{label}</h2>{self._render_paragraphs(text)}"
        self._add_document(contents, doc_id, label, body)

    def _add_toc_page(self, contents: PackageContents, manuscript: Manuscript,
                      chapter_ids: list[str]) -> None:
        items = []
        for chap, chap_id in zip(manuscript.chapters, chapter_ids):
            label = f"Chapter {chap.chapter_number}"
            if chap.title:
                label += f": {chap.title}"
            items.append(
                f'  <li><a href="{chap_id}.xhtml">{self._escape_xml(label)}</a></li>'
            )
        body = (
            '<h2 class="toc-title">Table of Contents</h2>\n'
            '<ul class="toc-list">\n'
            + "\n".join(items)
            + "\n</ul>"
        )
        self._add_document(contents, "toc_page", "Table of Contents", body)

    def _chapter_ids(self, manuscript: Manuscript) -> list[str]:
        """Document ids per chapter; repeated chapter numbers get a suffix."""
        ids = []
        seen: dict[str, int] = {}
        for chap in manuscript.chapters:
            base = f"chapter_{chap.chapter_number}"
            seen[base] = seen.get(base, 0) + 1
            ids.append(base if seen[base] == 1 else f"{base}_{seen[base]}")
        return ids

    def _render_paragraphs(self, text: str | None) -> str:
        """Wrap each blank-line separated paragraph in its own <p>."""
        return "\n".join(
            f"<p>{self._escape_xml(paragraph.strip())}</p>" for paragraph in split_paragraphs(text)
        )

    def _xhtml(self, title: str, body: str) -> str:
        """Wrap a body fragment in an XHTML document."""
        return f'''<?xml version="1.0" encoding="utf-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops" xml:lang="{self.metadata.language}">
<head>
    <title>{self._escape_xml(title)}</title>
    <link rel="stylesheet" type="text/css" href="style.css"/>
</head>
<body>
{body}
</body>
</html>'''

    def _container_xml(self) -> str:
        """Generate META-INF/container.xml."""
        return '''<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
    <rootfiles>
        <rootfile full-path="OEBPS/content.opf" media-type="application/oebps-package+xml"/>
    </rootfiles>
</container>'''

    def _content_opf(self, contents: PackageContents) -> str:
        """Generate OEBPS/content.opf (package document)."""
        manifest_items = ['<item id="style" href="style.css" media-type="text/css"/>']
        manifest_items.extend(item.to_xml() for item in contents.manifest)
        manifest_items.append('<item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>')

        spine_items = [item.to_xml() for item in contents.spine]

        cover_meta = ""
        if contents.cover is not None:
            cover_meta = '\n        <meta name="cover" content="cover-image"/>'

        return f'''<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="BookId">
    <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
        <dc:title>{self._escape_xml(self.metadata.title)}</dc:title>
        <dc:creator opf:role="aut">{self._escape_xml(self.metadata.author)}</dc:creator>
        <dc:language>{self.metadata.language}</dc:language>
        <dc:identifier id="BookId">{self._escape_xml(self.metadata.identifier)}</dc:identifier>
        <dc:date>{self.metadata.published.isoformat()}</dc:date>{cover_meta}
    </metadata>
    <manifest>
        {(chr(10) + "        ").join(manifest_items)}
    </manifest>
    <spine toc="ncx">
        {(chr(10) + "        ").join(spine_items)}
    </spine>
</package>'''

    def _toc_ncx(self, nav_points: list[NavPoint]) -> str:
        """Generate OEBPS/toc.ncx (navigation map)."""
        points = []
        for point in nav_points:
            points.append(f'''
        <navPoint id="navPoint-{point.order}" playOrder="{point.order}">
            <navLabel><text>{self._escape_xml(point.label)}</text></navLabel>
            <content src="{point.src}"/>
        </navPoint>''')

        return f'''<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
    <head>
        <meta name="dtb:uid" content="{self._escape_xml(self.metadata.identifier)}"/>
        <meta name="dtb:depth" content="1"/>
        <meta name="dtb:totalPageCount" content="0"/>
        <meta name="dtb:maxPageNumber" content="0"/>
    </head>
    <docTitle><text>{self._escape_xml(self.metadata.title)}</text></docTitle>
    <navMap>
        {''.join(points)}
    </navMap>
</ncx>'''

    def _stylesheet(self) -> str:
        """Generate the shared stylesheet."""
        return '''body {
    font-family: 'Lora', Georgia, serif;
    line-height: 1.6;
    padding: 2% 5%;
    text-align: justify;
}

h1, h2, h3 {
    font-family: 'Playfair Display', serif;
    text-align: center;
}

.title-page {
    text-align: center;
    margin-top: 20%;
}

.copyright-page {
    text-align: center;
    margin-top: 20%;
    font-size: 0.9em;
    color: #555;
}

.toc-title {
    margin-bottom: 2em;
}

.toc-list {
    list-style-type: none;
    padding: 0;
    text-align: center;
}

.toc-list li {
    margin-bottom: 1em;
}

.toc-list a {
    text-decoration: none;
    color: inherit;
}

p {
    margin-bottom: 1em;
    text-indent: 1.5em;
}

p:first-of-type {
    text-indent: 0;
}

.cover-image {
    width: 100%;
    height: auto;
    max-height: 100vh;
    object-fit: contain;
}
'''

    def _escape_xml(self, text: str) -> str:
        """Escape special XML characters."""
        return (
            text
            .replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;")
            .replace("'", "&apos;")
        )
