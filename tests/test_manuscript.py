"""Tests for manuscript module."""

import base64
import io
import json
import re

import pytest
from PIL import Image

from bookformatter.manuscript import (
    CatalogNumberGenerator,
    Manuscript,
    decode_cover,
    load_manuscript,
    split_paragraphs,
)


def image_bytes(fmt):
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), (120, 120, 120)).save(buffer, fmt)
    return buffer.getvalue()


class TestManuscriptFromDict:
    """Tests for reading the book JSON shape."""

    def test_full_record(self):
        data = {
            "new_title": "Salt",
            "new_author": "R. Vane",
            "genre": "Literary",
            "themes": ["sea", "grief"],
            "chapters": [
                {"chapter_number": 1, "title": "Tide", "content": "Water."},
                {"chapter_number": "2", "content": "More water."},
            ],
            "foreword": "Fore.",
            "acknowledgements": "Thanks.",
        }
        manuscript = Manuscript.from_dict(data)

        assert manuscript.title == "Salt"
        assert manuscript.author == "R. Vane"
        assert manuscript.themes == ["sea", "grief"]
        assert [c.chapter_number for c in manuscript.chapters] == [1, 2]
        assert manuscript.chapters[1].title is None
        assert manuscript.preface is None
        assert manuscript.chapters[0].anchor == "chapter-1"

    def test_defaults(self):
        manuscript = Manuscript.from_dict({})
        assert manuscript.title == "Untitled"
        assert manuscript.author == "Unknown Author"
        assert manuscript.chapters == []

    def test_plain_title_author_fallback(self):
        manuscript = Manuscript.from_dict({"title": "Plain", "author": "Someone"})
        assert (manuscript.title, manuscript.author) == ("Plain", "Someone")

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "book.json"
        path.write_text(json.dumps({"new_title": "Salt", "chapters": []}), encoding="utf-8")
        assert load_manuscript(path).title == "Salt"


class TestSplitParagraphs:
    """Tests for paragraph splitting."""

    def test_blank_line_boundaries(self):
        assert split_paragraphs("One.\n\nTwo.") == ["One.", "Two."]

    def test_whitespace_only_dropped(self):
        assert split_paragraphs("One.\n\n  \n\n\n\nTwo.") == ["One.", "Two."]

    def test_single_newlines_kept(self):
        assert split_paragraphs("Line one\nline two") == ["Line one\nline two"]

    def test_empty(self):
        assert split_paragraphs(None) == []
        assert split_paragraphs("") == []


class TestDecodeCover:
    """Tests for cover payload decoding."""

    def test_png_data_url(self):
        data = image_bytes("PNG")
        asset = decode_cover("data:image/png;base64," + base64.b64encode(data).decode())
        assert asset.data == data
        assert (asset.media_type, asset.extension) == ("image/png", "png")

    def test_jpeg_data_url(self):
        data = image_bytes("JPEG")
        asset = decode_cover("data:image/jpeg;base64," + base64.b64encode(data).decode())
        assert (asset.media_type, asset.extension) == ("image/jpeg", "jpg")

    def test_line_wrapped_data_url(self):
        """MIME-style wrapped base64 decodes to the same bytes."""
        data = image_bytes("PNG")
        flat = base64.b64encode(data).decode()
        encoded = "\n".join(flat[i:i + 16] for i in range(0, len(flat), 16))
        asset = decode_cover("data:image/png;base64,\n" + encoded)
        assert asset.data == data
        assert asset.media_type == "image/png"

    def test_bare_base64_defaults_to_jpeg(self):
        """Without a type token the cover is treated as JPEG."""
        asset = decode_cover(base64.b64encode(image_bytes("PNG")).decode())
        assert asset.media_type == "image/jpeg"

    def test_raw_png_bytes(self):
        asset = decode_cover(image_bytes("PNG"))
        assert asset.extension == "png"

    def test_invalid_base64(self):
        with pytest.raises(ValueError):
            decode_cover("data:image/png;base64,***")

    def test_not_an_image(self):
        with pytest.raises(OSError):
            decode_cover(b"definitely not pixels")

    def test_open_returns_image(self):
        asset = decode_cover(image_bytes("PNG"))
        with asset.open() as img:
            assert img.size == (4, 4)


class TestCatalogNumberGenerator:
    """Tests for reproducible catalog numbers."""

    def test_format(self):
        number = CatalogNumberGenerator(1).catalog_number()
        assert re.fullmatch(r"[0-9A-Z]{8}-XX", number)

    def test_seeded_is_reproducible(self):
        first = CatalogNumberGenerator(42)
        second = CatalogNumberGenerator(42)
        assert first.catalog_number() == second.catalog_number()
        assert first.identifier() == second.identifier()

    def test_identifier_is_uuid_urn(self):
        identifier = CatalogNumberGenerator(3).identifier()
        assert re.fullmatch(r"urn:uuid:[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}",
                            identifier)
