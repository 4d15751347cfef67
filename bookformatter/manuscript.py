"""
Manuscript records, cover payload decoding and catalog number generation.
"""

import base64
import binascii
import io
import json
import logging
import random
import string
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from PIL import Image

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

_CATALOG_ALPHABET = string.digits + string.ascii_lowercase


@dataclass
class Chapter:
    """A single chapter of the manuscript."""

    chapter_number: int
    content: str = ""
    title: str | None = None

    @property
    def anchor(self) -> str:
        """Anchor key used for page-map lookups and link targets."""
        return f"chapter-{self.chapter_number}"


@dataclass
class Manuscript:
    """A structured manuscript, read-only for the duration of an export."""

    title: str = "Untitled"
    author: str = "Unknown Author"
    genre: str | None = None
    themes: list[str] = field(default_factory=list)
    chapters: list[Chapter] = field(default_factory=list)
    foreword: str | None = None
    preface: str | None = None
    acknowledgements: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Manuscript":
        """Build a manuscript from the book JSON shape.

        Accepts ``new_title``/``new_author`` (falling back to ``title``/``author``).
        """
        chapters = [
            Chapter(
                chapter_number=int(chap["chapter_number"]),
                content=chap.get("content") or "",
                title=chap.get("title") or None,
            )
            for chap in data.get("chapters") or []
        ]
        return cls(
            title=data.get("new_title") or data.get("title") or "Untitled",
            author=data.get("new_author") or data.get("author") or "Unknown Author",
            genre=data.get("genre") or None,
            themes=list(data.get("themes") or []),
            chapters=chapters,
            foreword=data.get("foreword") or None,
            preface=data.get("preface") or None,
            acknowledgements=data.get("acknowledgements") or None,
        )


def load_manuscript(path: Path) -> Manuscript:
    """Load a manuscript from a book JSON file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return Manuscript.from_dict(data)


def split_paragraphs(text: str | None) -> list[str]:
    """Split text on blank lines, dropping empty and whitespace-only pieces."""
    if not text:
        return []
    return [p for p in text.split("\n\n") if p.strip()]


@dataclass
class CoverAsset:
    """A decoded cover image."""

    data: bytes
    media_type: str
    extension: str

    def open(self) -> Image.Image:
        """Open the cover as a Pillow image."""
        return Image.open(io.BytesIO(self.data))


def decode_cover(payload: str | bytes) -> CoverAsset:
    """Decode a cover payload.

    The payload may be a data URL (``data:image/png;base64,...``), a bare
    base64 string, or raw image bytes. The media type comes from the
    ``image/png`` token (or the PNG signature for raw bytes); anything else
    is treated as JPEG.

    Raises:
        ValueError: If the payload is not valid base64
        OSError: If Pillow cannot identify the image
    """
    if isinstance(payload, bytes):
        data = payload
        is_png = payload.startswith(PNG_SIGNATURE)
    else:
        header, _, encoded = payload.rpartition(",")
        is_png = "image/png" in header
        try:
            data = base64.b64decode("".join(encoded.split()), validate=True)
        except binascii.Error as e:
            raise ValueError(f"Cover payload is not valid base64: {e}") from e

    if not data:
        raise ValueError("Cover payload is empty")

    with Image.open(io.BytesIO(data)) as img:
        img.verify()

    if is_png:
        return CoverAsset(data=data, media_type="image/png", extension="png")
    return CoverAsset(data=data, media_type="image/jpeg", extension="jpg")


class CatalogNumberGenerator:
    """Seedable source for placeholder catalog numbers and package identifiers.

    Two generators built with the same seed produce the same sequence, so
    exports are reproducible in tests.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def catalog_number(self) -> str:
        """Placeholder ISBN-like catalog number, e.g. ``'K3J9ZQ0A-XX'``."""
        chars = "".join(self._rng.choice(_CATALOG_ALPHABET) for _ in range(8))
        return f"{chars.upper()}-XX"

    def identifier(self) -> str:
        """Package identifier as a ``urn:uuid`` string."""
        return f"urn:uuid:{uuid.UUID(int=self._rng.getrandbits(128), version=4)}"
