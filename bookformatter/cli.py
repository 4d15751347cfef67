#!/usr/bin/env python3
"""
Command-line interface for BookFormatter.

Usage:
    # Both outputs: book JSON -> PDF + EPUB
    bookformatter export ./book.json --cover ./cover.png --output ./output

    # Only the paginated PDF
    bookformatter pdf ./book.json --output ./output

    # Only the EPUB
    bookformatter epub ./book.json --cover ./cover.jpg
"""

import argparse
import json
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_config(args: argparse.Namespace, formats: tuple[str, ...]):
    from .config import ExportConfig

    return ExportConfig(
        output_dir=Path(args.output),
        language=args.language,
        render_width_px=args.width,
        font_path=Path(args.font) if args.font else None,
        seed=args.seed,
        output_formats=formats,
    )


def _load_inputs(args: argparse.Namespace):
    """Read the manuscript and optional cover; None if the book is unreadable."""
    from .manuscript import load_manuscript

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Input file not found: {input_path}", file=sys.stderr)
        return None, None

    try:
        manuscript = load_manuscript(input_path)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        print(f"Invalid book JSON: {e}", file=sys.stderr)
        return None, None

    cover = None
    if args.cover:
        cover_path = Path(args.cover)
        if not cover_path.exists():
            print(f"Cover image not found: {cover_path}", file=sys.stderr)
            return None, None
        cover = cover_path.read_bytes()

    return manuscript, cover


def _run(args: argparse.Namespace, formats: tuple[str, ...]) -> int:
    from .exporter import BookExporter

    manuscript, cover = _load_inputs(args)
    if manuscript is None:
        return 1

    exporter = BookExporter(_build_config(args, formats))
    result = exporter.run(manuscript, cover)

    if result.success:
        print(f"\n✓ Success: {result.message}")
        if result.pdf_path:
            print(f"  PDF: {result.pdf_path} ({result.page_count} pages)")
        if result.epub_path:
            print(f"  EPUB: {result.epub_path}")
        return 0
    else:
        print(f"\n✗ Failed: {result.message}", file=sys.stderr)
        return 1


def cmd_export(args: argparse.Namespace) -> int:
    """Export both PDF and EPUB."""
    return _run(args, ("pdf", "epub"))


def cmd_pdf(args: argparse.Namespace) -> int:
    """Export the paginated PDF only."""
    return _run(args, ("pdf",))


def cmd_epub(args: argparse.Namespace) -> int:
    """Export the EPUB only."""
    return _run(args, ("epub",))


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", help="Book JSON file")
    parser.add_argument("-c", "--cover", help="Cover image (JPG/PNG)")
    parser.add_argument("-o", "--output", default="./output", help="Output directory")
    parser.add_argument("-l", "--language", default="en", help="Language code (en, es, zh, etc.)")
    parser.add_argument("--width", type=int, default=1000,
                        help="Pixel width sections are rendered at (default: 1000)")
    parser.add_argument("--font", help="TrueType font for rendering")
    parser.add_argument("--seed", type=int, help="Seed for reproducible catalog numbers")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="bookformatter",
        description="Export a book JSON manuscript to PDF and EPUB",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_export = subparsers.add_parser(
        "export",
        help="Export PDF and EPUB",
    )
    _add_common_arguments(p_export)
    p_export.set_defaults(func=cmd_export)

    p_pdf = subparsers.add_parser(
        "pdf",
        help="Export a paginated PDF with linked table of contents",
    )
    _add_common_arguments(p_pdf)
    p_pdf.set_defaults(func=cmd_pdf)

    p_epub = subparsers.add_parser(
        "epub",
        help="Export an EPUB package",
    )
    _add_common_arguments(p_epub)
    p_epub.set_defaults(func=cmd_epub)

    args = parser.parse_args()
    setup_logging(args.verbose)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
