"""
Terminal export failures.
"""


class ExportError(Exception):
    """Base class for failures that abort an export."""


class LayoutRootMissingError(ExportError):
    """No layout root was supplied to render sections from."""


class NoSectionsError(ExportError):
    """The layout root produced no renderable sections."""
