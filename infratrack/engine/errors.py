"""
Import Errors Module

Exception classes for whole-file import failures. Row-level problems are
never raised; importers skip them and count them instead.
"""


class ImportFailedError(Exception):
    """
    Raised when a whole file cannot be parsed.

    Typical causes:
    - Corrupt or non-zip KMZ/Shapefile archive
    - KMZ archive without a KML document
    - Invalid XML or JSON
    - Unreadable spreadsheet

    The caller is expected to show a status message and keep existing data.
    """

    def __init__(self, message: str, filename: str = None):
        super().__init__(message)
        self.filename = filename

    def status_message(self) -> str:
        """User-facing status line."""
        if self.filename:
            return f"Failed to import {self.filename}: {self}"
        return f"Failed to import file: {self}"


class UnsupportedFormatError(ImportFailedError):
    """Raised when no importer handles the file extension."""
    pass


class ProjectionError(Exception):
    """
    Raised by strict reprojection when a coordinate cannot be transformed.

    The lenient to_geographic() path never raises; it logs and passes the
    input through.
    """
    pass
