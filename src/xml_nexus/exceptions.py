"""
Scan error types.

Every error raised while processing a single sitemap URL derives from
ScanError. The traversal engine records these as diagnostics and keeps going;
they never abort a whole scan.
"""

from typing import Optional


class ScanError(Exception):
    """Base exception for all per-URL scan failures."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class FetchFailed(ScanError):
    """Raised on a non-success HTTP status or a network error."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message, url)


class DecompressFailed(ScanError):
    """Raised when a gzip-sniffed payload cannot be decompressed."""
    pass


class InvalidContent(ScanError):
    """Raised when content does not look like markup at all."""
    pass


class UnrecognizedFormat(ScanError):
    """Raised when the root element matches none of the known sitemap shapes."""

    def __init__(self, message: str, url: Optional[str] = None, root_tag: Optional[str] = None):
        self.root_tag = root_tag
        super().__init__(message, url)


class ParseFailed(ScanError):
    """Raised when the XML tree itself cannot be built."""
    pass
