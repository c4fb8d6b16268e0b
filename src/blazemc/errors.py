from pathlib import Path
from typing import Optional

__all__ = ['FetchError', 'NetworkError', 'ParseError', 'FilesystemError', 'IntegrityError']


class FetchError(Exception):
    """Base class for every failure the fetch pipeline raises or reports."""

    def __init__(self, message: str, *, url: Optional[str] = None, path: Optional[Path] = None):
        super().__init__(message)
        self.url = url
        self.path = path


class NetworkError(FetchError):
    """Connection failure, timeout or non-2xx response."""

    def __init__(self, message: str, *, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, url=url)
        self.status_code = status_code


class ParseError(FetchError):
    """A document that is not valid JSON or does not match the expected schema."""


class FilesystemError(FetchError):
    """Directory creation, read or write failure."""


class IntegrityError(FetchError):
    """Downloaded bytes do not match the expected SHA-1."""

    def __init__(self, message: str, *, url: Optional[str] = None, expected: str = "", actual: str = ""):
        super().__init__(message, url=url)
        self.expected = expected
        self.actual = actual
