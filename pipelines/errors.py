"""Exceptions raised by the ingestion pipeline."""

from typing import Optional


class IngestError(Exception):
    """Base class for ingestion failures."""
    pass


class FetchError(IngestError):
    """A single URL could not be loaded.

    Non-fatal: the crawler records it and moves on to the next URL.
    ``kind`` is one of ``timeout``, ``navigation`` or ``invalid_url``.
    """

    def __init__(self, url: str, message: str, kind: str = "navigation"):
        super().__init__(f"{kind} error for {url}: {message}")
        self.url = url
        self.message = message
        self.kind = kind


class StoreLoadError(IngestError):
    """Corpus or queue file is missing or unreadable."""

    def __init__(self, path, message: str, cause: Optional[Exception] = None):
        super().__init__(f"Cannot load {path}: {message}")
        self.path = path
        self.cause = cause


class StoreWriteError(IngestError):
    """Corpus or queue file could not be written. Fatal for the run."""

    def __init__(self, path, message: str, cause: Optional[Exception] = None):
        super().__init__(f"Cannot write {path}: {message}")
        self.path = path
        self.cause = cause
