"""Custom exception classes for the application."""

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from pricecrawler.scrapers.base import FailureKind, SourceFailure


class PriceCrawlerException(Exception):
    """Base exception for all pricecrawler errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class InvalidInputError(PriceCrawlerException):
    """Raised when a product query is empty or whitespace-only."""

    def __init__(self, message: str = "Product name must not be empty"):
        super().__init__(message)


class SourceError(PriceCrawlerException):
    """Raised inside an adapter when a source fails in a known way.

    Never escapes the adapter boundary: BaseAdapter.fetch converts it
    into a failed SourceOutcome carrying ``kind``.
    """

    def __init__(self, platform: str, kind: "FailureKind", message: str):
        self.platform = platform
        self.kind = kind
        super().__init__(f"Source error for {platform}: {message}")


class AllSourcesFailedError(PriceCrawlerException):
    """Raised when every configured adapter failed for a query."""

    def __init__(self, query: str, failures: Sequence["SourceFailure"]):
        self.query = query
        self.failures = tuple(failures)
        if self.failures:
            reasons = ", ".join(f"{f.source}={f.kind.value}" for f in self.failures)
            message = f"All sources failed for '{query}': {reasons}"
        else:
            message = f"No sources configured to search for '{query}'"
        super().__init__(message)


class UnknownSourceError(PriceCrawlerException):
    """Raised when a source slug has no registered adapter."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"Source '{source}' is not registered")
