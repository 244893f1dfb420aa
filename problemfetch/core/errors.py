"""
Exception taxonomy for the fetch → extract → cache pipeline.

``FetchError`` and ``ParseError`` reach the caller unmodified.
``CacheError`` never does: the cache facade downgrades it to a
miss (on read) or a logged no-op (on write).
"""

from __future__ import annotations


class ProblemFetchError(Exception):
    """Base class for every pipeline error."""


class FetchError(ProblemFetchError):
    """The remote document could not be retrieved.

    Attributes:
        identifier: The problem identifier that was requested.
        attempts: How many attempts were made before giving up.
        last_error: Description of the final failed attempt.
    """

    def __init__(
        self,
        identifier: str,
        attempts: int,
        last_error: str | None = None,
    ) -> None:
        self.identifier = identifier
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(
            f"Failed to fetch problem {identifier} after {attempts} attempt(s){detail}"
        )


class ProblemNotFoundError(FetchError):
    """The remote origin reported that the document does not exist (404)."""

    def __init__(self, identifier: str, attempts: int = 1) -> None:
        super().__init__(identifier, attempts, "HTTP 404")


class FetchCancelledError(ProblemFetchError):
    """The fetch was aborted through its cancellation event."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Fetch of problem {identifier} was cancelled")


class ParseError(ProblemFetchError):
    """The fetched document could not be decoded or lacks a required field."""


class CacheError(ProblemFetchError):
    """The cache backing store is unavailable or returned garbage."""
