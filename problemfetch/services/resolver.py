"""
Problem resolver: the single entry point for callers.

``resolve(identifier)`` checks the problem cache, and only on a
miss downloads the page, decodes it as UTF-8, extracts the
structured document and stores it.  Fetch and parse failures
reach the caller unmodified and never touch the cache.

Concurrent callers asking for the same identifier share one
in-flight load.  The load keeps running while at least one
caller is still waiting for it; when the last waiter leaves
(task cancellation or its ``cancel_event``) the load, including
any in-flight HTTP request, is cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from problemfetch.core.config import get_settings
from problemfetch.core.constants import (
    MESSAGE_CANCELLED,
    MESSAGE_FETCH_FAILED,
    MESSAGE_NOT_FOUND,
    MESSAGE_PARSE_FAILED,
    MESSAGE_UNKNOWN,
)
from problemfetch.core.errors import (
    FetchCancelledError,
    FetchError,
    ParseError,
    ProblemNotFoundError,
)
from problemfetch.core.metrics import (
    record_cache_hit,
    record_cache_miss,
    record_parse_failure,
)
from problemfetch.schemas.problem import ExtractedDocument
from problemfetch.services.cancellation import run_cancellable
from problemfetch.services.extractor import extract_problem
from problemfetch.services.fetcher import ProblemFetcher
from problemfetch.services.problem_cache import ProblemCache

logger = logging.getLogger(__name__)

Extractor = Callable[..., ExtractedDocument]


def describe_failure(exc: BaseException, identifier: str) -> str:
    """Return a human-readable message for a failed ``resolve``.

    Args:
        exc: The exception raised by ``resolve``.
        identifier: The requested problem identifier.

    Returns:
        A message distinct per failure kind, with a generic
        fallback for anything unexpected.
    """
    if isinstance(exc, ProblemNotFoundError):
        return MESSAGE_NOT_FOUND.format(identifier=identifier)
    if isinstance(exc, FetchError):
        return MESSAGE_FETCH_FAILED.format(
            identifier=identifier,
            attempts=exc.attempts,
        )
    if isinstance(exc, ParseError):
        return MESSAGE_PARSE_FAILED.format(identifier=identifier)
    if isinstance(exc, (FetchCancelledError, asyncio.CancelledError)):
        return MESSAGE_CANCELLED.format(identifier=identifier)
    return MESSAGE_UNKNOWN.format(identifier=identifier)


@dataclass
class _InFlight:
    """A shared load and the number of callers waiting on it."""

    task: asyncio.Task[ExtractedDocument]
    waiters: int = 0


class ProblemResolver:
    """Compose cache, fetcher and extractor into ``resolve``.

    Args:
        fetcher: Retry fetcher for raw page bytes.
        cache: Problem cache consulted before any fetch.
        extractor: Callable turning HTML text into an
            ``ExtractedDocument``; receives ``base_url`` as a
            keyword.
    """

    def __init__(
        self,
        fetcher: ProblemFetcher,
        cache: ProblemCache,
        *,
        extractor: Extractor = extract_problem,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._extract = extractor
        self._inflight: dict[str, _InFlight] = {}

    @classmethod
    def from_settings(cls, **fetcher_overrides) -> ProblemResolver:
        """Build a resolver wired to the configured fetcher and cache."""
        return cls(
            fetcher=ProblemFetcher.from_settings(get_settings(), **fetcher_overrides),
            cache=ProblemCache.instance(),
        )

    async def aclose(self) -> None:
        """Cancel pending loads and close the fetcher."""
        for entry in list(self._inflight.values()):
            entry.task.cancel()
        await self._fetcher.aclose()

    async def resolve(
        self,
        identifier: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ExtractedDocument:
        """Return the extracted document for *identifier*.

        Args:
            identifier: Problem identifier, e.g. ``"1000"``.
            cancel_event: Optional event; setting it abandons
                this call with ``FetchCancelledError``.

        Returns:
            The cached or freshly extracted document.

        Raises:
            ValueError: If *identifier* is blank.
            FetchError: When the page could not be downloaded.
            ParseError: When the page could not be decoded or
                lacks a required field.
            FetchCancelledError: When *cancel_event* was set.
        """
        identifier = identifier.strip()
        if not identifier:
            raise ValueError("Problem identifier must not be empty")

        cached = await asyncio.to_thread(self._cache.get, identifier)
        if cached is not None:
            await asyncio.to_thread(record_cache_hit)
            return cached
        await asyncio.to_thread(record_cache_miss)

        entry = self._inflight.get(identifier)
        if entry is None:
            entry = _InFlight(task=asyncio.create_task(self._load(identifier)))
            self._inflight[identifier] = entry
            entry.task.add_done_callback(
                lambda task: self._forget(identifier, task),
            )
        else:
            logger.debug("Joining in-flight load for problem %s", identifier)

        entry.waiters += 1
        try:
            return await run_cancellable(
                asyncio.shield(entry.task),
                identifier,
                cancel_event,
            )
        finally:
            entry.waiters -= 1
            if entry.waiters == 0 and not entry.task.done():
                logger.info(
                    "No callers left for problem %s, cancelling load",
                    identifier,
                )
                entry.task.cancel()

    # ── Internals ───────────────────────────────────────────

    def _forget(
        self,
        identifier: str,
        task: asyncio.Task[ExtractedDocument],
    ) -> None:
        entry = self._inflight.get(identifier)
        if entry is not None and entry.task is task:
            del self._inflight[identifier]
        if not task.cancelled() and task.exception() is not None:
            # marks the exception retrieved when every waiter left early
            logger.debug(
                "Load for problem %s failed: %s",
                identifier,
                task.exception(),
            )

    async def _load(self, identifier: str) -> ExtractedDocument:
        """Fetch, decode, extract and cache one problem."""
        raw = await self._fetcher.fetch(identifier)

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            await asyncio.to_thread(record_parse_failure)
            raise ParseError(
                f"Problem {identifier} is not valid UTF-8: {exc}"
            ) from exc

        try:
            document = self._extract(text, base_url=self._fetcher.base_url)
        except ParseError:
            await asyncio.to_thread(record_parse_failure)
            logger.warning("Extraction failed for problem %s", identifier)
            raise

        await asyncio.to_thread(self._cache.put, identifier, document)
        return document
