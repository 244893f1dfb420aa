"""
Retry fetcher for remote problem pages.

Performs an HTTP GET against the templated problem URL with a
bounded number of attempts.  Every attempt is preceded by a
jittered delay and carries a freshly chosen client identity
(see ``problemfetch.services.identity``).  The attempt loop is a
``tenacity.AsyncRetrying`` with a fixed wait, so failed attempts
are followed by a flat cooldown and there is no exponential
backoff.

An attempt succeeds when the status is below 400 and the body
is non-empty.  Transport errors, timeouts, error statuses and
empty bodies are all retried.  A 404 fails fast with
``ProblemNotFoundError`` unless ``fast_fail_not_found`` is off.

After the last failed attempt the fetcher raises ``FetchError``
and calls its ``on_exhausted`` hook exactly once, so a UI layer
can show a single notification without the fetcher knowing
about it.

Cancellation comes in two flavours:

1. Cancelling the surrounding ``asyncio`` task propagates
   ``asyncio.CancelledError`` from whatever is being awaited.
2. Setting the optional ``cancel_event`` aborts the current
   delay or in-flight request and raises
   ``FetchCancelledError``, which is not a ``FetchError``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from urllib.parse import quote

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from problemfetch.core.config import Settings, get_settings
from problemfetch.core.constants import MESSAGE_FETCH_FAILED
from problemfetch.core.errors import (
    FetchError,
    ProblemNotFoundError,
)
from problemfetch.core.metrics import record_fetch_attempt, record_fetch_failure
from problemfetch.services.cancellation import run_cancellable
from problemfetch.services.identity import (
    RandomIdentityProvider,
    RequestIdentityProvider,
)

logger = logging.getLogger(__name__)

ExhaustionHook = Callable[[str, FetchError], None]
SleepFunc = Callable[[float], Awaitable[None]]

# Maximum number of redirects to follow per attempt.
_MAX_REDIRECTS: int = 5


class _AttemptFailed(Exception):
    """One attempt failed in a retryable way."""


def log_exhaustion(identifier: str, error: FetchError) -> None:
    """Default exhaustion hook: log the user-facing failure message."""
    logger.error(
        MESSAGE_FETCH_FAILED.format(
            identifier=identifier,
            attempts=error.attempts,
        )
    )


class ProblemFetcher:
    """Download raw problem pages with jitter, rotation and retries.

    Args:
        base_url: Origin substituted into *url_template*.
        url_template: Format string with ``{origin}`` and
            ``{identifier}`` placeholders.
        client: Shared ``httpx.AsyncClient``.  When omitted the
            fetcher creates (and owns) one.
        identity: Header / delay strategy.  Defaults to a
            ``RandomIdentityProvider``.
        max_attempts: Attempts before giving up (>= 1).
        cooldown: Flat wait in seconds after a failed attempt.
        timeout: Per-request timeout for an owned client.
        fast_fail_not_found: Raise ``ProblemNotFoundError`` on
            the first 404 instead of retrying.
        on_exhausted: Called once with ``(identifier, error)``
            when all attempts failed.
        sleep: Awaitable sleep used for delays (injectable for
            tests).
    """

    def __init__(
        self,
        *,
        base_url: str = "https://www.acmicpc.net",
        url_template: str = "{origin}/problem/{identifier}",
        client: httpx.AsyncClient | None = None,
        identity: RequestIdentityProvider | None = None,
        max_attempts: int = 3,
        cooldown: float = 1.0,
        timeout: float = 10.0,
        fast_fail_not_found: bool = True,
        on_exhausted: ExhaustionHook | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._base_url = base_url.rstrip("/")
        self._url_template = url_template
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            max_redirects=_MAX_REDIRECTS,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        )
        self._identity = identity or RandomIdentityProvider(
            referer=f"{self._base_url}/",
        )
        self._max_attempts = max_attempts
        self._cooldown = cooldown
        self._fast_fail_not_found = fast_fail_not_found
        self._on_exhausted = on_exhausted or log_exhaustion
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        **overrides,
    ) -> ProblemFetcher:
        """Build a fetcher from application settings.

        Keyword *overrides* win over the settings-derived values
        (e.g. ``client=...`` or ``on_exhausted=...``).
        """
        settings = settings or get_settings()
        low, high = settings.jitter_window
        kwargs = {
            "base_url": settings.PROBLEM_BASE_URL,
            "url_template": settings.PROBLEM_URL_TEMPLATE,
            "identity": RandomIdentityProvider(
                jitter=(low, high),
                referer=f"{settings.PROBLEM_BASE_URL}/",
            ),
            "max_attempts": settings.FETCH_MAX_ATTEMPTS,
            "cooldown": settings.FETCH_COOLDOWN_SECONDS,
            "timeout": settings.FETCH_TIMEOUT_SECONDS,
            "fast_fail_not_found": settings.FETCH_FAST_FAIL_NOT_FOUND,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    # ── Lifecycle ───────────────────────────────────────────

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ProblemFetcher:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ── Public API ──────────────────────────────────────────

    @property
    def base_url(self) -> str:
        """Origin of the fetch target, without trailing slash."""
        return self._base_url

    def url_for(self, identifier: str) -> str:
        """Return the fetch target URL for *identifier*."""
        return self._url_template.format(
            origin=self._base_url,
            identifier=quote(identifier, safe=""),
        )

    async def fetch(
        self,
        identifier: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> bytes:
        """Fetch the raw bytes of the problem page for *identifier*.

        Args:
            identifier: Problem identifier (URL path segment).
            cancel_event: Optional event; setting it aborts the
                current wait or request.

        Returns:
            The non-empty response body.

        Raises:
            ProblemNotFoundError: On 404 with fast-fail enabled.
            FetchError: When every attempt failed.
            FetchCancelledError: When *cancel_event* was set.
        """
        url = self.url_for(identifier)

        async def cooldown(seconds: float) -> None:
            await run_cancellable(self._sleep(seconds), identifier, cancel_event)

        # The wait only runs between attempts, never after the last one.
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(_AttemptFailed),
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_fixed(self._cooldown),
            sleep=cooldown,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    body = await self._attempt(
                        url,
                        identifier,
                        attempt.retry_state.attempt_number,
                        cancel_event,
                    )
        except _AttemptFailed as exc:
            error = FetchError(identifier, self._max_attempts, str(exc))
            await asyncio.to_thread(record_fetch_failure)
            self._notify(identifier, error)
            raise error from exc

        return body

    # ── Internals ───────────────────────────────────────────

    async def _attempt(
        self,
        url: str,
        identifier: str,
        attempt: int,
        cancel_event: asyncio.Event | None,
    ) -> bytes:
        """Wait the jittered delay, run a single GET and classify it."""
        await run_cancellable(
            self._sleep(self._identity.delay()),
            identifier,
            cancel_event,
        )
        headers = self._identity.headers()
        await asyncio.to_thread(record_fetch_attempt)
        logger.debug(
            "Fetching %s (attempt %d/%d)",
            url,
            attempt,
            self._max_attempts,
        )

        try:
            body = await self._request(url, identifier, headers, attempt, cancel_event)
        except _AttemptFailed as exc:
            logger.warning(
                "Attempt %d/%d for problem %s failed: %s",
                attempt,
                self._max_attempts,
                identifier,
                exc,
            )
            raise

        logger.info(
            "Fetched problem %s (%d bytes, attempt %d)",
            identifier,
            len(body),
            attempt,
        )
        return body

    async def _request(
        self,
        url: str,
        identifier: str,
        headers: dict[str, str],
        attempt: int,
        cancel_event: asyncio.Event | None,
    ) -> bytes:
        """Run the GET and turn retryable outcomes into ``_AttemptFailed``."""
        try:
            response = await run_cancellable(
                self._client.get(url, headers=headers),
                identifier,
                cancel_event,
            )
        except httpx.TimeoutException as exc:
            raise _AttemptFailed(f"Timeout: {exc}") from exc
        except httpx.HTTPError as exc:
            raise _AttemptFailed(f"{type(exc).__name__}: {exc}") from exc

        status = response.status_code
        if status == 404 and self._fast_fail_not_found:
            logger.info("Problem %s does not exist (HTTP 404)", identifier)
            raise ProblemNotFoundError(identifier, attempt)
        if status >= 400:
            raise _AttemptFailed(f"HTTP {status}")
        if not response.content:
            raise _AttemptFailed(f"Empty response body (HTTP {status})")
        return response.content

    def _notify(self, identifier: str, error: FetchError) -> None:
        """Invoke the exhaustion hook without letting it mask *error*."""
        try:
            self._on_exhausted(identifier, error)
        except Exception:
            logger.exception(
                "Exhaustion hook failed for problem %s",
                identifier,
            )
