"""
Request identity strategies for the retry fetcher.

Before every attempt the fetcher asks its identity provider for
a header set and a pre-request delay.  The production provider
rotates browser user agents and draws a uniform jitter so that
requests neither burst nor carry an obvious fingerprint; tests
inject ``StaticIdentityProvider`` for reproducible headers and
zero delay.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/134.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/133.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:135.0) Gecko/20100101 "
    "Firefox/135.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_7_4) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/18.3 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/134.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/134.0.0.0 Safari/537.36 Edg/134.0.0.0",
)
"""Browser identities rotated across attempts."""


def _base_headers(user_agent: str, referer: str | None) -> dict[str, str]:
    """Browser-like header set shared by every provider."""
    headers = {
        "User-Agent": user_agent,
        "Accept": (
            "text/html,application/xhtml+xml,application/xml;q=0.9,"
            "image/avif,image/webp,*/*;q=0.8"
        ),
        "Accept-Language": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    }
    if referer:
        headers["Referer"] = referer
    return headers


@runtime_checkable
class RequestIdentityProvider(Protocol):
    """Supplies per-attempt request headers and pre-request delay."""

    def headers(self) -> dict[str, str]:
        """Return the headers for the next attempt."""
        ...

    def delay(self) -> float:
        """Return the wait in seconds before the next attempt (>= 0)."""
        ...


class RandomIdentityProvider:
    """Rotate user agents and draw a uniform jitter per attempt.

    Args:
        user_agents: Pool of user-agent strings to choose from.
        jitter: ``(low, high)`` bounds of the pre-request delay in
            seconds.
        referer: Optional ``Referer`` header value.
        rng: Random source; pass a seeded ``random.Random`` for
            reproducible sequences.
    """

    def __init__(
        self,
        user_agents: Sequence[str] = USER_AGENTS,
        *,
        jitter: tuple[float, float] = (0.5, 1.5),
        referer: str | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if not user_agents:
            raise ValueError("user_agents must not be empty")
        low, high = jitter
        if low < 0 or high < low:
            raise ValueError(f"Invalid jitter window {jitter!r}")
        self._user_agents = tuple(user_agents)
        self._jitter = (low, high)
        self._referer = referer
        self._rng = rng or random.Random()

    def headers(self) -> dict[str, str]:
        return _base_headers(self._rng.choice(self._user_agents), self._referer)

    def delay(self) -> float:
        return self._rng.uniform(*self._jitter)


class StaticIdentityProvider:
    """Always the same user agent and the same delay."""

    def __init__(
        self,
        user_agent: str = USER_AGENTS[0],
        *,
        delay: float = 0.0,
        referer: str | None = None,
    ) -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self._user_agent = user_agent
        self._delay = delay
        self._referer = referer

    def headers(self) -> dict[str, str]:
        return _base_headers(self._user_agent, self._referer)

    def delay(self) -> float:
        return self._delay
