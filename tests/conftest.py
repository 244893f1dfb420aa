"""Shared pytest fixtures for the Problem Fetch API test suite."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import MagicMock, patch

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from problemfetch.main import app
from problemfetch.services.fetcher import ProblemFetcher
from problemfetch.services.identity import StaticIdentityProvider
from problemfetch.services.problem_cache import ProblemCache

# ── Autouse isolation ──────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _no_metrics_redis():
    """Keep metric helpers away from a real Redis server."""
    with patch("problemfetch.core.metrics.get_redis_client") as mock_grc:
        mock_grc.return_value = MagicMock()
        yield mock_grc


@pytest.fixture(autouse=True)
def _reset_cache_singleton():
    """Ensure each test starts with a fresh cache singleton."""
    ProblemCache.reset()
    yield
    ProblemCache.reset()


# ── Fetcher helpers ─────────────────────────────────────────────────────────


class RecordingSleep:
    """Awaitable stand-in for ``asyncio.sleep`` that only records delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Return a fresh ``RecordingSleep``."""
    return RecordingSleep()


@pytest.fixture
def make_fetcher(recording_sleep: RecordingSleep):
    """Factory building a ``ProblemFetcher`` over an ``httpx.MockTransport``.

    Every attempt is preceded by a 0.25 s (recorded, not slept)
    delay unless the test passes its own ``identity``.

    Usage::

        fetcher = make_fetcher(handler, max_attempts=3)
    """

    def _make(
        handler: Callable[[httpx.Request], object],
        **kwargs,
    ) -> ProblemFetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        kwargs.setdefault("identity", StaticIdentityProvider(delay=0.25))
        kwargs.setdefault("sleep", recording_sleep)
        return ProblemFetcher(client=client, **kwargs)

    return _make


# ── HTTP client ─────────────────────────────────────────────────────────────


@pytest.fixture
async def client() -> AsyncClient:  # type: ignore[misc]
    """
    Yield an async HTTP client bound to the FastAPI app.

    Usage::

        async def test_something(client: AsyncClient):
            response = await client.get("/api/v1/health")
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac
