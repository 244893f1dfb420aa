"""Tests for Redis connection management."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from problemfetch.core import redis as redis_mod
from problemfetch.core.config import Settings


@pytest.fixture(autouse=True)
def _fresh_pool():
    """Start and finish every test without a shared pool."""
    redis_mod._redis_pool = None
    yield
    redis_mod._redis_pool = None


class TestRedisPool:
    """Pool creation and shutdown."""

    @patch("problemfetch.core.redis.get_settings")
    def test_pool_uses_settings_url(self, mock_gs):
        """The pool connects to ``REDIS_URL``."""
        mock_gs.return_value = Settings(
            _env_file=None,
            REDIS_HOST="cache.local",
            REDIS_PORT=6380,
            REDIS_DB=3,
        )
        pool = redis_mod.get_redis_pool()
        kwargs = pool.connection_kwargs
        assert kwargs["host"] == "cache.local"
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 3
        assert kwargs["decode_responses"] is True

    @patch("problemfetch.core.redis.get_settings")
    def test_pool_is_shared(self, mock_gs):
        """Repeated calls return the same pool."""
        mock_gs.return_value = Settings(_env_file=None)
        assert redis_mod.get_redis_pool() is redis_mod.get_redis_pool()

    @patch("problemfetch.core.redis.get_settings")
    def test_close_pool(self, mock_gs):
        """Closing disconnects and forgets the pool."""
        mock_gs.return_value = Settings(_env_file=None)
        first = redis_mod.get_redis_pool()
        redis_mod.close_redis_pool()
        assert redis_mod._redis_pool is None
        assert redis_mod.get_redis_pool() is not first

    def test_close_without_pool_is_noop(self):
        """Closing before first use does nothing."""
        redis_mod.close_redis_pool()
        assert redis_mod._redis_pool is None


class TestPingRedis:
    """Readiness check."""

    @patch("problemfetch.core.redis.get_redis_client")
    def test_ping_ok(self, mock_grc):
        """A successful PING returns ``True`` and closes the client."""
        client = MagicMock()
        client.ping.return_value = True
        mock_grc.return_value = client

        assert redis_mod.ping_redis() is True
        client.close.assert_called_once()

    @patch("problemfetch.core.redis.get_redis_client")
    def test_ping_error_propagates(self, mock_grc):
        """Connection errors reach the caller; the client is closed."""
        client = MagicMock()
        client.ping.side_effect = ConnectionError("refused")
        mock_grc.return_value = client

        with pytest.raises(ConnectionError):
            redis_mod.ping_redis()
        client.close.assert_called_once()
