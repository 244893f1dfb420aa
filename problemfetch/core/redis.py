"""
Redis connection management.

One ``ConnectionPool`` per process, shared by the ``redis``
problem-cache backend and the metrics counters.  Callers take a
short-lived client with ``get_redis_client()`` and close it when
done; the pool itself is released on application shutdown.
"""

from __future__ import annotations

import logging

import redis

from problemfetch.core.config import get_settings

logger = logging.getLogger(__name__)

# Socket timeouts keep a dead Redis from stalling a request.
_SOCKET_TIMEOUT_S: float = 2.0

_redis_pool: redis.ConnectionPool | None = None


def get_redis_pool() -> redis.ConnectionPool:
    """Return the process-wide ``ConnectionPool``, creating it lazily.

    Returns:
        A pool built from ``REDIS_URL`` with string responses.
    """
    global _redis_pool
    if _redis_pool is None:
        settings = get_settings()
        _redis_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=_SOCKET_TIMEOUT_S,
            socket_connect_timeout=_SOCKET_TIMEOUT_S,
        )
        logger.debug("Redis pool created for %s", settings.REDIS_URL)
    return _redis_pool


def get_redis_client() -> redis.Redis:
    """Return a client on the shared pool; the caller closes it."""
    return redis.Redis(connection_pool=get_redis_pool())


def ping_redis() -> bool:
    """Return ``True`` if Redis answers ``PING``.

    Raises:
        redis.RedisError: When the server is unreachable.
    """
    client = get_redis_client()
    try:
        return bool(client.ping())
    finally:
        client.close()


def close_redis_pool() -> None:
    """Disconnect and forget the shared pool (no-op if never used)."""
    global _redis_pool
    if _redis_pool is not None:
        _redis_pool.disconnect()
        _redis_pool = None
