"""
Problem-document cache.

Provides a ``ProblemCache`` that sits **in front of** the fetch
and extract steps.  A cache hit skips the network and the HTML
parser entirely.

**Cache key**

``problem-{identifier}``: the identifier is the only input that
affects the extracted document, so no digest is needed.

**Write semantics**

Entries never expire unless ``PROBLEM_CACHE_TTL`` is set, and
the first write for a key wins: later writes for the same key
are ignored.  Values are stored as JSON and re-validated on
every read, so callers always receive a fresh
``ExtractedDocument`` rather than a shared object.

**Backends**

===============  ====================================
``memory``       Default.  Process lifetime.
``disk``         ``diskcache``-backed.  Survives restarts.
``redis``        Cross-worker, cross-process.
``none``         Caching disabled.
===============  ====================================

Select via ``PROBLEM_CACHE_BACKEND``.  Backend failures raise
``CacheError``; the facade downgrades them to a miss (read) or
a logged no-op (write) so the cache can never fail a request.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time

from pydantic import ValidationError

from problemfetch.core.config import get_settings
from problemfetch.core.constants import REDIS_PREFIX_PROBLEM_CACHE
from problemfetch.core.errors import CacheError
from problemfetch.core.redis import get_redis_client
from problemfetch.schemas.problem import ExtractedDocument

logger = logging.getLogger(__name__)


def build_cache_key(identifier: str) -> str:
    """Build the cache key for a problem identifier.

    Args:
        identifier: Problem identifier, e.g. ``"1000"``.

    Returns:
        ``problem-{identifier}`` with surrounding whitespace
        removed from the identifier.
    """
    return f"problem-{identifier.strip()}"


# ── Backend protocol ────────────────────────────────────────


class _CacheBackend:
    """Minimal protocol that concrete backends implement.

    Values are JSON strings.  Implementations raise
    ``CacheError`` when the backing store is unavailable.
    """

    def get(self, key: str) -> str | None:
        """Retrieve a stored payload or ``None``."""
        raise NotImplementedError

    def add(self, key: str, value: str, ttl: int | None) -> bool:
        """Store *value* unless *key* exists; return ``True`` if stored."""
        raise NotImplementedError

    def close(self) -> None:
        """Release resources (optional)."""


# ── Memory backend ──────────────────────────────────────────


class _MemoryBackend(_CacheBackend):
    """In-process dictionary store guarded by a lock.

    TTL is honoured lazily: expired entries are dropped on read.
    """

    def __init__(self) -> None:
        self._data: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and time.monotonic() >= expires_at:
                del self._data[key]
                return None
            return value

    def add(self, key: str, value: str, ttl: int | None) -> bool:
        expires_at = time.monotonic() + ttl if ttl else None
        with self._lock:
            current = self._data.get(key)
            if current is not None and (
                current[1] is None or time.monotonic() < current[1]
            ):
                return False
            self._data[key] = (value, expires_at)
            return True

    def close(self) -> None:
        with self._lock:
            self._data.clear()


# ── Disk backend ────────────────────────────────────────────


class _DiskBackend(_CacheBackend):
    """``diskcache``-backed store that persists across restarts.

    Cache directory defaults to ``.problem_cache/`` in the
    working directory; override with ``PROBLEM_CACHE_DIR``.
    """

    def __init__(self, directory: str) -> None:
        import diskcache

        self._cache = diskcache.Cache(directory)
        logger.info(
            "Disk problem cache initialised at %s",
            directory,
        )

    def get(self, key: str) -> str | None:
        prefixed = f"{REDIS_PREFIX_PROBLEM_CACHE}{key}"
        try:
            return self._cache.get(prefixed)
        except Exception as exc:
            raise CacheError(f"Disk cache GET failed for {prefixed}") from exc

    def add(self, key: str, value: str, ttl: int | None) -> bool:
        prefixed = f"{REDIS_PREFIX_PROBLEM_CACHE}{key}"
        try:
            return bool(self._cache.add(prefixed, value, expire=ttl))
        except Exception as exc:
            raise CacheError(f"Disk cache ADD failed for {prefixed}") from exc

    def close(self) -> None:
        """Close the underlying diskcache store."""
        with contextlib.suppress(Exception):
            self._cache.close()


# ── Redis backend ───────────────────────────────────────────


class _RedisBackend(_CacheBackend):
    """Redis-backed store using the shared connection pool.

    Stores JSON strings under the ``problem_cache:`` prefix.
    ``SET NX`` gives first-write-wins across processes.
    """

    def get(self, key: str) -> str | None:
        redis_key = f"{REDIS_PREFIX_PROBLEM_CACHE}{key}"
        try:
            client = get_redis_client()
            try:
                return client.get(redis_key)
            finally:
                client.close()
        except Exception as exc:
            raise CacheError(f"Redis GET failed for {redis_key}") from exc

    def add(self, key: str, value: str, ttl: int | None) -> bool:
        redis_key = f"{REDIS_PREFIX_PROBLEM_CACHE}{key}"
        try:
            client = get_redis_client()
            try:
                return bool(client.set(redis_key, value, nx=True, ex=ttl or None))
            finally:
                client.close()
        except Exception as exc:
            raise CacheError(f"Redis SET failed for {redis_key}") from exc


# ── Facade ──────────────────────────────────────────────────


class ProblemCache:
    """Identifier → ``ExtractedDocument`` cache.

    Wraps one of several backends (``memory``, ``disk``,
    ``redis``, ``none``).  Construct directly to inject a
    backend, or use the settings-driven singleton.

    Usage::

        cache = ProblemCache.instance()
        hit = cache.get("1000")
        if hit is not None:
            return hit
        document = extract_problem(await fetcher.fetch("1000"))
        cache.put("1000", document)
        return document
    """

    _instance: ProblemCache | None = None

    def __init__(
        self,
        backend: _CacheBackend | None,
        *,
        ttl: int | None = None,
    ) -> None:
        self._backend = backend
        self._ttl = ttl
        self._enabled = backend is not None
        logger.info(
            "ProblemCache initialised (enabled=%s, backend=%s, ttl=%s)",
            self._enabled,
            type(backend).__name__ if backend else None,
            ttl,
        )

    # ── Construction ────────────────────────────────────────

    @classmethod
    def memory(cls, *, ttl: int | None = None) -> ProblemCache:
        """Return a fresh in-process cache."""
        return cls(backend=_MemoryBackend(), ttl=ttl)

    @classmethod
    def disabled(cls) -> ProblemCache:
        """Return a cache that never stores anything."""
        return cls(backend=None)

    @classmethod
    def from_settings(cls) -> ProblemCache:
        """Build a cache from ``PROBLEM_CACHE_*`` settings."""
        settings = get_settings()
        backend_name = settings.PROBLEM_CACHE_BACKEND

        if not settings.PROBLEM_CACHE_ENABLED or backend_name == "none":
            logger.info(
                "Problem cache disabled (enabled=%s, backend=%s)",
                settings.PROBLEM_CACHE_ENABLED,
                backend_name,
            )
            return cls.disabled()
        if backend_name == "disk":
            backend: _CacheBackend = _DiskBackend(settings.PROBLEM_CACHE_DIR)
        elif backend_name == "redis":
            backend = _RedisBackend()
        else:
            backend = _MemoryBackend()
        return cls(backend=backend, ttl=settings.PROBLEM_CACHE_TTL)

    @classmethod
    def instance(cls) -> ProblemCache:
        """Return a lazily-initialised, settings-driven singleton.

        Returns:
            The shared ``ProblemCache`` instance.
        """
        if cls._instance is None:
            cls._instance = cls.from_settings()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (useful in tests)."""
        if cls._instance is not None:
            cls._instance.close()
        cls._instance = None

    # ── Public API ──────────────────────────────────────────

    @property
    def enabled(self) -> bool:
        """Whether the cache is active."""
        return self._enabled

    def get(self, identifier: str) -> ExtractedDocument | None:
        """Look up the cached document for *identifier*.

        Backend failures and unreadable payloads count as a miss.

        Args:
            identifier: Problem identifier.

        Returns:
            A fresh ``ExtractedDocument`` or ``None`` on miss.
        """
        if not self._enabled:
            return None

        key = build_cache_key(identifier)
        t0 = time.monotonic()
        try:
            raw = self._backend.get(key)  # type: ignore[union-attr]
        except CacheError:
            logger.warning(
                "Problem cache GET failed for %s, treating as miss",
                key,
                exc_info=True,
            )
            return None
        elapsed_ms = (time.monotonic() - t0) * 1000

        if raw is None:
            logger.debug("Problem cache MISS (key=%s, %.1f ms)", key, elapsed_ms)
            return None

        try:
            document = ExtractedDocument.model_validate_json(raw)
        except ValidationError:
            logger.warning(
                "Discarding unreadable problem cache entry %s",
                key,
                exc_info=True,
            )
            return None

        logger.info("Problem cache HIT (key=%s, %.1f ms)", key, elapsed_ms)
        return document

    def put(self, identifier: str, document: ExtractedDocument) -> bool:
        """Store *document* for *identifier* unless already cached.

        Write failures are logged and swallowed.

        Args:
            identifier: Problem identifier.
            document: Successfully extracted document.

        Returns:
            ``True`` if this call stored the entry.
        """
        if not self._enabled:
            return False

        key = build_cache_key(identifier)
        payload = document.model_dump_json(by_alias=True)
        try:
            stored = self._backend.add(key, payload, self._ttl)  # type: ignore[union-attr]
        except CacheError:
            logger.warning(
                "Problem cache SET failed for %s, continuing without cache",
                key,
                exc_info=True,
            )
            return False

        if stored:
            logger.debug("Problem cache SET (key=%s, ttl=%s)", key, self._ttl)
        else:
            logger.debug("Problem cache already holds %s, keeping first write", key)
        return stored

    def close(self) -> None:
        """Release the backend."""
        if self._backend is not None:
            self._backend.close()
