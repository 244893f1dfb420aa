"""
Prometheus metrics with Redis-backed cross-process counters.

Several API workers can share one problem cache, so in-process
``prometheus_client`` counters would each see only a slice of
the traffic.  This module keeps Redis as the cross-process
backing store and exposes a ``ProblemPipelineCollector`` custom
Collector that bridges Redis values into proper Prometheus
metric families.

Usage:
    Call the ``record_*()`` helpers from sync code, or through
    ``asyncio.to_thread`` from coroutines, anywhere in the
    pipeline.  The ``/metrics`` endpoint calls
    ``generate_metrics()`` which invokes the custom collector.
    Every helper swallows Redis errors so metrics can never
    break a request.
"""

from __future__ import annotations

import logging

from prometheus_client import (
    CollectorRegistry,
    generate_latest,
)
from prometheus_client.core import CounterMetricFamily

from problemfetch.core.constants import REDIS_PREFIX_METRICS
from problemfetch.core.redis import get_redis_client

logger = logging.getLogger(__name__)

# ── Redis keys ──────────────────────────────────────────────

_FETCH_ATTEMPT_KEY = f"{REDIS_PREFIX_METRICS}fetch_attempts_total"
_FETCH_FAILURE_KEY = f"{REDIS_PREFIX_METRICS}fetch_failures_total"
_PARSE_FAILURE_KEY = f"{REDIS_PREFIX_METRICS}parse_failures_total"
_CACHE_HIT_KEY = f"{REDIS_PREFIX_METRICS}cache_hits_total"
_CACHE_MISS_KEY = f"{REDIS_PREFIX_METRICS}cache_misses_total"

# (redis key, metric name, help text) in exposition order
_COUNTERS: tuple[tuple[str, str, str], ...] = (
    (
        _FETCH_ATTEMPT_KEY,
        "problemfetch_fetch_attempts",
        "Total HTTP attempts made against the problem origin.",
    ),
    (
        _FETCH_FAILURE_KEY,
        "problemfetch_fetch_failures",
        "Total fetches that ended in FetchError.",
    ),
    (
        _PARSE_FAILURE_KEY,
        "problemfetch_parse_failures",
        "Total fetched documents that failed extraction.",
    ),
    (
        _CACHE_HIT_KEY,
        "problemfetch_cache_hits",
        "Total problem-cache hits.",
    ),
    (
        _CACHE_MISS_KEY,
        "problemfetch_cache_misses",
        "Total problem-cache misses.",
    ),
)


def _incr(key: str, name: str) -> None:
    """Increment *key* in Redis, logging instead of raising."""
    try:
        client = get_redis_client()
        try:
            client.incr(key)
        finally:
            client.close()
    except Exception:
        logger.warning(
            "Failed to record %s metric",
            name,
            exc_info=True,
        )


# ── Record helpers (called from any process) ────────────────


def record_fetch_attempt() -> None:
    """Increment the fetch-attempt counter in Redis."""
    _incr(_FETCH_ATTEMPT_KEY, "fetch_attempt")


def record_fetch_failure() -> None:
    """Increment the exhausted-fetch counter in Redis."""
    _incr(_FETCH_FAILURE_KEY, "fetch_failure")


def record_parse_failure() -> None:
    """Increment the extraction-failure counter in Redis."""
    _incr(_PARSE_FAILURE_KEY, "parse_failure")


def record_cache_hit() -> None:
    """Increment the problem-cache hit counter in Redis."""
    _incr(_CACHE_HIT_KEY, "cache_hit")


def record_cache_miss() -> None:
    """Increment the problem-cache miss counter in Redis."""
    _incr(_CACHE_MISS_KEY, "cache_miss")


# ── Prometheus custom collector ─────────────────────────────


class ProblemPipelineCollector:
    """Read pipeline counters from Redis on each Prometheus scrape.

    Registered on a dedicated ``CollectorRegistry`` so that
    ``generate_latest(REGISTRY)`` automatically invokes
    ``collect()`` and renders proper Prometheus exposition
    format.  Counters read as zero when Redis is unreachable.
    """

    def collect(self):
        """Yield Prometheus metric families from Redis."""
        values = [0] * len(_COUNTERS)

        try:
            client = get_redis_client()
            try:
                raw = client.mget(*(key for key, _, _ in _COUNTERS))
            finally:
                client.close()
            values = [int(v or 0) for v in raw]
        except Exception:
            logger.warning(
                "Failed to read metrics from Redis",
                exc_info=True,
            )

        for (_, name, help_text), value in zip(_COUNTERS, values):
            family = CounterMetricFamily(name, help_text)
            family.add_metric([], value)
            yield family


# ── Shared registry ─────────────────────────────────────────

#: Dedicated registry that avoids default-registry conflicts.
REGISTRY = CollectorRegistry()
REGISTRY.register(ProblemPipelineCollector())


def generate_metrics() -> bytes:
    """Render Prometheus exposition format for pipeline metrics.

    Returns:
        UTF-8 bytes ready to be served on ``/metrics``.
    """
    return generate_latest(REGISTRY)
