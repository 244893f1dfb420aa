"""Tests for Prometheus metrics with Redis-backed counters."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from prometheus_client.core import CounterMetricFamily

from problemfetch.core.metrics import (
    ProblemPipelineCollector,
    generate_metrics,
    record_cache_hit,
    record_cache_miss,
    record_fetch_attempt,
    record_fetch_failure,
    record_parse_failure,
)


class TestRecordHelpers:
    """Tests for the ``record_*`` helpers."""

    @pytest.mark.parametrize(
        ("record", "key"),
        [
            (record_fetch_attempt, "metrics:fetch_attempts_total"),
            (record_fetch_failure, "metrics:fetch_failures_total"),
            (record_parse_failure, "metrics:parse_failures_total"),
            (record_cache_hit, "metrics:cache_hits_total"),
            (record_cache_miss, "metrics:cache_misses_total"),
        ],
    )
    @patch("problemfetch.core.metrics.get_redis_client")
    def test_increments_counter(self, mock_grc, record, key):
        """INCR is called on the helper's key."""
        mock_client = MagicMock()
        mock_grc.return_value = mock_client

        record()

        mock_client.incr.assert_called_once_with(key)
        mock_client.close.assert_called_once()

    @patch("problemfetch.core.metrics.get_redis_client")
    def test_swallows_redis_errors(self, mock_grc):
        """Redis failures are logged but not raised."""
        mock_grc.side_effect = Exception("no redis")

        # Should not raise
        record_fetch_attempt()

    @patch("problemfetch.core.metrics.get_redis_client")
    def test_closes_client_when_incr_fails(self, mock_grc):
        """The connection is released even when INCR fails."""
        mock_client = MagicMock()
        mock_client.incr.side_effect = ConnectionError("down")
        mock_grc.return_value = mock_client

        record_cache_hit()

        mock_client.close.assert_called_once()


class TestProblemPipelineCollector:
    """Tests for the custom Prometheus collector."""

    @patch("problemfetch.core.metrics.get_redis_client")
    def test_collect_returns_metric_families(self, mock_grc):
        """Collector yields one counter family per Redis key."""
        mock_client = MagicMock()
        mock_client.mget.return_value = ["10", "2", "1", "7", "3"]
        mock_grc.return_value = mock_client

        families = list(ProblemPipelineCollector().collect())

        assert len(families) == 5
        assert all(isinstance(f, CounterMetricFamily) for f in families)
        assert families[0].name == "problemfetch_fetch_attempts"
        assert [f.samples[0].value for f in families] == [10, 2, 1, 7, 3]
        mock_client.close.assert_called_once()

    @patch("problemfetch.core.metrics.get_redis_client")
    def test_collect_defaults_on_redis_failure(self, mock_grc):
        """Returns zeroed metrics when Redis is unavailable."""
        mock_grc.side_effect = Exception("no redis")

        families = list(ProblemPipelineCollector().collect())

        assert len(families) == 5
        for family in families:
            assert family.samples[0].value == 0

    @patch("problemfetch.core.metrics.get_redis_client")
    def test_collect_handles_none_values(self, mock_grc):
        """Missing keys (None from mget) default to 0."""
        mock_client = MagicMock()
        mock_client.mget.return_value = [None] * 5
        mock_grc.return_value = mock_client

        for family in ProblemPipelineCollector().collect():
            assert family.samples[0].value == 0


class TestGenerateMetrics:
    """Tests for ``generate_metrics`` exposition."""

    @patch("problemfetch.core.metrics.get_redis_client")
    def test_returns_prometheus_format(self, mock_grc):
        """Output contains Prometheus HELP/TYPE lines."""
        mock_client = MagicMock()
        mock_client.mget.return_value = ["5", "0", "1", "2", "3"]
        mock_grc.return_value = mock_client

        output = generate_metrics().decode()

        assert "problemfetch_fetch_attempts_total 5.0" in output
        assert "problemfetch_fetch_failures_total" in output
        assert "problemfetch_parse_failures_total" in output
        assert "problemfetch_cache_hits_total" in output
        assert "problemfetch_cache_misses_total" in output
        assert "# HELP" in output
        assert "# TYPE" in output

    def test_registry_has_collector_registered(self):
        """The shared REGISTRY contains our custom collector."""
        data = generate_metrics()
        assert isinstance(data, bytes)
        assert len(data) > 0
