"""
Prometheus metrics for the buildfeed service.

Labels are low-cardinality only: run kind, outcome, cache name and
connector name. Build ids, job ids and package names never become labels.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from prometheus_client import Counter, Gauge
from prometheus_client.registry import CollectorRegistry

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from buildfeed.cache import RequestCache
    from buildfeed.connectors.http import HttpConnector


class ServiceMetrics:
    """
    Metrics exporter for aggregation runs, caches and upstream connectors.

    Usage:
        registry = CollectorRegistry()
        metrics = ServiceMetrics(registry=registry)
        metrics.record_run("cli_feed", success=True)
        metrics.update(caches=[...], connectors={"appveyor": client})
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

        self._runs = Counter(
            "buildfeed_runs",
            "Aggregation runs by kind and outcome",
            ["kind", "outcome"],
            registry=self._registry,
        )
        self._cache_entries = Gauge(
            "buildfeed_cache_entries",
            "Entries held by a memoization cache",
            ["cache"],
            registry=self._registry,
        )
        self._cache_hits = Gauge(
            "buildfeed_cache_hits",
            "Lookups answered by an existing cache entry",
            ["cache"],
            registry=self._registry,
        )
        self._cache_misses = Gauge(
            "buildfeed_cache_misses",
            "Lookups that started a new computation",
            ["cache"],
            registry=self._registry,
        )
        self._cache_failures = Gauge(
            "buildfeed_cache_failures",
            "Cached computations that failed",
            ["cache"],
            registry=self._registry,
        )
        self._upstream_requests = Gauge(
            "buildfeed_upstream_requests",
            "HTTP requests issued by a connector",
            ["connector"],
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Get the Prometheus CollectorRegistry."""
        return self._registry

    def record_run(self, kind: str, *, success: bool) -> None:
        """Count one aggregation run."""
        self._runs.labels(kind=kind, outcome="success" if success else "failure").inc()

    def update(
        self,
        caches: Iterable[RequestCache[object]] = (),
        connectors: Mapping[str, HttpConnector] | None = None,
    ) -> None:
        """
        Sync gauges from cache statistics and connector request counts.

        Call before rendering /metrics.
        """
        for cache in caches:
            self._cache_entries.labels(cache=cache.name).set(len(cache))
            self._cache_hits.labels(cache=cache.name).set(cache.stats.hits)
            self._cache_misses.labels(cache=cache.name).set(cache.stats.misses)
            self._cache_failures.labels(cache=cache.name).set(cache.stats.failures)
        for name, connector in (connectors or {}).items():
            self._upstream_requests.labels(connector=name).set(connector.requests_made)
