"""
HTTP surface of the buildfeed service.

Routes:
- GET|POST /api/GetCliJson?build=<version>   next CLI feed entry for a build
- GET /api/GetLatestNugetVersions[?preRelease=true|false]   registry report
- GET /healthz   liveness plus cache sizes
- GET /metrics   Prometheus exposition

Bad query parameters are answered with 400 before any upstream call. Any
failure during aggregation is logged and answered with 500 and its message.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import orjson
from aiohttp import web
from prometheus_client import generate_latest

from buildfeed.contracts.packages import reports_to_json

if TYPE_CHECKING:
    from buildfeed.cache import RequestCache
    from buildfeed.connectors.http import HttpConnector
    from buildfeed.feed.aggregator import FeedAggregator
    from buildfeed.metrics import ServiceMetrics
    from buildfeed.registry.probe import RegistryProbe

logger = logging.getLogger(__name__)

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

_TRUE_VALUES = frozenset({"true", "1"})
_FALSE_VALUES = frozenset({"false", "0"})


class QueryError(ValueError):
    """A query parameter is missing, repeated or malformed."""


def single_query_value(request: web.Request, name: str, *, required: bool) -> str | None:
    """
    Return the one value of a query parameter.

    Raises:
        QueryError: If the parameter is repeated, or absent/empty while required.
    """
    values = request.query.getall(name, [])
    if len(values) > 1:
        raise QueryError(f"Multiple '{name}' values in query string.")
    if not values or not values[0]:
        if required:
            raise QueryError(f"Missing '{name}' value in query string.")
        return None
    return values[0]


def parse_bool(value: str | None, name: str, *, default: bool = False) -> bool:
    """Parse a boolean query value ("true"/"false", case-insensitive)."""
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise QueryError(f"Invalid '{name}' value {value!r}; expected true or false.")


def _json_response(body: bytes, status: int = 200) -> web.Response:
    return web.Response(body=body, status=status, content_type="application/json")


def _error_response(error: Exception) -> web.Response:
    return _json_response(orjson.dumps({"error": str(error)}), status=500)


def _make_cli_feed_handler(aggregator: FeedAggregator) -> _Handler:
    async def handler(request: web.Request) -> web.Response:
        try:
            build = single_query_value(request, "build", required=True)
        except QueryError as e:
            return web.Response(text=str(e), status=400)
        assert build is not None

        try:
            entry = await aggregator.build_entry(build)
        except Exception as e:
            logger.exception("CLI feed aggregation failed", extra={"build": build})
            return _error_response(e)
        return _json_response(entry.to_json())

    return handler


def _make_nuget_versions_handler(probe: RegistryProbe) -> _Handler:
    async def handler(request: web.Request) -> web.Response:
        try:
            pre_release = parse_bool(
                single_query_value(request, "preRelease", required=False), "preRelease"
            )
        except QueryError as e:
            return web.Response(text=str(e), status=400)

        try:
            reports = await probe.probe(include_prerelease=pre_release)
        except Exception as e:
            logger.exception("Registry probe failed")
            return _error_response(e)
        return _json_response(reports_to_json(reports))

    return handler


def _make_healthz_handler(caches: list[RequestCache[Any]]) -> _Handler:
    async def handler(request: web.Request) -> web.Response:
        info: dict[str, Any] = {
            "status": "ok",
            "caches": {cache.name: len(cache) for cache in caches},
        }
        return _json_response(orjson.dumps(info))

    return handler


def _make_metrics_handler(
    metrics: ServiceMetrics,
    caches: list[RequestCache[Any]],
    connectors: dict[str, HttpConnector],
) -> _Handler:
    async def handler(request: web.Request) -> web.Response:
        metrics.update(caches=caches, connectors=connectors)
        return web.Response(
            body=generate_latest(metrics.registry),
            content_type="text/plain; version=0.0.4",
            charset="utf-8",
        )

    return handler


def create_app(
    aggregator: FeedAggregator,
    probe: RegistryProbe,
    *,
    metrics: ServiceMetrics | None = None,
    caches: list[RequestCache[Any]] | None = None,
    connectors: dict[str, HttpConnector] | None = None,
) -> web.Application:
    """
    Create the aiohttp Application.

    Args:
        aggregator: CLI feed aggregator.
        probe: Registry probe.
        metrics: Metrics exporter; /metrics is only routed when given.
        caches: Caches reported on /healthz and /metrics.
        connectors: Connectors whose request counts are exported.

    Returns:
        aiohttp.web.Application ready to be started.
    """
    cache_list = list(caches or [])
    app = web.Application()
    app.router.add_get("/api/GetCliJson", _make_cli_feed_handler(aggregator))
    app.router.add_post("/api/GetCliJson", _make_cli_feed_handler(aggregator))
    app.router.add_get("/api/GetLatestNugetVersions", _make_nuget_versions_handler(probe))
    app.router.add_get("/healthz", _make_healthz_handler(cache_list))
    if metrics is not None:
        app.router.add_get(
            "/metrics", _make_metrics_handler(metrics, cache_list, dict(connectors or {}))
        )
    return app


async def start_server(app: web.Application, host: str = "0.0.0.0", port: int = 7071) -> web.AppRunner:
    """
    Start serving an application.

    Returns:
        AppRunner (call stop_server() on shutdown).
    """
    runner = web.AppRunner(app, access_log=None)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("buildfeed server started on http://%s:%d", host, port)
    return runner


async def stop_server(runner: web.AppRunner) -> None:
    """Stop the server started by start_server()."""
    await runner.cleanup()
    logger.info("buildfeed server stopped")
