#!/usr/bin/env python3
"""
Run the buildfeed HTTP service.

Builds every component once at startup (shared caches live as long as the
process) and serves:
    /api/GetCliJson?build=<version>
    /api/GetLatestNugetVersions[?preRelease=true]
    /healthz, /metrics

Usage:
    APPVEYOR_TOKEN=... python -m scripts.run_server --port 7071
    python -m scripts.run_server --retry-failures  # do not pin failed lookups
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from dataclasses import dataclass

from prometheus_client.registry import CollectorRegistry

from buildfeed.cache import FailurePolicy
from buildfeed.connectors.appveyor import AppVeyorClient, AppVeyorConfig
from buildfeed.connectors.nuget import NuGetClient, NuGetConfig
from buildfeed.connectors.static_feed import FeedClient
from buildfeed.feed import FeedAggregator, FeedConfig, TemplateVersionResolver
from buildfeed.logging_config import setup_logging
from buildfeed.metrics import ServiceMetrics
from buildfeed.registry import RegistryProbe
from buildfeed.server import create_app, start_server, stop_server

logger = logging.getLogger(__name__)


@dataclass
class ServiceConfig:
    """Configuration for the service process."""

    host: str = "0.0.0.0"
    port: int = 7071
    failure_policy: FailurePolicy = FailurePolicy.PIN
    json_logs: bool = True
    verbose: bool = False

    def __post_init__(self) -> None:
        if not 1 <= self.port <= 65535:
            msg = f"port must be 1..65535, got {self.port}"
            raise ValueError(msg)
        if not self.host:
            raise ValueError("host must not be empty")


async def serve(
    config: ServiceConfig,
    appveyor_config: AppVeyorConfig,
    nuget_config: NuGetConfig,
    feed_config: FeedConfig,
) -> int:
    """Build the components, serve until SIGINT/SIGTERM, then clean up."""
    if not appveyor_config.token:
        logger.warning("APPVEYOR_TOKEN not set; AppVeyor calls will be anonymous")

    metrics = ServiceMetrics(registry=CollectorRegistry())
    appveyor = AppVeyorClient(appveyor_config, failure_policy=config.failure_policy)
    nuget = NuGetClient(nuget_config)
    feed_client = FeedClient(feed_config.feed_url)
    templates = TemplateVersionResolver(
        appveyor,
        prefix=feed_config.template_prefix,
        failure_policy=config.failure_policy,
    )
    aggregator = FeedAggregator(
        appveyor, feed_client, feed_config, templates=templates, metrics=metrics
    )
    probe = RegistryProbe(nuget, metrics=metrics)

    app = create_app(
        aggregator,
        probe,
        metrics=metrics,
        caches=[appveyor.projects, appveyor.build_jobs, appveyor.artifacts, templates.cache],
        connectors={"appveyor": appveyor, "nuget": nuget, "feed": feed_client},
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    runner = await start_server(app, config.host, config.port)
    try:
        await stop.wait()
        return 0
    finally:
        await stop_server(runner)
        for connector in (appveyor, nuget, feed_client):
            await connector.close()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Serve the CLI feed and NuGet version endpoints.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=7071, help="Bind port (default: 7071)")
    parser.add_argument(
        "--project",
        default=AppVeyorConfig.project_name,
        help="AppVeyor project holding the CLI builds",
    )
    parser.add_argument("--feed-url", default=FeedConfig.feed_url, help="Published feed URL")
    parser.add_argument("--cdn-root", default=FeedConfig.cdn_root, help="CDN root for downloads")
    parser.add_argument(
        "--retry-failures",
        action="store_true",
        help="Evict failed lookups from the caches instead of pinning them",
    )
    parser.add_argument(
        "--text-logs",
        action="store_true",
        help="Human-readable logs instead of JSON",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    try:
        config = ServiceConfig(
            host=args.host,
            port=args.port,
            failure_policy=FailurePolicy.RETRY if args.retry_failures else FailurePolicy.PIN,
            json_logs=not args.text_logs,
            verbose=args.verbose,
        )
        appveyor_config = AppVeyorConfig(project_name=args.project)
        feed_config = FeedConfig(feed_url=args.feed_url, cdn_root=args.cdn_root)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(
        level=logging.DEBUG if config.verbose else logging.INFO,
        json_format=config.json_logs,
    )
    logger.info(
        "Starting buildfeed",
        extra={"port": config.port, "failure_policy": config.failure_policy.value},
    )
    return asyncio.run(serve(config, appveyor_config, NuGetConfig(), feed_config))


if __name__ == "__main__":
    sys.exit(main())
