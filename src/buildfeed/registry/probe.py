"""
Latest package versions across NuGet registries.

Every (registry, package) pair is an independent lookup; all of them run
concurrently. The first failing lookup cancels the others and fails the
whole probe, so callers never see a report with silently missing registries.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from buildfeed.contracts.packages import RegistryReport
from buildfeed.fanout import gather_or_cancel

if TYPE_CHECKING:
    from buildfeed.connectors.nuget.client import NuGetClient
    from buildfeed.connectors.nuget.types import RegistrySource
    from buildfeed.metrics import ServiceMetrics

logger = logging.getLogger(__name__)


class RegistryProbe:
    """Reports the newest stable and prerelease versions of configured packages."""

    def __init__(self, client: NuGetClient, *, metrics: ServiceMetrics | None = None) -> None:
        self._client = client
        self._metrics = metrics

    async def probe_source(
        self,
        source: RegistrySource,
        packages: tuple[str, ...],
        *,
        include_prerelease: bool = False,
    ) -> RegistryReport:
        """Probe one registry for every package, keeping the package order."""
        index = await self._client.get_service_index(source)
        infos = await gather_or_cancel(
            *[
                self._client.get_package_info(
                    index.search_url,
                    package,
                    index.details_template,
                    include_prerelease=include_prerelease,
                )
                for package in packages
            ]
        )
        missing = sum(1 for info in infos if info.newest_version is None)
        logger.info(
            "Probed registry",
            extra={"source": source.name, "packages": len(infos), "missing": missing},
        )
        return RegistryReport(
            source_name=source.name,
            source_url=source.index_url,
            search_url=index.search_url,
            package_details_url_template=index.details_template,
            packages=list(infos),
        )

    async def probe(self, *, include_prerelease: bool = False) -> list[RegistryReport]:
        """
        Probe every configured registry.

        Args:
            include_prerelease: Whether the "newest version" column may be a
                prerelease. The prerelease column always includes them.

        Returns:
            One report per configured source, in configured order.
        """
        config = self._client.config
        started = time.monotonic()
        try:
            reports = await gather_or_cancel(
                *[
                    self.probe_source(
                        source, config.packages, include_prerelease=include_prerelease
                    )
                    for source in config.sources
                ]
            )
        except Exception:
            if self._metrics is not None:
                self._metrics.record_run("registry_probe", success=False)
            raise

        if self._metrics is not None:
            self._metrics.record_run("registry_probe", success=True)
        logger.info(
            "Registry probe complete",
            extra={
                "sources": len(reports),
                "elapsed_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return list(reports)
