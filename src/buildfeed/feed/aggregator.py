"""
Builds the next CLI feed entry for an AppVeyor build.

Flow for one build:
1. project -> jobs -> artifact list (memoized upstream reads)
2. build version from the Windows x86 zip name
3. template version extraction, started in the background
4. standalone entries with checksums, gathered concurrently
5. latest release of the published feed (fetched from the start)
6. overlay of the new values onto that release

The published feed is never modified; the caller decides what to do with
the returned entry.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from buildfeed.contracts.feed import CliEntry, FeedDocument, FeedEntry, overlay_entry
from buildfeed.errors import ArtifactExpectationError
from buildfeed.fanout import gather_or_cancel
from buildfeed.feed.artifacts import (
    TemplateVersionResolver,
    classify_artifact,
    download_link,
    extract_embedded_version,
    find_windows_x86_zip,
    get_checksum,
    is_standalone_zip,
)
from buildfeed.feed.config import FeedConfig

if TYPE_CHECKING:
    from buildfeed.connectors.appveyor.rest_client import AppVeyorClient
    from buildfeed.connectors.static_feed import FeedClient
    from buildfeed.metrics import ServiceMetrics

logger = logging.getLogger(__name__)


def select_latest_release(document: FeedDocument) -> dict[str, Any]:
    """Return the raw entry of the greatest release version in a feed."""
    version, entry = document.latest_release()
    logger.debug("Selected latest release", extra={"release": version})
    return entry


class FeedAggregator:
    """Produces updated feed entries from CI artifacts and the current feed."""

    def __init__(
        self,
        appveyor: AppVeyorClient,
        feed_client: FeedClient,
        config: FeedConfig | None = None,
        *,
        templates: TemplateVersionResolver | None = None,
        metrics: ServiceMetrics | None = None,
    ) -> None:
        """
        Initialize the aggregator.

        Args:
            appveyor: Shared AppVeyor client (holds the artifact caches).
            feed_client: Reader for the published feed.
            config: Feed locations.
            templates: Template version resolver; one is created if omitted.
            metrics: Optional Prometheus metrics sink.
        """
        self._appveyor = appveyor
        self._feed_client = feed_client
        self._config = config or FeedConfig()
        self._templates = templates or TemplateVersionResolver(
            appveyor, prefix=self._config.template_prefix
        )
        self._metrics = metrics

    @property
    def templates(self) -> TemplateVersionResolver:
        return self._templates

    async def _standalone_entry(self, job_id: str, version: str, file_name: str) -> CliEntry:
        sha2 = await get_checksum(self._appveyor, job_id, file_name)
        link = download_link(self._config.cdn_root, version, file_name)
        return classify_artifact(file_name, link, sha2)

    async def build_entry(self, build: str) -> FeedEntry:
        """
        Build the feed entry for an AppVeyor build version.

        Args:
            build: AppVeyor build version (e.g. "1.0.11033-sshumfpu").

        Returns:
            The latest published entry with this build's values overlaid.

        Raises:
            ArtifactExpectationError: Project, job, Windows x86 zip or template
                entry not found exactly once.
            UpstreamError: An upstream call returned a failure status.
            FeedError: The published feed is unusable.
        """
        started = time.monotonic()
        feed_task = asyncio.ensure_future(self._feed_client.get_feed())
        template_task: asyncio.Future[str] | None = None
        try:
            project_name = self._appveyor.config.project_name
            project = await self._appveyor.get_project_by_name(project_name)
            if project is None:
                raise ArtifactExpectationError(f"AppVeyor project '{project_name}'", count=0)

            jobs = await self._appveyor.get_job_info(project, build)
            if not jobs:
                raise ArtifactExpectationError(f"at least one job in build {build}", count=0)
            job_id = jobs[0].job_id
            artifacts = await self._appveyor.get_artifacts(job_id)
            file_names = [a.file_name for a in artifacts]

            win_x86_zip = find_windows_x86_zip(file_names)
            template_task = asyncio.ensure_future(self._templates.resolve(job_id, win_x86_zip))
            version = extract_embedded_version(win_x86_zip)

            standalone_names = [n for n in file_names if is_standalone_zip(n)]
            standalone = await gather_or_cancel(
                *[self._standalone_entry(job_id, version, n) for n in standalone_names]
            )
            # The reference zip is normally one of the standalone entries
            primary_sha = next(
                (e.sha2 for n, e in zip(standalone_names, standalone) if n == win_x86_zip),
                None,
            )
            if primary_sha is None:
                primary_sha = await get_checksum(self._appveyor, job_id, win_x86_zip)

            previous = select_latest_release(await feed_task)
            template_version = await template_task
        except BaseException:
            for task in (feed_task, template_task):
                if task is None:
                    continue
                if not task.done():
                    task.cancel()
                elif not task.cancelled():
                    task.exception()
            if self._metrics is not None:
                self._metrics.record_run("cli_feed", success=False)
            raise

        overlay: dict[str, Any] = {
            "cli": download_link(self._config.cdn_root, version, win_x86_zip),
            "sha2": primary_sha,
            "standaloneCli": [e.model_dump(by_alias=True) for e in standalone],
            "itemTemplates": self._config.item_template_url + template_version,
            "projectTemplates": self._config.project_template_url + template_version,
        }
        entry = FeedEntry.model_validate(overlay_entry(previous, overlay))

        elapsed_ms = int((time.monotonic() - started) * 1000)
        if self._metrics is not None:
            self._metrics.record_run("cli_feed", success=True)
        logger.info(
            "Built feed entry",
            extra={
                "build": build,
                "version": version,
                "template_version": template_version,
                "standalone": len(standalone),
                "elapsed_ms": elapsed_ms,
            },
        )
        return entry
