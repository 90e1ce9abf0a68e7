"""
REST client for the AppVeyor CI API.

Project lookups, job lists and artifact lists are memoized for the lifetime
of the client's caches; concurrent requests for the same key share one
upstream call. Artifact downloads and test/history reads are not cached.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

from buildfeed.cache import FailurePolicy, RequestCache
from buildfeed.connectors.appveyor.types import (
    AppVeyorConfig,
    Artifact,
    Build,
    BuildHistory,
    Job,
    JobTestResults,
    Project,
)
from buildfeed.connectors.http import HttpConnector
from buildfeed.errors import ArtifactExpectationError

if TYPE_CHECKING:
    import aiohttp

logger = logging.getLogger(__name__)

HISTORY_PAGE_SIZE = 50


class AppVeyorClient(HttpConnector):
    """
    Async client for the AppVeyor REST API.

    Created once at startup and shared by every request handler, so its
    caches live as long as the process.
    """

    def __init__(
        self,
        config: AppVeyorConfig | None = None,
        *,
        failure_policy: FailurePolicy = FailurePolicy.PIN,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Connector configuration.
            failure_policy: Policy applied to the project/job/artifact caches.
            session: Optional externally owned aiohttp session.
        """
        self._config = config or AppVeyorConfig()
        headers = {"Accept": "application/json"}
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"
        super().__init__(
            timeout_s=self._config.request_timeout_s,
            headers=headers,
            session=session,
        )
        self.projects: RequestCache[Project | None] = RequestCache("projects", failure_policy)
        self.build_jobs: RequestCache[list[Job]] = RequestCache("build_jobs", failure_policy)
        self.artifacts: RequestCache[list[Artifact]] = RequestCache("artifacts", failure_policy)

    @property
    def config(self) -> AppVeyorConfig:
        return self._config

    def _url(self, path: str) -> str:
        return f"{self._config.base_url}{path}"

    async def get_projects(self) -> list[Project]:
        """Fetch every project visible to the token."""
        data = await self._get_json(self._url("/projects"))
        return [Project.from_raw(p) for p in data]

    async def get_project_by_name(self, name: str) -> Project | None:
        """
        Find a project by name, ignoring case.

        Returns:
            The project, or None when no project has that name.
        """

        async def fetch() -> Project | None:
            name_lower = name.lower()
            for project in await self.get_projects():
                if project.name.lower() == name_lower:
                    return project
            logger.warning("Project not found", extra={"project": name})
            return None

        return await self.projects.get_or_compute(name, fetch)

    async def get_build(self, project: Project, build_version: str) -> Build:
        """Fetch a build with its jobs (uncached)."""
        data = await self._get_json(self._url(_build_path(project, build_version)))
        return Build.from_raw(data["build"])

    async def get_job_info(self, project: Project, build_version: str) -> list[Job]:
        """Fetch the jobs of a build, memoized by build path."""
        path = _build_path(project, build_version)

        async def fetch() -> list[Job]:
            data = await self._get_json(self._url(path))
            jobs = [Job.from_raw(j) for j in data["build"].get("jobs") or []]
            logger.info("Fetched build jobs", extra={"path": path, "count": len(jobs)})
            return jobs

        return await self.build_jobs.get_or_compute(path, fetch)

    async def get_artifacts(self, job_id: str) -> list[Artifact]:
        """Fetch the artifact list of a job, memoized by job path."""
        path = f"/buildjobs/{job_id}/artifacts"

        async def fetch() -> list[Artifact]:
            data = await self._get_json(self._url(path))
            artifacts = [Artifact.from_raw(a) for a in data]
            logger.info("Fetched artifacts", extra={"job_id": job_id, "count": len(artifacts)})
            return artifacts

        return await self.artifacts.get_or_compute(path, fetch)

    async def get_build_artifacts(self, project: Project, build_version: str) -> list[Artifact]:
        """
        Fetch the artifacts of a single-job build.

        Raises:
            ArtifactExpectationError: If the build does not have exactly one job.
        """
        jobs = await self.get_job_info(project, build_version)
        if len(jobs) != 1:
            raise ArtifactExpectationError(
                f"exactly one job in build {build_version}", count=len(jobs)
            )
        return await self.get_artifacts(jobs[0].job_id)

    async def get_artifact_bytes(self, job_id: str, artifact_path: str) -> bytes:
        """Download one artifact file."""
        path = f"/buildjobs/{job_id}/artifacts/{quote(artifact_path)}"
        return await self._get_bytes(self._url(path))

    async def get_build_history(
        self,
        project: Project,
        branch: str,
        start_build_id: int | None = None,
    ) -> BuildHistory:
        """Fetch one page of build history for a branch."""
        params = {"recordsNumber": str(HISTORY_PAGE_SIZE), "branch": branch}
        if start_build_id is not None:
            params["startBuildId"] = str(start_build_id)
        path = f"/projects/{project.account_name}/{project.slug}/history"
        data = await self._get_json(self._url(path), params=params)
        return BuildHistory.from_raw(data)

    async def get_test_results(self, job: Job) -> JobTestResults:
        """Fetch test results for a job."""
        data = await self._get_json(self._url(f"/buildjobs/{job.job_id}/tests"))
        return JobTestResults.from_raw(data)


def _build_path(project: Project, build_version: str) -> str:
    return f"/projects/{project.account_name}/{project.slug}/build/{build_version}"
