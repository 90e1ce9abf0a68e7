"""AppVeyor CI connector: projects, builds, jobs and artifacts."""

from buildfeed.connectors.appveyor.rest_client import AppVeyorClient
from buildfeed.connectors.appveyor.types import (
    APPVEYOR_TOKEN_ENV,
    AppVeyorConfig,
    Artifact,
    Build,
    BuildHistory,
    BuildStatus,
    Job,
    JobTestResults,
    Project,
    TestEntry,
    TestOutcome,
)

__all__ = [
    "APPVEYOR_TOKEN_ENV",
    "AppVeyorClient",
    "AppVeyorConfig",
    "Artifact",
    "Build",
    "BuildHistory",
    "BuildStatus",
    "Job",
    "JobTestResults",
    "Project",
    "TestEntry",
    "TestOutcome",
]
