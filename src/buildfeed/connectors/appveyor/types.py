"""
Types and configuration for the AppVeyor REST connector.

Only the fields the feed and build tooling read are modeled. Raw payloads
use AppVeyor's camelCase keys; from_raw() maps them to snake_case.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

APPVEYOR_TOKEN_ENV = "APPVEYOR_TOKEN"


class BuildStatus(str, Enum):
    """AppVeyor build status."""

    SUCCESS = "success"
    FAILED = "failed"
    QUEUED = "queued"
    RUNNING = "running"
    CANCELLED = "cancelled"


class TestOutcome(str, Enum):
    """Outcome of a single test in a job."""

    __test__ = False  # not a pytest class

    PASSED = "passed"
    FAILED = "failed"
    RUNNING = "running"
    SKIPPED = "skipped"


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass
class AppVeyorConfig:
    """
    Configuration for the AppVeyor connector.

    Attributes:
        base_url: API root, without trailing slash.
        token: Bearer token. Read from APPVEYOR_TOKEN when empty.
        request_timeout_s: Total timeout per request.
        project_name: Project holding the CLI builds.
    """

    base_url: str = "https://ci.appveyor.com/api"
    token: str = ""
    request_timeout_s: float = 60.0
    project_name: str = "azure-functions-core-tools"

    def __post_init__(self) -> None:
        if not self.token:
            self.token = os.environ.get(APPVEYOR_TOKEN_ENV, "")
        self.base_url = self.base_url.rstrip("/")
        if not self.base_url:
            raise ValueError("base_url must not be empty")
        if self.request_timeout_s <= 0:
            raise ValueError(f"request_timeout_s must be > 0, got {self.request_timeout_s}")
        if not self.project_name:
            raise ValueError("project_name must not be empty")


@dataclass(frozen=True)
class Project:
    """AppVeyor project."""

    project_id: str
    account_name: str
    slug: str
    name: str
    account_id: str = ""
    repository_name: str = ""
    repository_branch: str = ""

    def __str__(self) -> str:
        return self.name

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> Project:
        """Parse from a /projects list item."""
        return cls(
            project_id=str(data["projectId"]),
            account_name=data["accountName"],
            slug=data["slug"],
            name=data["name"],
            account_id=str(data.get("accountId", "")),
            repository_name=data.get("repositoryName") or "",
            repository_branch=data.get("repositoryBranch") or "",
        )


@dataclass(frozen=True)
class Job:
    """One execution unit of a build."""

    job_id: str
    status: str = ""
    tests_count: int = 0
    failed_tests_count: int = 0

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> Job:
        return cls(
            job_id=data["jobId"],
            status=data.get("status") or "",
            tests_count=int(data.get("testsCount") or 0),
            failed_tests_count=int(data.get("failedTestsCount") or 0),
        )


@dataclass(frozen=True)
class Build:
    """AppVeyor build with its jobs."""

    build_id: int
    version: str
    status: BuildStatus
    build_number: int = 0
    branch: str = ""
    author_name: str = ""
    pull_request_id: str | None = None
    finished: datetime | None = None
    jobs: tuple[Job, ...] = ()

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> Build:
        return cls(
            build_id=int(data["buildId"]),
            version=data["version"],
            status=BuildStatus(data["status"]),
            build_number=int(data.get("buildNumber") or 0),
            branch=data.get("branch") or "",
            author_name=data.get("authorName") or "",
            pull_request_id=data.get("pullRequestId"),
            finished=_parse_timestamp(data.get("finished")),
            jobs=tuple(Job.from_raw(j) for j in data.get("jobs") or []),
        )


@dataclass(frozen=True)
class Artifact:
    """A file produced by a job."""

    file_name: str

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> Artifact:
        return cls(file_name=data["fileName"])


@dataclass(frozen=True)
class TestEntry:
    """Result of one test."""

    __test__ = False

    name: str
    outcome: TestOutcome
    file_name: str = ""
    duration: int = 0
    created: datetime | None = None

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> TestEntry:
        return cls(
            name=data["name"],
            outcome=TestOutcome(data["outcome"].lower()),
            file_name=data.get("fileName") or "",
            duration=int(data.get("duration") or 0),
            created=_parse_timestamp(data.get("created")),
        )


@dataclass(frozen=True)
class JobTestResults:
    """Test summary and entries for a job."""

    failed: int
    passed: int
    total: int
    entries: tuple[TestEntry, ...] = ()

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> JobTestResults:
        return cls(
            failed=int(data.get("failed") or 0),
            passed=int(data.get("passed") or 0),
            total=int(data.get("total") or 0),
            entries=tuple(TestEntry.from_raw(e) for e in data.get("list") or []),
        )


@dataclass(frozen=True)
class BuildHistory:
    """One page of a project's build history."""

    project: Project
    builds: tuple[Build, ...] = field(default_factory=tuple)

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> BuildHistory:
        return cls(
            project=Project.from_raw(data["project"]),
            builds=tuple(Build.from_raw(b) for b in data.get("builds") or []),
        )
