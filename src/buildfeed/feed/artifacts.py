"""
Artifact handling for the CLI feed.

File names produced by the CLI build look like
    artifacts/Azure.Functions.Cli.<rid>.<version>.zip
with a "<name>.sha2" checksum sidecar next to every zip. The Windows x86 zip
is the reference artifact: its name carries the build version and its
contents carry the template version.
"""

from __future__ import annotations

import asyncio
import io
import logging
import zipfile
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from buildfeed.cache import FailurePolicy, RequestCache
from buildfeed.contracts.feed import CliEntry
from buildfeed.errors import ArtifactExpectationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from buildfeed.connectors.appveyor.rest_client import AppVeyorClient

logger = logging.getLogger(__name__)

WIN_X86_MARKER = ".win-x86."
NO_RUNTIME_MARKER = ".no-runtime."
ZIP_SUFFIX = ".zip"
CHECKSUM_SUFFIX = ".sha2"
ARTIFACTS_PREFIX = "artifacts/"

MACOS_LABEL = "MacOS"
WINDOWS_LABEL = "Windows"
LINUX_LABEL = "Linux"


def get_architecture(file_name: str) -> str:
    """Return "x64" for -x64. artifacts, "x86" otherwise."""
    return "x64" if "-x64." in file_name else "x86"


def get_operating_system(file_name: str, *, only_mac: bool = False) -> str | None:
    """
    Return the platform label of an artifact.

    With only_mac=True only macOS is recognized; otherwise only Windows and
    Linux are. The two feed fields are filled from the two modes.
    """
    if only_mac:
        return MACOS_LABEL if ".osx-" in file_name else None
    if ".win-" in file_name:
        return WINDOWS_LABEL
    if ".linux-" in file_name:
        return LINUX_LABEL
    return None


def download_link(cdn_root: str, version: str, file_name: str) -> str:
    """CDN location of an artifact: <cdn_root>/<version>/<name without artifacts/>."""
    return f"{cdn_root.rstrip('/')}/{version}/{file_name.replace(ARTIFACTS_PREFIX, '')}"


def classify_artifact(file_name: str, link: str, sha2: str | None = None) -> CliEntry:
    """Build the standalone CLI entry for one zip artifact."""
    return CliEntry(
        operating_system=get_operating_system(file_name, only_mac=True),
        os=get_operating_system(file_name),
        architecture=get_architecture(file_name),
        download_link=link,
        sha2=sha2,
    )


def is_standalone_zip(file_name: str) -> bool:
    """Zips published as standalone CLI downloads (no-runtime builds excluded)."""
    return file_name.endswith(ZIP_SUFFIX) and NO_RUNTIME_MARKER not in file_name


def find_windows_x86_zip(file_names: Iterable[str]) -> str:
    """
    Return the single Windows x86 zip among the artifact names.

    Raises:
        ArtifactExpectationError: If there is not exactly one.
    """
    matches = [n for n in file_names if WIN_X86_MARKER in n and n.endswith(ZIP_SUFFIX)]
    if len(matches) != 1:
        raise ArtifactExpectationError(
            f"exactly one '{WIN_X86_MARKER}' zip artifact", count=len(matches)
        )
    return matches[0]


def extract_embedded_version(file_name: str) -> str:
    """
    Read the build version from a Windows x86 zip name.

    Example:
        Azure.Functions.Cli.win-x86.2.2.27.zip -> 2.2.27

    Raises:
        ArtifactExpectationError: If the name lacks the marker or a version.
    """
    if WIN_X86_MARKER not in file_name:
        raise ArtifactExpectationError(f"'{WIN_X86_MARKER}' in artifact name {file_name!r}")
    version = file_name.split(WIN_X86_MARKER, 1)[1].split(ZIP_SUFFIX, 1)[0]
    if not version:
        raise ArtifactExpectationError(f"version token in artifact name {file_name!r}")
    return version


def extract_template_version(archive: bytes, prefix: str = "itemTemplates.") -> str:
    """
    Read the template version from the CLI zip contents.

    The zip holds exactly one "itemTemplates.<version>.nupkg" entry; the
    version is its base name without the prefix and the final extension.

    Raises:
        ArtifactExpectationError: If zero or several entries match.
    """
    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        names = [PurePosixPath(info.filename).name for info in zf.infolist()]

    matches = [n for n in names if n.startswith(prefix)]
    if len(matches) != 1:
        raise ArtifactExpectationError(
            f"exactly one archive entry starting with '{prefix}'", count=len(matches)
        )

    name = matches[0]
    stem = name[: name.rfind(".")]
    return stem.removeprefix(prefix)


async def get_checksum(client: AppVeyorClient, job_id: str, file_name: str) -> str:
    """Download the .sha2 sidecar of an artifact, dashes removed."""
    raw = await client.get_artifact_bytes(job_id, file_name + CHECKSUM_SUFFIX)
    return raw.decode("utf-8").strip().replace("-", "")


class TemplateVersionResolver:
    """
    Extracts the template version from a job's Windows x86 zip.

    Downloading and opening the zip is slow, so the result is memoized per
    job id.
    """

    def __init__(
        self,
        client: AppVeyorClient,
        *,
        prefix: str = "itemTemplates.",
        failure_policy: FailurePolicy = FailurePolicy.PIN,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self.cache: RequestCache[str] = RequestCache("template_versions", failure_policy)

    async def resolve(self, job_id: str, artifact_name: str) -> str:
        """Return the template version for a job (memoized by job id)."""

        async def extract() -> str:
            archive = await self._client.get_artifact_bytes(job_id, artifact_name)
            version = await asyncio.to_thread(extract_template_version, archive, self._prefix)
            logger.info(
                "Extracted template version",
                extra={"job_id": job_id, "template_version": version, "size": len(archive)},
            )
            return version

        return await self.cache.get_or_compute(job_id, extract)
