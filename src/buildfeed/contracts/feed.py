"""
Contracts for the published CLI feed.

The feed document is shaped as:
    {"releases": {"<version>": {<FeedEntry fields>}, ...}}

FeedEntry accepts and keeps fields it does not model, so an entry read from
the existing feed can be re-emitted without losing anything.
"""

from __future__ import annotations

from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator

from buildfeed.errors import FeedError
from buildfeed.versioning import latest_version


class CliEntry(BaseModel):
    """
    One standalone CLI download for a platform.

    Only macOS artifacts populate OperatingSystem; Windows and Linux populate
    OS. Downstream installers rely on this split.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    operating_system: str | None = Field(default=None, alias="OperatingSystem")
    os: str | None = Field(default=None, alias="OS")
    architecture: str = Field(..., alias="Architecture")
    download_link: str = Field(..., alias="downloadLink")
    sha2: str | None = None


class FeedEntry(BaseModel):
    """A single release of the CLI feed.

    Fields this service writes are typed; fields it only carries over from the
    previous release accept any JSON value so they round-trip unchanged.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    sdk_functions: JsonValue = Field(default=None, alias="Microsoft.NET.Sdk.Functions")
    cli: str | None = None
    sha2: str | None = None
    node_version: JsonValue = Field(default=None, alias="nodeVersion")
    local_entry_point: JsonValue = Field(default=None, alias="localEntryPoint")
    item_templates: str | None = Field(default=None, alias="itemTemplates")
    project_templates: str | None = Field(default=None, alias="projectTemplates")
    template_api_zip: JsonValue = Field(default=None, alias="templateApiZip")
    functions_extension_version: JsonValue = Field(
        default=None, alias="FUNCTIONS_EXTENSION_VERSION"
    )
    required_runtime: JsonValue = Field(default=None, alias="requiredRuntime")
    minimum_runtime_version: JsonValue = Field(default=None, alias="minimumRuntimeVersion")
    standalone_cli: list[CliEntry] | None = Field(default=None, alias="standaloneCli")

    def to_dict(self) -> dict[str, Any]:
        """Wire representation: feed field names, null values omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self) -> bytes:
        """Serialize to JSON bytes using orjson."""
        return orjson.dumps(self.to_dict())


class FeedDocument(BaseModel):
    """The whole published feed: release entries keyed by version."""

    model_config = ConfigDict(frozen=True, extra="allow")

    releases: dict[str, dict[str, Any]]

    @field_validator("releases")
    @classmethod
    def validate_releases(cls, v: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
        """Reject a feed without any release."""
        if not v:
            raise ValueError("Feed document has no releases")
        return v

    @classmethod
    def from_json(cls, data: bytes | str) -> FeedDocument:
        """
        Parse a feed document.

        Raises:
            FeedError: If the document is not a feed with at least one release.
        """
        if isinstance(data, str):
            data = data.encode()
        try:
            return cls.model_validate(orjson.loads(data))
        except (orjson.JSONDecodeError, ValueError) as e:
            raise FeedError(f"Invalid feed document: {e}") from e

    def latest_release(self) -> tuple[str, dict[str, Any]]:
        """Return (version, raw entry) of the greatest release version."""
        version = latest_version(self.releases)
        return version, self.releases[version]


def overlay_entry(previous: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Overlay new field values onto a previous feed entry.

    Fields present in overlay replace the previous value wholesale (arrays
    are not merged); every other field is kept. Neither input is modified.
    """
    return {**previous, **overlay}
