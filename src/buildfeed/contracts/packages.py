"""Contracts for the registry package-version report."""

from __future__ import annotations

from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field


class PackageVersionInfo(BaseModel):
    """Newest versions of one package in one registry.

    A version is None when the registry does not carry the package.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    name: str = Field(..., min_length=1, alias="Name")
    newest_version: str | None = Field(default=None, alias="NewestVersion")
    newest_prerelease_version: str | None = Field(default=None, alias="NewestPreReleaseVersion")
    package_uri: str | None = Field(default=None, alias="PackageUri")


class RegistryReport(BaseModel):
    """Probe results for every configured package in one registry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    source_name: str = Field(..., alias="SourceName")
    source_url: str = Field(..., alias="SourceUrl")
    search_url: str = Field(..., alias="SearchUrl")
    package_details_url_template: str | None = Field(
        default=None, alias="PackageDetailsUrlTemplate"
    )
    packages: list[PackageVersionInfo] = Field(default_factory=list, alias="Packages")

    def package(self, name: str) -> PackageVersionInfo | None:
        """Find a package result by name."""
        return next((p for p in self.packages if p.name == name), None)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def reports_to_json(reports: list[RegistryReport]) -> bytes:
    """Serialize a list of registry reports using orjson."""
    return orjson.dumps([r.to_dict() for r in reports])
