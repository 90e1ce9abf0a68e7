"""
Client for NuGet v3 registries.

Endpoints are discovered from the registry's service index; versions are
read from the search service. A package missing from a registry is
reported as None, not as an error.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from buildfeed.connectors.http import HttpConnector
from buildfeed.connectors.nuget.types import (
    PACKAGE_DETAILS_TEMPLATE_PREFIX,
    SEARCH_QUERY_SERVICE,
    NuGetConfig,
    RegistrySource,
    ServiceIndex,
)
from buildfeed.contracts.packages import PackageVersionInfo
from buildfeed.errors import RegistryError

if TYPE_CHECKING:
    import aiohttp

logger = logging.getLogger(__name__)


def package_details_url(template: str | None, package_name: str) -> str | None:
    """Build the unversioned package page URL from a details template."""
    if not template:
        return None
    return template.replace("{id}", package_name).replace("{version}", "").rstrip("/")


def _resources(index: Any, index_url: str) -> list[dict[str, Any]]:
    resources = index.get("resources") if isinstance(index, dict) else None
    if not isinstance(resources, list):
        raise RegistryError(f"Service index has no resources: {index_url}")
    return [r for r in resources if isinstance(r, dict)]


class NuGetClient(HttpConnector):
    """Async client for NuGet v3 service index and search endpoints."""

    def __init__(
        self,
        config: NuGetConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config or NuGetConfig()
        super().__init__(
            timeout_s=self._config.request_timeout_s,
            headers={"Accept": "application/json", **self._config.extra_headers},
            session=session,
        )

    @property
    def config(self) -> NuGetConfig:
        return self._config

    async def get_service_index(self, source: RegistrySource) -> ServiceIndex:
        """
        Discover the search service and package details template of a registry.

        Raises:
            RegistryError: If the index advertises no SearchQueryService.
        """
        resources = _resources(await self._get_json(source.index_url), source.index_url)

        search = next((r for r in resources if r.get("@type") == SEARCH_QUERY_SERVICE), None)
        if search is None or not search.get("@id"):
            raise RegistryError(
                f"No {SEARCH_QUERY_SERVICE} resource in service index of {source.name}"
            )

        details = next(
            (
                r
                for r in resources
                if str(r.get("@type", "")).startswith(PACKAGE_DETAILS_TEMPLATE_PREFIX)
            ),
            None,
        )
        details_template = details["@id"] if details else source.fallback_details_template

        return ServiceIndex(search_url=str(search["@id"]), details_template=details_template)

    async def resolve_search_endpoint(self, index_url: str) -> str:
        """Return the search service address advertised by a service index."""
        index = await self.get_service_index(RegistrySource(name=index_url, index_url=index_url))
        return index.search_url

    async def get_latest_version(
        self,
        search_url: str,
        package_name: str,
        include_prerelease: bool,
    ) -> str | None:
        """
        Return the newest version of a package, or None if the registry lacks it.

        The newest version is the last of a plain ascending sort of the
        version strings returned by the search service.
        """
        params = {
            "q": f"PackageId:{package_name}",
            "prerelease": "true" if include_prerelease else "false",
        }
        data = await self._get_json(search_url, params=params)
        matches = data.get("data") or []
        if len(matches) > 1:
            raise RegistryError(
                f"Expected one search result for {package_name}, got {len(matches)}"
            )
        if not matches:
            logger.debug(
                "Package not in registry",
                extra={"package": package_name, "search": search_url},
            )
            return None

        versions = sorted(str(v["version"]) for v in matches[0].get("versions") or [])
        return versions[-1] if versions else None

    async def get_package_info(
        self,
        search_url: str,
        package_name: str,
        details_template: str | None,
        *,
        include_prerelease: bool = False,
    ) -> PackageVersionInfo:
        """Look up the newest stable and prerelease versions of a package."""
        version = await self.get_latest_version(search_url, package_name, include_prerelease)
        prerelease_version = await self.get_latest_version(search_url, package_name, True)
        return PackageVersionInfo(
            name=package_name,
            newest_version=version,
            newest_prerelease_version=prerelease_version,
            package_uri=package_details_url(details_template, package_name),
        )
