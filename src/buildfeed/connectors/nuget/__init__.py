"""NuGet v3 registry connector: service index discovery and version search."""

from buildfeed.connectors.nuget.client import NuGetClient, package_details_url
from buildfeed.connectors.nuget.types import (
    DEFAULT_PACKAGES,
    DEFAULT_SOURCES,
    NuGetConfig,
    RegistrySource,
    ServiceIndex,
)

__all__ = [
    "DEFAULT_PACKAGES",
    "DEFAULT_SOURCES",
    "NuGetClient",
    "NuGetConfig",
    "RegistrySource",
    "ServiceIndex",
    "package_details_url",
]
