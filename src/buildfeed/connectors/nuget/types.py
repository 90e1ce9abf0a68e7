"""
Types and configuration for the NuGet registry connector.

A registry describes itself through a v3 service index:
    {"resources": [{"@type": "SearchQueryService", "@id": "https://..."}, ...]}
"""

from __future__ import annotations

from dataclasses import dataclass, field

SEARCH_QUERY_SERVICE = "SearchQueryService"
PACKAGE_DETAILS_TEMPLATE_PREFIX = "PackageDetailsUriTemplate"


@dataclass(frozen=True)
class RegistrySource:
    """
    A configured package registry.

    Attributes:
        name: Friendly name shown in reports.
        index_url: URL of the v3 service index.
        fallback_details_template: Package page template with {id} and
            {version} placeholders, used when the index does not advertise one.
    """

    name: str
    index_url: str
    fallback_details_template: str | None = None


@dataclass(frozen=True)
class ServiceIndex:
    """Endpoints discovered from a registry's service index."""

    search_url: str
    details_template: str | None = None


DEFAULT_SOURCES: tuple[RegistrySource, ...] = (
    RegistrySource(
        "App Service Nightly",
        "https://www.myget.org/F/azure-appservice/api/v3/index.json",
        "https://www.myget.org/feed/azure-appservice/package/nuget/{id}/{version}",
    ),
    RegistrySource(
        "App Service Staging",
        "https://www.myget.org/F/azure-appservice-staging/api/v3/index.json",
        "https://www.myget.org/feed/azure-appservice-staging/package/nuget/{id}/{version}",
    ),
    RegistrySource("Nuget.org", "https://api.nuget.org/v3/index.json"),
)

DEFAULT_PACKAGES: tuple[str, ...] = (
    "Microsoft.Azure.WebJobs",
    "Microsoft.Azure.WebJobs.Core",
    "Microsoft.Azure.WebJobs.Extensions",
    "Microsoft.Azure.WebJobs.Extensions.CosmosDB",
    "Microsoft.Azure.WebJobs.Extensions.EventGrid",
    "Microsoft.Azure.WebJobs.Extensions.EventHubs",
    "Microsoft.Azure.WebJobs.Extensions.ServiceBus",
    "Microsoft.Azure.WebJobs.Extensions.Storage",
    "Microsoft.Azure.WebJobs.Host.Storage",
    "Microsoft.Azure.WebJobs.Logging",
    "Microsoft.Azure.WebJobs.Logging.ApplicationInsights",
    "Microsoft.NET.Sdk.Functions",
    "Microsoft.Azure.Functions.Extensions",
    "Microsoft.Azure.WebJobs.Script.ExtensionsMetadataGenerator",
)


@dataclass
class NuGetConfig:
    """Registries and packages probed for latest versions."""

    sources: tuple[RegistrySource, ...] = DEFAULT_SOURCES
    packages: tuple[str, ...] = DEFAULT_PACKAGES
    request_timeout_s: float = 30.0
    extra_headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.sources:
            raise ValueError("At least one registry source is required")
        if not self.packages:
            raise ValueError("At least one package name is required")
        names = [s.name for s in self.sources]
        if len(set(names)) != len(names):
            raise ValueError(f"Registry source names must be unique, got {names}")
        if self.request_timeout_s <= 0:
            raise ValueError(f"request_timeout_s must be > 0, got {self.request_timeout_s}")
