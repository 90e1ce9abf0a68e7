"""Configuration for CLI feed aggregation."""

from __future__ import annotations

from dataclasses import dataclass

from buildfeed.connectors.static_feed import DEFAULT_FEED_URL


@dataclass
class FeedConfig:
    """
    Locations used to build a feed entry.

    Attributes:
        feed_url: Published feed document to read the previous release from.
        cdn_root: Root of the CDN hosting the CLI zips.
        item_template_url: Prefix completed with the template version.
        project_template_url: Prefix completed with the template version.
        template_prefix: Name prefix of the template package inside the zip.
    """

    feed_url: str = DEFAULT_FEED_URL
    cdn_root: str = "https://functionscdn.azureedge.net/public"
    item_template_url: str = (
        "https://www.myget.org/F/azure-appservice/api/v2/package/Azure.Functions.Templates/"
    )
    project_template_url: str = (
        "https://www.myget.org/F/azure-appservice/api/v2/package/"
        "Microsoft.AzureFunctions.ProjectTemplates/"
    )
    template_prefix: str = "itemTemplates."

    def __post_init__(self) -> None:
        for name in ("feed_url", "cdn_root", "item_template_url", "project_template_url"):
            value = getattr(self, name)
            if not value.startswith(("http://", "https://")):
                msg = f"{name} must be an http(s) URL, got {value!r}"
                raise ValueError(msg)
        self.cdn_root = self.cdn_root.rstrip("/")
        if not self.template_prefix:
            raise ValueError("template_prefix must not be empty")
