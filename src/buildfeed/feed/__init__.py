"""CLI feed aggregation: artifact classification and release overlay."""

from buildfeed.feed.aggregator import FeedAggregator, select_latest_release
from buildfeed.feed.artifacts import (
    TemplateVersionResolver,
    classify_artifact,
    download_link,
    extract_embedded_version,
    extract_template_version,
    find_windows_x86_zip,
    get_architecture,
    get_checksum,
    get_operating_system,
    is_standalone_zip,
)
from buildfeed.feed.config import FeedConfig

__all__ = [
    "FeedAggregator",
    "FeedConfig",
    "TemplateVersionResolver",
    "classify_artifact",
    "download_link",
    "extract_embedded_version",
    "extract_template_version",
    "find_windows_x86_zip",
    "get_architecture",
    "get_checksum",
    "get_operating_system",
    "is_standalone_zip",
    "select_latest_release",
]
