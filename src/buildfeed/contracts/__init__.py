"""
Data contracts exchanged with feed consumers.

Field names on the wire follow the published feed and report formats;
Python attributes are snake_case aliases.
"""

from buildfeed.contracts.feed import CliEntry, FeedDocument, FeedEntry, overlay_entry
from buildfeed.contracts.packages import PackageVersionInfo, RegistryReport, reports_to_json

__all__ = [
    "CliEntry",
    "FeedDocument",
    "FeedEntry",
    "PackageVersionInfo",
    "RegistryReport",
    "overlay_entry",
    "reports_to_json",
]
