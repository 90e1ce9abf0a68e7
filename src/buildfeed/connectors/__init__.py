"""Connectors for upstream services.

- appveyor: CI projects, builds, jobs and artifacts
- nuget: package registries
- static_feed: the published CLI feed document
"""

from buildfeed.connectors.http import HttpConnector
from buildfeed.connectors.static_feed import FeedClient

__all__ = [
    "FeedClient",
    "HttpConnector",
]
