"""
Exception hierarchy for buildfeed.

Transport failures, violated upstream expectations and malformed documents
each get their own type so the service layer can report them precisely.
Client input errors never reach this module; they are rejected by the
HTTP handlers before any upstream call is made.
"""

from __future__ import annotations


class BuildFeedError(Exception):
    """Base class for all buildfeed errors."""


class UpstreamError(BuildFeedError):
    """
    Non-success HTTP status returned by an upstream service.

    Attributes:
        path: Request path that was attempted (no host, no query secrets).
        status: HTTP status code returned.
    """

    def __init__(self, path: str, status: int, detail: str = "") -> None:
        self.path = path
        self.status = status
        self.detail = detail
        message = f"Upstream request failed: {path} (HTTP {status})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ArtifactExpectationError(BuildFeedError):
    """
    An upstream structure did not match a singleton expectation.

    Raised when exactly one artifact or archive entry was expected and zero
    or several were found.

    Attributes:
        expectation: Human-readable description of what was expected.
        count: Number of matches actually found (None if not applicable).
    """

    def __init__(self, expectation: str, count: int | None = None) -> None:
        self.expectation = expectation
        self.count = count
        if count is None:
            message = f"Expectation violated: {expectation}"
        else:
            message = f"Expectation violated: {expectation} (found {count})"
        super().__init__(message)


class RegistryError(BuildFeedError):
    """Registry service index is missing a required resource."""


class FeedError(BuildFeedError):
    """Published feed document is malformed or has no releases."""
