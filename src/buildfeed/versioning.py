"""Ordering of dotted version strings.

Feed release keys mix numeric and textual segments ("2.2.10", "3.0.beta-1"),
so neither plain string order nor a strict semver parser sorts them
correctly. Segments are compared numerically when both are integers and
lexically otherwise.

Example:
    >>> sorted(["2.2.10", "2.2.9", "2.2"], key=version_key)
    ['2.2', '2.2.9', '2.2.10']
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


def _as_int(segment: str) -> int | None:
    try:
        return int(segment)
    except ValueError:
        return None


def compare_versions(x: str, y: str) -> int:
    """Compare two dotted version strings.

    Args:
        x: First version.
        y: Second version.

    Returns:
        Negative if x < y, zero if equal, positive if x > y.
    """
    x_split = x.split(".")
    y_split = y.split(".")

    for x_cur, y_cur in zip(x_split, y_split):
        if x_cur == y_cur:
            continue

        x_int = _as_int(x_cur)
        y_int = _as_int(y_cur)
        if x_int is not None and y_int is not None:
            return x_int - y_int

        # Textual segments such as "beta-1"
        return -1 if x_cur < y_cur else 1

    # Equal shared prefix: the longer version wins
    return len(x_split) - len(y_split)


version_key = functools.cmp_to_key(compare_versions)


def latest_version(versions: Iterable[str]) -> str:
    """Return the greatest version according to compare_versions.

    Raises:
        ValueError: If versions is empty.
    """
    candidates = list(versions)
    if not candidates:
        raise ValueError("No versions to choose from")
    return max(candidates, key=version_key)
