"""Ordering over browser version strings and version ranges."""

from __future__ import annotations

import functools
import re

from .constants import ALL_VERSIONS, PREVIEW_VERSION

_PART_SPLIT_RE = re.compile(r"[-.]")
_LEADING_INT_RE = re.compile(r"\d+")
_LEADING_FLOAT_RE = re.compile(r"\d+(?:\.\d+)?")


def _version_parts(version: str) -> list[int]:
    parts: list[int] = []
    for piece in _PART_SPLIT_RE.split(version):
        match = _LEADING_INT_RE.match(piece.strip())
        parts.append(int(match.group(0)) if match else 0)
    return parts


def compare_versions(v1: str, v2: str) -> int:
    """Compare two versions, returning -1, 0 or 1.

    "TP" (technology preview) sorts after every numeric version and "all"
    sorts before every numeric version. Non-numeric parts count as 0 and
    missing trailing parts are padded with 0.
    """
    if v1 == v2:
        return 0
    if v1 == PREVIEW_VERSION:
        return 1
    if v2 == PREVIEW_VERSION:
        return -1
    if v1 == ALL_VERSIONS:
        return -1
    if v2 == ALL_VERSIONS:
        return 1

    parts1 = _version_parts(v1)
    parts2 = _version_parts(v2)
    for index in range(max(len(parts1), len(parts2))):
        p1 = parts1[index] if index < len(parts1) else 0
        p2 = parts2[index] if index < len(parts2) else 0
        if p1 < p2:
            return -1
        if p1 > p2:
            return 1
    return 0


version_sort_key = functools.cmp_to_key(compare_versions)


def parse_range(range_text: str) -> tuple[str, str] | None:
    """Split "15.6-15.8" into its bounds; single versions return None."""
    if "-" not in range_text:
        return None
    start, _, end = range_text.partition("-")
    return start.strip(), end.strip()


def is_version_in_range(version: str, range_text: str) -> bool:
    """Check inclusive membership of version in a single version or a range."""
    bounds = parse_range(range_text)
    if bounds is None:
        return version == range_text
    start, end = bounds
    return compare_versions(version, start) >= 0 and compare_versions(version, end) <= 0


def version_number(version: str) -> float | None:
    """Read the leading "major.minor" of a version as a float."""
    match = _LEADING_FLOAT_RE.match(version.strip())
    if match is None:
        return None
    return float(match.group(0))
