"""Usage estimation from per-version global browser share.

The global usage table (caniuse's ``alt-ww.json``) maps each browser to a
``version -> share`` table. A version key is a single version ("120"), a
range ("15.6-15.8"), or ``"0"`` for the browser's current release. For a
feature, every version at or after its first supported version counts
towards the full (or partial) bucket; ranges the support starts inside of
count proportionally.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .constants import (
    ALL_VERSIONS,
    BROWSER_CATEGORIES,
    CURRENT_VERSION,
    PREVIEW_VERSION,
    TARGET_BROWSERS,
)
from .model import BrowserSupport, BrowserSupportDetail, FeatureUsage, UsageBreakdown
from .version import compare_versions, parse_range, version_number


def _round(value: float) -> float:
    return round(value, 2)


def usage_breakdown(full: float, partial: float) -> UsageBreakdown:
    """Round full/partial and derive total from the rounded parts."""
    rounded_full = _round(full)
    rounded_partial = _round(partial)
    return UsageBreakdown(
        full=rounded_full,
        partial=rounded_partial,
        total=_round(rounded_full + rounded_partial),
    )


def range_fraction(first_supported: str, range_start: str, range_end: str) -> float:
    """Share of a version range covered when support begins at first_supported.

    1.0 when support starts at or before the range start, 0.0 when it starts
    after the range end, otherwise the linear fraction of the range from the
    first supported version to the end. Always within [0, 1].
    """
    if compare_versions(first_supported, range_start) <= 0:
        return 1.0
    if compare_versions(first_supported, range_end) > 0:
        return 0.0

    start = version_number(range_start)
    end = version_number(range_end)
    first = version_number(first_supported)
    if start is None or end is None or first is None:
        return 0.0
    size = end - start
    if size <= 0:
        return 0.0
    return max(0.0, min(1.0, (end - first) / size))


def usage_table_data(usage_table: Mapping[str, Any]) -> Mapping[str, Any]:
    """Accept both the raw alt-ww document and its bare ``data`` mapping."""
    data = usage_table.get("data")
    if isinstance(data, Mapping):
        return data
    return usage_table


def _browser_usage(
    detail: BrowserSupportDetail,
    versions: Mapping[str, Any],
) -> tuple[float, float]:
    full = 0.0
    partial = 0.0
    first_full = detail.first_full
    first_partial = detail.first_partial

    for version, raw_share in versions.items():
        if not isinstance(raw_share, (int, float)) or isinstance(raw_share, bool):
            continue
        share = float(raw_share)
        if version in {PREVIEW_VERSION, ALL_VERSIONS}:
            continue

        if version == CURRENT_VERSION:
            if detail.current == "y":
                full += share
            elif detail.current == "a":
                partial += share
            continue

        bounds = parse_range(version)
        if bounds is not None:
            start, end = bounds
            full_fraction = range_fraction(first_full, start, end) if first_full else 0.0
            full += share * full_fraction
            if full_fraction < 1.0 and first_partial:
                partial_fraction = range_fraction(first_partial, start, end)
                partial += share * max(0.0, partial_fraction - full_fraction)
            continue

        if first_full and compare_versions(version, first_full) >= 0:
            full += share
        elif first_partial and compare_versions(version, first_partial) >= 0:
            partial += share

    return full, partial


def estimate_usage(
    support: BrowserSupport,
    usage_table: Mapping[str, Any],
    precomputed: tuple[float, float] | None = None,
) -> FeatureUsage:
    """Estimate global and per-browser usage for a feature's support map.

    ``precomputed`` carries authoritative (full, partial) percentages. When
    either is non-zero they replace the computed global figures while the
    per-browser breakdown is still computed here.
    """
    data = usage_table_data(usage_table)
    desktop: dict[str, float] = {}
    mobile: dict[str, float] = {}
    full_usage = 0.0
    partial_usage = 0.0

    for browser in TARGET_BROWSERS:
        detail = support.get(browser)
        versions = data.get(browser)
        if detail is None or not isinstance(versions, Mapping):
            continue
        if detail.current == "n" and not detail.first_full and not detail.first_partial:
            continue

        browser_full, browser_partial = _browser_usage(detail, versions)
        browser_total = browser_full + browser_partial
        if browser_total > 0:
            bucket = desktop if BROWSER_CATEGORIES[browser] == "desktop" else mobile
            bucket[browser] = _round(browser_total)

        full_usage += browser_full
        partial_usage += browser_partial

    if precomputed is not None and (precomputed[0] > 0 or precomputed[1] > 0):
        return FeatureUsage(
            global_=usage_breakdown(*precomputed),
            desktop=desktop,
            mobile=mobile,
            type="actual",
        )

    return FeatureUsage(
        global_=usage_breakdown(full_usage, partial_usage),
        desktop=desktop,
        mobile=mobile,
        type="estimated",
    )
