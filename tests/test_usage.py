from __future__ import annotations

import pytest

from caniusenow.extract import resolve_support
from caniusenow.model import BrowserSupportDetail
from caniusenow.usage import estimate_usage, range_fraction, usage_breakdown


def test_usage_breakdown_total_comes_from_rounded_parts() -> None:
    breakdown = usage_breakdown(10.005, 0.333)
    assert breakdown.partial == 0.33
    assert breakdown.total == round(breakdown.full + breakdown.partial, 2)


@pytest.mark.parametrize(
    ("first", "start", "end", "expected"),
    [
        ("15.0", "15.2", "15.3", 1.0),
        ("15.2", "15.2", "15.3", 1.0),
        ("16", "15.2", "15.3", 0.0),
        ("15.5", "15.4", "15.8", 0.75),
        ("15.3", "15.3", "15.3", 1.0),
    ],
)
def test_range_fraction(first: str, start: str, end: str, expected: float) -> None:
    assert range_fraction(first, start, end) == pytest.approx(expected)


def test_estimate_usage_single_versions_and_current_sentinel() -> None:
    support = resolve_support(
        {
            "chrome": BrowserSupportDetail(current="y", first_full="100"),
            "firefox": BrowserSupportDetail(current="a", first_partial="110"),
        }
    )
    table = {
        "data": {
            "chrome": {"99": 2.0, "100": 10.0, "101": 20.0, "TP": 5.0, "0": 1.0},
            "firefox": {"109": 1.0, "110": 3.0, "111": None},
        }
    }

    usage = estimate_usage(support, table)

    assert usage.type == "estimated"
    assert usage.global_.full == 31.0
    assert usage.global_.partial == 3.0
    assert usage.global_.total == 34.0
    assert usage.desktop == {"chrome": 31.0, "firefox": 3.0}
    assert usage.mobile == {}


def test_estimate_usage_ranges_split_full_and_partial() -> None:
    support = resolve_support(
        {"safari": BrowserSupportDetail(current="y", first_full="15.6", first_partial="15.4")}
    )
    table = {"ios_saf": {"15.4-15.8": 10.0, "15.0-15.1": 4.0}}

    usage = estimate_usage(support, table)

    # full covers (15.8 - 15.6) / 0.4 of the range, partial the rest it reaches
    assert usage.global_.full == pytest.approx(5.0)
    assert usage.global_.partial == pytest.approx(5.0)
    assert usage.mobile == {"ios_saf": 10.0}


def test_estimate_usage_skips_unsupported_browsers() -> None:
    support = resolve_support({})
    usage = estimate_usage(support, {"chrome": {"100": 50.0}})
    assert usage.global_.total == 0.0
    assert usage.desktop == {}


def test_estimate_usage_precomputed_overrides_global() -> None:
    support = resolve_support({"chrome": BrowserSupportDetail(current="y", first_full="1")})

    usage = estimate_usage(support, {"chrome": {"100": 50.0}}, precomputed=(90.123, 2.5))

    assert usage.type == "actual"
    assert usage.global_.full == 90.12
    assert usage.global_.partial == 2.5
    assert usage.global_.total == 92.62
    assert usage.desktop["chrome"] == 50.0


def test_estimate_usage_zero_precomputed_falls_back_to_estimate() -> None:
    support = resolve_support({"chrome": BrowserSupportDetail(current="y", first_full="1")})

    usage = estimate_usage(support, {"chrome": {"100": 50.0}}, precomputed=(0.0, 0.0))

    assert usage.type == "estimated"
    assert usage.global_.full == 50.0


_MINOR_STEPS = [f"{major}.{minor}" for major in (14, 15) for minor in range(10)] + ["16.0"]


@pytest.mark.parametrize(
    ("start", "end", "firsts"),
    [
        ("15.0", "15.9", _MINOR_STEPS),
        ("100", "120", [str(version) for version in range(95, 126)]),
    ],
)
def test_range_fraction_shrinks_as_support_starts_later(
    start: str, end: str, firsts: list[str]
) -> None:
    fractions = [range_fraction(first, start, end) for first in firsts]

    assert all(0.0 <= fraction <= 1.0 for fraction in fractions)
    assert all(later <= earlier for earlier, later in zip(fractions, fractions[1:]))
    assert fractions[0] == 1.0
    assert fractions[-1] == 0.0
