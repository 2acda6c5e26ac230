from __future__ import annotations

import pytest

from caniusenow.version import (
    compare_versions,
    is_version_in_range,
    parse_range,
    version_number,
    version_sort_key,
)


@pytest.mark.parametrize(
    ("v1", "v2", "expected"),
    [
        ("15.4", "15.4", 0),
        ("15.4", "15.10", -1),
        ("100", "99", 1),
        ("15", "15.0.0", 0),
        ("TP", "999", 1),
        ("18", "TP", -1),
        ("all", "1", -1),
        ("4", "all", 1),
        ("15.2-15.3", "15.4", -1),
        ("3.2a", "3.2", 0),
    ],
)
def test_compare_versions(v1: str, v2: str, expected: int) -> None:
    assert compare_versions(v1, v2) == expected


def test_compare_versions_is_antisymmetric() -> None:
    for v1, v2 in [("1", "2"), ("TP", "all"), ("15.4", "16"), ("abc", "1")]:
        assert compare_versions(v1, v2) == -compare_versions(v2, v1)


def test_compare_versions_never_raises_on_garbage() -> None:
    assert compare_versions("", "abc") == 0
    assert compare_versions("preview?", "1") == -1


def test_sort_key_orders_mixed_versions() -> None:
    versions = ["TP", "10", "9", "all", "15.4", "15.10", "3.1"]
    assert sorted(versions, key=version_sort_key) == [
        "all",
        "3.1",
        "9",
        "10",
        "15.4",
        "15.10",
        "TP",
    ]


def test_parse_range() -> None:
    assert parse_range("15.2-15.3") == ("15.2", "15.3")
    assert parse_range("120") is None


def test_is_version_in_range() -> None:
    assert is_version_in_range("15.2", "15.2-15.3")
    assert is_version_in_range("15.3", "15.2-15.3")
    assert not is_version_in_range("15.4", "15.2-15.3")
    assert is_version_in_range("120", "120")
    assert not is_version_in_range("121", "120")


def test_version_number() -> None:
    assert version_number("15.6") == 15.6
    assert version_number("120") == 120.0
    assert version_number("4.4.3") == 4.4
    assert version_number("TP") is None


def test_compare_versions_is_transitive() -> None:
    versions = ["all", "TP", "1", "9", "10", "15", "15.0.0", "15.2-15.3", "15.4", "3.2a", "16.1"]
    for a in versions:
        for b in versions:
            for c in versions:
                if compare_versions(a, b) <= 0 and compare_versions(b, c) <= 0:
                    assert compare_versions(a, c) <= 0, (a, b, c)
