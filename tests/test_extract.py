from __future__ import annotations

from caniusenow.constants import TARGET_BROWSERS
from caniusenow.extract import (
    clean_version,
    extract_caniuse_support,
    extract_mdn_support,
    extract_web_features_support,
    iter_mdn_features,
    parse_caniuse_status,
    resolve_support,
)
from caniusenow.model import BrowserSupportDetail


def test_parse_caniuse_status_flags() -> None:
    assert parse_caniuse_status("y") == ("y", ())
    assert parse_caniuse_status("a x #2") == ("a", ("prefix", "footnote"))
    assert parse_caniuse_status("n d #1 #3") == ("n", ("disabled", "footnote"))
    assert parse_caniuse_status("p") == ("p", ("polyfill",))
    assert parse_caniuse_status("") == ("u", ())


def test_extract_caniuse_support_first_versions_and_current() -> None:
    stats = {"chrome": {"21": "a x", "4": "n", "29": "y", "TP": "y", "28": "a #1"}}

    detail = extract_caniuse_support(stats, "chrome")

    assert detail.current == "y"
    assert detail.first_partial == "21"
    assert detail.first_full == "29"
    assert [entry.version for entry in detail.versions] == ["4", "21", "28", "29", "TP"]
    assert detail.versions[1].flags == ("prefix",)


def test_extract_caniuse_support_missing_browser_is_unknown() -> None:
    detail = extract_caniuse_support({"firefox": {"1": "y"}}, "chrome")
    assert detail == BrowserSupportDetail(current="u")


def test_extract_caniuse_support_keeps_ten_most_recent() -> None:
    stats = {"firefox": {str(version): "y" for version in range(1, 30)}}

    detail = extract_caniuse_support(stats, "firefox")

    assert len(detail.versions) == 10
    assert detail.versions[0].version == "20"
    assert detail.versions[-1].version == "29"
    assert detail.first_full == "1"


def test_clean_version() -> None:
    assert clean_version("≤79") == "79"
    assert clean_version("preview") == "TP"
    assert clean_version(57) == "57"
    assert clean_version(True) is None
    assert clean_version(None) is None
    assert clean_version("  ") is None


def test_extract_web_features_support() -> None:
    detail = extract_web_features_support({"chrome": "≤57", "safari": "10.1"}, "chrome")
    assert detail is not None
    assert detail.current == "y"
    assert detail.first_full == "57"
    assert len(detail.versions) == 1

    assert extract_web_features_support({"chrome": "57"}, "edge") is None
    assert extract_web_features_support(None, "edge") is None


def test_extract_mdn_support_statement_list() -> None:
    statements = [
        {"version_added": "57"},
        {"version_added": "50", "flags": [{"type": "preference", "name": "layout.css.grid"}]},
        {"version_added": "52", "partial_implementation": True, "notes": "Only rows"},
        {"version_added": "45", "prefix": "-moz-"},
    ]

    detail = extract_mdn_support(statements, "firefox")

    assert detail is not None
    assert detail.current == "y"
    assert detail.first_full == "45"
    assert detail.first_partial == "52"
    assert [entry.version for entry in detail.versions] == ["45", "50", "52", "57"]
    assert detail.versions[0].prefix == "-moz-"
    assert detail.versions[1].status == "d"
    assert detail.versions[1].flags == ("layout.css.grid",)
    assert detail.versions[2].notes == "Only rows"


def test_extract_mdn_support_flag_only_and_partial_only() -> None:
    flagged = extract_mdn_support({"version_added": "90", "flags": [{"name": "x"}]}, "chrome")
    assert flagged is not None
    assert flagged.current == "d"
    assert flagged.first_full is None

    partial = extract_mdn_support({"version_added": "16", "partial_implementation": True}, "safari")
    assert partial is not None
    assert partial.current == "a"
    assert partial.first_partial == "16"


def test_extract_mdn_support_true_and_skipped_statements() -> None:
    unknown_version = extract_mdn_support({"version_added": True}, "edge")
    assert unknown_version is not None
    assert unknown_version.current == "y"
    assert unknown_version.versions == ()

    assert extract_mdn_support({"version_added": False}, "ie") is None
    assert extract_mdn_support([{"version_added": None}], "ie") is None


def test_extract_mdn_support_preview_version() -> None:
    detail = extract_mdn_support({"version_added": "preview"}, "safari")
    assert detail is not None
    assert detail.first_full == "TP"


def test_resolve_support_infers_from_parent_engine() -> None:
    chrome = BrowserSupportDetail(current="y", first_full="57")
    safari = BrowserSupportDetail(current="a", first_partial="10.1")

    support = resolve_support({"chrome": chrome, "safari": safari})

    assert list(support) == list(TARGET_BROWSERS)
    assert support["and_chr"] == chrome
    assert support["samsung"] == chrome
    assert support["opera"] == chrome
    assert support["ios_saf"] == safari
    assert support["firefox"] == BrowserSupportDetail(current="n")
    assert support["and_ff"] == BrowserSupportDetail(current="n")
    assert support["ie"] == BrowserSupportDetail(current="n")


def test_resolve_support_prefers_native_data() -> None:
    native = BrowserSupportDetail(current="n")
    support = resolve_support(
        {"chrome": BrowserSupportDetail(current="y", first_full="1"), "and_chr": native}
    )
    assert support["and_chr"] is native


def test_iter_mdn_features_walks_depth_first() -> None:
    tree = {
        "__meta": {"version": "5"},
        "css": {
            "properties": {
                "display": {
                    "__compat": {"support": {}},
                    "grid": {"__compat": {"support": {}}},
                },
            },
        },
        "html": {"elements": {"dialog": {"__compat": {"support": {}}}}},
    }

    paths = [path for path, _compat in iter_mdn_features(tree)]

    assert paths == [
        "css.properties.display",
        "css.properties.display.grid",
        "html.elements.dialog",
    ]
