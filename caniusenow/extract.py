"""Per-source browser support extraction.

Each source encodes support differently:

- caniuse keeps a per-version status string ("y", "a x #2", "n d", ...)
- web-features only knows the version where support landed
- MDN browser-compat-data keeps a list of support statements per browser

All three are turned into ``BrowserSupportDetail`` records here. Browsers a
source says nothing about are filled in by ``resolve_support``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import replace
from typing import Any, cast

from .constants import INFERENCE_PARENTS, MAX_RECENT_VERSIONS, PREVIEW_VERSION, TARGET_BROWSERS
from .model import BrowserSupport, BrowserSupportDetail, SupportStatus, VersionSupport
from .version import compare_versions, version_sort_key


_BASE_STATUSES: frozenset[str] = frozenset({"y", "a", "n", "p", "u"})
_FLAG_TOKENS: dict[str, str] = {"x": "prefix", "d": "disabled", "p": "polyfill"}
_AT_OR_BEFORE = "≤"


def parse_caniuse_status(raw: str) -> tuple[SupportStatus, tuple[str, ...]]:
    """Split a caniuse status string into base status and decoded flags."""
    status: SupportStatus = "u"
    flags: list[str] = []
    base_found = False
    for token in raw.split():
        if not base_found and token in _BASE_STATUSES:
            status = cast(SupportStatus, token)
            base_found = True
        if token.startswith("#"):
            if "footnote" not in flags:
                flags.append("footnote")
            continue
        flag = _FLAG_TOKENS.get(token)
        if flag and flag not in flags:
            flags.append(flag)
    return status, tuple(flags)


def extract_caniuse_support(
    stats: Mapping[str, Mapping[str, str]] | None,
    browser: str,
) -> BrowserSupportDetail:
    """Build a detail from caniuse's version -> status table for one browser."""
    browser_stats = (stats or {}).get(browser)
    if not browser_stats:
        return BrowserSupportDetail(current="u")

    versions: list[VersionSupport] = []
    first_full: str | None = None
    first_partial: str | None = None
    current: SupportStatus = "n"

    for version in sorted(browser_stats, key=version_sort_key):
        status, flags = parse_caniuse_status(str(browser_stats[version]))
        versions.append(VersionSupport(version=version, status=status, flags=flags))
        if status == "y" and first_full is None:
            first_full = version
        if status == "a" and first_partial is None:
            first_partial = version
        current = status

    return BrowserSupportDetail(
        current=current,
        first_full=first_full,
        first_partial=first_partial,
        versions=tuple(versions[-MAX_RECENT_VERSIONS:]),
    )


def clean_version(value: object) -> str | None:
    """Normalize a source version value ("≤79", "preview", 57) to a plain string."""
    if value is None or isinstance(value, bool):
        return None
    cleaned = str(value).strip().lstrip(_AT_OR_BEFORE).strip()
    if not cleaned:
        return None
    if cleaned.lower() == "preview":
        return PREVIEW_VERSION
    return cleaned


def extract_web_features_support(
    support: Mapping[str, Any] | None,
    browser: str,
) -> BrowserSupportDetail | None:
    """Synthesize a one-entry history from web-features' "supported since" map."""
    version = clean_version((support or {}).get(browser))
    if version is None:
        return None
    return BrowserSupportDetail(
        current="y",
        first_full=version,
        versions=(VersionSupport(version=version, status="y"),),
    )


def _earliest(current: str | None, candidate: str) -> str:
    if current is None or compare_versions(candidate, current) < 0:
        return candidate
    return current


def _statement_notes(notes: object) -> str | None:
    if isinstance(notes, list):
        joined = " ".join(str(note) for note in notes if note)
        return joined or None
    if isinstance(notes, str) and notes.strip():
        return notes
    return None


def extract_mdn_support(
    statements: Mapping[str, Any] | list[Mapping[str, Any]],
    browser: str,
) -> BrowserSupportDetail | None:
    """Fold MDN support statements for one browser into a detail.

    Returns None when every statement was skipped so callers can fall back
    to inference from a related browser.
    """
    items = statements if isinstance(statements, list) else [statements]

    first_full: str | None = None
    first_partial: str | None = None
    has_full = False
    has_partial = False
    has_flagged = False
    versions: list[VersionSupport] = []

    for statement in items:
        if not isinstance(statement, Mapping):
            continue
        added = statement.get("version_added")
        if added is True:
            has_full = True
            continue
        if added is False or added is None:
            continue
        version = clean_version(added)
        if version is None:
            continue

        statement_flags = statement.get("flags") or []
        status: SupportStatus
        if statement_flags:
            status = "d"
            has_flagged = True
        elif statement.get("partial_implementation") is True:
            status = "a"
            has_partial = True
            first_partial = _earliest(first_partial, version)
        else:
            status = "y"
            has_full = True
            first_full = _earliest(first_full, version)

        flag_names = tuple(
            str(flag.get("name") or "flags") for flag in statement_flags if isinstance(flag, Mapping)
        )
        prefix = statement.get("prefix")
        versions.append(
            VersionSupport(
                version=version,
                status=status,
                prefix=prefix if isinstance(prefix, str) else None,
                flags=flag_names,
                notes=_statement_notes(statement.get("notes")),
            )
        )

    if not versions and not has_full:
        return None

    current: SupportStatus = "n"
    if has_full:
        current = "y"
    elif has_partial:
        current = "a"
    elif has_flagged:
        current = "d"

    ordered = sorted(versions, key=lambda entry: version_sort_key(entry.version))
    return BrowserSupportDetail(
        current=current,
        first_full=first_full,
        first_partial=first_partial,
        versions=tuple(ordered[-MAX_RECENT_VERSIONS:]),
    )


def resolve_support(native: Mapping[str, BrowserSupportDetail | None]) -> BrowserSupport:
    """Complete a support map so every target browser has an explicit detail.

    Browsers without native data copy their parent engine's detail when the
    parent had native data, otherwise they are marked unsupported.
    """
    support: BrowserSupport = {}
    for browser in TARGET_BROWSERS:
        detail = native.get(browser)
        if detail is not None:
            support[browser] = detail
            continue
        parent = INFERENCE_PARENTS.get(browser)
        parent_detail = native.get(parent) if parent else None
        if parent_detail is not None:
            support[browser] = replace(parent_detail)
        else:
            support[browser] = BrowserSupportDetail(current="n")
    return support


def iter_mdn_features(
    tree: Mapping[str, Any],
    parent_path: str = "",
) -> Iterator[tuple[str, Mapping[str, Any]]]:
    """Walk the MDN compat tree depth-first, yielding (path, __compat) pairs."""
    for key, value in tree.items():
        if key in {"__compat", "__meta"} or not isinstance(value, Mapping):
            continue
        path = f"{parent_path}.{key}" if parent_path else key
        compat = value.get("__compat")
        if isinstance(compat, Mapping):
            yield path, compat
        yield from iter_mdn_features(value, path)
