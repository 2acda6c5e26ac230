"""Fold caniuse, web-features and MDN compat data into one feature catalog.

Sources are processed strictly in priority order. caniuse records are
inserted as-is; web-features and MDN records either supplement an existing
record (explicit cross-source link first, then the duplicate heuristic) or
are inserted under a source-prefixed id. Supplementing never touches
support or usage computed from a higher-priority source.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
import logging
from typing import Any
from urllib.parse import quote

from .constants import (
    CANIUSE_SEARCH_URL,
    MDN_ALLOWED_CATEGORIES,
    MDN_ID_PREFIX,
    TARGET_BROWSERS,
    WEB_FEATURES_ID_PREFIX,
)
from .dedupe import DuplicateIndex
from .extract import (
    extract_caniuse_support,
    extract_mdn_support,
    extract_web_features_support,
    iter_mdn_features,
    resolve_support,
)
from .model import (
    Baseline,
    BrowserSupport,
    BrowserSupportDetail,
    FeatureNotes,
    MatchKind,
    NormalizedFeature,
    SourceData,
    SourceRef,
    SupplementaryMatch,
)
from .naming import (
    format_feature_name,
    infer_category_from_mdn_path,
    infer_name_from_mdn_path,
    map_caniuse_category,
)
from .usage import estimate_usage
from .util.html import fragment_to_markdown
from .util.text import normalize_code_tags

LOGGER = logging.getLogger(__name__)


@dataclass
class SourceStats:
    total: int = 0
    processed: int = 0
    new: int = 0
    merged: int = 0
    skipped: int = 0
    errors: int = 0


@dataclass
class PipelineStats:
    caniuse: SourceStats = field(default_factory=SourceStats)
    web_features: SourceStats = field(default_factory=SourceStats)
    mdn_bcd: SourceStats = field(default_factory=SourceStats)
    features: int = 0
    index_size: int = 0


@dataclass(frozen=True)
class SourceFiles:
    caniuse: Mapping[str, Any]
    web_features: Mapping[str, Any]
    mdn_bcd: Mapping[str, Any]
    usage: Mapping[str, Any]


class FeatureRegistry:
    """Merged features keyed by id, with duplicate lookup over id and name."""

    def __init__(self) -> None:
        self._features: dict[str, NormalizedFeature] = {}
        self._duplicates = DuplicateIndex()
        # web-features id -> id of the record it ended up in
        self.web_feature_targets: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._features)

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self._features

    def __iter__(self) -> Iterator[NormalizedFeature]:
        return iter(self._features.values())

    def get(self, feature_id: str) -> NormalizedFeature | None:
        return self._features.get(feature_id)

    def add(self, feature: NormalizedFeature) -> None:
        self._features[feature.id] = feature
        self._duplicates.add(feature.id, feature.name)

    def find_duplicate(self, feature_id: str, name: str) -> NormalizedFeature | None:
        match_id = self._duplicates.find(feature_id, name)
        return self._features[match_id] if match_id is not None else None

    def as_dict(self) -> dict[str, NormalizedFeature]:
        return dict(self._features)


def _caniuse_url(feature_id: str) -> str:
    return CANIUSE_SEARCH_URL.format(query=quote(feature_id, safe=""))


def _as_id_list(value: object) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return []


def _parse_links(raw_links: object) -> list[tuple[str, str]]:
    links: list[tuple[str, str]] = []
    if not isinstance(raw_links, list):
        return links
    for entry in raw_links:
        if not isinstance(entry, Mapping):
            continue
        url = entry.get("url")
        title = entry.get("title")
        if isinstance(url, str) and url.strip():
            links.append((str(title or url).strip(), url.strip()))
    return links


def _percentage(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _baseline(value: object) -> Baseline:
    if value in ("high", "low"):
        return value  # type: ignore[return-value]
    return False


def _add_supplementary(
    feature: NormalizedFeature,
    source: str,
    source_id: str,
    matched: MatchKind,
) -> None:
    feature.source_data.supplementary.append(
        SupplementaryMatch(source=source, id=source_id, matched=matched)  # type: ignore[arg-type]
    )


# caniuse (primary)


def normalize_caniuse_feature(
    feature_id: str,
    raw: Mapping[str, Any],
    usage_table: Mapping[str, Any],
) -> NormalizedFeature:
    stats = raw.get("stats")
    if not isinstance(stats, Mapping):
        raise ValueError("missing stats table")

    support: BrowserSupport = {
        browser: extract_caniuse_support(stats, browser) for browser in TARGET_BROWSERS
    }
    usage = estimate_usage(
        support,
        usage_table,
        precomputed=(_percentage(raw.get("usage_perc_y")), _percentage(raw.get("usage_perc_a"))),
    )
    notes_by_num = raw.get("notes_by_num")
    general_notes = raw.get("notes")

    return NormalizedFeature(
        id=feature_id,
        source="caniuse",
        name=normalize_code_tags(str(raw.get("title") or feature_id)),
        description=normalize_code_tags(str(raw.get("description") or "")),
        category=map_caniuse_category(raw.get("categories")),
        support=support,
        usage=usage,
        baseline=False,
        source_data=SourceData(primary=SourceRef(source="caniuse", id=feature_id)),
        links=_parse_links(raw.get("links")),
        notes=FeatureNotes(
            general=general_notes if isinstance(general_notes, str) and general_notes else None,
            by_num={str(k): str(v) for k, v in notes_by_num.items()}
            if isinstance(notes_by_num, Mapping)
            else {},
        ),
        caniuse_url=_caniuse_url(feature_id),
    )


def process_caniuse(registry: FeatureRegistry, sources: SourceFiles, stats: PipelineStats) -> None:
    data = sources.caniuse.get("data")
    entries = list(data.items()) if isinstance(data, Mapping) else []
    stats.caniuse.total = len(entries)

    for feature_id, raw in entries:
        try:
            if not isinstance(raw, Mapping):
                raise ValueError("feature entry is not an object")
            registry.add(normalize_caniuse_feature(feature_id, raw, sources.usage))
            stats.caniuse.processed += 1
        except Exception as exc:
            LOGGER.warning("Error processing caniuse feature %s: %s", feature_id, exc)
            stats.caniuse.errors += 1


# web-features (secondary)


def supplement_with_web_features(
    feature: NormalizedFeature,
    wf_id: str,
    raw: Mapping[str, Any],
    matched: MatchKind,
) -> None:
    status = raw.get("status")
    baseline = _baseline(status.get("baseline")) if isinstance(status, Mapping) else False
    if baseline:
        feature.baseline = baseline
    _add_supplementary(feature, "webfeatures", wf_id, matched)


def _web_features_description(raw: Mapping[str, Any]) -> str:
    description_html = raw.get("description_html")
    if isinstance(description_html, str) and description_html.strip():
        converted = fragment_to_markdown(description_html)
        if converted:
            return converted
    return normalize_code_tags(str(raw.get("description") or description_html or ""))


def create_feature_from_web_features(
    wf_id: str,
    raw: Mapping[str, Any],
    usage_table: Mapping[str, Any],
) -> NormalizedFeature:
    status = raw.get("status")
    if not isinstance(status, Mapping):
        raise ValueError("missing status")
    wf_support = status.get("support")
    native: dict[str, BrowserSupportDetail | None] = {
        browser: extract_web_features_support(
            wf_support if isinstance(wf_support, Mapping) else None, browser
        )
        for browser in TARGET_BROWSERS
    }
    support = resolve_support(native)
    feature_id = f"{WEB_FEATURES_ID_PREFIX}{wf_id}"

    return NormalizedFeature(
        id=feature_id,
        source="webfeatures",
        name=normalize_code_tags(str(raw.get("name") or wf_id)),
        description=_web_features_description(raw),
        category="Other",
        support=support,
        usage=estimate_usage(support, usage_table),
        baseline=_baseline(status.get("baseline")),
        source_data=SourceData(primary=SourceRef(source="webfeatures", id=wf_id)),
        caniuse_url=_caniuse_url(wf_id),
    )


def _merge_web_feature(
    registry: FeatureRegistry,
    wf_id: str,
    raw: Mapping[str, Any],
    sources: SourceFiles,
    stats: PipelineStats,
) -> None:
    for caniuse_id in _as_id_list(raw.get("caniuse")):
        existing = registry.get(caniuse_id)
        if existing is not None:
            supplement_with_web_features(existing, wf_id, raw, "exact")
            registry.web_feature_targets[wf_id] = existing.id
            stats.web_features.merged += 1
            return

    name = str(raw.get("name") or wf_id)
    duplicate = registry.find_duplicate(wf_id, name)
    if duplicate is not None:
        supplement_with_web_features(duplicate, wf_id, raw, "inferred")
        registry.web_feature_targets[wf_id] = duplicate.id
        stats.web_features.merged += 1
        return

    feature = create_feature_from_web_features(wf_id, raw, sources.usage)
    registry.add(feature)
    registry.web_feature_targets[wf_id] = feature.id
    stats.web_features.new += 1


def process_web_features(
    registry: FeatureRegistry,
    sources: SourceFiles,
    stats: PipelineStats,
) -> None:
    data = sources.web_features.get("features")
    entries = list(data.items()) if isinstance(data, Mapping) else []
    stats.web_features.total = len(entries)

    for wf_id, raw in entries:
        try:
            if not isinstance(raw, Mapping):
                raise ValueError("feature entry is not an object")
            kind = raw.get("kind", "feature")
            if kind != "feature":
                LOGGER.debug("Skipping web-features %s entry %s", kind, wf_id)
                stats.web_features.skipped += 1
                continue
            _merge_web_feature(registry, wf_id, raw, sources, stats)
            stats.web_features.processed += 1
        except Exception as exc:
            LOGGER.warning("Error processing web-features feature %s: %s", wf_id, exc)
            stats.web_features.errors += 1


# MDN browser-compat-data (tertiary)


def supplement_with_mdn(
    feature: NormalizedFeature,
    mdn_path: str,
    compat: Mapping[str, Any],
    matched: MatchKind,
) -> None:
    mdn_url = compat.get("mdn_url")
    if feature.mdn is None and isinstance(mdn_url, str) and mdn_url:
        feature.mdn = mdn_url
    if feature.category == "Other":
        feature.category = infer_category_from_mdn_path(mdn_path)
    _add_supplementary(feature, "mdnbcd", mdn_path, matched)


def _mdn_name(mdn_path: str, compat: Mapping[str, Any]) -> str:
    description = compat.get("description")
    if isinstance(description, str) and description.strip():
        return description
    return infer_name_from_mdn_path(mdn_path)


def create_feature_from_mdn(
    mdn_path: str,
    compat: Mapping[str, Any],
    usage_table: Mapping[str, Any],
) -> NormalizedFeature:
    raw_support = compat.get("support")
    if not isinstance(raw_support, Mapping):
        raise ValueError("missing support block")

    native: dict[str, BrowserSupportDetail | None] = {}
    for browser in TARGET_BROWSERS:
        statements = raw_support.get(browser)
        native[browser] = extract_mdn_support(statements, browser) if statements else None
    support = resolve_support(native)

    category = infer_category_from_mdn_path(mdn_path)
    description = compat.get("description")
    mdn_url = compat.get("mdn_url")

    return NormalizedFeature(
        id=f"{MDN_ID_PREFIX}{mdn_path}",
        source="mdnbcd",
        name=format_feature_name(_mdn_name(mdn_path, compat), category),
        description=normalize_code_tags(description if isinstance(description, str) else ""),
        category=category,
        support=support,
        usage=estimate_usage(support, usage_table),
        baseline=False,
        source_data=SourceData(primary=SourceRef(source="mdnbcd", id=mdn_path)),
        mdn=mdn_url if isinstance(mdn_url, str) and mdn_url else None,
        caniuse_url=_caniuse_url(mdn_path),
    )


def _compat_feature_links(web_features: Mapping[str, Any]) -> dict[str, str]:
    """Map MDN compat paths to the web-features id that lists them."""
    links: dict[str, str] = {}
    data = web_features.get("features")
    if not isinstance(data, Mapping):
        return links
    for wf_id, raw in data.items():
        if not isinstance(raw, Mapping):
            continue
        for mdn_path in _as_id_list(raw.get("compat_features")):
            links[mdn_path] = wf_id
    return links


def _merge_mdn_feature(
    registry: FeatureRegistry,
    mdn_path: str,
    compat: Mapping[str, Any],
    links: Mapping[str, str],
    sources: SourceFiles,
    stats: PipelineStats,
) -> None:
    linked_wf_id = links.get(mdn_path)
    if linked_wf_id is not None:
        target_id = registry.web_feature_targets.get(linked_wf_id)
        target = registry.get(target_id) if target_id else None
        if target is not None:
            supplement_with_mdn(target, mdn_path, compat, "via-secondary-link")
            stats.mdn_bcd.merged += 1
            return

    duplicate = registry.find_duplicate(mdn_path, _mdn_name(mdn_path, compat))
    if duplicate is not None:
        supplement_with_mdn(duplicate, mdn_path, compat, "inferred")
        stats.mdn_bcd.merged += 1
        return

    registry.add(create_feature_from_mdn(mdn_path, compat, sources.usage))
    stats.mdn_bcd.new += 1


def process_mdn_bcd(registry: FeatureRegistry, sources: SourceFiles, stats: PipelineStats) -> None:
    filtered = {
        category: sources.mdn_bcd[category]
        for category in MDN_ALLOWED_CATEGORIES
        if isinstance(sources.mdn_bcd.get(category), Mapping)
    }
    mdn_features = list(iter_mdn_features(filtered))
    stats.mdn_bcd.total = len(mdn_features)
    links = _compat_feature_links(sources.web_features)

    for mdn_path, compat in mdn_features:
        try:
            _merge_mdn_feature(registry, mdn_path, compat, links, sources, stats)
            stats.mdn_bcd.processed += 1
        except Exception as exc:
            LOGGER.warning("Error processing MDN feature %s: %s", mdn_path, exc)
            stats.mdn_bcd.errors += 1


def merge_sources(
    sources: SourceFiles,
    stats: PipelineStats | None = None,
) -> tuple[dict[str, NormalizedFeature], PipelineStats]:
    """Run the three merge stages in priority order."""
    stats = stats or PipelineStats()
    registry = FeatureRegistry()
    process_caniuse(registry, sources, stats)
    process_web_features(registry, sources, stats)
    process_mdn_bcd(registry, sources, stats)
    return registry.as_dict(), stats
