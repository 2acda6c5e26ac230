"""Published artifacts: the compact search index and per-feature detail files.

Layout under the output directory::

    index.json              list of FeatureIndex entries in merge order
    features/<id>.json      one lossless NormalizedFeature record per file

Browser keys are written as short keys (chr, ffx, ...) and field names in
camelCase. Fields holding None are omitted.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
import shutil
import tempfile
from typing import Any, cast

from .constants import (
    BROWSER_LONG_NAMES,
    BROWSER_SHORT_NAMES,
    FEATURES_DIRNAME,
    INDEX_DESCRIPTION_LENGTH,
    INDEX_EXCLUDED_BROWSERS,
    INDEX_FILENAME,
    TARGET_BROWSERS,
)
from .exceptions import SourceError
from .model import (
    Baseline,
    BrowserSupportDetail,
    FeatureIndex,
    FeatureNotes,
    FeatureUsage,
    NormalizedFeature,
    QuickStatus,
    SourceData,
    SourceRef,
    SupplementaryMatch,
    SupportStatus,
    UsageBreakdown,
    VersionSupport,
)
from .util.text import truncate

LOGGER = logging.getLogger(__name__)

_QUICK_STATUS: dict[str, QuickStatus] = {
    "y": "y",
    "a": "a",
    "n": "n",
    "p": "p",
    "x": "y",
    "d": "n",
    "u": "n",
}


def quick_status(status: SupportStatus) -> QuickStatus:
    """Project a full support status onto the index's four-letter set."""
    return _QUICK_STATUS.get(status, "n")


def _short(browser: str) -> str:
    return BROWSER_SHORT_NAMES.get(browser, browser)


def _long(browser: str) -> str:
    return BROWSER_LONG_NAMES.get(browser, browser)


def _drop_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


# index


def build_index(features: Iterable[NormalizedFeature]) -> list[FeatureIndex]:
    """Project merged features onto index entries, keeping merge order."""
    index: list[FeatureIndex] = []
    for feature in features:
        support: dict[str, QuickStatus] = {}
        for browser in TARGET_BROWSERS:
            if browser in INDEX_EXCLUDED_BROWSERS:
                continue
            detail = feature.support.get(browser)
            support[_short(browser)] = quick_status(detail.current) if detail else "n"
        index.append(
            FeatureIndex(
                id=feature.id,
                name=feature.name,
                description=truncate(feature.description, INDEX_DESCRIPTION_LENGTH),
                category=feature.category,
                support=support,
                usage=feature.usage.global_.total,
                baseline=feature.baseline,
            )
        )
    return index


def index_entry_to_dict(entry: FeatureIndex) -> dict[str, Any]:
    return {
        "id": entry.id,
        "name": entry.name,
        "description": entry.description,
        "category": entry.category,
        "support": dict(entry.support),
        "usage": entry.usage,
        "baseline": entry.baseline,
    }


def _baseline_value(value: object) -> Baseline:
    if value in ("high", "low"):
        return cast(Baseline, value)
    return False


def index_entry_from_dict(payload: Mapping[str, Any]) -> FeatureIndex:
    raw_support = payload.get("support") or {}
    return FeatureIndex(
        id=str(payload["id"]),
        name=str(payload.get("name", "")),
        description=str(payload.get("description", "")),
        category=str(payload.get("category", "Other")),
        support={str(k): cast(QuickStatus, v) for k, v in raw_support.items()},
        usage=float(payload.get("usage") or 0.0),
        baseline=_baseline_value(payload.get("baseline")),
    )


def parse_index(payload: Any, source: str) -> list[FeatureIndex]:
    """Decode an index document, raising SourceError when it is not one."""
    if not isinstance(payload, list):
        raise SourceError(source, cause="expected a JSON array")
    try:
        return [index_entry_from_dict(entry) for entry in payload]
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise SourceError(source, cause="malformed index entry") from exc


def load_index(path: Path) -> list[FeatureIndex]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SourceError(str(path), cause=exc.__class__.__name__) from exc
    except json.JSONDecodeError as exc:
        raise SourceError(str(path), cause="invalid JSON") from exc
    return parse_index(payload, str(path))


# feature detail


def _version_to_dict(entry: VersionSupport) -> dict[str, Any]:
    return _drop_none(
        {
            "version": entry.version,
            "status": entry.status,
            "prefix": entry.prefix,
            "flags": list(entry.flags) if entry.flags else None,
            "notes": entry.notes,
        }
    )


def _detail_to_dict(detail: BrowserSupportDetail) -> dict[str, Any]:
    return _drop_none(
        {
            "current": detail.current,
            "firstFull": detail.first_full,
            "firstPartial": detail.first_partial,
            "versions": [_version_to_dict(entry) for entry in detail.versions],
        }
    )


def _usage_to_dict(usage: FeatureUsage) -> dict[str, Any]:
    return {
        "global": {
            "full": usage.global_.full,
            "partial": usage.global_.partial,
            "total": usage.global_.total,
        },
        "desktop": {_short(browser): value for browser, value in usage.desktop.items()},
        "mobile": {_short(browser): value for browser, value in usage.mobile.items()},
        "type": usage.type,
    }


def feature_to_dict(feature: NormalizedFeature) -> dict[str, Any]:
    notes = None
    if feature.notes is not None:
        notes = _drop_none({"general": feature.notes.general, "byNum": dict(feature.notes.by_num)})

    return _drop_none(
        {
            "id": feature.id,
            "source": feature.source,
            "name": feature.name,
            "description": feature.description,
            "category": feature.category,
            "support": {
                _short(browser): _detail_to_dict(detail)
                for browser, detail in feature.support.items()
            },
            "usage": _usage_to_dict(feature.usage),
            "baseline": feature.baseline,
            "sourceData": {
                "primary": {
                    "source": feature.source_data.primary.source,
                    "id": feature.source_data.primary.id,
                },
                "supplementary": [
                    {"source": match.source, "id": match.id, "matched": match.matched}
                    for match in feature.source_data.supplementary
                ],
            },
            "mdn": feature.mdn,
            "links": [{"title": title, "url": url} for title, url in feature.links],
            "notes": notes,
            "caniuseUrl": feature.caniuse_url,
        }
    )


def _version_from_dict(payload: Mapping[str, Any]) -> VersionSupport:
    return VersionSupport(
        version=str(payload["version"]),
        status=payload["status"],
        prefix=payload.get("prefix"),
        flags=tuple(payload.get("flags") or ()),
        notes=payload.get("notes"),
    )


def _detail_from_dict(payload: Mapping[str, Any]) -> BrowserSupportDetail:
    return BrowserSupportDetail(
        current=payload["current"],
        first_full=payload.get("firstFull"),
        first_partial=payload.get("firstPartial"),
        versions=tuple(_version_from_dict(entry) for entry in payload.get("versions") or ()),
    )


def _usage_from_dict(payload: Mapping[str, Any]) -> FeatureUsage:
    global_usage = payload.get("global") or {}
    return FeatureUsage(
        global_=UsageBreakdown(
            full=float(global_usage.get("full", 0.0)),
            partial=float(global_usage.get("partial", 0.0)),
            total=float(global_usage.get("total", 0.0)),
        ),
        desktop={_long(k): float(v) for k, v in (payload.get("desktop") or {}).items()},
        mobile={_long(k): float(v) for k, v in (payload.get("mobile") or {}).items()},
        type=payload.get("type", "estimated"),
    )


def feature_from_dict(payload: Mapping[str, Any]) -> NormalizedFeature:
    source_data = payload.get("sourceData") or {}
    primary = source_data.get("primary") or {}
    raw_notes = payload.get("notes")
    notes = None
    if isinstance(raw_notes, Mapping):
        notes = FeatureNotes(
            general=raw_notes.get("general"),
            by_num=dict(raw_notes.get("byNum") or {}),
        )

    return NormalizedFeature(
        id=str(payload["id"]),
        source=payload["source"],
        name=str(payload.get("name", "")),
        description=str(payload.get("description", "")),
        category=payload.get("category", "Other"),
        support={
            _long(browser): _detail_from_dict(detail)
            for browser, detail in (payload.get("support") or {}).items()
        },
        usage=_usage_from_dict(payload.get("usage") or {}),
        baseline=_baseline_value(payload.get("baseline")),
        source_data=SourceData(
            primary=SourceRef(
                source=primary.get("source", payload["source"]),
                id=str(primary.get("id", payload["id"])),
            ),
            supplementary=[
                SupplementaryMatch(source=match["source"], id=match["id"], matched=match["matched"])
                for match in source_data.get("supplementary") or ()
            ],
        ),
        mdn=payload.get("mdn"),
        links=[(str(link["title"]), str(link["url"])) for link in payload.get("links") or ()],
        notes=notes,
        caniuse_url=str(payload.get("caniuseUrl", "")),
    )


def feature_filename(feature_id: str) -> str:
    return f"{feature_id}.json"


# writing


def _dump(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"


@dataclass(frozen=True)
class WriteResult:
    feature_files: int
    index_size: int


def write_artifacts(
    features: Iterable[NormalizedFeature],
    index: list[FeatureIndex],
    output_dir: Path,
) -> WriteResult:
    """Replace the published artifacts under output_dir as one unit.

    Everything is written to a staging directory next to output_dir first;
    the previous artifacts are only removed once the new set is complete.
    """
    output_dir = output_dir.resolve()
    output_dir.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{output_dir.name}-", dir=output_dir.parent))
    feature_count = 0
    try:
        features_dir = staging / FEATURES_DIRNAME
        features_dir.mkdir()
        for feature in features:
            (features_dir / feature_filename(feature.id)).write_text(
                _dump(feature_to_dict(feature)), encoding="utf-8"
            )
            feature_count += 1
        (staging / INDEX_FILENAME).write_text(
            _dump([index_entry_to_dict(entry) for entry in index]), encoding="utf-8"
        )
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise

    retired: Path | None = None
    if output_dir.exists():
        retired = output_dir.with_name(f".{output_dir.name}-old")
        if retired.exists():
            shutil.rmtree(retired)
        output_dir.rename(retired)
    try:
        staging.rename(output_dir)
    except OSError:
        if retired is not None:
            retired.rename(output_dir)
        shutil.rmtree(staging, ignore_errors=True)
        raise
    if retired is not None:
        shutil.rmtree(retired, ignore_errors=True)

    LOGGER.info("Wrote %d feature files and %d index entries", feature_count, len(index))
    return WriteResult(feature_files=feature_count, index_size=len(index))


# reading


@dataclass
class FeatureLoader:
    """Read detail files on demand, each at most once per run."""

    features_dir: Path
    _cache: dict[str, NormalizedFeature | None] = field(default_factory=dict)

    def load(self, feature_id: str) -> NormalizedFeature | None:
        if feature_id in self._cache:
            return self._cache[feature_id]

        path = self.features_dir / feature_filename(feature_id)
        feature: NormalizedFeature | None = None
        if path.exists():
            try:
                feature = feature_from_dict(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
                raise SourceError(str(path), cause=exc.__class__.__name__) from exc
        self._cache[feature_id] = feature
        return feature
