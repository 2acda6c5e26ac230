from __future__ import annotations

import json
from pathlib import Path

import pytest

from caniusenow import artifacts
from caniusenow.artifacts import (
    FeatureLoader,
    build_index,
    feature_from_dict,
    feature_to_dict,
    index_entry_from_dict,
    index_entry_to_dict,
    load_index,
    quick_status,
    write_artifacts,
)
from caniusenow.exceptions import SourceError
from caniusenow.extract import resolve_support
from caniusenow.model import (
    BrowserSupportDetail,
    FeatureNotes,
    FeatureUsage,
    NormalizedFeature,
    SourceData,
    SourceRef,
    SupplementaryMatch,
    UsageBreakdown,
    VersionSupport,
)


def _feature(feature_id: str = "css-grid", description: str = "Grid layout") -> NormalizedFeature:
    chrome = BrowserSupportDetail(
        current="y",
        first_full="57",
        first_partial="29",
        versions=(
            VersionSupport(version="29", status="a", flags=("prefix", "footnote")),
            VersionSupport(version="57", status="y", notes="Shipped"),
        ),
    )
    return NormalizedFeature(
        id=feature_id,
        source="caniuse",
        name="CSS Grid Layout",
        description=description,
        category="CSS",
        support=resolve_support({"chrome": chrome, "safari": BrowserSupportDetail(current="x")}),
        usage=FeatureUsage(
            global_=UsageBreakdown(full=90.5, partial=1.25, total=91.75),
            desktop={"chrome": 60.0},
            mobile={"and_chr": 30.5},
            type="actual",
        ),
        baseline="high",
        source_data=SourceData(
            primary=SourceRef(source="caniuse", id=feature_id),
            supplementary=[SupplementaryMatch(source="webfeatures", id="grid", matched="exact")],
        ),
        mdn="https://developer.mozilla.org/docs/Web/CSS/grid",
        links=[("Editor's draft", "https://drafts.csswg.org/css-grid/")],
        notes=FeatureNotes(general=None, by_num={"1": "Old syntax"}),
        caniuse_url="https://caniuse.com/?search=css-grid",
    )


def test_quick_status_folding() -> None:
    assert quick_status("x") == "y"
    assert quick_status("d") == "n"
    assert quick_status("u") == "n"
    assert quick_status("p") == "p"
    assert quick_status("a") == "a"


def test_build_index_projects_and_excludes_browsers() -> None:
    feature = _feature(description="x" * 200)

    [entry] = build_index([feature])

    assert set(entry.support) == {"chr", "ffx", "saf", "edg", "ios_saf", "an_chr"}
    assert entry.support["chr"] == "y"
    assert entry.support["saf"] == "y"
    assert entry.support["ffx"] == "n"
    assert len(entry.description) == 120
    assert entry.usage == 91.75
    assert entry.baseline == "high"
    assert index_entry_from_dict(index_entry_to_dict(entry)) == entry


def test_feature_detail_codec_uses_short_camel_case_keys() -> None:
    feature = _feature()

    payload = feature_to_dict(feature)

    assert "chr" in payload["support"]
    assert "chrome" not in payload["support"]
    assert payload["support"]["chr"]["firstFull"] == "57"
    assert "firstPartial" not in payload["support"]["ffx"]
    assert payload["usage"]["mobile"] == {"an_chr": 30.5}
    assert payload["caniuseUrl"] == "https://caniuse.com/?search=css-grid"
    assert "general" not in payload["notes"]
    assert feature_from_dict(json.loads(json.dumps(payload))) == feature


def test_write_artifacts_layout(tmp_path: Path) -> None:
    features = [_feature("css-grid"), _feature("dialog")]
    out_dir = tmp_path / "public" / "data"

    result = write_artifacts(features, build_index(features), out_dir)

    assert result.feature_files == 2
    assert result.index_size == 2
    assert (out_dir / "features" / "css-grid.json").exists()
    assert [entry.id for entry in load_index(out_dir / "index.json")] == ["css-grid", "dialog"]
    assert sorted(p.name for p in tmp_path.joinpath("public").iterdir()) == ["data"]


def test_write_artifacts_keeps_previous_set_on_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    out_dir = tmp_path / "data"
    write_artifacts([_feature("old")], build_index([_feature("old")]), out_dir)

    def _boom(_feature: NormalizedFeature) -> dict[str, object]:
        raise RuntimeError("disk full")

    monkeypatch.setattr(artifacts, "feature_to_dict", _boom)

    with pytest.raises(RuntimeError):
        write_artifacts([_feature("new")], build_index([_feature("new")]), out_dir)

    assert [entry.id for entry in load_index(out_dir / "index.json")] == ["old"]
    assert (out_dir / "features" / "old.json").exists()
    assert sorted(p.name for p in tmp_path.iterdir()) == ["data"]


def test_write_artifacts_restores_previous_set_when_swap_fails(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    out_dir = tmp_path / "data"
    write_artifacts([_feature("old")], build_index([_feature("old")]), out_dir)
    real_rename = Path.rename

    def _rename(self: Path, target: Path) -> Path:
        if self.name.startswith(".data-") and not self.name.endswith("-old"):
            raise OSError("rename failed")
        return real_rename(self, target)

    monkeypatch.setattr(Path, "rename", _rename)

    with pytest.raises(OSError, match="rename failed"):
        write_artifacts([_feature("new")], build_index([_feature("new")]), out_dir)

    assert [entry.id for entry in load_index(out_dir / "index.json")] == ["old"]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["data"]


def test_load_index_errors(tmp_path: Path) -> None:
    with pytest.raises(SourceError):
        load_index(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(SourceError):
        load_index(bad)

    wrong_shape = tmp_path / "object.json"
    wrong_shape.write_text('{"id": "x"}', encoding="utf-8")
    with pytest.raises(SourceError):
        load_index(wrong_shape)


def test_feature_loader_reads_each_file_once(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    write_artifacts([_feature()], build_index([_feature()]), tmp_path / "out")
    loader = FeatureLoader(tmp_path / "out" / "features")
    calls: list[str] = []
    original = artifacts.feature_from_dict

    def _counting(payload: dict[str, object]) -> NormalizedFeature:
        calls.append(str(payload["id"]))
        return original(payload)

    monkeypatch.setattr(artifacts, "feature_from_dict", _counting)

    first = loader.load("css-grid")
    second = loader.load("css-grid")

    assert first is second
    assert calls == ["css-grid"]
    assert loader.load("missing") is None
