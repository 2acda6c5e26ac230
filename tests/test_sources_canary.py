from __future__ import annotations

import json

import pytest

from caniusenow.constants import SOURCE_URLS
from caniusenow.http import fetch_text, use_shared_client
from caniusenow.usage import usage_table_data


@pytest.mark.canary
def test_upstream_source_shapes_live() -> None:
    """
    Canary test: download the small upstream documents and check the fields the merger reads.

    This is intentionally a live-network test to detect upstream format changes.
    """
    with use_shared_client(timeout=60.0):
        usage = json.loads(fetch_text(SOURCE_URLS["alt-ww.json"]))
        web_features = json.loads(fetch_text(SOURCE_URLS["webfeatures.json"]))

    table = usage_table_data(usage)
    assert "chrome" in table, "Usage table no longer keyed by browser."
    assert any(isinstance(share, (int, float)) for share in table["chrome"].values())

    features = web_features.get("features")
    assert isinstance(features, dict), "web-features no longer exposes a features map."
    sample = next(
        entry for entry in features.values() if entry.get("kind", "feature") == "feature"
    )
    assert "name" in sample
    assert "support" in sample.get("status", {})
