"""Loading and downloading the upstream source documents."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .constants import SOURCE_URLS
from .exceptions import ContentError, SourceError
from .http import fetch_text
from .merge import SourceFiles

LOGGER = logging.getLogger(__name__)

CANIUSE_FILE = "caniuse.json"
USAGE_FILE = "alt-ww.json"
WEB_FEATURES_FILE = "webfeatures.json"
MDN_FILE = "mdnbcd.json"


def read_json_file(path: Path) -> Any:
    """Read a JSON document, raising SourceError when missing or malformed."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SourceError(str(path), cause=exc.__class__.__name__) from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SourceError(str(path), cause="invalid JSON") from exc


def _read_object(path: Path) -> dict[str, Any]:
    payload = read_json_file(path)
    if not isinstance(payload, dict):
        raise SourceError(str(path), cause="expected a JSON object")
    return payload


def load_sources(sources_dir: Path) -> SourceFiles:
    """Load the four source documents from sources_dir."""
    return SourceFiles(
        caniuse=_read_object(sources_dir / CANIUSE_FILE),
        web_features=_read_object(sources_dir / WEB_FEATURES_FILE),
        mdn_bcd=_read_object(sources_dir / MDN_FILE),
        usage=_read_object(sources_dir / USAGE_FILE),
    )


def fetch_sources(sources_dir: Path) -> list[Path]:
    """Download every source document into sources_dir.

    Each body is checked to be JSON before anything is written, so a failed
    download leaves the previous copy in place.
    """
    sources_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for filename, url in SOURCE_URLS.items():
        LOGGER.info("Downloading %s", url)
        body = fetch_text(url)
        try:
            json.loads(body)
        except json.JSONDecodeError as exc:
            raise ContentError(url) from exc
        target = sources_dir / filename
        target.write_text(body, encoding="utf-8")
        written.append(target)
    return written
