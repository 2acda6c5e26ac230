"""HTML helpers built around justhtml."""

from __future__ import annotations

import logging
import os
from typing import Any

from justhtml import JustHTML

from .text import normalize_whitespace

Node = Any
LOGGER = logging.getLogger(__name__)


def parse_document(html: str) -> JustHTML:
    """Parse HTML without sanitization to preserve all structural tags."""
    return JustHTML(html, sanitize=False, safe=False)


def first(node: Node, selector: str) -> Node | None:
    """Return the first selector match or None."""
    try:
        if hasattr(node, "query"):
            matches = list(node.query(selector))
            return matches[0] if matches else None
    except Exception:
        return None
    return None


def text(node: Node | None) -> str:
    """Extract normalized text from a node."""
    if node is None:
        return ""
    try:
        if hasattr(node, "to_text"):
            return normalize_whitespace(node.to_text())
    except Exception:
        return ""
    return ""


def markdown_text(node: Node | None) -> str:
    """Extract markdown-like text from a node when available."""
    if node is None:
        return ""
    try:
        if hasattr(node, "to_markdown"):
            return normalize_whitespace(node.to_markdown())
    except Exception:
        return text(node)
    return text(node)


def fragment_to_markdown(fragment: str) -> str:
    """Convert an HTML description fragment into inline markdown text."""
    if not fragment or "<" not in fragment:
        return normalize_whitespace(fragment or "")
    body = first(parse_document(f"<body>{fragment}</body>"), "body")
    converted = markdown_text(body)
    if not converted:
        debug_log(f"could not convert fragment: {fragment[:40]}")
    return converted


def debug_enabled() -> bool:
    """Check debug mode env flag."""
    return os.environ.get("CANIUSENOW_DEBUG", "").strip() == "1"


def debug_log(message: str) -> None:
    """Emit debug logs in debug mode only."""
    if debug_enabled():
        LOGGER.debug("%s", message)
