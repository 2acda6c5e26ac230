"""Text utility helpers."""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")
_CODE_TAG_RE = re.compile(r"<code>([^<]+)</code>")


def normalize_whitespace(value: str) -> str:
    """Collapse repeated whitespace and trim ends."""
    return _WHITESPACE_RE.sub(" ", value).strip()


def normalize_code_tags(value: str) -> str:
    """Rewrite <code>x</code> spans as `x` so every source renders alike."""
    if not value:
        return value
    return _CODE_TAG_RE.sub(r"`\1`", value)


def truncate(value: str, width: int) -> str:
    """Cut a string to at most width characters."""
    if width <= 0:
        return ""
    return value[:width]


def ellipsize(value: str, width: int) -> str:
    """Shorten long strings while preserving suffix visibility."""
    if width <= 0:
        return ""
    if len(value) <= width:
        return value
    if width <= 1:
        return "…"
    return f"{value[: width - 1]}…"


def format_percent(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value:.2f}%"
