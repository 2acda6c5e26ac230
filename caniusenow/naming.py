"""Category mapping and display names for features from each source."""

from __future__ import annotations

import re

from .model import Category
from .util.text import normalize_code_tags

_CSS_FUNCTION_TYPES = frozenset(
    {
        "rgb",
        "hsl",
        "hwb",
        "lab",
        "lch",
        "oklch",
        "oklab",
        "calc",
        "var",
        "min",
        "max",
        "clamp",
        "url",
        "attr",
        "counter",
        "counters",
        "linear-gradient",
        "radial-gradient",
    }
)

_HTML_ATTRIBUTE_WORDS = frozenset(
    {
        "accesskey",
        "autocapitalize",
        "autofocus",
        "contenteditable",
        "dir",
        "draggable",
        "enterkeyhint",
        "hidden",
        "inert",
        "inputmode",
        "lang",
        "popover",
        "spellcheck",
        "tabindex",
        "title",
        "translate",
    }
)

_CSS_KEYWORDS = frozenset(
    {
        "all",
        "appearance",
        "azimuth",
        "backface",
        "baseline",
        "bottom",
        "caption",
        "clear",
        "clip",
        "color",
        "content",
        "cursor",
        "direction",
        "display",
        "elevation",
        "filter",
        "flex",
        "float",
        "font",
        "gap",
        "grid",
        "height",
        "hyphens",
        "icon",
        "isolation",
        "left",
        "margin",
        "mask",
        "offset",
        "opacity",
        "order",
        "orphans",
        "outline",
        "overflow",
        "padding",
        "perspective",
        "position",
        "quotes",
        "resize",
        "right",
        "rotate",
        "scale",
        "top",
        "transform",
        "transition",
        "translate",
        "visibility",
        "widows",
        "width",
        "zoom",
    }
)

_ATTRIBUTE_SYNTAX_RE = re.compile(r'^\w+="[^"]*"$')
_CSS_PROPERTY_RE = re.compile(r"^[a-z]+(-[a-z]+)+$")
_FULL_METHOD_RE = re.compile(r"^([A-Z][a-zA-Z]*(?:[\s.][a-zA-Z]+)*\(\))$|^([a-z][a-zA-Z]*\(\))$")
_PREFIX_SPACE_METHOD_RE = re.compile(r"^([A-Z][a-zA-Z]*)\s+([a-zA-Z]+\(\))$")
_PREFIX_DOT_METHOD_RE = re.compile(r"^([A-Z][a-zA-Z]*(?:\.[A-Z]?[a-zA-Z]*)*\.[a-zA-Z]+\(\))$")
_ANY_METHOD_RE = re.compile(r"(\b[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*\(\))")


def map_caniuse_category(categories: list[str] | None) -> Category:
    """Map caniuse's first category label onto the closed category set."""
    if not categories:
        return "Other"
    first_category = str(categories[0]).lower()
    if "css" in first_category:
        return "CSS"
    if "html" in first_category:
        return "HTML5"
    if "js" in first_category or "javascript" in first_category or "api" in first_category:
        return "JS API"
    if "svg" in first_category:
        return "SVG"
    return "Other"


def infer_category_from_mdn_path(path: str) -> Category:
    top_level = path.split(".", maxsplit=1)[0].lower()
    if top_level == "css":
        return "CSS"
    if top_level == "html":
        return "HTML5"
    if top_level in {"api", "javascript"}:
        return "JS API"
    if top_level == "svg":
        return "SVG"
    return "Other"


def _format_snake_case(name: str) -> str:
    """Title-case snake_case words; kebab-case CSS names stay untouched."""
    if "-" in name and "_" not in name:
        return name
    spaced = name.replace("_", " ")
    return spaced[:1].upper() + spaced[1:]


def _infer_api_name(parts: list[str]) -> str:
    if len(parts) == 2:
        return parts[1]
    if len(parts) == 3:
        interface_name, member_name = parts[1], parts[2]
        if interface_name == member_name:
            return f"{interface_name}() constructor"
        if member_name.endswith("_event"):
            return f"{interface_name}: {member_name.removesuffix('_event')} event"
        if member_name.endswith("_static"):
            return f"{interface_name}.{member_name.removesuffix('_static')}() static method"
        return f"{interface_name}.{member_name}"
    if len(parts) >= 4:
        return f"{parts[1]}.{parts[2]}: {_format_snake_case(parts[-1])}"
    return parts[-1]


def _infer_css_name(parts: list[str]) -> str:
    sub_category = parts[1] if len(parts) > 1 else ""

    if sub_category == "properties":
        if len(parts) == 3:
            return parts[2]
        if len(parts) >= 4:
            return f"{parts[2]}: {_format_snake_case(parts[-1])}"

    if sub_category == "selectors" and len(parts) >= 3:
        return parts[2]

    if sub_category == "at-rules" and len(parts) >= 3:
        if len(parts) == 3:
            return f"@{parts[2]}"
        return f"@{parts[2]}: {_format_snake_case(parts[-1])}"

    if sub_category == "types" and len(parts) >= 3:
        type_name = parts[-1]
        if type_name in _CSS_FUNCTION_TYPES:
            return f"{type_name}()"
        return _format_snake_case(type_name)

    return _format_snake_case(parts[-1])


def _infer_html_name(parts: list[str]) -> str:
    sub_category = parts[1] if len(parts) > 1 else ""
    if sub_category == "elements" and len(parts) >= 3:
        return f"<{parts[2]}>"
    if sub_category == "global_attributes" and len(parts) >= 3:
        return parts[2]
    return _format_snake_case(parts[-1])


def _infer_javascript_name(parts: list[str]) -> str:
    sub_category = parts[1] if len(parts) > 1 else ""
    if sub_category == "builtins" and len(parts) >= 4:
        return f"{parts[2]}.{parts[3]}()"
    if sub_category == "statements" and len(parts) >= 3:
        return f"{parts[2]} statement"
    if sub_category == "operators" and len(parts) >= 3:
        return f"{_format_snake_case(parts[2])} operator"
    return _format_snake_case(parts[-1])


def _infer_svg_name(parts: list[str]) -> str:
    sub_category = parts[1] if len(parts) > 1 else ""
    if sub_category == "elements" and len(parts) >= 3:
        return f"<{parts[2]}> (SVG)"
    if sub_category == "attributes" and len(parts) >= 3:
        return parts[2]
    return _format_snake_case(parts[-1])


def infer_name_from_mdn_path(path: str) -> str:
    """Derive a readable name from an MDN compat path.

    api.AbortController.AbortController -> "AbortController() constructor"
    api.Window.load_event               -> "Window: load event"
    css.properties.display.grid         -> "display: grid"
    html.elements.dialog                -> "<dialog>"
    """
    parts = path.split(".")
    inferers = {
        "api": _infer_api_name,
        "css": _infer_css_name,
        "html": _infer_html_name,
        "javascript": _infer_javascript_name,
        "svg": _infer_svg_name,
    }
    inferer = inferers.get(parts[0])
    if inferer is None:
        return _format_snake_case(parts[-1])
    return inferer(parts)


def _wrap(value: str) -> str:
    return f"`{value}`"


def _format_method_expression(expr: str) -> str:
    if "()" not in expr:
        return expr
    if (
        _FULL_METHOD_RE.match(expr)
        or _PREFIX_SPACE_METHOD_RE.match(expr)
        or _PREFIX_DOT_METHOD_RE.match(expr)
    ):
        return _wrap(expr)
    return _ANY_METHOD_RE.sub(r"`\1`", expr)


def _is_css_property_name(name: str, category: str | None) -> bool:
    if name != name.lower() or " " in name or "-" not in name:
        return False
    if category == "CSS":
        return True
    return _CSS_PROPERTY_RE.match(name) is not None


def _is_single_word_property(name: str, category: str | None) -> bool:
    if " " in name or "-" in name or name != name.lower():
        return False
    if category == "CSS":
        return True
    return name in _HTML_ATTRIBUTE_WORDS or name in _CSS_KEYWORDS


def format_feature_name(name: str, category: str | None = None) -> str:
    """Wrap code-like feature names (elements, at-rules, methods...) in backticks."""
    if not name:
        return name

    normalized = normalize_code_tags(name)
    if normalized != name or "`" in name:
        return normalized

    if name.startswith("<") and ">" in name:
        return _wrap(name)
    if name.startswith("@"):
        return _wrap(name)
    if _ATTRIBUTE_SYNTAX_RE.match(name):
        return _wrap(name)
    if "()" in name:
        return " and ".join(
            _format_method_expression(part.strip()) for part in name.split(" and ")
        )
    if _is_css_property_name(name, category) or _is_single_word_property(name, category):
        return _wrap(name)
    return name
