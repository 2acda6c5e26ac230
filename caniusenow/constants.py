"""Constants used across caniusenow."""

from __future__ import annotations

from typing import Final

TARGET_BROWSERS: Final[tuple[str, ...]] = (
    "chrome",
    "firefox",
    "safari",
    "edge",
    "opera",
    "ie",
    "ios_saf",
    "and_chr",
    "samsung",
    "and_ff",
)

BROWSER_CATEGORIES: Final[dict[str, str]] = {
    "chrome": "desktop",
    "firefox": "desktop",
    "safari": "desktop",
    "edge": "desktop",
    "opera": "desktop",
    "ie": "desktop",
    "ios_saf": "mobile",
    "and_chr": "mobile",
    "samsung": "mobile",
    "and_ff": "mobile",
}

# Short keys keep the published JSON small.
BROWSER_SHORT_NAMES: Final[dict[str, str]] = {
    "chrome": "chr",
    "firefox": "ffx",
    "safari": "saf",
    "edge": "edg",
    "opera": "opr",
    "ie": "ie",
    "ios_saf": "ios_saf",
    "and_chr": "an_chr",
    "samsung": "smsg",
    "and_ff": "an_ff",
}

BROWSER_LONG_NAMES: Final[dict[str, str]] = {
    short: long for long, short in BROWSER_SHORT_NAMES.items()
}

BROWSER_DISPLAY_NAMES: Final[dict[str, str]] = {
    "chr": "Chrome",
    "ffx": "Firefox",
    "saf": "Safari",
    "edg": "Edge",
    "opr": "Opera",
    "ie": "IE",
    "ios_saf": "iOS Safari",
    "an_chr": "Android Chrome",
    "smsg": "Samsung",
    "an_ff": "Android Firefox",
}

# Browsers without native data mirror their engine sibling.
INFERENCE_PARENTS: Final[dict[str, str]] = {
    "ios_saf": "safari",
    "and_chr": "chrome",
    "samsung": "chrome",
    "and_ff": "firefox",
    "opera": "chrome",
    "ie": "edge",
}

INDEX_EXCLUDED_BROWSERS: Final[tuple[str, ...]] = ("opera", "ie", "samsung", "and_ff")

MDN_ALLOWED_CATEGORIES: Final[tuple[str, ...]] = (
    "api",
    "css",
    "html",
    "http",
    "javascript",
    "svg",
)

SOURCE_PREFIXES: Final[tuple[str, ...]] = ("css-", "wf-", "mdn-")
WEB_FEATURES_ID_PREFIX: Final[str] = "wf-"
MDN_ID_PREFIX: Final[str] = "mdn-"

PREVIEW_VERSION: Final[str] = "TP"
ALL_VERSIONS: Final[str] = "all"
CURRENT_VERSION: Final[str] = "0"

MAX_RECENT_VERSIONS: Final[int] = 10
INDEX_DESCRIPTION_LENGTH: Final[int] = 120
USAGE_CHANGE_THRESHOLD: Final[float] = 1.0
DUPLICATE_LENGTH_RATIO: Final[float] = 0.7

CANIUSE_SEARCH_URL: Final[str] = "https://caniuse.com/?search={query}"
DEFAULT_APP_URL: Final[str] = "https://caniusenow.pages.dev/"
NOTIFICATION_ID: Final[str] = "css_feature_update_"
NOTIFICATION_API_URL: Final[str] = "https://api.notificationapi.com/{client_id}/sender"
TRACKING_TABLE: Final[str] = "user_feature_tracking"

# Source file name -> download URL.
SOURCE_URLS: Final[dict[str, str]] = {
    "caniuse.json": "https://raw.githubusercontent.com/Fyrd/caniuse/main/fulldata-json/data-2.0.json",
    "alt-ww.json": "https://raw.githubusercontent.com/Fyrd/caniuse/main/region-usage-json/alt-ww.json",
    "webfeatures.json": "https://unpkg.com/web-features/data.json",
    "mdnbcd.json": "https://unpkg.com/@mdn/browser-compat-data/data.json",
}

DEFAULT_SOURCES_DIR: Final[str] = "data/sources"
DEFAULT_OUTPUT_DIR: Final[str] = "public/data"
DEFAULT_REPORT_PATH: Final[str] = "data/change-report.json"
INDEX_FILENAME: Final[str] = "index.json"
FEATURES_DIRNAME: Final[str] = "features"

DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0
