"""Tracking triggers: JSON codec, evaluation against a change, descriptions.

Triggers are stored as JSON objects tagged by ``type``::

    {"type": "browser_support", "browser": "chrome", "targetStatus": "full"}
    {"type": "browser_version", "browser": "saf", "version": "17", "targetStatus": "y"}
    {"type": "usage_threshold", "usageType": "combined", "threshold": 80}
    {"type": "baseline_status", "targetStatus": "low"}

Browsers may be given as full or short keys; they are normalized to the
short keys used by the index and change reports. ``targetStatus`` accepts
``full``/``partial`` as well as ``y``/``a``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
from typing import Any, Literal, assert_never, cast

from .constants import BROWSER_DISPLAY_NAMES, BROWSER_LONG_NAMES, BROWSER_SHORT_NAMES
from .model import (
    BaselineStatusTrigger,
    BrowserSupportDetail,
    BrowserSupportTrigger,
    BrowserVersionTrigger,
    FeatureChange,
    NormalizedFeature,
    Trigger,
    UsageThresholdTrigger,
)
from .version import compare_versions

LOGGER = logging.getLogger(__name__)

_SUPPORT_TARGETS: dict[str, Literal["y", "a"]] = {
    "y": "y",
    "full": "y",
    "a": "a",
    "partial": "a",
}
_USAGE_TYPES: dict[str, Literal["full", "partial", "total"]] = {
    "full": "full",
    "partial": "partial",
    "total": "total",
    "combined": "total",
}


class InvalidTriggerError(ValueError):
    """Raised when a stored trigger cannot be decoded."""


def normalize_browser_key(browser: str) -> str:
    key = browser.strip().lower()
    if key in BROWSER_LONG_NAMES:
        return key
    if key in BROWSER_SHORT_NAMES:
        return BROWSER_SHORT_NAMES[key]
    raise InvalidTriggerError(f"unknown browser: {browser!r}")


def _support_target(value: object) -> Literal["y", "a"]:
    target = _SUPPORT_TARGETS.get(str(value).strip().lower())
    if target is None:
        raise InvalidTriggerError(f"unknown target status: {value!r}")
    return target


def trigger_from_dict(payload: Mapping[str, Any]) -> Trigger:
    trigger_type = payload.get("type")
    try:
        if trigger_type == "browser_support":
            return BrowserSupportTrigger(
                browser=normalize_browser_key(str(payload["browser"])),
                target_status=_support_target(payload["targetStatus"]),
            )
        if trigger_type == "browser_version":
            return BrowserVersionTrigger(
                browser=normalize_browser_key(str(payload["browser"])),
                version=str(payload["version"]).strip(),
                target_status=_support_target(payload["targetStatus"]),
            )
        if trigger_type == "usage_threshold":
            usage_type = _USAGE_TYPES.get(str(payload.get("usageType", "total")))
            if usage_type is None:
                raise InvalidTriggerError(f"unknown usage type: {payload.get('usageType')!r}")
            return UsageThresholdTrigger(
                usage_type=usage_type,
                threshold=float(payload["threshold"]),
            )
        if trigger_type == "baseline_status":
            target = payload.get("targetStatus")
            if target not in ("high", "low"):
                raise InvalidTriggerError(f"unknown baseline target: {target!r}")
            return BaselineStatusTrigger(target_status=cast(Literal["high", "low"], target))
    except InvalidTriggerError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidTriggerError(f"malformed {trigger_type} trigger: {exc}") from exc
    raise InvalidTriggerError(f"unknown trigger type: {trigger_type!r}")


def trigger_to_dict(trigger: Trigger) -> dict[str, Any]:
    if isinstance(trigger, BrowserSupportTrigger):
        return {
            "type": "browser_support",
            "browser": trigger.browser,
            "targetStatus": trigger.target_status,
        }
    if isinstance(trigger, BrowserVersionTrigger):
        return {
            "type": "browser_version",
            "browser": trigger.browser,
            "version": trigger.version,
            "targetStatus": trigger.target_status,
        }
    if isinstance(trigger, UsageThresholdTrigger):
        return {
            "type": "usage_threshold",
            "usageType": trigger.usage_type,
            "threshold": trigger.threshold,
        }
    if isinstance(trigger, BaselineStatusTrigger):
        return {"type": "baseline_status", "targetStatus": trigger.target_status}
    assert_never(trigger)


def triggers_from_list(payload: Iterable[Mapping[str, Any]]) -> tuple[Trigger, ...]:
    return tuple(trigger_from_dict(item) for item in payload)


# evaluation


def _current_usage(feature: NormalizedFeature, usage_type: str) -> float:
    usage = feature.usage.global_
    if usage_type == "full":
        return usage.full
    if usage_type == "partial":
        return usage.partial
    return usage.total


def _usage_threshold_met(
    trigger: UsageThresholdTrigger,
    change: FeatureChange,
    feature: NormalizedFeature,
) -> bool:
    if change.usage is None:
        return False
    current = _current_usage(feature, trigger.usage_type)
    previous = current - change.usage.delta
    met = current >= trigger.threshold > previous
    LOGGER.debug(
        "usage %s: previous=%.2f current=%.2f threshold=%.2f met=%s",
        trigger.usage_type,
        previous,
        current,
        trigger.threshold,
        met,
    )
    return met


def _browser_support_met(trigger: BrowserSupportTrigger, change: FeatureChange) -> bool:
    support_change = change.support_for(trigger.browser)
    if support_change is None:
        return False
    met = support_change.new == trigger.target_status
    LOGGER.debug(
        "browser %s: old=%s new=%s target=%s met=%s",
        trigger.browser,
        support_change.old,
        support_change.new,
        trigger.target_status,
        met,
    )
    return met


def _first_version_reaching(detail: BrowserSupportDetail, target: str) -> str | None:
    if target == "y":
        return detail.first_full
    return detail.first_partial or detail.first_full


def _browser_version_met(
    trigger: BrowserVersionTrigger,
    change: FeatureChange,
    feature: NormalizedFeature,
) -> bool:
    support_change = change.support_for(trigger.browser)
    if support_change is None or support_change.new != trigger.target_status:
        return False
    detail = feature.support.get(BROWSER_LONG_NAMES.get(trigger.browser, trigger.browser))
    if detail is None:
        return False
    first_version = _first_version_reaching(detail, trigger.target_status)
    met = first_version is not None and compare_versions(first_version, trigger.version) <= 0
    LOGGER.debug(
        "browser %s version %s: first=%s target=%s met=%s",
        trigger.browser,
        trigger.version,
        first_version,
        trigger.target_status,
        met,
    )
    return met


def _baseline_met(trigger: BaselineStatusTrigger, change: FeatureChange) -> bool:
    if change.baseline is None:
        return False
    new = change.baseline.new
    if trigger.target_status == "low":
        met = new in ("low", "high")
    else:
        met = new == "high"
    LOGGER.debug(
        "baseline: old=%s new=%s target=%s met=%s",
        change.baseline.old,
        new,
        trigger.target_status,
        met,
    )
    return met


def trigger_met(trigger: Trigger, change: FeatureChange, feature: NormalizedFeature) -> bool:
    if isinstance(trigger, UsageThresholdTrigger):
        return _usage_threshold_met(trigger, change, feature)
    if isinstance(trigger, BrowserSupportTrigger):
        return _browser_support_met(trigger, change)
    if isinstance(trigger, BrowserVersionTrigger):
        return _browser_version_met(trigger, change, feature)
    if isinstance(trigger, BaselineStatusTrigger):
        return _baseline_met(trigger, change)
    assert_never(trigger)


def evaluate_triggers(
    triggers: Iterable[Trigger],
    change: FeatureChange,
    feature: NormalizedFeature,
) -> list[Trigger]:
    """Return the triggers satisfied by this change, in their stored order."""
    return [trigger for trigger in triggers if trigger_met(trigger, change, feature)]


# descriptions


def _browser_label(browser: str) -> str:
    return BROWSER_DISPLAY_NAMES.get(browser, browser)


def _status_label(target: str) -> str:
    return "full" if target == "y" else "partial"


def describe_trigger(trigger: Trigger, feature: NormalizedFeature, change: FeatureChange) -> str:
    """Human-readable line for a satisfied trigger."""
    if isinstance(trigger, UsageThresholdTrigger):
        labels = {
            "full": "full support",
            "partial": "partial support",
            "total": "total (full + partial)",
        }
        current = _current_usage(feature, trigger.usage_type)
        return (
            f"{labels[trigger.usage_type]} usage reached {trigger.threshold:g}% "
            f"(now {current:.1f}%)"
        )
    if isinstance(trigger, BrowserSupportTrigger):
        return (
            f"{_browser_label(trigger.browser)} now has "
            f"{_status_label(trigger.target_status)} support"
        )
    if isinstance(trigger, BrowserVersionTrigger):
        return (
            f"{_browser_label(trigger.browser)} {trigger.version} now has "
            f"{_status_label(trigger.target_status)} support"
        )
    if isinstance(trigger, BaselineStatusTrigger):
        new = change.baseline.new if change.baseline else trigger.target_status
        return f'Baseline status is now "{new}"'
    assert_never(trigger)
