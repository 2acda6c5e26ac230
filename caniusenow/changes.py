"""Diffing two index snapshots into a change report."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
from typing import Any, cast

from .constants import USAGE_CHANGE_THRESHOLD
from .exceptions import SourceError
from .model import (
    Baseline,
    BaselineChange,
    ChangeReport,
    FeatureChange,
    FeatureIndex,
    QuickStatus,
    SupportChange,
    UsageChange,
)
from .snapshot import NO_SNAPSHOT

LOGGER = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def diff_entry(current: FeatureIndex, previous: FeatureIndex) -> FeatureChange | None:
    """Compare one feature across snapshots; None when nothing notable moved."""
    usage = None
    delta = round(current.usage - previous.usage, 2)
    if abs(delta) > USAGE_CHANGE_THRESHOLD:
        usage = UsageChange(old=previous.usage, new=current.usage, delta=delta)

    support = tuple(
        SupportChange(browser=browser, old=previous.support.get(browser), new=status)
        for browser, status in current.support.items()
        if previous.support.get(browser) != status
    )

    baseline = None
    if current.baseline != previous.baseline:
        baseline = BaselineChange(old=previous.baseline, new=current.baseline)

    if usage is None and not support and baseline is None:
        return None
    return FeatureChange(feature_id=current.id, usage=usage, support=support, baseline=baseline)


def detect_changes(
    current: Iterable[FeatureIndex],
    previous: Iterable[FeatureIndex],
) -> list[FeatureChange]:
    """List changed features in current-index order; new features are silent."""
    previous_by_id = {entry.id: entry for entry in previous}
    changes: list[FeatureChange] = []
    for entry in current:
        old_entry = previous_by_id.get(entry.id)
        if old_entry is None:
            continue
        change = diff_entry(entry, old_entry)
        if change is not None:
            changes.append(change)
    return changes


def build_change_report(
    current: Iterable[FeatureIndex],
    previous: Iterable[FeatureIndex] | None,
    *,
    current_snapshot: str,
    previous_snapshot: str = NO_SNAPSHOT,
    now: Callable[[], datetime] = _utc_now,
) -> ChangeReport:
    timestamp = format_timestamp(now())
    if previous is None:
        LOGGER.info("No previous snapshot; reporting no changes")
        return ChangeReport(
            timestamp=timestamp,
            previous_snapshot=NO_SNAPSHOT,
            current_snapshot=current_snapshot,
        )
    return ChangeReport(
        timestamp=timestamp,
        previous_snapshot=previous_snapshot,
        current_snapshot=current_snapshot,
        changes=tuple(detect_changes(current, previous)),
    )


# report codec


def change_to_dict(change: FeatureChange) -> dict[str, Any]:
    body: dict[str, Any] = {}
    if change.usage is not None:
        body["usage"] = {
            "old": change.usage.old,
            "new": change.usage.new,
            "delta": change.usage.delta,
        }
    if change.support:
        body["support"] = [
            {"browser": item.browser, "old": item.old, "new": item.new} for item in change.support
        ]
    if change.baseline is not None:
        body["baseline"] = {"old": change.baseline.old, "new": change.baseline.new}
    return {"featureId": change.feature_id, "changes": body}


def report_to_dict(report: ChangeReport) -> dict[str, Any]:
    return {
        "timestamp": report.timestamp,
        "previousSnapshot": report.previous_snapshot,
        "currentSnapshot": report.current_snapshot,
        "totalChanges": report.total_changes,
        "changes": [change_to_dict(change) for change in report.changes],
    }


def _baseline(value: object) -> Baseline:
    return cast(Baseline, value) if value in ("high", "low") else False


def change_from_dict(payload: Mapping[str, Any]) -> FeatureChange:
    body = payload.get("changes") or {}
    raw_usage = body.get("usage")
    raw_baseline = body.get("baseline")
    return FeatureChange(
        feature_id=str(payload["featureId"]),
        usage=UsageChange(
            old=float(raw_usage["old"]),
            new=float(raw_usage["new"]),
            delta=float(raw_usage["delta"]),
        )
        if raw_usage
        else None,
        support=tuple(
            SupportChange(
                browser=str(item["browser"]),
                old=cast("QuickStatus | None", item.get("old")),
                new=cast(QuickStatus, item["new"]),
            )
            for item in body.get("support") or ()
        ),
        baseline=BaselineChange(
            old=_baseline(raw_baseline.get("old")),
            new=_baseline(raw_baseline.get("new")),
        )
        if raw_baseline
        else None,
    )


def report_from_dict(payload: Mapping[str, Any]) -> ChangeReport:
    return ChangeReport(
        timestamp=str(payload.get("timestamp", "")),
        previous_snapshot=str(payload.get("previousSnapshot", NO_SNAPSHOT)),
        current_snapshot=str(payload.get("currentSnapshot", "")),
        changes=tuple(change_from_dict(item) for item in payload.get("changes") or ()),
    )


def write_change_report(report: ChangeReport, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report_to_dict(report), indent=2) + "\n", encoding="utf-8")


def load_change_report(path: Path) -> ChangeReport:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return report_from_dict(payload)
    except OSError as exc:
        raise SourceError(str(path), cause=exc.__class__.__name__) from exc
    except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as exc:
        raise SourceError(str(path), cause="malformed change report") from exc
