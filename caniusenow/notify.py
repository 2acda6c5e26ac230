"""Notification service client and the dispatcher that drives it.

For every changed feature in a report the dispatcher looks up the active
trackings for it, evaluates their triggers and sends at most one message
per tracking, batching every satisfied condition. A tracking is flipped to
``notified`` only after its message was accepted, so a failed delivery is
retried by the next run.
"""

from __future__ import annotations

import base64
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Protocol

from .artifacts import FeatureLoader
from .changes import format_timestamp
from .constants import DEFAULT_APP_URL, NOTIFICATION_API_URL, NOTIFICATION_ID
from .exceptions import CaniusenowError, DeliveryError
from .http import request_json
from .model import ChangeReport, FeatureChange, FeatureIndex, FeatureTracking, NormalizedFeature
from .store import TrackingRepository
from .triggers import describe_trigger, evaluate_triggers

LOGGER = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, user_id: str, email: str, merge_tags: Mapping[str, str]) -> None: ...


class NotificationService:
    """Send templated email notifications through NotificationAPI."""

    def __init__(self, client_id: str, client_secret: str) -> None:
        self._url = NOTIFICATION_API_URL.format(client_id=client_id)
        token = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode("ascii")
        self._headers = {
            "Authorization": f"Basic {token}",
            "Content-Type": "application/json",
        }

    def send(self, user_id: str, email: str, merge_tags: Mapping[str, str]) -> None:
        payload = {
            "notificationId": NOTIFICATION_ID,
            "user": {"id": user_id, "email": email},
            "mergeTags": dict(merge_tags),
        }
        try:
            request_json("POST", self._url, headers=self._headers, json_body=payload)
        except CaniusenowError as exc:
            raise DeliveryError(f"Notification to {email} was not delivered: {exc}") from exc


@dataclass
class DispatchStats:
    features_checked: int = 0
    features_skipped: int = 0
    trackings_processed: int = 0
    notifications_sent: int = 0
    delivery_failures: int = 0


def build_merge_tags(
    feature: NormalizedFeature,
    conditions: Iterable[str],
    app_url: str = DEFAULT_APP_URL,
) -> dict[str, str]:
    return {
        "featureName": feature.name,
        "featureId": feature.id,
        "conditionsMet": ", ".join(conditions),
        "appUrl": app_url,
    }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _notify_tracking(
    tracking: FeatureTracking,
    change: FeatureChange,
    feature: NormalizedFeature,
    store: TrackingRepository,
    notifier: Notifier,
    stats: DispatchStats,
    app_url: str,
    now: Callable[[], datetime],
) -> None:
    if not tracking.user_email:
        LOGGER.debug("Tracking %s has no email address", tracking.id)
        return

    stats.trackings_processed += 1
    met = evaluate_triggers(tracking.triggers, change, feature)
    if not met:
        LOGGER.debug("Tracking %s: no trigger met", tracking.id)
        return

    conditions = [describe_trigger(trigger, feature, change) for trigger in met]
    merge_tags = build_merge_tags(feature, conditions, app_url)
    try:
        notifier.send(tracking.user_id, tracking.user_email, merge_tags)
    except DeliveryError as exc:
        LOGGER.warning("Delivery failed for tracking %s: %s", tracking.id, exc)
        stats.delivery_failures += 1
        return

    store.mark_notified(tracking.id, format_timestamp(now()))
    stats.notifications_sent += 1
    LOGGER.info("Notified tracking %s for %s", tracking.id, feature.id)


def dispatch_notifications(
    report: ChangeReport,
    index: Iterable[FeatureIndex],
    loader: FeatureLoader,
    store: TrackingRepository,
    notifier: Notifier,
    *,
    app_url: str = DEFAULT_APP_URL,
    now: Callable[[], datetime] = _utc_now,
) -> DispatchStats:
    """Notify every tracking whose triggers a change report satisfies.

    Store failures propagate and abort the run; delivery failures are
    counted and leave the tracking active.
    """
    stats = DispatchStats()
    if not report.changes:
        return stats

    index_by_id = {entry.id: entry for entry in index}
    for change in report.changes:
        if change.feature_id not in index_by_id:
            LOGGER.warning("Feature %s not found in index", change.feature_id)
            stats.features_skipped += 1
            continue

        stats.features_checked += 1
        trackings = store.fetch_active(change.feature_id)
        if not trackings:
            continue

        feature = loader.load(change.feature_id)
        if feature is None:
            LOGGER.warning("Feature %s has no detail file", change.feature_id)
            stats.features_skipped += 1
            continue

        for tracking in trackings:
            _notify_tracking(tracking, change, feature, store, notifier, stats, app_url, now)

    return stats
