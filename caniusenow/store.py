"""Client for the tracking store (a PostgREST-style REST table)."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any, Protocol

from .constants import TRACKING_TABLE
from .exceptions import CaniusenowError, StoreError
from .http import request_json
from .model import FeatureTracking
from .triggers import InvalidTriggerError, triggers_from_list

LOGGER = logging.getLogger(__name__)


class TrackingRepository(Protocol):
    def fetch_active(self, feature_id: str) -> list[FeatureTracking]: ...

    def mark_notified(self, tracking_id: str, notified_at: str) -> None: ...


def tracking_from_row(row: Mapping[str, Any]) -> FeatureTracking:
    raw_triggers = row.get("triggers") or []
    if not isinstance(raw_triggers, list):
        raise InvalidTriggerError("triggers must be a list")
    return FeatureTracking(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        feature_id=str(row["feature_id"]),
        feature_title=str(row.get("feature_title") or row["feature_id"]),
        triggers=triggers_from_list(raw_triggers),
        status=row.get("status", "active"),
        user_email=row.get("user_email") or None,
        notified_at=row.get("notified_at"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class TrackingStore:
    """Read active trackings and flip them to notified."""

    def __init__(self, url: str, key: str) -> None:
        self._endpoint = f"{url.rstrip('/')}/rest/v1/{TRACKING_TABLE}"
        self._headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }

    def fetch_active(self, feature_id: str) -> list[FeatureTracking]:
        try:
            rows = request_json(
                "GET",
                self._endpoint,
                headers=self._headers,
                params={
                    "select": "*",
                    "feature_id": f"eq.{feature_id}",
                    "status": "eq.active",
                },
            )
        except CaniusenowError as exc:
            raise StoreError(f"Unable to query trackings for {feature_id}: {exc}") from exc
        if not isinstance(rows, list):
            raise StoreError(f"Unexpected tracking query response for {feature_id}")

        trackings: list[FeatureTracking] = []
        for row in rows:
            if not isinstance(row, Mapping):
                LOGGER.warning("Skipping malformed tracking row for %s", feature_id)
                continue
            try:
                trackings.append(tracking_from_row(row))
            except (InvalidTriggerError, KeyError, TypeError) as exc:
                LOGGER.warning("Skipping tracking %s: %s", row.get("id", "?"), exc)
        return trackings

    def mark_notified(self, tracking_id: str, notified_at: str) -> None:
        """Flip one tracking to notified, only if it is still active."""
        try:
            request_json(
                "PATCH",
                self._endpoint,
                headers={**self._headers, "Prefer": "return=minimal"},
                params={"id": f"eq.{tracking_id}", "status": "eq.active"},
                json_body={"status": "notified", "notified_at": notified_at},
            )
        except CaniusenowError as exc:
            raise StoreError(f"Unable to update tracking {tracking_id}: {exc}") from exc
