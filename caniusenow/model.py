"""Data models for the normalized catalog, change reports and trackings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

SupportStatus = Literal["y", "a", "n", "p", "d", "x", "u"]
QuickStatus = Literal["y", "a", "n", "p"]
Baseline = Literal["high", "low", False]
Category = Literal["CSS", "HTML5", "JS API", "SVG", "Other"]
SourceName = Literal["caniuse", "webfeatures", "mdnbcd"]
MatchKind = Literal["exact", "via-secondary-link", "inferred"]
UsageType = Literal["actual", "estimated"]
TrackingStatus = Literal["active", "notified", "completed"]


@dataclass(frozen=True)
class VersionSupport:
    version: str
    status: SupportStatus
    prefix: str | None = None
    flags: tuple[str, ...] = ()
    notes: str | None = None


@dataclass(frozen=True)
class BrowserSupportDetail:
    current: SupportStatus
    first_full: str | None = None
    first_partial: str | None = None
    versions: tuple[VersionSupport, ...] = ()


BrowserSupport = dict[str, BrowserSupportDetail]


@dataclass(frozen=True)
class UsageBreakdown:
    full: float = 0.0
    partial: float = 0.0
    total: float = 0.0


@dataclass(frozen=True)
class FeatureUsage:
    global_: UsageBreakdown
    desktop: dict[str, float] = field(default_factory=dict)
    mobile: dict[str, float] = field(default_factory=dict)
    type: UsageType = "estimated"


@dataclass(frozen=True)
class SourceRef:
    source: SourceName
    id: str


@dataclass(frozen=True)
class SupplementaryMatch:
    source: SourceName
    id: str
    matched: MatchKind


@dataclass
class SourceData:
    primary: SourceRef
    supplementary: list[SupplementaryMatch] = field(default_factory=list)


@dataclass(frozen=True)
class FeatureNotes:
    general: str | None = None
    by_num: dict[str, str] = field(default_factory=dict)


@dataclass
class NormalizedFeature:
    id: str
    source: SourceName
    name: str
    description: str
    category: Category
    support: BrowserSupport
    usage: FeatureUsage
    baseline: Baseline
    source_data: SourceData
    mdn: str | None = None
    links: list[tuple[str, str]] = field(default_factory=list)
    notes: FeatureNotes | None = None
    caniuse_url: str = ""


@dataclass(frozen=True)
class FeatureIndex:
    id: str
    name: str
    description: str
    category: str
    support: dict[str, QuickStatus]
    usage: float
    baseline: Baseline


@dataclass(frozen=True)
class UsageChange:
    old: float
    new: float
    delta: float


@dataclass(frozen=True)
class SupportChange:
    browser: str
    old: QuickStatus | None
    new: QuickStatus


@dataclass(frozen=True)
class BaselineChange:
    old: Baseline
    new: Baseline


@dataclass(frozen=True)
class FeatureChange:
    feature_id: str
    usage: UsageChange | None = None
    support: tuple[SupportChange, ...] = ()
    baseline: BaselineChange | None = None

    def support_for(self, browser: str) -> SupportChange | None:
        for change in self.support:
            if change.browser == browser:
                return change
        return None


@dataclass(frozen=True)
class ChangeReport:
    timestamp: str
    previous_snapshot: str
    current_snapshot: str
    changes: tuple[FeatureChange, ...] = ()

    @property
    def total_changes(self) -> int:
        return len(self.changes)


@dataclass(frozen=True)
class BrowserSupportTrigger:
    browser: str
    target_status: Literal["y", "a"]


@dataclass(frozen=True)
class BrowserVersionTrigger:
    browser: str
    version: str
    target_status: Literal["y", "a"]


@dataclass(frozen=True)
class UsageThresholdTrigger:
    usage_type: Literal["full", "partial", "total"]
    threshold: float


@dataclass(frozen=True)
class BaselineStatusTrigger:
    target_status: Literal["high", "low"]


Trigger = Union[
    BrowserSupportTrigger,
    BrowserVersionTrigger,
    UsageThresholdTrigger,
    BaselineStatusTrigger,
]


@dataclass(frozen=True)
class FeatureTracking:
    id: str
    user_id: str
    feature_id: str
    feature_title: str
    triggers: tuple[Trigger, ...]
    status: TrackingStatus
    user_email: str | None = None
    notified_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
