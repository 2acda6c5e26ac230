"""Rich renderables for pipeline summaries and single features."""

from __future__ import annotations

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .constants import BROWSER_DISPLAY_NAMES, BROWSER_SHORT_NAMES
from .merge import PipelineStats, SourceStats
from .model import ChangeReport, FeatureChange, NormalizedFeature
from .notify import DispatchStats
from .util.text import ellipsize, format_percent

STATUS_ICON_MAP: dict[str, str] = {
    "y": "✅",
    "a": "◐",
    "n": "❌",
    "p": "◐",
    "d": "🚩",
    "x": "✅",
    "u": "?",
}

STATUS_LABEL_MAP: dict[str, str] = {
    "y": "Supported",
    "a": "Partial support",
    "n": "Not supported",
    "p": "Polyfill",
    "d": "Disabled by default",
    "x": "Prefixed",
    "u": "Unknown",
}

_VERSION_TAIL = 5


def _source_row(table: Table, label: str, stats: SourceStats) -> None:
    table.add_row(
        label,
        str(stats.total),
        str(stats.processed),
        str(stats.new),
        str(stats.merged),
        str(stats.skipped),
        str(stats.errors),
    )


def render_pipeline_summary(stats: PipelineStats) -> Group:
    table = Table(title="Normalization summary", title_justify="left")
    for column in ("Source", "Total", "Processed", "New", "Merged", "Skipped", "Errors"):
        table.add_column(column, justify="left" if column == "Source" else "right")
    _source_row(table, "caniuse", stats.caniuse)
    _source_row(table, "web-features", stats.web_features)
    _source_row(table, "MDN BCD", stats.mdn_bcd)

    return Group(
        table,
        Text(f"Features: {stats.features}  Index entries: {stats.index_size}", style="bold"),
    )


def _change_summary(change: FeatureChange) -> str:
    parts: list[str] = []
    if change.usage is not None:
        sign = "+" if change.usage.delta >= 0 else ""
        parts.append(
            f"usage {change.usage.old:.2f}% → {change.usage.new:.2f}% ({sign}{change.usage.delta})"
        )
    for item in change.support:
        browser = BROWSER_DISPLAY_NAMES.get(item.browser, item.browser)
        parts.append(f"{browser} {item.old or '-'} → {item.new}")
    if change.baseline is not None:
        parts.append(f"baseline {change.baseline.old} → {change.baseline.new}")
    return "; ".join(parts)


def render_change_report(report: ChangeReport) -> Group:
    header = Text(
        f"{report.total_changes} changed features "
        f"({report.previous_snapshot[:12]} → {report.current_snapshot[:12]})",
        style="bold",
    )
    if not report.changes:
        return Group(header)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Feature")
    table.add_column("Changes")
    for change in report.changes:
        table.add_row(change.feature_id, _change_summary(change))
    return Group(header, table)


def render_dispatch_summary(stats: DispatchStats) -> Group:
    return Group(
        Text(f"Features checked: {stats.features_checked}"),
        Text(f"Trackings processed: {stats.trackings_processed}"),
        Text(f"Notifications sent: {stats.notifications_sent}", style="bold"),
        Text(f"Delivery failures: {stats.delivery_failures}"),
    )


def _usage_line(feature: NormalizedFeature) -> str:
    usage = feature.usage.global_
    return (
        f"Usage: ✅ {format_percent(usage.full)}  ◐ {format_percent(usage.partial)}  "
        f"Total: {format_percent(usage.total)} ({feature.usage.type})"
    )


def render_feature(feature: NormalizedFeature) -> Group:
    """Render one merged feature as a Rich renderable group."""
    lines: list[Text] = []

    lines.append(Text(feature.name, style="bold"))
    lines.append(Text(f"{feature.category}  ·  primary source: {feature.source}", style="dim"))
    if feature.baseline:
        lines.append(Text(f"Baseline: {feature.baseline}"))
    lines.append(Text(_usage_line(feature)))

    if feature.description:
        lines.append(Text(""))
        lines.append(Text("Description", style="bold"))
        lines.append(Text(feature.description))

    lines.append(Text(""))
    lines.append(Text("Browser Support", style="bold"))
    for browser, detail in feature.support.items():
        short = BROWSER_SHORT_NAMES.get(browser, browser)
        icon = STATUS_ICON_MAP.get(detail.current, STATUS_ICON_MAP["u"])
        label = STATUS_LABEL_MAP.get(detail.current, STATUS_LABEL_MAP["u"])
        since = f" since {detail.first_full}" if detail.first_full else ""
        lines.append(
            Text(f"{BROWSER_DISPLAY_NAMES.get(short, browser)}: {icon} {label}{since}", style="cyan")
        )
        for entry in detail.versions[-_VERSION_TAIL:]:
            flags = f" [{', '.join(entry.flags)}]" if entry.flags else ""
            lines.append(Text(f"  {entry.version}: {STATUS_ICON_MAP.get(entry.status, '?')}{flags}"))

    if feature.source_data.supplementary:
        lines.append(Text(""))
        lines.append(Text("Also matched", style="bold"))
        for match in feature.source_data.supplementary:
            lines.append(Text(f"  {match.source}: {ellipsize(match.id, 60)} ({match.matched})"))

    links = [("MDN", feature.mdn)] if feature.mdn else []
    links.extend(feature.links)
    if links:
        lines.append(Text(""))
        lines.append(Text("Links", style="bold"))
        for title, url in links:
            lines.append(Text(f"  {title}: {url}"))

    return Group(Panel(Group(*lines), border_style="blue", title=f"/{feature.id}"))
