"""Console script for caniusenow."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import logging
from pathlib import Path

import click
from rich.console import Console

from . import __version__ as _version
from .artifacts import FeatureLoader, build_index, load_index, write_artifacts
from .changes import build_change_report, load_change_report, write_change_report
from .config import Settings
from .constants import (
    DEFAULT_OUTPUT_DIR,
    DEFAULT_REPORT_PATH,
    DEFAULT_SOURCES_DIR,
    FEATURES_DIRNAME,
    INDEX_FILENAME,
)
from .exceptions import CaniusenowError
from .http import use_shared_client
from .merge import merge_sources
from .notify import NotificationService, dispatch_notifications
from .render import (
    render_change_report,
    render_dispatch_summary,
    render_feature,
    render_pipeline_summary,
)
from .snapshot import FileSnapshotSource, GitSnapshotSource, SnapshotSource, current_snapshot_id
from .sources import fetch_sources, load_sources
from .store import TrackingStore
from .util.html import debug_enabled

LOGGER = logging.getLogger(__name__)

_PATH = click.Path(path_type=Path)


@contextmanager
def _friendly_errors() -> Iterator[None]:
    try:
        yield
    except CaniusenowError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(_version, "-v", "--version")
@click.option("--debug", is_flag=True, help="Log per-record and per-trigger detail.")
def main(debug: bool) -> None:
    """
    Aggregate browser compatibility data and notify feature trackers

    \b
    Example usages:
      caniusenow fetch-sources
      caniusenow normalize
      caniusenow detect-changes --previous-rev HEAD~1
      caniusenow notify
      caniusenow show css-grid
    """
    logging.basicConfig(
        level=logging.DEBUG if debug or debug_enabled() else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command("fetch-sources")
@click.option("--sources-dir", type=_PATH, default=DEFAULT_SOURCES_DIR, show_default=True)
def fetch_sources_command(sources_dir: Path) -> None:
    """Download the caniuse, web-features and MDN source documents."""
    console = Console()
    with _friendly_errors(), use_shared_client():
        written = fetch_sources(sources_dir)
    for path in written:
        console.print(f"Saved {path}")


@main.command("normalize")
@click.option("--sources-dir", type=_PATH, default=DEFAULT_SOURCES_DIR, show_default=True)
@click.option("--output-dir", type=_PATH, default=DEFAULT_OUTPUT_DIR, show_default=True)
def normalize_command(sources_dir: Path, output_dir: Path) -> None:
    """Merge the sources into the feature catalog and search index."""
    console = Console()
    with _friendly_errors():
        sources = load_sources(sources_dir)
        features, stats = merge_sources(sources)
        index = build_index(features.values())
        result = write_artifacts(features.values(), index, output_dir)
    stats.features = result.feature_files
    stats.index_size = result.index_size
    console.print(render_pipeline_summary(stats))


@main.command("detect-changes")
@click.option("--output-dir", type=_PATH, default=DEFAULT_OUTPUT_DIR, show_default=True)
@click.option("--report", "report_path", type=_PATH, default=DEFAULT_REPORT_PATH, show_default=True)
@click.option(
    "--previous-index",
    type=_PATH,
    default=None,
    help="Compare against a saved index.json instead of a git revision.",
)
@click.option("--previous-rev", default="HEAD~1", show_default=True)
def detect_changes_command(
    output_dir: Path,
    report_path: Path,
    previous_index: Path | None,
    previous_rev: str,
) -> None:
    """Diff the current index against the previous snapshot."""
    console = Console()
    index_path = output_dir / INDEX_FILENAME
    source: SnapshotSource
    if previous_index is not None:
        source = FileSnapshotSource(previous_index)
    else:
        source = GitSnapshotSource(index_path, revision=previous_rev)

    with _friendly_errors():
        current = load_index(index_path)
        snapshot = source.previous()
        report = build_change_report(
            current,
            snapshot.index if snapshot else None,
            current_snapshot=current_snapshot_id(),
            previous_snapshot=snapshot.id if snapshot else "none",
        )
        write_change_report(report, report_path)
    console.print(render_change_report(report))


@main.command("notify")
@click.option("--output-dir", type=_PATH, default=DEFAULT_OUTPUT_DIR, show_default=True)
@click.option("--report", "report_path", type=_PATH, default=DEFAULT_REPORT_PATH, show_default=True)
def notify_command(output_dir: Path, report_path: Path) -> None:
    """Email users whose tracked conditions the latest changes satisfy."""
    console = Console()
    with _friendly_errors():
        settings = Settings.from_env()
        if not report_path.exists():
            console.print("No change report found. Run detect-changes first.")
            return
        report = load_change_report(report_path)
        if not report.changes:
            console.print("No changes detected, no notifications needed.")
            return

        index = load_index(output_dir / INDEX_FILENAME)
        loader = FeatureLoader(output_dir / FEATURES_DIRNAME)
        with use_shared_client():
            stats = dispatch_notifications(
                report,
                index,
                loader,
                TrackingStore(settings.store_url, settings.store_key),
                NotificationService(settings.notify_client_id, settings.notify_client_secret),
                app_url=settings.app_url,
            )
    console.print(render_dispatch_summary(stats))


@main.command("show")
@click.argument("feature_id", metavar="<feature-id>")
@click.option("--output-dir", type=_PATH, default=DEFAULT_OUTPUT_DIR, show_default=True)
def show_command(feature_id: str, output_dir: Path) -> None:
    """Print one merged feature from the published artifacts."""
    with _friendly_errors():
        feature = FeatureLoader(output_dir / FEATURES_DIRNAME).load(feature_id)
    if feature is None:
        raise click.ClickException(f"Feature not found: {feature_id}")
    Console().print(render_feature(feature))
