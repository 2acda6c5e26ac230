"""Retrieval of the previously published index snapshot."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import os
from pathlib import Path
import subprocess
from typing import Protocol

from .artifacts import load_index, parse_index
from .exceptions import SourceError
from .model import FeatureIndex

LOGGER = logging.getLogger(__name__)

NO_SNAPSHOT = "none"
WORKING_TREE = "working-tree"


@dataclass(frozen=True)
class Snapshot:
    id: str
    index: list[FeatureIndex]


class SnapshotSource(Protocol):
    def previous(self) -> Snapshot | None: ...


def _git(args: list[str], cwd: Path | None) -> str | None:
    try:
        completed = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        LOGGER.debug("git %s failed: %s", " ".join(args), exc)
        return None
    return completed.stdout


def current_snapshot_id(repo_dir: Path | None = None) -> str:
    """Commit id of the working checkout, or "working-tree" outside git."""
    output = _git(["rev-parse", "HEAD"], repo_dir)
    return output.strip() if output else WORKING_TREE


@dataclass(frozen=True)
class GitSnapshotSource:
    """Read index.json as it was at a git revision (HEAD~1 by default)."""

    index_path: Path
    revision: str = "HEAD~1"
    repo_dir: Path | None = None

    def previous(self) -> Snapshot | None:
        relative = Path(os.path.relpath(self.index_path, self.repo_dir or Path.cwd()))
        revspec = f"{self.revision}:./{relative.as_posix()}"
        raw = _git(["show", revspec], self.repo_dir)
        if raw is None:
            LOGGER.info("No previous snapshot at %s", revspec)
            return None
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise SourceError(revspec, cause="invalid JSON") from exc

        revision_id = _git(["rev-parse", self.revision], self.repo_dir)
        return Snapshot(
            id=revision_id.strip() if revision_id else self.revision,
            index=parse_index(payload, revspec),
        )


@dataclass(frozen=True)
class FileSnapshotSource:
    """Read a saved copy of a previous index.json."""

    path: Path

    def previous(self) -> Snapshot | None:
        if not self.path.exists():
            LOGGER.info("No previous snapshot at %s", self.path)
            return None
        return Snapshot(id=f"file:{self.path}", index=load_index(self.path))
