"""Git repository handle.

Everything the orchestrator needs to know about the repository goes through a
`RepositoryState`: the tracked file list, per-file content fingerprints, the
last successful run marker and the run lock. `GitRepository` implements it on
top of the git CLI.
"""

from __future__ import annotations

import fcntl
import hashlib
import json
import logging
import os
import subprocess
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, ContextManager, Iterator, Protocol

logger = logging.getLogger(__name__)

STATE_DIR_NAME = "commitgate"
MARKER_NAME = "last-run.json"
LOCK_NAME = "run.lock"


class RepositoryError(Exception):
    """Raised when the repository handle is invalid or git fails."""


class RepositoryLockedError(RepositoryError):
    """Raised when another run already holds the repository lock."""


@dataclass(frozen=True)
class RunMarker:
    """Point-in-time record of the last successful run."""

    head: str | None
    recorded_at: str
    fingerprints: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"head": self.head, "recorded_at": self.recorded_at, "fingerprints": self.fingerprints}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunMarker:
        fingerprints = data.get("fingerprints", {})
        if not isinstance(fingerprints, dict):
            raise ValueError("fingerprints must be a mapping")
        return cls(
            head=data.get("head"),
            recorded_at=str(data.get("recorded_at", "")),
            fingerprints={str(k): str(v) for k, v in fingerprints.items()},
        )


class RepositoryState(Protocol):
    root: Path

    def tracked_files(self) -> list[str]: ...

    def head(self) -> str | None: ...

    def fingerprint(self, path: str) -> str | None: ...

    def read_marker(self) -> RunMarker | None: ...

    def write_marker(self, marker: RunMarker) -> None: ...

    def lock(self) -> ContextManager[None]: ...


def file_fingerprint(path: Path) -> str | None:
    """sha256 of a file's content, or None if it is not a regular file."""
    if not path.is_file():
        return None
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _run_git(args: list[str], cwd: Path) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise RepositoryError("git executable not found") from e


class GitRepository:
    """RepositoryState backed by a git working tree."""

    def __init__(self, root: Path, git_dir: Path):
        self.root = root
        self.git_dir = git_dir
        self.state_dir = git_dir / STATE_DIR_NAME
        self.marker_path = self.state_dir / MARKER_NAME
        self.lock_path = self.state_dir / LOCK_NAME

    @classmethod
    def discover(cls, path: Path | None = None) -> GitRepository:
        """Open the repository containing `path` (default: cwd)."""
        start = path or Path.cwd()
        if not start.is_dir():
            raise RepositoryError(f"{start} is not a directory")
        result = _run_git(["rev-parse", "--show-toplevel", "--absolute-git-dir"], start)
        if result.returncode != 0:
            raise RepositoryError(f"{start} is not inside a git repository")
        lines = result.stdout.strip().splitlines()
        if len(lines) != 2:
            raise RepositoryError(f"{start} has no working tree")
        root, git_dir = (Path(line) for line in lines)
        logger.debug("repository root=%s git_dir=%s", root, git_dir)
        return cls(root, git_dir)

    def git(self, *args: str) -> str:
        result = _run_git(list(args), self.root)
        if result.returncode != 0:
            raise RepositoryError(f"git {' '.join(args)} failed: {result.stderr.strip()}")
        return result.stdout

    def tracked_files(self) -> list[str]:
        # -z keeps paths with spaces or non-ASCII characters unquoted
        output = self.git("ls-files", "-z")
        return [p for p in output.split("\0") if p]

    def head(self) -> str | None:
        result = _run_git(["rev-parse", "--verify", "--quiet", "HEAD"], self.root)
        if result.returncode != 0:
            return None  # no commits yet
        return result.stdout.strip()

    def hooks_dir(self) -> Path:
        """Directory git runs hooks from (honours core.hooksPath)."""
        path = Path(self.git("rev-parse", "--git-path", "hooks").strip())
        return path if path.is_absolute() else self.root / path

    def fingerprint(self, path: str) -> str | None:
        return file_fingerprint(self.root / path)

    def read_marker(self) -> RunMarker | None:
        if not self.marker_path.exists():
            return None
        try:
            with open(self.marker_path) as f:
                return RunMarker.from_dict(json.load(f))
        except (OSError, ValueError, AttributeError) as e:
            logger.warning("ignoring unreadable run marker %s: %s", self.marker_path, e)
            return None

    def write_marker(self, marker: RunMarker) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        # temp file + rename so a crash never leaves a half-written marker
        fd, tmp = tempfile.mkstemp(dir=self.state_dir, prefix=".last-run-")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(marker.to_dict(), f, indent=2)
            os.replace(tmp, self.marker_path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    @contextmanager
    def lock(self) -> Iterator[None]:
        """Hold the repository-wide run lock, failing fast if it is taken."""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        lock_fd = os.open(str(self.lock_path), os.O_CREAT | os.O_RDWR)
        try:
            try:
                fcntl.flock(lock_fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError as e:
                raise RepositoryLockedError(
                    f"another commitgate run is in progress ({self.lock_path})"
                ) from e
            try:
                yield
            finally:
                fcntl.flock(lock_fd, fcntl.LOCK_UN)
        finally:
            os.close(lock_fd)


def take_marker(repository: RepositoryState) -> RunMarker:
    """Record the current content of every tracked file."""
    fingerprints = {}
    for path in repository.tracked_files():
        digest = repository.fingerprint(path)
        if digest is not None:
            fingerprints[path] = digest
    return RunMarker(
        head=repository.head(),
        recorded_at=datetime.now().isoformat(),
        fingerprints=fingerprints,
    )
