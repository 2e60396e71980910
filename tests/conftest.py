"""Shared fixtures: in-memory and directory-backed repository handles."""

import hashlib
import shlex
import shutil
import subprocess
import sys
import threading
from contextlib import contextmanager
from pathlib import Path

import pytest
from commitgate.repository import RepositoryLockedError, RunMarker, file_fingerprint


class MemoryRepository:
    """RepositoryState over a dict of path -> content. Nothing touches disk."""

    def __init__(self, files=None, tracked=None):
        self.root = Path("/nonexistent")
        self.files = dict(files or {})
        self.tracked = list(tracked) if tracked is not None else None
        self.marker = None

    def tracked_files(self):
        return list(self.tracked) if self.tracked is not None else sorted(self.files)

    def head(self):
        return None

    def fingerprint(self, path):
        content = self.files.get(path)
        if content is None:
            return None
        return hashlib.sha256(content.encode()).hexdigest()

    def read_marker(self):
        return self.marker

    def write_marker(self, marker: RunMarker):
        self.marker = marker

    @contextmanager
    def lock(self):
        yield


class TreeRepository:
    """RepositoryState over a plain directory; every file under it is tracked."""

    def __init__(self, root: Path):
        self.root = root
        self.marker = None
        self.markers_written = 0
        self._lock = threading.Lock()

    def tracked_files(self):
        return sorted(p.relative_to(self.root).as_posix() for p in self.root.rglob("*") if p.is_file())

    def head(self):
        return None

    def fingerprint(self, path):
        return file_fingerprint(self.root / path)

    def read_marker(self):
        return self.marker

    def write_marker(self, marker):
        self.marker = marker
        self.markers_written += 1

    @contextmanager
    def lock(self):
        if not self._lock.acquire(blocking=False):
            raise RepositoryLockedError("locked")
        try:
            yield
        finally:
            self._lock.release()


def python_entry(code: str) -> str:
    """A local hook entry that runs `code` with the current interpreter."""
    return f"{shlex.quote(sys.executable)} -c {shlex.quote(code)}"


@pytest.fixture
def memory_repo():
    return MemoryRepository()


@pytest.fixture
def tree_repo(tmp_path):
    root = tmp_path / "repo"
    root.mkdir()
    return TreeRepository(root)


@pytest.fixture
def write_config(tmp_path):
    """Write a configuration document outside the repository tree."""

    def _write(text: str) -> Path:
        path = tmp_path / "hooks.yaml"
        path.write_text(text)
        return path

    return _write


@pytest.fixture
def git_repo(tmp_path):
    """A freshly initialised git repository."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    root = tmp_path / "project"
    root.mkdir()
    subprocess.run(["git", "init", "-q"], cwd=root, check=True)
    return root


def git_add(root: Path, *paths: str) -> None:
    subprocess.run(["git", "add", *paths], cwd=root, check=True)
