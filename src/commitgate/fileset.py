"""File-set resolution.

The resolver decides which files a run covers. It never applies hook scopes;
each hook filters the resolved set itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from .repository import RepositoryState

logger = logging.getLogger(__name__)


class FileSetMode(str, Enum):
    CHANGED_ONLY = "changed_only"
    ALL_FILES = "all_files"


@dataclass(frozen=True)
class FileSet:
    mode: FileSetMode
    files: tuple[str, ...] = ()

    def __iter__(self) -> Iterator[str]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)


def resolve_file_set(mode: FileSetMode, repository: RepositoryState) -> FileSet:
    """Resolve the files a run applies to.

    ALL_FILES: every tracked file present in the worktree.
    CHANGED_ONLY: tracked files whose content differs from the last successful
    run marker; every tracked file when no marker exists.
    """
    marker = repository.read_marker() if mode is FileSetMode.CHANGED_ONLY else None
    recorded = marker.fingerprints if marker is not None else None

    selected: list[str] = []
    seen: set[str] = set()
    for path in repository.tracked_files():
        if path in seen:
            continue
        seen.add(path)
        digest = repository.fingerprint(path)
        if digest is None:
            continue  # deleted in the worktree
        if recorded is not None and recorded.get(path) == digest:
            continue
        selected.append(path)

    if mode is FileSetMode.CHANGED_ONLY and marker is None:
        logger.debug("no run marker; treating all %d tracked file(s) as changed", len(selected))
    else:
        logger.debug("resolved %d file(s) in %s mode", len(selected), mode.value)
    return FileSet(mode=mode, files=tuple(selected))
