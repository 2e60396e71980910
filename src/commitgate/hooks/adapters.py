"""Command-line tool adapters.

A `CommandAdapter` turns one external tool (black, flake8, a bundled fixer,
a local script) into a `HookAdapter`: it knows which files the tool accepts
and how to build its command line.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Mapping

from ..config import HookSpec
from .base import Invocation
from .process import ProcessGroup

EXTENSION_TAGS: dict[str, tuple[str, ...]] = {
    ".py": ("python",),
    ".pyi": ("python", "pyi"),
    ".yaml": ("yaml",),
    ".yml": ("yaml",),
    ".toml": ("toml",),
    ".json": ("json",),
    ".cfg": ("ini",),
    ".ini": ("ini",),
    ".md": ("markdown",),
    ".rst": ("rst",),
    ".html": ("html",),
    ".js": ("javascript",),
    ".css": ("css",),
    ".sh": ("shell",),
    ".txt": ("plain-text",),
}

SNIFF_BYTES = 1024

# Linter flags that turn a read-only check into a rewrite
FIX_FLAGS = frozenset({"--fix", "--fix-only", "--unsafe-fixes"})


def requests_fixes(args: Iterable[str]) -> bool:
    return any(arg.split("=", 1)[0] in FIX_FLAGS for arg in args)


@lru_cache(maxsize=4096)
def _is_binary(path: str) -> bool:
    try:
        with open(path, "rb") as f:
            return b"\0" in f.read(SNIFF_BYTES)
    except OSError:
        return False


def file_tags(path: str, root: Path) -> frozenset[str]:
    """Type tags for a repository-relative path: extension tags plus text/binary."""
    _, ext = os.path.splitext(path)
    tags = {"file", *EXTENSION_TAGS.get(ext.lower(), ())}
    tags.add("binary" if _is_binary(str(root / path)) else "text")
    return frozenset(tags)


@dataclass(frozen=True)
class CommandAdapter:
    """HookAdapter for a tool run as `entry + args + filenames`.

    When `module` is set and an interpreter is pinned (`language_version`),
    the tool runs as `<interpreter> -m <module>` instead of `entry`.
    A hook is treated as mutating when its tool rewrites files, when its args
    ask a linter to apply fixes, or when the hook says so itself.
    """

    name: str
    entry: tuple[str, ...]
    args: tuple[str, ...] = ()
    types: tuple[str, ...] = ()
    types_or: tuple[str, ...] = ()
    exclude_types: tuple[str, ...] = ()
    files: str = ""
    exclude: str = "^$"
    mutates: bool = False
    pass_filenames: bool = True
    language: str | None = None
    module: str | None = None
    root: Path = Path(".")

    def configure(self, spec: HookSpec, default_language_version: Mapping[str, str], root: Path) -> CommandAdapter:
        """Apply a hook spec's overrides to this tool definition."""
        entry = self.entry
        version = spec.language_version or default_language_version.get(self.language or "")
        if self.module and version and version != "default":
            entry = (version, "-m", self.module)
        args = self.args + spec.args
        mutates = spec.mutates if spec.mutates is not None else self.mutates or requests_fixes(args)
        return replace(
            self,
            name=spec.display_name,
            entry=entry,
            args=args,
            types=self.types if spec.types is None else spec.types,
            types_or=self.types_or if spec.types_or is None else spec.types_or,
            exclude_types=self.exclude_types if spec.exclude_types is None else spec.exclude_types,
            files=self.files if spec.files is None else spec.files,
            exclude=self.exclude if spec.exclude is None else spec.exclude,
            mutates=mutates,
            root=root,
        )

    def select(self, files: Iterable[str]) -> list[str]:
        include = re.compile(self.files)
        exclude = re.compile(self.exclude)
        wanted = set(self.types)
        any_of = set(self.types_or)
        unwanted = set(self.exclude_types)
        selected = []
        for path in files:
            if not include.search(path) or exclude.search(path):
                continue
            if wanted or any_of or unwanted:
                tags = file_tags(path, self.root)
                if not wanted <= tags or (any_of and not any_of & tags) or unwanted & tags:
                    continue
            selected.append(path)
        return selected

    def command(self, files: list[str]) -> list[str]:
        argv = [*self.entry, *self.args]
        if self.pass_filenames:
            argv.extend(files)
        return argv

    def invoke(
        self, files: list[str], cwd: Path, processes: ProcessGroup, timeout: float | None = None
    ) -> Invocation:
        return processes.run(self.command(files), cwd=cwd, timeout=timeout)
