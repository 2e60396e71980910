"""Adapter for `repo: local` hooks.

Local hooks declare their own `entry` command. Entries that point at a script
inside the repository are resolved against the repository root so they work
from any working directory; `language: python` scripts run under the pinned
interpreter.
"""

from __future__ import annotations

import shlex
import sys
from pathlib import Path
from typing import Mapping

from ..config import HookSpec
from .adapters import CommandAdapter
from .base import HookError


def wrap_local_hook(spec: HookSpec, root: Path, default_language_version: Mapping[str, str] | None = None) -> CommandAdapter:
    if not spec.entry:
        raise HookError(f"local hook {spec.id!r} has no entry")
    try:
        argv = shlex.split(spec.entry)
    except ValueError as e:
        raise HookError(f"local hook {spec.id!r} has an unparsable entry: {e}") from e

    script = root / argv[0]
    if not Path(argv[0]).is_absolute() and script.is_file():
        argv[0] = str(script)

    language = spec.language or "system"
    if language == "python" and argv[0].endswith(".py"):
        defaults = default_language_version or {}
        interpreter = spec.language_version or defaults.get("python") or sys.executable
        if interpreter == "default":
            interpreter = sys.executable
        argv.insert(0, interpreter)

    # Unless the hook declares `mutates: false`, a local script is scheduled
    # like a formatter.
    return CommandAdapter(
        name=spec.display_name,
        entry=tuple(argv),
        args=spec.args,
        types=spec.types or (),
        types_or=spec.types_or or (),
        exclude_types=spec.exclude_types or (),
        files=spec.files or "",
        exclude=spec.exclude or "^$",
        mutates=spec.mutates is not False,
        pass_filenames=spec.pass_filenames,
        language=language,
        root=root,
    )
