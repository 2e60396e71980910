from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .process import ProcessGroup


class HookError(Exception):
    """Raised when a hook fails in a way the executor should record."""


class InvocationError(HookError):
    """Raised when a hook's process could not be started or did not finish."""


@dataclass(frozen=True)
class Invocation:
    """What came back from running a hook's tool once."""

    argv: tuple[str, ...]
    returncode: int
    output: str = ""


@runtime_checkable
class HookAdapter(Protocol):
    """Capabilities the executor needs from a hook.

    `select` narrows a file set to the files the hook accepts; `invoke` runs
    the tool on them as a black box through the run's process group.
    `mutates` marks hooks that may rewrite files, which the orchestrator never
    runs alongside other hooks.
    """

    name: str
    mutates: bool

    def select(self, files: Iterable[str]) -> list[str]: ...

    def invoke(
        self, files: list[str], cwd: Path, processes: ProcessGroup, timeout: float | None = None
    ) -> Invocation: ...
