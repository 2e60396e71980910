"""Hook results, run verdicts and report rendering."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum

from .fileset import FileSetMode

REPORT_WIDTH = 79


class Outcome(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    MODIFIED = "modified"


class Verdict(str, Enum):
    ALLOW = "allow"
    BLOCK = "block"
    ABORTED = "aborted"

    @property
    def blocks(self) -> bool:
        return self is not Verdict.ALLOW


@dataclass(frozen=True)
class HookResult:
    """Outcome of one hook in one run."""

    hook_id: str
    name: str
    repo: str
    outcome: Outcome
    modified_files: tuple[str, ...] = ()
    returncode: int | None = None
    output: str = ""
    error: str | None = None
    duration: float = 0.0

    @property
    def blocks(self) -> bool:
        return self.outcome in (Outcome.FAILED, Outcome.MODIFIED)


@dataclass(frozen=True)
class RunReport:
    mode: FileSetMode
    file_count: int
    results: tuple[HookResult, ...]
    verdict: Verdict

    def by_outcome(self, outcome: Outcome) -> list[HookResult]:
        return [r for r in self.results if r.outcome is outcome]


def decide_verdict(results: list[HookResult] | tuple[HookResult, ...], aborted: bool = False) -> Verdict:
    """Block iff any hook failed or rewrote files; an interrupted run is Aborted."""
    if aborted:
        return Verdict.ABORTED
    if any(r.blocks for r in results):
        return Verdict.BLOCK
    return Verdict.ALLOW


@dataclass
class Aggregator:
    """Collects results from concurrent workers into configuration order.

    Results may arrive in any order; each is stored under its configuration
    index exactly once.
    """

    expected: int
    _slots: dict[int, HookResult] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def add(self, index: int, result: HookResult) -> None:
        with self._lock:
            if index in self._slots:
                raise ValueError(f"result for hook #{index} already recorded")
            if not 0 <= index < self.expected:
                raise IndexError(f"hook index {index} out of range")
            self._slots[index] = result

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)

    def finalize(self, mode: FileSetMode, file_count: int, aborted: bool = False) -> RunReport:
        with self._lock:
            results = tuple(self._slots[i] for i in sorted(self._slots))
        if not aborted and len(results) != self.expected:
            raise RuntimeError(f"expected {self.expected} results, got {len(results)}")
        return RunReport(
            mode=mode,
            file_count=file_count,
            results=results,
            verdict=decide_verdict(results, aborted=aborted),
        )


_STATUS_LABELS = {
    Outcome.PASSED: "Passed",
    Outcome.FAILED: "Failed",
    Outcome.SKIPPED: "Skipped",
    Outcome.MODIFIED: "Failed",
}


def _status_line(result: HookResult, width: int) -> str:
    label = _STATUS_LABELS[result.outcome]
    if result.outcome is Outcome.SKIPPED:
        label = "(no files to check)" + label
    dots = max(width - len(result.name) - len(label), 3)
    return f"{result.name}{'.' * dots}{label}"


def render_report(report: RunReport, verbose: bool = False, width: int = REPORT_WIDTH) -> str:
    """One status line per hook, with details for failures and rewrites."""
    lines: list[str] = []
    for result in report.results:
        lines.append(_status_line(result, width))
        if result.outcome is Outcome.MODIFIED:
            lines.append("- hook id: " + result.hook_id)
            lines.append("- files were modified by this hook")
            lines.extend(f"  {path}" for path in result.modified_files)
        elif result.outcome is Outcome.FAILED:
            lines.append("- hook id: " + result.hook_id)
            if result.returncode is not None:
                lines.append(f"- exit code: {result.returncode}")
            if result.error:
                lines.append(f"- error: {result.error}")
        if result.output and (verbose or result.blocks):
            lines.append("")
            lines.append(result.output.rstrip())
            lines.append("")
        if verbose:
            lines.append(f"- duration: {result.duration:.2f}s")

    if report.verdict is Verdict.ABORTED:
        lines.append("Interrupted: in-flight hooks were terminated.")
    elif report.verdict is Verdict.BLOCK and report.by_outcome(Outcome.MODIFIED):
        lines.append("Hooks rewrote files. Review the changes and stage them before committing again.")
    return "\n".join(lines)
