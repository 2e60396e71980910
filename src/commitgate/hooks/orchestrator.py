from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..config import Configuration, HookGroup, HookSpec, load_config
from ..fileset import FileSet, FileSetMode, resolve_file_set
from ..report import Aggregator, RunReport, Verdict
from ..repository import RepositoryState, take_marker
from .base import HookAdapter, HookError
from .executor import HookExecutor
from .process import ProcessGroup

logger = logging.getLogger(__name__)


class RunPhase(str, Enum):
    LOADED = "loaded"
    RESOLVING = "resolving"
    EXECUTING = "executing"
    AGGREGATED = "aggregated"
    ALLOW = "allow"
    BLOCK = "block"
    ABORTED = "aborted"


_PHASE_ORDER = list(RunPhase)
_FINAL_PHASE = {Verdict.ALLOW: RunPhase.ALLOW, Verdict.BLOCK: RunPhase.BLOCK, Verdict.ABORTED: RunPhase.ABORTED}


class NoSuchHookError(LookupError):
    """Raised when `run HOOK` names no configured hook id or alias."""


def plan_waves(adapters: list[HookAdapter | None]) -> list[list[int]]:
    """Group hook indexes into waves that may run concurrently.

    A mutating hook always forms a wave of its own, so no two hooks ever see
    a file while another hook is rewriting it, and rewrites happen in
    configuration order. Consecutive read-only hooks share a wave.
    """
    waves: list[list[int]] = []
    current: list[int] = []
    for index, adapter in enumerate(adapters):
        if adapter is not None and adapter.mutates:
            if current:
                waves.append(current)
                current = []
            waves.append([index])
        else:
            current.append(index)
    if current:
        waves.append(current)
    return waves


@dataclass
class Orchestrator:
    """Loads the configuration and runs its hooks against one repository.

    Only one run per repository proceeds at a time; the repository lock is held
    from file-set resolution until the run marker is written.
    """

    repository: RepositoryState
    config_path: Path
    concurrency: int = 1
    timeout: float | None = None
    phase: RunPhase | None = field(default=None, init=False)

    def _advance(self, phase: RunPhase) -> None:
        if self.phase is not None and _PHASE_ORDER.index(phase) <= _PHASE_ORDER.index(self.phase):
            raise RuntimeError(f"run cannot move from {self.phase.value} to {phase.value}")
        logger.debug("run phase: %s", phase.value)
        self.phase = phase

    def list_hooks(self, config: Configuration, selector: str | None = None) -> list[tuple[HookGroup, HookSpec]]:
        hooks = [(g, s) for g, s in config.iter_hooks() if selector is None or s.matches(selector)]
        if selector is not None and not hooks:
            raise NoSuchHookError(f"no hook with id or alias {selector!r}")
        return hooks

    def run(self, mode: FileSetMode, selector: str | None = None) -> RunReport:
        """Run the configured hooks and return the report.

        Raises:
            ConfigError: Before any hook runs, if the configuration is invalid.
            RepositoryLockedError: If another run holds the repository lock.
            NoSuchHookError: If `selector` matches no hook.
        """
        self.phase = None
        config = load_config(self.config_path)
        self._advance(RunPhase.LOADED)
        hooks = self.list_hooks(config, selector)

        with self.repository.lock():
            self._advance(RunPhase.RESOLVING)
            file_set = resolve_file_set(mode, self.repository)

            self._advance(RunPhase.EXECUTING)
            report = self._execute(config, hooks, file_set)
            self._advance(RunPhase.AGGREGATED)

            # A single-hook run has not checked the files for the other hooks.
            if report.verdict is Verdict.ALLOW and selector is None:
                self.repository.write_marker(take_marker(self.repository))
            self._advance(_FINAL_PHASE[report.verdict])

        logger.info("run finished: %s (%d hook(s), %d file(s))", report.verdict.value, len(report.results), len(file_set))
        return report

    def _execute(self, config: Configuration, hooks: list[tuple[HookGroup, HookSpec]], file_set: FileSet) -> RunReport:
        processes = ProcessGroup()
        executor = HookExecutor(self.repository, config, processes, self.timeout)
        aggregator = Aggregator(expected=len(hooks))

        adapters: list[HookAdapter | None] = []
        pending: set[int] = set()
        for index, (group, spec) in enumerate(hooks):
            try:
                adapters.append(executor.resolve(group, spec))
                pending.add(index)
            except HookError as e:
                adapters.append(None)
                aggregator.add(index, executor.failure(group, spec, str(e)))

        aborted = False
        with ThreadPoolExecutor(max_workers=self.concurrency) as pool:
            try:
                for wave in plan_waves(adapters):
                    futures = {}
                    for index in wave:
                        if index not in pending:
                            continue
                        group, spec = hooks[index]
                        futures[pool.submit(executor.execute, group, spec, file_set, adapters[index])] = index
                    for future in as_completed(futures):
                        aggregator.add(futures[future], future.result())
            except KeyboardInterrupt:
                logger.warning("interrupted, terminating running hooks")
                aborted = True
                processes.terminate_all()
                pool.shutdown(wait=False, cancel_futures=True)

        return aggregator.finalize(file_set.mode, len(file_set), aborted=aborted)
