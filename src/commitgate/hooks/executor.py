from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field

from ..config import Configuration, HookGroup, HookSpec
from ..fileset import FileSet
from ..report import HookResult, Outcome
from ..repository import RepositoryState
from .base import HookAdapter, HookError
from .loader import resolve_adapter
from .process import ProcessGroup

logger = logging.getLogger(__name__)


@dataclass
class HookExecutor:
    """Runs one hook against a file set and classifies what happened.

    A hook is invoked at most once per run. Failures of any kind become a
    Failed result; nothing is retried.
    """

    repository: RepositoryState
    config: Configuration
    processes: ProcessGroup = field(default_factory=ProcessGroup)
    timeout: float | None = None

    def resolve(self, group: HookGroup, spec: HookSpec) -> HookAdapter | None:
        return resolve_adapter(group, spec, self.config, self.repository.root)

    def failure(self, group: HookGroup, spec: HookSpec, error: str, **extra) -> HookResult:
        return HookResult(
            hook_id=spec.id,
            name=spec.display_name,
            repo=group.repo,
            outcome=Outcome.FAILED,
            error=error,
            **extra,
        )

    def _in_global_scope(self, file_set: FileSet) -> list[str]:
        include = re.compile(self.config.files)
        exclude = re.compile(self.config.exclude)
        return [p for p in file_set if include.search(p) and not exclude.search(p)]

    def _fingerprints(self, files: list[str]) -> dict[str, str | None]:
        return {path: self.repository.fingerprint(path) for path in files}

    def execute(self, group: HookGroup, spec: HookSpec, file_set: FileSet, adapter: HookAdapter | None) -> HookResult:
        started = time.monotonic()
        if adapter is None:
            return self.failure(group, spec, f"no adapter available for hook id {spec.id!r}")

        selected = adapter.select(self._in_global_scope(file_set))
        if not selected:
            logger.debug("%s: no matching files, skipped", spec.id)
            return HookResult(hook_id=spec.id, name=spec.display_name, repo=group.repo, outcome=Outcome.SKIPPED)

        logger.info("running %s on %d file(s)", spec.id, len(selected))
        before = self._fingerprints(selected)
        try:
            invocation = adapter.invoke(selected, self.repository.root, self.processes, self.timeout)
        except HookError as e:
            logger.warning("%s could not run: %s", spec.id, e)
            return self.failure(group, spec, str(e), duration=time.monotonic() - started)
        except Exception as e:
            logger.exception("hook %s crashed", spec.id)
            return self.failure(group, spec, f"{type(e).__name__}: {e}", duration=time.monotonic() - started)

        after = self._fingerprints(selected)
        modified = tuple(p for p in selected if after[p] != before[p])
        if modified:
            outcome = Outcome.MODIFIED
        elif invocation.returncode == 0:
            outcome = Outcome.PASSED
        else:
            outcome = Outcome.FAILED

        return HookResult(
            hook_id=spec.id,
            name=spec.display_name,
            repo=group.repo,
            outcome=outcome,
            modified_files=modified,
            returncode=invocation.returncode,
            output=invocation.output,
            duration=time.monotonic() - started,
        )
