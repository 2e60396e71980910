"""Subprocess bookkeeping for hook invocations.

Every hook process in a run is started through one `ProcessGroup`, so an
interrupted run can terminate whatever is still in flight.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from pathlib import Path

from .base import Invocation, InvocationError

logger = logging.getLogger(__name__)

TERMINATE_GRACE_SECONDS = 3.0


class ProcessGroup:
    def __init__(self) -> None:
        self._live: set[subprocess.Popen] = set()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def running(self) -> int:
        """Number of hook processes currently in flight."""
        with self._lock:
            return len(self._live)

    def run(self, argv: list[str], cwd: Path, timeout: float | None = None) -> Invocation:
        """Run `argv` to completion, capturing combined stdout and stderr.

        Raises:
            InvocationError: If the process cannot start, times out, or the
                group has been terminated.
        """
        with self._lock:
            if self._closed:
                raise InvocationError("run was cancelled before the hook started")
            try:
                proc = subprocess.Popen(
                    argv,
                    cwd=cwd,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    errors="replace",
                )
            except OSError as e:
                raise InvocationError(f"cannot start {argv[0]!r}: {e.strerror or e}") from e
            self._live.add(proc)

        logger.debug("started pid %d: %s", proc.pid, " ".join(argv[:4]))
        try:
            output, _ = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            proc.kill()
            proc.communicate()
            raise InvocationError(f"timed out after {timeout:g}s") from e
        finally:
            with self._lock:
                self._live.discard(proc)

        return Invocation(argv=tuple(argv), returncode=proc.returncode, output=output or "")

    def terminate_all(self) -> int:
        """Stop all in-flight processes and refuse new ones. Returns how many were stopped."""
        with self._lock:
            self._closed = True
            live = list(self._live)

        for proc in live:
            proc.terminate()
        for proc in live:
            try:
                proc.wait(timeout=TERMINATE_GRACE_SECONDS)
            except subprocess.TimeoutExpired:
                logger.warning("pid %d ignored SIGTERM, killing", proc.pid)
                proc.kill()
        if live:
            logger.info("terminated %d hook process(es)", len(live))
        return len(live)
