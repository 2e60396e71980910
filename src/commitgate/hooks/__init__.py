"""commitgate.hooks package - hook adapters, executor and orchestrator.

This package provides:
- HookAdapter: the capabilities a hook exposes (scope filter, invoke)
- CommandAdapter: adapter for any command-line tool
- loader: resolution of hook ids to adapters (local, entry points, built-ins)
- HookExecutor: runs one hook and classifies the outcome
- Orchestrator: runs a whole configuration and gates on the verdict
"""

from .adapters import CommandAdapter
from .base import HookAdapter, HookError, Invocation, InvocationError
from .executor import HookExecutor
from .loader import known_hook_ids, resolve_adapter
from .orchestrator import NoSuchHookError, Orchestrator
from .process import ProcessGroup

__all__ = [
    "CommandAdapter",
    "HookAdapter",
    "HookError",
    "HookExecutor",
    "Invocation",
    "InvocationError",
    "NoSuchHookError",
    "Orchestrator",
    "ProcessGroup",
    "known_hook_ids",
    "resolve_adapter",
]
