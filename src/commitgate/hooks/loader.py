from __future__ import annotations

import logging
import sys
from pathlib import Path
from importlib.metadata import entry_points

from ..config import Configuration, HookGroup, HookSpec
from .adapters import CommandAdapter
from .base import HookAdapter, HookError
from .filesystem_adapter import wrap_local_hook

logger = logging.getLogger(__name__)

ENTRYPOINT_GROUP = "commitgate.adapters"


def _fixer(hook_id: str, types: tuple[str, ...] = ("text",), mutates: bool = False) -> CommandAdapter:
    return CommandAdapter(
        name=hook_id,
        entry=(sys.executable, "-m", "commitgate.hooks.fixers", hook_id),
        types=types,
        mutates=mutates,
    )


def _python_tool(
    hook_id: str, module: str, args: tuple[str, ...] = (), mutates: bool = False, types: tuple[str, ...] = ("python",)
) -> CommandAdapter:
    return CommandAdapter(
        name=hook_id,
        entry=(module.split(".")[0].replace("_", "-"),),
        args=args,
        types=types,
        mutates=mutates,
        language="python",
        module=module,
    )


BUILTIN_ADAPTERS: dict[str, CommandAdapter] = {
    "trailing-whitespace": _fixer("trailing-whitespace", mutates=True),
    "end-of-file-fixer": _fixer("end-of-file-fixer", mutates=True),
    "check-yaml": _fixer("check-yaml", types=("yaml",)),
    "check-toml": _fixer("check-toml", types=("toml",)),
    "check-json": _fixer("check-json", types=("json",)),
    "check-merge-conflict": _fixer("check-merge-conflict"),
    "check-added-large-files": _fixer("check-added-large-files", types=("file",)),
    "black": _python_tool("black", "black", mutates=True),
    "isort": _python_tool("isort", "isort", mutates=True),
    "flake8": _python_tool("flake8", "flake8"),
    "ruff": _python_tool("ruff", "ruff", args=("check", "--force-exclude")),
    "ruff-format": _python_tool("ruff-format", "ruff", args=("format", "--force-exclude"), mutates=True),
    "pyupgrade": _python_tool("pyupgrade", "pyupgrade", mutates=True),
    "django-upgrade": _python_tool("django-upgrade", "django_upgrade", mutates=True),
}


def _load_entrypoint(spec: HookSpec, group: str = ENTRYPOINT_GROUP) -> HookAdapter | CommandAdapter | None:
    """Find a third-party adapter registered for `spec.id`.

    An entry point may name a CommandAdapter template or a factory taking the
    HookSpec and returning any HookAdapter. CommandAdapter results from either
    form still get the hook's own scope and arguments applied by the caller.
    """
    for ep in entry_points(group=group):
        if ep.name != spec.id:
            continue
        try:
            obj = ep.load()
        except Exception:
            logger.warning("failed to load adapter entry point %s", ep.name, exc_info=True)
            return None

        if isinstance(obj, CommandAdapter):
            return obj
        if callable(obj):
            try:
                inst = obj(spec)
            except Exception as e:
                logger.warning("adapter factory %s failed", ep.name, exc_info=True)
                raise HookError(f"adapter factory for {spec.id!r} failed: {e}") from e
            if isinstance(inst, HookAdapter):
                return inst
        logger.warning("entry point %s did not provide a hook adapter", ep.name)
        return None
    return None


def resolve_adapter(group: HookGroup, spec: HookSpec, config: Configuration, root: Path) -> HookAdapter | None:
    """Find the adapter that runs `spec`.

    Local hooks come from their own entry; other ids are looked up in the
    `commitgate.adapters` entry points first, then the built-in catalogue.
    Returns None for unknown ids.

    Raises:
        HookError: If a local entry is unusable or an adapter factory fails.
    """
    if group.is_local:
        return wrap_local_hook(spec, root, config.default_language_version)

    adapter = _load_entrypoint(spec) or BUILTIN_ADAPTERS.get(spec.id)
    if adapter is None:
        logger.debug("no adapter for hook id %s from %s", spec.id, group.repo)
        return None
    if isinstance(adapter, CommandAdapter):
        return adapter.configure(spec, config.default_language_version, root)
    return adapter


def known_hook_ids() -> list[str]:
    """Ids the built-in catalogue and installed entry points can run."""
    ids = set(BUILTIN_ADAPTERS)
    ids.update(ep.name for ep in entry_points(group=ENTRYPOINT_GROUP))
    return sorted(ids)
