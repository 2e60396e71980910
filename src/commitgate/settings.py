"""
Project settings loader

Reads `[tool.*]` tables from pyproject.toml, with a local dev.pyproject.toml
merged over it when present. Tool tables (black, isort, flake8, ...) belong to
the hooks themselves; only `[tool.commitgate]` is interpreted here.
"""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .config import DEFAULT_CONFIG_NAME

logger = logging.getLogger(__name__)

TOOL_NAME = "commitgate"


class SettingsError(Exception):
    """Raised when pyproject settings or their overrides are unusable."""


class SettingsLoader:
    """pyproject.toml loader with dev overrides."""

    def __init__(self, project_root: Path):
        self.project_root = project_root
        self.prod_config_path = project_root / 'pyproject.toml'
        self.dev_config_path = project_root / 'dev.pyproject.toml'
        self.config = self._load_merged_config()

    def _load_merged_config(self) -> Dict[str, Any]:
        prod_config = self._read(self.prod_config_path)
        dev_config = self._read(self.dev_config_path)
        if dev_config:
            logger.info("using local overrides from %s", self.dev_config_path.name)
        return self._deep_merge(prod_config, dev_config)

    def _read(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, 'rb') as f:
                return tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise SettingsError(f"failed to read {path}: {e}") from e

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get_tool_config(self, tool: str) -> Dict[str, Any]:
        """Get the `[tool.<tool>]` table (black, isort, commitgate, etc.)."""
        tools = self.config.get('tool', {})
        if not isinstance(tools, dict):
            raise SettingsError(f"[tool] must be a table, got {type(tools).__name__}")
        return tools.get(tool, {})


def get_env(key: str, default: str | None = None) -> str | None:
    """Get an override from the environment, ignoring empty values."""
    value = os.environ.get(key)
    if value:
        return value
    return default


def _as_int(name: str, value: Any, minimum: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise SettingsError(f"{name} must be an integer, got {value!r}") from e
    if number < minimum:
        raise SettingsError(f"{name} must be at least {minimum}, got {number}")
    return number


@dataclass(frozen=True)
class RunSettings:
    """Orchestrator settings resolved from pyproject.toml and the environment."""

    config_path: Path
    concurrency: int
    timeout: float | None = None

    @classmethod
    def load(cls, project_root: Path) -> RunSettings:
        table = SettingsLoader(project_root).get_tool_config(TOOL_NAME)
        if not isinstance(table, dict):
            raise SettingsError(f"[tool.{TOOL_NAME}] must be a table, got {type(table).__name__}")

        config = get_env("COMMITGATE_CONFIG", table.get("config", DEFAULT_CONFIG_NAME))
        config_path = Path(config)
        if not config_path.is_absolute():
            config_path = project_root / config_path

        concurrency = _as_int(
            "concurrency",
            get_env("COMMITGATE_CONCURRENCY", table.get("concurrency", os.cpu_count() or 1)),
            minimum=1,
        )

        timeout = get_env("COMMITGATE_TIMEOUT", table.get("timeout"))
        if timeout is not None:
            try:
                timeout = float(timeout)
            except (TypeError, ValueError) as e:
                raise SettingsError(f"timeout must be a number, got {timeout!r}") from e
            if timeout <= 0:
                raise SettingsError(f"timeout must be positive, got {timeout}")

        return cls(config_path=config_path, concurrency=concurrency, timeout=timeout)
