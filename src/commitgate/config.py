"""Hook configuration loading.

Reads a `.pre-commit-config.yaml`-shaped document into an immutable
`Configuration`: an ordered list of hook groups (one per source repository and
version pin), each carrying an ordered list of hook specs.

Usage:
    >>> from pathlib import Path
    >>> from commitgate.config import load_config
    >>>
    >>> config = load_config(Path(".pre-commit-config.yaml"))
    >>> for group, spec in config.iter_hooks():
    ...     print(f"{group.repo}@{group.rev}: {spec.id}")
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path
from typing import Iterator

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = ".pre-commit-config.yaml"
LOCAL_REPO = "local"

# pydantic error types that mean "a required value is absent or empty"
_MISSING_ERROR_TYPES = {"missing", "string_too_short", "too_short"}

# pre-commit keys that are accepted for compatibility and not acted on
IGNORED_TOP_LEVEL_KEYS = frozenset(
    {"ci", "default_install_hook_types", "default_stages", "fail_fast", "minimum_pre_commit_version"}
)
IGNORED_HOOK_KEYS = frozenset(
    {
        "additional_dependencies",
        "always_run",
        "description",
        "fail_fast",
        "log_file",
        "minimum_pre_commit_version",
        "require_serial",
        "stages",
        "verbose",
    }
)


class ConfigErrorKind(str, Enum):
    """Why a configuration document was rejected."""

    MALFORMED_DOCUMENT = "malformed_document"
    MISSING_FIELD = "missing_field"
    DUPLICATE_IDENTIFIER = "duplicate_identifier"


class ConfigError(Exception):
    """Raised when a configuration document cannot be loaded.

    Attributes:
        kind: The category of failure.
        path: Source of the document, when it came from a file.
    """

    def __init__(self, kind: ConfigErrorKind, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.path = path

    def __str__(self) -> str:
        message = super().__str__()
        if self.path is not None:
            return f"{self.path}: {message}"
        return message


def _drop_ignored(raw, ignored: frozenset[str], where: str):
    if not isinstance(raw, dict):
        return raw
    dropped = sorted(ignored.intersection(raw))
    if dropped:
        logger.debug("ignoring %s keys: %s", where, ", ".join(dropped))
    return {k: v for k, v in raw.items() if k not in ignored}


def _check_regex(value: str) -> str:
    try:
        re.compile(value)
    except re.error as e:
        raise ValueError(f"invalid regular expression {value!r}: {e}") from e
    return value


class HookSpec(BaseModel):
    """One check or formatter as declared in the configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    id: str = Field(min_length=1)
    alias: str | None = None
    name: str | None = None
    args: tuple[str, ...] = ()
    language_version: str | None = None

    # Scope overrides; unset fields fall back to the adapter's defaults.
    files: str | None = None
    exclude: str | None = None
    types: tuple[str, ...] | None = None
    types_or: tuple[str, ...] | None = None
    exclude_types: tuple[str, ...] | None = None

    # Whether the hook may rewrite files; unset means the adapter decides.
    mutates: bool | None = None

    # Only meaningful for `repo: local` hooks.
    entry: str | None = None
    language: str | None = None
    pass_filenames: bool = True

    @model_validator(mode="before")
    @classmethod
    def _ignore_pre_commit_keys(cls, data):
        return _drop_ignored(data, IGNORED_HOOK_KEYS, "hook")

    @field_validator("files", "exclude")
    @classmethod
    def _valid_pattern(cls, value: str | None) -> str | None:
        return None if value is None else _check_regex(value)

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def matches(self, selector: str) -> bool:
        """True if `selector` names this hook by id or alias."""
        return selector == self.id or (self.alias is not None and selector == self.alias)


class HookGroup(BaseModel):
    """Hooks sharing a source repository and version pin, in execution order."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    repo: str = Field(min_length=1)
    rev: str = Field(min_length=1)
    hooks: tuple[HookSpec, ...] = Field(min_length=1)

    @property
    def is_local(self) -> bool:
        return self.repo == LOCAL_REPO


class Configuration(BaseModel):
    """A loaded hook configuration. Never mutated during a run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    repos: tuple[HookGroup, ...]
    default_language_version: dict[str, str] = Field(default_factory=dict)
    files: str = ""
    exclude: str = "^$"

    @model_validator(mode="before")
    @classmethod
    def _ignore_pre_commit_keys(cls, data):
        return _drop_ignored(data, IGNORED_TOP_LEVEL_KEYS, "top-level")

    @field_validator("files", "exclude")
    @classmethod
    def _valid_pattern(cls, value: str) -> str:
        return _check_regex(value)

    def iter_hooks(self) -> Iterator[tuple[HookGroup, HookSpec]]:
        """Yield (group, spec) pairs in configuration order."""
        for group in self.repos:
            for spec in group.hooks:
                yield group, spec

    @property
    def hook_count(self) -> int:
        return sum(len(group.hooks) for group in self.repos)


def _format_validation_error(error: ValidationError) -> tuple[ConfigErrorKind, str]:
    details = []
    kind = ConfigErrorKind.MALFORMED_DOCUMENT
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        details.append(f"  - {loc}: {item['msg']}")
        if item["type"] in _MISSING_ERROR_TYPES:
            kind = ConfigErrorKind.MISSING_FIELD
    return kind, "invalid configuration:\n" + "\n".join(details)


def _check_groups(config: Configuration, path: Path | None) -> None:
    for index, group in enumerate(config.repos):
        seen: set[str] = set()
        for spec in group.hooks:
            if group.is_local and not spec.entry:
                raise ConfigError(
                    ConfigErrorKind.MISSING_FIELD,
                    f"repos.{index} ({group.repo}): local hook {spec.id!r} needs an entry",
                    path,
                )
            if spec.id in seen:
                raise ConfigError(
                    ConfigErrorKind.DUPLICATE_IDENTIFIER,
                    f"repos.{index} ({group.repo}): hook id {spec.id!r} is declared more than once",
                    path,
                )
            seen.add(spec.id)


def parse_config(text: str, path: Path | None = None) -> Configuration:
    """Parse and validate a configuration document.

    Raises:
        ConfigError: If the document is not valid YAML, does not match the
            schema, or repeats a hook id within one group.
    """
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(ConfigErrorKind.MALFORMED_DOCUMENT, f"invalid YAML: {e}", path) from e

    if raw is None:
        raise ConfigError(ConfigErrorKind.MISSING_FIELD, "configuration is empty", path)
    if not isinstance(raw, dict):
        raise ConfigError(
            ConfigErrorKind.MALFORMED_DOCUMENT,
            f"configuration must be a YAML mapping, got {type(raw).__name__}",
            path,
        )

    try:
        config = Configuration.model_validate(raw)
    except ValidationError as e:
        kind, message = _format_validation_error(e)
        raise ConfigError(kind, message, path) from e

    _check_groups(config, path)
    logger.debug("loaded %d hook(s) in %d group(s)", config.hook_count, len(config.repos))
    return config


def load_config(path: Path) -> Configuration:
    """Load a configuration document from disk."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(
            ConfigErrorKind.MALFORMED_DOCUMENT, f"cannot read configuration: {e.strerror or e}", path
        ) from e
    return parse_config(text, path)


def sample_config() -> str:
    """Return a starter configuration for a Python project."""
    return """\
# See https://pre-commit.com for the file format
default_language_version:
  python: python3
repos:
  - repo: https://github.com/pre-commit/pre-commit-hooks
    rev: v4.5.0
    hooks:
      - id: trailing-whitespace
      - id: end-of-file-fixer
      - id: check-yaml
      - id: check-added-large-files
  - repo: https://github.com/psf/black
    rev: 23.12.1
    hooks:
      - id: black
  - repo: https://github.com/pycqa/isort
    rev: 5.13.2
    hooks:
      - id: isort
        name: isort (python)
  - repo: https://github.com/pycqa/flake8
    rev: 7.0.0
    hooks:
      - id: flake8
"""
