"""
Bundled file fixers and checkers.

Each fixer takes a list of paths and returns a process exit code: 0 when every
file was already fine, 1 when a file was rewritten or rejected. The
orchestrator runs them out of process like any other tool:

    python -m commitgate.hooks.fixers trailing-whitespace a.py b.txt
    python -m commitgate.hooks.fixers check-added-large-files --maxkb 200 big.bin
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Callable, Sequence

import yaml

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

DEFAULT_MAX_KB = 500
CONFLICT_PREFIXES = (b"<<<<<<< ", b"=======\n", b"=======\r\n", b">>>>>>> ")


def _split_ending(line: bytes) -> tuple[bytes, bytes]:
    for ending in (b"\r\n", b"\n", b"\r"):
        if line.endswith(ending):
            return line[: -len(ending)], ending
    return line, b""


def fix_trailing_whitespace(path: str) -> bool:
    """Strip spaces and tabs at the end of every line. Returns True if rewritten."""
    with open(path, "rb") as f:
        original = f.read()

    lines = []
    for line in original.splitlines(keepends=True):
        body, ending = _split_ending(line)
        lines.append(body.rstrip(b" \t") + ending)
    fixed = b"".join(lines)

    if fixed == original:
        return False
    with open(path, "wb") as f:
        f.write(fixed)
    return True


def fix_end_of_file(path: str) -> bool:
    """Make a non-empty file end with exactly one newline. Returns True if rewritten."""
    with open(path, "rb") as f:
        original = f.read()
    if not original:
        return False

    body = original.rstrip(b"\r\n")
    tail = original[len(body):]
    if not body:
        fixed = b""
    elif tail in (b"\n", b"\r\n", b"\r"):
        return False
    elif not tail:
        fixed = original + b"\n"
    else:
        fixed = body + (b"\r\n" if tail.startswith(b"\r\n") else tail[:1])

    with open(path, "wb") as f:
        f.write(fixed)
    return True


def check_yaml(path: str) -> str | None:
    try:
        with open(path, "rb") as f:
            for _ in yaml.safe_load_all(f):
                pass
    except yaml.YAMLError as e:
        return str(e)
    return None


def check_toml(path: str) -> str | None:
    try:
        with open(path, "rb") as f:
            tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        return str(e)
    return None


def check_json(path: str) -> str | None:
    try:
        with open(path, "rb") as f:
            json.load(f)
    except ValueError as e:
        return str(e)
    return None


def check_merge_conflict(path: str) -> str | None:
    with open(path, "rb") as f:
        for number, line in enumerate(f, start=1):
            if line.startswith(CONFLICT_PREFIXES):
                return f"merge conflict marker at line {number}"
    return None


def _run_fixer(fix: Callable[[str], bool], paths: Sequence[str]) -> int:
    status = 0
    for path in paths:
        if fix(path):
            print(f"Fixing {path}")
            status = 1
    return status


def _run_checker(check: Callable[[str], str | None], paths: Sequence[str]) -> int:
    status = 0
    for path in paths:
        problem = check(path)
        if problem:
            print(f"{path}: {problem}")
            status = 1
    return status


def check_added_large_files(paths: Sequence[str], max_kb: int = DEFAULT_MAX_KB) -> int:
    status = 0
    for path in paths:
        size_kb = os.path.getsize(path) / 1024
        if size_kb > max_kb:
            print(f"{path} ({size_kb:.0f} KB) exceeds {max_kb} KB.")
            status = 1
    return status


FIXERS: dict[str, Callable[[str], bool]] = {
    "trailing-whitespace": fix_trailing_whitespace,
    "end-of-file-fixer": fix_end_of_file,
}

CHECKERS: dict[str, Callable[[str], str | None]] = {
    "check-yaml": check_yaml,
    "check-toml": check_toml,
    "check-json": check_json,
    "check-merge-conflict": check_merge_conflict,
}

HOOK_IDS = (*FIXERS, *CHECKERS, "check-added-large-files")


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m commitgate.hooks.fixers")
    parser.add_argument("hook", choices=HOOK_IDS)
    parser.add_argument("--maxkb", type=int, default=DEFAULT_MAX_KB, help="size limit for check-added-large-files")
    parser.add_argument("filenames", nargs="*")
    args = parser.parse_args(argv)

    if args.hook in FIXERS:
        return _run_fixer(FIXERS[args.hook], args.filenames)
    if args.hook in CHECKERS:
        return _run_checker(CHECKERS[args.hook], args.filenames)
    return check_added_large_files(args.filenames, max_kb=args.maxkb)


if __name__ == "__main__":
    sys.exit(main())
