#!/usr/bin/env python3
"""
Commitgate CLI

Command-line interface for installing the git pre-commit gate and running
configured hooks.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import DEFAULT_CONFIG_NAME, ConfigError, load_config, sample_config
from .fileset import FileSetMode
from .hooks import NoSuchHookError, Orchestrator, known_hook_ids
from .report import Verdict, render_report
from .repository import GitRepository, RepositoryError
from .settings import RunSettings, SettingsError

EXIT_OK = 0
EXIT_BLOCKED = 1
EXIT_CONFIG_ERROR = 2
EXIT_REPOSITORY_ERROR = 3
EXIT_ABORTED = 130

HOOK_MARKER = "# commitgate-managed hook"

VERDICT_EXIT_CODES = {
    Verdict.ALLOW: EXIT_OK,
    Verdict.BLOCK: EXIT_BLOCKED,
    Verdict.ABORTED: EXIT_ABORTED,
}


def hook_script(python: str = sys.executable) -> str:
    """Content of the .git/hooks/pre-commit script."""
    return f'''#!{python}
{HOOK_MARKER}
"""
Pre-commit gate installed by commitgate.

Runs the hooks from .pre-commit-config.yaml on files changed since the last
successful run and rejects the commit when any hook fails or rewrites files.
"""

import sys

try:
    from commitgate.cli import main
except ImportError as e:
    print(f"❌ Failed to import commitgate: {{e}}", file=sys.stderr)
    print("Install with: pip install commitgate", file=sys.stderr)
    sys.exit(1)

sys.exit(main(["hook-impl"]))
'''


def _is_ours(path: Path) -> bool:
    try:
        return HOOK_MARKER in path.read_text(errors="replace")
    except OSError:
        return False


def install_command(args) -> int:
    """Install the pre-commit gate into a git repository."""
    try:
        repository = GitRepository.discover(Path(args.repo) if args.repo else None)
        hooks_dir = repository.hooks_dir()
    except RepositoryError as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_REPOSITORY_ERROR

    print(f"📦 Installing commitgate to {repository.root}")

    hooks_dir.mkdir(parents=True, exist_ok=True)
    hook_path = hooks_dir / "pre-commit"
    if hook_path.exists() and not _is_ours(hook_path) and not args.overwrite:
        print(f"❌ {hook_path} exists and was not written by commitgate", file=sys.stderr)
        print("   Re-run with --overwrite to replace it.", file=sys.stderr)
        return EXIT_BLOCKED

    with open(hook_path, "w") as f:
        f.write(hook_script())
    hook_path.chmod(0o755)  # git only runs executable hooks
    print(f"  ✅ Installed {hook_path}")

    if not (repository.root / DEFAULT_CONFIG_NAME).exists():
        print(f"  ⚠️  No {DEFAULT_CONFIG_NAME} yet")
        print(f"     Create one: commitgate sample-config > {DEFAULT_CONFIG_NAME}")
    return EXIT_OK


def uninstall_command(args) -> int:
    """Remove the pre-commit gate if commitgate installed it."""
    try:
        repository = GitRepository.discover(Path(args.repo) if args.repo else None)
        hook_path = repository.hooks_dir() / "pre-commit"
    except RepositoryError as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_REPOSITORY_ERROR

    if not hook_path.exists():
        print("Nothing to uninstall.")
        return EXIT_OK
    if not _is_ours(hook_path):
        print(f"❌ {hook_path} was not written by commitgate, leaving it alone", file=sys.stderr)
        return EXIT_BLOCKED
    hook_path.unlink()
    print(f"  ✅ Removed {hook_path}")
    return EXIT_OK


def _run_hooks(args, mode: FileSetMode, selector=None, from_hook=False) -> int:
    try:
        repository = GitRepository.discover()
        settings = RunSettings.load(repository.root)
    except (RepositoryError, SettingsError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_REPOSITORY_ERROR if isinstance(e, RepositoryError) else EXIT_CONFIG_ERROR

    config_path = Path(args.config) if args.config else settings.config_path
    orchestrator = Orchestrator(
        repository=repository,
        config_path=config_path,
        concurrency=args.concurrency or settings.concurrency,
        timeout=settings.timeout,
    )

    try:
        report = orchestrator.run(mode, selector)
    except ConfigError as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except NoSuchHookError as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except RepositoryError as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_REPOSITORY_ERROR
    except OSError as e:
        print(f"❌ cannot update repository state: {e}", file=sys.stderr)
        return EXIT_REPOSITORY_ERROR

    print(render_report(report, verbose=args.verbose))
    if from_hook and report.verdict.blocks:
        print("❌ Commit rejected by commitgate hooks", file=sys.stderr)
    return VERDICT_EXIT_CODES[report.verdict]


def run_command(args) -> int:
    """Run hooks on changed files, or on every tracked file with --all-files."""
    mode = FileSetMode.ALL_FILES if args.all_files else FileSetMode.CHANGED_ONLY
    return _run_hooks(args, mode, selector=args.hook)


def hook_impl_command(args) -> int:
    """Entry point for the installed git pre-commit hook."""
    return _run_hooks(args, FileSetMode.CHANGED_ONLY, from_hook=True)


def validate_config_command(args) -> int:
    """Load a configuration and report problems without running anything."""
    path = Path(args.path or args.config or DEFAULT_CONFIG_NAME)
    try:
        config = load_config(path)
    except ConfigError as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    known = set(known_hook_ids())
    for group, spec in config.iter_hooks():
        if not group.is_local and spec.id not in known:
            print(f"  ⚠️  {group.repo}: no adapter for hook id {spec.id!r}, it will fail when run")
    print(f"✅ {path}: {config.hook_count} hook(s) in {len(config.repos)} repo(s)")
    return EXIT_OK


def sample_config_command(args) -> int:
    print(sample_config(), end="")
    return EXIT_OK


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="commitgate",
        description="Run pre-commit hooks and gate commits on their results",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    common.add_argument("--config", help=f"Hook configuration file (default: {DEFAULT_CONFIG_NAME})")
    common.add_argument("--concurrency", type=_positive_int, help="Maximum hooks to run at once")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Install command
    install_parser = subparsers.add_parser(
        "install", parents=[common], help="Install the git pre-commit hook"
    )
    install_parser.add_argument("--repo", help="Repository path (default: current directory)")
    install_parser.add_argument("--overwrite", action="store_true", help="Replace an existing foreign hook")
    install_parser.set_defaults(func=install_command)

    uninstall_parser = subparsers.add_parser(
        "uninstall", parents=[common], help="Remove the git pre-commit hook"
    )
    uninstall_parser.add_argument("--repo", help="Repository path (default: current directory)")
    uninstall_parser.set_defaults(func=uninstall_command)

    # Run command
    run_parser = subparsers.add_parser("run", parents=[common], help="Run hooks")
    run_parser.add_argument("hook", nargs="?", help="Only run the hook with this id or alias")
    run_parser.add_argument(
        "--all-files", "-a", action="store_true", help="Run on all tracked files, not just changed ones"
    )
    run_parser.set_defaults(func=run_command)

    hook_impl_parser = subparsers.add_parser(
        "hook-impl", parents=[common], help="Run as the git pre-commit hook (internal)"
    )
    hook_impl_parser.set_defaults(func=hook_impl_command)

    validate_parser = subparsers.add_parser(
        "validate-config", parents=[common], help="Check a configuration file"
    )
    validate_parser.add_argument("path", nargs="?", help="Configuration file to check")
    validate_parser.set_defaults(func=validate_config_command)

    sample_parser = subparsers.add_parser(
        "sample-config", parents=[common], help="Print a starter configuration"
    )
    sample_parser.set_defaults(func=sample_config_command)

    # Parse arguments
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_BLOCKED

    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
