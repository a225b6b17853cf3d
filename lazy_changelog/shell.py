"""Shell and git utilities.

Provides simple wrappers around subprocess calls for running git and the
remote platform CLIs, plus the output formatting helpers used across the
changelog run.
"""

from __future__ import annotations

import os
import subprocess
import sys

from .exceptions import GitError, RemoteReleaseError


def git(*args: str, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "rev-parse", "HEAD").
        check: If True (default), raise GitError on non-zero exit. Set to
               False for commands that may legitimately fail (e.g., tag lookup).

    Returns:
        Stripped stdout from the git command.
    """
    result = subprocess.run(["git", *args], capture_output=True, text=True)
    if check and result.returncode != 0:
        raise GitError(
            f"git {' '.join(args)} failed with exit code {result.returncode}",
            stderr=result.stderr,
        )
    return result.stdout.strip()


def run(*args: str, check: bool = True) -> subprocess.CompletedProcess[bytes]:
    """Run an arbitrary shell command.

    Unlike git(), this doesn't capture output - it streams directly to
    the terminal so users can see what the remote CLI reports.

    Args:
        *args: Command and arguments (e.g., "gh", "release", "create").
        check: If True (default), raise on non-zero exit.

    Returns:
        CompletedProcess with returncode for checking success.
    """
    return subprocess.run(args, check=check)


def is_ci() -> bool:
    """True when running unattended (any non-empty, non-false CI variable)."""
    value = os.environ.get("CI", "")
    return value.lower() not in ("", "0", "false")


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of the changelog run in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def warn(msg: str, *details: str) -> None:
    """Print a warning, with optional indented detail lines, to stderr."""
    print(f"WARNING: {msg}", file=sys.stderr)
    for line in details:
        print(f"  {line}", file=sys.stderr)


def gh(*args: str, check: bool = True) -> str:
    """Run a GitHub CLI command and return stdout.

    Authentication is left to gh itself (``gh auth login`` or GH_TOKEN).
    """
    return _remote_cli("gh", args, check)


def glab(*args: str, check: bool = True) -> str:
    """Run a GitLab CLI command and return stdout."""
    return _remote_cli("glab", args, check)


def _remote_cli(tool: str, args: tuple[str, ...], check: bool) -> str:
    try:
        result = subprocess.run([tool, *args], capture_output=True, text=True)
    except FileNotFoundError as e:
        raise RemoteReleaseError(f"{tool} not found. Install it and authenticate first.") from e
    if check and result.returncode != 0:
        raise RemoteReleaseError(
            f"{tool} {args[0] if args else ''} failed with exit code {result.returncode}: "
            f"{result.stderr.strip()}"
        )
    return result.stdout.strip()
