"""Thin helpers around the git command line."""

from __future__ import annotations

import os
import subprocess

__all__ = ["GitError", "ensure_branch", "commit_all", "status", "current_branch", "is_repo"]


class GitError(Exception):
    """Raised when a git command cannot be run or fails."""


def _describe(returncode: int) -> str:
    if returncode < 0:
        return f"signal: {-returncode}"
    return f"exit status {returncode}"


def _run(work_dir: str | os.PathLike[str], *args: str, capture: bool) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args],
        cwd=work_dir,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE if capture else subprocess.DEVNULL,
        stderr=subprocess.STDOUT if capture else subprocess.DEVNULL,
        text=True,
        check=False,
    )


def _checked(
    context: str, work_dir: str | os.PathLike[str], *args: str, capture: bool = False
) -> str:
    try:
        proc = _run(work_dir, *args, capture=capture)
    except OSError as exc:
        raise GitError(f"{context}: {exc}") from exc
    if proc.returncode != 0:
        raise GitError(f"{context}: {_describe(proc.returncode)}")
    return (proc.stdout or "").strip()


def ensure_branch(work_dir: str | os.PathLike[str], branch_name: str) -> None:
    """Check out ``branch_name``, creating it from the current state if missing."""
    existing = _checked("git branch list", work_dir, "branch", "--list", branch_name, capture=True)
    if not existing:
        _checked(f"create branch {branch_name}", work_dir, "checkout", "-b", branch_name)
        return
    _checked(f"git checkout {branch_name}", work_dir, "checkout", branch_name)


def commit_all(work_dir: str | os.PathLike[str], message: str) -> None:
    """Stage everything and commit it; do nothing when there is nothing staged."""
    _checked("git add", work_dir, "add", "-A")
    try:
        diff = _run(work_dir, "diff", "--cached", "--quiet", capture=False)
        if diff.returncode == 0:
            return
    except OSError:
        pass
    try:
        proc = _run(work_dir, "commit", "-m", message, capture=True)
    except OSError as exc:
        raise GitError(f"git commit: {exc}") from exc
    if proc.returncode != 0:
        output = (proc.stdout or "").strip()
        raise GitError(f"git commit: {output}: {_describe(proc.returncode)}")


def status(work_dir: str | os.PathLike[str]) -> str:
    """Return ``git status --short --branch`` output."""
    return _checked("git status", work_dir, "status", "--short", "--branch", capture=True)


def current_branch(work_dir: str | os.PathLike[str]) -> str:
    """Return the name of the checked-out branch."""
    return _checked("git branch", work_dir, "rev-parse", "--abbrev-ref", "HEAD", capture=True)


def is_repo(work_dir: str | os.PathLike[str]) -> bool:
    """Return True if ``work_dir`` lies inside a git repository."""
    try:
        return _run(work_dir, "rev-parse", "--git-dir", capture=False).returncode == 0
    except OSError:
        return False