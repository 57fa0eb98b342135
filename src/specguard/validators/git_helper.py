"""Git utilities for the branch strategy validator.

Read-only queries against a repository: branches, current branch, commit
log, uncommitted changes and per-branch last commit dates. Commands that
fail (git missing, not a repository, unknown branch) yield empty results
rather than exceptions.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol


class NotAGitRepositoryError(RuntimeError):
    """Raised when a directory is not inside a git working tree."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Not a Git repository: {path}")


@dataclass(frozen=True)
class Commit:
    """One commit from the log.

    Attributes:
        sha: Abbreviated commit hash.
        subject: First line of the commit message.
    """

    sha: str
    subject: str


class VersionControl(Protocol):
    """Queries the branch strategy validator needs from version control."""

    def list_branches(self) -> list[str]: ...

    def current_branch(self) -> str | None: ...

    def commit_log(self, count: int, branch: str | None = None) -> list[Commit]: ...

    def has_uncommitted_changes(self) -> bool: ...

    def branch_last_commit_dates(self) -> dict[str, datetime]: ...


def is_git_repository(path: Path) -> bool:
    """Check whether path is inside a git working tree.

    Args:
        path: Directory to check.

    Returns:
        True if git reports a work tree, False otherwise (including when git
        is not installed).
    """
    if (path / ".git").exists():
        return True
    try:
        result = subprocess.run(
            ["git", "-C", str(path), "rev-parse", "--is-inside-work-tree"],
            capture_output=True,
            text=True,
            check=False,
        )
    except (subprocess.SubprocessError, OSError):
        return False
    return result.returncode == 0 and result.stdout.strip() == "true"


class GitRepository:
    """VersionControl implementation backed by the git command line.

    Attributes:
        root: Working tree the commands run in.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def _git(self, *args: str) -> str | None:
        """Run a git command in the repository.

        Returns:
            Stripped stdout, or None if the command failed.
        """
        try:
            result = subprocess.run(
                ["git", "-C", str(self.root), *args],
                capture_output=True,
                text=True,
                check=False,
            )
        except (subprocess.SubprocessError, OSError):
            return None

        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def list_branches(self) -> list[str]:
        """List local and remote branches.

        Remote branches are reported as "origin/name"; the symbolic
        "origin/HEAD" entry is dropped.

        Returns:
            Branch names in git's order.
        """
        output = self._git("branch", "-a", "--format=%(refname:short)")
        if not output:
            return []

        branches: list[str] = []
        for line in output.splitlines():
            name = line.strip()
            if not name or name.endswith("/HEAD") or name.startswith("(HEAD"):
                continue
            if name.startswith("remotes/"):
                name = name[len("remotes/"):]
            branches.append(name)
        return branches

    def current_branch(self) -> str | None:
        """Name of the checked-out branch, or None when detached or unknown."""
        output = self._git("rev-parse", "--abbrev-ref", "HEAD")
        if not output or output == "HEAD":
            return None
        return output

    def commit_log(self, count: int, branch: str | None = None) -> list[Commit]:
        """Most recent commits, newest first.

        Args:
            count: Maximum number of commits.
            branch: Branch to read. Defaults to the current branch.

        Returns:
            Commits with abbreviated hash and subject.
        """
        args = ["log", f"-n{count}", "--format=%h%x09%s"]
        if branch:
            args.append(branch)
        output = self._git(*args)
        if not output:
            return []

        commits: list[Commit] = []
        for line in output.splitlines():
            sha, _, subject = line.partition("\t")
            commits.append(Commit(sha=sha, subject=subject))
        return commits

    def has_uncommitted_changes(self) -> bool:
        """True when the working tree or index has changes."""
        output = self._git("status", "--porcelain")
        return bool(output)

    def branch_last_commit_dates(self) -> dict[str, datetime]:
        """Last commit date for every local branch.

        Returns:
            Mapping of branch name to timezone-aware commit datetime.
        """
        output = self._git(
            "for-each-ref",
            "--format=%(refname:short)%09%(committerdate:iso-strict)",
            "refs/heads",
        )
        if not output:
            return {}

        dates: dict[str, datetime] = {}
        for line in output.splitlines():
            name, _, timestamp = line.partition("\t")
            timestamp = timestamp.strip()
            if timestamp.endswith("Z"):
                timestamp = timestamp[:-1] + "+00:00"
            try:
                dates[name] = datetime.fromisoformat(timestamp)
            except ValueError:
                continue
        return dates
