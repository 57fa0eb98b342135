"""Tests for specguard.validators.git_helper module."""

from __future__ import annotations

import subprocess
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

from specguard.validators.git_helper import (
    Commit,
    GitRepository,
    NotAGitRepositoryError,
    is_git_repository,
)


def _completed(stdout: str = "", returncode: int = 0) -> MagicMock:
    return MagicMock(returncode=returncode, stdout=stdout, stderr="")


class TestIsGitRepository:
    """Tests for is_git_repository function."""

    def test_dot_git_directory(self, tmp_path: Path) -> None:
        """Test a .git directory is enough without calling git."""
        (tmp_path / ".git").mkdir()

        with patch("specguard.validators.git_helper.subprocess.run") as mock_run:
            assert is_git_repository(tmp_path) is True
            mock_run.assert_not_called()

    @patch("specguard.validators.git_helper.subprocess.run")
    def test_inside_work_tree(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """Test git reporting a work tree."""
        mock_run.return_value = _completed("true\n")

        assert is_git_repository(tmp_path) is True

    @patch("specguard.validators.git_helper.subprocess.run")
    def test_not_a_repository(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """Test a non-zero exit from git."""
        mock_run.return_value = _completed("", returncode=128)

        assert is_git_repository(tmp_path) is False

    @patch("specguard.validators.git_helper.subprocess.run")
    def test_git_not_installed(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """Test a missing git binary."""
        mock_run.side_effect = FileNotFoundError("git")

        assert is_git_repository(tmp_path) is False

    def test_error_message(self, tmp_path: Path) -> None:
        """Test NotAGitRepositoryError carries the path."""
        error = NotAGitRepositoryError(tmp_path)

        assert str(error) == f"Not a Git repository: {tmp_path}"
        assert error.path == tmp_path


class TestGitRepository:
    """Tests for GitRepository queries."""

    @patch("specguard.validators.git_helper.subprocess.run")
    def test_list_branches(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """Test local and remote branches, without origin/HEAD."""
        mock_run.return_value = _completed("main\nfeature/login\norigin/HEAD\norigin/main\n")

        branches = GitRepository(tmp_path).list_branches()

        assert branches == ["main", "feature/login", "origin/main"]
        args = mock_run.call_args[0][0]
        assert args[:3] == ["git", "-C", str(tmp_path)]
        assert "branch" in args

    @patch("specguard.validators.git_helper.subprocess.run")
    def test_current_branch(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """Test current branch and detached HEAD."""
        repo = GitRepository(tmp_path)

        mock_run.return_value = _completed("feature/login\n")
        assert repo.current_branch() == "feature/login"

        mock_run.return_value = _completed("HEAD\n")
        assert repo.current_branch() is None

    @patch("specguard.validators.git_helper.subprocess.run")
    def test_commit_log(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """Test commit parsing and branch argument."""
        mock_run.return_value = _completed("abc1234\tfeat: add login\ndef5678\tfix: typo\n")

        commits = GitRepository(tmp_path).commit_log(10, "main")

        assert commits == [Commit("abc1234", "feat: add login"), Commit("def5678", "fix: typo")]
        args = mock_run.call_args[0][0]
        assert "-n10" in args
        assert args[-1] == "main"

    @patch("specguard.validators.git_helper.subprocess.run")
    def test_failed_command_is_empty(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """Test failing git commands yield empty results."""
        mock_run.return_value = _completed("", returncode=128)
        repo = GitRepository(tmp_path)

        assert repo.list_branches() == []
        assert repo.commit_log(5) == []
        assert repo.branch_last_commit_dates() == {}

    @patch("specguard.validators.git_helper.subprocess.run")
    def test_subprocess_error_is_empty(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """Test subprocess errors are absorbed."""
        mock_run.side_effect = subprocess.SubprocessError("boom")

        assert GitRepository(tmp_path).current_branch() is None

    @patch("specguard.validators.git_helper.subprocess.run")
    def test_uncommitted_changes(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """Test porcelain status output."""
        repo = GitRepository(tmp_path)

        mock_run.return_value = _completed(" M src/app.py\n")
        assert repo.has_uncommitted_changes() is True

        mock_run.return_value = _completed("")
        assert repo.has_uncommitted_changes() is False

    @patch("specguard.validators.git_helper.subprocess.run")
    def test_branch_last_commit_dates(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """Test ISO dates are parsed and bad lines skipped."""
        mock_run.return_value = _completed(
            "main\t2024-05-01T10:00:00+00:00\nold\t2024-01-01T00:00:00Z\nbroken\tnot-a-date\n"
        )

        dates = GitRepository(tmp_path).branch_last_commit_dates()

        assert dates == {
            "main": datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
            "old": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }
