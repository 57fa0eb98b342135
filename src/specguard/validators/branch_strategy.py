"""Branch strategy validator.

Validates branch naming, branch hygiene, commit message conventions and
main-branch workflow through a VersionControl collaborator. All queries are
read-only.

Checks:
- Branch Naming: names follow main/develop/feature/hotfix/release/bugfix patterns
- Branch Structure: main branch exists, local branches are pushed, no stale branches
- Feature Branches: feature branches correspond to spec directories
- Commit History: conventional commit subjects, subject length, no merges on feature branches
- Main Branch Protection: no uncommitted work or direct commits on main
- Spec Branch Alignment: active specs have a feature branch
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from specguard.config import DEFAULT_SPECS_DIR, Thresholds
from specguard.validators.base import BaseValidator, CheckResult, Finding, IssueDetails
from specguard.validators.git_helper import (
    GitRepository,
    NotAGitRepositoryError,
    VersionControl,
    is_git_repository,
)
from specguard.validators.markdown_parser import DATED_SPEC_PATTERN, list_spec_directories
from specguard.validators.path_filter import read_text

logger = logging.getLogger(__name__)

VALID_BRANCH_PATTERNS = [
    re.compile(r"^main$"),
    re.compile(r"^master$"),
    re.compile(r"^develop$"),
    re.compile(r"^feature/[a-z0-9-]+$"),
    re.compile(r"^hotfix/[a-z0-9-]+$"),
    re.compile(r"^release/[a-z0-9.-]+$"),
    re.compile(r"^bugfix/[a-z0-9-]+$"),
]

CONVENTIONAL_COMMIT_PATTERN = re.compile(
    r"^(feat|fix|docs|style|refactor|test|chore|perf)(\(.+\))?: .+"
)

MAIN_BRANCHES = ("main", "master")
REMOTE_PREFIX = "origin/"
ACTIVE_STATUS_MARKERS = ("**Current Status**: Active", "**Current Status**: In Progress")


def _strip_remote(branch: str) -> str:
    return branch[len(REMOTE_PREFIX):] if branch.startswith(REMOTE_PREFIX) else branch


def _spec_slug(spec_dir_name: str) -> str:
    return DATED_SPEC_PATTERN.sub("", spec_dir_name)


def suggest_branch_name(name: str) -> str:
    """Suggest a convention-following branch name.

    Accepts either an existing branch name or a spec directory name
    (the YYYY-MM-DD- prefix is dropped).

    Examples:
        >>> suggest_branch_name("Fix_Login")
        'bugfix/fix-login'
        >>> suggest_branch_name("2024-01-15-user-auth")
        'feature/user-auth'
    """
    base = _spec_slug(_strip_remote(name))
    lowered = base.lower()
    slug = re.sub(r"[^a-z0-9]+", "-", lowered.split("/", 1)[-1]).strip("-")

    if "feat" in lowered:
        prefix = "feature"
    elif "fix" in lowered or "bug" in lowered:
        prefix = "bugfix"
    elif "hot" in lowered:
        prefix = "hotfix"
    else:
        prefix = "feature"
    return f"{prefix}/{slug}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BranchStrategyValidator(BaseValidator):
    """Validates git workflow conventions of a project.

    Attributes:
        vcs: Version-control collaborator. Defaults to a GitRepository on
            the project root.
        specs_dir: Spec directory location relative to the project root.
        now: Clock used for the stale branch window.
    """

    name = "branch-strategy"

    def __init__(
        self,
        project_root: Path,
        thresholds: Thresholds | None = None,
        vcs: VersionControl | None = None,
        specs_dir: str = DEFAULT_SPECS_DIR,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        super().__init__(project_root, thresholds)
        self.vcs = vcs
        self.specs_dir = specs_dir
        self.now = now
        self._branches: list[str] = []
        self._git_info: dict[str, Any] = {}

    @property
    def specs_path(self) -> Path:
        return self.project_root / self.specs_dir

    def _resolve_vcs(self) -> VersionControl:
        if self.vcs is not None:
            return self.vcs
        if not is_git_repository(self.project_root):
            raise NotAGitRepositoryError(self.project_root)
        self.vcs = GitRepository(self.project_root)
        return self.vcs

    def run_checks(self) -> list[CheckResult]:
        """Run branch checks.

        Raises:
            NotAGitRepositoryError: If the project root is not a git working
                tree and no collaborator was injected.
        """
        vcs = self._resolve_vcs()
        self._branches = vcs.list_branches()
        current = vcs.current_branch()
        spec_dirs = list_spec_directories(self.specs_path)

        checks = [
            self._check_naming(),
            self._check_structure(vcs),
            self._check_feature_branches(spec_dirs),
            self._check_commit_history(vcs, current),
            self._check_main_protection(vcs, current),
            self._check_spec_alignment(spec_dirs),
        ]

        self._git_info = {
            "current_branch": current,
            "total_branches": len(self._branches),
            "has_uncommitted_changes": vcs.has_uncommitted_changes(),
            "recent_commits": len(vcs.commit_log(self.thresholds.main_log_depth)),
        }
        return checks

    def stats(self) -> dict[str, Any]:
        return dict(self._git_info)

    def _main_branch(self) -> str | None:
        for name in MAIN_BRANCHES:
            if name in self._branches:
                return name
        for name in MAIN_BRANCHES:
            if REMOTE_PREFIX + name in self._branches:
                return REMOTE_PREFIX + name
        return None

    def _check_naming(self) -> CheckResult:
        violations: list[Finding] = []
        for branch in self._branches:
            name = _strip_remote(branch)
            if not any(p.match(name) for p in VALID_BRANCH_PATTERNS):
                violations.append(
                    Finding(
                        kind="branch-name",
                        text=name,
                        matches=(suggest_branch_name(name),),
                    )
                )

        total = len(self._branches)
        details = IssueDetails(
            issues=tuple(violations),
            recommendation=(
                "Rename branches to follow naming conventions "
                "(feature/, bugfix/, hotfix/, release/)"
                if violations
                else None
            ),
        )
        if violations:
            return CheckResult(
                "Branch Naming",
                "WARNING",
                f"{len(violations)} of {total} branches have naming issues",
                details,
            )
        return CheckResult(
            "Branch Naming", "PASS", f"All {total} branches follow naming conventions", details
        )

    def _check_structure(self, vcs: VersionControl) -> CheckResult:
        local = [b for b in self._branches if not b.startswith(REMOTE_PREFIX)]
        remote = {b for b in self._branches if b.startswith(REMOTE_PREFIX)}
        issues: list[Finding] = []

        if not any(m in b for b in self._branches for m in MAIN_BRANCHES):
            issues.append(Finding(kind="missing-main", text="No main or master branch found"))

        untracked = [
            b for b in local if REMOTE_PREFIX + b not in remote and b not in MAIN_BRANCHES
        ]
        if untracked:
            issues.append(
                Finding(
                    kind="untracked",
                    text="Local branches not pushed to remote",
                    matches=tuple(untracked),
                )
            )

        cutoff = self.now() - timedelta(days=self.thresholds.stale_branch_days)
        stale = [
            f"{name} ({date.date().isoformat()})"
            for name, date in sorted(vcs.branch_last_commit_dates().items())
            if name not in MAIN_BRANCHES and date < cutoff
        ]
        if stale:
            issues.append(
                Finding(kind="stale", text="Branches with no recent commits", matches=tuple(stale))
            )

        details = IssueDetails(
            issues=tuple(issues),
            recommendation=(
                "Clean up stale branches and push local branches to remote" if issues else None
            ),
        )
        if issues:
            return CheckResult(
                "Branch Structure",
                "WARNING",
                f"Found {len(issues)} branch structure issues",
                details,
            )
        return CheckResult("Branch Structure", "PASS", "Branch structure is well-organized", details)

    def _check_feature_branches(self, spec_dirs: list[Path]) -> CheckResult:
        features: list[str] = []
        for branch in self._branches:
            name = _strip_remote(branch)
            if ("feature/" in name or "feat/" in name) and name not in features:
                features.append(name)

        unaligned: list[Finding] = []
        for name in features:
            slug = name.split("/", 1)[-1]
            matching = [
                d.name for d in spec_dirs if slug in d.name or _spec_slug(d.name) in slug
            ]
            if not matching:
                unaligned.append(Finding(kind="feature-branch", text=name))

        details = IssueDetails(
            issues=tuple(unaligned),
            recommendation=(
                f"Ensure feature branches correspond to specs in {self.specs_dir}/"
                if unaligned
                else None
            ),
        )
        if not features:
            return CheckResult("Feature Branches", "PASS", "No feature branches to validate", details)

        aligned = len(features) - len(unaligned)
        message = f"{aligned} of {len(features)} feature branches aligned with specs"
        return CheckResult("Feature Branches", "WARNING" if unaligned else "PASS", message, details)

    def _check_commit_history(self, vcs: VersionControl, current: str | None) -> CheckResult:
        commits = vcs.commit_log(self.thresholds.commit_log_depth)
        limit = self.thresholds.commit_subject_max_length
        on_feature = current is not None and "feature/" in current
        issues: list[Finding] = []

        for commit in commits:
            subject = commit.subject
            if not CONVENTIONAL_COMMIT_PATTERN.match(subject):
                issues.append(Finding(kind="format", text=subject, file=commit.sha))
            if len(subject) > limit:
                issues.append(Finding(kind="length", text=subject[:50] + "...", file=commit.sha))
            if subject.startswith("Merge") and on_feature:
                issues.append(Finding(kind="merge", text=subject, file=commit.sha))

        details = IssueDetails(
            issues=tuple(issues),
            recommendation=(
                f"Follow conventional commit format and keep messages under {limit} characters"
                if issues
                else None
            ),
        )
        if issues:
            return CheckResult(
                "Commit History",
                "WARNING",
                f"{len(issues)} issues in {len(commits)} recent commits",
                details,
            )
        return CheckResult(
            "Commit History",
            "PASS",
            f"All {len(commits)} recent commits follow conventions",
            details,
        )

    def _check_main_protection(self, vcs: VersionControl, current: str | None) -> CheckResult:
        main = self._main_branch()
        if main is None:
            return CheckResult(
                "Main Branch Protection",
                "FAIL",
                "No main branch found",
                IssueDetails(recommendation="Create a main branch and protect it"),
            )

        issues: list[Finding] = []
        if current == _strip_remote(main) and vcs.has_uncommitted_changes():
            issues.append(
                Finding(kind="uncommitted", text="Uncommitted changes detected on main branch")
            )

        direct = [
            commit
            for commit in vcs.commit_log(self.thresholds.main_log_depth, main)
            if not commit.subject.startswith("Merge")
            and "pull request" not in commit.subject
            and "PR #" not in commit.subject
        ]
        if direct:
            issues.append(
                Finding(
                    kind="direct-commit",
                    text="Direct commits to main branch detected",
                    matches=tuple(c.sha for c in direct),
                )
            )

        details = IssueDetails(
            issues=tuple(issues),
            recommendation=(
                "Use feature branches for all changes, merge via pull requests" if issues else None
            ),
        )
        if issues:
            return CheckResult(
                "Main Branch Protection",
                "WARNING",
                f"{len(issues)} main branch protection issues found",
                details,
            )
        return CheckResult(
            "Main Branch Protection", "PASS", "Main branch protection practices followed", details
        )

    def _check_spec_alignment(self, spec_dirs: list[Path]) -> CheckResult:
        if not self.specs_path.is_dir():
            return CheckResult(
                "Spec Branch Alignment",
                "PASS",
                "No specs directory found - alignment not applicable",
            )

        features = [
            _strip_remote(b).replace("feature/", "", 1)
            for b in self._branches
            if "feature/" in b
        ]
        issues: list[Finding] = []
        for spec_dir in spec_dirs:
            slug = _spec_slug(spec_dir.name)
            if any(slug in f or f in slug for f in features):
                continue
            status = read_text(spec_dir / "status.md")
            if any(marker in status for marker in ACTIVE_STATUS_MARKERS):
                issues.append(
                    Finding(
                        kind="spec-without-branch",
                        text=spec_dir.name,
                        matches=(suggest_branch_name(spec_dir.name),),
                    )
                )

        details = IssueDetails(
            issues=tuple(issues),
            recommendation=(
                "Create feature branches for active specs following naming convention"
                if issues
                else None
            ),
        )
        if issues:
            logger.debug("Active specs without branches: %s", [i.text for i in issues])
            return CheckResult(
                "Spec Branch Alignment",
                "WARNING",
                f"{len(issues)} specs missing corresponding feature branches",
                details,
            )
        return CheckResult(
            "Spec Branch Alignment",
            "PASS",
            f"All {len(spec_dirs)} specs properly aligned with branches",
            details,
        )
