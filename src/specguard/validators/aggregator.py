"""Status aggregation rules shared by validators and the runner.

All functions here are pure: they fold statuses, checks or recommendation
lists without touching the filesystem.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from specguard.validators.base import CheckResult, CheckStatus, Status

OverallStatus = Literal["PASS", "WARNING", "FAIL", "ERROR", "UNKNOWN"]

# Higher rank wins when folding statuses together
STATUS_RANK: dict[str, int] = {
    "PASS": 0,
    "WARNING": 1,
    "FAIL": 2,
    "ERROR": 3,
}


@dataclass(frozen=True)
class Summary:
    """Straight tally of check statuses.

    Attributes:
        total: Number of checks counted.
        passed: Checks with PASS status.
        warnings: Checks with WARNING status.
        failed: Checks with FAIL or ERROR status.
    """

    total: int = 0
    passed: int = 0
    warnings: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for JSON output."""
        return {
            "total": self.total,
            "passed": self.passed,
            "warnings": self.warnings,
            "failed": self.failed,
        }


@dataclass(frozen=True)
class Aggregate:
    """Result of folding a list of checks.

    Attributes:
        status: Worst status among the checks (PASS for an empty list).
        summary: Tally of the check statuses.
        recommendations: Non-null recommendations in check order.
    """

    status: Status
    summary: Summary
    recommendations: tuple[str, ...]


def worst_status(statuses: Iterable[str]) -> Status:
    """Return the worst status from an iterable of statuses.

    FAIL beats WARNING beats PASS; ERROR outranks everything. An empty
    iterable yields PASS.

    Args:
        statuses: Status strings to fold.

    Returns:
        The highest-ranked status.
    """
    worst: Status = "PASS"
    for status in statuses:
        if STATUS_RANK[status] > STATUS_RANK[worst]:
            worst = status  # type: ignore[assignment]
    return worst


def tally(statuses: Iterable[str]) -> Summary:
    """Count statuses into a Summary."""
    total = passed = warnings = failed = 0
    for status in statuses:
        total += 1
        if status == "PASS":
            passed += 1
        elif status == "WARNING":
            warnings += 1
        else:
            failed += 1
    return Summary(total=total, passed=passed, warnings=warnings, failed=failed)


def aggregate(checks: Sequence[CheckResult]) -> Aggregate:
    """Fold a list of checks into one status, summary and recommendation list.

    Recommendations are not deduplicated here; that happens across
    validators in the runner.

    Args:
        checks: Check results in the order they were produced.

    Returns:
        Aggregate with the worst status, the tally and the recommendations.
    """
    statuses = [check.status for check in checks]
    recommendations = tuple(
        check.details.recommendation
        for check in checks
        if check.details.recommendation is not None
    )
    return Aggregate(
        status=worst_status(statuses),
        summary=tally(statuses),
        recommendations=recommendations,
    )


def overall_status(passed: int, warnings: int, failed: int) -> OverallStatus:
    """Derive the run-level status from validator counts.

    Args:
        passed: Validators that passed.
        warnings: Validators that warned.
        failed: Validators that failed or errored.

    Returns:
        FAIL, WARNING or PASS, or UNKNOWN when nothing ran.
    """
    if failed > 0:
        return "FAIL"
    if warnings > 0:
        return "WARNING"
    if passed > 0:
        return "PASS"
    return "UNKNOWN"


def dedupe_recommendations(recommendations: Iterable[str]) -> list[str]:
    """Drop repeated recommendations, keeping first-seen order."""
    seen: set[str] = set()
    unique: list[str] = []
    for recommendation in recommendations:
        if recommendation not in seen:
            seen.add(recommendation)
            unique.append(recommendation)
    return unique


def status_for_score(score: float, pass_at: float, warn_at: float) -> CheckStatus:
    """Map a percentage onto PASS/WARNING/FAIL bands.

    Args:
        score: Percentage between 0 and 100.
        pass_at: Minimum score for PASS.
        warn_at: Minimum score for WARNING.

    Returns:
        Status for the score.
    """
    if score >= pass_at:
        return "PASS"
    if score >= warn_at:
        return "WARNING"
    return "FAIL"
