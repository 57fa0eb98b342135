"""Base validator classes and models for the specguard validation framework.

Provides the check/report models every validator produces, the tagged
detail variants attached to checks as evidence, and the abstract validator
all six analyzers derive from.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, ClassVar, Literal

from specguard.config import Thresholds
from specguard.validators.aggregator import Summary, aggregate

CheckStatus = Literal["PASS", "WARNING", "FAIL"]
Status = Literal["PASS", "WARNING", "FAIL", "ERROR"]


@dataclass(frozen=True)
class Finding:
    """A single piece of evidence attached to a check.

    Attributes:
        kind: Short category of the finding (e.g. "secret", "missing-test").
        text: Human-readable description or the offending snippet.
        file: Optional path relative to the validated root.
        line: Optional 1-based line number within the file.
        severity: Optional severity hint ("high", "medium" or "low").
        matches: Keywords or identifiers supporting the finding.
    """

    kind: str
    text: str
    file: str | None = None
    line: int | None = None
    severity: str | None = None
    matches: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Finding:
        """Rebuild a Finding from its JSON form."""
        return cls(
            kind=data["kind"],
            text=data["text"],
            file=data.get("file"),
            line=data.get("line"),
            severity=data.get("severity"),
            matches=tuple(data.get("matches", ())),
        )


# -----------------------------------------------------------------------------
# Check details variants
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckDetails:
    """Evidence attached to a check. Plain variant carrying only a recommendation.

    Attributes:
        recommendation: Free-text advice, or None when nothing needs doing.
    """

    kind: ClassVar[str] = "message"

    recommendation: str | None = None

    def _computed(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output, tagged with the variant kind."""
        return {"kind": self.kind, **asdict(self), **self._computed()}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> CheckDetails:
        """Rebuild the matching details variant from its JSON form.

        Unknown kinds fall back to the plain variant; derived counts present
        in the JSON are ignored since they are recomputed.
        """
        details_cls = DETAILS_TYPES.get(data.get("kind", "message"), CheckDetails)
        kwargs: dict[str, Any] = {}
        for f in fields(details_cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if isinstance(value, (list, tuple)):
                value = tuple(
                    Finding.from_dict(item) if isinstance(item, dict) else item for item in value
                )
            kwargs[f.name] = value
        return details_cls(**kwargs)


@dataclass(frozen=True)
class FileSizeDetails(CheckDetails):
    """Line counts measured by the File Size check.

    Attributes:
        files_checked: Number of files measured.
        lines: Line count of the largest file measured.
        limit: Limit that applied to that file.
        exception: Allowance that raised the limit, if any
            (e.g. "test file", "comment-heavy").
        oversized: Files over their limit.
    """

    kind: ClassVar[str] = "file-size"

    files_checked: int = 0
    lines: int = 0
    limit: int = 0
    exception: str | None = None
    oversized: tuple[Finding, ...] = ()


@dataclass(frozen=True)
class FindingsDetails(CheckDetails):
    """Violations found by a pattern-driven check.

    Attributes:
        violations: Offending locations.
        files_scanned: Number of files inspected.
    """

    kind: ClassVar[str] = "findings"

    violations: tuple[Finding, ...] = ()
    files_scanned: int = 0

    @property
    def violation_count(self) -> int:
        return len(self.violations)

    def _computed(self) -> dict[str, Any]:
        return {"violation_count": self.violation_count}


@dataclass(frozen=True)
class SqlInjectionDetails(FindingsDetails):
    """SQL injection findings plus whether parameterized queries were seen."""

    kind: ClassVar[str] = "sql-injection"

    has_parameterized_queries: bool = False


@dataclass(frozen=True)
class XssDetails(FindingsDetails):
    """XSS findings plus whether escaping/sanitizing helpers were seen."""

    kind: ClassVar[str] = "xss"

    has_xss_protection: bool = False


@dataclass(frozen=True)
class PresenceDetails(CheckDetails):
    """Whether files that need a safeguard actually carry one.

    Attributes:
        applicable: Files that triggered the check.
        covered: Applicable files where the safeguard was found.
        missing: Applicable files without the safeguard.
        evidence: Marker names that were detected.
    """

    kind: ClassVar[str] = "presence"

    applicable: tuple[str, ...] = ()
    covered: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()
    evidence: tuple[str, ...] = ()


@dataclass(frozen=True)
class RatioDetails(CheckDetails):
    """A percentage score over a set of items.

    Attributes:
        score: Percentage between 0 and 100.
        covered: Items meeting the bar.
        total: Items considered.
        missing: Names of the items that fell short.
    """

    kind: ClassVar[str] = "ratio"

    score: float = 0.0
    covered: int = 0
    total: int = 0
    missing: tuple[str, ...] = ()


@dataclass(frozen=True)
class RequirementDetails(CheckDetails):
    """Evidence search over spec requirements.

    Attributes:
        implemented: Requirements with evidence, each carrying the matches.
        missing: Requirements without evidence.
    """

    kind: ClassVar[str] = "requirements"

    implemented: tuple[Finding, ...] = ()
    missing: tuple[Finding, ...] = ()

    @property
    def total(self) -> int:
        return len(self.implemented) + len(self.missing)

    @property
    def implemented_count(self) -> int:
        return len(self.implemented)

    @property
    def missing_count(self) -> int:
        return len(self.missing)

    def _computed(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "implemented_count": self.implemented_count,
            "missing_count": self.missing_count,
        }


@dataclass(frozen=True)
class IssueDetails(CheckDetails):
    """A list of process issues (testing, documentation, branches).

    Attributes:
        issues: Issues found, in discovery order.
    """

    kind: ClassVar[str] = "issues"

    issues: tuple[Finding, ...] = ()

    @property
    def issue_count(self) -> int:
        return len(self.issues)

    def _computed(self) -> dict[str, Any]:
        return {"issue_count": self.issue_count}


DETAILS_TYPES: dict[str, type[CheckDetails]] = {
    cls.kind: cls
    for cls in (
        CheckDetails,
        FileSizeDetails,
        FindingsDetails,
        SqlInjectionDetails,
        XssDetails,
        PresenceDetails,
        RatioDetails,
        RequirementDetails,
        IssueDetails,
    )
}


# -----------------------------------------------------------------------------
# Results
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckResult:
    """One named validation outcome.

    Attributes:
        name: Check identifier (e.g. "File Size").
        status: "PASS", "WARNING" or "FAIL".
        message: Human summary of the outcome.
        details: Evidence variant for this kind of check.
    """

    name: str
    status: CheckStatus
    message: str
    details: CheckDetails = field(default_factory=CheckDetails)

    @property
    def recommendation(self) -> str | None:
        return self.details.recommendation

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "name": self.name,
            "status": self.status,
            "message": self.message,
            "details": self.details.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckResult:
        """Rebuild a CheckResult from its JSON form."""
        return cls(
            name=data["name"],
            status=data["status"],
            message=data["message"],
            details=CheckDetails.from_dict(data.get("details") or {}),
        )


@dataclass(frozen=True)
class ValidatorReport:
    """Output of one validator run.

    Attributes:
        validator: Validator name (e.g. "security").
        status: Worst status among the checks, or "ERROR" when the validator raised.
        checks: Check results in the order they ran.
        summary: Tally of check statuses.
        recommendations: Non-null check recommendations, in check order.
        target: Path that was validated.
        error: Exception message for ERROR reports.
        stats: Validator-specific statistics (file counts, word counts, ...).
    """

    validator: str
    status: Status
    checks: tuple[CheckResult, ...] = ()
    summary: Summary = field(default_factory=Summary)
    recommendations: tuple[str, ...] = ()
    target: str | None = None
    error: str | None = None
    stats: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_checks(
        cls,
        validator: str,
        checks: Sequence[CheckResult],
        target: str | None = None,
        stats: dict[str, Any] | None = None,
    ) -> ValidatorReport:
        """Build a report whose status and summary are derived from its checks."""
        folded = aggregate(checks)
        return cls(
            validator=validator,
            status=folded.status,
            checks=tuple(checks),
            summary=folded.summary,
            recommendations=folded.recommendations,
            target=target,
            stats=dict(stats or {}),
        )

    @classmethod
    def error_report(cls, validator: str, message: str, target: str | None = None) -> ValidatorReport:
        """Build the placeholder recorded when a validator raises."""
        return cls(validator=validator, status="ERROR", target=target, error=message)

    def check(self, name: str) -> CheckResult | None:
        """Find a check by name.

        Args:
            name: Check name (e.g. "Hardcoded Secrets").

        Returns:
            The first check with that name, or None.
        """
        for check in self.checks:
            if check.name == name:
                return check
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result: dict[str, Any] = {
            "validator": self.validator,
            "status": self.status,
            "target": self.target,
            "summary": self.summary.to_dict(),
            "checks": [check.to_dict() for check in self.checks],
            "recommendations": list(self.recommendations),
            "stats": dict(self.stats),
        }
        if self.error is not None:
            result["error"] = self.error
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidatorReport:
        """Rebuild a ValidatorReport from its JSON form."""
        summary = data.get("summary") or {}
        return cls(
            validator=data["validator"],
            status=data["status"],
            checks=tuple(CheckResult.from_dict(c) for c in data.get("checks", [])),
            summary=Summary(
                total=summary.get("total", 0),
                passed=summary.get("passed", 0),
                warnings=summary.get("warnings", 0),
                failed=summary.get("failed", 0),
            ),
            recommendations=tuple(data.get("recommendations", [])),
            target=data.get("target"),
            error=data.get("error"),
            stats=dict(data.get("stats") or {}),
        )


# -----------------------------------------------------------------------------
# Validator base class
# -----------------------------------------------------------------------------


class BaseValidator(ABC):
    """Abstract base class for all validators.

    Subclasses implement run_checks(); validate() wraps it with the
    missing-path guard and report folding.

    Attributes:
        project_root: Root directory of the project being validated.
        thresholds: Numeric cutoffs used by the checks.
    """

    name: ClassVar[str] = "validator"

    def __init__(self, project_root: Path, thresholds: Thresholds | None = None) -> None:
        """Initialize validator.

        Args:
            project_root: Root directory of the project.
            thresholds: Cutoffs to apply. Defaults to Thresholds().
        """
        self.project_root = project_root
        self.thresholds = thresholds or Thresholds()

    def validate(self) -> ValidatorReport:
        """Run validation checks against the project root.

        Returns:
            ValidatorReport with every check, or a single FAIL check when the
            project root does not exist.
        """
        if not self.project_root.exists():
            return self.missing_path_report(self.project_root)

        checks = self.run_checks()
        return ValidatorReport.from_checks(
            self.name,
            checks,
            target=str(self.project_root),
            stats=self.stats(),
        )

    @abstractmethod
    def run_checks(self) -> list[CheckResult]:
        """Run every check in order.

        Must be implemented by subclasses.

        Returns:
            Check results in a fixed order.
        """

    def stats(self) -> dict[str, Any]:
        """Statistics gathered during run_checks(). Empty by default."""
        return {}

    def missing_path_report(self, path: Path) -> ValidatorReport:
        """Build the FAIL report returned for a path that does not exist."""
        check = CheckResult(
            name="Path Exists",
            status="FAIL",
            message=f"Path does not exist: {path}",
            details=CheckDetails(recommendation="Verify the path and run the validator again"),
        )
        return ValidatorReport.from_checks(self.name, [check], target=str(path))

    def relative(self, path: Path) -> str:
        """Path relative to the project root, as a POSIX string when possible."""
        try:
            return path.relative_to(self.project_root).as_posix()
        except ValueError:
            return path.as_posix()
