"""Validation runner for orchestrating all validators.

Runs validators in two tiers (critical quality gates first, workflow checks
second), isolates failures per validator, and folds the reports into a
RunSummary with a 0-100 quality score.
"""

from __future__ import annotations

import json
import logging
import math
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from specguard.config import SpecguardConfig
from specguard.validators.aggregator import (
    OverallStatus,
    dedupe_recommendations,
    overall_status,
)
from specguard.validators.base import BaseValidator, ValidatorReport
from specguard.validators.branch_strategy import BranchStrategyValidator
from specguard.validators.code_quality import CodeQualityValidator
from specguard.validators.documentation import DocumentationValidator
from specguard.validators.git_helper import VersionControl
from specguard.validators.markdown_parser import list_spec_directories
from specguard.validators.security import SecurityValidator
from specguard.validators.spec_adherence import SpecAdherenceValidator, SpecPathError
from specguard.validators.testing_completeness import TestingCompletenessValidator

logger = logging.getLogger(__name__)

Phase = Literal["idle", "tier-1", "tier-2", "done"]


class ValidatorKey(str, Enum):
    """Every validator the runner knows about."""

    CODE_QUALITY = "code-quality"
    SPEC_ADHERENCE = "spec-adherence"
    SECURITY = "security"
    BRANCH_STRATEGY = "branch-strategy"
    TESTING = "testing"
    DOCUMENTATION = "documentation"


@dataclass(frozen=True)
class RegistryEntry:
    """Registry metadata for one validator.

    Attributes:
        title: Human-readable name.
        description: One-line description for listings.
        tier: Execution tier (1 runs before 2).
    """

    title: str
    description: str
    tier: int


REGISTRY: dict[ValidatorKey, RegistryEntry] = {
    ValidatorKey.CODE_QUALITY: RegistryEntry(
        "Code Quality",
        "File size, complexity, duplication, naming conventions",
        tier=1,
    ),
    ValidatorKey.SPEC_ADHERENCE: RegistryEntry(
        "Spec Adherence",
        "Implementation matches specification requirements",
        tier=1,
    ),
    ValidatorKey.SECURITY: RegistryEntry(
        "Security",
        "Security vulnerabilities and best practices",
        tier=2,
    ),
    ValidatorKey.BRANCH_STRATEGY: RegistryEntry(
        "Branch Strategy",
        "Git workflow and branching conventions",
        tier=2,
    ),
    ValidatorKey.TESTING: RegistryEntry(
        "Testing Completeness",
        "Test coverage and TDD approach",
        tier=2,
    ),
    ValidatorKey.DOCUMENTATION: RegistryEntry(
        "Documentation",
        "Documentation completeness and quality",
        tier=2,
    ),
}

TIERS = (1, 2)
TIER_TITLES = {1: "Critical Quality", 2: "Development Workflow"}


class UnknownValidatorError(KeyError):
    """Raised when a validator key is not in the registry."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"Unknown validator: {self.key}"


def parse_key(key: str | ValidatorKey) -> ValidatorKey:
    """Resolve a string to a ValidatorKey.

    Raises:
        UnknownValidatorError: If the key is not registered.
    """
    try:
        return ValidatorKey(key)
    except ValueError:
        raise UnknownValidatorError(str(key)) from None


def tier_keys(tier: int) -> list[ValidatorKey]:
    """Validator keys of a tier, in registry order."""
    return [key for key, entry in REGISTRY.items() if entry.tier == tier]


def find_spec_path(project_root: Path, specs_dir: str) -> Path | None:
    """Most recent dated spec directory (YYYY-MM-DD-*) under specs_dir.

    Args:
        project_root: Project directory.
        specs_dir: Spec location relative to the project directory.

    Returns:
        The lexically latest spec directory, or None if there is none.
    """
    specs = list_spec_directories(project_root / specs_dir)
    return specs[-1] if specs else None


def compute_quality_score(passed: int, warnings: int, total: int) -> int:
    """Quality score: passes count fully, warnings count half.

    Rounds half up, so 62.5 scores 63.
    """
    if total == 0:
        return 0
    return math.floor((passed + 0.5 * warnings) / total * 100 + 0.5)


def score_label(score: int) -> str:
    """Band label for a quality score."""
    if score >= 90:
        return "Excellent"
    if score >= 75:
        return "Good"
    if score >= 60:
        return "Moderate"
    return "Significant improvements needed"


@dataclass
class RunSummary:
    """Outcome of one runner invocation.

    Attributes:
        results: Report per validator key, in execution order.
        total: Validators that ran (including errored ones).
        passed: Validators with status PASS.
        warnings: Validators with status WARNING.
        failed: Validators with status FAIL or ERROR.
        skipped: Validators not run.
        skipped_validators: Keys of the skipped validators.
        duration: Wall-clock seconds for the whole run.
        project_path: Project directory the run targeted.
    """

    results: dict[str, ValidatorReport] = field(default_factory=dict)
    total: int = 0
    passed: int = 0
    warnings: int = 0
    failed: int = 0
    skipped: int = 0
    skipped_validators: list[str] = field(default_factory=list)
    duration: float = 0.0
    project_path: str = ""

    def record(self, key: str, report: ValidatorReport) -> None:
        """Add a validator report and count its status."""
        self.results[key] = report
        self.total += 1
        if report.status == "PASS":
            self.passed += 1
        elif report.status == "WARNING":
            self.warnings += 1
        else:
            self.failed += 1

    def skip(self, key: str) -> None:
        self.skipped += 1
        self.skipped_validators.append(key)

    @property
    def overall_status(self) -> OverallStatus:
        return overall_status(self.passed, self.warnings, self.failed)

    @property
    def quality_score(self) -> int:
        return compute_quality_score(self.passed, self.warnings, self.total)

    @property
    def recommendations(self) -> list[str]:
        """Recommendations of every report, deduplicated in first-seen order."""
        return dedupe_recommendations(
            recommendation
            for report in self.results.values()
            for recommendation in report.recommendations
        )

    @property
    def exit_code(self) -> int:
        """Process exit code: 1 when the run failed, 0 otherwise."""
        return 1 if self.overall_status == "FAIL" else 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "overall_status": self.overall_status,
            "summary": {
                "total": self.total,
                "passed": self.passed,
                "warnings": self.warnings,
                "failed": self.failed,
                "skipped": self.skipped,
            },
            "quality_score": self.quality_score,
            "results": {key: report.to_dict() for key, report in self.results.items()},
            "recommendations": self.recommendations,
            "skipped_validators": list(self.skipped_validators),
            "duration": round(self.duration, 3),
            "project_path": self.project_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunSummary:
        """Rebuild a RunSummary from its JSON form."""
        summary = data.get("summary") or {}
        return cls(
            results={
                key: ValidatorReport.from_dict(report)
                for key, report in (data.get("results") or {}).items()
            },
            total=summary.get("total", 0),
            passed=summary.get("passed", 0),
            warnings=summary.get("warnings", 0),
            failed=summary.get("failed", 0),
            skipped=summary.get("skipped", 0),
            skipped_validators=list(data.get("skipped_validators") or []),
            duration=data.get("duration", 0.0),
            project_path=data.get("project_path", ""),
        )

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


class ValidatorRunner:
    """Orchestrates running validators.

    Supports:
    - Running all validators, tier by tier
    - Running one tier
    - Running a named subset
    - Running a single validator with per-validator options

    Validators run one at a time. An exception from one validator is recorded
    as an ERROR report and the run continues.

    Attributes:
        project_root: Project directory every validator targets.
        config: Spec location, skip list and thresholds.
        vcs: Version-control collaborator handed to the branch validator.
        phase: Where the current run is ("idle", "tier-1", "tier-2", "done").
    """

    def __init__(
        self,
        project_root: Path,
        config: SpecguardConfig | None = None,
        vcs: VersionControl | None = None,
    ) -> None:
        """Initialize validation runner.

        Args:
            project_root: Root directory of the project.
            config: Configuration. Defaults to SpecguardConfig().
            vcs: Version-control collaborator. Defaults to git on project_root.
        """
        self.project_root = project_root
        self.config = config or SpecguardConfig()
        self.vcs = vcs
        self.phase: Phase = "idle"

    def run_all(self, skip: Iterable[str] | None = None) -> RunSummary:
        """Run every validator, tier 1 before tier 2.

        Args:
            skip: Validator keys to skip, in addition to the configured ones.

        Returns:
            RunSummary for the run.
        """
        return self._run(
            [key for tier in TIERS for key in tier_keys(tier)], self._skip_set(skip)
        )

    def run_tier(self, tier: int, skip: Iterable[str] | None = None) -> RunSummary:
        """Run the validators of a single tier.

        Raises:
            ValueError: If the tier does not exist.
        """
        if tier not in TIERS:
            raise ValueError(f"Unknown tier: {tier} (expected one of {', '.join(map(str, TIERS))})")
        return self._run(tier_keys(tier), self._skip_set(skip))

    def run_subset(self, keys: Iterable[str], skip: Iterable[str] | None = None) -> RunSummary:
        """Run the named validators in tier order.

        Unknown keys are logged and ignored.

        Args:
            keys: Validator keys to run.
            skip: Validator keys to skip, in addition to the configured ones.

        Returns:
            RunSummary for the run.
        """
        selected: list[ValidatorKey] = []
        for raw in keys:
            try:
                key = parse_key(raw)
            except UnknownValidatorError as e:
                logger.warning("%s", e)
                continue
            if key not in selected:
                selected.append(key)

        selected.sort(key=lambda k: REGISTRY[k].tier)
        return self._run(selected, self._skip_set(skip))

    def run_validator(
        self,
        key: str | ValidatorKey,
        target: Path | None = None,
        spec_path: Path | None = None,
        implementation_path: Path | None = None,
    ) -> ValidatorReport:
        """Run one validator directly. Exceptions propagate.

        Args:
            key: Validator key.
            target: Single file for code-quality or security, relative to the
                project root or absolute.
            spec_path: Spec directory for spec-adherence. Defaults to the
                latest dated spec directory.
            implementation_path: Implementation directory for spec-adherence.
                Defaults to the project root.

        Returns:
            The validator's report.

        Raises:
            UnknownValidatorError: If the key is not registered.
            SpecPathError: If spec-adherence has no spec directory to use.
        """
        validator_key = parse_key(key)
        validator = self._create_validator(validator_key, spec_path, implementation_path)

        if target is not None and isinstance(validator, (CodeQualityValidator, SecurityValidator)):
            return validator.validate_file(self.project_root / target)
        return validator.validate()

    def _skip_set(self, skip: Iterable[str] | None) -> set[str]:
        return set(self.config.skip) | set(skip or ())

    def _resolve_spec_path(self, spec_path: Path | None) -> Path:
        if spec_path is not None:
            return spec_path
        found = find_spec_path(self.project_root, self.config.specs_dir)
        if found is None:
            raise SpecPathError("Spec directory", self.config.get_specs_path(self.project_root))
        return found

    def _create_validator(
        self,
        key: ValidatorKey,
        spec_path: Path | None = None,
        implementation_path: Path | None = None,
    ) -> BaseValidator:
        """Create a validator instance by key.

        Raises:
            SpecPathError: If spec-adherence has no spec directory to use.
        """
        thresholds = self.config.thresholds
        specs_dir = self.config.specs_dir

        if key is ValidatorKey.CODE_QUALITY:
            return CodeQualityValidator(self.project_root, thresholds)
        if key is ValidatorKey.SECURITY:
            return SecurityValidator(self.project_root, thresholds)
        if key is ValidatorKey.SPEC_ADHERENCE:
            return SpecAdherenceValidator(
                self._resolve_spec_path(spec_path),
                implementation_path or self.project_root,
                thresholds,
            )
        if key is ValidatorKey.BRANCH_STRATEGY:
            return BranchStrategyValidator(
                self.project_root, thresholds, vcs=self.vcs, specs_dir=specs_dir
            )
        if key is ValidatorKey.TESTING:
            return TestingCompletenessValidator(self.project_root, thresholds, specs_dir=specs_dir)
        return DocumentationValidator(self.project_root, thresholds, specs_dir=specs_dir)

    def _run(self, keys: list[ValidatorKey], skip: set[str]) -> RunSummary:
        """Run validators sequentially, advancing the phase tier by tier."""
        summary = RunSummary(project_path=str(self.project_root))
        started = time.perf_counter()

        for tier in TIERS:
            tier_selection = [key for key in keys if REGISTRY[key].tier == tier]
            if not tier_selection:
                continue
            self.phase = "tier-1" if tier == 1 else "tier-2"
            for key in tier_selection:
                self._run_one(key, skip, summary)

        self.phase = "done"
        summary.duration = time.perf_counter() - started
        return summary

    def _run_one(self, key: ValidatorKey, skip: set[str], summary: RunSummary) -> None:
        if key.value in skip:
            logger.info("Skipping %s", REGISTRY[key].title)
            summary.skip(key.value)
            return

        if (
            key is ValidatorKey.SPEC_ADHERENCE
            and find_spec_path(self.project_root, self.config.specs_dir) is None
        ):
            logger.info("Skipping %s: no spec directory found", REGISTRY[key].title)
            summary.skip(key.value)
            return

        started = time.perf_counter()
        try:
            report = self.run_validator(key)
        except Exception as e:
            logger.warning("%s failed: %s", REGISTRY[key].title, e)
            report = ValidatorReport.error_report(
                key.value, f"Validator failed: {e!s}", target=str(self.project_root)
            )
        logger.debug("%s finished in %.3fs", key.value, time.perf_counter() - started)
        summary.record(key.value, report)
