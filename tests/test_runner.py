"""Tests for specguard.validators.runner module."""

from __future__ import annotations

from collections.abc import Generator
from contextlib import ExitStack
from pathlib import Path
from unittest.mock import patch

import pytest

from specguard.config import SpecguardConfig, Thresholds
from specguard.validators.base import CheckDetails, CheckResult, ValidatorReport
from specguard.validators.branch_strategy import BranchStrategyValidator
from specguard.validators.code_quality import CodeQualityValidator
from specguard.validators.documentation import DocumentationValidator
from specguard.validators.runner import (
    REGISTRY,
    RunSummary,
    UnknownValidatorError,
    ValidatorKey,
    ValidatorRunner,
    compute_quality_score,
    find_spec_path,
    parse_key,
    score_label,
    tier_keys,
)
from specguard.validators.security import SecurityValidator
from specguard.validators.spec_adherence import SpecAdherenceValidator, SpecPathError
from specguard.validators.testing_completeness import TestingCompletenessValidator

VALIDATOR_CLASSES = (
    CodeQualityValidator,
    SpecAdherenceValidator,
    SecurityValidator,
    BranchStrategyValidator,
    TestingCompletenessValidator,
    DocumentationValidator,
)


def _report(name: str, status: str = "PASS", recommendation: str | None = None) -> ValidatorReport:
    return ValidatorReport.from_checks(
        name,
        [CheckResult("Stub", status, f"stub {status}", CheckDetails(recommendation=recommendation))],  # type: ignore[arg-type]
    )


def _stub_validate(validator) -> ValidatorReport:
    return _report(validator.name)


@pytest.fixture
def stub_validators() -> Generator[None, None, None]:
    """Make every validator return a single passing check."""
    with ExitStack() as stack:
        for cls in VALIDATOR_CLASSES:
            stack.enter_context(
                patch.object(cls, "validate", autospec=True, side_effect=_stub_validate)
            )
        yield


def _add_spec(root: Path, name: str = "2024-01-15-login") -> Path:
    spec_dir = root / ".agent-os" / "specs" / name
    spec_dir.mkdir(parents=True)
    (spec_dir / "spec.md").write_text("# Spec\n\n## Overview\nLogin.\n", encoding="utf-8")
    return spec_dir


class TestRegistry:
    """Tests for validator keys and tiers."""

    def test_tiers(self) -> None:
        """Test tier membership in registry order."""
        assert tier_keys(1) == [ValidatorKey.CODE_QUALITY, ValidatorKey.SPEC_ADHERENCE]
        assert tier_keys(2) == [
            ValidatorKey.SECURITY,
            ValidatorKey.BRANCH_STRATEGY,
            ValidatorKey.TESTING,
            ValidatorKey.DOCUMENTATION,
        ]

    def test_every_key_registered(self) -> None:
        """Test the registry covers every key."""
        assert set(REGISTRY) == set(ValidatorKey)

    def test_parse_key(self) -> None:
        """Test string keys resolve and unknown keys raise."""
        assert parse_key("security") is ValidatorKey.SECURITY
        with pytest.raises(UnknownValidatorError, match="nope"):
            parse_key("nope")
        assert str(UnknownValidatorError("nope")) == "Unknown validator: nope"


class TestQualityScore:
    """Tests for quality score computation."""

    def test_warnings_count_half(self) -> None:
        """Test passes count fully and warnings count half."""
        assert compute_quality_score(passed=1, warnings=1, total=2) == 75

    def test_rounds_half_up(self) -> None:
        """Test 62.5 rounds to 63."""
        assert compute_quality_score(passed=2, warnings=1, total=4) == 63

    def test_empty_run(self) -> None:
        """Test a run with no validators scores zero."""
        assert compute_quality_score(passed=0, warnings=0, total=0) == 0

    @pytest.mark.parametrize(
        ("score", "label"),
        [
            (100, "Excellent"),
            (90, "Excellent"),
            (89, "Good"),
            (75, "Good"),
            (60, "Moderate"),
            (59, "Significant improvements needed"),
        ],
    )
    def test_score_label(self, score: int, label: str) -> None:
        """Test score band labels."""
        assert score_label(score) == label


class TestFindSpecPath:
    """Tests for locating the latest spec directory."""

    def test_latest_dated_directory(self, tmp_path: Path) -> None:
        """Test the lexically latest dated directory wins."""
        _add_spec(tmp_path, "2024-01-15-login")
        latest = _add_spec(tmp_path, "2024-03-01-profile")
        (tmp_path / ".agent-os" / "specs" / "notes").mkdir()

        assert find_spec_path(tmp_path, ".agent-os/specs") == latest

    def test_no_specs(self, tmp_path: Path) -> None:
        """Test None when the specs directory is missing."""
        assert find_spec_path(tmp_path, ".agent-os/specs") is None


class TestRunSummary:
    """Tests for the RunSummary dataclass."""

    def test_record_counts_statuses(self) -> None:
        """Test ERROR reports count as failures."""
        summary = RunSummary()
        summary.record("code-quality", _report("code-quality", "PASS"))
        summary.record("security", _report("security", "WARNING"))
        summary.record("testing", ValidatorReport.error_report("testing", "boom"))

        assert (summary.total, summary.passed, summary.warnings, summary.failed) == (3, 1, 1, 1)
        assert summary.overall_status == "FAIL"
        assert summary.exit_code == 1

    def test_warning_run_exits_zero(self) -> None:
        """Test warnings alone do not fail the run."""
        summary = RunSummary()
        summary.record("security", _report("security", "WARNING"))

        assert summary.overall_status == "WARNING"
        assert summary.exit_code == 0
        assert summary.quality_score == 50

    def test_nothing_ran(self) -> None:
        """Test a run where every validator was skipped."""
        summary = RunSummary()
        summary.skip("security")

        assert summary.overall_status == "UNKNOWN"
        assert summary.quality_score == 0
        assert summary.skipped_validators == ["security"]

    def test_recommendations_deduplicated(self) -> None:
        """Test recommendations repeat only once across validators."""
        summary = RunSummary()
        summary.record("security", _report("security", "WARNING", "Add tests"))
        summary.record("testing", _report("testing", "WARNING", "Add tests"))
        summary.record("documentation", _report("documentation", "WARNING", "Write docs"))

        assert summary.recommendations == ["Add tests", "Write docs"]

    def test_dict_round_trip(self) -> None:
        """Test a summary survives conversion to and from its JSON form."""
        summary = RunSummary(project_path="/tmp/project", duration=1.25)
        summary.record("code-quality", _report("code-quality", "PASS"))
        summary.skip("spec-adherence")

        data = summary.to_dict()
        rebuilt = RunSummary.from_dict(data)

        assert data["overall_status"] == "PASS"
        assert data["quality_score"] == 100
        assert data["summary"] == {
            "total": 1,
            "passed": 1,
            "warnings": 0,
            "failed": 0,
            "skipped": 1,
        }
        assert rebuilt == summary


class TestValidatorRunner:
    """Tests for the ValidatorRunner class."""

    @pytest.mark.usefixtures("stub_validators")
    def test_run_all_skips_spec_adherence_without_specs(self, tmp_path: Path) -> None:
        """Test spec-adherence is skipped when there is no dated spec directory."""
        runner = ValidatorRunner(tmp_path)

        summary = runner.run_all()

        assert list(summary.results) == [
            "code-quality",
            "security",
            "branch-strategy",
            "testing",
            "documentation",
        ]
        assert summary.skipped_validators == ["spec-adherence"]
        assert summary.overall_status == "PASS"
        assert summary.project_path == str(tmp_path)
        assert runner.phase == "done"

    @pytest.mark.usefixtures("stub_validators")
    def test_run_all_with_spec(self, tmp_path: Path) -> None:
        """Test every validator runs when a dated spec directory exists."""
        _add_spec(tmp_path)

        summary = ValidatorRunner(tmp_path).run_all()

        assert summary.total == 6
        assert summary.skipped == 0
        assert list(summary.results)[:2] == ["code-quality", "spec-adherence"]

    @pytest.mark.usefixtures("stub_validators")
    def test_configured_and_explicit_skips(self, tmp_path: Path) -> None:
        """Test config skips and call skips combine."""
        config = SpecguardConfig(skip=["security"])

        summary = ValidatorRunner(tmp_path, config).run_all(skip=["testing"])

        assert "security" not in summary.results
        assert "testing" not in summary.results
        assert set(summary.skipped_validators) == {"spec-adherence", "security", "testing"}

    @pytest.mark.usefixtures("stub_validators")
    def test_run_tier(self, tmp_path: Path) -> None:
        """Test a single tier runs only its validators."""
        summary = ValidatorRunner(tmp_path).run_tier(2)

        assert list(summary.results) == ["security", "branch-strategy", "testing", "documentation"]

    @pytest.mark.usefixtures("stub_validators")
    def test_run_tier_honors_configured_skip(self, tmp_path: Path) -> None:
        """Test the configured skip list applies to a tier run."""
        config = SpecguardConfig(skip=["security"])

        summary = ValidatorRunner(tmp_path, config).run_tier(2, skip=["testing"])

        assert list(summary.results) == ["branch-strategy", "documentation"]
        assert summary.skipped_validators == ["security", "testing"]

    @pytest.mark.usefixtures("stub_validators")
    def test_run_subset_honors_configured_skip(self, tmp_path: Path) -> None:
        """Test the configured skip list applies to a subset run."""
        config = SpecguardConfig(skip=["security"])

        summary = ValidatorRunner(tmp_path, config).run_subset(["security", "documentation"])

        assert list(summary.results) == ["documentation"]
        assert summary.skipped_validators == ["security"]

    def test_run_tier_unknown(self, tmp_path: Path) -> None:
        """Test an unknown tier raises ValueError."""
        with pytest.raises(ValueError, match="Unknown tier: 3"):
            ValidatorRunner(tmp_path).run_tier(3)

    @pytest.mark.usefixtures("stub_validators")
    def test_run_subset_orders_and_filters(self, tmp_path: Path) -> None:
        """Test subsets run in tier order, ignoring unknown and repeated keys."""
        summary = ValidatorRunner(tmp_path).run_subset(
            ["testing", "nope", "code-quality", "testing"]
        )

        assert list(summary.results) == ["code-quality", "testing"]

    def test_failure_is_isolated(self, tmp_path: Path) -> None:
        """Test a raising validator becomes an ERROR report and the run continues."""
        with patch.object(
            SecurityValidator, "validate", side_effect=OSError("disk unavailable")
        ), patch.object(
            DocumentationValidator, "validate", return_value=_report("documentation")
        ):
            summary = ValidatorRunner(tmp_path).run_subset(["security", "documentation"])

        security = summary.results["security"]
        assert security.status == "ERROR"
        assert security.error == "Validator failed: disk unavailable"
        assert summary.results["documentation"].status == "PASS"
        assert summary.failed == 1
        assert summary.passed == 1
        assert summary.exit_code == 1

    def test_branch_strategy_outside_git_errors(self, tmp_path: Path) -> None:
        """Test a non-repository project records branch-strategy as ERROR."""
        with patch(
            "specguard.validators.branch_strategy.is_git_repository", return_value=False
        ):
            summary = ValidatorRunner(tmp_path).run_subset(["branch-strategy"])

        report = summary.results["branch-strategy"]
        assert report.status == "ERROR"
        assert report.error is not None
        assert "git" in report.error.lower()

    def test_run_validator_unknown_key(self, tmp_path: Path) -> None:
        """Test run_validator raises for unknown keys."""
        with pytest.raises(UnknownValidatorError):
            ValidatorRunner(tmp_path).run_validator("nope")

    def test_run_validator_without_spec(self, tmp_path: Path) -> None:
        """Test spec-adherence without a spec directory raises SpecPathError."""
        with pytest.raises(SpecPathError, match="Spec directory not found"):
            ValidatorRunner(tmp_path).run_validator("spec-adherence")

    def test_run_validator_target_file(self, make_project) -> None:
        """Test a target narrows code-quality to one file."""
        root = make_project(
            {
                "src/app.js": "const value = 1;\n",
                "src/other.js": "const other = 2;\n",
            }
        )

        report = ValidatorRunner(root).run_validator("code-quality", target=Path("src/app.js"))

        assert report.validator == "code-quality"
        assert report.target == str(root / "src" / "app.js")
        assert report.stats["files_analyzed"] == 1

    def test_thresholds_flow_to_validators(self, make_project) -> None:
        """Test configured thresholds reach the validators."""
        root = make_project({"src/app.js": "".join(f"const v{i} = {i};\n" for i in range(12))})
        config = SpecguardConfig(thresholds=Thresholds(code_max_lines=10))

        report = ValidatorRunner(root, config).run_validator("code-quality")

        check = report.check("File Size")
        assert check is not None
        assert check.status == "FAIL"
