"""Tests for specguard.validators.base module."""

from __future__ import annotations

from pathlib import Path

import pytest

from specguard.validators.aggregator import Summary
from specguard.validators.base import (
    BaseValidator,
    CheckDetails,
    CheckResult,
    FileSizeDetails,
    Finding,
    IssueDetails,
    RatioDetails,
    ValidatorReport,
)


class ConcreteValidator(BaseValidator):
    """Concrete implementation of BaseValidator for testing."""

    name = "concrete"

    def run_checks(self) -> list[CheckResult]:
        return [
            CheckResult("First", "PASS", "all good"),
            CheckResult(
                "Second",
                "WARNING",
                "could be better",
                CheckDetails(recommendation="Improve the second thing"),
            ),
        ]

    def stats(self) -> dict[str, int]:
        return {"files": 2}


class TestFinding:
    """Tests for the Finding dataclass."""

    def test_defaults(self) -> None:
        """Test optional fields default to empty."""
        finding = Finding(kind="secret", text="password = ***")
        assert finding.file is None
        assert finding.line is None
        assert finding.severity is None
        assert finding.matches == ()

    def test_from_dict(self) -> None:
        """Test rebuilding a finding from JSON data."""
        finding = Finding.from_dict(
            {"kind": "naming", "text": "x", "file": "a.py", "line": 3, "matches": ["x"]}
        )
        assert finding == Finding(kind="naming", text="x", file="a.py", line=3, matches=("x",))


class TestCheckDetails:
    """Tests for the tagged details variants."""

    def test_plain_details_kind(self) -> None:
        """Test the plain variant serializes with kind "message"."""
        assert CheckDetails(recommendation="Do it").to_dict() == {
            "kind": "message",
            "recommendation": "Do it",
        }

    def test_issue_details_include_count(self) -> None:
        """Test derived counts are part of the JSON form."""
        details = IssueDetails(issues=(Finding(kind="tdd", text="missing steps"),))
        data = details.to_dict()

        assert data["kind"] == "issues"
        assert data["issue_count"] == 1
        assert list(data["issues"]) == [
            {
                "kind": "tdd",
                "text": "missing steps",
                "file": None,
                "line": None,
                "severity": None,
                "matches": (),
            }
        ]

    def test_from_dict_picks_variant(self) -> None:
        """Test the kind tag selects the details class."""
        original = FileSizeDetails(
            files_checked=2,
            lines=320,
            limit=300,
            oversized=(Finding(kind="oversized", text="320 lines", file="big.js"),),
        )

        rebuilt = CheckDetails.from_dict(original.to_dict())

        assert isinstance(rebuilt, FileSizeDetails)
        assert rebuilt == original

    def test_from_dict_ignores_derived_counts(self) -> None:
        """Test recomputed fields in the JSON do not break rebuilding."""
        rebuilt = CheckDetails.from_dict({"kind": "issues", "issues": [], "issue_count": 0})

        assert rebuilt == IssueDetails()

    def test_unknown_kind_falls_back(self) -> None:
        """Test unknown kinds become the plain variant."""
        rebuilt = CheckDetails.from_dict({"kind": "mystery", "recommendation": "Look"})

        assert type(rebuilt) is CheckDetails
        assert rebuilt.recommendation == "Look"

    def test_ratio_details_tuple_of_strings(self) -> None:
        """Test string lists come back as tuples of strings."""
        rebuilt = CheckDetails.from_dict(
            {"kind": "ratio", "score": 50.0, "covered": 1, "total": 2, "missing": ["src/api.js"]}
        )

        assert rebuilt == RatioDetails(score=50.0, covered=1, total=2, missing=("src/api.js",))


class TestValidatorReport:
    """Tests for the ValidatorReport dataclass."""

    def test_from_checks_folds_status(self) -> None:
        """Test the worst check status becomes the report status."""
        checks = [
            CheckResult("A", "PASS", "ok"),
            CheckResult("B", "FAIL", "bad", CheckDetails(recommendation="Fix B")),
            CheckResult("C", "WARNING", "meh", CheckDetails(recommendation="Tune C")),
        ]

        report = ValidatorReport.from_checks("demo", checks, target="/tmp/project")

        assert report.status == "FAIL"
        assert report.summary == Summary(total=3, passed=1, warnings=1, failed=1)
        assert report.recommendations == ("Fix B", "Tune C")
        assert report.target == "/tmp/project"

    def test_from_checks_empty_passes(self) -> None:
        """Test a report with no checks passes."""
        report = ValidatorReport.from_checks("demo", [])

        assert report.status == "PASS"
        assert report.summary.total == 0

    def test_error_report(self) -> None:
        """Test the placeholder for a validator that raised."""
        report = ValidatorReport.error_report("security", "Validator failed: boom")

        assert report.status == "ERROR"
        assert report.checks == ()
        assert report.to_dict()["error"] == "Validator failed: boom"

    def test_error_key_omitted_without_error(self) -> None:
        """Test healthy reports carry no error key."""
        report = ValidatorReport.from_checks("demo", [CheckResult("A", "PASS", "ok")])

        assert "error" not in report.to_dict()

    def test_check_lookup(self) -> None:
        """Test finding a check by name."""
        report = ValidatorReport.from_checks("demo", [CheckResult("A", "PASS", "ok")])

        assert report.check("A") is report.checks[0]
        assert report.check("Missing") is None

    def test_dict_round_trip(self) -> None:
        """Test a report survives conversion to and from its JSON form."""
        report = ValidatorReport.from_checks(
            "testing",
            [
                CheckResult(
                    "Test Coverage",
                    "FAIL",
                    "Test coverage: 50.0% (1/2 files)",
                    RatioDetails(score=50.0, covered=1, total=2, missing=("src/api.js",)),
                )
            ],
            target="/tmp/project",
            stats={"test_files": 1},
        )

        assert ValidatorReport.from_dict(report.to_dict()) == report


class TestBaseValidator:
    """Tests for the BaseValidator abstract class."""

    def test_cannot_instantiate_abstract_base(self, tmp_path: Path) -> None:
        """Test that BaseValidator cannot be instantiated directly."""
        with pytest.raises(TypeError):
            BaseValidator(tmp_path)  # type: ignore[abstract]

    def test_validate_builds_report(self, tmp_path: Path) -> None:
        """Test validate() folds checks and stats into a report."""
        report = ConcreteValidator(tmp_path).validate()

        assert report.validator == "concrete"
        assert report.status == "WARNING"
        assert report.recommendations == ("Improve the second thing",)
        assert report.stats == {"files": 2}
        assert report.target == str(tmp_path)

    def test_missing_path(self, tmp_path: Path) -> None:
        """Test a missing project root yields a single FAIL check."""
        missing = tmp_path / "nope"

        report = ConcreteValidator(missing).validate()

        assert report.status == "FAIL"
        assert len(report.checks) == 1
        assert report.checks[0].name == "Path Exists"
        assert report.checks[0].message == f"Path does not exist: {missing}"

    def test_relative(self, tmp_path: Path) -> None:
        """Test paths are reported relative to the project root."""
        validator = ConcreteValidator(tmp_path)

        assert validator.relative(tmp_path / "src" / "app.py") == "src/app.py"
        assert validator.relative(Path("/elsewhere/file.py")) == "/elsewhere/file.py"
