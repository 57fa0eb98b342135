"""Tests for specguard CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from specguard.cli import app

runner = CliRunner()

COMPLETE_README = """\
# Demo

## Overview
A small tool that prints reports for demo projects.

## Installation
pip install demo

## Usage
demo run

## Features
- Fast
- Friendly
"""


def test_version() -> None:
    """Test --version flag shows version."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "specguard version" in result.stdout


def test_help() -> None:
    """Test --help flag shows help."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Grade a project" in result.stdout


# -----------------------------------------------------------------------------
# List Command Tests
# -----------------------------------------------------------------------------


class TestListCommand:
    """Tests for the list command."""

    def test_list_table(self) -> None:
        """Test the human-readable listing."""
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "Available Validators" in result.stdout
        assert "code-quality" in result.stdout
        assert "documentation" in result.stdout

    def test_list_json(self) -> None:
        """Test the JSON listing."""
        result = runner.invoke(app, ["list", "--json"])
        assert result.exit_code == 0

        data = json.loads(result.stdout)
        keys = [v["key"] for v in data["validators"]]
        assert keys == [
            "code-quality",
            "spec-adherence",
            "security",
            "branch-strategy",
            "testing",
            "documentation",
        ]
        assert data["validators"][0]["tier"] == 1


# -----------------------------------------------------------------------------
# Run Command Tests
# -----------------------------------------------------------------------------


class TestAllCommand:
    """Tests for the all command."""

    def test_all_json(self, tmp_path: Path) -> None:
        """Test a full run on an empty project, skipping git checks."""
        result = runner.invoke(app, ["all", str(tmp_path), "--skip", "branch-strategy", "--json"])

        # No README, so documentation fails
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["overall_status"] == "FAIL"
        assert data["results"]["documentation"]["status"] == "FAIL"
        assert data["skipped_validators"] == ["spec-adherence", "branch-strategy"]
        assert "branch-strategy" not in data["results"]

    def test_all_human_output(self, tmp_path: Path) -> None:
        """Test the summary layout."""
        (tmp_path / "README.md").write_text(COMPLETE_README)

        result = runner.invoke(app, ["all", str(tmp_path), "--skip", "branch-strategy"])

        assert "Overall Status:" in result.stdout
        assert "Summary Statistics:" in result.stdout
        assert "Skipped: 2 (spec-adherence, branch-strategy)" in result.stdout
        assert "Tier 1 - Critical Quality:" in result.stdout
        assert "Tier 2 - Development Workflow:" in result.stdout
        assert "Overall Quality Score:" in result.stdout

    def test_unknown_skip_key(self, tmp_path: Path) -> None:
        """Test an unknown key in SPECGUARD_SKIP is rejected."""
        result = runner.invoke(app, ["all", str(tmp_path)], env={"SPECGUARD_SKIP": "bogus"})
        assert result.exit_code == 1
        assert "Unknown validator: bogus" in result.output

    def test_missing_project_path(self, tmp_path: Path) -> None:
        """Test a missing project directory is a user error."""
        result = runner.invoke(app, ["all", str(tmp_path / "missing")])
        assert result.exit_code == 1
        assert "Project path does not exist" in result.output


class TestTierCommand:
    """Tests for the tier command."""

    def test_invalid_tier(self, tmp_path: Path) -> None:
        """Test tiers other than 1 and 2 are rejected."""
        result = runner.invoke(app, ["tier", "3", str(tmp_path)])
        assert result.exit_code == 1
        assert "Invalid tier: 3" in result.output

    def test_tier_one_json(self, tmp_path: Path) -> None:
        """Test tier 1 runs code quality and skips spec adherence without specs."""
        (tmp_path / "app.js").write_text("const value = 1;\n")

        result = runner.invoke(app, ["tier", "1", str(tmp_path), "--json"])

        data = json.loads(result.stdout)
        assert list(data["results"]) == ["code-quality"]
        assert data["skipped_validators"] == ["spec-adherence"]

    def test_tier_skip_option(self, tmp_path: Path) -> None:
        """Test --skip removes validators from a tier run."""
        (tmp_path / "app.js").write_text("const value = 1;\n")

        result = runner.invoke(app, ["tier", "1", str(tmp_path), "--skip", "code-quality", "--json"])

        data = json.loads(result.stdout)
        assert data["results"] == {}
        assert data["skipped_validators"] == ["code-quality", "spec-adherence"]

    def test_tier_honors_configured_skip(self, tmp_path: Path) -> None:
        """Test a skip list from .specguardrc applies to tier runs."""
        (tmp_path / "app.js").write_text("const value = 1;\n")
        (tmp_path / ".specguardrc").write_text('skip = ["code-quality"]\n')

        result = runner.invoke(app, ["tier", "1", str(tmp_path), "--json"])

        data = json.loads(result.stdout)
        assert "code-quality" not in data["results"]
        assert "code-quality" in data["skipped_validators"]


class TestRunCommand:
    """Tests for the run command."""

    def test_unknown_key(self, tmp_path: Path) -> None:
        """Test unknown keys point at the list command."""
        result = runner.invoke(app, ["run", "security,nope", str(tmp_path)])
        assert result.exit_code == 1
        assert "Unknown validator: nope" in result.output
        assert "specguard list" in result.output

    def test_quiet_output(self, tmp_path: Path) -> None:
        """Test quiet mode prints only status and score."""
        (tmp_path / "README.md").write_text(COMPLETE_README)

        result = runner.invoke(app, ["run", "documentation", str(tmp_path), "--quiet"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "PASS 100%"

    def test_output_file(self, tmp_path: Path) -> None:
        """Test --output writes the JSON report."""
        (tmp_path / "README.md").write_text(COMPLETE_README)
        output = tmp_path / "out" / "report.json"

        result = runner.invoke(
            app, ["run", "documentation", str(tmp_path), "--output", str(output)]
        )

        assert result.exit_code == 0
        assert "Report written to" in result.stdout
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["overall_status"] == "PASS"
        assert list(data["results"]) == ["documentation"]


class TestCheckCommand:
    """Tests for the check command."""

    def test_unknown_key(self, tmp_path: Path) -> None:
        """Test unknown validator keys are rejected."""
        result = runner.invoke(app, ["check", "nope", str(tmp_path)])
        assert result.exit_code == 1
        assert "Unknown validator: nope" in result.output

    def test_spec_adherence_without_specs(self, tmp_path: Path) -> None:
        """Test spec adherence needs a spec directory."""
        result = runner.invoke(app, ["check", "spec-adherence", str(tmp_path)])
        assert result.exit_code == 1
        assert "Spec directory not found" in result.output

    def test_target_json(self, tmp_path: Path) -> None:
        """Test --target narrows code quality to one file."""
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "app.js").write_text("const value = 1;\n")

        result = runner.invoke(
            app,
            ["check", "code-quality", str(tmp_path), "--target", "src/app.js", "--json"],
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["validator"] == "code-quality"
        assert data["target"].endswith("app.js")

    def test_target_ignored_warning(self, tmp_path: Path) -> None:
        """Test --target on a whole-project validator warns and still runs."""
        (tmp_path / "README.md").write_text(COMPLETE_README)

        result = runner.invoke(
            app, ["check", "documentation", str(tmp_path), "--target", "README.md"]
        )

        assert result.exit_code == 0
        assert "Warning:" in result.output
        assert "--target is ignored by documentation" in result.output
        assert "Documentation: PASS" in result.output

    def test_human_output(self, tmp_path: Path) -> None:
        """Test the single-validator layout."""
        (tmp_path / "README.md").write_text(COMPLETE_README)

        result = runner.invoke(app, ["check", "documentation", str(tmp_path)])

        assert result.exit_code == 0
        assert "Documentation: PASS" in result.stdout
        assert "README Completeness" in result.stdout
        assert "Total: 6" in result.stdout

    def test_failing_validator_exits_one(self, tmp_path: Path) -> None:
        """Test a FAIL report sets exit code 1."""
        result = runner.invoke(app, ["check", "documentation", str(tmp_path)])
        assert result.exit_code == 1
        assert "README.md file not found" in result.stdout
