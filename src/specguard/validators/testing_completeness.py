"""Testing completeness validator.

Checks:
- Test Coverage: share of code files with a same-basename test file
- Test Structure: grouping blocks, test cases, setup for large test files
- TDD Approach: spec task lists include write-tests and verify-tests-pass steps
- Test Types: unit/integration/e2e distribution once the suite is large enough
- Test Naming: test file suffixes and descriptive test names
- Test Runner: test command, test framework and framework configuration
"""

from __future__ import annotations

import json
import logging
import re
import sys
from pathlib import Path, PurePosixPath
from typing import Any

from specguard.config import DEFAULT_SPECS_DIR, Thresholds
from specguard.validators.aggregator import status_for_score
from specguard.validators.base import (
    BaseValidator,
    CheckResult,
    Finding,
    IssueDetails,
    RatioDetails,
)
from specguard.validators.path_filter import (
    CODE_EXTENSIONS,
    FileRecord,
    load_records,
    read_text,
)

# tomllib is only available in Python 3.11+
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)

_GROUPING_PATTERN = re.compile(r"\bdescribe\s*\(|^\s*class\s+Test\w*", re.MULTILINE)
_CASE_PATTERN = re.compile(r"\b(?:it|test)\s*\(|^\s*(?:async\s+)?def\s+test_\w*", re.MULTILINE)
_SETUP_PATTERN = re.compile(
    r"\b(?:beforeEach|beforeAll|setUp|setUpClass|setup_method|setup_class)\b|@pytest\.fixture"
)
_JS_DESCRIPTION_PATTERN = re.compile(r"\b(?:it|test)\s*\(\s*[\"'`]([^\"'`]+)[\"'`]")
_PY_TEST_NAME_PATTERN = re.compile(r"^\s*(?:async\s+)?def\s+test_(\w+)", re.MULTILINE)

_WRITE_TESTS_PATTERN = re.compile(r"write.*tests?", re.IGNORECASE)
_VERIFY_TESTS_PATTERN = re.compile(r"verify.*tests?.*pass", re.IGNORECASE)

VALID_TEST_NAME_PATTERNS = [
    re.compile(r"\.test\.(js|ts|jsx|tsx)$"),
    re.compile(r"\.spec\.(js|ts|jsx|tsx)$"),
    re.compile(r"_test\.(js|ts|jsx|tsx|py)$"),
    re.compile(r"_spec\.(js|ts|jsx|tsx)$"),
    re.compile(r"^test_\w+\.py$"),
]

JS_TEST_FRAMEWORKS = ("jest", "mocha", "jasmine", "vitest", "cypress", "playwright")
JS_TEST_CONFIG_FILES = (
    "jest.config.js",
    "jest.config.ts",
    "jest.config.json",
    ".jestrc",
    "mocha.opts",
    ".mocharc.json",
    ".mocharc.js",
    ".mocharc.yml",
    "vitest.config.js",
    "vitest.config.ts",
    "cypress.config.js",
    "cypress.config.ts",
    "playwright.config.js",
    "playwright.config.ts",
)
PY_TEST_CONFIG_FILES = ("pytest.ini", "tox.ini", "setup.cfg", "conftest.py")

UI_MARKERS = ("render", "component", "html")

_TEST_NAME_MARKER = re.compile(r"[._](?:test|spec)(?=\.)|^test[_-]", re.IGNORECASE)


def tested_name(name: str) -> str:
    """Base name of the code file a test file is named after.

    Examples:
        >>> tested_name("utils.test.js")
        'utils'
        >>> tested_name("test_utils.py")
        'utils'
    """
    return PurePosixPath(_TEST_NAME_MARKER.sub("", name, count=1)).stem


def _test_type(record: FileRecord) -> str:
    relative = record.relative.lower()
    content = record.content.lower()
    if "unit" in relative or "unit test" in content:
        return "unit"
    if "integration" in relative or "integration test" in content:
        return "integration"
    if any(m in relative for m in ("e2e", "end-to-end")) or any(
        m in content for m in ("e2e", "end-to-end")
    ):
        return "e2e"
    return "other"


def _read_json(path: Path) -> dict[str, Any] | None:
    try:
        data = json.loads(read_text(path) or "null")
    except json.JSONDecodeError:
        logger.debug("Invalid JSON in %s", path)
        return None
    return data if isinstance(data, dict) else None


def _read_toml(path: Path) -> dict[str, Any] | None:
    try:
        return tomllib.loads(read_text(path))
    except tomllib.TOMLDecodeError:
        logger.debug("Invalid TOML in %s", path)
        return None


def _python_dependencies(pyproject: dict[str, Any]) -> list[str]:
    """Every dependency string declared anywhere in a pyproject table."""
    project = pyproject.get("project") or {}
    found: list[str] = list(project.get("dependencies") or [])
    for group in (project.get("optional-dependencies") or {}).values():
        found.extend(group)
    for group in (pyproject.get("dependency-groups") or {}).values():
        found.extend(item for item in group if isinstance(item, str))
    poetry = (pyproject.get("tool") or {}).get("poetry") or {}
    found.extend(poetry.get("dev-dependencies") or {})
    for group in (poetry.get("group") or {}).values():
        found.extend((group or {}).get("dependencies") or {})
    return [str(item) for item in found]


class TestingCompletenessValidator(BaseValidator):
    """Validates test coverage and testing practices of a project."""

    __test__ = False

    name = "testing"

    def __init__(
        self,
        project_root: Path,
        thresholds: Thresholds | None = None,
        specs_dir: str = DEFAULT_SPECS_DIR,
    ) -> None:
        super().__init__(project_root, thresholds)
        self.specs_dir = specs_dir
        self._code_files: list[FileRecord] = []
        self._test_files: list[FileRecord] = []

    def run_checks(self) -> list[CheckResult]:
        records = load_records(self.project_root, categories=("code", "test"))
        self._code_files = [r for r in records if r.category == "code"]
        self._test_files = [
            r for r in records if r.category == "test" and r.path.suffix.lower() in CODE_EXTENSIONS
        ]

        return [
            self._check_coverage(),
            self._check_structure(),
            self._check_tdd(),
            self._check_types(),
            self._check_naming(),
            self._check_runner(),
        ]

    def stats(self) -> dict[str, Any]:
        total_tests = sum(
            len(_CASE_PATTERN.findall(record.content)) for record in self._test_files
        )
        count = len(self._test_files)
        return {
            "test_files": count,
            "total_tests": total_tests,
            "average_tests_per_file": round(total_tests / count, 1) if count else 0,
        }

    def has_corresponding_test(self, code: FileRecord) -> bool:
        """True when a test file shares the code file's base name nearby.

        Nearby means the same directory, any directory whose path mentions
        "test" or "spec", or a test directory named like one of the code
        file's parents.
        """
        base = code.path.stem
        code_dir = PurePosixPath(code.relative).parent
        for test in self._test_files:
            if tested_name(test.path.name) != base:
                continue
            test_dir = PurePosixPath(test.relative).parent
            lowered = str(test_dir).lower()
            if (
                test_dir == code_dir
                or "test" in lowered
                or "spec" in lowered
                or (test_dir.name and test_dir.name in code_dir.parts)
            ):
                return True
        return False

    def _check_coverage(self) -> CheckResult:
        t = self.thresholds
        uncovered = [c.relative for c in self._code_files if not self.has_corresponding_test(c)]
        total = len(self._code_files)
        covered = total - len(uncovered)
        ratio = covered / total * 100 if total else 100.0

        status = status_for_score(ratio, t.coverage_pass, t.coverage_warn)
        details = RatioDetails(
            score=round(ratio, 1),
            covered=covered,
            total=total,
            missing=tuple(uncovered),
            recommendation=(
                f"Add tests for uncovered files to reach {t.coverage_pass}% coverage target"
                if ratio < t.coverage_pass
                else None
            ),
        )
        return CheckResult(
            "Test Coverage",
            status,
            f"Test coverage: {ratio:.1f}% ({covered}/{total} files)",
            details,
        )

    def _check_structure(self) -> CheckResult:
        issues: list[Finding] = []
        for record in self._test_files:
            content = record.content
            python = record.path.suffix.lower() == ".py"
            if not python and not _GROUPING_PATTERN.search(content):
                issues.append(
                    Finding(
                        kind="structure",
                        text="Missing describe blocks for test organization",
                        file=record.relative,
                    )
                )
            if not _CASE_PATTERN.search(content):
                issues.append(
                    Finding(kind="structure", text="No test cases found", file=record.relative)
                )
            if len(content) > self.thresholds.large_test_file_chars and not _SETUP_PATTERN.search(
                content
            ):
                issues.append(
                    Finding(
                        kind="structure",
                        text="Consider adding setup blocks for complex tests",
                        file=record.relative,
                    )
                )

        details = IssueDetails(
            issues=tuple(issues),
            recommendation=(
                "Organize tests with describe blocks and add setup/teardown as needed"
                if issues
                else None
            ),
        )
        if issues:
            return CheckResult(
                "Test Structure", "WARNING", f"{len(issues)} test structure issues found", details
            )
        return CheckResult(
            "Test Structure",
            "PASS",
            f"All {len(self._test_files)} test files well-structured",
            details,
        )

    def _check_tdd(self) -> CheckResult:
        specs_root = self.project_root / self.specs_dir
        if not specs_root.is_dir():
            return CheckResult(
                "TDD Approach", "PASS", "No specs directory - TDD validation not applicable"
            )

        specs = sorted(p for p in specs_root.iterdir() if p.is_dir())
        issues: list[Finding] = []
        for spec in specs:
            tasks = spec / "tasks.md"
            if not tasks.is_file():
                continue
            content = read_text(tasks)
            if not (_WRITE_TESTS_PATTERN.search(content) and _VERIFY_TESTS_PATTERN.search(content)):
                issues.append(
                    Finding(
                        kind="tdd",
                        text="Tasks do not follow TDD approach (missing write/verify test steps)",
                        file=spec.name,
                    )
                )

        details = IssueDetails(
            issues=tuple(issues),
            recommendation=(
                'Update task lists to include "write tests" and "verify tests pass" steps'
                if issues
                else None
            ),
        )
        if issues:
            return CheckResult(
                "TDD Approach",
                "WARNING",
                f"{len(issues)} specs missing TDD patterns in tasks",
                details,
            )
        return CheckResult(
            "TDD Approach", "PASS", f"All {len(specs)} specs follow TDD approach", details
        )

    def has_user_interface(self) -> bool:
        return any(
            "component" in record.relative.lower()
            or any(marker in record.content.lower() for marker in UI_MARKERS)
            for record in self._code_files
        )

    def _check_types(self) -> CheckResult:
        counts = {"unit": 0, "integration": 0, "e2e": 0, "other": 0}
        for record in self._test_files:
            counts[_test_type(record)] += 1

        total = sum(counts.values())
        issues: list[Finding] = []
        if total > self.thresholds.test_types_min_total:
            if counts["unit"] == 0:
                issues.append(
                    Finding(
                        kind="test-type",
                        text="No unit tests found - consider adding unit tests for individual functions",
                    )
                )
            if counts["integration"] == 0:
                issues.append(
                    Finding(
                        kind="test-type",
                        text="No integration tests found - consider adding tests for component interactions",
                    )
                )
            if counts["e2e"] == 0 and self.has_user_interface():
                issues.append(
                    Finding(
                        kind="test-type",
                        text="No E2E tests found - consider adding end-to-end tests for user workflows",
                    )
                )

        details = IssueDetails(
            issues=tuple(issues),
            recommendation="Add missing test types for comprehensive coverage" if issues else None,
        )
        if issues:
            return CheckResult(
                "Test Types", "WARNING", f"{len(issues)} test type coverage issues", details
            )
        return CheckResult(
            "Test Types",
            "PASS",
            f"Good test type distribution: {counts['unit']} unit, "
            f"{counts['integration']} integration, {counts['e2e']} E2E",
            details,
        )

    def _check_naming(self) -> CheckResult:
        minimum = self.thresholds.test_description_min_length
        issues: list[Finding] = []
        for record in self._test_files:
            if not any(p.search(record.name) for p in VALID_TEST_NAME_PATTERNS):
                issues.append(
                    Finding(
                        kind="naming",
                        text="Does not follow test file naming convention",
                        file=record.relative,
                    )
                )

            descriptions = _JS_DESCRIPTION_PATTERN.findall(record.content)
            descriptions += [
                name.replace("_", " ") for name in _PY_TEST_NAME_PATTERN.findall(record.content)
            ]
            for description in descriptions:
                if len(description) < minimum:
                    issues.append(
                        Finding(
                            kind="naming",
                            text=f'Test description too short: "{description}"',
                            file=record.relative,
                        )
                    )

        details = IssueDetails(
            issues=tuple(issues),
            recommendation=(
                "Follow test naming conventions and use descriptive test descriptions"
                if issues
                else None
            ),
        )
        if issues:
            return CheckResult(
                "Test Naming", "WARNING", f"{len(issues)} test naming issues found", details
            )
        return CheckResult(
            "Test Naming",
            "PASS",
            f"All {len(self._test_files)} test files follow naming conventions",
            details,
        )

    def _runner_issues_node(self, package: dict[str, Any]) -> list[str]:
        issues: list[str] = []
        scripts = package.get("scripts")
        if not isinstance(scripts, dict) or not scripts.get("test"):
            issues.append("No test script defined in package.json")

        dependencies: dict[str, Any] = {}
        for section in ("dependencies", "devDependencies"):
            declared = package.get(section)
            if isinstance(declared, dict):
                dependencies.update(declared)
        has_framework = any(dep in dependencies for dep in JS_TEST_FRAMEWORKS)
        if not has_framework:
            issues.append("No testing framework found in dependencies")

        has_config = "jest" in package or any(
            (self.project_root / name).exists() for name in JS_TEST_CONFIG_FILES
        )
        if has_framework and not has_config:
            issues.append("Testing framework found but no configuration file")
        return issues

    def _runner_issues_python(self, pyproject: dict[str, Any]) -> list[str]:
        issues: list[str] = []
        has_framework = any(
            re.match(r"pytest\b", dep.strip().lower()) for dep in _python_dependencies(pyproject)
        )
        if not has_framework:
            issues.append("No testing framework found in pyproject.toml dependencies")

        tool = pyproject.get("tool") or {}
        has_config = "pytest" in tool or any(
            (self.project_root / name).exists() for name in PY_TEST_CONFIG_FILES
        )
        if has_framework and not has_config:
            issues.append("Testing framework found but no configuration file")
        return issues

    def _check_runner(self) -> CheckResult:
        package_path = self.project_root / "package.json"
        pyproject_path = self.project_root / "pyproject.toml"

        if package_path.is_file():
            package = _read_json(package_path)
            issues = (
                ["package.json is not valid JSON"]
                if package is None
                else self._runner_issues_node(package)
            )
        elif pyproject_path.is_file():
            pyproject = _read_toml(pyproject_path)
            issues = (
                ["pyproject.toml is not valid TOML"]
                if pyproject is None
                else self._runner_issues_python(pyproject)
            )
        else:
            return CheckResult(
                "Test Runner",
                "WARNING",
                "No package.json or pyproject.toml found - cannot validate test runner setup",
                IssueDetails(recommendation="Add a project manifest with a test runner"),
            )

        details = IssueDetails(
            issues=tuple(Finding(kind="runner", text=issue) for issue in issues),
            recommendation=(
                "Set up test script and testing framework with proper configuration"
                if issues
                else None
            ),
        )
        if issues:
            return CheckResult(
                "Test Runner",
                "WARNING",
                f"{len(issues)} test runner configuration issues",
                details,
            )
        return CheckResult("Test Runner", "PASS", "Test runner properly configured", details)
