"""Spec adherence validator.

Compares a spec directory against an implementation tree using keyword
evidence: requirement prose is reduced to keywords which are then searched
for in implementation files and identifier names.

Checks:
- Spec Requirements: every Spec Scope item has evidence
- User Stories: every acceptance criterion has evidence
- Scope Compliance: no Out of Scope item is fully matched by code
- Expected Deliverables: every deliverable has evidence (tests for test deliverables)
- Technical Requirements: every technical-spec requirement has evidence
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from specguard.config import Thresholds
from specguard.validators.base import (
    BaseValidator,
    CheckResult,
    Finding,
    RequirementDetails,
    ValidatorReport,
)
from specguard.validators.markdown_parser import SpecDocuments, load_spec_documents
from specguard.validators.path_filter import FileRecord, load_records
from specguard.validators.text_analysis import (
    extract_functions,
    extract_keywords,
    find_matches,
    language_for,
)

_CLASS_PATTERN = re.compile(r"\bclass\s+([A-Za-z_$][\w$]*)")
_COMPONENT_PATTERN = re.compile(r"\b(?:function|const|class)\s+([A-Z][\w$]*)")
_ROUTE_PATTERNS = [
    re.compile(r"\b(?:router|app)\.(?:get|post|put|patch|delete)\s*\(\s*[\"'`]([^\"'`]+)"),
    re.compile(r"@\w+\.(?:route|get|post|put|patch|delete)\s*\(\s*[\"']([^\"']+)"),
]
_TEST_PATTERNS = [
    re.compile(r"\b(?:it|test)\s*\(\s*[\"'`]([^\"'`]+)"),
    re.compile(r"^\s*(?:async\s+)?def\s+(test_\w+)", re.MULTILINE),
]

COMPONENT_EXTENSIONS = frozenset({".jsx", ".tsx"})


class SpecPathError(FileNotFoundError):
    """Raised when the spec or implementation directory (or spec.md) is missing."""

    def __init__(self, what: str, path: Path) -> None:
        self.path = path
        super().__init__(f"{what} not found: {path}")


@dataclass
class ImplementationIndex:
    """What an implementation tree contains, for evidence searches.

    Attributes:
        records: Non-documentation files of the tree.
        functions: Function names found in code files.
        classes: Class names found in code files.
        routes: Route paths found in code files.
        tests: Test case names found in test files.
        components: Capitalized UI component names found in JSX/TSX files.
    """

    records: list[FileRecord]
    functions: list[str] = field(default_factory=list)
    classes: list[str] = field(default_factory=list)
    routes: list[str] = field(default_factory=list)
    tests: list[str] = field(default_factory=list)
    components: list[str] = field(default_factory=list)

    @classmethod
    def build(cls, root: Path) -> ImplementationIndex:
        """Walk root and index every non-documentation file."""
        records = [r for r in load_records(root) if r.category != "documentation"]
        index = cls(records=records)

        for record in records:
            if record.category == "code":
                language = language_for(record.path)
                index.functions.extend(f.name for f in extract_functions(record.content, language))
                index.classes.extend(_CLASS_PATTERN.findall(record.content))
                for pattern in _ROUTE_PATTERNS:
                    index.routes.extend(pattern.findall(record.content))
                if record.path.suffix.lower() in COMPONENT_EXTENSIONS:
                    index.components.extend(_COMPONENT_PATTERN.findall(record.content))
            elif record.category == "test":
                for pattern in _TEST_PATTERNS:
                    index.tests.extend(pattern.findall(record.content))

        return index

    @property
    def code_records(self) -> list[FileRecord]:
        return [r for r in self.records if r.category == "code"]

    @property
    def has_tests(self) -> bool:
        return bool(self.tests) or any(r.category == "test" for r in self.records)

    def related_identifiers(self, keywords: set[str]) -> list[str]:
        """Function, class and component names containing any keyword."""
        names = sorted(set(self.functions) | set(self.classes) | set(self.components))
        return [name for name in names if any(k in name.lower() for k in keywords)]

    def evidence(self, text: str, code_only: bool = True) -> Finding:
        """Search the tree for keyword evidence of a piece of spec prose.

        Args:
            text: Requirement, criterion or deliverable text.
            code_only: Search only code files (otherwise every indexed file).

        Returns:
            Finding whose matches list the supporting keywords and identifiers;
            empty matches means no evidence.
        """
        keywords = extract_keywords(text)
        records = self.code_records if code_only else self.records

        matched: set[str] = set()
        first_file: str | None = None
        for record in records:
            found = find_matches(keywords, record.content)
            if found:
                matched.update(found)
                if first_file is None:
                    first_file = record.relative

        related = self.related_identifiers(keywords)
        return Finding(
            kind="requirement",
            text=text,
            file=first_file,
            matches=tuple(sorted(matched)) + tuple(related),
        )


class SpecAdherenceValidator(BaseValidator):
    """Validates an implementation against its spec directory.

    Attributes:
        spec_path: Directory holding spec.md, tasks.md and sub-specs/.
        project_root: Implementation directory.
    """

    name = "spec-adherence"

    def __init__(
        self,
        spec_path: Path,
        implementation_path: Path,
        thresholds: Thresholds | None = None,
    ) -> None:
        super().__init__(implementation_path, thresholds)
        self.spec_path = spec_path
        self._spec: SpecDocuments | None = None
        self._index: ImplementationIndex | None = None

    def validate(self) -> ValidatorReport:
        """Run spec adherence checks.

        Returns:
            ValidatorReport with the five adherence checks.

        Raises:
            SpecPathError: If the spec directory, its spec.md, or the
                implementation directory does not exist.
        """
        if not self.spec_path.is_dir():
            raise SpecPathError("Spec directory", self.spec_path)
        if not (self.spec_path / "spec.md").is_file():
            raise SpecPathError("spec.md", self.spec_path / "spec.md")
        if not self.project_root.is_dir():
            raise SpecPathError("Implementation directory", self.project_root)

        return ValidatorReport.from_checks(
            self.name,
            self.run_checks(),
            target=str(self.project_root),
            stats=self.stats(),
        )

    def run_checks(self) -> list[CheckResult]:
        self._spec = load_spec_documents(self.spec_path)
        self._index = ImplementationIndex.build(self.project_root)
        spec, index = self._spec, self._index

        return [
            self._check_requirements(spec, index),
            self._check_user_stories(spec, index),
            self._check_scope(spec, index),
            self._check_deliverables(spec, index),
            self._check_technical(spec, index),
        ]

    def stats(self) -> dict[str, Any]:
        if self._spec is None or self._index is None:
            return {}
        return {
            "spec": self.spec_path.name,
            "requirements": len(self._spec.requirements),
            "user_stories": len(self._spec.user_stories),
            "deliverables": len(self._spec.deliverables),
            "tasks": len(self._spec.tasks),
            "tasks_done": sum(1 for t in self._spec.tasks if t.done),
            "functions": len(self._index.functions),
            "routes": len(self._index.routes),
            "tests": len(self._index.tests),
        }

    @staticmethod
    def _requirement_check(
        name: str,
        label: str,
        results: list[Finding],
        recommendation: str,
    ) -> CheckResult:
        implemented = tuple(f for f in results if f.matches)
        missing = tuple(f for f in results if not f.matches)
        details = RequirementDetails(
            implemented=implemented,
            missing=missing,
            recommendation=recommendation if missing else None,
        )
        if not results:
            return CheckResult(name, "PASS", f"No {label} listed in spec", details)
        if missing:
            return CheckResult(
                name,
                "FAIL",
                f"{len(missing)} of {len(results)} {label} have no implementation evidence",
                details,
            )
        return CheckResult(
            name, "PASS", f"All {len(results)} {label} have implementation evidence", details
        )

    def _check_requirements(self, spec: SpecDocuments, index: ImplementationIndex) -> CheckResult:
        results = [index.evidence(requirement) for requirement in spec.requirements]
        return self._requirement_check(
            "Spec Requirements",
            "requirements",
            results,
            "Implement the missing Spec Scope items or update the spec",
        )

    def _check_user_stories(self, spec: SpecDocuments, index: ImplementationIndex) -> CheckResult:
        results: list[Finding] = []
        for story in spec.user_stories:
            criteria = story.criteria or [story.content or story.title]
            evidence = [index.evidence(criterion, code_only=False) for criterion in criteria]
            if all(e.matches for e in evidence):
                matches = tuple(sorted({m for e in evidence for m in e.matches}))
            else:
                matches = ()
            results.append(Finding(kind="user-story", text=story.title, matches=matches))

        return self._requirement_check(
            "User Stories",
            "user stories",
            results,
            "Complete the acceptance criteria of the unsatisfied user stories",
        )

    def _check_scope(self, spec: SpecDocuments, index: ImplementationIndex) -> CheckResult:
        violations: list[Finding] = []
        for item in spec.out_of_scope:
            keywords = extract_keywords(item)
            if not keywords:
                continue
            for record in index.code_records:
                if len(find_matches(keywords, record.content)) == len(keywords):
                    violations.append(
                        Finding(
                            kind="scope-creep",
                            text=item,
                            file=record.relative,
                            matches=tuple(sorted(keywords)),
                        )
                    )
                    break

        details = RequirementDetails(
            missing=tuple(violations),
            recommendation=(
                "Remove out-of-scope work or move it into a separate spec" if violations else None
            ),
        )
        if violations:
            return CheckResult(
                "Scope Compliance",
                "WARNING",
                f"{len(violations)} out-of-scope item(s) appear to be implemented",
                details,
            )
        return CheckResult(
            "Scope Compliance", "PASS", "No out-of-scope work detected", details
        )

    def _check_deliverables(self, spec: SpecDocuments, index: ImplementationIndex) -> CheckResult:
        results: list[Finding] = []
        for deliverable in spec.deliverables:
            if "test" in deliverable.lower():
                matches = ("tests",) if index.has_tests else ()
                results.append(Finding(kind="deliverable", text=deliverable, matches=matches))
            else:
                evidence = index.evidence(deliverable, code_only=False)
                results.append(
                    Finding(
                        kind="deliverable",
                        text=deliverable,
                        file=evidence.file,
                        matches=evidence.matches,
                    )
                )

        return self._requirement_check(
            "Expected Deliverables",
            "deliverables",
            results,
            "Deliver the missing items listed under Expected Deliverables",
        )

    def _check_technical(self, spec: SpecDocuments, index: ImplementationIndex) -> CheckResult:
        results = [index.evidence(requirement) for requirement in spec.technical_requirements]
        return self._requirement_check(
            "Technical Requirements",
            "technical requirements",
            results,
            "Address the technical requirements from sub-specs/technical-spec.md",
        )
