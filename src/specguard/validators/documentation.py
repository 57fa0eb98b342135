"""Documentation validator.

Checks:
- README Completeness: required README sections, as a percentage
- API Documentation: routes carry a preceding comment, API docs exist
- Code Comments: share of well-commented code files
- Setup Instructions: install/usage guidance and standard manifest scripts
- Spec Documentation: spec directories have their files and sections
- Documentation Structure: docs/ directory, root clutter, near-empty documents
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path, PurePosixPath
from typing import Any

from specguard.config import DEFAULT_SPECS_DIR, Thresholds
from specguard.validators.aggregator import status_for_score
from specguard.validators.base import (
    BaseValidator,
    CheckResult,
    Finding,
    IssueDetails,
    PresenceDetails,
    RatioDetails,
)
from specguard.validators.markdown_parser import MarkdownParser
from specguard.validators.path_filter import FileRecord, load_records, read_text
from specguard.validators.text_analysis import comment_stats, extract_functions, language_for

logger = logging.getLogger(__name__)

README_REQUIRED_SECTIONS: list[tuple[str, re.Pattern[str]]] = [
    ("Title/Project Name", re.compile(r"^#\s+.+", re.MULTILINE)),
    ("Description", re.compile(r"description|what|overview", re.IGNORECASE)),
    ("Installation", re.compile(r"install|setup|getting started", re.IGNORECASE)),
    ("Usage", re.compile(r"usage|how to|example", re.IGNORECASE)),
    ("Features", re.compile(r"features|functionality", re.IGNORECASE)),
]

README_OPTIONAL_SECTIONS: list[tuple[str, re.Pattern[str]]] = [
    ("Contributing", re.compile(r"contribut", re.IGNORECASE)),
    ("License", re.compile(r"license", re.IGNORECASE)),
    ("API Documentation", re.compile(r"\bapi\b|endpoints", re.IGNORECASE)),
    ("Testing", re.compile(r"test", re.IGNORECASE)),
    ("Deployment", re.compile(r"deploy|production", re.IGNORECASE)),
]

_INSTALL_PATTERN = re.compile(r"install|npm|yarn|pip|setup|getting started", re.IGNORECASE)
_USAGE_PATTERN = re.compile(r"usage|example|how to|run|start", re.IGNORECASE)

IMPORTANT_SCRIPTS = ("start", "dev", "build", "test")
REQUIRED_SPEC_FILES = ("spec.md", "tasks.md")
REQUIRED_SPEC_SECTIONS = ("Overview", "User Stories", "Spec Scope")

_API_FILE_MARKERS = ("api", "router", "controller")
_API_CONTENT_PATTERN = re.compile(
    r"\b(?:app|router)\.(?:get|post|put|delete)\b|\bexpress\b|@\w+\.(?:route|get|post|put|delete)\s*\("
)
_API_DOC_NAME_PATTERN = re.compile(r"api|endpoint|swagger|openapi", re.IGNORECASE)

ROUTE_DEFINITION_PATTERNS = [
    re.compile(r"(?<!@)\b(?:app|router)\.(get|post|put|delete|patch)\s*\(\s*[\"'`]([^\"'`]+)[\"'`]", re.IGNORECASE),
    re.compile(r"@\w+\.(route|get|post|put|delete|patch)\s*\(\s*[\"']([^\"']+)[\"']"),
]
_COMMENT_PATTERN = re.compile(r"/\*[\s\S]*?\*/|//.*$|^\s*#", re.MULTILINE)
_DOCSTRING_PATTERN = re.compile(r"^\s*def\s[^\n]*\n\s*(?:\"\"\"|''')", re.MULTILINE)


def find_readme(root: Path) -> Path | None:
    """README.md in the project root, or any README* file as a fallback."""
    preferred = root / "README.md"
    if preferred.is_file():
        return preferred
    candidates = sorted(p for p in root.glob("[Rr][Ee][Aa][Dd][Mm][Ee]*") if p.is_file())
    return candidates[0] if candidates else None


def undocumented_routes(content: str, window: int = 200) -> list[str]:
    """Routes in a source file without a comment shortly before them.

    Python routes also count as documented when the decorated function
    opens with a docstring.

    Args:
        content: Source text.
        window: Characters before the route searched for a comment.

    Returns:
        Routes as "METHOD /path", in source order.
    """
    missing: list[str] = []
    for pattern in ROUTE_DEFINITION_PATTERNS:
        for match in pattern.finditer(content):
            before = content[max(0, match.start() - window):match.start()]
            documented = _COMMENT_PATTERN.search(before) is not None
            if not documented and match.group(0).startswith("@"):
                after = content[match.end():match.end() + window]
                documented = _DOCSTRING_PATTERN.search(after) is not None
            if not documented:
                missing.append(f"{match.group(1).upper()} {match.group(2)}")
    return missing


def _word_count(text: str) -> int:
    return len(text.split())


class DocumentationValidator(BaseValidator):
    """Validates documentation completeness and organization."""

    name = "documentation"

    def __init__(
        self,
        project_root: Path,
        thresholds: Thresholds | None = None,
        specs_dir: str = DEFAULT_SPECS_DIR,
    ) -> None:
        super().__init__(project_root, thresholds)
        self.specs_dir = specs_dir
        self._records: list[FileRecord] = []

    def run_checks(self) -> list[CheckResult]:
        self._records = load_records(self.project_root)
        readme = find_readme(self.project_root)
        readme_text = read_text(readme) if readme else None

        return [
            self._check_readme(readme_text),
            self._check_api_docs(),
            self._check_code_comments(),
            self._check_setup(readme_text),
            self._check_spec_docs(),
            self._check_structure(),
        ]

    @property
    def doc_files(self) -> list[FileRecord]:
        return [r for r in self._records if r.category == "documentation"]

    @property
    def code_files(self) -> list[FileRecord]:
        return [r for r in self._records if r.category == "code"]

    def stats(self) -> dict[str, Any]:
        docs = self.doc_files
        total_words = sum(_word_count(r.content) for r in docs)
        return {
            "documentation_files": len(docs),
            "total_words": total_words,
            "average_words_per_file": round(total_words / len(docs)) if docs else 0,
        }

    def _check_readme(self, content: str | None) -> CheckResult:
        if content is None:
            return CheckResult(
                "README Completeness",
                "FAIL",
                "README.md file not found",
                PresenceDetails(recommendation="Create a comprehensive README.md file"),
            )

        required = [name for name, _ in README_REQUIRED_SECTIONS]
        present = [name for name, pattern in README_REQUIRED_SECTIONS if pattern.search(content)]
        missing = [name for name in required if name not in present]
        optional = [name for name, pattern in README_OPTIONAL_SECTIONS if pattern.search(content)]

        score = len(present) / len(required) * 100
        status = status_for_score(score, self.thresholds.readme_pass, self.thresholds.readme_warn)
        details = PresenceDetails(
            applicable=tuple(required),
            covered=tuple(present),
            missing=tuple(missing),
            evidence=tuple(optional),
            recommendation=f"Add missing sections: {', '.join(missing)}" if missing else None,
        )
        return CheckResult(
            "README Completeness",
            status,
            f"README completeness: {score:.0f}% ({len(present)}/{len(required)} required sections)",
            details,
        )

    def _is_api_file(self, record: FileRecord) -> bool:
        name = record.name.lower()
        return any(marker in name for marker in _API_FILE_MARKERS) or bool(
            _API_CONTENT_PATTERN.search(record.content)
        )

    def _check_api_docs(self) -> CheckResult:
        api_files = [r for r in self.code_files if self._is_api_file(r)]
        if not api_files:
            return CheckResult(
                "API Documentation", "PASS", "No API files found - documentation not applicable"
            )

        issues: list[Finding] = []
        has_api_docs = any(
            r.category in ("documentation", "configuration") and _API_DOC_NAME_PATTERN.search(r.name)
            for r in self._records
        )
        if not has_api_docs:
            issues.append(
                Finding(kind="missing-api-docs", text="No dedicated API documentation found")
            )

        for record in api_files:
            routes = undocumented_routes(record.content, self.thresholds.route_comment_window)
            if routes:
                issues.append(
                    Finding(
                        kind="undocumented-routes",
                        text=f"{len(routes)} undocumented routes",
                        file=record.relative,
                        matches=tuple(routes[:3]),
                    )
                )

        details = IssueDetails(
            issues=tuple(issues),
            recommendation=(
                "Add API documentation and document all routes with parameters and responses"
                if issues
                else None
            ),
        )
        if issues:
            return CheckResult(
                "API Documentation",
                "WARNING",
                f"{len(issues)} API documentation issues found",
                details,
            )
        return CheckResult(
            "API Documentation",
            "PASS",
            f"All {len(api_files)} API files properly documented",
            details,
        )

    def _is_well_commented(self, record: FileRecord) -> bool:
        language = language_for(record.path)
        stats = comment_stats(record.content, language)
        if stats.comment_ratio < self.thresholds.comment_min_ratio:
            return False
        functions = extract_functions(record.content, language)
        if not functions:
            return True
        documented = sum(1 for f in functions if f.documented) / len(functions)
        return documented >= self.thresholds.documented_function_ratio

    def _check_code_comments(self) -> CheckResult:
        t = self.thresholds
        files = self.code_files
        poorly = [r.relative for r in files if not self._is_well_commented(r)]
        well = len(files) - len(poorly)
        score = well / len(files) * 100 if files else 100.0

        details = RatioDetails(
            score=round(score, 1),
            covered=well,
            total=len(files),
            missing=tuple(poorly),
            recommendation=(
                "Add meaningful comments to complex functions and unclear code sections"
                if poorly
                else None
            ),
        )
        return CheckResult(
            "Code Comments",
            status_for_score(score, t.code_comments_pass, t.code_comments_warn),
            f"Code comment quality: {score:.0f}% ({well}/{len(files)} files well-commented)",
            details,
        )

    def _check_setup(self, readme_text: str | None) -> CheckResult:
        issues: list[Finding] = []
        if readme_text is None:
            issues.append(
                Finding(kind="missing-readme", text="No README.md with setup instructions")
            )
        else:
            if not _INSTALL_PATTERN.search(readme_text):
                issues.append(
                    Finding(
                        kind="missing-install",
                        text="README does not contain installation/setup instructions",
                    )
                )
            if not _USAGE_PATTERN.search(readme_text):
                issues.append(
                    Finding(kind="missing-usage", text="README does not contain usage examples")
                )

        package_path = self.project_root / "package.json"
        if package_path.is_file():
            try:
                package = json.loads(read_text(package_path) or "{}")
            except json.JSONDecodeError:
                logger.debug("Unreadable package.json in %s", self.project_root)
                package = {}
            scripts = package.get("scripts") if isinstance(package, dict) else None
            if not isinstance(scripts, dict) or not scripts:
                issues.append(
                    Finding(kind="missing-scripts", text="No npm scripts defined in package.json")
                )
            else:
                missing = [s for s in IMPORTANT_SCRIPTS if not scripts.get(s)]
                if missing:
                    issues.append(
                        Finding(
                            kind="missing-scripts",
                            text="Important npm scripts are missing",
                            file="package.json",
                            matches=tuple(missing),
                        )
                    )

        details = IssueDetails(
            issues=tuple(issues),
            recommendation=(
                "Add comprehensive setup instructions with installation and usage examples"
                if issues
                else None
            ),
        )
        if issues:
            return CheckResult(
                "Setup Instructions",
                "WARNING",
                f"{len(issues)} setup instruction issues found",
                details,
            )
        return CheckResult(
            "Setup Instructions", "PASS", "Setup instructions are complete and clear", details
        )

    def _check_spec_docs(self) -> CheckResult:
        specs_root = self.project_root / self.specs_dir
        if not specs_root.is_dir():
            return CheckResult(
                "Spec Documentation",
                "PASS",
                "No specs directory - spec documentation not applicable",
            )

        specs = sorted(p for p in specs_root.iterdir() if p.is_dir())
        issues: list[Finding] = []
        for spec in specs:
            missing_files = [f for f in REQUIRED_SPEC_FILES if not (spec / f).exists()]
            if missing_files:
                issues.append(
                    Finding(
                        kind="missing-files",
                        text="Missing required files",
                        file=spec.name,
                        matches=tuple(missing_files),
                    )
                )

            spec_file = spec / "spec.md"
            if spec_file.is_file():
                content = read_text(spec_file)
                missing_sections = [
                    s for s in REQUIRED_SPEC_SECTIONS if not MarkdownParser.has_section(content, s)
                ]
                if missing_sections:
                    issues.append(
                        Finding(
                            kind="incomplete-spec",
                            text="Incomplete spec structure",
                            file=spec.name,
                            matches=tuple(missing_sections),
                        )
                    )

        details = IssueDetails(
            issues=tuple(issues),
            recommendation=(
                "Complete missing spec files and required sections" if issues else None
            ),
        )
        if issues:
            return CheckResult(
                "Spec Documentation",
                "WARNING",
                f"{len(issues)} spec documentation issues found",
                details,
            )
        return CheckResult(
            "Spec Documentation", "PASS", f"All {len(specs)} specs properly documented", details
        )

    def _check_structure(self) -> CheckResult:
        t = self.thresholds
        docs = self.doc_files
        issues: list[Finding] = []

        if len(docs) > t.docs_dir_min_files and not (self.project_root / "docs").is_dir():
            issues.append(
                Finding(
                    kind="missing-docs-dir",
                    text="Multiple documentation files but no organized docs/ directory",
                )
            )

        root_docs = [r for r in docs if PurePosixPath(r.relative).parent == PurePosixPath(".")]
        if len(root_docs) > t.root_doc_max_files:
            issues.append(
                Finding(
                    kind="root-clutter",
                    text=f"Too many documentation files in project root ({len(root_docs)})",
                )
            )

        orphaned = [r.relative for r in docs if len(r.content) < t.orphaned_doc_max_chars]
        if orphaned:
            issues.append(
                Finding(
                    kind="orphaned",
                    text=f"{len(orphaned)} very short documentation files that might be incomplete",
                    matches=tuple(orphaned[:3]),
                )
            )

        details = IssueDetails(
            issues=tuple(issues),
            recommendation=(
                "Organize documentation files into a docs/ directory structure" if issues else None
            ),
        )
        if issues:
            return CheckResult(
                "Documentation Structure",
                "WARNING",
                f"{len(issues)} documentation structure issues",
                details,
            )
        return CheckResult(
            "Documentation Structure", "PASS", "Documentation structure is well-organized", details
        )
