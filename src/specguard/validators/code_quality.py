"""Code quality validator.

Checks source files for maintainability problems:
- File Size: line limits per file category, raised for comment-heavy files
- Function Complexity: approximate cyclomatic complexity per function
- Code Duplication: near-identical function bodies
- Naming Conventions: identifier length and casing
- Comment Quality: comment density and documented functions
"""

from __future__ import annotations

import re
from difflib import SequenceMatcher
from pathlib import Path
from typing import Any

from specguard.config import Thresholds
from specguard.validators.base import (
    BaseValidator,
    CheckResult,
    CheckStatus,
    FileSizeDetails,
    Finding,
    FindingsDetails,
    RatioDetails,
    ValidatorReport,
)
from specguard.validators.aggregator import status_for_score
from specguard.validators.path_filter import FileRecord, load_record, load_records
from specguard.validators.text_analysis import (
    FunctionBlock,
    comment_stats,
    cyclomatic_complexity,
    extract_functions,
    language_for,
    tokenize,
)

# Short names that are conventional and not flagged
ALLOWED_SHORT_NAMES = frozenset(
    {"i", "j", "k", "n", "e", "_", "id", "db", "fs", "os", "io", "ok", "el", "ev", "fn", "cb", "ip", "re"}
)

# Names that are part of the language, not chosen by the author
IGNORED_NAMES = frozenset({"constructor", "__init__", "self", "cls"})

_PASCAL_CASE = re.compile(r"^_?[A-Z][A-Za-z0-9]*$")
_UPPER_CASE = re.compile(r"^[A-Z][A-Z0-9_]*$")

_JS_DECLARATIONS = [
    ("variable", re.compile(r"\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)")),
    ("class", re.compile(r"\bclass\s+([A-Za-z_$][\w$]*)")),
    ("attribute", re.compile(r"\bthis\.([A-Za-z_$][\w$]*)\s*=(?!=)")),
]

_PY_DECLARATIONS = [
    ("variable", re.compile(r"^[ \t]*([A-Za-z_]\w*)\s*(?::[^=\n]+)?=(?!=)", re.MULTILINE)),
    ("class", re.compile(r"^[ \t]*class\s+([A-Za-z_]\w*)", re.MULTILINE)),
    ("attribute", re.compile(r"\bself\.([A-Za-z_]\w*)\s*(?::[^=\n]+)?=(?!=)")),
]


class CodeQualityValidator(BaseValidator):
    """Validates maintainability of source files.

    Checks:
    1. File Size - line counts against per-category limits
    2. Function Complexity - branching/looping token count per function
    3. Code Duplication - function bodies above a similarity ratio
    4. Naming Conventions - identifier length and casing heuristics
    5. Comment Quality - comment ratio and documented-function share
    """

    name = "code-quality"

    # Files without functions and with fewer code lines are not judged on comments
    MIN_ASSESSED_CODE_LINES = 20

    def __init__(self, project_root: Path, thresholds: Thresholds | None = None) -> None:
        super().__init__(project_root, thresholds)
        self._records: list[FileRecord] = []
        self._function_count = 0

    def run_checks(self) -> list[CheckResult]:
        self._records = load_records(self.project_root)
        return self._checks_for(self._records)

    def validate_file(self, path: Path) -> ValidatorReport:
        """Run all checks against a single file.

        Args:
            path: File to validate.

        Returns:
            ValidatorReport for the file, or a FAIL report if it does not exist
            or is not a regular file.
        """
        if not path.is_file():
            return self.missing_path_report(path)

        self._records = [load_record(path)]
        checks = self._checks_for(self._records)
        return ValidatorReport.from_checks(self.name, checks, target=str(path), stats=self.stats())

    def stats(self) -> dict[str, Any]:
        return {
            "files_analyzed": len(self._records),
            "code_files": sum(1 for r in self._records if r.category == "code"),
            "functions": self._function_count,
        }

    def _checks_for(self, records: list[FileRecord]) -> list[CheckResult]:
        sized = [r for r in records if r.category != "other"]
        code = [r for r in records if r.category == "code"]
        functions = {r.relative: extract_functions(r.content, language_for(r.path)) for r in code}
        self._function_count = sum(len(f) for f in functions.values())

        return [
            self._check_file_size(sized),
            self._check_complexity(code, functions),
            self._check_duplication(code, functions),
            self._check_naming(code, functions),
            self._check_comments(code, functions),
        ]

    # -------------------------------------------------------------------------
    # File Size
    # -------------------------------------------------------------------------

    def effective_limit(self, record: FileRecord) -> tuple[int, str | None]:
        """Line limit for a file and the allowance that produced it, if any."""
        limit = self.thresholds.limit_for(record.category)
        exception = None if record.category == "code" else f"{record.category} file"

        stats = comment_stats(record.content, language_for(record.path))
        if stats.comment_density >= self.thresholds.comment_heavy_ratio:
            limit = int(limit * self.thresholds.comment_heavy_multiplier)
            exception = "comment-heavy"

        return limit, exception

    def _check_file_size(self, records: list[FileRecord]) -> CheckResult:
        oversized: list[Finding] = []
        largest_lines = 0
        largest_limit = self.thresholds.code_max_lines
        largest_exception: str | None = None

        for record in records:
            lines = len(record.content.splitlines())
            limit, exception = self.effective_limit(record)
            if lines >= largest_lines:
                largest_lines, largest_limit, largest_exception = lines, limit, exception
            if lines > limit:
                oversized.append(
                    Finding(
                        kind="oversized-file",
                        text=f"{lines} lines (limit {limit})",
                        file=record.relative,
                    )
                )

        details = FileSizeDetails(
            files_checked=len(records),
            lines=largest_lines,
            limit=largest_limit,
            exception=largest_exception,
            oversized=tuple(oversized),
            recommendation="Split large files into smaller, focused modules" if oversized else None,
        )

        if oversized:
            return CheckResult(
                name="File Size",
                status="FAIL",
                message=f"{len(oversized)} file(s) exceed their line limit",
                details=details,
            )
        return CheckResult(
            name="File Size",
            status="PASS",
            message=f"All {len(records)} file(s) within size limits (largest: {largest_lines} lines)",
            details=details,
        )

    # -------------------------------------------------------------------------
    # Function Complexity
    # -------------------------------------------------------------------------

    def _check_complexity(
        self, records: list[FileRecord], functions: dict[str, list[FunctionBlock]]
    ) -> CheckResult:
        findings: list[Finding] = []
        highest = 0
        total = 0

        for record in records:
            for function in functions[record.relative]:
                total += 1
                complexity = cyclomatic_complexity(function.body)
                highest = max(highest, complexity)
                if complexity > self.thresholds.complexity_warning:
                    severity = "high" if complexity > self.thresholds.complexity_failure else "medium"
                    findings.append(
                        Finding(
                            kind="complex-function",
                            text=f"{function.name} has complexity {complexity}",
                            file=record.relative,
                            line=function.line,
                            severity=severity,
                            matches=(function.name,),
                        )
                    )

        status: CheckStatus = "PASS"
        if highest > self.thresholds.complexity_failure:
            status = "FAIL"
        elif findings:
            status = "WARNING"

        details = FindingsDetails(
            violations=tuple(findings),
            files_scanned=len(records),
            recommendation=(
                "Break complex functions into smaller helpers and reduce nesting"
                if findings
                else None
            ),
        )

        if not total:
            return CheckResult("Function Complexity", "PASS", "No functions to analyze", details)
        if findings:
            message = (
                f"{len(findings)} of {total} function(s) exceed complexity "
                f"{self.thresholds.complexity_warning} (max {highest})"
            )
        else:
            message = f"All {total} function(s) within complexity limits (max {highest})"
        return CheckResult("Function Complexity", status, message, details)

    # -------------------------------------------------------------------------
    # Code Duplication
    # -------------------------------------------------------------------------

    @staticmethod
    def normalized_tokens(function: FunctionBlock) -> list[str]:
        """Body tokens with parameter names replaced by positional placeholders."""
        placeholders = {name: f"$P{index}" for index, name in enumerate(function.params)}
        return [placeholders.get(token, token) for token in tokenize(function.body)]

    def _check_duplication(
        self, records: list[FileRecord], functions: dict[str, list[FunctionBlock]]
    ) -> CheckResult:
        candidates: list[tuple[str, FunctionBlock, list[str]]] = []
        for record in records:
            for function in functions[record.relative]:
                tokens = self.normalized_tokens(function)
                if len(tokens) >= self.thresholds.duplication_min_tokens:
                    candidates.append((record.relative, function, tokens))

        threshold = self.thresholds.duplication_similarity
        findings: list[Finding] = []
        for i, (file_a, func_a, tokens_a) in enumerate(candidates):
            for file_b, func_b, tokens_b in candidates[i + 1:]:
                matcher = SequenceMatcher(None, tokens_a, tokens_b, autojunk=False)
                if matcher.real_quick_ratio() < threshold or matcher.quick_ratio() < threshold:
                    continue
                ratio = matcher.ratio()
                if ratio >= threshold:
                    location = func_b.name if file_a == file_b else f"{func_b.name} ({file_b})"
                    findings.append(
                        Finding(
                            kind="duplicate-function",
                            text=f"{func_a.name} is {round(ratio * 100)}% similar to {location}",
                            file=file_a,
                            line=func_a.line,
                            matches=(func_a.name, func_b.name),
                        )
                    )

        details = FindingsDetails(
            violations=tuple(findings),
            files_scanned=len(records),
            recommendation="Extract duplicated logic into shared functions" if findings else None,
        )
        if findings:
            return CheckResult(
                "Code Duplication",
                "WARNING",
                f"{len(findings)} near-duplicate function pair(s) found",
                details,
            )
        return CheckResult(
            "Code Duplication",
            "PASS",
            f"No significant duplication across {len(candidates)} function(s)",
            details,
        )

    # -------------------------------------------------------------------------
    # Naming Conventions
    # -------------------------------------------------------------------------

    def _identifiers(
        self, record: FileRecord, functions: list[FunctionBlock]
    ) -> list[tuple[str, str, int]]:
        """(kind, name, line) for every declared identifier, first occurrence only."""
        python = language_for(record.path) == "python"
        found: list[tuple[str, str, int]] = []
        seen: set[tuple[str, str]] = set()

        def add(kind: str, name: str, line: int) -> None:
            if name in IGNORED_NAMES or (kind, name) in seen:
                return
            seen.add((kind, name))
            found.append((kind, name, line))

        for function in functions:
            add("function", function.name, function.line)
            for param in function.params:
                add("parameter", param, function.line)

        declarations = _PY_DECLARATIONS if python else _JS_DECLARATIONS
        for kind, pattern in declarations:
            for match in pattern.finditer(record.content):
                line = record.content.count("\n", 0, match.start(1)) + 1
                add(kind, match.group(1), line)

        return found

    def naming_problem(self, kind: str, name: str, python: bool) -> str | None:
        """Describe what is wrong with an identifier, or None if it is fine."""
        bare = name.strip("_")
        if len(bare) < self.thresholds.naming_min_length and bare not in ALLOWED_SHORT_NAMES and bare:
            return f"'{name}' is too short to be descriptive"
        if len(name) > self.thresholds.naming_max_length:
            return f"'{name}' is longer than {self.thresholds.naming_max_length} characters"
        if kind == "class":
            if not _PASCAL_CASE.match(name):
                return f"class '{name}' should use PascalCase"
            return None
        if _UPPER_CASE.match(name) or not bare:
            return None
        if python and kind in ("function", "parameter") and any(c.isupper() for c in bare):
            return f"'{name}' should use snake_case"
        if not python and "_" in bare:
            return f"'{name}' should use camelCase"
        return None

    def _check_naming(
        self, records: list[FileRecord], functions: dict[str, list[FunctionBlock]]
    ) -> CheckResult:
        findings: list[Finding] = []
        total = 0

        for record in records:
            python = language_for(record.path) == "python"
            for kind, name, line in self._identifiers(record, functions[record.relative]):
                total += 1
                problem = self.naming_problem(kind, name, python)
                if problem is not None:
                    findings.append(
                        Finding(
                            kind=f"poor-{kind}-name",
                            text=problem,
                            file=record.relative,
                            line=line,
                            matches=(name,),
                        )
                    )

        details = FindingsDetails(
            violations=tuple(findings),
            files_scanned=len(records),
            recommendation=(
                "Use descriptive names that follow the language's casing conventions"
                if findings
                else None
            ),
        )

        if not findings:
            return CheckResult(
                "Naming Conventions", "PASS", f"All {total} identifier(s) follow conventions", details
            )

        status: CheckStatus = "WARNING"
        if total and len(findings) / total > self.thresholds.naming_fail_ratio:
            status = "FAIL"
        return CheckResult(
            "Naming Conventions",
            status,
            f"{len(findings)} of {total} identifier(s) break naming conventions",
            details,
        )

    # -------------------------------------------------------------------------
    # Comment Quality
    # -------------------------------------------------------------------------

    def is_well_commented(self, record: FileRecord, functions: list[FunctionBlock]) -> bool | None:
        """Whether a file meets both comment bars; None when too small to judge."""
        stats = comment_stats(record.content, language_for(record.path))
        if not functions and stats.code_lines < self.MIN_ASSESSED_CODE_LINES:
            return None

        ratio_ok = stats.comment_ratio >= self.thresholds.comment_min_ratio
        if not functions:
            return ratio_ok
        documented = sum(1 for f in functions if f.documented) / len(functions)
        return ratio_ok and documented >= self.thresholds.documented_function_ratio

    def _check_comments(
        self, records: list[FileRecord], functions: dict[str, list[FunctionBlock]]
    ) -> CheckResult:
        evaluated = 0
        poorly_commented: list[str] = []

        for record in records:
            verdict = self.is_well_commented(record, functions[record.relative])
            if verdict is None:
                continue
            evaluated += 1
            if not verdict:
                poorly_commented.append(record.relative)

        if not evaluated:
            return CheckResult(
                "Comment Quality",
                "PASS",
                "No files large enough to assess comments",
                RatioDetails(score=100.0),
            )

        covered = evaluated - len(poorly_commented)
        score = round(covered / evaluated * 100, 1)
        status = status_for_score(
            score, self.thresholds.comment_quality_pass, self.thresholds.comment_quality_warn
        )
        details = RatioDetails(
            score=score,
            covered=covered,
            total=evaluated,
            missing=tuple(poorly_commented),
            recommendation=(
                "Document functions and explain non-obvious logic with comments"
                if poorly_commented
                else None
            ),
        )
        return CheckResult(
            "Comment Quality",
            status,
            f"{covered} of {evaluated} file(s) adequately commented ({score}%)",
            details,
        )
