"""Security validator.

Scans source, configuration and environment files for common security
problems. Pattern-based checks FAIL on any hit; checks that look for the
presence of a safeguard only WARN when it is missing.

Checks:
- Hardcoded Secrets, Insecure Patterns, SQL Injection Prevention,
  XSS Prevention (FAIL)
- Input Validation, Authentication, HTTPS/TLS, Config Security,
  Dependency Security, Environment Security (WARNING)
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import yaml

from specguard.config import Thresholds
from specguard.validators.base import (
    BaseValidator,
    CheckResult,
    Finding,
    FindingsDetails,
    PresenceDetails,
    SqlInjectionDetails,
    ValidatorReport,
    XssDetails,
)
from specguard.validators.path_filter import FileRecord, load_record, walk
from specguard.validators.patterns import (
    AUTH_PATTERNS,
    USER_INPUT_PATTERNS,
    VALIDATION_PATTERNS,
    PatternHit,
    find_insecure_calls,
    find_insecure_urls,
    find_secrets,
    find_sql_injection,
    find_xss,
    has_parameterized_query,
    has_routes,
    has_xss_protection,
    is_placeholder_value,
    matched_labels,
)

SCANNED_EXTENSIONS = frozenset(
    {".js", ".ts", ".jsx", ".tsx", ".py", ".rb", ".php", ".java", ".cs", ".json", ".yaml", ".yml"}
)

STRUCTURED_CONFIG_EXTENSIONS = frozenset({".json", ".yaml", ".yml"})

# Generated lockfiles are never hand-edited and are skipped
LOCKFILES = frozenset({"package-lock.json", "npm-shrinkwrap.json", "yarn.lock", "pnpm-lock.yaml"})

SENSITIVE_KEY_PATTERN = re.compile(
    r"password|passwd|secret|token|api[_-]?key|private[_-]?key|access[_-]?key|credential|^key$",
    re.IGNORECASE,
)

# Packages with known security or maintenance problems
PROBLEMATIC_PACKAGES: dict[str, str] = {
    "lodash": "has a history of prototype pollution vulnerabilities; keep it current",
    "moment": "is in maintenance mode; consider date-fns or luxon",
    "request": "is deprecated and unmaintained",
    "node-sass": "is deprecated; use sass",
    "pycrypto": "is unmaintained; use pycryptodome",
}

WILDCARD_VERSION_PATTERN = re.compile(r"^\s*(?:\*|x|latest|\d+\.x(?:\.x)?|\d+\.\d+\.x)\s*$", re.IGNORECASE)

_REQUIREMENT_PATTERN = re.compile(r"^\s*(?P<name>[A-Za-z0-9][A-Za-z0-9._-]*)(?:\[[^\]]*\])?\s*(?P<spec>[^;#]*)")


def is_env_file(path: Path) -> bool:
    """True for .env and .env.* files."""
    return path.name == ".env" or path.name.startswith(".env.")


def is_requirements_file(path: Path) -> bool:
    """True for pip requirements files (requirements.txt, requirements-dev.txt, ...)."""
    return path.name.startswith("requirements") and path.suffix == ".txt"


def _walk_config(data: Any, prefix: str = "") -> Iterator[tuple[str, str]]:
    """Yield (key path, value) for sensitive keys holding literal strings."""
    if isinstance(data, dict):
        for key, value in data.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            if isinstance(value, str):
                if SENSITIVE_KEY_PATTERN.search(str(key)) and not is_placeholder_value(value):
                    yield path, value
            else:
                yield from _walk_config(value, path)
    elif isinstance(data, list):
        for index, item in enumerate(data):
            yield from _walk_config(item, f"{prefix}[{index}]")


def _line_of(content: str, needle: str) -> int | None:
    for number, line in enumerate(content.splitlines(), start=1):
        if needle in line:
            return number
    return None


class SecurityValidator(BaseValidator):
    """Validates a project against common security pitfalls.

    Test files are excluded from the source pattern checks in directory
    mode; validate_file() always analyzes the file it is given.
    """

    name = "security"

    def __init__(self, project_root: Path, thresholds: Thresholds | None = None) -> None:
        super().__init__(project_root, thresholds)
        self._records: list[FileRecord] = []

    def run_checks(self) -> list[CheckResult]:
        self._records = [
            load_record(path, self.project_root)
            for path in walk(self.project_root)
            if self.is_scanned(path)
        ]
        return self._checks_for(self._records, include_tests=False)

    def validate_file(self, path: Path) -> ValidatorReport:
        """Run all checks against a single file.

        Args:
            path: File to validate.

        Returns:
            ValidatorReport for the file, or a FAIL report if it does not exist.
        """
        if not path.is_file():
            return self.missing_path_report(path)

        self._records = [load_record(path)]
        checks = self._checks_for(self._records, include_tests=True)
        return ValidatorReport.from_checks(self.name, checks, target=str(path), stats=self.stats())

    def stats(self) -> dict[str, Any]:
        return {"files_scanned": len(self._records)}

    @staticmethod
    def is_scanned(path: Path) -> bool:
        if path.name in LOCKFILES:
            return False
        if is_env_file(path) or is_requirements_file(path):
            return True
        return path.suffix.lower() in SCANNED_EXTENSIONS

    def _checks_for(self, records: list[FileRecord], include_tests: bool) -> list[CheckResult]:
        sources = [
            r for r in records if r.is_source and (include_tests or r.category != "test")
        ]
        literals = [
            r for r in records if not is_env_file(r.path) and not is_requirements_file(r.path)
        ]
        manifests = [r for r in records if r.name == "package.json" or is_requirements_file(r.path)]
        structured = [r for r in records if r.path.suffix.lower() in STRUCTURED_CONFIG_EXTENSIONS]
        # Structured config files are reported by Config Security instead
        secret_sources = [
            r for r in literals if r.path.suffix.lower() not in STRUCTURED_CONFIG_EXTENSIONS
        ]

        return [
            self._check_secrets(secret_sources),
            self._check_insecure_patterns(sources),
            self._check_sql_injection(sources),
            self._check_xss(sources),
            self._check_input_validation(sources),
            self._check_authentication(sources),
            self._check_https(literals),
            self._check_config(structured),
            self._check_dependencies(manifests),
            self._check_environment([r for r in records if is_env_file(r.path)]),
        ]

    @staticmethod
    def _findings(
        records: list[FileRecord],
        detector: Callable[[str], list[PatternHit]],
        kind: str,
        severity: str,
    ) -> list[Finding]:
        findings: list[Finding] = []
        for record in records:
            for hit in detector(record.content):
                findings.append(
                    Finding(
                        kind=kind,
                        text=f"{hit.label}: {hit.text}",
                        file=record.relative,
                        line=hit.line,
                        severity=severity,
                    )
                )
        return findings

    # -------------------------------------------------------------------------
    # Pattern checks (FAIL)
    # -------------------------------------------------------------------------

    def _check_secrets(self, records: list[FileRecord]) -> CheckResult:
        findings = self._findings(records, find_secrets, "hardcoded-secret", "high")
        details = FindingsDetails(
            violations=tuple(findings),
            files_scanned=len(records),
            recommendation=(
                "Move secrets to environment variables or a secret manager" if findings else None
            ),
        )
        if findings:
            return CheckResult(
                "Hardcoded Secrets", "FAIL", f"Found {len(findings)} hardcoded secret(s)", details
            )
        return CheckResult("Hardcoded Secrets", "PASS", "No hardcoded secrets detected", details)

    def _check_insecure_patterns(self, records: list[FileRecord]) -> CheckResult:
        findings = self._findings(records, find_insecure_calls, "insecure-call", "high")
        details = FindingsDetails(
            violations=tuple(findings),
            files_scanned=len(records),
            recommendation=(
                "Replace eval/exec/system calls and raw DOM writes with safe alternatives"
                if findings
                else None
            ),
        )
        if findings:
            return CheckResult(
                "Insecure Patterns", "FAIL", f"Found {len(findings)} insecure call site(s)", details
            )
        return CheckResult("Insecure Patterns", "PASS", "No insecure patterns detected", details)

    def _check_sql_injection(self, records: list[FileRecord]) -> CheckResult:
        findings = self._findings(records, find_sql_injection, "sql-injection", "high")
        parameterized = any(has_parameterized_query(r.content) for r in records)
        details = SqlInjectionDetails(
            violations=tuple(findings),
            files_scanned=len(records),
            has_parameterized_queries=parameterized,
            recommendation=(
                "Use parameterized queries or an ORM instead of building SQL strings"
                if findings
                else None
            ),
        )
        if findings:
            return CheckResult(
                "SQL Injection Prevention",
                "FAIL",
                f"Found {len(findings)} SQL statement(s) built from runtime values",
                details,
            )
        message = (
            "Parameterized queries in use" if parameterized else "No SQL injection patterns detected"
        )
        return CheckResult("SQL Injection Prevention", "PASS", message, details)

    def _check_xss(self, records: list[FileRecord]) -> CheckResult:
        findings = self._findings(records, find_xss, "xss", "high")
        protected = any(has_xss_protection(r.content) for r in records)
        details = XssDetails(
            violations=tuple(findings),
            files_scanned=len(records),
            has_xss_protection=protected,
            recommendation=(
                "Escape or sanitize data before writing it into HTML" if findings else None
            ),
        )
        if findings:
            return CheckResult(
                "XSS Prevention", "FAIL", f"Found {len(findings)} potential XSS sink(s)", details
            )
        return CheckResult("XSS Prevention", "PASS", "No XSS vulnerabilities detected", details)

    # -------------------------------------------------------------------------
    # Presence checks (WARNING)
    # -------------------------------------------------------------------------

    def _presence_check(
        self,
        name: str,
        records: list[FileRecord],
        applies: Callable[[str], bool],
        markers: list[tuple[str, re.Pattern[str]]],
        not_applicable: str,
        missing_message: str,
        recommendation: str,
    ) -> CheckResult:
        applicable: list[str] = []
        covered: list[str] = []
        missing: list[str] = []
        evidence: set[str] = set()

        for record in records:
            if not applies(record.content):
                continue
            applicable.append(record.relative)
            labels = matched_labels(record.content, markers)
            if labels:
                covered.append(record.relative)
                evidence.update(labels)
            else:
                missing.append(record.relative)

        details = PresenceDetails(
            applicable=tuple(applicable),
            covered=tuple(covered),
            missing=tuple(missing),
            evidence=tuple(sorted(evidence)),
            recommendation=recommendation if missing else None,
        )
        if not applicable:
            return CheckResult(name, "PASS", not_applicable, details)
        if missing:
            return CheckResult(
                name, "WARNING", f"{missing_message} in {len(missing)} file(s)", details
            )
        return CheckResult(
            name, "PASS", f"Safeguards found in all {len(applicable)} relevant file(s)", details
        )

    def _check_input_validation(self, records: list[FileRecord]) -> CheckResult:
        return self._presence_check(
            "Input Validation",
            records,
            lambda content: bool(matched_labels(content, USER_INPUT_PATTERNS)),
            VALIDATION_PATTERNS,
            not_applicable="No request input handling found",
            missing_message="Request input used without validation",
            recommendation="Validate request input with a schema library (joi, yup, pydantic, ...)",
        )

    def _check_authentication(self, records: list[FileRecord]) -> CheckResult:
        return self._presence_check(
            "Authentication",
            records,
            has_routes,
            AUTH_PATTERNS,
            not_applicable="No route definitions found",
            missing_message="Routes defined without authentication",
            recommendation="Protect routes with authentication middleware",
        )

    def _check_https(self, records: list[FileRecord]) -> CheckResult:
        findings = self._findings(records, find_insecure_urls, "insecure-url", "medium")
        details = FindingsDetails(
            violations=tuple(findings),
            files_scanned=len(records),
            recommendation="Use https:// for all non-local URLs" if findings else None,
        )
        if findings:
            return CheckResult(
                "HTTPS/TLS", "WARNING", f"Found {len(findings)} plain http:// URL(s)", details
            )
        return CheckResult("HTTPS/TLS", "PASS", "No insecure URLs detected", details)

    # -------------------------------------------------------------------------
    # Configuration, dependencies and environment (WARNING)
    # -------------------------------------------------------------------------

    def _config_findings(self, record: FileRecord) -> list[Finding]:
        suffix = record.path.suffix.lower()
        try:
            if suffix == ".json":
                documents: list[Any] = [json.loads(record.content)] if record.content.strip() else []
            else:
                documents = list(yaml.safe_load_all(record.content))
        except (ValueError, yaml.YAMLError):
            # Unparseable (e.g. JSON with comments): fall back to line patterns
            return self._findings([record], find_secrets, "config-secret", "medium")

        findings: list[Finding] = []
        for document in documents:
            for key_path, _value in _walk_config(document):
                leaf = re.split(r"[.\[]", key_path)[-1]
                findings.append(
                    Finding(
                        kind="config-secret",
                        text=f"literal value for '{key_path}'",
                        file=record.relative,
                        line=_line_of(record.content, leaf),
                        severity="medium",
                    )
                )
        return findings

    def _check_config(self, records: list[FileRecord]) -> CheckResult:
        findings = [f for record in records for f in self._config_findings(record)]
        details = FindingsDetails(
            violations=tuple(findings),
            files_scanned=len(records),
            recommendation=(
                "Reference secrets from environment variables instead of config files"
                if findings
                else None
            ),
        )
        if not records:
            return CheckResult("Config Security", "PASS", "No configuration files found", details)
        if findings:
            return CheckResult(
                "Config Security",
                "WARNING",
                f"Found {len(findings)} sensitive value(s) in configuration files",
                details,
            )
        return CheckResult("Config Security", "PASS", "Configuration files look clean", details)

    def _package_json_findings(self, record: FileRecord) -> list[Finding]:
        try:
            manifest = json.loads(record.content)
        except ValueError:
            return []
        if not isinstance(manifest, dict):
            return []

        findings: list[Finding] = []
        for section in ("dependencies", "devDependencies"):
            deps = manifest.get(section) or {}
            if not isinstance(deps, dict):
                continue
            for package, version in deps.items():
                line = _line_of(record.content, f'"{package}"')
                if package in PROBLEMATIC_PACKAGES:
                    findings.append(
                        Finding(
                            kind="problematic-package",
                            text=f"{package} {PROBLEMATIC_PACKAGES[package]}",
                            file=record.relative,
                            line=line,
                            severity="medium",
                        )
                    )
                if isinstance(version, str) and WILDCARD_VERSION_PATTERN.match(version):
                    findings.append(
                        Finding(
                            kind="wildcard-version",
                            text=f"{package} uses unpinned version '{version}'",
                            file=record.relative,
                            line=line,
                            severity="medium",
                        )
                    )
        return findings

    def _requirements_findings(self, record: FileRecord) -> list[Finding]:
        findings: list[Finding] = []
        for number, line in enumerate(record.content.splitlines(), start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith(("#", "-")):
                continue
            match = _REQUIREMENT_PATTERN.match(stripped)
            if not match:
                continue
            package = match.group("name").lower()
            if package in PROBLEMATIC_PACKAGES:
                findings.append(
                    Finding(
                        kind="problematic-package",
                        text=f"{package} {PROBLEMATIC_PACKAGES[package]}",
                        file=record.relative,
                        line=number,
                        severity="medium",
                    )
                )
            if "*" in match.group("spec"):
                findings.append(
                    Finding(
                        kind="wildcard-version",
                        text=f"{package} uses wildcard version '{match.group('spec').strip()}'",
                        file=record.relative,
                        line=number,
                        severity="medium",
                    )
                )
        return findings

    def _check_dependencies(self, manifests: list[FileRecord]) -> CheckResult:
        findings: list[Finding] = []
        for manifest in manifests:
            if manifest.name == "package.json":
                findings.extend(self._package_json_findings(manifest))
            else:
                findings.extend(self._requirements_findings(manifest))

        details = FindingsDetails(
            violations=tuple(findings),
            files_scanned=len(manifests),
            recommendation=(
                "Pin dependency versions and replace deprecated packages" if findings else None
            ),
        )
        if not manifests:
            return CheckResult("Dependency Security", "PASS", "No dependency manifests found", details)
        if findings:
            return CheckResult(
                "Dependency Security",
                "WARNING",
                f"Found {len(findings)} dependency concern(s)",
                details,
            )
        return CheckResult("Dependency Security", "PASS", "Dependencies look healthy", details)

    def _check_environment(self, records: list[FileRecord]) -> CheckResult:
        findings: list[Finding] = []
        for record in records:
            for number, line in enumerate(record.content.splitlines(), start=1):
                stripped = line.strip()
                if not stripped or stripped.startswith("#") or "=" not in stripped:
                    continue
                key, _, value = stripped.partition("=")
                key = key.removeprefix("export ").strip()
                value = value.strip().strip("'\"")
                if SENSITIVE_KEY_PATTERN.search(key) and not is_placeholder_value(value):
                    findings.append(
                        Finding(
                            kind="env-secret",
                            text=f"{key} holds what looks like a real value",
                            file=record.relative,
                            line=number,
                            severity="medium",
                        )
                    )

        details = FindingsDetails(
            violations=tuple(findings),
            files_scanned=len(records),
            recommendation=(
                "Keep real secrets out of committed .env files; commit placeholders only"
                if findings
                else None
            ),
        )
        if not records:
            return CheckResult("Environment Security", "PASS", "No .env files found", details)
        if findings:
            return CheckResult(
                "Environment Security",
                "WARNING",
                f"Found {len(findings)} real-looking secret(s) in .env files",
                details,
            )
        return CheckResult("Environment Security", "PASS", "Environment files use placeholders", details)
