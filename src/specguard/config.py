"""Configuration management for specguard.

Handles configuration loading from multiple sources with precedence:
CLI args > environment variables > .specguardrc > pyproject.toml > defaults

Every numeric cutoff used by the validators lives in Thresholds so it can be
tuned per project without code changes.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

# tomllib is only available in Python 3.11+
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]


@dataclass(frozen=True)
class Thresholds:
    """Numeric cutoffs shared by all validators.

    Attributes:
        code_max_lines: Line limit for code files.
        test_max_lines: Line limit for test files.
        config_max_lines: Line limit for configuration files.
        documentation_max_lines: Line limit for documentation files.
        comment_heavy_ratio: Comment density above which a file gets the
            comment-heavy allowance.
        comment_heavy_multiplier: Factor applied to a file's limit when it is
            comment-heavy.
        complexity_warning: Cyclomatic complexity above which a function warns.
        complexity_failure: Cyclomatic complexity above which a function fails.
        duplication_similarity: Similarity ratio (0-1) at which two function
            bodies count as near-duplicates.
        duplication_min_tokens: Bodies with fewer tokens are ignored.
        naming_min_length: Shortest acceptable identifier (allowlist aside).
        naming_max_length: Longest acceptable identifier.
        naming_fail_ratio: Share of bad identifiers that turns WARNING into FAIL.
        comment_min_ratio: Comment lines per code line for a well-commented file.
        documented_function_ratio: Share of functions that need a comment.
        comment_quality_pass: Percent of well-commented files for PASS.
        comment_quality_warn: Percent of well-commented files for WARNING.
        coverage_pass: Test coverage percent for PASS.
        coverage_warn: Test coverage percent for WARNING.
        readme_pass: README completeness percent for PASS.
        readme_warn: README completeness percent for WARNING.
        code_comments_pass: Documentation code-comment score for PASS.
        code_comments_warn: Documentation code-comment score for WARNING.
        test_types_min_total: Test type distribution is only judged above this
            many test files.
        test_description_min_length: Minimum characters in a test description.
        large_test_file_chars: Test files longer than this need setup blocks.
        route_comment_window: Characters before a route searched for a comment.
        docs_dir_min_files: Documentation files above which a docs/ directory
            is recommended.
        root_doc_max_files: Documentation files allowed in the project root.
        orphaned_doc_max_chars: Documents shorter than this count as orphaned.
        stale_branch_days: Days without commits before a branch is stale.
        commit_log_depth: Commits inspected on the current branch.
        main_log_depth: Commits inspected on the main branch.
        commit_subject_max_length: Longest acceptable commit subject.
    """

    code_max_lines: int = 300
    test_max_lines: int = 500
    config_max_lines: int = 500
    documentation_max_lines: int = 1500
    comment_heavy_ratio: float = 0.3
    comment_heavy_multiplier: float = 1.5
    complexity_warning: int = 10
    complexity_failure: int = 20
    duplication_similarity: float = 0.85
    duplication_min_tokens: int = 20
    naming_min_length: int = 3
    naming_max_length: int = 50
    naming_fail_ratio: float = 0.5
    comment_min_ratio: float = 0.1
    documented_function_ratio: float = 0.5
    comment_quality_pass: float = 80.0
    comment_quality_warn: float = 50.0
    coverage_pass: float = 80.0
    coverage_warn: float = 60.0
    readme_pass: float = 80.0
    readme_warn: float = 60.0
    code_comments_pass: float = 70.0
    code_comments_warn: float = 50.0
    test_types_min_total: int = 5
    test_description_min_length: int = 10
    large_test_file_chars: int = 500
    route_comment_window: int = 200
    docs_dir_min_files: int = 3
    root_doc_max_files: int = 5
    orphaned_doc_max_chars: int = 100
    stale_branch_days: int = 30
    commit_log_depth: int = 10
    main_log_depth: int = 5
    commit_subject_max_length: int = 72

    def __post_init__(self) -> None:
        """Validate thresholds after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate threshold values.

        Raises:
            ValueError: If any threshold is invalid.
        """
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{f.name} must be a number")
            if value < 0:
                raise ValueError(f"{f.name} must not be negative")

        if self.complexity_failure < self.complexity_warning:
            raise ValueError("complexity_failure must be >= complexity_warning")
        if not 0 < self.duplication_similarity <= 1:
            raise ValueError("duplication_similarity must be in (0, 1]")

        bands = [
            ("comment_quality", self.comment_quality_pass, self.comment_quality_warn),
            ("coverage", self.coverage_pass, self.coverage_warn),
            ("readme", self.readme_pass, self.readme_warn),
            ("code_comments", self.code_comments_pass, self.code_comments_warn),
        ]
        for name, pass_at, warn_at in bands:
            if pass_at < warn_at:
                raise ValueError(f"{name}_pass must be >= {name}_warn")

    def limit_for(self, category: str) -> int:
        """Get the line limit for a file category.

        Args:
            category: Category from the file classifier.

        Returns:
            Maximum line count before the file is considered oversized.
        """
        limits = {
            "test": self.test_max_lines,
            "configuration": self.config_max_lines,
            "documentation": self.documentation_max_lines,
        }
        return limits.get(category, self.code_max_lines)


DEFAULT_SPECS_DIR = ".agent-os/specs"


def _threshold_field_names() -> set[str]:
    return {f.name for f in fields(Thresholds)}


@dataclass
class SpecguardConfig:
    """Configuration for the specguard CLI tool.

    Attributes:
        specs_dir: Directory holding dated spec folders, relative to the
            project root (default: ".agent-os/specs").
        skip: Validator keys to skip when running everything.
        thresholds: Numeric cutoffs for the validators.
    """

    specs_dir: str = DEFAULT_SPECS_DIR
    skip: list[str] = field(default_factory=list)
    thresholds: Thresholds = field(default_factory=Thresholds)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        if not self.specs_dir or not isinstance(self.specs_dir, str):
            raise ValueError("specs_dir must be a non-empty string")

        if not isinstance(self.skip, list) or not all(isinstance(k, str) for k in self.skip):
            raise ValueError("skip must be a list of validator keys")

        if not isinstance(self.thresholds, Thresholds):
            raise ValueError("thresholds must be a Thresholds instance")

    def get_specs_path(self, base_path: Path | None = None) -> Path:
        """Get the full path to the specs directory.

        Args:
            base_path: Base path to resolve from. Defaults to current directory.

        Returns:
            Path to the specs directory.
        """
        base = base_path or Path.cwd()
        return base / self.specs_dir


def find_config_file(filename: str = ".specguardrc", start_dir: Path | None = None) -> Path | None:
    """Find a configuration file by traversing up the directory tree.

    Args:
        filename: Name of the config file to find.
        start_dir: Directory to start searching from. Defaults to current directory.

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        config_path = current / filename
        if config_path.is_file():
            return config_path

        parent = current.parent
        if parent == current:
            return None
        current = parent


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents.

    Raises:
        OSError: If the file cannot be read.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    with open(path, "rb") as f:
        result: dict[str, Any] = tomllib.load(f)
        return result


def _filter_section(section: dict[str, Any]) -> dict[str, Any]:
    """Keep known top-level keys and known threshold keys from a config table."""
    result: dict[str, Any] = {}
    for key in ("specs_dir", "skip"):
        if key in section:
            result[key] = section[key]

    thresholds = section.get("thresholds")
    if isinstance(thresholds, dict):
        valid = _threshold_field_names()
        result["thresholds"] = {k: v for k, v in thresholds.items() if k in valid}

    return result


def _load_from_rc(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from a .specguardrc TOML file."""
    config_path = find_config_file(".specguardrc", start_dir)
    if config_path is None:
        return {}

    try:
        return _filter_section(_load_toml_file(config_path))
    except (tomllib.TOMLDecodeError, OSError):
        return {}


def _load_from_pyproject(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from pyproject.toml [tool.specguard] section."""
    config_path = find_config_file("pyproject.toml", start_dir)
    if config_path is None:
        return {}

    try:
        data = _load_toml_file(config_path)
    except (tomllib.TOMLDecodeError, OSError):
        return {}

    section = data.get("tool", {}).get("specguard", {})
    if not isinstance(section, dict):
        return {}
    return _filter_section(section)


def _split_keys(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _load_from_env() -> dict[str, Any]:
    """Load configuration from environment variables.

    Supported: SPECGUARD_SPECS_DIR and SPECGUARD_SKIP (comma-separated keys).
    """
    result: dict[str, Any] = {}

    specs_dir = os.environ.get("SPECGUARD_SPECS_DIR")
    if specs_dir is not None:
        result["specs_dir"] = specs_dir

    skip = os.environ.get("SPECGUARD_SKIP")
    if skip is not None:
        result["skip"] = _split_keys(skip)

    return result


def _merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge configuration dictionaries, later ones taking precedence.

    Threshold tables are merged key by key rather than replaced.
    """
    result: dict[str, Any] = {}
    thresholds: dict[str, Any] = {}
    for config in configs:
        for key, value in config.items():
            if value is None:
                continue
            if key == "thresholds":
                thresholds.update(value)
            else:
                result[key] = value
    if thresholds:
        result["thresholds"] = thresholds
    return result


def load_config(
    cli_overrides: dict[str, Any] | None = None,
    start_dir: Path | None = None,
) -> SpecguardConfig:
    """Load configuration with full precedence chain.

    Precedence (highest to lowest):
    1. CLI arguments (cli_overrides)
    2. Environment variables (SPECGUARD_*)
    3. .specguardrc file
    4. pyproject.toml [tool.specguard] section
    5. Default values

    Args:
        cli_overrides: Configuration overrides from CLI arguments.
        start_dir: Directory to start searching for config files.

    Returns:
        Fully resolved SpecguardConfig instance.

    Raises:
        ValueError: If the resulting configuration is invalid.
    """
    cli_config = _filter_section(cli_overrides or {})

    merged = _merge_configs(
        _load_from_pyproject(start_dir),
        _load_from_rc(start_dir),
        _load_from_env(),
        cli_config,
    )

    thresholds = Thresholds()
    if "thresholds" in merged:
        thresholds = replace(thresholds, **merged.pop("thresholds"))

    skip = merged.get("skip")
    if isinstance(skip, str):
        merged["skip"] = _split_keys(skip)

    return SpecguardConfig(thresholds=thresholds, **merged)
