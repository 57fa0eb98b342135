"""Validators that grade a project tree.

Provides the six validators (code quality, spec adherence, security, branch
strategy, testing completeness, documentation), their shared result types,
and the tiered runner that combines them.
"""

from __future__ import annotations

from specguard.validators.base import (
    BaseValidator,
    CheckDetails,
    CheckResult,
    Finding,
    Status,
    ValidatorReport,
)
from specguard.validators.branch_strategy import BranchStrategyValidator
from specguard.validators.code_quality import CodeQualityValidator
from specguard.validators.documentation import DocumentationValidator
from specguard.validators.git_helper import NotAGitRepositoryError, VersionControl
from specguard.validators.runner import (
    REGISTRY,
    RunSummary,
    UnknownValidatorError,
    ValidatorKey,
    ValidatorRunner,
)
from specguard.validators.security import SecurityValidator
from specguard.validators.spec_adherence import SpecAdherenceValidator, SpecPathError
from specguard.validators.testing_completeness import TestingCompletenessValidator

__all__ = [
    # Base types
    "BaseValidator",
    "CheckDetails",
    "CheckResult",
    "Finding",
    "Status",
    "ValidatorReport",
    # Validators
    "BranchStrategyValidator",
    "CodeQualityValidator",
    "DocumentationValidator",
    "SecurityValidator",
    "SpecAdherenceValidator",
    "TestingCompletenessValidator",
    # Collaborators and errors
    "NotAGitRepositoryError",
    "SpecPathError",
    "UnknownValidatorError",
    "VersionControl",
    # Runner
    "REGISTRY",
    "RunSummary",
    "ValidatorKey",
    "ValidatorRunner",
]
