"""Pytest configuration and fixtures for specguard tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest

# Set a fixed terminal width to prevent line wrapping issues in CI
# This must be set before any Rich imports
os.environ.setdefault("COLUMNS", "200")
os.environ.setdefault("LINES", "50")
# Disable Rich's terminal detection to ensure consistent output
os.environ.setdefault("TERM", "dumb")


def write_files(root: Path, files: dict[str, str]) -> Path:
    """Create files under root from a {relative path: content} mapping."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_project(tmp_path: Path):
    """Factory fixture building a project tree in tmp_path."""

    def _make(files: dict[str, str]) -> Path:
        return write_files(tmp_path, files)

    return _make


@pytest.fixture(autouse=True)
def _isolate_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep SPECGUARD_* variables from the outer shell out of the tests."""
    monkeypatch.delenv("SPECGUARD_SPECS_DIR", raising=False)
    monkeypatch.delenv("SPECGUARD_SKIP", raising=False)


@pytest.fixture(autouse=True)
def _restore_specguard_logger() -> Iterator[None]:
    """Undo configure_logging() calls made by CLI tests."""
    logger = logging.getLogger("specguard")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate
