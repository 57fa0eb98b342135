"""File classification and traversal for specguard validators.

Decides which category a file belongs to and walks a project tree while
skipping directories that should never be scanned (dependency caches,
version-control metadata, build output, coverage reports).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

logger = logging.getLogger(__name__)

Category = Literal["code", "test", "documentation", "configuration", "other"]

# Directories to exclude when walking a project
IGNORED_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        "dist",
        "build",
        ".next",
        "coverage",
        "htmlcov",
        ".venv",
        "venv",
        "__pycache__",
        ".tox",
        ".nox",
        ".mypy_cache",
        ".pytest_cache",
        ".ruff_cache",
        "site-packages",
    }
)

CODE_EXTENSIONS = frozenset({".js", ".ts", ".jsx", ".tsx", ".py", ".rb", ".php", ".java", ".cs"})
DOCUMENTATION_EXTENSIONS = frozenset({".md", ".txt", ".rst", ".adoc"})
CONFIGURATION_EXTENSIONS = frozenset({".json", ".yaml", ".yml", ".toml"})

# Basename substrings that mark a test file regardless of extension
TEST_MARKERS = (".test.", ".spec.", "_test.", "_spec.")
TEST_PREFIXES = ("test-", "test_")

# Bytes sampled when sniffing for binary content
_BINARY_SNIFF_BYTES = 8192


def is_test_file(path: Path) -> bool:
    """Check whether a filename follows a test naming convention.

    Args:
        path: Path to check (only the basename is inspected).

    Returns:
        True for names like "utils.test.js", "api.spec.ts", "test_utils.py".
    """
    name = path.name.lower()
    if any(marker in name for marker in TEST_MARKERS):
        return True
    return name.startswith(TEST_PREFIXES)


def classify(path: Path) -> Category:
    """Map a path to exactly one file category.

    Test naming markers take precedence over the extension; unknown
    extensions fall through to "other".

    Args:
        path: Path to classify.

    Returns:
        The file category.
    """
    if is_test_file(path):
        return "test"

    suffix = path.suffix.lower()
    if suffix in DOCUMENTATION_EXTENSIONS:
        return "documentation"
    if suffix in CONFIGURATION_EXTENSIONS:
        return "configuration"
    if suffix in CODE_EXTENSIONS:
        return "code"
    return "other"


def is_source_file(path: Path) -> bool:
    """True when the file has a recognized programming-language extension."""
    return path.suffix.lower() in CODE_EXTENSIONS


def should_skip(dir_name: str) -> bool:
    """Check if a directory should be skipped during traversal.

    Args:
        dir_name: Bare directory name (not a path).

    Returns:
        True if the directory is on the denylist.
    """
    return dir_name in IGNORED_DIRS


def walk(root: Path) -> Iterator[Path]:
    """Yield every regular file under root, depth first, in sorted order.

    Skipped directories are pruned before descent and symlinked directories
    are not followed. Calling walk() again restarts the traversal.

    Args:
        root: Directory to walk.

    Yields:
        Paths of regular files.
    """
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        dirnames[:] = sorted(d for d in dirnames if not should_skip(d))
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if path.is_file():
                yield path


def read_text(path: Path) -> str:
    """Read a file as text, treating unreadable or binary content as empty.

    Args:
        path: File to read.

    Returns:
        The decoded content, or "" if the file cannot be read as text.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.debug("Skipping unreadable file %s: %s", path, e)
        return ""

    if b"\x00" in data[:_BINARY_SNIFF_BYTES]:
        logger.debug("Skipping binary file %s", path)
        return ""

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.debug("Skipping non-UTF-8 file %s", path)
        return ""


@dataclass
class FileRecord:
    """A classified file and its text content, owned by one validator run.

    Attributes:
        path: Absolute path of the file.
        relative: Path relative to the walked root, POSIX style.
        category: Category from classify().
        content: Text content ("" when unreadable or binary).
    """

    path: Path
    relative: str
    category: Category
    content: str

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def is_source(self) -> bool:
        return is_source_file(self.path)


def load_records(root: Path, categories: Iterable[Category] | None = None) -> list[FileRecord]:
    """Walk root and load every file, optionally filtered by category.

    Args:
        root: Directory to walk.
        categories: Categories to keep. None keeps everything.

    Returns:
        FileRecords in traversal order.
    """
    wanted = set(categories) if categories is not None else None
    records: list[FileRecord] = []

    for path in walk(root):
        category = classify(path)
        if wanted is not None and category not in wanted:
            continue
        records.append(
            FileRecord(
                path=path,
                relative=path.relative_to(root).as_posix(),
                category=category,
                content=read_text(path),
            )
        )

    return records


def load_record(path: Path, root: Path | None = None) -> FileRecord:
    """Load a single file as a FileRecord.

    Args:
        path: File to load.
        root: Root the relative path is computed from. Defaults to the file's
            parent directory.

    Returns:
        FileRecord for the file.
    """
    base = root or path.parent
    try:
        relative = path.relative_to(base).as_posix()
    except ValueError:
        relative = path.name
    return FileRecord(path=path, relative=relative, category=classify(path), content=read_text(path))
