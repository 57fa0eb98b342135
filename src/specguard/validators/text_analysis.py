"""Stateless text helpers shared by the validators.

Keyword extraction links spec prose to implementation evidence; the
function extractor, complexity counter and comment statistics are
line/regex based approximations, not a parser. Keywords inside strings or
comments are counted like any other text.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

Language = Literal["python", "hash", "c-style"]

STOP_WORDS = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "can", "had",
        "her", "was", "one", "our", "out", "day", "get", "has", "him", "his",
        "how", "man", "new", "now", "old", "see", "two", "way", "who", "boy",
        "did", "its", "let", "put", "say", "she", "too", "use",
    }
)

COMPLEXITY_PATTERNS = [
    re.compile(r"\bif\b"),
    re.compile(r"\belif\b"),
    re.compile(r"\bfor\b"),
    re.compile(r"\bwhile\b"),
    re.compile(r"\bcase\b"),
    re.compile(r"\bcatch\b"),
    re.compile(r"\bexcept\b"),
    re.compile(r"&&"),
    re.compile(r"\|\|"),
    re.compile(r"\?"),
]

# Words that look like method definitions to the brace-language regex
CONTROL_KEYWORDS = frozenset(
    {"if", "for", "while", "switch", "catch", "function", "return", "with", "elif", "else", "do"}
)

_TOKEN_PATTERN = re.compile(r"[A-Za-z_$][\w$]*|\d+(?:\.\d+)?|\S")

_BRACE_FUNCTION_PATTERNS = [
    re.compile(r"\bfunction\s*\*?\s*(?P<name>[A-Za-z_$][\w$]*)\s*\((?P<params>[^)]*)\)"),
    re.compile(
        r"\b(?:const|let|var)\s+(?P<name>[A-Za-z_$][\w$]*)\s*=\s*(?:async\s+)?"
        r"(?:function\s*\((?P<params>[^)]*)\)|\((?P<arrow_params>[^)]*)\)\s*=>|(?P<single>[A-Za-z_$][\w$]*)\s*=>)"
    ),
    re.compile(
        r"^[ \t]*(?:(?:public|private|protected|static|async|def)\s+)*"
        r"(?P<name>[A-Za-z_$][\w$]*)\s*\((?P<params>[^)]*)\)\s*\{",
        re.MULTILINE,
    ),
]

_PYTHON_FUNCTION_PATTERN = re.compile(
    r"^(?P<indent>[ \t]*)(?:async\s+)?def\s+(?P<name>\w+)\s*\((?P<params>[^)]*)\)[^:]*:",
    re.MULTILINE,
)

_PARAM_NAME_PATTERN = re.compile(r"^\s*(?:\.\.\.)?\**([A-Za-z_$][\w$]*)")


def language_for(path: Path) -> Language:
    """Comment syntax family for a file."""
    suffix = path.suffix.lower()
    if suffix == ".py":
        return "python"
    if suffix in {".rb", ".yaml", ".yml", ".toml", ".sh"}:
        return "hash"
    return "c-style"


def extract_keywords(text: str) -> set[str]:
    """Extract significant lowercase keywords from prose.

    Lowercases, replaces non-word characters with spaces, splits on
    whitespace and drops tokens of two characters or fewer and stop words.

    Args:
        text: Free text such as a requirement or user story.

    Returns:
        Deduplicated keywords.
    """
    cleaned = re.sub(r"[^\w\s]", " ", text.lower())
    return {word for word in cleaned.split() if len(word) > 2 and word not in STOP_WORDS}


def find_matches(keywords: Iterable[str], content: str) -> list[str]:
    """Return the keywords contained in content, case-insensitively, sorted."""
    lowered = content.lower()
    return sorted({keyword for keyword in keywords if keyword.lower() in lowered})


def cyclomatic_complexity(code: str) -> int:
    """Approximate cyclomatic complexity of a block of code.

    Starts at 1 and adds 1 for each branching or looping token:
    if (so each else if counts once), elif, for, while, case, catch,
    except, &&, || and ?.

    Args:
        code: Source text of a function or file.

    Returns:
        Complexity score, at least 1.
    """
    return 1 + sum(len(pattern.findall(code)) for pattern in COMPLEXITY_PATTERNS)


def tokenize(code: str) -> list[str]:
    """Split code into identifier, number and punctuation tokens."""
    return _TOKEN_PATTERN.findall(code)


def line_number(content: str, index: int) -> int:
    """1-based line number of a character offset."""
    return content.count("\n", 0, index) + 1


@dataclass(frozen=True)
class FunctionBlock:
    """A function found by the regex extractor.

    Attributes:
        name: Function name.
        params: Parameter names in declaration order.
        line: 1-based line of the declaration.
        body: Source text of the body (without the declaration line for Python).
        documented: True when a comment precedes the function or a docstring
            opens its body.
    """

    name: str
    params: tuple[str, ...]
    line: int
    body: str
    documented: bool


def _param_names(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    names: list[str] = []
    for part in raw.split(","):
        match = _PARAM_NAME_PATTERN.match(part)
        if match and match.group(1) not in ("self", "cls"):
            names.append(match.group(1))
    return tuple(names)


def _matching_brace(content: str, open_index: int) -> int:
    """Index just past the brace closing the one at open_index."""
    depth = 0
    for index in range(open_index, len(content)):
        char = content[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return len(content)


def _is_comment_line(line: str, language: Language) -> bool:
    stripped = line.strip()
    if not stripped:
        return False
    if language in ("python", "hash"):
        return stripped.startswith("#")
    return stripped.startswith(("//", "/*", "*", "*/")) or stripped.endswith("*/")


def _preceded_by_comment(lines: list[str], line_index: int, language: Language) -> bool:
    """True if the nearest non-blank line above line_index is a comment.

    Python decorators between the comment and the def are skipped.
    """
    index = line_index - 1
    while index >= 0:
        stripped = lines[index].strip()
        if not stripped or (language == "python" and stripped.startswith("@")):
            index -= 1
            continue
        return _is_comment_line(lines[index], language)
    return False


def _extract_brace_functions(content: str) -> list[FunctionBlock]:
    lines = content.splitlines()
    seen: set[int] = set()
    found: list[tuple[int, FunctionBlock]] = []

    for pattern in _BRACE_FUNCTION_PATTERNS:
        for match in pattern.finditer(content):
            name = match.group("name")
            if name in CONTROL_KEYWORDS:
                continue
            start = match.start("name")
            line = line_number(content, start)
            if line in seen:
                continue
            seen.add(line)

            groups = match.groupdict()
            raw_params = groups.get("params") or groups.get("arrow_params") or groups.get("single")

            rest = content[match.end():]
            brace_offset = rest.find("{")
            newline_offset = rest.find("\n")
            on_same_statement = brace_offset != -1 and (
                newline_offset == -1 or brace_offset <= newline_offset or not rest[:brace_offset].strip()
            )
            if content[match.end() - 1] == "{":
                open_index = match.end() - 1
                body = content[open_index:_matching_brace(content, open_index)]
            elif on_same_statement:
                open_index = match.end() + brace_offset
                body = content[open_index:_matching_brace(content, open_index)]
            else:
                body = rest if newline_offset == -1 else rest[:newline_offset]

            block = FunctionBlock(
                name=name,
                params=_param_names(raw_params),
                line=line,
                body=body,
                documented=_preceded_by_comment(lines, line - 1, "c-style"),
            )
            found.append((start, block))

    return [block for _, block in sorted(found, key=lambda item: item[0])]


def _has_docstring(body: str) -> bool:
    for line in body.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        return stripped.startswith(('"""', "'''", 'r"""', "r'''"))
    return False


def _extract_python_functions(content: str) -> list[FunctionBlock]:
    lines = content.splitlines()
    blocks: list[FunctionBlock] = []

    for match in _PYTHON_FUNCTION_PATTERN.finditer(content):
        indent = len(match.group("indent").expandtabs())
        line = line_number(content, match.start("name"))
        end_line = line_number(content, match.end())

        body_lines: list[str] = []
        for text in lines[end_line:]:
            if text.strip() and len(text) - len(text.lstrip()) <= indent:
                break
            body_lines.append(text)
        # A one-line def keeps its body after the colon
        tail = content[match.end():].split("\n", 1)[0].strip()
        if tail:
            body_lines.insert(0, tail)
        body = "\n".join(body_lines).rstrip()

        blocks.append(
            FunctionBlock(
                name=match.group("name"),
                params=_param_names(match.group("params")),
                line=line,
                body=body,
                documented=_has_docstring(body) or _preceded_by_comment(lines, line - 1, "python"),
            )
        )

    return blocks


def extract_functions(content: str, language: Language = "c-style") -> list[FunctionBlock]:
    """Find function declarations and their bodies.

    Brace languages: function declarations, function/arrow expressions
    assigned to const/let/var, and method definitions. Python: def blocks
    delimited by indentation.

    Args:
        content: Source text.
        language: Comment syntax family from language_for().

    Returns:
        Functions in source order.
    """
    if language == "python":
        return _extract_python_functions(content)
    return _extract_brace_functions(content)


@dataclass(frozen=True)
class CommentStats:
    """Line counts split by kind.

    Attributes:
        comment_lines: Comment and docstring lines.
        code_lines: Non-blank, non-comment lines.
        blank_lines: Empty or whitespace-only lines.
    """

    comment_lines: int
    code_lines: int
    blank_lines: int

    @property
    def comment_ratio(self) -> float:
        """Comment lines per code line (comment lines when there is no code)."""
        if self.code_lines == 0:
            return float(self.comment_lines)
        return self.comment_lines / self.code_lines

    @property
    def comment_density(self) -> float:
        """Share of non-blank lines that are comments, between 0 and 1."""
        non_blank = self.comment_lines + self.code_lines
        return self.comment_lines / non_blank if non_blank else 0.0


def comment_stats(content: str, language: Language = "c-style") -> CommentStats:
    """Count comment, code and blank lines.

    Python triple-quoted blocks that start a line count as comments.
    """
    comment_lines = code_lines = blank_lines = 0
    in_block: str | None = None

    for line in content.splitlines():
        stripped = line.strip()
        if in_block is not None:
            comment_lines += 1
            if in_block in stripped:
                in_block = None
            continue
        if not stripped:
            blank_lines += 1
            continue

        if language == "python" and stripped.startswith(('"""', "'''")):
            quote = stripped[:3]
            comment_lines += 1
            if stripped.count(quote) == 1:
                in_block = quote
            continue
        if language == "c-style" and stripped.startswith("/*"):
            comment_lines += 1
            if "*/" not in stripped:
                in_block = "*/"
            continue

        if _is_comment_line(line, language):
            comment_lines += 1
        else:
            code_lines += 1

    return CommentStats(comment_lines=comment_lines, code_lines=code_lines, blank_lines=blank_lines)
