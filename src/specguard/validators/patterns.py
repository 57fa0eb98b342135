"""Pattern catalogs for the security checks.

Every detector is a pure function of text: it scans line by line and
returns PatternHit tuples, so each can be tested without touching files.

Catalogs:
- Hardcoded secrets: credential-named literal assignments and connection
  strings with embedded credentials
- Insecure calls: eval/exec/system style execution and raw DOM writes
- SQL injection: SQL keywords built by concatenation or interpolation
- XSS: request data or non-literals written into HTML sinks
- Insecure URLs: plain http:// outside local development hosts
- Marker sets: input validation, authentication, routes, XSS protection
"""

from __future__ import annotations

import re
from typing import NamedTuple


class PatternHit(NamedTuple):
    """A pattern match on one line.

    Attributes:
        line: 1-based line number.
        label: Name of the pattern that matched.
        text: The stripped source line.
    """

    line: int
    label: str
    text: str


# -----------------------------------------------------------------------------
# Hardcoded secrets
# -----------------------------------------------------------------------------

SECRET_NAME = r"\w*(?:password|passwd|pwd|api[_-]?key|secret|token|private[_-]?key|access[_-]?key)\w*"

SECRET_ASSIGNMENT_PATTERN = re.compile(
    rf"""(?P<name>{SECRET_NAME})["']?\s*[:=]\s*(?P<quote>["'`])(?P<value>[^"'`]*)(?P=quote)""",
    re.IGNORECASE,
)

CONNECTION_STRING_PATTERN = re.compile(
    r"(?:mongodb(?:\+srv)?|postgres(?:ql)?|mysql|redis|amqp)://[^\s:/'\"@]+:[^\s@'\"]+@",
    re.IGNORECASE,
)

# Values that are clearly not real secrets
PLACEHOLDER_PATTERN = re.compile(
    r"^(?:\$\{.*\}|\{\{.*\}\}|%\(.*\)s|<[^>]+>|\*+|x{3,})$|your_|example|changeme|placeholder",
    re.IGNORECASE,
)


def is_placeholder_value(value: str) -> bool:
    """Check whether a literal looks like a template or example value.

    Args:
        value: The literal value (without quotes).

    Returns:
        True for empty values, interpolations and example markers.
    """
    stripped = value.strip()
    if not stripped:
        return True
    return PLACEHOLDER_PATTERN.search(stripped) is not None


def find_secrets(content: str) -> list[PatternHit]:
    """Find hardcoded credentials, at most one hit per line.

    A hit is a credential-named variable or key assigned a non-empty,
    non-placeholder string literal, or a connection URL carrying a
    user:password pair. Environment reads never match because their value
    is not a string literal.

    Args:
        content: Source text.

    Returns:
        Hits in line order.
    """
    hits: list[PatternHit] = []
    for number, line in enumerate(content.splitlines(), start=1):
        match = SECRET_ASSIGNMENT_PATTERN.search(line)
        if match and not is_placeholder_value(match.group("value")):
            hits.append(PatternHit(number, f"hardcoded {match.group('name')}", line.strip()))
            continue
        if CONNECTION_STRING_PATTERN.search(line):
            hits.append(PatternHit(number, "credentials in connection string", line.strip()))
    return hits


# -----------------------------------------------------------------------------
# Insecure calls
# -----------------------------------------------------------------------------

INSECURE_CALL_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("eval()", re.compile(r"\beval\s*\(")),
    ("innerHTML assignment", re.compile(r"\.innerHTML\s*=(?!=)")),
    ("document.write()", re.compile(r"\bdocument\.write(?:ln)?\s*\(")),
    ("dangerouslySetInnerHTML", re.compile(r"dangerouslySetInnerHTML")),
    ("exec()", re.compile(r"\bexec\s*\(")),
    ("system()", re.compile(r"\bsystem\s*\(")),
    ("shell_exec()", re.compile(r"\bshell_exec\s*\(")),
]


def find_insecure_calls(content: str) -> list[PatternHit]:
    """Find dangerous execution and raw DOM-write call sites, regardless of argument."""
    hits: list[PatternHit] = []
    for number, line in enumerate(content.splitlines(), start=1):
        for label, pattern in INSECURE_CALL_PATTERNS:
            if pattern.search(line):
                hits.append(PatternHit(number, label, line.strip()))
    return hits


# -----------------------------------------------------------------------------
# SQL injection
# -----------------------------------------------------------------------------

_SQL_VERB = r"\b(?:SELECT|INSERT|UPDATE|DELETE)\b"
_SQL_WORD = r"\b(?:SELECT|INSERT|UPDATE|DELETE|FROM|WHERE|SET|VALUES)\b"
_SQL_WORD_PATTERN = re.compile(_SQL_WORD, re.IGNORECASE)

# Keywords match in any case; each pattern needs the keyword inside a string literal.
SQL_INJECTION_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    (label, re.compile(pattern, re.IGNORECASE))
    for label, pattern in [
        ("string concatenation", rf"[\"'][^\"']*{_SQL_VERB}[^\"']*[\"']\s*\+"),
        ("string concatenation", rf"\+\s*[\"']\s*{_SQL_WORD}"),
        ("template interpolation", rf"`[^`]*{_SQL_WORD}[^`]*\$\{{"),
        ("f-string interpolation", rf"\bf[\"'][^\"']*{_SQL_WORD}[^\"']*\{{"),
        ("percent formatting", rf"{_SQL_VERB}[^\"']*[\"']\s*%\s*[\w(]"),
        ("str.format()", rf"{_SQL_VERB}[^\"']*[\"']\.format\("),
    ]
]

PARAMETERIZED_QUERY_PATTERN = re.compile(r"\?\s*[,)\]\"'`]|\$\d+|(?<![\w:/]):[A-Za-z_]\w*|%s\b")


def has_parameterized_query(content: str) -> bool:
    """True when the text contains SQL placeholders (?, $1, :name, %s)."""
    for line in content.splitlines():
        if _SQL_WORD_PATTERN.search(line) and PARAMETERIZED_QUERY_PATTERN.search(line):
            return True
    return False


def find_sql_injection(content: str) -> list[PatternHit]:
    """Find SQL statements assembled from runtime values.

    Lines that bind values through placeholders are treated as safe.
    """
    hits: list[PatternHit] = []
    for number, line in enumerate(content.splitlines(), start=1):
        for label, pattern in SQL_INJECTION_PATTERNS:
            if pattern.search(line):
                if label in ("string concatenation", "template interpolation") and (
                    PARAMETERIZED_QUERY_PATTERN.search(line)
                ):
                    break
                hits.append(PatternHit(number, label, line.strip()))
                break
    return hits


# -----------------------------------------------------------------------------
# Cross-site scripting
# -----------------------------------------------------------------------------

XSS_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("innerHTML from non-literal", re.compile(r"\.innerHTML\s*=\s*(?![\"'`\s])")),
    ("innerHTML from request data", re.compile(r"\.innerHTML\s*=.*\breq\.")),
    ("document.write with concatenation", re.compile(r"\bdocument\.write\s*\(.*\+")),
    ("jQuery html() with request data", re.compile(r"\.html\s*\(.*\breq\.(?:query|params|body)")),
    ("response built from request data", re.compile(r"\bres\.send\s*\(.*<.*\+\s*req\.")),
    ("Markup from request data", re.compile(r"\bMarkup\s*\(.*\brequest\.")),
    ("mark_safe on request data", re.compile(r"\bmark_safe\s*\(.*\brequest\.")),
    ("|safe template filter", re.compile(r"\{\{[^}]*\|\s*safe\s*\}\}")),
]

XSS_PROTECTION_PATTERN = re.compile(
    r"\bescape\s*\(|\bsanitize\w*\s*\(|\bxss\w*\s*\(|\bhelmet\b|DOMPurify|bleach\.clean|markupsafe\.escape",
    re.IGNORECASE,
)


def find_xss(content: str) -> list[PatternHit]:
    """Find unescaped data flowing into HTML sinks, at most one hit per line."""
    hits: list[PatternHit] = []
    for number, line in enumerate(content.splitlines(), start=1):
        for label, pattern in XSS_PATTERNS:
            if pattern.search(line):
                hits.append(PatternHit(number, label, line.strip()))
                break
    return hits


def has_xss_protection(content: str) -> bool:
    return XSS_PROTECTION_PATTERN.search(content) is not None


# -----------------------------------------------------------------------------
# Insecure URLs
# -----------------------------------------------------------------------------

INSECURE_URL_PATTERN = re.compile(r"http://(?!localhost\b|127\.0\.0\.1\b|0\.0\.0\.0\b)[\w.-]+")


def find_insecure_urls(content: str) -> list[PatternHit]:
    """Find plain http:// URLs that do not point at a local development host."""
    hits: list[PatternHit] = []
    for number, line in enumerate(content.splitlines(), start=1):
        match = INSECURE_URL_PATTERN.search(line)
        if match:
            hits.append(PatternHit(number, match.group(0), line.strip()))
    return hits


# -----------------------------------------------------------------------------
# Marker sets
# -----------------------------------------------------------------------------

USER_INPUT_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("req.body", re.compile(r"\breq\.body\b")),
    ("req.query", re.compile(r"\breq\.query\b")),
    ("req.params", re.compile(r"\breq\.params\b")),
    ("req.headers", re.compile(r"\breq\.headers\b")),
    ("request.form", re.compile(r"\brequest\.(?:form|args|values|files)\b")),
    ("request.json", re.compile(r"\brequest\.(?:json|get_json|data)\b")),
    ("request.GET", re.compile(r"\brequest\.(?:GET|POST)\b")),
]

VALIDATION_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("validator", re.compile(r"\bvalidator\.")),
    ("joi", re.compile(r"\bjoi\.", re.IGNORECASE)),
    ("yup", re.compile(r"\byup\.", re.IGNORECASE)),
    ("express-validator", re.compile(r"express-validator")),
    ("validate()", re.compile(r"\bvalidate\s*\(")),
    ("sanitize()", re.compile(r"\bsanitize\s*\(")),
    ("zod", re.compile(r"\bz\.object\s*\(")),
    ("pydantic", re.compile(r"\bpydantic\b|\bBaseModel\b")),
    ("marshmallow", re.compile(r"\bmarshmallow\b")),
    ("wtforms", re.compile(r"\bwtforms\b|\bvalidate_on_submit\s*\(")),
]

AUTH_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("bcrypt", re.compile(r"\bbcrypt\b", re.IGNORECASE)),
    ("passport", re.compile(r"\bpassport\b", re.IGNORECASE)),
    ("jwt", re.compile(r"\bjwt\b", re.IGNORECASE)),
    ("authenticate", re.compile(r"authenticate", re.IGNORECASE)),
    ("authorization", re.compile(r"authorization", re.IGNORECASE)),
    ("auth middleware", re.compile(r"auth\w*\s*middleware|middleware\W+auth", re.IGNORECASE)),
    ("isAuthenticated", re.compile(r"\bisAuthenticated\b")),
    ("requireAuth", re.compile(r"\brequireAuth\b")),
    ("login_required", re.compile(r"\blogin_required\b")),
    ("permission_classes", re.compile(r"\bpermission_classes\b")),
    ("current user dependency", re.compile(r"Depends\(\s*get_current_\w+")),
]

ROUTE_PATTERN = re.compile(
    r"\b(?:router|app)\.(?:get|post|put|patch|delete)\s*\(|"
    r"@(?:\w+\.)?(?:route|get|post|put|patch|delete)\s*\(|"
    r"[\"'`]/api/"
)


def matched_labels(content: str, patterns: list[tuple[str, re.Pattern[str]]]) -> list[str]:
    """Labels of every pattern in a marker set that occurs in the text."""
    return [label for label, pattern in patterns if pattern.search(content)]


def has_routes(content: str) -> bool:
    return ROUTE_PATTERN.search(content) is not None
