"""Query cleaning and read-only enforcement."""

import re

from ..constants import (
    ALLOWED_STATEMENT_PREFIXES,
    DANGEROUS_SQL_PATTERNS,
    SQL_PREVIEW_LENGTH,
)
from ..errors import (
    DangerousOperationError,
    DisallowedStatementError,
    EmptySQLError,
    MalformedCTEError,
    SQLValidationError,
)

SQL_FENCE = re.compile(r"```sql\s*", re.IGNORECASE)
BARE_FENCE = re.compile(r"```\s*")
EDGE_BACKTICKS = re.compile(r"^[\s`]+|[\s`]+$")
SELECT_TOKEN = re.compile(r"\bSELECT\b")
LEADING_SELECT = re.compile(r"^[\s(]*SELECT\b")
QUOTE_CHARS = ("'", "\"")
CTE_BODY_KEYWORDS = ("AS", "MATERIALIZED")

# Compiled patterns for performance
COMPILED_PATTERNS = [(re.compile(pattern, re.IGNORECASE), operation)
                     for pattern, operation in DANGEROUS_SQL_PATTERNS]


def clean_sql(sql: str) -> str:
    """Strip markdown fences, stray edge backticks and surrounding whitespace.

    Passes repeat until nothing changes, so cleaning already-clean text is a
    no-op.
    """
    if not sql:
        return ""

    cleaned = sql
    previous = None
    while cleaned != previous:
        previous = cleaned
        cleaned = SQL_FENCE.sub("", cleaned)
        cleaned = BARE_FENCE.sub("", cleaned)
        cleaned = EDGE_BACKTICKS.sub("", cleaned)
    return cleaned


def _scan_top_level(sql: str) -> tuple[str, list[tuple[int, str]]]:
    """Split ``sql`` into its depth-0 text and its depth-0 parenthesized groups.

    The returned text keeps depth-0 parentheses but blanks string literals
    and everything nested inside them, so offsets stay aligned with ``sql``.
    Each group is returned as ``(offset of its opening parenthesis, raw inner
    text)``.
    """
    depth = 0
    quote = None
    kept = []
    groups = []
    start = 0
    inner = []
    for index, char in enumerate(sql):
        if depth > 0 and not (depth == 1 and char == ")" and quote is None):
            inner.append(char)

        if quote is not None:
            if char == quote:
                quote = None
            kept.append(" ")
        elif char in QUOTE_CHARS:
            quote = char
            kept.append(" ")
        elif char == "(":
            if depth == 0:
                start, inner = index, []
            kept.append("(" if depth == 0 else " ")
            depth += 1
        elif char == ")":
            if depth == 1:
                groups.append((start, "".join(inner)))
            kept.append(")" if depth <= 1 else " ")
            depth = max(depth - 1, 0)
        else:
            kept.append(char if depth == 0 else " ")
    return "".join(kept), groups


def _has_final_select(upper_sql: str) -> bool:
    """True if a WITH statement reaches a SELECT after its CTE definitions.

    The SELECT may appear at depth 0 or open a parenthesized main query; a
    group introduced by ``AS`` (or ``MATERIALIZED``) is a CTE body and does
    not count.
    """
    top_level, groups = _scan_top_level(upper_sql)
    if SELECT_TOKEN.search(top_level):
        return True

    for start, body in groups:
        preceding = top_level[:start].split()
        if preceding and preceding[-1] in CTE_BODY_KEYWORDS:
            continue
        if LEADING_SELECT.match(body):
            return True
    return False


def validate_and_clean_sql(sql: str) -> str:
    """Return the cleaned SQL if it is a single read-only statement.

    Keyword detection is purely lexical: a dangerous keyword inside a string
    literal or comment is still rejected.

    Args:
        sql: SQL text, possibly wrapped in markdown code fences

    Returns:
        Fence-stripped SQL text

    Raises:
        EmptySQLError: If nothing is left after cleaning
        DangerousOperationError: If a mutating or privileged keyword appears
        DisallowedStatementError: If the statement does not start with an
            allowed read-only keyword
        MalformedCTEError: If a WITH statement has no SELECT after its CTE
            definitions
    """
    cleaned = clean_sql(sql)

    if not cleaned:
        raise EmptySQLError("SQL query cannot be empty")

    for pattern, operation in COMPILED_PATTERNS:
        if pattern.search(cleaned):
            raise DangerousOperationError(
                f"Dangerous SQL operation detected. Only SELECT queries are allowed.\n"
                f"  Detected operation: {operation}",
                operation=operation,
            )

    upper_sql = cleaned.upper()
    if not upper_sql.startswith(ALLOWED_STATEMENT_PREFIXES):
        raise DisallowedStatementError(
            f"Only SELECT, WITH (CTE), and EXPLAIN queries are allowed. "
            f"Received query starting with: {cleaned[:SQL_PREVIEW_LENGTH]}..."
        )

    # A CTE must end in a SELECT, not just define one
    if upper_sql.startswith("WITH") and not _has_final_select(upper_sql):
        raise MalformedCTEError("WITH clause must contain a SELECT statement")

    return cleaned


def is_safe_query(sql: str) -> bool:
    """Quick check if query passes validation.

    Args:
        sql: Query to check

    Returns:
        True if the query would be accepted by validate_and_clean_sql
    """
    try:
        validate_and_clean_sql(sql)
    except SQLValidationError:
        return False
    return True
