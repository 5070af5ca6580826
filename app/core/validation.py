"""Lexical gate for incoming SQL.

This is a denylist over the raw text, not a parser. It rejects legitimate
queries that mention a forbidden word inside a string literal and it does not
try to catch encoding tricks; the database user is expected to be read-only.
"""
import re
from typing import Optional

MAX_QUERY_LENGTH = 1000

FORBIDDEN_KEYWORDS = (
    "ALTER",
    "DROP",
    "DELETE",
    "INSERT",
    "UPDATE",
    "TRUNCATE",
    "EXEC",
    "MERGE",
    "CALL",
    "UNION",
)

# Keywords match on word boundaries, punctuation matches anywhere
FORBIDDEN_PATTERN = re.compile(
    r"\b(?:" + "|".join(FORBIDDEN_KEYWORDS) + r")\b|--|;|/\*|\*/",
    re.IGNORECASE,
)


class QueryValidationError(ValueError):
    """Raised when a query fails the lexical checks. The message is safe to show."""


def starts_with_select(sql: str) -> bool:
    return sql.strip().upper().startswith("SELECT")


def contains_forbidden_tokens(sql: str) -> bool:
    return FORBIDDEN_PATTERN.search(sql) is not None


def is_safe_select(sql: Optional[str], max_length: int = MAX_QUERY_LENGTH) -> bool:
    try:
        validate_select_query(sql, max_length=max_length)
    except QueryValidationError:
        return False
    return True


def validate_select_query(
    sql: Optional[str], max_length: int = MAX_QUERY_LENGTH
) -> str:
    """
    Run the checks in order and return the query unchanged if it passes.

    Raises:
        QueryValidationError: with the reason that is returned to the client.
    """
    if sql is None or not sql.strip():
        raise QueryValidationError("No SQL query provided")

    if not starts_with_select(sql):
        raise QueryValidationError("Only SELECT statements are allowed")

    if contains_forbidden_tokens(sql):
        raise QueryValidationError("Invalid or unsafe SQL query")

    if len(sql) > max_length:
        raise QueryValidationError("SQL query is too long")

    return sql
