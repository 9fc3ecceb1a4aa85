# sql_validator.py
# Guards everything that ends up in SQL text: identifiers, paging values and
# caller-authored queries.
import re
from typing import Any, Optional, Tuple

from config import DEFAULT_LIMIT, DEFAULT_OFFSET, MAX_IDENTIFIER_LENGTH

IDENT_RE = re.compile(r"^[A-Za-z0-9_]+$")  # no spaces, dots, quotes or slashes
LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")

SELECT_PREFIX = "select"


class ValidationError(ValueError):
    """Bad client input; the request never reaches the database."""


def sanitize_identifier(name: Any, kind: str = "identifier") -> str:
    if not isinstance(name, str) or not name:
        raise ValidationError(f"empty {kind}")
    if len(name) > MAX_IDENTIFIER_LENGTH:
        raise ValidationError(f"{kind} longer than {MAX_IDENTIFIER_LENGTH} characters")
    if not IDENT_RE.match(name):
        raise ValidationError(f"invalid {kind}: {name}")
    return name


def coerce_int(raw: Any, default: int) -> int:
    """
    Integer-parse a query-string value.
    Missing or non-numeric input gives `default`; a leading integer is taken
    as-is ("12abc" -> 12, "2.9" -> 2); negatives clamp to 0.
    """
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        value = int(raw)
    else:
        m = LEADING_INT_RE.match(str(raw))
        if not m:
            return default
        value = int(m.group(1))
    return max(value, 0)


def parse_page(limit: Any = None, offset: Any = None) -> Tuple[int, int]:
    return coerce_int(limit, DEFAULT_LIMIT), coerce_int(offset, DEFAULT_OFFSET)


def is_safe_sql(sql: Optional[str]) -> Tuple[bool, str]:
    """
    Read-only check for caller-authored queries: the trimmed, lowercased text
    must start with "select".

    Known limitation: this is a prefix test, not a parser. A statement that
    starts with SELECT but hides a write (a locking subquery, vendor comments,
    stacked statements if the driver accepted them) is not caught here.
    """
    if not sql or not sql.strip():
        return False, "empty query"
    if not sql.strip().lower().startswith(SELECT_PREFIX):
        return False, "Only SELECT queries are allowed"
    return True, "ok"


def require_select(query: Any) -> str:
    """Return `query` unmodified if it passes is_safe_sql, else raise."""
    if not isinstance(query, str) or not query.strip():
        raise ValidationError("query is required and must be a non-empty string")
    ok, msg = is_safe_sql(query)
    if not ok:
        raise ValidationError(msg)
    return query
