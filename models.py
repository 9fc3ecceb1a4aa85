# models.py
# Per-request shapes and the JSON envelope helpers.
import datetime
import decimal
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config import DEFAULT_LIMIT, DEFAULT_OFFSET
from sql_validator import parse_page, sanitize_identifier


@dataclass(frozen=True)
class TableLocator:
    table: str
    database: Optional[str] = None

    @classmethod
    def parse(cls, table: Any, database: Any = None) -> "TableLocator":
        """Validate both identifiers; raises ValidationError."""
        db = sanitize_identifier(database, "database name") if database is not None else None
        return cls(table=sanitize_identifier(table, "table name"), database=db)

    def labels(self) -> Dict[str, str]:
        out = {"table": self.table}
        if self.database is not None:
            out["database"] = self.database
        return out


@dataclass(frozen=True)
class PageRequest:
    limit: int = DEFAULT_LIMIT
    offset: int = DEFAULT_OFFSET

    @classmethod
    def from_args(cls, limit: Any = None, offset: Any = None) -> "PageRequest":
        lim, off = parse_page(limit, offset)
        return cls(limit=lim, offset=off)


@dataclass
class QueryResult:
    columns: List[str] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)

    def first_column(self) -> List[Any]:
        """Values of the first column, e.g. the names from SHOW TABLES."""
        if not self.columns:
            return []
        key = self.columns[0]
        return [r[key] for r in self.rows]


def shape_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return str(value)
    if isinstance(value, decimal.Decimal):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return value


def shape_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: shape_value(v) for k, v in row.items()}


def shape_rows(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [shape_row(r) for r in rows]


def column_descriptor(row: Dict[str, Any]) -> Dict[str, Any]:
    """Map one DESCRIBE row (Field, Type, Null, Key, Default, Extra)."""
    row = shape_row(row)
    return {
        "name": row.get("Field"),
        "type": row.get("Type"),
        "nullable": row.get("Null") == "YES",
        "key": row.get("Key") or "",
        "default": row.get("Default"),
        "extra": row.get("Extra") or "",
    }


def success(**fields) -> Dict[str, Any]:
    out = {"success": True}
    out.update(fields)
    return out


def failure(message: str) -> Dict[str, Any]:
    return {"success": False, "error": message}
