# query_templates.py
# SQL statements used by the handlers.
# {table} / {database} are identifier slots: validated, then quoted by the
# driver dialect. %s are value slots and are always bound by the driver.
from typing import Callable, Optional

from models import TableLocator
from sql_validator import sanitize_identifier

TEMPLATES = {
    "ping": "SELECT 1",
    "list_databases": "SHOW DATABASES",
    "list_tables": "SHOW TABLES",
    "list_tables_in": "SHOW TABLES FROM {database}",
    "describe": "DESCRIBE {table}",
    "page": "SELECT * FROM {table} LIMIT %s OFFSET %s",
    "count": "SELECT COUNT(*) AS total FROM {table}",
    "head": "SELECT * FROM {table} LIMIT %s",
}

Quote = Callable[[str], str]


def table_ref(locator: TableLocator, quote: Quote) -> str:
    """`db`.`table`, or just `table` when no database is given."""
    parts = []
    if locator.database is not None:
        parts.append(quote(sanitize_identifier(locator.database, "database name")))
    parts.append(quote(sanitize_identifier(locator.table, "table name")))
    return ".".join(parts)


def render(name: str, quote: Quote, table: Optional[TableLocator] = None,
           database: Optional[str] = None) -> str:
    tpl = TEMPLATES[name]
    slots = {}
    if table is not None:
        slots["table"] = table_ref(table, quote)
    if database is not None:
        slots["database"] = quote(sanitize_identifier(database, "database name"))
    return tpl.format(**slots)
