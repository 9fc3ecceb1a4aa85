# handlers.py
# One function per operation. Each takes the shared Database handle and
# returns (envelope, http_status); errors never escape to Flask.
import functools
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import config
from db.mysql_client import ExecutionError
from models import (PageRequest, TableLocator, column_descriptor, failure,
                    shape_rows, success)
from query_templates import render
from sql_validator import ValidationError, require_select

LOG = logging.getLogger(__name__)

Response = Tuple[Dict[str, Any], int]


def _guarded(fn):
    @functools.wraps(fn)
    def wrapper(*args, **kwargs) -> Response:
        try:
            return fn(*args, **kwargs)
        except ValidationError as e:
            LOG.info("%s rejected: %s", fn.__name__, e)
            return failure(str(e)), 400
        except ExecutionError as e:
            LOG.warning("%s failed: %s", fn.__name__, e.message)
            return failure(e.message), e.http_status
        except Exception as e:
            LOG.exception("%s: unexpected error", fn.__name__)
            return failure(str(e)), 500
    return wrapper


def _utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def health(db) -> Response:
    """Liveness check; a failure here means the pool cannot reach MySQL."""
    try:
        db.run_query(render("ping", db.quote))
    except Exception as e:
        message = e.message if isinstance(e, ExecutionError) else str(e)
        LOG.warning("health check failed: %s", message)
        return {
            "status": "error",
            "message": "Database connection failed",
            "error": message,
        }, 500
    return {
        "status": "ok",
        "message": "Database connection successful",
        "timestamp": _utc_timestamp(),
    }, 200


@_guarded
def list_databases(db) -> Response:
    res = db.run_query(render("list_databases", db.quote))
    names = res.first_column()
    return success(count=len(names), databases=names), 200


@_guarded
def list_tables(db, database: Optional[str] = None) -> Response:
    if database is None:
        sql = render("list_tables", db.quote)
        scope = {}
    else:
        sql = render("list_tables_in", db.quote, database=database)
        scope = {"database": database}
    names = db.run_query(sql).first_column()
    return success(count=len(names), tables=names, **scope), 200


@_guarded
def table_structure(db, table: str, database: Optional[str] = None) -> Response:
    locator = TableLocator.parse(table, database)
    res = db.run_query(render("describe", db.quote, table=locator))
    columns = [column_descriptor(r) for r in res.rows]
    return success(columns=columns, **locator.labels()), 200


@_guarded
def table_data(db, table: str, database: Optional[str] = None,
               limit: Any = None, offset: Any = None) -> Response:
    """
    One page of rows plus the table's total row count.

    The page and the count are separate statements on separate checkouts and
    are not wrapped in a transaction, so under concurrent writes `total` may
    come from a slightly different snapshot than `data`.
    """
    locator = TableLocator.parse(table, database)
    page = PageRequest.from_args(limit, offset)
    rows = db.run_query(render("page", db.quote, table=locator),
                        (page.limit, page.offset)).rows
    counted = db.run_query(render("count", db.quote, table=locator)).rows
    total = counted[0]["total"] if counted else 0
    return success(
        total=int(total),
        count=len(rows),
        limit=page.limit,
        offset=page.offset,
        data=shape_rows(rows),
        **locator.labels(),
    ), 200


@_guarded
def raw_query(db, body: Any) -> Response:
    """Run caller-authored text after the SELECT-prefix check, unmodified."""
    query = body.get("query") if isinstance(body, dict) else None
    query = require_select(query)
    res = db.run_query(query)
    return success(count=len(res.rows), columns=res.columns, data=shape_rows(res.rows)), 200


@_guarded
def shortcut(db, table: str, limit: Any = None) -> Response:
    locator = TableLocator.parse(table)
    page = PageRequest.from_args(limit)
    rows = db.run_query(render("head", db.quote, table=locator), (page.limit,)).rows
    return success(table=locator.table, count=len(rows), data=shape_rows(rows)), 200


def describe_endpoints(settings) -> Dict[str, str]:
    endpoints = {"health": "GET /health"}
    if settings.single_database:
        endpoints.update({
            "tables": "GET /tables",
            "tableStructure": "GET /table/:tableName/structure",
            "tableData": "GET /table/:tableName?limit=100&offset=0",
        })
    else:
        endpoints.update({
            "databases": "GET /databases",
            "tables": "GET /database/:database/tables",
            "tableStructure": "GET /database/:database/table/:tableName/structure",
            "tableData": "GET /database/:database/table/:tableName?limit=100&offset=0",
        })
    endpoints["query"] = "POST /query"
    if settings.single_database:
        for route in config.SHORTCUT_TABLES:
            endpoints[route] = f"GET /{route}?limit={config.DEFAULT_LIMIT}"
    return endpoints


def api_info(settings) -> Response:
    return {
        "message": settings.api_title,
        "version": config.API_VERSION,
        "mode": "single" if settings.single_database else "multi",
        "database": settings.db_name,
        "endpoints": describe_endpoints(settings),
    }, 200
