import datetime
import re
import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Ensure project root is on sys.path so flat-module imports work under pytest
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import Settings  # noqa: E402
from db.mysql_client import ExecutionError  # noqa: E402
from main import create_app  # noqa: E402
from models import QueryResult  # noqa: E402

PAGE_RE = re.compile(r"^SELECT \* FROM (?P<ref>\S+) LIMIT %s OFFSET %s$")
HEAD_RE = re.compile(r"^SELECT \* FROM (?P<ref>\S+) LIMIT %s$")
COUNT_RE = re.compile(r"^SELECT COUNT\(\*\) AS total FROM (?P<ref>\S+)$")
DESCRIBE_RE = re.compile(r"^DESCRIBE (?P<ref>\S+)$")
SHOW_TABLES_FROM_RE = re.compile(r"^SHOW TABLES FROM `(?P<db>[^`]*)`$")
REF_RE = re.compile(r"^`(?P<a>[^`]*)`(?:\.`(?P<b>[^`]*)`)?$")


def make_orders():
    base = datetime.datetime(2024, 1, 1, 9, 30)
    return [
        {
            "id": i,
            "customer": f"customer_{i}",
            "amount": Decimal(f"{i * 10}.50"),
            "created_at": base + datetime.timedelta(days=i),
        }
        for i in range(1, 6)
    ]


def make_deals():
    return [{"id": i, "title": f"deal {i}", "stage": "NEW"} for i in range(1, 4)]


def _sql_type(value):
    if isinstance(value, bool):
        return "tinyint(1)"
    if isinstance(value, int):
        return "int"
    if isinstance(value, Decimal):
        return "decimal(10,2)"
    if isinstance(value, datetime.datetime):
        return "datetime"
    return "varchar(255)"


class FakeDatabase:
    """
    Stands in for db.mysql_client.Database: records every statement and
    answers the handful of shapes the handlers emit from in-memory tables.
    """

    def __init__(self, schemas=None, default_db="shop"):
        self.schemas = schemas if schemas is not None else {
            "shop": {"orders": make_orders(), "deal": make_deals(), "company": [],
                     "contact": [], "lead": []},
            "crm": {"clients": [{"id": 1, "name": "acme"}]},
        }
        self.default_db = default_db
        self.calls = []
        self.fail_with = None
        self.raw_result = QueryResult(columns=["n"], rows=[{"n": 1}])
        self.disposed = False

    def quote(self, name):
        return "`" + name.replace("`", "``") + "`"

    def dispose(self):
        self.disposed = True

    def _rows(self, ref):
        m = REF_RE.match(ref)
        assert m, f"unquoted table reference reached the pool: {ref}"
        if m.group("b") is None:
            db, table = self.default_db, m.group("a")
        else:
            db, table = m.group("a"), m.group("b")
        if db not in self.schemas:
            raise ExecutionError(f"Unknown database '{db}'")
        if table not in self.schemas[db]:
            raise ExecutionError(f"Table '{db}.{table}' doesn't exist")
        return self.schemas[db][table]

    def run_query(self, sql, params=None):
        self.calls.append((sql, params))
        if self.fail_with is not None:
            raise self.fail_with
        if sql == "SELECT 1":
            return QueryResult(columns=["1"], rows=[{"1": 1}])
        if sql == "SHOW DATABASES":
            return QueryResult(columns=["Database"],
                               rows=[{"Database": name} for name in self.schemas])
        if sql == "SHOW TABLES":
            key = f"Tables_in_{self.default_db}"
            return QueryResult(columns=[key],
                               rows=[{key: t} for t in self.schemas[self.default_db]])
        m = SHOW_TABLES_FROM_RE.match(sql)
        if m:
            db = m.group("db")
            if db not in self.schemas:
                raise ExecutionError(f"Unknown database '{db}'")
            key = f"Tables_in_{db}"
            return QueryResult(columns=[key], rows=[{key: t} for t in self.schemas[db]])
        m = PAGE_RE.match(sql)
        if m:
            limit, offset = params
            rows = self._rows(m.group("ref"))[offset:offset + limit]
            return QueryResult(columns=list(rows[0]) if rows else [], rows=[dict(r) for r in rows])
        m = HEAD_RE.match(sql)
        if m:
            (limit,) = params
            rows = self._rows(m.group("ref"))[:limit]
            return QueryResult(columns=list(rows[0]) if rows else [], rows=[dict(r) for r in rows])
        m = COUNT_RE.match(sql)
        if m:
            return QueryResult(columns=["total"], rows=[{"total": len(self._rows(m.group("ref")))}])
        m = DESCRIBE_RE.match(sql)
        if m:
            rows = self._rows(m.group("ref"))
            sample = rows[0] if rows else {}
            described = [
                {
                    "Field": name,
                    "Type": _sql_type(value).encode(),
                    "Null": "NO" if name == "id" else "YES",
                    "Key": "PRI" if name == "id" else "",
                    "Default": None,
                    "Extra": "auto_increment" if name == "id" else "",
                }
                for name, value in sample.items()
            ]
            return QueryResult(columns=["Field", "Type", "Null", "Key", "Default", "Extra"],
                               rows=described)
        return self.raw_result


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def single_settings():
    return Settings(db_name="shop")


@pytest.fixture
def multi_settings():
    return Settings()


@pytest.fixture
def single_client(single_settings, fake_db):
    app = create_app(single_settings, fake_db)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def multi_client(multi_settings, fake_db):
    app = create_app(multi_settings, fake_db)
    app.config["TESTING"] = True
    return app.test_client()
