# db/mysql_client.py
import logging
from typing import Any, Optional, Sequence

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from models import QueryResult

LOG = logging.getLogger(__name__)

CONNECT_TIMEOUT = 10  # seconds


class StartupError(RuntimeError):
    """The pool could not be built; the process should not start."""


class ExecutionError(RuntimeError):
    """Any failure coming back from the database layer."""

    def __init__(self, message: str, http_status: int = 500):
        super().__init__(message)
        self.message = message
        self.http_status = http_status

    @classmethod
    def from_exc(cls, exc: SQLAlchemyError) -> "ExecutionError":
        if isinstance(exc, PoolTimeoutError):
            return cls(_first_arg(exc), http_status=503)
        if isinstance(exc, DBAPIError) and exc.orig is not None:
            # driver errors look like (1146, "Table 'shop.nope' doesn't exist")
            args = getattr(exc.orig, "args", ())
            if len(args) >= 2 and isinstance(args[0], int):
                return cls(str(args[1]))
            return cls(str(exc.orig))
        return cls(_first_arg(exc))


def _first_arg(exc: BaseException) -> str:
    return str(exc.args[0]) if exc.args else str(exc)


def build_url(settings) -> URL:
    return URL.create(
        "mysql+pymysql",
        username=settings.db_user or None,
        password=settings.db_password or None,
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
        query={"charset": "utf8mb4"},
    )


class Database:
    """
    Handle on the shared connection pool.

    Built once at startup and passed to every handler. Each call checks a
    connection out for the duration of one statement; when all connections
    are busy the caller waits up to the pool timeout.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_settings(cls, settings) -> "Database":
        try:
            engine = create_engine(
                build_url(settings),
                pool_size=settings.pool_size,
                max_overflow=0,
                pool_timeout=settings.pool_timeout,
                pool_pre_ping=True,
                connect_args={
                    "connect_timeout": CONNECT_TIMEOUT,
                    "read_timeout": settings.query_timeout,
                },
            )
        except Exception as e:
            raise StartupError(f"could not create connection pool: {e}") from e
        LOG.info("connection pool ready (size=%s, timeout=%ss)",
                 settings.pool_size, settings.pool_timeout)
        return cls(engine)

    def quote(self, name: str) -> str:
        """Quote an already validated identifier with the dialect's rules."""
        return self.engine.dialect.identifier_preparer.quote_identifier(name)

    def run_query(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """
        Execute one statement on a pooled connection.
        With params=None the text is sent as-is (no %-interpolation), which is
        what caller-authored queries need.
        """
        try:
            with self.engine.connect() as conn:
                if params is None:
                    result = conn.execution_options(no_parameters=True).exec_driver_sql(sql)
                else:
                    result = conn.exec_driver_sql(sql, tuple(params))
                if not result.returns_rows:
                    return QueryResult()
                columns = list(result.keys())
                rows = [dict(m) for m in result.mappings()]
        except SQLAlchemyError as e:
            raise ExecutionError.from_exc(e) from e
        return QueryResult(columns=columns, rows=rows)

    def dispose(self) -> None:
        LOG.info("closing connection pool")
        self.engine.dispose()
