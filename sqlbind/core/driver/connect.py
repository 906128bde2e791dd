"""
DB connection helpers for a DataSource.

Uses pymysql (MySQL), psycopg (PostgreSQL) or sqlite3 (SQLite) based on
product_type. Connections are opened in autocommit mode; transactions are
started explicitly with begin_transaction().
"""

import logging
import sqlite3
from typing import Any

import psycopg
import pymysql
from psycopg.pq import TransactionStatus
from pymysql.constants import SERVER_STATUS

from sqlbind.core.config import settings
from sqlbind.core.errors import DatabaseConnectionError
from sqlbind.models import DEFAULT_PORTS, ProductTypeEnum

_log = logging.getLogger(__name__)

# Exceptions any supported driver may raise from execute/commit/rollback
DRIVER_ERRORS: tuple[type[Exception], ...] = (
    pymysql.Error,
    psycopg.Error,
    sqlite3.Error,
)


def _get(datasource: Any, key: str) -> Any:
    """Get attribute or dict key from DataSource, dict, or Pydantic model."""
    if isinstance(datasource, dict):
        return datasource.get(key)
    return getattr(datasource, key, None)


def resolve_product_type(
    datasource: Any, product_type: ProductTypeEnum | None = None
) -> ProductTypeEnum:
    pt = product_type or _get(datasource, "product_type")
    if pt is None:
        raise ValueError("product_type is required (from datasource or argument)")
    if isinstance(pt, str):
        return ProductTypeEnum(pt)
    return pt


def connect(
    datasource: Any,
    *,
    product_type: ProductTypeEnum | None = None,
) -> Any:
    """
    Open an autocommit connection from a DataSource or connection dict.

    - datasource: DataSource model or dict with host, port, database, username,
      password, and product_type (or pass product_type=).
    - Raises ValueError for missing/unsupported parameters and
      DatabaseConnectionError when the driver cannot connect.
    """
    pt = resolve_product_type(datasource, product_type)
    database = _get(datasource, "database")

    if pt == ProductTypeEnum.SQLITE:
        if not database:
            raise ValueError("datasource must provide database")
        try:
            # isolation_level=None: autocommit, BEGIN/COMMIT are issued explicitly
            conn = sqlite3.connect(
                database,
                timeout=settings.DB_CONNECT_TIMEOUT,
                isolation_level=None,
            )
        except sqlite3.Error as e:
            raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e
        return conn

    host = _get(datasource, "host")
    port = _get(datasource, "port") or DEFAULT_PORTS.get(pt)
    username = _get(datasource, "username")
    password = _get(datasource, "password")

    for name, val in [
        ("host", host),
        ("database", database),
        ("username", username),
    ]:
        if val is None:
            raise ValueError(f"datasource must provide {name}")
    password = password if password is not None else ""

    timeout = settings.DB_CONNECT_TIMEOUT

    try:
        if pt == ProductTypeEnum.POSTGRES:
            return psycopg.connect(
                host=host,
                port=int(port),
                dbname=database,
                user=username,
                password=password,
                connect_timeout=timeout,
                autocommit=True,
            )
        if pt == ProductTypeEnum.MYSQL:
            return pymysql.connect(
                host=host,
                port=int(port),
                database=database,
                user=username,
                password=password,
                connect_timeout=timeout,
                autocommit=True,
            )
    except (pymysql.Error, psycopg.Error) as e:
        raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e
    raise ValueError(f"Unsupported product_type: {pt}")


def _set_statement_timeout(conn: Any, product_type: ProductTypeEnum, timeout_ms: int) -> None:
    cur = conn.cursor()
    try:
        if product_type == ProductTypeEnum.POSTGRES:
            # psycopg binds server-side and SET takes no parameters; set_config does
            cur.execute("SELECT set_config('statement_timeout', %s, false)", (str(timeout_ms),))
        else:
            cur.execute("SET SESSION max_execution_time = %s", (timeout_ms,))
    finally:
        cur.close()


def _reset_statement_timeout(conn: Any, product_type: ProductTypeEnum) -> None:
    cur = conn.cursor()
    try:
        if product_type == ProductTypeEnum.POSTGRES:
            cur.execute("SET statement_timeout = 0")
        else:
            cur.execute("SET SESSION max_execution_time = 0")
    finally:
        cur.close()


def execute(
    conn: Any,
    sql: str,
    params: dict | list | tuple | None = None,
    *,
    product_type: ProductTypeEnum | None = None,
) -> Any:
    """
    Execute SQL and return the cursor. Caller uses cursor_to_dicts(cursor) or cursor.rowcount.

    - product_type: used for DB_STATEMENT_TIMEOUT (Postgres: statement_timeout,
      MySQL: max_execution_time). When set, applies timeout in ms before the query and resets after.
      A failing reset never replaces the statement's own error.
    """
    timeout_sec = settings.DB_STATEMENT_TIMEOUT
    use_timeout = (
        timeout_sec is not None
        and timeout_sec > 0
        and product_type in (ProductTypeEnum.POSTGRES, ProductTypeEnum.MYSQL)
    )

    if use_timeout:
        _set_statement_timeout(conn, product_type, int(timeout_sec * 1000))

    cur = conn.cursor()
    try:
        if params:
            cur.execute(sql, params)
        else:
            cur.execute(sql)
    except DRIVER_ERRORS:
        if use_timeout:
            try:
                _reset_statement_timeout(conn, product_type)
            except DRIVER_ERRORS as reset_error:
                # e.g. PostgreSQL refuses everything in an aborted transaction
                _log.warning("statement timeout reset failed: %s", reset_error)
        raise

    if use_timeout:
        _reset_statement_timeout(conn, product_type)
    return cur


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor result to list of dicts. Works for pymysql, psycopg and sqlite3."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]


# ---------------------------------------------------------------------------
# Transaction primitives
# ---------------------------------------------------------------------------


def _run_control(conn: Any, sql: str) -> None:
    cur = conn.cursor()
    try:
        cur.execute(sql)
    finally:
        cur.close()


def begin_transaction(conn: Any, product_type: ProductTypeEnum) -> None:
    """Leave autocommit for the duration of one explicit transaction."""
    if product_type == ProductTypeEnum.MYSQL:
        _run_control(conn, "START TRANSACTION")
    else:
        _run_control(conn, "BEGIN")


def commit_transaction(conn: Any, product_type: ProductTypeEnum) -> None:
    _run_control(conn, "COMMIT")


def rollback_transaction(conn: Any, product_type: ProductTypeEnum) -> None:
    _run_control(conn, "ROLLBACK")


def in_transaction(conn: Any, product_type: ProductTypeEnum) -> bool:
    """True if the driver reports an open transaction on *conn*."""
    if product_type == ProductTypeEnum.SQLITE:
        return bool(conn.in_transaction)
    if product_type == ProductTypeEnum.POSTGRES:
        return conn.info.transaction_status != TransactionStatus.IDLE
    if product_type == ProductTypeEnum.MYSQL:
        return bool(conn.server_status & SERVER_STATUS.SERVER_STATUS_IN_TRANS)
    raise ValueError(f"Unsupported product_type: {product_type}")


def driver_error_message(exc: BaseException) -> str:
    """Human-readable text for a driver exception."""
    if isinstance(exc, pymysql.Error) and len(exc.args) >= 2:
        code, message = exc.args[0], exc.args[1]
        return f"{message} (MySQL error {code})"
    if isinstance(exc, psycopg.Error) and exc.sqlstate:
        return f"{str(exc).strip()} (SQLSTATE {exc.sqlstate})"
    return str(exc)
