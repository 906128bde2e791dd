"""
Tests for core.driver.connect: connect, execute, cursor_to_dicts, health_check,
transaction primitives and driver error text.

MySQL and PostgreSQL drivers are mocked; SQLite runs for real.
"""

import sqlite3
from pathlib import Path
from unittest.mock import MagicMock, patch

import psycopg
import pymysql
import pytest
from psycopg.pq import TransactionStatus
from pymysql.constants import SERVER_STATUS

from sqlbind.core.driver import (
    begin_transaction,
    commit_transaction,
    connect,
    cursor_to_dicts,
    driver_error_message,
    execute,
    health_check,
    in_transaction,
    resolve_product_type,
    rollback_transaction,
)
from sqlbind.core.errors import DatabaseConnectionError
from sqlbind.models import DataSource, ProductTypeEnum


def _pg_params() -> dict:
    return {
        "product_type": ProductTypeEnum.POSTGRES,
        "host": "pg.internal",
        "database": "app",
        "username": "postgres",
        "password": "secret",
    }


def _mysql_params() -> dict:
    return {
        "product_type": ProductTypeEnum.MYSQL,
        "host": "mysql.internal",
        "port": 3307,
        "database": "app",
        "username": "app",
        "password": "app",
    }


# --- connect ---


@patch("sqlbind.core.driver.connect.psycopg.connect")
def test_connect_postgres_autocommit_default_port(mock_connect: MagicMock) -> None:
    conn = connect(_pg_params())

    assert conn is mock_connect.return_value
    kwargs = mock_connect.call_args.kwargs
    assert kwargs["host"] == "pg.internal"
    assert kwargs["port"] == 5432
    assert kwargs["dbname"] == "app"
    assert kwargs["user"] == "postgres"
    assert kwargs["autocommit"] is True


@patch("sqlbind.core.driver.connect.pymysql.connect")
def test_connect_mysql_with_datasource_model(mock_connect: MagicMock) -> None:
    """connect() accepts a DataSource model (not only dict)."""
    ds = DataSource(name="itest-mysql", **_mysql_params())
    connect(ds)

    kwargs = mock_connect.call_args.kwargs
    assert kwargs["port"] == 3307
    assert kwargs["database"] == "app"
    assert kwargs["autocommit"] is True


@patch("sqlbind.core.driver.connect.pymysql.connect")
def test_connect_wraps_driver_error(mock_connect: MagicMock) -> None:
    mock_connect.side_effect = pymysql.err.OperationalError(2003, "Can't connect")
    with pytest.raises(DatabaseConnectionError, match="Failed to connect"):
        connect(_mysql_params())


def test_connect_invalid_product_type() -> None:
    """connect() raises ValueError for unsupported product_type."""
    params = _pg_params()
    params["product_type"] = "oracle"
    with pytest.raises(ValueError, match="oracle"):
        connect(params)


def test_connect_missing_host() -> None:
    params = _pg_params()
    params["host"] = None
    with pytest.raises(ValueError, match="host"):
        connect(params)


def test_resolve_product_type_from_string() -> None:
    assert resolve_product_type({"product_type": "sqlite"}) is ProductTypeEnum.SQLITE
    with pytest.raises(ValueError, match="product_type is required"):
        resolve_product_type({})


def test_connect_sqlite(tmp_path: Path) -> None:
    """Connect to SQLite, health_check, execute SELECT 1, cursor_to_dicts, close."""
    conn = connect({"product_type": "sqlite", "database": str(tmp_path / "a.db")})
    try:
        assert health_check(conn, ProductTypeEnum.SQLITE) is True
        cur = execute(conn, "SELECT 1 AS n")
        rows = cursor_to_dicts(cur)
        cur.close()
        assert rows == [{"n": 1}]
        # autocommit: no implicit transaction
        assert conn.isolation_level is None
    finally:
        conn.close()


def test_health_check_fails_on_closed_connection() -> None:
    conn = connect({"product_type": "sqlite", "database": ":memory:"})
    conn.close()
    assert health_check(conn, ProductTypeEnum.SQLITE) is False


# --- execute ---


@patch("sqlbind.core.driver.connect.settings")
def test_execute_applies_statement_timeout_when_configured(mock_settings: MagicMock) -> None:
    """With DB_STATEMENT_TIMEOUT set, execute() sets statement_timeout (Postgres) and resets after."""
    mock_settings.DB_STATEMENT_TIMEOUT = 5
    calls: list[tuple[str, tuple]] = []

    mock_cur = MagicMock()
    mock_cur.execute = lambda s, p=None: calls.append((s, p if p is not None else ()))
    mock_conn = MagicMock()
    mock_conn.cursor.return_value = mock_cur

    cur = execute(
        mock_conn,
        "SELECT 1 AS n",
        product_type=ProductTypeEnum.POSTGRES,
    )

    assert len(calls) == 3
    # SET cannot take a server-side bound parameter; set_config can
    assert calls[0] == ("SELECT set_config('statement_timeout', %s, false)", ("5000",))
    assert calls[1][0] == "SELECT 1 AS n"
    assert calls[2][0] == "SET statement_timeout = 0"
    assert cur is mock_cur


@patch("sqlbind.core.driver.connect.settings")
def test_execute_mysql_timeout_and_params(mock_settings: MagicMock) -> None:
    mock_settings.DB_STATEMENT_TIMEOUT = 1.5
    mock_conn = MagicMock()
    cur = mock_conn.cursor.return_value

    execute(
        mock_conn,
        "SELECT * FROM t WHERE id = %(id)s",
        {"id": 1},
        product_type=ProductTypeEnum.MYSQL,
    )

    executed = [c.args for c in cur.execute.call_args_list]
    assert executed[0] == ("SET SESSION max_execution_time = %s", (1500,))
    assert executed[1] == ("SELECT * FROM t WHERE id = %(id)s", {"id": 1})
    assert executed[2] == ("SET SESSION max_execution_time = 0",)


@patch("sqlbind.core.driver.connect.settings")
def test_execute_timeout_reset_failure_keeps_statement_error(mock_settings: MagicMock) -> None:
    """A failing reset (aborted PostgreSQL transaction) must not replace the statement's error."""
    mock_settings.DB_STATEMENT_TIMEOUT = 5
    statement_error = psycopg.errors.UndefinedTable('relation "nowhere" does not exist')
    reset_error = psycopg.errors.InFailedSqlTransaction("current transaction is aborted")

    def fake_execute(sql, params=None):
        if sql.startswith("SELECT * FROM nowhere"):
            raise statement_error
        if sql == "SET statement_timeout = 0":
            raise reset_error

    mock_conn = MagicMock()
    mock_conn.cursor.return_value.execute.side_effect = fake_execute

    with pytest.raises(psycopg.errors.UndefinedTable) as exc_info:
        execute(mock_conn, "SELECT * FROM nowhere", product_type=ProductTypeEnum.POSTGRES)

    assert exc_info.value is statement_error
    sent = [c.args[0] for c in mock_conn.cursor.return_value.execute.call_args_list]
    assert sent == [
        "SELECT set_config('statement_timeout', %s, false)",
        "SELECT * FROM nowhere",
        "SET statement_timeout = 0",
    ]


@patch("sqlbind.core.driver.connect.settings")
def test_execute_without_timeout_or_params(mock_settings: MagicMock) -> None:
    mock_settings.DB_STATEMENT_TIMEOUT = None
    mock_conn = MagicMock()
    cur = mock_conn.cursor.return_value

    execute(mock_conn, "SELECT 1", product_type=ProductTypeEnum.POSTGRES)

    cur.execute.assert_called_once_with("SELECT 1")


def test_cursor_to_dicts_no_description() -> None:
    cur = MagicMock()
    cur.description = None
    assert cursor_to_dicts(cur) == []


# --- transactions ---


def test_sqlite_transaction_primitives() -> None:
    conn = sqlite3.connect(":memory:", isolation_level=None)
    try:
        assert in_transaction(conn, ProductTypeEnum.SQLITE) is False
        begin_transaction(conn, ProductTypeEnum.SQLITE)
        assert in_transaction(conn, ProductTypeEnum.SQLITE) is True
        rollback_transaction(conn, ProductTypeEnum.SQLITE)
        assert in_transaction(conn, ProductTypeEnum.SQLITE) is False
        begin_transaction(conn, ProductTypeEnum.SQLITE)
        commit_transaction(conn, ProductTypeEnum.SQLITE)
        assert in_transaction(conn, ProductTypeEnum.SQLITE) is False
    finally:
        conn.close()


def test_mysql_begin_uses_start_transaction() -> None:
    conn = MagicMock()
    begin_transaction(conn, ProductTypeEnum.MYSQL)
    conn.cursor.return_value.execute.assert_called_once_with("START TRANSACTION")
    conn.cursor.return_value.close.assert_called_once()


def test_in_transaction_postgres() -> None:
    conn = MagicMock()
    conn.info.transaction_status = TransactionStatus.INTRANS
    assert in_transaction(conn, ProductTypeEnum.POSTGRES) is True
    conn.info.transaction_status = TransactionStatus.IDLE
    assert in_transaction(conn, ProductTypeEnum.POSTGRES) is False


def test_in_transaction_mysql() -> None:
    conn = MagicMock()
    conn.server_status = SERVER_STATUS.SERVER_STATUS_IN_TRANS | SERVER_STATUS.SERVER_STATUS_AUTOCOMMIT
    assert in_transaction(conn, ProductTypeEnum.MYSQL) is True
    conn.server_status = SERVER_STATUS.SERVER_STATUS_AUTOCOMMIT
    assert in_transaction(conn, ProductTypeEnum.MYSQL) is False


# --- driver_error_message ---


def test_driver_error_message_mysql() -> None:
    exc = pymysql.err.ProgrammingError(1146, "Table 'app.nope' doesn't exist")
    assert driver_error_message(exc) == "Table 'app.nope' doesn't exist (MySQL error 1146)"


def test_driver_error_message_postgres_sqlstate() -> None:
    exc = psycopg.errors.UniqueViolation("duplicate key value")
    assert driver_error_message(exc) == "duplicate key value (SQLSTATE 23505)"


def test_driver_error_message_sqlite() -> None:
    assert driver_error_message(sqlite3.OperationalError("no such table: x")) == "no such table: x"
