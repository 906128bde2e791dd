"""Shared fixtures: a file-backed SQLite datasource and the pipeline on top of it."""

import sqlite3
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from sqlbind.core.session import DatabaseSession
from sqlbind.engines import QueryContext
from sqlbind.engines.sql import QueryExecutor
from sqlbind.models import DataSource, ProductTypeEnum

USERS_DDL = (
    "CREATE TABLE users ("
    "id INTEGER PRIMARY KEY, "
    "name TEXT NOT NULL, "
    "active BOOLEAN DEFAULT 1)"
)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "sqlbind-test.db"


@pytest.fixture
def sqlite_datasource(db_path: Path) -> DataSource:
    return DataSource(
        name="test-sqlite",
        product_type=ProductTypeEnum.SQLITE,
        host=None,
        database=str(db_path),
    )


@pytest.fixture
def session(sqlite_datasource: DataSource) -> Iterator[DatabaseSession]:
    with DatabaseSession(sqlite_datasource) as s:
        yield s


@pytest.fixture
def executor(session: DatabaseSession) -> QueryExecutor:
    return QueryExecutor(session, trace=True)


@pytest.fixture
def users(executor: QueryExecutor) -> QueryExecutor:
    """Executor whose database has an empty ``users`` table."""
    assert executor.execute(USERS_DDL)
    return executor


@pytest.fixture
def db(sqlite_datasource: DataSource) -> Iterator[QueryContext]:
    with QueryContext(sqlite_datasource, trace=True) as ctx:
        assert ctx.execute(USERS_DDL)
        yield ctx


@pytest.fixture
def committed_rows(db_path: Path) -> Callable[[str], int]:
    """Row count of a table as seen from an independent connection (committed data only)."""

    def _count(table: str = "users") -> int:
        conn = sqlite3.connect(str(db_path))
        try:
            return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        finally:
            conn.close()

    return _count
