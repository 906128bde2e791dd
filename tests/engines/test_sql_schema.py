"""Tests for engines.sql.schema.SchemaCache."""

from unittest.mock import MagicMock, patch

import pytest

from sqlbind.core.errors import ExecutionError, SchemaValidationError
from sqlbind.engines.sql import QueryExecutor, SchemaCache
from sqlbind.models import ProductTypeEnum


def test_load_reads_catalog(users: QueryExecutor) -> None:
    cache = SchemaCache(users)
    tables = cache.load()

    assert tables == {"users": {"id": "INTEGER", "name": "TEXT", "active": "BOOLEAN"}}
    assert cache.loaded


def test_lookups(users: QueryExecutor) -> None:
    cache = SchemaCache(users)
    assert cache.valid_table("users")
    assert cache.valid_column("users", "name")
    assert not cache.valid_column("users", "nope")
    assert cache.column_type("users", "id") == "INTEGER"
    assert cache.column_type("users", "nope") is None
    assert cache.columns("users") == ["id", "name", "active"]
    assert cache.columns("ghosts") == []


def test_invalid_names_are_rejected(users: QueryExecutor) -> None:
    cache = SchemaCache(users)
    assert not cache.valid_table("users; DROP TABLE users")
    assert not cache.valid_table(None)  # type: ignore[arg-type]
    assert not cache.valid_column("users", 3)  # type: ignore[arg-type]


def test_miss_reloads_exactly_once(users: QueryExecutor) -> None:
    cache = SchemaCache(users)
    cache.load()
    users.execute("CREATE TABLE orders (id INTEGER PRIMARY KEY, total INTEGER)")

    with patch.object(cache, "load", wraps=cache.load) as spy:
        assert cache.valid_table("orders")
        assert spy.call_count == 1
        assert cache.valid_table("orders")
        assert spy.call_count == 1
        assert not cache.valid_table("ghosts")
        assert spy.call_count == 2


def test_cold_miss_loads_once(users: QueryExecutor) -> None:
    cache = SchemaCache(users)
    with patch.object(cache, "load", wraps=cache.load) as spy:
        assert not cache.valid_table("ghosts")
    assert spy.call_count == 1


def test_snapshot_is_a_copy(users: QueryExecutor) -> None:
    cache = SchemaCache(users)
    snap = cache.snapshot()
    snap["users"]["id"] = "CHANGED"
    assert cache.column_type("users", "id") == "INTEGER"


def test_invalidate(users: QueryExecutor) -> None:
    cache = SchemaCache(users)
    cache.load()
    cache.invalidate()
    assert not cache.loaded


def test_primary_key_sqlite(users: QueryExecutor) -> None:
    users.execute("CREATE TABLE pairs (a INTEGER, b INTEGER, v TEXT, PRIMARY KEY (b, a))")
    cache = SchemaCache(users)
    assert cache.primary_key("users") == ["id"]
    assert cache.primary_key("pairs") == ["b", "a"]


def test_primary_key_unknown_table(users: QueryExecutor) -> None:
    with pytest.raises(SchemaValidationError, match="Invalid table"):
        SchemaCache(users).primary_key("ghosts")


def test_load_failure_raises() -> None:
    executor = MagicMock()
    executor.product_type = ProductTypeEnum.POSTGRES
    executor.session.database_name = "app"
    executor.fetch_rows.side_effect = ExecutionError("permission denied")

    with pytest.raises(SchemaValidationError, match="permission denied"):
        SchemaCache(executor).load()


def test_mysql_catalog_and_primary_key() -> None:
    executor = MagicMock()
    executor.product_type = ProductTypeEnum.MYSQL
    executor.session.database_name = "app"
    executor.fetch_rows.side_effect = [
        [
            {"table_name": "users", "column_name": "id", "data_type": "int"},
            {"table_name": "users", "column_name": "org", "data_type": "int"},
        ],
        [
            {"Column_name": "org", "Seq_in_index": 2},
            {"Column_name": "id", "Seq_in_index": 1},
        ],
    ]

    cache = SchemaCache(executor)
    assert cache.primary_key("users") == ["id", "org"]

    catalog_call, keys_call = executor.fetch_rows.call_args_list
    assert "INFORMATION_SCHEMA.COLUMNS" in catalog_call.args[0]
    assert catalog_call.args[1] == {"database_name": "app"}
    assert keys_call.args[0] == "SHOW KEYS FROM `users` WHERE Key_name = 'PRIMARY'"
